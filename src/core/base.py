from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.utils.logger import get_logger


class BaseService:
    """Base service class with session factory dependency injection.

    Services open their own sessions so every unit of work gets an explicit
    transaction scope on the shared connection pool.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = get_logger(self.__class__.__name__)
