import secrets
from typing import Annotated

from fastapi import Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.core.constants import INTERNAL_SERVICE_KEY_HEADER
from src.api.core.exceptions.base import CreditLedgerException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedUserContext
from src.modules.credits import (
    CreditDeductionService,
    CreditGrantService,
    UserBenefitsService,
)
from src.modules.user.auth_handlers import handle_jwt_auth
from src.utils.settings.app import AppSettings
from src.utils.settings.credits import CreditSettings


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Get the shared session factory from app state."""
    return request.app.state.session_factory


SessionFactoryDep = Annotated[
    async_sessionmaker[AsyncSession], Depends(get_session_factory)
]


async def get_db_session(session_factory: SessionFactoryDep):
    async with session_factory() as session:
        yield session


def get_credit_settings() -> CreditSettings:
    return CreditSettings()


CreditSettingsDep = Annotated[CreditSettings, Depends(get_credit_settings)]


async def get_user_benefits_service(
    session_factory: SessionFactoryDep, settings: CreditSettingsDep
) -> UserBenefitsService:
    """Get user benefits service bound to the shared session factory."""
    return UserBenefitsService(session_factory, settings=settings)


async def get_credit_deduction_service(
    session_factory: SessionFactoryDep, settings: CreditSettingsDep
) -> CreditDeductionService:
    """Get credit deduction service bound to the shared session factory."""
    return CreditDeductionService(session_factory, settings=settings)


async def get_credit_grant_service(
    session_factory: SessionFactoryDep, settings: CreditSettingsDep
) -> CreditGrantService:
    """Get credit grant service bound to the shared session factory."""
    return CreditGrantService(session_factory, settings=settings)


async def get_current_user_authenticated(
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUserContext:
    """Dependency to get the caller's identity from the bearer token."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise CreditLedgerException(
            MessageCode.AUTH_REQUIRED,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Provide a bearer token in the 'Authorization' header"},
        )
    return handle_jwt_auth(token.strip())


async def require_internal_service(
    internal_key: Annotated[
        str | None, Header(alias=INTERNAL_SERVICE_KEY_HEADER)
    ] = None,
) -> None:
    """Only allow callers presenting the shared internal service key."""
    expected = AppSettings().INTERNAL_SERVICE_KEY.get_secret_value()
    if (
        not expected
        or not internal_key
        or not secrets.compare_digest(internal_key, expected)
    ):
        raise CreditLedgerException(
            MessageCode.FORBIDDEN,
            status.HTTP_403_FORBIDDEN,
            {"description": f"A valid '{INTERNAL_SERVICE_KEY_HEADER}' is required"},
        )


AsyncSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
UserBenefitsServiceDep = Annotated[
    UserBenefitsService, Depends(get_user_benefits_service)
]
CreditDeductionServiceDep = Annotated[
    CreditDeductionService, Depends(get_credit_deduction_service)
]
CreditGrantServiceDep = Annotated[
    CreditGrantService, Depends(get_credit_grant_service)
]

CurrentUserAuthDep = Annotated[
    AuthenticatedUserContext, Depends(get_current_user_authenticated)
]
