"""Authentication handlers for identity-provider JWTs."""

from uuid import UUID

from fastapi import status
from jose import JWTError, jwt

from src.api.core.constants import JWT_ALGORITHM
from src.api.core.exceptions.base import CreditLedgerException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedUserContext
from src.utils.settings.auth import AuthSettings
from src.utils.logger import get_logger

logger = get_logger(__name__)


def handle_jwt_auth(token: str) -> AuthenticatedUserContext:
    settings = AuthSettings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {e}")
        raise CreditLedgerException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Invalid or expired authentication token"},
        )

    if payload.get("role") == "anon":
        raise CreditLedgerException(
            MessageCode.FORBIDDEN,
            status.HTTP_403_FORBIDDEN,
            {"description": "Anonymous access not permitted"},
        )

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise CreditLedgerException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Token subject is not a valid user id"},
        )

    return AuthenticatedUserContext(user_id=user_id, email=payload.get("email"))
