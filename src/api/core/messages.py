"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"

    # Authentication & Authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_TOKEN = "INVALID_TOKEN"

    # Credit management
    CREDITS_DEDUCTED = "CREDITS_DEDUCTED"
    CREDITS_GRANTED = "CREDITS_GRANTED"
    CREDITS_REVOKED = "CREDITS_REVOKED"
    NO_CREDITS_CHANGED = "NO_CREDITS_CHANGED"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"

    # Service Errors
    LEDGER_UNAVAILABLE = "LEDGER_UNAVAILABLE"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    # Authentication & Authorization
    MessageCode.AUTH_REQUIRED: "Authentication required",
    MessageCode.FORBIDDEN: "Access denied",
    MessageCode.INVALID_TOKEN: "Invalid authentication token",
    # Credit management
    MessageCode.CREDITS_DEDUCTED: "Credits deducted successfully",
    MessageCode.CREDITS_GRANTED: "Credits granted successfully",
    MessageCode.CREDITS_REVOKED: "Credits revoked successfully",
    MessageCode.NO_CREDITS_CHANGED: "No credits were changed",
    MessageCode.INSUFFICIENT_CREDITS: "Insufficient credits",
    # Validation errors
    MessageCode.INVALID_INPUT: "Invalid input provided",
    # Service Errors
    MessageCode.LEDGER_UNAVAILABLE: "Credit ledger temporarily unavailable, please retry",
    # Generic errors
    MessageCode.INTERNAL_ERROR: "Internal server error",
    MessageCode.NOT_FOUND: "Resource not found",
}

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )

    @classmethod
    def error(
        cls,
        message_code: MessageCode,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create an error response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Error occurred"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")
