from typing import Any, Dict, Optional, Union

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError


class BaseAPIError(Exception):
    """
    Base class for errors rendered as JSON responses.

    Subclasses fix the HTTP status, a machine-readable error code and a
    default message; callers may override the message, the code and attach
    structured details.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message or self.default_message
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self):
        return f"{type(self).__name__}({self.status_code}, {self.error_code!r}, {self.message!r})"


class AuthenticationError(BaseAPIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTH_ERROR"
    default_message = "Authentication failed"


class InvalidCredentialsException(AuthenticationError):
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class TokenError(AuthenticationError):
    error_code = "TOKEN_ERROR"
    default_message = "Invalid or expired token"


class PermissionDenied(BaseAPIError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PERMISSION_DENIED"
    default_message = "Permission denied"


class BadRequestError(BaseAPIError):
    """A well-formed request that cannot be applied to the current state"""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    default_message = "Bad request"


class NotFoundError(BaseAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(BaseAPIError):
    """Uniqueness clashes: emails, slugs, course codes"""
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class RateLimitExceeded(BaseAPIError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "RATE_LIMIT_EXCEEDED"
    default_message = "Rate limit exceeded"


class DatabaseError(BaseAPIError):
    error_code = "DB_ERROR"
    default_message = "Database error occurred"


class ExternalServiceError(BaseAPIError):
    """An outbound dependency such as the mail server failed"""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "EXTERNAL_SERVICE_ERROR"
    default_message = "External service unavailable"


def get_error_message(
    error: Union[Exception, HTTPException, str],
    default_message: str = "An unexpected error occurred",
    include_details: bool = True
) -> Dict[str, Any]:
    """
    Build the JSON error payload for an exception.

    The returned dict carries the HTTP status under "status_code"; the
    caller pops it before rendering the body.
    """
    if isinstance(error, str):
        return {
            "success": False,
            "error_code": "GENERAL_ERROR",
            "detail": error,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        }

    if isinstance(error, SQLAlchemyError):
        error = DatabaseError()

    if isinstance(error, BaseAPIError):
        payload = {
            "success": False,
            "error_code": error.error_code,
            "detail": error.message,
            "status_code": error.status_code,
        }
        if include_details and error.details:
            payload["details"] = error.details
        return payload

    if isinstance(error, HTTPException):
        return {
            "success": False,
            "error_code": "HTTP_ERROR",
            "detail": str(error.detail),
            "status_code": error.status_code,
        }

    return {
        "success": False,
        "error_code": "INTERNAL_ERROR",
        "detail": default_message,
        "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
