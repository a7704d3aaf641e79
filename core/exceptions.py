"""
Application error taxonomy.

Services raise these; the handlers registered in ``main.py`` turn them into
``{"message": ...}`` JSON responses with the matching status code.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors that are safe to report to the client."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: str = None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, **self.extra}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(AppError):
    # Duplicates are reported to the client as bad requests.
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ExternalServiceError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"
