"""
Exceptions raised by the data access and subscription layers.
"""

from typing import Any, Optional


class ApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, body: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.body = body

    def to_content(self) -> Any:
        if self.body is not None:
            return self.body
        return {"message": self.message}


class NotFoundError(ApiError):
    """Raised when a region, category, ticker or document does not exist."""
    status_code = 404


class InvalidEmailError(ApiError):
    """Raised when a subscription request carries a missing or malformed email."""
    status_code = 400


class InfrastructureError(Exception):
    """Raised when MongoDB cannot be reached or a query fails."""
    pass
