"""
Error taxonomy for the books API.

Every failure the API reports maps to one of these classes; the exception
handlers in ``api.main`` turn them into ``{"message": ...}`` bodies.
"""

from typing import List, Optional

from fastapi import status

SERVER_ERROR_MESSAGE = "Server error - contact support"


class BookAPIError(Exception):
    """Base class for errors carrying an HTTP status and a public message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidParameter(BookAPIError):
    """Malformed or out-of-range request input."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(BookAPIError):
    """A well-formed lookup matched nothing."""

    status_code = status.HTTP_404_NOT_FOUND


class ServerError(BookAPIError):
    """Database or infrastructure failure. The public message stays generic."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = SERVER_ERROR_MESSAGE):
        super().__init__(message)


class StructuredMappingError(ServerError):
    """A stored row did not match the book schema."""

    def __init__(self, fields: List[str], detail: Optional[str] = None):
        super().__init__()
        self.fields = fields
        self.detail = detail

    def __str__(self) -> str:
        return f"Book row failed schema check on fields: {', '.join(self.fields)}"
