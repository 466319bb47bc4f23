"""
Error taxonomy for content ingestion and queries.

Missing or unreadable source files are not wrapped: they surface as the
builtin OSError family (FileNotFoundError, PermissionError, ...).
"""

from typing import Optional


class SiteError(Exception):
    """Base class for every error raised by this service."""

    def __init__(self, message: str = "Unexpected error") -> None:
        self.message = message
        super().__init__(message)


class MalformedContentError(SiteError):
    """Front matter is missing, unparseable, or lacks required fields."""

    def __init__(self, message: str = "Malformed content", source: Optional[str] = None) -> None:
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class StoreError(SiteError):
    """The database could not be reached or a write failed."""


class BadRequestError(SiteError):
    """The request cannot be served (wrong method, missing parameter)."""
