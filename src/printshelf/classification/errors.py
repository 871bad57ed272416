"""Categorization errors."""

from printshelf.errors import PrintshelfError


class CategorizationError(PrintshelfError):
    """Base exception for category suggestion."""


class MissingAPIKeyError(CategorizationError):
    """Raised when LLM categorization is requested without a configured API key."""


class CategorizationInProgressError(CategorizationError):
    """Raised when a categorization run is requested while one is active."""

    def __init__(self, message: str = "Categorization already in progress") -> None:
        super().__init__(message)
