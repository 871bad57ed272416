"""Catalog errors."""

from printshelf.errors import PrintshelfError


class CatalogError(PrintshelfError):
    """Base exception for catalog operations."""


class RecordNotFoundError(CatalogError):
    """Raised when a referenced row does not exist."""


class InvariantViolationError(CatalogError):
    """Raised when an operation would break a catalog invariant; nothing is mutated."""
