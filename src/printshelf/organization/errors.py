"""Organization errors."""

from printshelf.errors import PrintshelfError


class OrganizationError(PrintshelfError):
    """Base exception for file move operations."""


class ImportConflictError(OrganizationError):
    """Raised when a move target already exists; nothing is moved."""
