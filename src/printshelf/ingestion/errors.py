"""Ingestion errors."""

from printshelf.errors import PrintshelfError


class IngestionError(PrintshelfError):
    """Base exception for staging directory operations."""


class IngestionConfigurationError(IngestionError):
    """Raised when the staging or model directory is missing or invalid."""


__all__ = ["IngestionError", "IngestionConfigurationError"]
