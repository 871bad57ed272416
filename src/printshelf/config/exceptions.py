"""Custom exceptions for configuration management."""

from printshelf.errors import PrintshelfError


class ConfigError(PrintshelfError):
    """Raised when configuration data cannot be processed."""
