"""Scanning errors."""

from printshelf.errors import PrintshelfError


class ScanError(PrintshelfError):
    """Base exception for scan operations."""


class ScanConfigurationError(ScanError):
    """Raised when the library root is missing or not a directory."""


class ScanInProgressError(ScanError):
    """Raised when a scan is requested while another one is running."""

    def __init__(self, message: str = "Scan already in progress") -> None:
        super().__init__(message)
