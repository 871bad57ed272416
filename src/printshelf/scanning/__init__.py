"""Library scanning: file classification, discovery, indexing, and previews."""

from .archives import ArchiveImageExtractor
from .detectors import FileKind, classify_path
from .discovery import FolderDiscovery
from .errors import ScanConfigurationError, ScanError, ScanInProgressError
from .models import ScanMode, ScanProgress, ScanStep, ScanSummary
from .names import cleanup_folder_name
from .scanner import CatalogScanner

__all__ = [
    "ArchiveImageExtractor",
    "CatalogScanner",
    "FileKind",
    "FolderDiscovery",
    "ScanConfigurationError",
    "ScanError",
    "ScanInProgressError",
    "ScanMode",
    "ScanProgress",
    "ScanStep",
    "ScanSummary",
    "classify_path",
    "cleanup_folder_name",
]
