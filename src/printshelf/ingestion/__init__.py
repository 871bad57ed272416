"""Staging directory workflow: discover, categorize, and import downloads."""

from .discovery import IngestionDiscovery
from .errors import IngestionConfigurationError, IngestionError
from .models import ImportItem, ImportResult, ImportSummary, IngestionItem, IngestionScanResult
from .service import IngestionService

__all__ = [
    "IngestionDiscovery",
    "IngestionConfigurationError",
    "IngestionError",
    "ImportItem",
    "ImportResult",
    "ImportSummary",
    "IngestionItem",
    "IngestionScanResult",
    "IngestionService",
]
