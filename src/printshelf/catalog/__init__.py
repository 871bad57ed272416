"""SQLite catalog of models, assets, annotations, and runtime settings.

:class:`~printshelf.catalog.library.LibraryService` lives in
``printshelf.catalog.library`` and is imported from there, since it depends on
the scanner which in turn depends on this package.
"""

from .errors import CatalogError, InvariantViolationError, RecordNotFoundError
from .models import AssetRecord, CatalogStats, LooseFileRecord, ModelRecord
from .repository import CatalogRepository
from .settings import SettingsStore

__all__ = [
    "AssetRecord",
    "CatalogError",
    "CatalogRepository",
    "CatalogStats",
    "InvariantViolationError",
    "LooseFileRecord",
    "ModelRecord",
    "RecordNotFoundError",
    "SettingsStore",
]
