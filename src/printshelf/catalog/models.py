"""Row models returned by the catalog repository."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AssetType = Literal["image", "pdf"]
PrintRating = Literal["good", "bad"]


class CatalogRow(BaseModel):
    """Base model for rows read from SQLite."""

    model_config = ConfigDict(extra="ignore")


class ModelRecord(CatalogRow):
    """A catalogued model folder.

    Attributes:
        id: Stable row identifier.
        filename: Display name derived from the folder name.
        filepath: Absolute folder path; the identity key.
        category: Category derived from the folder's position under the root.
        is_paid: Whether the folder sits under the paid-models folder.
        is_original: Whether the folder sits under the original-creations folder.
        file_count: Number of model/archive files owned by the folder.
        date_added: Earliest modification time among the folder and its files.
        date_created: Earliest creation time among the folder and its files.
        deleted_at: Soft-delete timestamp; ``None`` for live rows.
        designer_id: Linked designer, if any.
    """

    id: int
    filename: str
    filepath: str
    category: Optional[str] = None
    is_paid: bool = False
    is_original: bool = False
    file_count: int = 0
    date_added: Optional[str] = None
    date_created: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_scanned: Optional[str] = None
    deleted_at: Optional[str] = None
    designer_id: Optional[int] = None
    notes: Optional[str] = None


class ModelFileRecord(CatalogRow):
    """A model or archive file owned by a model."""

    id: int
    model_id: int
    filename: str
    filepath: str
    file_size: Optional[int] = None
    file_type: Optional[str] = None


class AssetRecord(CatalogRow):
    """An image or PDF associated with a model."""

    id: int
    model_id: int
    filepath: str
    asset_type: AssetType
    is_primary: bool = False
    is_hidden: bool = False


class LooseFileRecord(CatalogRow):
    """A model/archive file awaiting organization into its own folder."""

    id: int
    filename: str
    filepath: str
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    category: Optional[str] = None
    discovered_at: Optional[str] = None


class ModelFields(BaseModel):
    """Values written for a model row during indexing."""

    filename: str
    filepath: str
    category: str
    is_paid: bool = False
    is_original: bool = False
    file_count: int = 0
    date_added: Optional[str] = None
    date_created: Optional[str] = None
    designer_id: Optional[int] = None


class FileEntry(BaseModel):
    """A file observed on disk, ready to be written as a model file or loose file."""

    filename: str
    filepath: str
    file_size: Optional[int] = None
    file_type: str = ""


class ModelMetadataRecord(CatalogRow):
    """Metadata parsed from a PDF shipped with a model."""

    model_id: int
    source_platform: Optional[str] = None
    source_url: Optional[str] = None
    designer: Optional[str] = None
    designer_url: Optional[str] = None
    description: Optional[str] = None
    license: Optional[str] = None
    license_url: Optional[str] = None
    extracted_at: Optional[str] = None


class QueueEntry(CatalogRow):
    """A model waiting in the print queue."""

    model_id: int
    filename: str
    priority: int = 0
    added_at: Optional[str] = None
    notes: Optional[str] = None


class PrintedEntry(CatalogRow):
    """A recorded print of a model."""

    id: int
    model_id: int
    filename: str
    rating: Optional[PrintRating] = None
    printed_at: Optional[str] = None
    notes: Optional[str] = None


class DesignerRecord(CatalogRow):
    """A designer whose purchased models live under the paid folder."""

    id: int
    name: str
    profile_url: Optional[str] = None
    created_at: Optional[str] = None


class DesignerSummary(DesignerRecord):
    """A designer with counts over their live models."""

    model_count: int = 0
    latest_model_date: Optional[str] = None


class DesignerDetail(BaseModel):
    """A designer together with their live models, newest first."""

    designer: DesignerRecord
    models: List[ModelRecord] = Field(default_factory=list)


class DesignerSyncResult(BaseModel):
    """Outcome of linking models to designers."""

    created: int = 0
    linked: int = 0
    profiles_filled: int = 0


class CatalogStats(BaseModel):
    """Summary counts for the catalog."""

    models: int = 0
    deleted_models: int = 0
    model_files: int = 0
    favorites: int = 0
    printed: int = 0
    queued: int = 0
    loose_files: int = 0
    categories: List[str] = Field(default_factory=list)


__all__ = [
    "AssetType",
    "PrintRating",
    "ModelRecord",
    "ModelFileRecord",
    "AssetRecord",
    "LooseFileRecord",
    "ModelFields",
    "FileEntry",
    "ModelMetadataRecord",
    "QueueEntry",
    "PrintedEntry",
    "DesignerRecord",
    "DesignerSummary",
    "DesignerDetail",
    "DesignerSyncResult",
    "CatalogStats",
]
