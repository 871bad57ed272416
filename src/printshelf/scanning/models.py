"""Data types shared by the scanning pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class ScanMode(str, Enum):
    """How a scan reconciles discovered folders with stored rows."""

    FULL = "full"
    FULL_SYNC = "full_sync"
    ADD_ONLY = "add_only"


class ScanStep(str, Enum):
    """Phase reported by :class:`ScanProgress`."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    INDEXING = "indexing"
    EXTRACTING = "extracting"
    METADATA = "metadata"
    TAGGING = "tagging"
    DEDUPLICATING = "deduplicating"
    CLEANUP = "cleanup"
    COMPLETE = "complete"
    FAILED = "failed"


class ScanProgress(BaseModel):
    """Snapshot of a running or finished scan.

    Attributes:
        scanning: Whether a scan is currently running.
        mode: Mode of the current or last scan.
        current_step: Pipeline phase.
        step_description: Human-readable description of the phase.
        total_files: Catalog files seen during discovery.
        processed_files: Catalog files written so far.
        models_found: Model folders discovered.
        models_updated: Existing rows updated in place.
        models_removed: Rows deleted or soft-deleted during cleanup.
        model_files_found: Model/archive files attached to models.
        assets_found: Image and PDF assets recorded.
        loose_files_found: Loose files recorded.
        total_folders: Folder groups to index.
        indexed_folders: Folder groups indexed so far.
        models_to_extract: Image-less models queued for archive extraction.
        models_extracted: Models that gained an extracted preview.
        overall_progress: Rough completion percentage, 0-100.
        started_at: Scan start time.
        completed_at: Scan completion time.
        error: Failure message for a scan that aborted.
    """

    scanning: bool = False
    mode: Optional[ScanMode] = None
    current_step: ScanStep = ScanStep.IDLE
    step_description: str = ""
    total_files: int = 0
    processed_files: int = 0
    models_found: int = 0
    models_updated: int = 0
    models_removed: int = 0
    model_files_found: int = 0
    assets_found: int = 0
    loose_files_found: int = 0
    total_folders: int = 0
    indexed_folders: int = 0
    models_to_extract: int = 0
    models_extracted: int = 0
    overall_progress: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class FolderGroup(BaseModel):
    """A discovered model folder and the catalog files it owns.

    Attributes:
        folder: Absolute folder path.
        files: Model/archive files anywhere below ``folder``.
        date_added: Earliest modification time among the folder and its files.
        date_created: Earliest creation time among the folder and its files.
    """

    folder: Path
    files: List[Path] = Field(default_factory=list)
    date_added: Optional[datetime] = None
    date_created: Optional[datetime] = None


class LooseFile(BaseModel):
    """A model/archive file sitting directly in a container folder."""

    path: Path
    size: Optional[int] = None


class DiscoveryResult(BaseModel):
    """Output of the traversal phase."""

    groups: List[FolderGroup] = Field(default_factory=list)
    loose_files: List[LooseFile] = Field(default_factory=list)

    @property
    def total_files(self) -> int:
        return sum(len(group.files) for group in self.groups) + len(self.loose_files)


class ScanSummary(BaseModel):
    """Counts returned by a synchronous scan."""

    mode: ScanMode
    models_found: int = 0
    models_added: int = 0
    models_updated: int = 0
    models_removed: int = 0
    model_files_found: int = 0
    assets_found: int = 0
    loose_files_found: int = 0
    models_extracted: int = 0
    metadata_extracted: int = 0
    images_hidden: int = 0
    tags_imported: int = 0


__all__ = [
    "ScanMode",
    "ScanStep",
    "ScanProgress",
    "FolderGroup",
    "LooseFile",
    "DiscoveryResult",
    "ScanSummary",
]
