"""Library scanner: discovery, indexing, reconciliation, and post-index phases."""

from __future__ import annotations

import logging
import sqlite3
import subprocess
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from printshelf.catalog.models import AssetType, FileEntry, ModelFields, ModelRecord
from printshelf.catalog.repository import CatalogRepository
from printshelf.config.models import ScanningOptions
from printshelf.metadata.pdf import PdfMetadataReader
from printshelf.metadata.tags import NullTagStore, TagReader, parse_model_state

from .archives import ArchiveImageExtractor
from .dedupe import select_duplicates
from .detectors import FileKind, classify_path, file_type_of
from .discovery import FolderDiscovery, derive_category, designer_for
from .errors import ScanConfigurationError, ScanInProgressError
from .models import FolderGroup, ScanMode, ScanProgress, ScanStep, ScanSummary
from .names import cleanup_folder_name

LOGGER = logging.getLogger(__name__)

FINDER_TAG_NOTE = "Imported from Finder tag"


class CatalogScanner:
    """Owns scan state and writes the model, file, asset, and loose-file tables.

    Only one scan runs at a time. :meth:`scan` runs synchronously and
    :meth:`start_scan` runs on a background thread; both raise
    :class:`ScanInProgressError` when a scan is already underway. Progress can
    be read from any thread through :meth:`progress`.
    """

    def __init__(
        self,
        repository: CatalogRepository,
        settings: ScanningOptions,
        *,
        extractor: Optional[ArchiveImageExtractor] = None,
        tag_reader: Optional[TagReader] = None,
        pdf_reader: Optional[PdfMetadataReader] = None,
    ) -> None:
        self._repository = repository
        self._settings = settings
        self._discovery = FolderDiscovery(settings)
        self._extractor = extractor or ArchiveImageExtractor()
        self._tag_reader: TagReader = tag_reader or NullTagStore()
        self._pdf_reader = pdf_reader or PdfMetadataReader()
        self._scan_lock = threading.Lock()
        self._progress_lock = threading.Lock()
        self._progress = ScanProgress()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def is_scanning(self) -> bool:
        return self._scan_lock.locked()

    def progress(self) -> ScanProgress:
        """Return a snapshot of the current or most recent scan."""
        with self._progress_lock:
            return self._progress.model_copy()

    def scan(self, root: Path, mode: ScanMode = ScanMode.FULL_SYNC) -> ScanSummary:
        """Scan ``root`` synchronously.

        Args:
            root: Library root directory.
            mode: Reconciliation mode.

        Returns:
            ScanSummary: Counts describing what the scan changed.

        Raises:
            ScanInProgressError: If another scan is running.
            ScanConfigurationError: If ``root`` is missing or not a directory.
        """
        root = self._validate_root(root)
        if not self._scan_lock.acquire(blocking=False):
            raise ScanInProgressError()
        try:
            return self._run(root, mode)
        finally:
            self._scan_lock.release()

    def start_scan(self, root: Path, mode: ScanMode = ScanMode.FULL_SYNC) -> threading.Thread:
        """Start a scan on a background thread and return immediately.

        Failures are recorded on :meth:`progress` rather than raised.

        Raises:
            ScanInProgressError: If another scan is running.
            ScanConfigurationError: If ``root`` is missing or not a directory.
        """
        root = self._validate_root(root)
        if not self._scan_lock.acquire(blocking=False):
            raise ScanInProgressError()

        def _target() -> None:
            try:
                self._run(root, mode)
            except Exception:  # pragma: no cover
                LOGGER.debug("Background scan of %s ended with an error", root, exc_info=True)
            finally:
                self._scan_lock.release()

        thread = threading.Thread(target=_target, name="printshelf-scan", daemon=True)
        self._thread = thread
        thread.start()
        return thread

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the most recent background scan finishes."""
        if self._thread is not None:
            self._thread.join(timeout)

    def index_folder(self, folder: Path, root: Path) -> Optional[int]:
        """Index a single folder as a model, updating it in place when already known.

        Args:
            folder: Model folder to index.
            root: Library root used to derive category and designer.

        Returns:
            Optional[int]: The model id, or ``None`` when the folder holds no model files.

        Raises:
            ScanConfigurationError: If ``folder`` is not inside ``root``.
        """
        root = root.expanduser().resolve()
        folder = folder.expanduser().resolve()
        if root not in folder.parents:
            raise ScanConfigurationError(f"{folder} is not inside the library root {root}")

        group = self._discovery.describe_folder(folder)
        if not group.files:
            LOGGER.info("No model files found in %s", folder)
            return None
        existing = self._repository.get_model_by_path(str(folder))
        model_id, _ = self._index_group(group, root, existing)
        if self._settings.extract_archive_previews and not self._repository.has_image(model_id):
            self._extract_preview(model_id, folder)
        return model_id

    def rescan_model(self, model_id: int, root: Path) -> Optional[int]:
        """Re-index one model's folder in place, keeping its id.

        Raises:
            RecordNotFoundError: If the model does not exist.
            ScanConfigurationError: If the model's folder no longer exists.
        """
        model = self._repository.require_model(model_id)
        folder = Path(model.filepath)
        if not folder.is_dir():
            raise ScanConfigurationError(f"Folder does not exist: {folder}")
        return self.index_folder(folder, root)

    # ------------------------------------------------------------------ #
    # Scan phases                                                        #
    # ------------------------------------------------------------------ #

    def _run(self, root: Path, mode: ScanMode) -> ScanSummary:
        summary = ScanSummary(mode=mode)
        with self._progress_lock:
            self._progress = ScanProgress(
                scanning=True,
                mode=mode,
                current_step=ScanStep.DISCOVERING,
                step_description="Scanning directories...",
                started_at=datetime.now(timezone.utc),
            )
        LOGGER.info("Starting %s scan of %s", mode.value, root)
        try:
            self._scan_phases(root, mode, summary)
        except Exception as exc:
            LOGGER.error("Scan of %s failed: %s", root, exc)
            self._update(
                scanning=False,
                current_step=ScanStep.FAILED,
                step_description="Scan failed",
                error=str(exc),
                completed_at=datetime.now(timezone.utc),
            )
            raise
        self._update(
            scanning=False,
            current_step=ScanStep.COMPLETE,
            step_description="Scan complete",
            overall_progress=100,
            completed_at=datetime.now(timezone.utc),
        )
        LOGGER.info(
            "Scan complete: %d models (%d added, %d updated, %d removed), %d loose files",
            summary.models_found,
            summary.models_added,
            summary.models_updated,
            summary.models_removed,
            summary.loose_files_found,
        )
        return summary

    def _scan_phases(self, root: Path, mode: ScanMode, summary: ScanSummary) -> None:
        if mode is not ScanMode.ADD_ONLY:
            self._repository.clear_loose_files()

        discovered = self._discovery.discover(root)
        self._update(
            total_files=discovered.total_files,
            total_folders=len(discovered.groups),
            overall_progress=1,
        )

        for loose in discovered.loose_files:
            entry = FileEntry(
                filename=loose.path.name,
                filepath=str(loose.path),
                file_size=loose.size,
                file_type=file_type_of(loose.path),
            )
            category = derive_category(loose.path, root, self._settings)
            if self._repository.add_loose_file(entry, category):
                summary.loose_files_found += 1
        self._update(loose_files_found=summary.loose_files_found)

        self._update(current_step=ScanStep.INDEXING, step_description="Indexing model folders...")
        needs_preview = self._index_groups(discovered.groups, root, mode, summary)
        live_paths = {str(group.folder) for group in discovered.groups}

        if mode is not ScanMode.ADD_ONLY:
            self._update(
                current_step=ScanStep.CLEANUP,
                step_description="Cleaning up removed models...",
                overall_progress=60,
            )
            summary.models_removed = self._remove_missing(live_paths, mode)
            self._update(models_removed=summary.models_removed)

        if self._settings.extract_archive_previews and needs_preview:
            summary.models_extracted = self._extract_phase(needs_preview)
        if self._settings.extract_pdf_metadata:
            summary.metadata_extracted = self._metadata_phase()
        if self._settings.read_finder_tags:
            summary.tags_imported = self._tagging_phase(discovered.groups)
        if self._settings.dedupe_images:
            summary.images_hidden = self._dedupe_phase()

    def _index_groups(
        self,
        groups: list[FolderGroup],
        root: Path,
        mode: ScanMode,
        summary: ScanSummary,
    ) -> list[tuple[int, Path]]:
        needs_preview: list[tuple[int, Path]] = []
        total = max(1, len(groups))
        for position, group in enumerate(groups, start=1):
            existing = self._repository.get_model_by_path(str(group.folder))
            if existing is not None and mode is ScanMode.ADD_ONLY:
                self._advance(position, total, len(group.files))
                continue
            try:
                model_id, created = self._index_group(group, root, existing)
            except (OSError, sqlite3.IntegrityError) as exc:
                LOGGER.warning("Skipping %s: %s", group.folder, exc)
                self._advance(position, total, len(group.files))
                continue

            summary.models_found += 1
            summary.model_files_found += len(group.files)
            if created:
                summary.models_added += 1
            else:
                summary.models_updated += 1
            if not self._repository.has_image(model_id):
                needs_preview.append((model_id, group.folder))
            with self._progress_lock:
                self._progress.models_found = summary.models_found
                self._progress.models_updated = summary.models_updated
                self._progress.model_files_found = summary.model_files_found
            self._advance(position, total, len(group.files))
        summary.assets_found = self.progress().assets_found
        return needs_preview

    def _index_group(
        self, group: FolderGroup, root: Path, existing: Optional[ModelRecord]
    ) -> tuple[int, bool]:
        """Upsert one folder group and reconcile its files and assets."""
        fields = self._fields_for(group, root, existing)
        entries = [self._file_entry(path) for path in group.files]
        assets = self._assets_for(group.folder)

        with self._repository.transaction():
            if existing is None:
                model_id = self._repository.insert_model(fields)
            else:
                model_id = existing.id
                self._repository.update_model(model_id, fields)
            self._repository.reconcile_model_files(
                model_id, [entry for entry in entries if entry is not None]
            )
            self._repository.reconcile_assets(model_id, assets)
            self._repository.ensure_primary_image(model_id)

        with self._progress_lock:
            self._progress.assets_found += len(assets)
        return model_id, existing is None

    def _remove_missing(self, live_paths: set[str], mode: ScanMode) -> int:
        removed = 0
        for model in self._repository.list_models(include_deleted=mode is ScanMode.FULL):
            if model.filepath in live_paths:
                continue
            if mode is ScanMode.FULL:
                self._repository.delete_model(model.id)
            else:
                self._repository.soft_delete_model(model.id)
            LOGGER.info("Removed model %s", model.filepath)
            removed += 1
        return removed

    def _extract_phase(self, needs_preview: list[tuple[int, Path]]) -> int:
        self._update(
            current_step=ScanStep.EXTRACTING,
            models_to_extract=len(needs_preview),
            models_extracted=0,
            overall_progress=65,
        )
        extracted = 0
        for position, (model_id, folder) in enumerate(needs_preview, start=1):
            if self._extract_preview(model_id, folder):
                extracted += 1
            self._update(
                models_extracted=position,
                step_description=f"Extracting images ({position} of {len(needs_preview)})...",
                overall_progress=65 + round(position / len(needs_preview) * 10),
            )
        return extracted

    def _extract_preview(self, model_id: int, folder: Path) -> bool:
        written = self._extractor.extract_preview(folder)
        if written is None:
            return False
        with self._repository.transaction():
            self._repository.add_asset(model_id, str(written), "image")
            self._repository.ensure_primary_image(model_id)
        with self._progress_lock:
            self._progress.assets_found += 1
        return True

    def _metadata_phase(self) -> int:
        pending = self._repository.models_needing_metadata()
        self._update(
            current_step=ScanStep.METADATA,
            models_to_extract=len(pending),
            models_extracted=0,
            overall_progress=75,
        )
        enriched = 0
        for position, (model_id, pdf_path) in enumerate(pending, start=1):
            try:
                metadata = self._pdf_reader.read(Path(pdf_path))
            except (OSError, ValueError, subprocess.SubprocessError) as exc:
                LOGGER.warning("Unable to read metadata from %s: %s", pdf_path, exc)
                self._repository.save_metadata(model_id, {})
            else:
                with self._repository.transaction():
                    self._repository.save_metadata(model_id, metadata.as_row())
                    for tag in metadata.tags:
                        self._repository.add_model_tag(model_id, tag)
                if metadata.source_platform or metadata.designer or metadata.tags:
                    enriched += 1
            self._update(
                models_extracted=position,
                step_description=f"Extracting metadata ({position} of {len(pending)})...",
                overall_progress=75 + round(position / len(pending) * 10),
            )
        return enriched

    def _tagging_phase(self, groups: list[FolderGroup]) -> int:
        self._update(
            current_step=ScanStep.TAGGING,
            step_description="Importing Finder tags...",
            overall_progress=85,
        )
        imported = 0
        for group in groups:
            tags = self._tag_reader.get_tags(group.folder)
            if not tags:
                continue
            model = self._repository.get_model_by_path(str(group.folder))
            if model is None:
                continue
            state = parse_model_state(tags)
            if state.is_printed and not self._repository.has_printed(model.id):
                self._repository.add_printed(model.id, state.rating, FINDER_TAG_NOTE)
                imported += 1
            if state.is_queued and self._repository.enqueue(model.id, notes=FINDER_TAG_NOTE):
                imported += 1
        return imported

    def _dedupe_phase(self) -> int:
        candidates = self._repository.models_with_multiple_visible_images()
        self._update(
            current_step=ScanStep.DEDUPLICATING,
            step_description="Deduplicating images...",
            overall_progress=90,
        )
        hidden = 0
        for model_id in candidates:
            images = self._repository.list_assets(
                model_id, asset_type="image", include_hidden=False
            )
            duplicates = select_duplicates(images)
            if not duplicates:
                continue
            with self._repository.transaction():
                for asset_id in duplicates:
                    self._repository.set_asset_hidden(asset_id, True)
                self._repository.ensure_primary_image(model_id)
            hidden += len(duplicates)
        if hidden:
            LOGGER.info("Hid %d duplicate images across %d models", hidden, len(candidates))
        return hidden

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _validate_root(self, root: Path) -> Path:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ScanConfigurationError(f"Directory does not exist: {resolved}")
        if not resolved.is_dir():
            raise ScanConfigurationError(f"Path is not a directory: {resolved}")
        return resolved

    def _fields_for(
        self, group: FolderGroup, root: Path, existing: Optional[ModelRecord] = None
    ) -> ModelFields:
        parts = group.folder.relative_to(root).parts
        # A model keeps the designer it is linked to, even after that designer is renamed.
        designer_id = existing.designer_id if existing is not None else None
        if designer_id is None:
            designer = designer_for(group.folder, root, self._settings)
            designer_id = self._repository.get_or_create_designer(designer) if designer else None
        return ModelFields(
            filename=cleanup_folder_name(group.folder.name),
            filepath=str(group.folder),
            category=derive_category(group.folder, root, self._settings),
            is_paid=self._settings.paid_folder in parts,
            is_original=self._settings.original_folder in parts,
            file_count=len(group.files),
            date_added=group.date_added.isoformat() if group.date_added else None,
            date_created=group.date_created.isoformat() if group.date_created else None,
            designer_id=designer_id,
        )

    def _file_entry(self, path: Path) -> Optional[FileEntry]:
        try:
            size = path.stat().st_size
        except OSError as exc:
            LOGGER.warning("Unable to stat %s: %s", path, exc)
            return None
        return FileEntry(
            filename=path.name, filepath=str(path), file_size=size, file_type=file_type_of(path)
        )

    def _assets_for(self, folder: Path) -> list[tuple[str, AssetType]]:
        assets: list[tuple[str, AssetType]] = []
        for path in self._discovery.iter_files(folder):
            kind = classify_path(path)
            if kind is FileKind.IMAGE:
                assets.append((str(path), "image"))
            elif kind is FileKind.DOCUMENT:
                assets.append((str(path), "pdf"))
        return assets

    def _update(self, **changes: object) -> None:
        with self._progress_lock:
            for key, value in changes.items():
                setattr(self._progress, key, value)

    def _advance(self, position: int, total: int, files: int) -> None:
        with self._progress_lock:
            self._progress.indexed_folders = position
            self._progress.processed_files += files
            self._progress.overall_progress = 1 + round(position / total * 59)
            self._progress.step_description = f"Indexing model folders ({position} of {total})..."


__all__ = ["CatalogScanner", "FINDER_TAG_NOTE"]
