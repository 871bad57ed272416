"""Synchronous library operations: annotations, assets, and loose files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from printshelf.config.exceptions import ConfigError
from printshelf.config.models import ScanningOptions
from printshelf.metadata.tags import (
    PRINTED_BAD,
    PRINTED_GOOD,
    QUEUED,
    ModelTagState,
    NullTagStore,
    TagReader,
    tags_for_state,
)
from printshelf.organization.executor import OperationExecutor
from printshelf.organization.planner import OrganizerPlanner
from printshelf.scanning.discovery import designer_for
from printshelf.scanning.scanner import CatalogScanner

from .errors import InvariantViolationError, RecordNotFoundError
from .models import (
    AssetRecord,
    CatalogStats,
    DesignerDetail,
    DesignerRecord,
    DesignerSummary,
    DesignerSyncResult,
    LooseFileRecord,
    PrintRating,
)
from .repository import CatalogRepository
from .settings import SettingsStore

LOGGER = logging.getLogger(__name__)

_STATE_TAGS = frozenset({PRINTED_GOOD, PRINTED_BAD, QUEUED})


class LibraryService:
    """User-facing operations on catalogued models.

    Printed and queued state is mirrored to Finder color tags when tag syncing
    is enabled, leaving any unrelated tags on the folder untouched.
    """

    def __init__(
        self,
        repository: CatalogRepository,
        scanner: CatalogScanner,
        settings_store: SettingsStore,
        settings: ScanningOptions,
        *,
        tag_store: Optional[TagReader] = None,
        planner: Optional[OrganizerPlanner] = None,
        executor: Optional[OperationExecutor] = None,
    ) -> None:
        self._repository = repository
        self._scanner = scanner
        self._settings = settings
        self._settings_store = settings_store
        self._tags = tag_store or NullTagStore()
        self._planner = planner or OrganizerPlanner()
        self._executor = executor or OperationExecutor()

    # ------------------------------------------------------------------ #
    # Annotations                                                        #
    # ------------------------------------------------------------------ #

    def add_favorite(self, model_id: int, notes: Optional[str] = None) -> bool:
        self._repository.require_model(model_id)
        return self._repository.add_favorite(model_id, notes)

    def remove_favorite(self, model_id: int) -> bool:
        return self._repository.remove_favorite(model_id)

    def enqueue(self, model_id: int, *, priority: int = 0, notes: Optional[str] = None) -> bool:
        self._repository.require_model(model_id)
        added = self._repository.enqueue(model_id, priority=priority, notes=notes)
        self._sync_tags(model_id)
        return added

    def dequeue(self, model_id: int) -> bool:
        removed = self._repository.dequeue(model_id)
        if removed:
            self._sync_tags(model_id)
        return removed

    def mark_printed(
        self,
        model_id: int,
        rating: Optional[PrintRating] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Record a print of ``model_id`` and take it off the print queue.

        Returns:
            int: Id of the new print record.

        Raises:
            RecordNotFoundError: If the model does not exist.
        """
        self._repository.require_model(model_id)
        with self._repository.transaction():
            record_id = self._repository.add_printed(model_id, rating, notes)
            self._repository.dequeue(model_id)
        self._sync_tags(model_id)
        return record_id

    def unmark_printed(self, model_id: int) -> bool:
        removed = self._repository.remove_printed(model_id)
        if removed:
            self._sync_tags(model_id)
        return removed

    def tag_model(self, model_id: int, tag: str) -> None:
        self._repository.require_model(model_id)
        cleaned = tag.strip()
        if not cleaned:
            raise ValueError("Tag must not be empty")
        self._repository.add_model_tag(model_id, cleaned)

    def untag_model(self, model_id: int, tag: str) -> None:
        self._repository.remove_model_tag(model_id, tag.strip())

    # ------------------------------------------------------------------ #
    # Assets                                                             #
    # ------------------------------------------------------------------ #

    def set_primary_asset(self, model_id: int, asset_id: int) -> None:
        """Make ``asset_id`` the model's primary image, unhiding it if needed.

        Raises:
            RecordNotFoundError: If the asset does not belong to the model.
            InvariantViolationError: If the asset is not an image.
        """
        asset = self._require_asset(model_id, asset_id)
        if asset.asset_type != "image":
            raise InvariantViolationError("Only images can be the primary asset")
        self._repository.set_primary_asset(model_id, asset_id)

    def hide_asset(self, model_id: int, asset_id: int) -> None:
        """Hide an asset, handing the primary role to another visible image first.

        Raises:
            RecordNotFoundError: If the asset does not belong to the model.
            InvariantViolationError: If the asset is the only visible image and primary.
        """
        asset = self._require_asset(model_id, asset_id)
        if asset.is_hidden:
            return
        if asset.asset_type == "image" and asset.is_primary:
            others = [
                image
                for image in self._repository.list_assets(
                    model_id, asset_type="image", include_hidden=False
                )
                if image.id != asset_id
            ]
            if not others:
                raise InvariantViolationError("Cannot hide the only visible primary image")
            with self._repository.transaction():
                self._repository.set_primary_asset(model_id, others[0].id)
                self._repository.set_asset_hidden(asset_id, True)
            return
        self._repository.set_asset_hidden(asset_id, True)

    def unhide_asset(self, model_id: int, asset_id: int) -> None:
        self._require_asset(model_id, asset_id)
        with self._repository.transaction():
            self._repository.set_asset_hidden(asset_id, False)
            self._repository.ensure_primary_image(model_id)

    # ------------------------------------------------------------------ #
    # Loose files                                                        #
    # ------------------------------------------------------------------ #

    def organize_loose_files(
        self,
        loose_ids: Iterable[int],
        folder_name: str,
        category: str,
    ) -> Optional[int]:
        """Gather loose files into ``<root>/<category>/<folder_name>`` and index it.

        Returns:
            Optional[int]: Id of the new model.

        Raises:
            RecordNotFoundError: If a loose file id is unknown.
            ConfigError: If no model directory is configured.
            ImportConflictError: If the target folder already exists.
            OrganizationError: If the selection or names are invalid.
        """
        root = self._require_root()
        records = [self._require_loose(loose_id) for loose_id in loose_ids]
        plan = self._planner.plan_grouping(
            [Path(record.filepath) for record in records],
            folder_name.strip(),
            category.strip(),
            root,
        )
        self._executor.apply(plan)
        self._repository.delete_loose_files(record.id for record in records)
        target = plan.require_target()
        model_id = self._scanner.index_folder(target, root)
        LOGGER.info("Organized %d loose files into %s", len(records), target)
        return model_id

    def trash_loose_file(self, loose_id: int) -> Path:
        """Move a loose file into the trash directory and forget it.

        Returns:
            Path: Where the file now lives.
        """
        record = self._require_loose(loose_id)
        trash_dir = Path(self._settings.trash_directory).expanduser()
        plan = self._planner.plan_trash(Path(record.filepath), trash_dir)
        for note in plan.notes:
            LOGGER.info(note)
        destination = self._executor.apply(plan)[0]
        self._repository.delete_loose_files([record.id])
        return destination

    # ------------------------------------------------------------------ #
    # Designers                                                          #
    # ------------------------------------------------------------------ #

    def list_designers(self) -> list[DesignerSummary]:
        return self._repository.list_designers()

    def designer(self, designer_id: int) -> DesignerDetail:
        designer = self._repository.require_designer(designer_id)
        return DesignerDetail(
            designer=designer, models=self._repository.list_designer_models(designer_id)
        )

    def create_designer(self, name: str, profile_url: Optional[str] = None) -> DesignerRecord:
        """Create a designer, or return the existing one with the same name."""
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Designer name must not be empty")
        existing = self._repository.find_designer(cleaned)
        if existing is not None:
            return existing
        designer_id = self._repository.get_or_create_designer(cleaned, profile_url or None)
        return self._repository.require_designer(designer_id)

    def update_designer(
        self,
        designer_id: int,
        *,
        name: Optional[str] = None,
        profile_url: Optional[str] = None,
    ) -> DesignerRecord:
        """Rename a designer and/or set its profile URL (an empty URL clears it).

        Raises:
            RecordNotFoundError: If the designer does not exist.
            InvariantViolationError: If another designer already has ``name``.
        """
        self._repository.require_designer(designer_id)
        cleaned = name.strip() if name is not None else None
        if cleaned is not None:
            if not cleaned:
                raise ValueError("Designer name must not be empty")
            clash = self._repository.find_designer(cleaned)
            if clash is not None and clash.id != designer_id:
                raise InvariantViolationError(f"Designer already exists: {clash.name}")
        self._repository.update_designer(
            designer_id,
            name=cleaned,
            profile_url=profile_url.strip() if profile_url is not None else None,
        )
        return self._repository.require_designer(designer_id)

    def delete_designer(self, designer_id: int) -> int:
        """Delete a designer; its models stay catalogued but lose the link.

        Returns:
            int: Number of models unlinked.
        """
        designer = self._repository.require_designer(designer_id)
        unlinked = self._repository.delete_designer(designer_id)
        LOGGER.info("Deleted designer %s (%d models unlinked)", designer.name, unlinked)
        return unlinked

    def sync_designers(self) -> DesignerSyncResult:
        """Link models to designers from folder layout and PDF metadata.

        Unlinked paid models are linked to the designer folder they sit under;
        existing links are kept so renamed designers stay attached. A designer
        without a profile URL takes the first one found in its models' PDF
        metadata. Remaining unlinked models whose PDF names a designer are
        linked to that designer.

        Raises:
            ConfigError: If no model directory is configured.
        """
        root = self._require_root()
        result = DesignerSyncResult()
        for model in self._repository.list_models():
            if not model.is_paid:
                continue
            metadata = self._repository.get_metadata(model.id)
            url = metadata.designer_url if metadata is not None else None
            if model.designer_id is not None:
                designer = self._repository.get_designer(model.designer_id)
                if designer is not None:
                    self._fill_profile(designer, url, result)
                continue
            name = self._designer_folder(model.filepath, root)
            if name is None:
                continue
            designer_id = self._sync_designer(name, url, result)
            self._repository.link_model_designer(model.id, designer_id)
            result.linked += 1

        for model_id, name, url in self._repository.unlinked_metadata_designers():
            if not name.strip():
                continue
            designer_id = self._sync_designer(name.strip(), url, result)
            self._repository.link_model_designer(model_id, designer_id)
            result.linked += 1

        LOGGER.info(
            "Designer sync: %d created, %d linked, %d profiles filled",
            result.created,
            result.linked,
            result.profiles_filled,
        )
        return result

    # ------------------------------------------------------------------ #
    # Queries                                                            #
    # ------------------------------------------------------------------ #

    def stats(self) -> CatalogStats:
        return self._repository.stats()

    def categories(self) -> list[str]:
        return self._repository.categories()

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _require_asset(self, model_id: int, asset_id: int) -> AssetRecord:
        asset = self._repository.get_asset(asset_id)
        if asset is None or asset.model_id != model_id:
            raise RecordNotFoundError(f"Asset {asset_id} not found for model {model_id}")
        return asset

    def _require_loose(self, loose_id: int) -> LooseFileRecord:
        record = self._repository.get_loose_file(loose_id)
        if record is None:
            raise RecordNotFoundError(f"Loose file not found: {loose_id}")
        return record

    def _require_root(self) -> Path:
        directory = self._settings_store.model_directory
        if not directory:
            raise ConfigError("Model directory not configured")
        return Path(directory).expanduser()

    def _designer_folder(self, filepath: str, root: Path) -> Optional[str]:
        for base in (root, root.resolve()):
            try:
                return designer_for(Path(filepath), base, self._settings)
            except ValueError:
                continue
        return None

    def _sync_designer(
        self, name: str, profile_url: Optional[str], result: DesignerSyncResult
    ) -> int:
        designer = self._repository.find_designer(name)
        if designer is None:
            result.created += 1
            return self._repository.get_or_create_designer(name, profile_url or None)
        self._fill_profile(designer, profile_url, result)
        return designer.id

    def _fill_profile(
        self, designer: DesignerRecord, profile_url: Optional[str], result: DesignerSyncResult
    ) -> None:
        if profile_url and not designer.profile_url:
            self._repository.update_designer(designer.id, profile_url=profile_url)
            result.profiles_filled += 1

    def _sync_tags(self, model_id: int) -> None:
        if not self._settings.read_finder_tags:
            return
        model = self._repository.get_model(model_id)
        if model is None:
            return
        folder = Path(model.filepath)
        state = ModelTagState(
            is_printed=self._repository.has_printed(model_id),
            rating=self._repository.latest_rating(model_id),
            is_queued=self._repository.is_queued(model_id),
        )
        kept = [tag for tag in self._tags.get_tags(folder) if tag not in _STATE_TAGS]
        self._tags.set_tags(folder, kept + tags_for_state(state))


__all__ = ["LibraryService"]
