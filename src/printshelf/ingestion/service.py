"""Scan, categorize, and import staged downloads into the model library."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

from printshelf.catalog.repository import CatalogRepository
from printshelf.catalog.settings import SettingsStore
from printshelf.classification.engine import FuzzyCategorizer
from printshelf.classification.models import CategorizationProgress
from printshelf.classification.service import CategorizationService
from printshelf.config.models import IngestionOptions
from printshelf.organization.errors import OrganizationError
from printshelf.organization.executor import OperationExecutor
from printshelf.organization.planner import OrganizerPlanner
from printshelf.scanning.errors import ScanError
from printshelf.scanning.scanner import CatalogScanner

from .discovery import IngestionDiscovery
from .errors import IngestionConfigurationError
from .models import (
    ImportItem,
    ImportResult,
    ImportSummary,
    IngestionItem,
    IngestionScanResult,
)

LOGGER = logging.getLogger(__name__)


class IngestionService:
    """Coordinate the staging directory workflow.

    ``scan`` is free and uses only fuzzy matching; ``categorize`` spends LLM
    calls; ``import_items`` moves accepted items into the library, indexes them,
    and teaches the fuzzy tier which category each name went to.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        options: IngestionOptions,
        repository: CatalogRepository,
        discovery: IngestionDiscovery,
        fuzzy: FuzzyCategorizer,
        categorization: CategorizationService,
        scanner: CatalogScanner,
        planner: Optional[OrganizerPlanner] = None,
        executor: Optional[OperationExecutor] = None,
    ) -> None:
        self._settings = settings_store
        self._options = options
        self._repository = repository
        self._discovery = discovery
        self._fuzzy = fuzzy
        self._categorization = categorization
        self._scanner = scanner
        self._planner = planner or OrganizerPlanner()
        self._executor = executor or OperationExecutor()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def directory(self) -> Path:
        """Return the staging directory.

        Raises:
            IngestionConfigurationError: If none is configured or it does not exist.
        """
        configured = self._settings.ingestion_directory or self._options.default_directory
        if not configured:
            raise IngestionConfigurationError(
                "Ingestion directory not configured. Set it with "
                "`printshelf settings set ingestion_directory <path>`."
            )
        directory = Path(configured).expanduser()
        if not directory.is_dir():
            raise IngestionConfigurationError(f"Ingestion directory does not exist: {directory}")
        return directory

    def scan(self) -> IngestionScanResult:
        """List staged items with fuzzy category suggestions."""
        directory = self.directory()
        items = self._discovery.scan(directory)
        categories = self._repository.categories()
        for item in items:
            item.apply(self._fuzzy.suggest(item.to_request(), categories))
        LOGGER.info("Found %d staged items in %s", len(items), directory)
        return IngestionScanResult(directory=str(directory), items=items)

    def categorize(
        self,
        on_progress: Optional[Callable[[CategorizationProgress], None]] = None,
    ) -> IngestionScanResult:
        """List staged items with LLM suggestions, falling back to fuzzy matching.

        Raises:
            IngestionConfigurationError: If the staging directory is unusable.
            MissingAPIKeyError: If no API key is configured.
            CategorizationInProgressError: If another run is active.
        """
        directory = self.directory()
        items = self._discovery.scan(directory)
        if not items:
            return IngestionScanResult(directory=str(directory))

        results = self._categorization.run(
            [item.to_request() for item in items],
            self._repository.categories(),
            self._repository.category_descriptions(),
            on_progress,
        )
        for item in items:
            suggestion = results.get(item.filepath)
            if suggestion is not None:
                item.apply(suggestion)
        used_llm = any(result.source == "llm" for result in results.values())
        return IngestionScanResult(directory=str(directory), items=items, used_llm=used_llm)

    def import_items(self, items: Iterable[ImportItem]) -> ImportSummary:
        """Move each item into ``<model_directory>/<category>/`` and index it.

        Items fail individually; one failure never stops the rest.

        Raises:
            IngestionConfigurationError: If no model directory is configured.
        """
        model_directory = self._settings.model_directory
        if not model_directory:
            raise IngestionConfigurationError("Model directory not configured")
        library_root = Path(model_directory).expanduser()

        summary = ImportSummary()
        for item in items:
            summary.results.append(self._import_one(item, library_root))
        LOGGER.info("Imported %d items, %d failed", summary.succeeded, summary.failed)
        return summary

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _import_one(self, item: ImportItem, library_root: Path) -> ImportResult:
        source = Path(item.filepath) if item.filepath else None
        filename = source.name if source else ""
        if source is None or not item.category.strip():
            return ImportResult(
                filepath=item.filepath,
                filename=filename,
                success=False,
                error="Missing filepath or category",
            )
        if not source.exists():
            return ImportResult(
                filepath=item.filepath,
                filename=filename,
                success=False,
                error="Source file not found",
            )

        category = item.category.strip()
        is_folder = source.is_dir() if item.is_folder is None else item.is_folder
        try:
            plan = self._planner.plan_import(source, category, library_root, is_folder=is_folder)
            self._executor.apply(plan)
        except (OrganizationError, OSError) as exc:
            LOGGER.warning("Import of %s failed: %s", filename, exc)
            return ImportResult(
                filepath=item.filepath, filename=filename, success=False, error=str(exc)
            )

        target = plan.require_target()
        model_id: Optional[int] = None
        try:
            model_id = self._scanner.index_folder(target, library_root)
        except ScanError as exc:
            LOGGER.warning("Imported %s but indexing failed: %s", filename, exc)

        name = filename if is_folder else Path(filename).stem
        self._repository.record_hints(self._fuzzy.tokens(name), category)
        return ImportResult(
            filepath=item.filepath,
            filename=filename,
            success=True,
            model_id=model_id,
            target=str(target),
        )


__all__ = ["IngestionService"]
