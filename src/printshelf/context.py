"""Application wiring: builds every service from one resolved configuration."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from printshelf.catalog.library import LibraryService
from printshelf.catalog.repository import CatalogRepository
from printshelf.catalog.settings import SettingsStore
from printshelf.classification.engine import FuzzyCategorizer
from printshelf.classification.llm import Completion
from printshelf.classification.service import CategorizationService
from printshelf.config.models import PrintshelfConfig
from printshelf.ingestion.discovery import IngestionDiscovery
from printshelf.ingestion.service import IngestionService
from printshelf.metadata.pdf import PdfMetadataReader
from printshelf.metadata.tags import FinderTagStore, NullTagStore, TagReader
from printshelf.scanning.discovery import FolderDiscovery
from printshelf.scanning.scanner import CatalogScanner
from printshelf.watch.service import WatcherService


@dataclass
class AppContext:
    """Services sharing one catalog connection."""

    config: PrintshelfConfig
    repository: CatalogRepository
    settings: SettingsStore
    scanner: CatalogScanner
    watcher: WatcherService
    fuzzy: FuzzyCategorizer
    categorization: CategorizationService
    ingestion: IngestionService
    library: LibraryService

    @classmethod
    def build(
        cls,
        config: PrintshelfConfig,
        *,
        database: Optional[Path | str] = None,
        tag_store: Optional[TagReader] = None,
        completion: Optional[Completion] = None,
    ) -> "AppContext":
        """Create the services described by ``config``.

        Args:
            config: Resolved application configuration.
            database: Overrides ``config.database.path``.
            tag_store: Finder tag backend; chosen from the platform when omitted.
            completion: Replaces the language-model call, mainly for tests.
        """
        repository = CatalogRepository(database or config.database.path)
        settings = SettingsStore(repository)
        if tag_store is None:
            use_finder = config.scanning.read_finder_tags and sys.platform == "darwin"
            tag_store = FinderTagStore() if use_finder else NullTagStore()
        pdf_reader = PdfMetadataReader()

        scanner = CatalogScanner(
            repository, config.scanning, tag_reader=tag_store, pdf_reader=pdf_reader
        )
        watcher = WatcherService(settings, scanner, config.watch)
        fuzzy = FuzzyCategorizer(config.categorization, hint_lookup=repository.hint_counts)
        categorization = CategorizationService(
            fuzzy, settings, config.llm, completion=completion
        )
        ingestion = IngestionService(
            settings,
            config.ingestion,
            repository,
            IngestionDiscovery(
                config.ingestion, FolderDiscovery(config.scanning), pdf_reader=pdf_reader
            ),
            fuzzy,
            categorization,
            scanner,
        )
        library = LibraryService(
            repository, scanner, settings, config.scanning, tag_store=tag_store
        )
        return cls(
            config=config,
            repository=repository,
            settings=settings,
            scanner=scanner,
            watcher=watcher,
            fuzzy=fuzzy,
            categorization=categorization,
            ingestion=ingestion,
            library=library,
        )

    def close(self) -> None:
        self.watcher.stop()
        self.repository.close()


__all__ = ["AppContext"]
