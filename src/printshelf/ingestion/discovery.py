"""Discovery of staged downloads awaiting import."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

from printshelf.config.models import IngestionOptions
from printshelf.metadata.pdf import PdfMetadataReader
from printshelf.scanning.detectors import is_catalog_file, is_document_file
from printshelf.scanning.discovery import FolderDiscovery

from .models import IngestionItem

LOGGER = logging.getLogger(__name__)

SKIPPED_PREFIXES = (".", "!")
README_SUFFIXES = frozenset({"", ".txt", ".md"})


def _is_readme(path: Path) -> bool:
    return path.stem.lower() == "readme" and path.suffix.lower() in README_SUFFIXES


class IngestionDiscovery:
    """List the top-level entries of a staging directory that hold models.

    Folders are kept when any file below them is a model or archive; loose files
    are kept when they are one themselves. Entries whose names start with ``.``
    or ``!`` are ignored.
    """

    def __init__(
        self,
        options: IngestionOptions,
        folders: FolderDiscovery,
        pdf_reader: Optional[PdfMetadataReader] = None,
    ) -> None:
        self._options = options
        self._folders = folders
        self._pdf_reader = pdf_reader

    def scan(self, directory: Path) -> list[IngestionItem]:
        """Return staged items under ``directory``, folders first, then by name."""
        items: list[IngestionItem] = []
        try:
            entries = list(directory.iterdir())
        except OSError as exc:
            LOGGER.warning("Unable to read staging directory %s: %s", directory, exc)
            return items

        for entry in entries:
            if entry.name.startswith(SKIPPED_PREFIXES):
                continue
            if entry.is_dir():
                item = self._describe_folder(entry)
            elif entry.is_file() and is_catalog_file(entry):
                item = self._describe_file(entry)
            else:
                item = None
            if item is not None:
                items.append(item)

        items.sort(key=lambda item: (not item.is_folder, item.filename.lower()))
        return items

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _describe_folder(self, folder: Path) -> Optional[IngestionItem]:
        model_files: list[str] = []
        file_count = 0
        file_size = 0
        readme: Optional[Path] = None
        pdf: Optional[Path] = None

        for path in self._folders.iter_files(folder):
            if is_catalog_file(path):
                file_count += 1
                file_size += _size_of(path)
                if len(model_files) < self._options.max_listed_model_files:
                    model_files.append(path.name)
            elif readme is None and _is_readme(path):
                readme = path
            elif pdf is None and is_document_file(path):
                pdf = path

        if file_count == 0:
            return None

        item = IngestionItem(
            filename=folder.name,
            filepath=str(folder),
            is_folder=True,
            file_count=file_count,
            file_size=file_size,
            model_files=model_files,
            readme_excerpt=self._read_excerpt(readme) if readme else None,
        )
        if pdf is not None:
            self._attach_pdf(item, pdf)
        return item

    def _describe_file(self, path: Path) -> IngestionItem:
        return IngestionItem(
            filename=path.name,
            filepath=str(path),
            is_folder=False,
            file_count=1,
            file_size=_size_of(path),
            model_files=[path.name],
        )

    def _read_excerpt(self, path: Path) -> Optional[str]:
        try:
            with path.open("r", encoding="utf-8", errors="replace") as handle:
                text = handle.read(self._options.readme_char_limit)
        except OSError as exc:
            LOGGER.debug("Unable to read %s: %s", path, exc)
            return None
        return text.strip() or None

    def _attach_pdf(self, item: IngestionItem, pdf: Path) -> None:
        if self._pdf_reader is None:
            return
        try:
            metadata = self._pdf_reader.read(pdf)
            text = self._pdf_reader.read_text(pdf)
        except (OSError, subprocess.SubprocessError, ValueError) as exc:
            LOGGER.warning("PDF extraction failed for %s: %s", item.filename, exc)
            return
        item.pdf_tags = list(metadata.tags)
        item.pdf_designer = metadata.designer
        if text:
            item.pdf_text = text[: self._options.readme_char_limit]


def _size_of(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


__all__ = ["IngestionDiscovery", "SKIPPED_PREFIXES"]
