"""Traversal phase: find model folders and loose files under a library root."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from printshelf.config.models import ScanningOptions

from .detectors import is_catalog_file
from .models import DiscoveryResult, FolderGroup, LooseFile

LOGGER = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


def _creation_time(stat: os.stat_result) -> float:
    return getattr(stat, "st_birthtime", stat.st_ctime)


def _as_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def derive_category(path: Path, root: Path, settings: ScanningOptions) -> str:
    """Return the category for a folder or file relative to ``root``.

    Root-level files are uncategorized. The paid and original-creations folders
    take precedence over the top-level folder name wherever they appear.
    """
    parts = path.relative_to(root).parts
    if len(parts) <= 1:
        return UNCATEGORIZED
    if settings.paid_folder in parts:
        return settings.paid_folder
    if settings.original_folder in parts:
        return settings.original_folder
    return parts[0]


def designer_for(path: Path, root: Path, settings: ScanningOptions) -> Optional[str]:
    """Return the designer folder name for ``.../<paid>/<Designer>/...`` paths."""
    parts = path.relative_to(root).parts
    if settings.paid_folder not in parts:
        return None
    index = parts.index(settings.paid_folder)
    if len(parts) > index + 2:
        return parts[index + 1]
    return None


class FolderDiscovery:
    """Walk a library tree and group catalog files by model folder.

    Container folders (the root, top-level categories, ``~`` folders, and
    designer folders directly under the paid folder) are never models. Any
    other folder that directly holds a model or archive file, or sits exactly
    two levels below the paid folder, becomes a model folder and claims its
    entire subtree.
    """

    def __init__(self, settings: ScanningOptions) -> None:
        self._settings = settings

    def discover(self, root: Path) -> DiscoveryResult:
        """Return every model folder group and loose file under ``root``."""
        result = DiscoveryResult()
        self._walk(root, root, result)
        LOGGER.debug(
            "Discovered %d model folders and %d loose files under %s",
            len(result.groups),
            len(result.loose_files),
            root,
        )
        return result

    def describe_folder(self, folder: Path) -> FolderGroup:
        """Collect a single folder's catalog files and dates regardless of its position."""
        group = FolderGroup(folder=folder)
        self._track_dates(group, folder)
        for path in self.iter_files(folder):
            if is_catalog_file(path):
                group.files.append(path)
                self._track_dates(group, path)
        group.files.sort()
        return group

    def is_ignored(self, name: str) -> bool:
        return name in self._settings.ignored_directories or any(
            name.startswith(prefix) for prefix in self._settings.ignored_prefixes
        )

    def is_container(self, folder: Path, root: Path) -> bool:
        if folder == root:
            return True
        parts = folder.relative_to(root).parts
        if len(parts) == 1:
            return True
        if folder.name.startswith(self._settings.container_prefix):
            return True
        return self._depth_after_paid(parts) == 2

    def is_model_folder(self, folder: Path, root: Path) -> bool:
        if self.is_container(folder, root):
            return False
        if self._depth_after_paid(folder.relative_to(root).parts) == 3:
            return True
        return any(
            is_catalog_file(entry) and not entry.name.startswith(".")
            for entry in self._list_dir(folder)
            if entry.is_file()
        )

    def iter_files(self, folder: Path) -> Iterator[Path]:
        """Yield visible files below ``folder``, skipping ignored directories."""
        for entry in sorted(self._list_dir(folder)):
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                if not self.is_ignored(entry.name):
                    yield from self.iter_files(entry)
            elif entry.is_file():
                yield entry

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _walk(self, folder: Path, root: Path, result: DiscoveryResult) -> None:
        if folder != root and self.is_ignored(folder.name):
            return
        if self.is_model_folder(folder, root):
            group = self.describe_folder(folder)
            if group.files:
                result.groups.append(group)
            return

        for entry in sorted(self._list_dir(folder)):
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                self._walk(entry, root, result)
            elif entry.is_file() and is_catalog_file(entry):
                try:
                    size = entry.stat().st_size
                except OSError as exc:
                    LOGGER.warning("Unable to stat %s: %s", entry, exc)
                    continue
                result.loose_files.append(LooseFile(path=entry, size=size))

    def _list_dir(self, folder: Path) -> list[Path]:
        try:
            return list(folder.iterdir())
        except OSError as exc:
            LOGGER.warning("Unable to read directory %s: %s", folder, exc)
            return []

    def _track_dates(self, group: FolderGroup, path: Path) -> None:
        try:
            stat = path.stat()
        except OSError as exc:
            LOGGER.warning("Unable to stat %s: %s", path, exc)
            return
        modified = _as_datetime(stat.st_mtime)
        created = _as_datetime(_creation_time(stat))
        if group.date_added is None or modified < group.date_added:
            group.date_added = modified
        if group.date_created is None or created < group.date_created:
            group.date_created = created

    def _depth_after_paid(self, parts: tuple[str, ...]) -> int:
        if self._settings.paid_folder not in parts:
            return 0
        return len(parts) - parts.index(self._settings.paid_folder)


__all__ = ["FolderDiscovery", "derive_category", "designer_for", "UNCATEGORIZED"]
