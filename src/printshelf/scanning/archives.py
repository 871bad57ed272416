"""Preview extraction from 3MF project files and photo archives."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

LOGGER = logging.getLogger(__name__)

ENTRY_IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".webp", ".gif"})
PHOTO_ARCHIVE_KEYWORDS = ("photo", "image", "picture", "pic", "img", "thumbnail", "preview")
EXTRACTED_PREFIX = "_extracted_"


class ArchiveKind(str, Enum):
    """Archive families that can carry preview images."""

    THREE_MF = "3mf"
    PHOTO_ZIP = "photozip"


@dataclass(frozen=True)
class ArchiveCandidate:
    """An archive inside a model folder that may hold a preview."""

    path: Path
    kind: ArchiveKind
    mtime: float


@dataclass(frozen=True)
class ArchiveEntry:
    """An image entry inside an archive together with its preference score."""

    name: str
    score: int


def score_entry(name: str, kind: ArchiveKind) -> int:
    """Return how strongly an archive entry is preferred as a preview.

    Args:
        name: Entry name as stored in the archive.
        kind: Archive family the entry belongs to.

    Returns:
        int: Higher is better.
    """
    lowered = name.lower()
    base = PurePosixPath(lowered.replace("\\", "/")).name
    if kind is ArchiveKind.THREE_MF:
        if "auxiliaries/" in lowered or "auxiliaries\\" in lowered:
            return 110
        if "plate_1" in base:
            return 100
        if "plate" in base:
            return 90
        if "metadata" in lowered:
            return 80
        if "thumbnail" in base:
            return 70
        if "preview" in base:
            return 60
        return 10
    if "main" in base or "cover" in base:
        return 100
    if "thumb" in base or "preview" in base:
        return 90
    return 50


def iter_archive_images(handle: zipfile.ZipFile, kind: ArchiveKind) -> Iterator[ArchiveEntry]:
    """Lazily yield scored image entries from an open archive in archive order."""
    for info in handle.infolist():
        if info.is_dir():
            continue
        if PurePosixPath(info.filename).suffix.lower() not in ENTRY_IMAGE_EXTENSIONS:
            continue
        yield ArchiveEntry(name=info.filename, score=score_entry(info.filename, kind))


def classify_archive(path: Path) -> Optional[ArchiveKind]:
    """Return the archive family of ``path`` or ``None`` when it cannot carry previews."""
    suffix = path.suffix.lower()
    if suffix == ".3mf":
        return ArchiveKind.THREE_MF
    if suffix == ".zip" and any(keyword in path.stem.lower() for keyword in PHOTO_ARCHIVE_KEYWORDS):
        return ArchiveKind.PHOTO_ZIP
    return None


class ArchiveImageExtractor:
    """Pull a preview image out of the archives inside a model folder."""

    def collect_candidates(self, folder: Path) -> list[ArchiveCandidate]:
        """Return candidate archives below ``folder``, 3MF first then oldest first."""
        candidates: list[ArchiveCandidate] = []
        for path in self._walk(folder):
            kind = classify_archive(path)
            if kind is None:
                continue
            try:
                mtime = path.stat().st_mtime
            except OSError as exc:
                LOGGER.debug("Skipping archive %s: %s", path, exc)
                continue
            candidates.append(ArchiveCandidate(path=path, kind=kind, mtime=mtime))
        candidates.sort(key=lambda item: (item.kind is not ArchiveKind.THREE_MF, item.mtime))
        return candidates

    def extract_preview(self, folder: Path) -> Optional[Path]:
        """Write the best preview found in ``folder``'s archives and return its path.

        Archives are tried in candidate order and the first one that yields an
        image wins. Failures on one archive are logged and the next is tried.

        Args:
            folder: Model folder to search.

        Returns:
            Optional[Path]: The written ``_extracted_<archive><ext>`` file, or ``None``.
        """
        for candidate in self.collect_candidates(folder):
            written = self._extract_from(candidate, folder)
            if written is not None:
                LOGGER.info("Extracted preview %s from %s", written.name, candidate.path.name)
                return written
        return None

    def _extract_from(self, candidate: ArchiveCandidate, folder: Path) -> Optional[Path]:
        try:
            with zipfile.ZipFile(candidate.path) as handle:
                best: Optional[ArchiveEntry] = None
                for entry in iter_archive_images(handle, candidate.kind):
                    if best is None or entry.score > best.score:
                        best = entry
                if best is None:
                    return None
                data = handle.read(best.name)
        except (zipfile.BadZipFile, KeyError, OSError) as exc:
            LOGGER.warning("Unable to read archive %s: %s", candidate.path, exc)
            return None

        suffix = PurePosixPath(best.name).suffix.lower()
        output = folder / f"{EXTRACTED_PREFIX}{candidate.path.stem}{suffix}"
        try:
            output.write_bytes(data)
        except OSError as exc:
            LOGGER.warning("Unable to write preview %s: %s", output, exc)
            return None
        return output

    def _walk(self, folder: Path) -> Iterator[Path]:
        try:
            entries = sorted(folder.iterdir())
        except OSError as exc:
            LOGGER.debug("Unable to read %s: %s", folder, exc)
            return
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                yield from self._walk(entry)
            elif entry.is_file():
                yield entry


__all__ = [
    "ArchiveKind",
    "ArchiveCandidate",
    "ArchiveEntry",
    "ArchiveImageExtractor",
    "classify_archive",
    "iter_archive_images",
    "score_entry",
    "ENTRY_IMAGE_EXTENSIONS",
    "EXTRACTED_PREFIX",
]
