"""File kind detection based on extensions."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class FileKind(str, Enum):
    """Catalog-relevant classification of a file."""

    MODEL = "model"
    IMAGE = "image"
    DOCUMENT = "document"
    ARCHIVE = "archive"
    UNKNOWN = "unknown"


MODEL_EXTENSIONS = frozenset({".stl", ".3mf", ".gcode", ".obj", ".ply", ".amf"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"})
DOCUMENT_EXTENSIONS = frozenset({".pdf"})
ARCHIVE_EXTENSIONS = frozenset({".zip", ".rar", ".7z"})

_KIND_BY_EXTENSION: dict[str, FileKind] = {
    **{ext: FileKind.MODEL for ext in MODEL_EXTENSIONS},
    **{ext: FileKind.IMAGE for ext in IMAGE_EXTENSIONS},
    **{ext: FileKind.DOCUMENT for ext in DOCUMENT_EXTENSIONS},
    **{ext: FileKind.ARCHIVE for ext in ARCHIVE_EXTENSIONS},
}


def classify_path(path: Path | str) -> FileKind:
    """Return the kind of ``path`` judged by its extension, case-insensitively."""
    return _KIND_BY_EXTENSION.get(Path(path).suffix.lower(), FileKind.UNKNOWN)


def file_type_of(path: Path | str) -> str:
    """Return the lowercase extension without its leading dot."""
    return Path(path).suffix.lower().lstrip(".")


def is_model_file(path: Path | str) -> bool:
    return classify_path(path) is FileKind.MODEL


def is_image_file(path: Path | str) -> bool:
    return classify_path(path) is FileKind.IMAGE


def is_document_file(path: Path | str) -> bool:
    return classify_path(path) is FileKind.DOCUMENT


def is_archive_file(path: Path | str) -> bool:
    return classify_path(path) is FileKind.ARCHIVE


def is_catalog_file(path: Path | str) -> bool:
    """Return True for files that make a folder a model: models and archives."""
    return classify_path(path) in (FileKind.MODEL, FileKind.ARCHIVE)


__all__ = [
    "FileKind",
    "MODEL_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "DOCUMENT_EXTENSIONS",
    "ARCHIVE_EXTENSIONS",
    "classify_path",
    "file_type_of",
    "is_model_file",
    "is_image_file",
    "is_document_file",
    "is_archive_file",
    "is_catalog_file",
]
