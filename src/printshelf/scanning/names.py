"""Display-name normalization for model folders and loose files."""

from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[_-]")
_EXTENSION = re.compile(r"\.(stl|3mf|obj|gcode|ply|amf|zip|rar|7z)$", re.IGNORECASE)
_NUMERIC_PREFIX = re.compile(r"^\d+[\s\-_]+")
_TRAILING_PARENTHETICAL = re.compile(r"\s*\([^)]*\)\s*$")
_VERSION_SUFFIX = re.compile(r"\s+v\d+$", re.IGNORECASE)
_COPY_SUFFIX = re.compile(r"\s+(copy|final|latest|new|old|backup)\d*$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_WORD_START = re.compile(r"\b\w")


def cleanup_folder_name(name: str) -> str:
    """Return a human-friendly display name for a folder or file name.

    Separators become spaces; trailing extensions, leading numeric prefixes,
    trailing parentheticals, version markers, and copy/backup markers are
    stripped; whitespace is collapsed and each word is title-cased.

    Args:
        name: Raw folder or file name.

    Returns:
        str: Cleaned name, or ``name`` unchanged when cleaning leaves nothing.

    Example:
        >>> cleanup_folder_name("003_My_Cool_Model_v2")
        'My Cool Model'
    """
    cleaned = _SEPARATORS.sub(" ", name)
    cleaned = _EXTENSION.sub("", cleaned)
    cleaned = _NUMERIC_PREFIX.sub("", cleaned)
    cleaned = _TRAILING_PARENTHETICAL.sub("", cleaned)
    cleaned = _VERSION_SUFFIX.sub("", cleaned)
    cleaned = _COPY_SUFFIX.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = _WORD_START.sub(lambda match: match.group(0).upper(), cleaned)
    return cleaned or name


__all__ = ["cleanup_folder_name"]
