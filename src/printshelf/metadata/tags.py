"""macOS Finder color tags mapped to print state."""

from __future__ import annotations

import logging
import plistlib
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol

from printshelf.catalog.models import PrintRating

LOGGER = logging.getLogger(__name__)

PRINTED_GOOD = "Green"
PRINTED_BAD = "Red"
QUEUED = "Blue"

XATTR_NAME = "com.apple.metadata:_kMDItemUserTags"
COMMAND_TIMEOUT_SECONDS = 5

_TAG_WORD = re.compile(r"[A-Za-z][A-Za-z ]*")


class TagReader(Protocol):
    """Reads and writes color tags on folders."""

    def get_tags(self, path: Path) -> list[str]: ...

    def set_tags(self, path: Path, tags: list[str]) -> bool: ...


@dataclass(frozen=True)
class ModelTagState:
    """Print state implied by a folder's color tags."""

    is_printed: bool
    rating: Optional[PrintRating]
    is_queued: bool


def parse_model_state(tags: Iterable[str]) -> ModelTagState:
    """Map Finder tag colors to printed/queued state.

    Green means printed with a good result and Red printed with a bad one;
    Green wins when both are present. Blue means queued.
    """
    present = set(tags)
    good = PRINTED_GOOD in present
    bad = PRINTED_BAD in present
    rating: Optional[PrintRating] = "good" if good else ("bad" if bad else None)
    return ModelTagState(is_printed=good or bad, rating=rating, is_queued=QUEUED in present)


def tags_for_state(state: ModelTagState) -> list[str]:
    """Return the color tags describing ``state``."""
    tags: list[str] = []
    if state.is_printed:
        tags.append(PRINTED_BAD if state.rating == "bad" else PRINTED_GOOD)
    if state.is_queued:
        tags.append(QUEUED)
    return tags


def parse_mdls_output(output: str) -> list[str]:
    """Parse ``mdls -raw -name kMDItemUserTags`` output into tag names."""
    text = output.strip()
    if not text or text == "(null)":
        return []
    tags: list[str] = []
    for line in text.strip("()").splitlines():
        cleaned = line.strip().rstrip(",").strip('"')
        match = _TAG_WORD.match(cleaned)
        if match:
            tags.append(match.group(0).strip())
    return tags


class NullTagStore:
    """Tag store used where Finder tags are unavailable."""

    def get_tags(self, path: Path) -> list[str]:
        return []

    def set_tags(self, path: Path, tags: list[str]) -> bool:
        return False


class FinderTagStore:
    """Read tags with ``mdls`` and write them with ``xattr`` on macOS.

    Failures are logged and reported as empty tag lists or ``False``.
    """

    def get_tags(self, path: Path) -> list[str]:
        try:
            completed = subprocess.run(
                ["mdls", "-raw", "-name", "kMDItemUserTags", str(path)],
                capture_output=True,
                text=True,
                timeout=COMMAND_TIMEOUT_SECONDS,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            LOGGER.debug("Unable to read Finder tags for %s: %s", path, exc)
            return []
        return parse_mdls_output(completed.stdout)

    def set_tags(self, path: Path, tags: list[str]) -> bool:
        try:
            if not tags:
                subprocess.run(
                    ["xattr", "-d", XATTR_NAME, str(path)],
                    capture_output=True,
                    timeout=COMMAND_TIMEOUT_SECONDS,
                )
                return True
            payload = plistlib.dumps(list(tags), fmt=plistlib.FMT_BINARY).hex()
            subprocess.run(
                ["xattr", "-wx", XATTR_NAME, payload, str(path)],
                capture_output=True,
                timeout=COMMAND_TIMEOUT_SECONDS,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            LOGGER.warning("Unable to set Finder tags on %s: %s", path, exc)
            return False
        return True


__all__ = [
    "TagReader",
    "ModelTagState",
    "NullTagStore",
    "FinderTagStore",
    "parse_model_state",
    "parse_mdls_output",
    "tags_for_state",
    "PRINTED_GOOD",
    "PRINTED_BAD",
    "QUEUED",
]
