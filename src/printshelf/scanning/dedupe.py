"""Perceptual de-duplication of model images."""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Optional

from PIL import Image, UnidentifiedImageError

from printshelf.catalog.models import AssetRecord

LOGGER = logging.getLogger(__name__)

HASH_SIZE = 8


def average_hash(path: Path, *, size: int = HASH_SIZE) -> Optional[str]:
    """Return a hex average hash of the image at ``path``.

    The image is reduced to ``size`` x ``size`` grayscale and each pixel becomes
    one bit: set when brighter than the mean.

    Returns:
        Optional[str]: Hex digest, or ``None`` when the image cannot be read.
    """
    try:
        with Image.open(path) as image:
            reduced = image.convert("L").resize((size, size), Image.Resampling.LANCZOS)
            pixels = list(reduced.tobytes())
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        LOGGER.debug("Unable to hash %s: %s", path, exc)
        return None
    mean = sum(pixels) / len(pixels)
    bits = "".join("1" if pixel > mean else "0" for pixel in pixels)
    return f"{int(bits, 2):0{size * size // 4}x}"


def select_duplicates(images: Iterable[AssetRecord]) -> list[int]:
    """Return the ids of images that duplicate another image of the same model.

    Images sharing a hash form a group. Each group keeps its primary image, or
    otherwise its largest file, and every other member is reported.
    """
    groups: dict[str, list[tuple[AssetRecord, int]]] = defaultdict(list)
    for image in images:
        path = Path(image.filepath)
        digest = average_hash(path)
        if digest is None:
            continue
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        groups[digest].append((image, size))

    duplicates: list[int] = []
    for members in groups.values():
        if len(members) < 2:
            continue
        members.sort(key=lambda item: (not item[0].is_primary, -item[1], item[0].id))
        duplicates.extend(record.id for record, _ in members[1:])
    return duplicates


__all__ = ["average_hash", "select_duplicates", "HASH_SIZE"]
