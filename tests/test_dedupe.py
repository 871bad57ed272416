"""Perceptual image de-duplication tests."""

from __future__ import annotations

import warnings
from pathlib import Path

from PIL import Image

from printshelf.catalog.models import AssetRecord
from printshelf.scanning.dedupe import average_hash, select_duplicates


def _gradient(path: Path, *, rotate: int = 0) -> Path:
    image = Image.linear_gradient("L").resize((64, 64))
    if rotate:
        image = image.rotate(rotate)
    image.convert("RGB").save(path)
    return path


def _asset(asset_id: int, path: Path, *, primary: bool = False) -> AssetRecord:
    return AssetRecord(
        id=asset_id, model_id=1, filepath=str(path), asset_type="image", is_primary=primary
    )


def test_average_hash_is_stable_and_discriminating(tmp_path: Path) -> None:
    first = average_hash(_gradient(tmp_path / "a.png"))
    second = average_hash(_gradient(tmp_path / "b.png"))
    rotated = average_hash(_gradient(tmp_path / "c.png", rotate=90))

    assert first is not None and len(first) == 16
    assert first == second
    assert first != rotated


def test_average_hash_bits_follow_pixel_brightness(tmp_path: Path) -> None:
    image = Image.new("L", (8, 8), 0)
    image.paste(255, (0, 4, 8, 8))
    image.save(tmp_path / "split.png")

    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        digest = average_hash(tmp_path / "split.png")

    assert digest == "00000000ffffffff"


def test_average_hash_returns_none_for_unreadable_files(tmp_path: Path) -> None:
    bogus = tmp_path / "fake.png"
    bogus.write_bytes(b"definitely not an image")

    assert average_hash(bogus) is None
    assert average_hash(tmp_path / "missing.png") is None


def test_select_duplicates_keeps_primary(tmp_path: Path) -> None:
    images = [
        _asset(1, _gradient(tmp_path / "a.png")),
        _asset(2, _gradient(tmp_path / "b.png"), primary=True),
        _asset(3, _gradient(tmp_path / "c.png", rotate=90)),
    ]

    assert select_duplicates(images) == [1]


def test_select_duplicates_keeps_largest_without_primary(tmp_path: Path) -> None:
    images = [
        _asset(1, _gradient(tmp_path / "small.png")),
        _asset(2, _gradient(tmp_path / "large.bmp")),
    ]

    assert select_duplicates(images) == [1]
