"""Folder discovery and category derivation tests."""

from __future__ import annotations

from pathlib import Path

from printshelf.config.models import ScanningOptions
from printshelf.scanning.discovery import (
    UNCATEGORIZED,
    FolderDiscovery,
    derive_category,
    designer_for,
)

ROOT = Path("/library")
SETTINGS = ScanningOptions()


def test_derive_category_uses_top_level_folder() -> None:
    assert derive_category(ROOT / "Toys" / "Dragon", ROOT, SETTINGS) == "Toys"
    assert derive_category(ROOT / "loose.stl", ROOT, SETTINGS) == UNCATEGORIZED


def test_derive_category_prefers_paid_and_original_folders() -> None:
    assert derive_category(ROOT / "Paid" / "Jane" / "Castle", ROOT, SETTINGS) == "Paid"
    nested = ROOT / "Toys" / "Original Creations" / "Robot"
    assert derive_category(nested, ROOT, SETTINGS) == "Original Creations"


def test_designer_for_needs_a_folder_below_the_designer() -> None:
    assert designer_for(ROOT / "Paid" / "Jane" / "Castle", ROOT, SETTINGS) == "Jane"
    assert designer_for(ROOT / "Paid" / "Jane", ROOT, SETTINGS) is None
    assert designer_for(ROOT / "Toys" / "Dragon", ROOT, SETTINGS) is None


def test_model_folder_claims_nested_subfolders(tmp_path: Path) -> None:
    root = tmp_path / "library"
    (root / "Toys" / "Dragon" / "parts").mkdir(parents=True)
    (root / "Toys" / "Dragon" / "dragon.stl").write_text("solid", encoding="utf-8")
    (root / "Toys" / "Dragon" / "parts" / "wing.stl").write_text("solid", encoding="utf-8")
    (root / "Toys" / "Dragon" / "parts" / ".wing.stl").write_text("solid", encoding="utf-8")

    result = FolderDiscovery(SETTINGS).discover(root)

    assert [group.folder.name for group in result.groups] == ["Dragon"]
    assert [path.name for path in result.groups[0].files] == ["dragon.stl", "wing.stl"]
    assert result.groups[0].date_added is not None
    assert result.loose_files == []


def test_paid_model_folder_needs_no_direct_files(tmp_path: Path) -> None:
    root = tmp_path / "library"
    castle = root / "Paid" / "Jane" / "Castle"
    (castle / "STLs").mkdir(parents=True)
    (castle / "STLs" / "tower.stl").write_text("solid", encoding="utf-8")

    result = FolderDiscovery(SETTINGS).discover(root)

    assert [group.folder for group in result.groups] == [castle]


def test_ignored_prefixes_hide_folders(tmp_path: Path) -> None:
    root = tmp_path / "library"
    (root / "Toys" / "!Drafts").mkdir(parents=True)
    (root / "Toys" / "!Drafts" / "draft.stl").write_text("solid", encoding="utf-8")

    result = FolderDiscovery(SETTINGS).discover(root)

    assert result.groups == []
    assert result.loose_files == []
