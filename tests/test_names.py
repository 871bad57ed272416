"""Display-name cleanup tests."""

from __future__ import annotations

import pytest

from printshelf.scanning.names import cleanup_folder_name


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("003_My_Cool_Model_v2", "My Cool Model"),
        ("dragon-egg.stl", "Dragon Egg"),
        ("Benchy (1)", "Benchy"),
        ("castle_final", "Castle"),
        ("desk organizer copy2", "Desk Organizer"),
        ("Rocket  Ship   V3", "Rocket Ship"),
    ],
)
def test_cleanup_folder_name_strips_noise(raw: str, expected: str) -> None:
    assert cleanup_folder_name(raw) == expected


def test_cleanup_folder_name_keeps_original_when_nothing_remains() -> None:
    """A name made only of strippable parts falls back to the raw name."""
    assert cleanup_folder_name("(1)") == "(1)"


def test_cleanup_folder_name_strips_model_extensions_case_insensitively() -> None:
    assert cleanup_folder_name("Tiny_Gear.OBJ") == "Tiny Gear"
