"""File kind detection tests."""

from __future__ import annotations

from pathlib import Path

from printshelf.scanning.detectors import (
    FileKind,
    classify_path,
    file_type_of,
    is_catalog_file,
)


def test_classify_path_is_case_insensitive() -> None:
    assert classify_path("Dragon.STL") is FileKind.MODEL
    assert classify_path(Path("photos/Cover.JPEG")) is FileKind.IMAGE
    assert classify_path("page.pdf") is FileKind.DOCUMENT
    assert classify_path("bundle.7z") is FileKind.ARCHIVE
    assert classify_path("notes.txt") is FileKind.UNKNOWN
    assert classify_path("README") is FileKind.UNKNOWN


def test_catalog_files_are_models_and_archives() -> None:
    assert is_catalog_file("part.3mf")
    assert is_catalog_file("parts.zip")
    assert not is_catalog_file("preview.png")
    assert not is_catalog_file("instructions.pdf")


def test_file_type_of_drops_leading_dot() -> None:
    assert file_type_of("Model.GCODE") == "gcode"
    assert file_type_of("Makefile") == ""
