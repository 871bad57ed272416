"""Library scanner tests covering discovery, reconciliation modes, and post-index phases."""

from __future__ import annotations

import shutil
import subprocess
import threading
import zipfile
from pathlib import Path
from typing import Any, Optional

import pytest
from PIL import Image

from printshelf.catalog.repository import CatalogRepository
from printshelf.config.models import ScanningOptions
from printshelf.metadata.pdf import PdfMetadata
from printshelf.scanning import (
    ArchiveImageExtractor,
    CatalogScanner,
    ScanConfigurationError,
    ScanInProgressError,
    ScanMode,
)
from printshelf.scanning.scanner import FINDER_TAG_NOTE


def _image(path: Path, color: str = "red") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (16, 16), color).save(path)
    return path


def _touch(path: Path, data: bytes = b"solid model\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def _build_library(tmp_path: Path) -> Path:
    """Create a small library tree.

    Layout::

        Toys/Dragon/{dragon.stl, dragon.png}
        Toys/loose_widget.stl
        Kitchen/~Utensils/spoon.stl
        Paid/JaneDoe/Castle/castle.3mf   (holds a plate preview)
        root_file.stl
        .hidden/secret.stl
        Toys/node_modules/junk/junk.stl
    """
    root = tmp_path.resolve() / "library"
    _touch(root / "Toys" / "Dragon" / "dragon.stl")
    _image(root / "Toys" / "Dragon" / "dragon.png")
    _touch(root / "Toys" / "loose_widget.stl")
    _touch(root / "Kitchen" / "~Utensils" / "spoon.stl")
    castle = root / "Paid" / "JaneDoe" / "Castle"
    castle.mkdir(parents=True)
    preview = tmp_path / "plate.png"
    _image(preview, "blue")
    with zipfile.ZipFile(castle / "castle.3mf", "w") as handle:
        handle.writestr("3D/3dmodel.model", "<model/>")
        handle.write(preview, "Metadata/plate_1.png")
    _touch(root / "root_file.stl")
    _touch(root / ".hidden" / "secret.stl")
    _touch(root / "Toys" / "node_modules" / "junk" / "junk.stl")
    return root


def _scanner(tmp_path: Path, **overrides: Any) -> tuple[CatalogRepository, CatalogScanner]:
    settings = ScanningOptions(extract_pdf_metadata=False, **overrides)
    repository = CatalogRepository(tmp_path / "catalog.db")
    return repository, CatalogScanner(repository, settings)


class _FakePdfReader:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[Path] = []

    def read(self, path: Path) -> PdfMetadata:
        self.calls.append(path)
        if self.fail:
            raise subprocess.SubprocessError("pdftohtml exploded")
        return PdfMetadata(
            source_platform="printables",
            source_url="https://www.printables.com/model/123-dragon",
            designer="Jane",
            tags=["dragon", "fantasy"],
        )

    def read_text(self, path: Path) -> Optional[str]:
        return None


class _BlockingExtractor(ArchiveImageExtractor):
    """Holds the extraction phase open until released."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()

    def extract_preview(self, folder: Path) -> Optional[Path]:
        self.entered.set()
        self.release.wait(timeout=10)
        return super().extract_preview(folder)


class _FakeTags:
    def __init__(self, by_name: dict[str, list[str]]) -> None:
        self._by_name = by_name

    def get_tags(self, path: Path) -> list[str]:
        return list(self._by_name.get(path.name, []))

    def set_tags(self, path: Path, tags: list[str]) -> bool:
        return True


def test_full_sync_indexes_models_and_loose_files(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository, scanner = _scanner(tmp_path)

    summary = scanner.scan(root, ScanMode.FULL_SYNC)

    assert summary.models_found == 2
    assert summary.models_added == 2
    assert summary.loose_files_found == 3
    assert summary.models_extracted == 1

    dragon = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert dragon is not None
    assert dragon.filename == "Dragon"
    assert dragon.category == "Toys"
    assert dragon.file_count == 1
    assert [record.filename for record in repository.list_model_files(dragon.id)] == [
        "dragon.stl"
    ]
    primary = [asset for asset in repository.list_assets(dragon.id) if asset.is_primary]
    assert [Path(asset.filepath).name for asset in primary] == ["dragon.png"]

    castle = repository.get_model_by_path(str(root / "Paid" / "JaneDoe" / "Castle"))
    assert castle is not None
    assert castle.category == "Paid"
    assert castle.is_paid
    assert castle.designer_id is not None
    assert repository.designer_name(castle.designer_id) == "JaneDoe"
    castle_assets = repository.list_assets(castle.id)
    assert [Path(asset.filepath).name for asset in castle_assets] == ["_extracted_castle.png"]
    assert castle_assets[0].is_primary

    loose = {record.filename: record.category for record in repository.list_loose_files()}
    assert loose == {
        "loose_widget.stl": "Toys",
        "spoon.stl": "Kitchen",
        "root_file.stl": "Uncategorized",
    }
    assert scanner.progress().current_step.value == "complete"
    assert not scanner.is_scanning


def test_full_sync_soft_deletes_and_restores_with_same_id(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository, scanner = _scanner(tmp_path)
    scanner.scan(root, ScanMode.FULL_SYNC)
    dragon_path = root / "Toys" / "Dragon"
    original = repository.get_model_by_path(str(dragon_path))
    assert original is not None
    repository.add_favorite(original.id)

    stash = tmp_path / "stash"
    shutil.move(str(dragon_path), str(stash))
    summary = scanner.scan(root, ScanMode.FULL_SYNC)

    assert summary.models_removed == 1
    removed = repository.get_model_by_path(str(dragon_path))
    assert removed is not None and removed.deleted_at is not None
    assert str(dragon_path) not in {model.filepath for model in repository.list_models()}

    shutil.move(str(stash), str(dragon_path))
    scanner.scan(root, ScanMode.FULL_SYNC)

    restored = repository.get_model_by_path(str(dragon_path))
    assert restored is not None
    assert restored.id == original.id
    assert restored.deleted_at is None
    assert repository.is_favorite(original.id)


def _snapshot(repository: CatalogRepository) -> dict[str, Any]:
    models = repository.list_models(include_deleted=True)
    files = []
    assets = []
    for model in models:
        files.extend(record.model_dump() for record in repository.list_model_files(model.id))
        assets.extend(record.model_dump() for record in repository.list_assets(model.id))
    return {
        "models": [model.model_dump(exclude={"updated_at", "last_scanned"}) for model in models],
        "files": files,
        "assets": assets,
        "loose": [
            record.model_dump(exclude={"id", "discovered_at"})
            for record in repository.list_loose_files()
        ],
    }


def test_repeated_full_sync_leaves_catalog_unchanged(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository, scanner = _scanner(tmp_path)
    scanner.scan(root, ScanMode.FULL_SYNC)
    before = _snapshot(repository)

    summary = scanner.scan(root, ScanMode.FULL_SYNC)

    assert summary.models_added == 0
    assert summary.models_removed == 0
    assert summary.models_updated == 2
    assert _snapshot(repository) == before


def test_full_sync_keeps_queue_and_print_history_on_unchanged_models(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository, scanner = _scanner(tmp_path)
    scanner.scan(root, ScanMode.FULL_SYNC)
    dragon = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert dragon is not None
    repository.enqueue(dragon.id, priority=2, notes="after the castle")
    printed_id = repository.add_printed(dragon.id, "good", "PLA")

    scanner.scan(root, ScanMode.FULL_SYNC)

    unchanged = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert unchanged is not None and unchanged.id == dragon.id
    queue = repository.list_queue()
    assert [(entry.model_id, entry.priority, entry.notes) for entry in queue] == [
        (dragon.id, 2, "after the castle")
    ]
    printed = repository.list_printed()
    assert [(entry.id, entry.model_id, entry.rating) for entry in printed] == [
        (printed_id, dragon.id, "good")
    ]


def test_scan_is_rejected_while_background_scan_runs(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository = CatalogRepository(tmp_path / "catalog.db")
    extractor = _BlockingExtractor()
    scanner = CatalogScanner(
        repository, ScanningOptions(extract_pdf_metadata=False), extractor=extractor
    )

    scanner.start_scan(root, ScanMode.FULL_SYNC)
    try:
        assert extractor.entered.wait(timeout=10)
        assert scanner.is_scanning
        with pytest.raises(ScanInProgressError):
            scanner.scan(root, ScanMode.FULL_SYNC)
        with pytest.raises(ScanInProgressError):
            scanner.start_scan(root, ScanMode.ADD_ONLY)
    finally:
        extractor.release.set()
        scanner.wait(timeout=10)

    assert not scanner.is_scanning
    assert scanner.progress().current_step.value == "complete"
    assert repository.get_model_by_path(str(root / "Paid" / "JaneDoe" / "Castle")) is not None


def test_full_scan_keeps_ids_and_hard_deletes_missing(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository, scanner = _scanner(tmp_path)
    scanner.scan(root, ScanMode.FULL_SYNC)
    castle_path = str(root / "Paid" / "JaneDoe" / "Castle")
    castle_id = repository.get_model_by_path(castle_path).id  # type: ignore[union-attr]

    shutil.rmtree(root / "Toys" / "Dragon")
    summary = scanner.scan(root, ScanMode.FULL)

    assert summary.models_removed == 1
    assert summary.models_updated == 1
    assert repository.get_model_by_path(str(root / "Toys" / "Dragon")) is None
    assert repository.get_model_by_path(castle_path).id == castle_id  # type: ignore[union-attr]


def test_add_only_leaves_existing_rows_untouched(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository, scanner = _scanner(tmp_path)
    scanner.scan(root, ScanMode.FULL_SYNC)

    shutil.rmtree(root / "Toys" / "Dragon")
    _touch(root / "Toys" / "Rocket" / "rocket.stl")
    summary = scanner.scan(root, ScanMode.ADD_ONLY)

    assert summary.models_found == 1
    assert summary.models_added == 1
    assert summary.models_removed == 0
    dragon = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert dragon is not None and dragon.deleted_at is None
    assert repository.get_model_by_path(str(root / "Toys" / "Rocket")) is not None


def test_scan_rejects_missing_root(tmp_path: Path) -> None:
    _, scanner = _scanner(tmp_path)

    with pytest.raises(ScanConfigurationError):
        scanner.scan(tmp_path / "nowhere")


def test_index_folder_requires_folder_inside_root(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    outside = tmp_path / "elsewhere" / "Thing"
    _touch(outside / "thing.stl")
    _, scanner = _scanner(tmp_path)

    with pytest.raises(ScanConfigurationError):
        scanner.index_folder(outside, root)


def test_index_folder_updates_in_place(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository, scanner = _scanner(tmp_path)
    scanner.scan(root, ScanMode.FULL_SYNC)
    folder = root / "Toys" / "Dragon"
    model_id = repository.get_model_by_path(str(folder)).id  # type: ignore[union-attr]

    _touch(folder / "parts" / "wing.stl")
    assert scanner.index_folder(folder, root) == model_id

    files = [record.filename for record in repository.list_model_files(model_id)]
    assert sorted(files) == ["dragon.stl", "wing.stl"]
    assert repository.require_model(model_id).file_count == 2


def test_metadata_phase_saves_pdf_details(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    _touch(root / "Toys" / "Dragon" / "Dragon by Jane Printables.pdf", b"%PDF-1.4")
    repository = CatalogRepository(tmp_path / "catalog.db")
    reader = _FakePdfReader()
    scanner = CatalogScanner(
        repository, ScanningOptions(), pdf_reader=reader  # type: ignore[arg-type]
    )

    summary = scanner.scan(root, ScanMode.FULL_SYNC)

    assert summary.metadata_extracted == 1
    dragon = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert dragon is not None
    metadata = repository.get_metadata(dragon.id)
    assert metadata is not None
    assert metadata.source_platform == "printables"
    assert metadata.designer == "Jane"
    assert repository.list_model_tags(dragon.id) == ["dragon", "fantasy"]

    scanner.scan(root, ScanMode.FULL_SYNC)
    assert len(reader.calls) == 1


def test_metadata_failure_is_recorded_and_not_retried(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    _touch(root / "Toys" / "Dragon" / "page.pdf", b"%PDF-1.4")
    repository = CatalogRepository(tmp_path / "catalog.db")
    reader = _FakePdfReader(fail=True)
    scanner = CatalogScanner(
        repository, ScanningOptions(), pdf_reader=reader  # type: ignore[arg-type]
    )

    summary = scanner.scan(root, ScanMode.FULL_SYNC)

    assert summary.metadata_extracted == 0
    dragon = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert dragon is not None
    metadata = repository.get_metadata(dragon.id)
    assert metadata is not None and metadata.source_platform is None
    assert repository.models_needing_metadata() == []


def test_tagging_phase_imports_finder_state_once(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    repository = CatalogRepository(tmp_path / "catalog.db")
    scanner = CatalogScanner(
        repository,
        ScanningOptions(extract_pdf_metadata=False, read_finder_tags=True),
        tag_reader=_FakeTags({"Dragon": ["Green", "Blue"], "Castle": ["Red"]}),
    )

    first = scanner.scan(root, ScanMode.FULL_SYNC)
    second = scanner.scan(root, ScanMode.FULL_SYNC)

    assert first.tags_imported == 3
    assert second.tags_imported == 0
    printed = {entry.filename: entry for entry in repository.list_printed()}
    assert set(printed) == {"Dragon", "Castle"}
    assert printed["Dragon"].rating == "good"
    assert printed["Castle"].rating == "bad"
    assert printed["Dragon"].notes == FINDER_TAG_NOTE
    assert [entry.filename for entry in repository.list_queue()] == ["Dragon"]


def test_dedupe_phase_hides_identical_images(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    _image(root / "Toys" / "Dragon" / "dragon_copy.png")
    repository, scanner = _scanner(tmp_path)

    summary = scanner.scan(root, ScanMode.FULL_SYNC)

    assert summary.images_hidden == 1
    dragon = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert dragon is not None
    visible = repository.list_assets(dragon.id, asset_type="image", include_hidden=False)
    assert len(visible) == 1
    assert visible[0].is_primary


def test_disabled_dedupe_keeps_every_image(tmp_path: Path) -> None:
    root = _build_library(tmp_path)
    _image(root / "Toys" / "Dragon" / "dragon_copy.png")
    repository, scanner = _scanner(tmp_path, dedupe_images=False)

    summary = scanner.scan(root, ScanMode.FULL_SYNC)

    assert summary.images_hidden == 0
    dragon = repository.get_model_by_path(str(root / "Toys" / "Dragon"))
    assert dragon is not None
    assert len(repository.list_assets(dragon.id, include_hidden=False)) == 2
