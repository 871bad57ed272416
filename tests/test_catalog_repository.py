"""Tests for the SQLite catalog repository and the settings store."""

from __future__ import annotations

from pathlib import Path

import pytest

from printshelf.catalog.models import FileEntry, ModelFields
from printshelf.catalog.repository import CatalogRepository
from printshelf.catalog.settings import (
    ANTHROPIC_API_KEY,
    MODEL_DIRECTORY,
    SettingsStore,
    mask_secret,
)


def _fields(name: str, category: str = "Toys") -> ModelFields:
    return ModelFields(filename=name, filepath=f"/library/{category}/{name}", category=category)


@pytest.fixture()
def repository() -> CatalogRepository:
    return CatalogRepository(":memory:")


def test_failed_transaction_rolls_back_nested_writes(repository: CatalogRepository) -> None:
    with pytest.raises(RuntimeError):
        with repository.transaction():
            repository.insert_model(_fields("Dragon"))
            with repository.transaction():
                repository.insert_model(_fields("Castle"))
            raise RuntimeError("boom")

    assert repository.list_models() == []


def test_delete_model_cascades_to_children(repository: CatalogRepository) -> None:
    model_id = repository.insert_model(_fields("Dragon"))
    repository.reconcile_model_files(
        model_id,
        [FileEntry(filename="dragon.stl", filepath="/library/Toys/Dragon/dragon.stl")],
    )
    repository.add_asset(model_id, "/library/Toys/Dragon/dragon.png", "image", is_primary=True)
    repository.add_favorite(model_id)
    repository.enqueue(model_id)
    repository.add_printed(model_id, "good")
    repository.add_model_tag(model_id, "Dragon")

    repository.delete_model(model_id)

    stats = repository.stats()
    assert (stats.models, stats.model_files, stats.favorites) == (0, 0, 0)
    assert (stats.queued, stats.printed) == (0, 0)
    assert repository.list_assets(model_id) == []
    assert repository.list_model_tags(model_id) == []


def test_soft_delete_hides_model_until_updated(repository: CatalogRepository) -> None:
    model_id = repository.insert_model(_fields("Dragon"))
    repository.add_favorite(model_id)

    repository.soft_delete_model(model_id)
    assert repository.list_models() == []
    assert repository.list_favorites() == []
    assert [model.id for model in repository.list_models(include_deleted=True)] == [model_id]
    assert repository.categories() == []

    repository.update_model(model_id, _fields("Dragon"))
    restored = repository.require_model(model_id)
    assert restored.deleted_at is None
    assert repository.is_favorite(model_id)


def test_reconcile_model_files_drops_missing_entries(repository: CatalogRepository) -> None:
    model_id = repository.insert_model(_fields("Dragon"))
    body = FileEntry(filename="body.stl", filepath="/library/Toys/Dragon/body.stl", file_size=10)
    wing = FileEntry(filename="wing.stl", filepath="/library/Toys/Dragon/wing.stl")
    repository.reconcile_model_files(model_id, [body, wing])

    body = body.model_copy(update={"file_size": 42})
    repository.reconcile_model_files(model_id, [body])

    files = repository.list_model_files(model_id)
    assert [(record.filename, record.file_size) for record in files] == [("body.stl", 42)]


def test_ensure_primary_image_prefers_visible_gif(repository: CatalogRepository) -> None:
    model_id = repository.insert_model(_fields("Dragon"))
    png = repository.add_asset(model_id, "/library/Toys/Dragon/a.png", "image")
    gif = repository.add_asset(model_id, "/library/Toys/Dragon/b.gif", "image")
    repository.add_asset(model_id, "/library/Toys/Dragon/manual.pdf", "pdf")

    assert repository.ensure_primary_image(model_id) == gif

    repository.set_asset_hidden(gif, True)
    assert repository.ensure_primary_image(model_id) == png

    repository.set_asset_hidden(png, True)
    assert repository.ensure_primary_image(model_id) is None
    assert not any(asset.is_primary for asset in repository.list_assets(model_id))


def test_annotations_are_unique_per_model(repository: CatalogRepository) -> None:
    first = repository.insert_model(_fields("Dragon"))
    second = repository.insert_model(_fields("Castle"))

    assert repository.add_favorite(first)
    assert not repository.add_favorite(first)
    assert repository.enqueue(first, priority=1)
    assert not repository.enqueue(first, priority=5)
    assert repository.enqueue(second, priority=3)

    assert [entry.filename for entry in repository.list_queue()] == ["Castle", "Dragon"]


def test_latest_rating_follows_most_recent_print(repository: CatalogRepository) -> None:
    model_id = repository.insert_model(_fields("Dragon"))
    assert repository.latest_rating(model_id) is None

    repository.add_printed(model_id, "bad")
    repository.add_printed(model_id, "good")

    assert repository.latest_rating(model_id) == "good"
    assert len(repository.list_printed()) == 2
    assert repository.remove_printed(model_id)
    assert not repository.has_printed(model_id)


def test_loose_files_ignore_duplicate_paths(repository: CatalogRepository) -> None:
    entry = FileEntry(filename="gear.stl", filepath="/library/Toys/gear.stl", file_type="stl")

    assert repository.add_loose_file(entry, "Toys")
    assert not repository.add_loose_file(entry, "Toys")

    [record] = repository.list_loose_files()
    assert record.category == "Toys"
    repository.delete_loose_files([record.id])
    assert repository.get_loose_file(record.id) is None


def test_hint_counts_sum_across_tokens(repository: CatalogRepository) -> None:
    repository.record_hints(["dragon", "egg", "dragon"], "Toys")
    repository.record_hints(["dragon"], "Toys")
    repository.record_hints(["egg"], "Kitchen")

    assert repository.hint_counts(["dragon", "egg"]) == {"Toys": 3, "Kitchen": 1}
    assert repository.hint_counts([]) == {}


def test_category_descriptions_can_be_cleared(repository: CatalogRepository) -> None:
    repository.set_category_description("Toys", "Things for kids")
    repository.set_category_description("Toys", "Fidgets and figurines")
    assert repository.category_descriptions() == {"Toys": "Fidgets and figurines"}

    repository.set_category_description("Toys", None)
    assert repository.category_descriptions() == {}


def test_settings_persist_and_mask_secrets(tmp_path: Path) -> None:
    database = tmp_path / "nested" / "catalog.db"
    store = SettingsStore(CatalogRepository(database))
    store.set(MODEL_DIRECTORY, "/library")
    store.set(ANTHROPIC_API_KEY, "sk-abcdef1234")

    reopened = SettingsStore(CatalogRepository(database))

    assert reopened.model_directory == "/library"
    assert reopened.items() == {
        ANTHROPIC_API_KEY: "*********1234",
        MODEL_DIRECTORY: "/library",
    }
    assert reopened.items(mask_secrets=False)[ANTHROPIC_API_KEY] == "sk-abcdef1234"
    assert not reopened.watcher_enabled

    reopened.set_bool("file_watcher_enabled", True)
    assert reopened.watcher_enabled


def test_mask_secret_hides_short_values() -> None:
    assert mask_secret("abc") == "***"
    assert mask_secret("abcdef") == "**cdef"
