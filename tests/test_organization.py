"""Planner tests for imports, loose-file grouping, and trash moves."""

from __future__ import annotations

from pathlib import Path

import pytest

from printshelf.organization import ImportConflictError, OrganizationError
from printshelf.organization.planner import OrganizerPlanner


def test_import_and_grouping_plans_name_their_model_folder(tmp_path: Path) -> None:
    planner = OrganizerPlanner()
    staged = tmp_path / "staging" / "dragon_v2.stl"

    imported = planner.plan_import(staged, "Toys", tmp_path / "library", is_folder=False)
    grouped = planner.plan_grouping(
        [tmp_path / "loose" / "a.stl"], "Pair", "Toys", tmp_path / "library"
    )

    assert imported.require_target() == imported.target_folder
    assert imported.moves[0].destination.parent == imported.target_folder
    assert grouped.require_target() == tmp_path / "library" / "Toys" / "Pair"


def test_trash_plan_has_no_model_folder(tmp_path: Path) -> None:
    trash = tmp_path / "trash"
    trash.mkdir()
    (trash / "a.stl").write_text("old")

    plan = OrganizerPlanner().plan_trash(tmp_path / "a.stl", trash)

    assert plan.moves[0].destination == trash / "a (1).stl"
    with pytest.raises(OrganizationError, match="model folder"):
        plan.require_target()


def test_grouping_rejects_duplicates_and_bad_names(tmp_path: Path) -> None:
    planner = OrganizerPlanner()
    root = tmp_path / "library"

    with pytest.raises(ImportConflictError, match="Duplicate"):
        planner.plan_grouping([tmp_path / "a" / "x.stl", tmp_path / "b" / "x.stl"], "P", "T", root)
    with pytest.raises(OrganizationError, match="Invalid folder name"):
        planner.plan_grouping([tmp_path / "x.stl"], "../up", "Toys", root)
