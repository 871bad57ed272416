"""Planner for moves into and within the model library."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from printshelf.scanning.names import cleanup_folder_name

from .errors import ImportConflictError, OrganizationError
from .models import MoveOperation, OperationPlan


class OrganizerPlanner:
    """Derive move plans for imports, loose-file grouping, and trashing.

    Every plan is checked for conflicts up front so that a rejected plan leaves
    the filesystem untouched.
    """

    def plan_import(
        self,
        source: Path,
        category: str,
        library_root: Path,
        *,
        is_folder: Optional[bool] = None,
    ) -> OperationPlan:
        """Plan moving a staged item into ``<library_root>/<category>/``.

        Folders keep their name. Single files get a new folder named after the
        cleaned-up file stem.

        Args:
            source: Staged file or folder.
            category: Destination category folder name.
            library_root: Model library root.
            is_folder: Overrides the folder/file detection when provided.

        Returns:
            OperationPlan: Plan whose ``target_folder`` is the new model folder.

        Raises:
            ImportConflictError: If the destination folder already exists.
            OrganizationError: If the category name is not a plain folder name.
        """
        category_dir = library_root / self._safe_component(category, "category")
        folder = source.is_dir() if is_folder is None else is_folder
        if folder:
            target = category_dir / source.name
            moves = [MoveOperation(source=source, destination=target, reasoning="import folder")]
        else:
            target = category_dir / cleanup_folder_name(source.stem)
            moves = [
                MoveOperation(
                    source=source, destination=target / source.name, reasoning="import file"
                )
            ]
        if target.exists():
            raise ImportConflictError(f"Target folder already exists: {category}/{target.name}")
        return OperationPlan(target_folder=target, moves=moves)

    def plan_grouping(
        self,
        sources: Iterable[Path],
        folder_name: str,
        category: str,
        library_root: Path,
    ) -> OperationPlan:
        """Plan gathering loose files into a new model folder."""
        target = (
            library_root
            / self._safe_component(category, "category")
            / self._safe_component(folder_name, "folder name")
        )
        if target.exists():
            raise ImportConflictError(f"Target folder already exists: {category}/{folder_name}")

        plan = OperationPlan(target_folder=target)
        seen: set[str] = set()
        for source in sources:
            if source.name in seen:
                raise ImportConflictError(f"Duplicate filename in selection: {source.name}")
            seen.add(source.name)
            plan.moves.append(
                MoveOperation(source=source, destination=target / source.name, reasoning="group")
            )
        if not plan.moves:
            raise OrganizationError("No files selected.")
        return plan

    def plan_trash(self, source: Path, trash_dir: Path) -> OperationPlan:
        """Plan moving ``source`` into ``trash_dir`` under a non-clashing name."""
        destination = trash_dir / source.name
        counter = 1
        while destination.exists():
            destination = trash_dir / f"{source.stem} ({counter}){source.suffix}"
            counter += 1
        plan = OperationPlan(
            moves=[MoveOperation(source=source, destination=destination, reasoning="trash")]
        )
        if destination.name != source.name:
            plan.notes.append(f"Renamed to {destination.name} to avoid a clash in the trash.")
        return plan

    def _safe_component(self, value: str, label: str) -> str:
        cleaned = value.strip()
        if not cleaned or cleaned in {".", ".."} or "/" in cleaned or "\\" in cleaned:
            raise OrganizationError(f"Invalid {label}: {value!r}")
        return cleaned


__all__ = ["OrganizerPlanner"]
