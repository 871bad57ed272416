"""Executor for organization plans."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .models import MoveOperation, OperationPlan

LOGGER = logging.getLogger(__name__)


class OperationExecutor:
    """Apply move plans, undoing completed moves when one fails."""

    def apply(self, plan: OperationPlan, dry_run: bool = False) -> list[Path]:
        """Execute the plan's moves in order.

        Args:
            plan: Operation plan computed by the planner.
            dry_run: When true, only validate operations without executing them.

        Returns:
            list[Path]: Destinations written, in plan order.

        Raises:
            FileNotFoundError: If a source path is missing.
            FileExistsError: If a destination appeared after planning.
            OSError: If a move fails; earlier moves are rolled back first.
        """

        self._validate(plan)
        if dry_run:
            return []

        completed: list[MoveOperation] = []
        try:
            if plan.target_folder is not None:
                plan.target_folder.parent.mkdir(parents=True, exist_ok=True)
            for move_op in plan.moves:
                if move_op.destination.exists():
                    raise FileExistsError(f"Destination already exists: {move_op.destination}")
                move_op.destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(move_op.source), str(move_op.destination))
                completed.append(move_op)
        except OSError:
            self._rollback(completed)
            raise
        return [move_op.destination for move_op in completed]

    def _validate(self, plan: OperationPlan) -> None:
        for move_op in plan.moves:
            if not move_op.source.exists():
                raise FileNotFoundError(f"Source path is missing: {move_op.source}")

    def _rollback(self, completed: list[MoveOperation]) -> None:
        for move_op in reversed(completed):
            try:
                shutil.move(str(move_op.destination), str(move_op.source))
            except OSError as exc:
                LOGGER.error(
                    "Unable to restore %s to %s: %s", move_op.destination, move_op.source, exc
                )


__all__ = ["OperationExecutor"]
