"""Organization plan data models."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from .errors import OrganizationError


class MoveOperation(BaseModel):
    """Represents moving a file or folder to a new location.

    Attributes:
        source: Starting path before the move.
        destination: Destination path after the move.
        reasoning: Optional explanation for the move.
    """

    source: Path
    destination: Path
    reasoning: Optional[str] = None


class OperationPlan(BaseModel):
    """Aggregated organization plan.

    Attributes:
        target_folder: Model folder created or populated by the plan, if any.
        moves: Ordered move operations.
        notes: Free-form notes surfaced to the caller.
    """

    target_folder: Optional[Path] = None
    moves: List[MoveOperation] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    def require_target(self) -> Path:
        """Return the model folder this plan fills.

        Raises:
            OrganizationError: If the plan does not create a model folder.
        """
        if self.target_folder is None:
            raise OrganizationError("Plan does not create a model folder.")
        return self.target_folder


__all__ = ["MoveOperation", "OperationPlan"]
