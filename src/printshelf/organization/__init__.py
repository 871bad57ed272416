"""Move planning and execution for imports and library housekeeping."""

from .errors import ImportConflictError, OrganizationError
from .executor import OperationExecutor
from .models import MoveOperation, OperationPlan
from .planner import OrganizerPlanner

__all__ = [
    "ImportConflictError",
    "OrganizationError",
    "OperationExecutor",
    "MoveOperation",
    "OperationPlan",
    "OrganizerPlanner",
]
