"""Plans module - plan lifecycle, completion and scenario previews."""

from .commands import CommandResult, apply_command
from .lifecycle import PlanLifecycleManager
from .models import Action, ActivityEntry, Plan, SuccessCriterion, Task
from .service import PlanService
from .store import PlanStore

__all__ = [
	"Plan",
	"Task",
	"Action",
	"SuccessCriterion",
	"ActivityEntry",
	"CommandResult",
	"apply_command",
	"PlanLifecycleManager",
	"PlanService",
	"PlanStore",
]
