"""
Plan Models - Pydantic schemas for operational plans.

Defines plans, their tasks and actions, success criteria and the
activity entries recorded against a plan.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PlanStatus(str, Enum):
	"""Status of a plan."""
	DRAFT = "draft"
	ACTIVE = "active"
	PENDING_APPROVAL = "pending-approval"
	COMPLETED = "completed"
	PARTIAL = "partial"
	ABANDONED = "abandoned"


TERMINAL_STATUSES = frozenset({PlanStatus.COMPLETED, PlanStatus.PARTIAL, PlanStatus.ABANDONED})


class PlanOutcome(str, Enum):
	"""Outcome recorded once a plan reaches a terminal status."""
	SUCCESS = "success"
	PARTIAL = "partial"
	ABANDONED = "abandoned"
	SUPERSEDED = "superseded"


class Priority(str, Enum):
	NORMAL = "normal"
	HIGH = "high"
	CRITICAL = "critical"


class TaskStatus(str, Enum):
	"""Status of a task within a plan."""
	TODO = "todo"
	IN_PROGRESS = "in-progress"
	DONE = "done"
	INCOMPLETE = "incomplete"


EDITABLE_TASK_STATUSES = frozenset({TaskStatus.TODO, TaskStatus.IN_PROGRESS})


class ActionStatus(str, Enum):
	PENDING = "pending"
	APPLIED = "applied"


class ActivityType(str, Enum):
	STATUS_CHANGE = "status-change"
	COMMENT = "comment"
	METRIC = "metric"


class Person(BaseModel):
	"""Someone a plan or task is attributed to."""
	name: str
	role: str = ""


class EntityRef(BaseModel):
	"""The system entity an action changes (a staff member, zone, queue...)."""
	type: str
	name: str
	id: Optional[str] = None


class Action(BaseModel):
	"""A discrete system change tracked under a task."""
	id: str
	type: str = Field(description="Action type, e.g. 'staff-assign' or 'zone-status'")
	entity: EntityRef
	target: Any = Field(description="Value the change should reach")
	actual: Any = None
	status: ActionStatus = Field(default=ActionStatus.PENDING)
	applied_at: Optional[datetime] = None

	@model_validator(mode="after")
	def _check_applied(self) -> "Action":
		if self.target is None:
			raise ValueError(f"Action {self.id} needs a target")
		if self.status == ActionStatus.APPLIED:
			if self.actual is None or self.applied_at is None:
				raise ValueError(f"Applied action {self.id} needs both actual and applied_at")
		elif self.actual is not None or self.applied_at is not None:
			raise ValueError(f"Pending action {self.id} cannot carry actual or applied_at")
		return self


class SystemImpact(BaseModel):
	"""Metric snapshot taken around a task."""
	before: dict[str, Any] = Field(default_factory=dict)
	after: dict[str, Any] = Field(default_factory=dict)


class Task(BaseModel):
	"""A unit of work within a plan."""
	id: str
	title: str
	status: TaskStatus = Field(default=TaskStatus.TODO)
	assignee: Optional[Person] = None
	due_time: Optional[str] = Field(default=None, description="Display time, not enforced")
	started_at: Optional[datetime] = None
	completed_at: Optional[datetime] = None
	actions: list[Action] = Field(default_factory=list)
	tradeoff: str = ""
	system_impact: Optional[SystemImpact] = None

	@model_validator(mode="after")
	def _check_timestamps(self) -> "Task":
		if (self.status == TaskStatus.DONE) != (self.completed_at is not None):
			raise ValueError(f"Task {self.id}: completed_at must be set exactly when status is done")
		if self.status == TaskStatus.TODO and self.started_at is not None:
			raise ValueError(f"Task {self.id}: todo task cannot have started_at")
		if self.status in (TaskStatus.IN_PROGRESS, TaskStatus.DONE) and self.started_at is None:
			raise ValueError(f"Task {self.id}: {self.status.value} task needs started_at")
		return self

	@property
	def editable(self) -> bool:
		return self.status in EDITABLE_TASK_STATUSES

	def get_action(self, action_id: str) -> Optional[Action]:
		for action in self.actions:
			if action.id == action_id:
				return action
		return None

	def action_stats(self) -> dict:
		"""Applied/pending action counts for this task."""
		applied = len([a for a in self.actions if a.status == ActionStatus.APPLIED])
		return {
			"applied": applied,
			"total": len(self.actions),
			"pending": len(self.actions) - applied,
		}


class SuccessCriterion(BaseModel):
	"""A plan-level pass/fail statement. `met` is set by the modelled system."""
	id: str = ""
	text: str
	met: bool = False


class ImpactDelta(BaseModel):
	"""Projected effect of a plan on one score category."""
	base: float
	projected: float
	delta: float = 0.0


class Origin(BaseModel):
	"""What spawned a plan: an alert, an analysis or a previous plan."""
	type: str = Field(description="alert, analysis, follow-on or handoff")
	title: str = ""
	alert_id: Optional[str] = None
	alert_title: Optional[str] = None
	parent_plan_id: Optional[str] = None
	from_shift: Optional[str] = None
	handoff_accepted_by: Optional[str] = None
	handoff_accepted_at: Optional[datetime] = None


class Plan(BaseModel):
	"""
	An operational intervention made of ordered tasks.

	`progress` is derived from the tasks and is recomputed by the lifecycle
	commands; `outcome` is only set once the plan is terminal.
	"""
	id: str
	name: str
	status: PlanStatus = Field(default=PlanStatus.DRAFT)
	outcome: Optional[PlanOutcome] = None
	priority: Priority = Field(default=Priority.NORMAL)
	progress: int = Field(default=0, ge=0, le=100)
	version: int = Field(default=1, description="Incremented on every accepted mutation")

	created_at: Optional[datetime] = None
	created_by: Optional[Person] = None
	shift_context: str = ""
	target_completion: Optional[datetime] = None

	success_criteria: list[SuccessCriterion] = Field(default_factory=list)
	tasks: list[Task] = Field(default_factory=list)
	origin: Optional[Origin] = None
	projected_impact: Optional[dict[str, ImpactDelta]] = None

	# Closure
	stop_reason: Optional[str] = None
	notes: str = ""
	completion_notes: str = ""
	completed_at: Optional[datetime] = None
	closed_at: Optional[datetime] = None

	@model_validator(mode="after")
	def _check_outcome(self) -> "Plan":
		if (self.outcome is not None) != self.is_terminal:
			raise ValueError(f"Plan {self.id}: outcome must be set exactly when status is terminal")
		return self

	@property
	def is_terminal(self) -> bool:
		return self.status in TERMINAL_STATUSES

	def get_task(self, task_id: str) -> Optional[Task]:
		for task in self.tasks:
			if task.id == task_id:
				return task
		return None

	def tasks_with_status(self, status: TaskStatus) -> list[Task]:
		return [t for t in self.tasks if t.status == status]


class ActivityEntry(BaseModel):
	"""An immutable record of something that happened to a plan."""
	model_config = ConfigDict(frozen=True)

	id: str
	plan_id: str
	type: ActivityType
	payload: dict[str, Any] = Field(default_factory=dict)
	timestamp: datetime
