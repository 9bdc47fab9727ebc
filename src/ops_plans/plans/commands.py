"""
Plan commands and the reducer that applies them.

`apply_command(plans, command, now)` is a pure function: it never mutates
the collection it is given, and returns the new collection together with
the activity entries produced and a CommandResult. Rejected commands
return the collection unchanged and no entries.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Mapping, NamedTuple, Optional

from pydantic import BaseModel, Field

from .errors import ErrorKind, InvalidTransitionError, MissingRequiredFieldError, NotFoundError, PlanError
from .models import (
	ActivityEntry,
	ActivityType,
	ImpactDelta,
	Origin,
	Person,
	Plan,
	PlanOutcome,
	PlanStatus,
	Priority,
	SuccessCriterion,
	Task,
	TaskStatus,
)
from .progress import compute_progress
from .resolver import parse_disposition, resolve_completion
from .task_machine import toggle_action, transition_task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LifecyclePolicy:
	"""Fixed rules the reducer needs from configuration."""
	execution_horizon: timedelta = timedelta(minutes=120)
	shift_sequence: tuple[str, ...] = ("Day", "Swing", "Night")


DEFAULT_POLICY = LifecyclePolicy()


class StopReason(str, Enum):
	CHANGED = "changed"
	NOT_WORKING = "not-working"
	PRIORITY = "priority"
	CONFLICT = "conflict"
	OTHER = "other"


# -- Commands --

class Command(BaseModel):
	actor: str = Field(default="You", description="Who issued the command")


class CreatePlan(Command):
	name: str = ""
	plan_id: Optional[str] = None
	priority: Priority = Priority.NORMAL
	shift_context: str = ""
	created_by: Optional[Person] = None
	success_criteria: list[SuccessCriterion] = Field(default_factory=list)
	tasks: list[Task] = Field(default_factory=list)
	origin: Optional[Origin] = None
	projected_impact: Optional[dict[str, ImpactDelta]] = None
	activate_immediately: bool = False


class UpdateTaskStatus(Command):
	plan_id: str
	task_id: str
	status: TaskStatus


class ToggleAction(Command):
	plan_id: str
	task_id: str
	action_id: str


class AddComment(Command):
	plan_id: str
	text: str = ""


class RecordMetric(Command):
	plan_id: str
	name: str = ""
	value: float
	unit: str = ""


class DiscardDraft(Command):
	plan_id: str


class ExecuteDraft(Command):
	plan_id: str


class StopPlan(Command):
	plan_id: str
	reason: str = ""
	notes: str = ""


class CompletePlan(Command):
	plan_id: str
	disposition: str = ""
	notes: str = ""


class AcceptHandoff(Command):
	plan_id: str


# -- Results --

class CommandResult(BaseModel):
	"""What a command did, or why it was rejected."""
	ok: bool
	plan: Optional[Plan] = None
	derived_plan: Optional[Plan] = None
	removed_plan_id: Optional[str] = None
	events: list[ActivityEntry] = Field(default_factory=list)
	assessment: Optional[dict] = None
	error: Optional[ErrorKind] = None
	detail: str = ""

	def to_dict(self) -> dict:
		return self.model_dump(mode="json", exclude_none=True)


class CommandOutcome(NamedTuple):
	plans: dict[str, Plan]
	events: list[ActivityEntry]
	result: CommandResult


@dataclass
class _Change:
	plan: Optional[Plan] = None
	derived_plan: Optional[Plan] = None
	removed_plan_id: Optional[str] = None
	events: list[ActivityEntry] = field(default_factory=list)
	assessment: Optional[dict] = None


# -- Helpers --

def _entry(plan_id: str, entry_type: ActivityType, now: datetime, **payload) -> ActivityEntry:
	return ActivityEntry(
		id=f"act-{uuid.uuid4().hex[:12]}",
		plan_id=plan_id,
		type=entry_type,
		payload=payload,
		timestamp=now,
	)


def _status_entry(plan: Plan, now: datetime, actor: str, action: str, target: str, **extra) -> ActivityEntry:
	return _entry(plan.id, ActivityType.STATUS_CHANGE, now, user=actor, action=action, target=target, **extra)


def _checkout(plans: Mapping[str, Plan], plan_id: str) -> Plan:
	"""Deep copy of a plan; the caller's collection is never touched."""
	plan = plans.get(plan_id)
	if plan is None:
		raise NotFoundError(f"Plan not found: {plan_id}")
	return plan.model_copy(deep=True)


def _require_status(plan: Plan, *statuses: PlanStatus) -> None:
	if plan.status not in statuses:
		allowed = " or ".join(s.value for s in statuses)
		raise InvalidTransitionError(f"Plan {plan.id} is {plan.status.value}; expected {allowed}")


def _require_open(plan: Plan) -> None:
	if plan.is_terminal:
		raise InvalidTransitionError(f"Plan {plan.id} is {plan.status.value} and can no longer change")


def _get_task(plan: Plan, task_id: str) -> Task:
	task = plan.get_task(task_id)
	if task is None:
		raise NotFoundError(f"Task {task_id} not found in plan {plan.id}")
	return task


def _touch(plan: Plan) -> Plan:
	plan.progress = compute_progress(plan.tasks)
	plan.version += 1
	return plan


# -- Handlers --

def _create_plan(plans: Mapping[str, Plan], cmd: CreatePlan, now: datetime, policy: LifecyclePolicy) -> _Change:
	name = cmd.name.strip()
	if not name:
		raise MissingRequiredFieldError("Plan name is required")
	plan_id = cmd.plan_id or f"plan-{uuid.uuid4().hex[:12]}"
	if plan_id in plans:
		raise InvalidTransitionError(f"Plan {plan_id} already exists")
	if any(t.status == TaskStatus.INCOMPLETE for t in cmd.tasks):
		raise InvalidTransitionError("New plans cannot contain incomplete tasks")

	active = cmd.activate_immediately
	plan = Plan(
		id=plan_id,
		name=name,
		status=PlanStatus.ACTIVE if active else PlanStatus.DRAFT,
		priority=cmd.priority,
		created_at=now,
		created_by=cmd.created_by,
		shift_context=cmd.shift_context,
		target_completion=now + policy.execution_horizon if active else None,
		success_criteria=[c.model_copy() for c in cmd.success_criteria],
		tasks=[t.model_copy(deep=True) for t in cmd.tasks],
		origin=cmd.origin.model_copy() if cmd.origin else None,
		projected_impact=(
			{k: v.model_copy() for k, v in cmd.projected_impact.items()}
			if cmd.projected_impact else None
		),
	)
	plan.progress = compute_progress(plan.tasks)

	event = _status_entry(plan, now, cmd.actor, "created plan", plan.name, status=plan.status.value)
	return _Change(plan=plan, events=[event])


def _update_task_status(plans: Mapping[str, Plan], cmd: UpdateTaskStatus, now: datetime, policy: LifecyclePolicy) -> _Change:
	plan = _checkout(plans, cmd.plan_id)
	_require_open(plan)
	task = _get_task(plan, cmd.task_id)

	transition_task(task, cmd.status, now)
	_touch(plan)

	action = "started task" if cmd.status == TaskStatus.IN_PROGRESS else "marked task as complete"
	event = _status_entry(plan, now, cmd.actor, action, task.title, task_id=task.id, status=task.status.value)
	return _Change(plan=plan, events=[event])


def _toggle_action(plans: Mapping[str, Plan], cmd: ToggleAction, now: datetime, policy: LifecyclePolicy) -> _Change:
	plan = _checkout(plans, cmd.plan_id)
	_require_status(plan, PlanStatus.DRAFT, PlanStatus.ACTIVE)
	task = _get_task(plan, cmd.task_id)

	toggle_action(task, cmd.action_id, now)
	_touch(plan)
	return _Change(plan=plan)


def _add_comment(plans: Mapping[str, Plan], cmd: AddComment, now: datetime, policy: LifecyclePolicy) -> _Change:
	text = cmd.text.strip()
	if not text:
		raise MissingRequiredFieldError("Comment text is required")
	if cmd.plan_id not in plans:
		raise NotFoundError(f"Plan not found: {cmd.plan_id}")

	event = _entry(cmd.plan_id, ActivityType.COMMENT, now, user=cmd.actor, content=text)
	return _Change(events=[event])


def _record_metric(plans: Mapping[str, Plan], cmd: RecordMetric, now: datetime, policy: LifecyclePolicy) -> _Change:
	name = cmd.name.strip()
	if not name:
		raise MissingRequiredFieldError("Metric name is required")
	if cmd.plan_id not in plans:
		raise NotFoundError(f"Plan not found: {cmd.plan_id}")

	event = _entry(cmd.plan_id, ActivityType.METRIC, now, user=cmd.actor, name=name, value=cmd.value, unit=cmd.unit)
	return _Change(events=[event])


def _discard_draft(plans: Mapping[str, Plan], cmd: DiscardDraft, now: datetime, policy: LifecyclePolicy) -> _Change:
	plan = _checkout(plans, cmd.plan_id)
	_require_status(plan, PlanStatus.DRAFT)
	return _Change(removed_plan_id=plan.id)


def _execute_draft(plans: Mapping[str, Plan], cmd: ExecuteDraft, now: datetime, policy: LifecyclePolicy) -> _Change:
	plan = _checkout(plans, cmd.plan_id)
	_require_status(plan, PlanStatus.DRAFT)

	plan.status = PlanStatus.ACTIVE
	plan.target_completion = now + policy.execution_horizon
	_touch(plan)

	event = _status_entry(plan, now, cmd.actor, "executed plan", plan.name, status=plan.status.value)
	return _Change(plan=plan, events=[event])


def _stop_plan(plans: Mapping[str, Plan], cmd: StopPlan, now: datetime, policy: LifecyclePolicy) -> _Change:
	plan = _checkout(plans, cmd.plan_id)
	_require_status(plan, PlanStatus.ACTIVE)
	if not cmd.reason:
		raise MissingRequiredFieldError("A reason is required to stop a plan")
	try:
		reason = StopReason(cmd.reason)
	except ValueError:
		allowed = ", ".join(r.value for r in StopReason)
		raise MissingRequiredFieldError(f"Stop reason must be one of: {allowed}") from None

	if plan.tasks_with_status(TaskStatus.DONE):
		plan.status = PlanStatus.PARTIAL
		plan.outcome = PlanOutcome.PARTIAL
	else:
		plan.status = PlanStatus.ABANDONED
		plan.outcome = PlanOutcome.ABANDONED
	plan.stop_reason = reason.value
	plan.notes = cmd.notes
	plan.closed_at = now
	_touch(plan)

	event = _status_entry(
		plan, now, cmd.actor, "stopped plan", plan.name,
		status=plan.status.value, reason=reason.value, notes=cmd.notes,
	)
	return _Change(plan=plan, events=[event])


def _complete_plan(plans: Mapping[str, Plan], cmd: CompletePlan, now: datetime, policy: LifecyclePolicy) -> _Change:
	plan = _checkout(plans, cmd.plan_id)
	_require_status(plan, PlanStatus.ACTIVE)
	disposition = parse_disposition(cmd.disposition)

	resolution = resolve_completion(plan, disposition, now, cmd.notes, policy.shift_sequence)
	_touch(plan)

	derived = resolution.derived_plan
	if derived is not None and derived.id in plans:
		raise InvalidTransitionError(f"Plan {derived.id} already exists")

	events = [
		_status_entry(
			plan, now, cmd.actor, "completed plan", plan.name,
			status=plan.status.value,
			outcome=plan.outcome.value,
			disposition=disposition.value,
			derived_plan_id=derived.id if derived else None,
		),
	]
	if derived is not None:
		events.append(_status_entry(
			derived, now, cmd.actor, f"created {disposition.value} plan", derived.name,
			status=derived.status.value, parent_plan_id=plan.id,
		))

	return _Change(
		plan=plan,
		derived_plan=derived,
		events=events,
		assessment=resolution.assessment.to_dict(),
	)


def _accept_handoff(plans: Mapping[str, Plan], cmd: AcceptHandoff, now: datetime, policy: LifecyclePolicy) -> _Change:
	plan = _checkout(plans, cmd.plan_id)
	_require_status(plan, PlanStatus.DRAFT)
	if plan.origin is None or plan.origin.type != "handoff":
		raise InvalidTransitionError(f"Plan {plan.id} is not a handoff")
	if plan.origin.handoff_accepted_at is not None:
		raise InvalidTransitionError(f"Handoff {plan.id} was already accepted by {plan.origin.handoff_accepted_by}")

	plan.origin.handoff_accepted_by = cmd.actor
	plan.origin.handoff_accepted_at = now
	_touch(plan)

	event = _status_entry(plan, now, cmd.actor, "accepted handoff", plan.name, from_shift=plan.origin.from_shift)
	return _Change(plan=plan, events=[event])


_HANDLERS: dict[type, Callable[..., _Change]] = {
	CreatePlan: _create_plan,
	UpdateTaskStatus: _update_task_status,
	ToggleAction: _toggle_action,
	AddComment: _add_comment,
	RecordMetric: _record_metric,
	DiscardDraft: _discard_draft,
	ExecuteDraft: _execute_draft,
	StopPlan: _stop_plan,
	CompletePlan: _complete_plan,
	AcceptHandoff: _accept_handoff,
}


def apply_command(
	plans: Mapping[str, Plan],
	command: Command,
	now: datetime,
	policy: LifecyclePolicy = DEFAULT_POLICY,
) -> CommandOutcome:
	"""
	Apply one command to a plan collection.

	Args:
		plans: Current collection, keyed by plan id (not modified)
		command: Command to apply
		now: Timestamp for everything the command stamps
		policy: Horizon and shift rules

	Returns:
		CommandOutcome with the new collection, activity entries and result
	"""
	handler = _HANDLERS.get(type(command))
	if handler is None:
		raise TypeError(f"Unsupported command: {type(command).__name__}")

	try:
		change = handler(plans, command, now, policy)
	except PlanError as e:
		result = CommandResult(ok=False, error=e.kind, detail=e.detail)
		return CommandOutcome(plans=dict(plans), events=[], result=result)

	new_plans = dict(plans)
	if change.removed_plan_id is not None:
		del new_plans[change.removed_plan_id]
	for plan in (change.plan, change.derived_plan):
		if plan is not None:
			new_plans[plan.id] = plan

	result = CommandResult(
		ok=True,
		plan=change.plan,
		derived_plan=change.derived_plan,
		removed_plan_id=change.removed_plan_id,
		events=change.events,
		assessment=change.assessment,
	)
	return CommandOutcome(plans=new_plans, events=list(change.events), result=result)
