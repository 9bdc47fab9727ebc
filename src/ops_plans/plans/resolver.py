"""
Completion Resolver - outcome and carry-over decisions for finished plans.

When an active plan is completed the resolver decides its outcome and,
for follow-on and handoff dispositions, builds a new draft plan carrying
the unfinished work forward. Only pending actions are carried; applied
actions stay with the source plan.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from .errors import IncompleteWorkConflictError, InvalidTransitionError, MissingRequiredFieldError
from .models import (
	ActionStatus,
	Origin,
	Person,
	Plan,
	PlanOutcome,
	PlanStatus,
	SuccessCriterion,
	Task,
	TaskStatus,
)
from .task_machine import mark_incomplete

logger = logging.getLogger(__name__)

HANDOFF_LEAD_ROLE = "Shift Lead"


class Disposition(str, Enum):
	"""How a completed plan deals with its unfinished work."""
	COMPLETE = "complete"
	FOLLOW_ON = "follow-on"
	HANDOFF = "handoff"
	CLOSE = "close"


@dataclass
class CompletionAssessment:
	"""Carry-over found on a plan at completion time."""
	pending_actions: int
	open_tasks: int
	unmet_criteria: int
	criteria_count: int

	@property
	def incomplete_work(self) -> bool:
		return self.pending_actions > 0 or self.open_tasks > 0 or self.unmet_criteria > 0

	@property
	def is_full_success(self) -> bool:
		# A plan without success criteria never counts as a full success
		return not self.incomplete_work and self.criteria_count > 0 and self.unmet_criteria == 0

	@property
	def outcome(self) -> PlanOutcome:
		return PlanOutcome.SUCCESS if self.is_full_success else PlanOutcome.PARTIAL

	def to_dict(self) -> dict:
		return {
			"pending_actions": self.pending_actions,
			"open_tasks": self.open_tasks,
			"unmet_criteria": self.unmet_criteria,
			"incomplete_work": self.incomplete_work,
			"is_full_success": self.is_full_success,
			"outcome": self.outcome.value,
		}


@dataclass
class Resolution:
	"""Result of resolving a plan completion."""
	plan: Plan
	assessment: CompletionAssessment
	derived_plan: Optional[Plan] = None


def assess_completion(plan: Plan) -> CompletionAssessment:
	"""Count the pending actions, open tasks and unmet criteria of a plan."""
	return CompletionAssessment(
		pending_actions=sum(t.action_stats()["pending"] for t in plan.tasks),
		open_tasks=len([t for t in plan.tasks if t.editable]),
		unmet_criteria=len([c for c in plan.success_criteria if not c.met]),
		criteria_count=len(plan.success_criteria),
	)


def parse_disposition(value: Optional[str]) -> Disposition:
	if not value:
		raise MissingRequiredFieldError("disposition is required")
	try:
		return Disposition(value)
	except ValueError:
		allowed = ", ".join(d.value for d in Disposition)
		raise MissingRequiredFieldError(f"disposition must be one of: {allowed}") from None


def next_shift(shift: str, shift_sequence: Sequence[str]) -> str:
	"""The shift after `shift`, wrapping around. Unknown shifts map to the first one."""
	if not shift_sequence:
		return shift
	lowered = [s.lower() for s in shift_sequence]
	if shift.lower() not in lowered:
		return shift_sequence[0]
	return shift_sequence[(lowered.index(shift.lower()) + 1) % len(shift_sequence)]


def _carry_over_task(task: Task) -> Task:
	"""Copy an unfinished task as a fresh todo with only its pending actions."""
	return Task(
		id=f"followon-{task.id}",
		title=task.title,
		assignee=task.assignee.model_copy() if task.assignee else None,
		due_time=task.due_time,
		tradeoff=task.tradeoff,
		system_impact=task.system_impact.model_copy(deep=True) if task.system_impact else None,
		actions=[
			a.model_copy(update={
				"id": f"followon-{a.id}",
				"status": ActionStatus.PENDING,
				"actual": None,
				"applied_at": None,
			}, deep=True)
			for a in task.actions
			if a.status == ActionStatus.PENDING
		],
	)


def _criterion_task(criterion: SuccessCriterion, index: int) -> Task:
	return Task(
		id=f"followon-criteria-{index}",
		title=f"Address: {criterion.text}",
		assignee=Person(name="TBD"),
	)


def build_derived_plan(
	plan: Plan,
	disposition: Disposition,
	now: datetime,
	shift_sequence: Sequence[str] = (),
) -> Plan:
	"""
	Build the follow-on or handoff draft for a plan being completed.

	Args:
		plan: Source plan, before its unfinished tasks are frozen
		disposition: FOLLOW_ON or HANDOFF
		now: Creation timestamp for the new plan
		shift_sequence: Ordered shifts used to pick the handoff target

	Returns:
		New draft Plan
	"""
	if disposition not in (Disposition.FOLLOW_ON, Disposition.HANDOFF):
		raise InvalidTransitionError(f"Disposition {disposition.value} does not create a plan")

	unmet = [c for c in plan.success_criteria if not c.met]
	tasks = [_carry_over_task(t) for t in plan.tasks if t.status != TaskStatus.DONE]
	tasks += [_criterion_task(c, i) for i, c in enumerate(unmet)]

	is_handoff = disposition == Disposition.HANDOFF
	if is_handoff:
		shift = next_shift(plan.shift_context, shift_sequence)
		name = f"[Handoff] {plan.name}"
		created_by = Person(name=f"{shift} {HANDOFF_LEAD_ROLE}", role=HANDOFF_LEAD_ROLE)
		origin = Origin(
			type="handoff",
			title=f"Handed off from: {plan.name}",
			parent_plan_id=plan.id,
			from_shift=plan.shift_context,
		)
	else:
		shift = plan.shift_context
		name = f"Follow-on: {plan.name}"
		created_by = plan.created_by.model_copy() if plan.created_by else None
		origin = Origin(
			type="follow-on",
			title=f"Follow-on from: {plan.name}",
			parent_plan_id=plan.id,
		)

	kind = "handoff" if is_handoff else "followon"
	return Plan(
		id=f"plan-{kind}-{uuid.uuid4().hex[:12]}",
		name=name,
		status=PlanStatus.DRAFT,
		priority=plan.priority,
		progress=0,
		created_at=now,
		created_by=created_by,
		shift_context=shift,
		success_criteria=[
			SuccessCriterion(id=f"followon-{c.id}" if c.id else "", text=c.text, met=False)
			for c in unmet
		],
		tasks=tasks,
		origin=origin,
		projected_impact=(
			{k: v.model_copy() for k, v in plan.projected_impact.items()}
			if plan.projected_impact else None
		),
	)


def resolve_completion(
	plan: Plan,
	disposition: Disposition,
	now: datetime,
	notes: str = "",
	shift_sequence: Sequence[str] = (),
) -> Resolution:
	"""
	Close an active plan and build its derivative plan if one is requested.

	Mutates `plan` in place: status becomes completed, the outcome is set,
	and todo/in-progress tasks are frozen as incomplete.

	Raises:
		InvalidTransitionError: If the plan is not active
		IncompleteWorkConflictError: If COMPLETE is requested while work remains
	"""
	if plan.status != PlanStatus.ACTIVE:
		raise InvalidTransitionError(f"Only active plans can be completed (plan is {plan.status.value})")

	assessment = assess_completion(plan)
	if disposition == Disposition.COMPLETE and assessment.incomplete_work:
		raise IncompleteWorkConflictError(
			f"Plan {plan.id} has {assessment.open_tasks} open tasks, "
			f"{assessment.pending_actions} pending actions and "
			f"{assessment.unmet_criteria} unmet criteria; choose follow-on, handoff or close"
		)

	derived = None
	if disposition in (Disposition.FOLLOW_ON, Disposition.HANDOFF):
		derived = build_derived_plan(plan, disposition, now, shift_sequence)
		logger.info(f"Plan {plan.id} carries {len(derived.tasks)} tasks into {derived.id}")

	for task in plan.tasks:
		mark_incomplete(task)

	plan.status = PlanStatus.COMPLETED
	plan.outcome = assessment.outcome
	plan.completion_notes = notes
	plan.completed_at = now
	plan.closed_at = now

	return Resolution(plan=plan, assessment=assessment, derived_plan=derived)
