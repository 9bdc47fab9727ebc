"""
Plan Lifecycle Manager - owns the plan collection and the activity log.

Commands run one at a time: the clock is read once, the reducer produces
the next collection, and only then is the manager's state replaced and
the activity entries appended.

Usage:
	manager = PlanLifecycleManager()
	result = manager.create_plan("Peak Hour Staffing Rebalance", tasks=[...])
	manager.update_task_status(result.plan.id, "task-1", TaskStatus.IN_PROGRESS)
	result = manager.complete_plan(plan_id, disposition="follow-on")
"""

import logging
from typing import Iterable, Optional

from pydantic import ValidationError

from ..clock import Clock, SystemClock
from .activity import ActivityLog
from .commands import (
	DEFAULT_POLICY,
	AcceptHandoff,
	AddComment,
	Command,
	CommandOutcome,
	CommandResult,
	CompletePlan,
	CreatePlan,
	DiscardDraft,
	ExecuteDraft,
	LifecyclePolicy,
	RecordMetric,
	StopPlan,
	ToggleAction,
	UpdateTaskStatus,
	apply_command,
)
from .errors import ErrorKind, NotFoundError
from .models import ActivityEntry, Plan, PlanStatus, TaskStatus
from .progress import plan_stats
from .resolver import CompletionAssessment, assess_completion
from .scenario import PreviewContext, ScenarioPreview, preview_plan

logger = logging.getLogger(__name__)


class PlanLifecycleManager:
	"""Single-writer command processor for plans."""

	def __init__(
		self,
		clock: Optional[Clock] = None,
		policy: LifecyclePolicy = DEFAULT_POLICY,
		plans: Iterable[Plan] = (),
		activity: Optional[ActivityLog] = None,
	):
		self._clock = clock or SystemClock()
		self._policy = policy
		self._plans: dict[str, Plan] = {p.id: p for p in plans}
		self.activity = activity or ActivityLog()

	# -- Commands --

	def prepare(self, command: Command) -> CommandOutcome:
		"""Apply a command to the current plans without committing anything."""
		return apply_command(self._plans, command, self._clock.now(), self._policy)

	def commit(self, command: Command, outcome: CommandOutcome) -> CommandResult:
		"""Make a prepared outcome the manager's state if it was accepted."""
		result = outcome.result
		name = type(command).__name__

		if not result.ok:
			logger.warning(f"{name} rejected: {result.error.value} - {result.detail}")
			return result

		self._plans = outcome.plans
		for entry in outcome.events:
			self.activity.append(entry)

		if result.derived_plan is not None:
			logger.info(f"{name} applied to {result.plan.id}; created {result.derived_plan.id}")
		elif result.removed_plan_id is not None:
			logger.info(f"{name} removed plan {result.removed_plan_id}")
		else:
			target = result.plan.id if result.plan else getattr(command, "plan_id", "")
			logger.info(f"{name} applied to {target}")
		return result

	def dispatch(self, command: Command) -> CommandResult:
		"""Apply a command and commit its effects if it was accepted."""
		return self.commit(command, self.prepare(command))

	def _run(self, command_type: type[Command], **fields) -> CommandResult:
		"""Build and dispatch a command; malformed fields are a rejection, not an exception."""
		try:
			command = command_type(**fields)
		except ValidationError as e:
			logger.warning(f"{command_type.__name__} rejected: {ErrorKind.MISSING_REQUIRED_FIELD.value} - {e}")
			return CommandResult(ok=False, error=ErrorKind.MISSING_REQUIRED_FIELD, detail=str(e))
		return self.dispatch(command)

	def create_plan(self, name: str, activate_immediately: bool = False, **fields) -> CommandResult:
		return self._run(CreatePlan, name=name, activate_immediately=activate_immediately, **fields)

	def update_task_status(self, plan_id: str, task_id: str, status: TaskStatus, actor: str = "You") -> CommandResult:
		return self._run(UpdateTaskStatus, plan_id=plan_id, task_id=task_id, status=status, actor=actor)

	def toggle_action(self, plan_id: str, task_id: str, action_id: str) -> CommandResult:
		return self._run(ToggleAction, plan_id=plan_id, task_id=task_id, action_id=action_id)

	def add_comment(self, plan_id: str, text: str, actor: str = "You") -> CommandResult:
		return self._run(AddComment, plan_id=plan_id, text=text, actor=actor)

	def record_metric(self, plan_id: str, name: str, value: float, unit: str = "") -> CommandResult:
		return self._run(RecordMetric, plan_id=plan_id, name=name, value=value, unit=unit)

	def discard_draft(self, plan_id: str) -> CommandResult:
		return self._run(DiscardDraft, plan_id=plan_id)

	def execute_draft(self, plan_id: str, actor: str = "You") -> CommandResult:
		return self._run(ExecuteDraft, plan_id=plan_id, actor=actor)

	def stop_plan(self, plan_id: str, reason: str, notes: str = "", actor: str = "You") -> CommandResult:
		return self._run(StopPlan, plan_id=plan_id, reason=reason, notes=notes, actor=actor)

	def complete_plan(self, plan_id: str, notes: str = "", disposition: str = "complete", actor: str = "You") -> CommandResult:
		return self._run(CompletePlan, plan_id=plan_id, notes=notes, disposition=disposition, actor=actor)

	def accept_handoff(self, plan_id: str, accepted_by: str) -> CommandResult:
		return self._run(AcceptHandoff, plan_id=plan_id, actor=accepted_by)

	# -- Queries --

	def get_plan(self, plan_id: str) -> Optional[Plan]:
		return self._plans.get(plan_id)

	def list_plans(self, status: Optional[PlanStatus] = None, query: str = "") -> list[Plan]:
		"""Plans filtered by status and a case-insensitive match on name, creator or shift."""
		plans = list(self._plans.values())
		if status is not None:
			plans = [p for p in plans if p.status == status]
		if query:
			needle = query.lower()
			plans = [
				p for p in plans
				if needle in p.name.lower()
				or (p.created_by is not None and needle in p.created_by.name.lower())
				or needle in p.shift_context.lower()
			]
		return plans

	def get_activity(self, plan_id: str, newest_first: bool = False) -> list[ActivityEntry]:
		return self.activity.entries(plan_id, newest_first=newest_first)

	def stats(self) -> dict:
		return plan_stats(self._plans.values())

	def active_conflicts(self) -> list[Plan]:
		"""All active plans when more than one runs at the same time."""
		active = self.list_plans(status=PlanStatus.ACTIVE)
		return active if len(active) > 1 else []

	def assess(self, plan_id: str) -> CompletionAssessment:
		"""Carry-over a plan would have if it were completed now."""
		return assess_completion(self._require(plan_id))

	def preview(self, context: PreviewContext, categories: Optional[Iterable[str]] = None) -> ScenarioPreview:
		return preview_plan(self._require(context.plan_id), context, categories)

	def _require(self, plan_id: str) -> Plan:
		plan = self._plans.get(plan_id)
		if plan is None:
			raise NotFoundError(f"Plan not found: {plan_id}")
		return plan
