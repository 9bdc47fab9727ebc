"""Shared test fixtures and helpers for ops-plans tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from unittest.mock import MagicMock

from ops_plans.clock import FixedClock
from ops_plans.plans.lifecycle import PlanLifecycleManager
from ops_plans.plans.models import (
	Action,
	ActionStatus,
	EntityRef,
	ImpactDelta,
	Person,
	Plan,
	PlanOutcome,
	PlanStatus,
	SuccessCriterion,
	Task,
	TaskStatus,
)
from ops_plans.plans.progress import compute_progress

NOW = datetime(2024, 12, 19, 10, 0, tzinfo=timezone.utc)
EARLIER = NOW - timedelta(minutes=45)


def make_action(action_id: str, applied: bool = False, target: Optional[dict] = None) -> Action:
	"""Create a staff-assign action, pending or applied."""
	target = target or {"function": "Picker", "zone": "Z02"}
	return Action(
		id=action_id,
		type="staff-assign",
		entity=EntityRef(type="staff", id=f"s-{action_id}", name=f"Staff {action_id}"),
		target=target,
		actual=target if applied else None,
		status=ActionStatus.APPLIED if applied else ActionStatus.PENDING,
		applied_at=EARLIER if applied else None,
	)


def make_task(
	task_id: str,
	status: TaskStatus = TaskStatus.TODO,
	actions: Optional[list[Action]] = None,
	title: str = "",
) -> Task:
	"""Create a task whose timestamps agree with its status."""
	started = EARLIER if status in (TaskStatus.IN_PROGRESS, TaskStatus.DONE) else None
	return Task(
		id=task_id,
		title=title or f"Task {task_id}",
		status=status,
		assignee=Person(name="Mike Chen", role="Shift Lead"),
		due_time="11:00",
		started_at=started,
		completed_at=EARLIER if status == TaskStatus.DONE else None,
		actions=actions or [],
	)


def make_plan(
	plan_id: str = "plan-001",
	status: PlanStatus = PlanStatus.ACTIVE,
	tasks: Optional[list[Task]] = None,
	criteria: Optional[list[SuccessCriterion]] = None,
	name: str = "Peak Hour Staffing Rebalance",
	shift: str = "Day",
	created_by: str = "Mike Chen",
) -> Plan:
	"""Create a plan with consistent progress and outcome."""
	tasks = tasks or []
	outcome = None
	if status == PlanStatus.COMPLETED:
		outcome = PlanOutcome.SUCCESS
	elif status == PlanStatus.PARTIAL:
		outcome = PlanOutcome.PARTIAL
	elif status == PlanStatus.ABANDONED:
		outcome = PlanOutcome.ABANDONED

	return Plan(
		id=plan_id,
		name=name,
		status=status,
		outcome=outcome,
		progress=compute_progress(tasks),
		created_at=EARLIER,
		created_by=Person(name=created_by, role="Zone Lead"),
		shift_context=shift,
		success_criteria=criteria or [],
		tasks=tasks,
		projected_impact={
			"staff": ImpactDelta(base=76, projected=88, delta=12),
			"schedule": ImpactDelta(base=91, projected=89, delta=-2),
		},
	)


def make_scenario_plan(plan_id: str = "plan-001") -> Plan:
	"""T1 done, T2 in progress, T3 todo, one met and one unmet criterion."""
	return make_plan(
		plan_id=plan_id,
		tasks=[
			make_task("t1", TaskStatus.DONE, [make_action("a1", applied=True), make_action("a2", applied=True)]),
			make_task("t2", TaskStatus.IN_PROGRESS, [make_action("a3", applied=True), make_action("a4")]),
			make_task("t3", TaskStatus.TODO, [make_action("a5")]),
		],
		criteria=[
			SuccessCriterion(id="c1", text="Picking throughput reaches 850 orders/hr", met=True),
			SuccessCriterion(id="c2", text="Z02/Z04 backlog cleared", met=False),
		],
	)


def make_manager(*plans: Plan, clock: Optional[FixedClock] = None) -> PlanLifecycleManager:
	return PlanLifecycleManager(clock=clock or FixedClock(NOW), plans=plans)


def capture_tools(config: MagicMock, register_fn: Callable) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		config: Mock config object to pass to the registration function
		register_fn: The registration function (e.g., register_plans_tools)

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self):
			def decorator(fn):
				captured[fn.__name__] = fn
				return fn
			return decorator

	register_fn(MockMCP(), config)
	return captured
