"""Progress and statistics derived from plans."""

from typing import Iterable

from .models import Plan, PlanOutcome, PlanStatus, Task, TaskStatus


def compute_progress(tasks: Iterable[Task]) -> int:
	"""Percentage of done tasks, rounded half up. 0 for an empty task list."""
	tasks = list(tasks)
	if not tasks:
		return 0
	done = len([t for t in tasks if t.status == TaskStatus.DONE])
	# half up: 1 of 8 done is 13%
	return int(100 * done / len(tasks) + 0.5)


def get_progress(plan: Plan) -> dict:
	"""Task and action breakdown for a plan."""
	total_actions = sum(len(t.actions) for t in plan.tasks)
	applied_actions = sum(t.action_stats()["applied"] for t in plan.tasks)

	return {
		"total_tasks": len(plan.tasks),
		"done_tasks": len(plan.tasks_with_status(TaskStatus.DONE)),
		"in_progress_tasks": len(plan.tasks_with_status(TaskStatus.IN_PROGRESS)),
		"todo_tasks": len(plan.tasks_with_status(TaskStatus.TODO)),
		"total_actions": total_actions,
		"applied_actions": applied_actions,
		"percent_complete": compute_progress(plan.tasks),
	}


def plan_stats(plans: Iterable[Plan]) -> dict:
	"""Counts per status and the success rate of completed plans."""
	plans = list(plans)
	counts = {status: 0 for status in PlanStatus}
	for plan in plans:
		counts[plan.status] += 1

	completed = [p for p in plans if p.status == PlanStatus.COMPLETED]
	successful = [p for p in completed if p.outcome == PlanOutcome.SUCCESS]
	success_rate = round(len(successful) / len(completed) * 100) if completed else 0

	return {
		"total": len(plans),
		"active": counts[PlanStatus.ACTIVE],
		"drafts": counts[PlanStatus.DRAFT],
		"pending": counts[PlanStatus.PENDING_APPROVAL],
		"completed": counts[PlanStatus.COMPLETED],
		"partial": counts[PlanStatus.PARTIAL],
		"abandoned": counts[PlanStatus.ABANDONED],
		"success_rate": success_rate,
	}
