"""
Task state machine.

Tasks move todo -> in-progress -> done. `incomplete` is only applied when
the owning plan is closed with unfinished work. Tasks are mutated in place;
callers pass copies when they need atomicity.
"""

from datetime import datetime

from .errors import InvalidTransitionError, NotFoundError
from .models import Action, ActionStatus, Task, TaskStatus


def start_task(task: Task, now: datetime) -> Task:
	"""Move a todo task to in-progress."""
	if task.status != TaskStatus.TODO:
		raise InvalidTransitionError(f"Cannot start task {task.id} from {task.status.value}")
	task.status = TaskStatus.IN_PROGRESS
	task.started_at = now
	return task


def complete_task(task: Task, now: datetime) -> Task:
	"""Mark a task done. A todo task is started and completed in one step."""
	if task.status == TaskStatus.TODO:
		start_task(task, now)
	if task.status != TaskStatus.IN_PROGRESS:
		raise InvalidTransitionError(f"Cannot complete task {task.id} from {task.status.value}")
	task.status = TaskStatus.DONE
	task.completed_at = now
	return task


def transition_task(task: Task, new_status: TaskStatus, now: datetime) -> Task:
	"""Apply a user-requested status change."""
	if new_status == TaskStatus.IN_PROGRESS:
		return start_task(task, now)
	if new_status == TaskStatus.DONE:
		return complete_task(task, now)
	raise InvalidTransitionError(f"Tasks cannot be moved to {new_status.value} directly")


def toggle_action(task: Task, action_id: str, now: datetime) -> Action:
	"""Flip an action between pending and applied."""
	if not task.editable:
		raise InvalidTransitionError(f"Task {task.id} is {task.status.value}; its actions are frozen")

	action = task.get_action(action_id)
	if action is None:
		raise NotFoundError(f"Action {action_id} not found in task {task.id}")

	if action.status == ActionStatus.APPLIED:
		action.status = ActionStatus.PENDING
		action.actual = None
		action.applied_at = None
	else:
		action.status = ActionStatus.APPLIED
		action.actual = action.target
		action.applied_at = now
	return action


def mark_incomplete(task: Task) -> Task:
	"""Freeze an unfinished task at plan closure."""
	if task.editable:
		task.status = TaskStatus.INCOMPLETE
	return task
