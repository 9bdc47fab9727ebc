"""Tests for the task state machine."""

import pytest

from ops_plans.plans.errors import InvalidTransitionError, NotFoundError
from ops_plans.plans.models import ActionStatus, TaskStatus
from ops_plans.plans.task_machine import (
	complete_task,
	mark_incomplete,
	start_task,
	toggle_action,
	transition_task,
)

from .helpers import EARLIER, NOW, make_action, make_task


class TestStartAndComplete:
	"""Tests for todo -> in-progress -> done."""

	def test_start_from_todo(self):
		task = start_task(make_task("t1"), NOW)
		assert task.status == TaskStatus.IN_PROGRESS
		assert task.started_at == NOW
		assert task.completed_at is None

	@pytest.mark.parametrize("status", [TaskStatus.IN_PROGRESS, TaskStatus.DONE, TaskStatus.INCOMPLETE])
	def test_start_rejected_outside_todo(self, status):
		task = make_task("t1", status)
		with pytest.raises(InvalidTransitionError):
			start_task(task, NOW)
		assert task.status == status

	def test_complete_from_in_progress_keeps_start_time(self):
		task = complete_task(make_task("t1", TaskStatus.IN_PROGRESS), NOW)
		assert task.status == TaskStatus.DONE
		assert task.started_at == EARLIER
		assert task.completed_at == NOW

	def test_complete_from_todo_starts_implicitly(self):
		task = complete_task(make_task("t1"), NOW)
		assert task.status == TaskStatus.DONE
		assert task.started_at == NOW
		assert task.completed_at == NOW

	def test_complete_done_task_rejected(self):
		task = make_task("t1", TaskStatus.DONE)
		with pytest.raises(InvalidTransitionError):
			complete_task(task, NOW)
		assert task.completed_at == EARLIER

	def test_transition_to_todo_rejected(self):
		with pytest.raises(InvalidTransitionError):
			transition_task(make_task("t1", TaskStatus.IN_PROGRESS), TaskStatus.TODO, NOW)

	def test_transition_to_incomplete_rejected(self):
		with pytest.raises(InvalidTransitionError):
			transition_task(make_task("t1"), TaskStatus.INCOMPLETE, NOW)


class TestToggleAction:
	"""Tests for flipping actions between pending and applied."""

	def test_apply_stamps_actual_and_time(self):
		task = make_task("t1", actions=[make_action("a1", target={"zone": "Z07"})])
		action = toggle_action(task, "a1", NOW)
		assert action.status == ActionStatus.APPLIED
		assert action.actual == {"zone": "Z07"}
		assert action.applied_at == NOW

	def test_toggle_twice_restores_state(self):
		task = make_task("t1", TaskStatus.IN_PROGRESS, actions=[make_action("a1", applied=True)])
		before = task.actions[0].model_copy(deep=True)

		toggle_action(task, "a1", NOW)
		assert task.actions[0].status == ActionStatus.PENDING
		assert task.actions[0].actual is None
		assert task.actions[0].applied_at is None

		toggle_action(task, "a1", NOW)
		after = task.actions[0]
		assert after.status == before.status
		assert after.actual == before.actual
		# Re-applying stamps the current time
		assert after.applied_at == NOW

	def test_toggle_pending_twice_restores_state(self):
		task = make_task("t1", actions=[make_action("a1")])
		before = task.actions[0].model_copy(deep=True)
		toggle_action(task, "a1", NOW)
		toggle_action(task, "a1", NOW)
		assert task.actions[0] == before

	@pytest.mark.parametrize("status", [TaskStatus.DONE, TaskStatus.INCOMPLETE])
	def test_frozen_task_rejects_toggle(self, status):
		task = make_task("t1", TaskStatus.DONE, actions=[make_action("a1")])
		task.status = status
		with pytest.raises(InvalidTransitionError):
			toggle_action(task, "a1", NOW)
		assert task.actions[0].status == ActionStatus.PENDING

	def test_unknown_action(self):
		with pytest.raises(NotFoundError):
			toggle_action(make_task("t1"), "missing", NOW)


class TestMarkIncomplete:
	def test_open_tasks_become_incomplete(self):
		assert mark_incomplete(make_task("t1")).status == TaskStatus.INCOMPLETE
		assert mark_incomplete(make_task("t2", TaskStatus.IN_PROGRESS)).status == TaskStatus.INCOMPLETE

	def test_done_tasks_untouched(self):
		assert mark_incomplete(make_task("t1", TaskStatus.DONE)).status == TaskStatus.DONE
