"""Plan lifecycle tools."""

import json

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from ..config import Config
from ..plans.commands import (
	AcceptHandoff,
	AddComment,
	CommandResult,
	CompletePlan,
	CreatePlan,
	DiscardDraft,
	ExecuteDraft,
	RecordMetric,
	StopPlan,
	ToggleAction,
	UpdateTaskStatus,
)
from ..plans.errors import PlanError
from ..plans.models import Plan, PlanStatus, TaskStatus
from ..plans.progress import get_progress
from ..plans.scenario import PreviewContext
from ..plans.service import get_plan_service


def _plan_row(plan: Plan) -> dict:
	return {
		"id": plan.id,
		"name": plan.name,
		"status": plan.status.value,
		"outcome": plan.outcome.value if plan.outcome else None,
		"priority": plan.priority.value,
		"progress": plan.progress,
		"shift_context": plan.shift_context,
		"created_by": plan.created_by.name if plan.created_by else None,
		"version": plan.version,
	}


def _result_json(result: CommandResult) -> str:
	if not result.ok:
		return json.dumps({"error": result.error.value, "detail": result.detail})
	return json.dumps({"success": True, **result.to_dict()}, indent=2)


def _invalid(e: ValidationError) -> str:
	return json.dumps({"error": "missing_required_field", "detail": str(e)})


def register_plans_tools(mcp: FastMCP, config: Config) -> None:
	"""Register plan lifecycle tools."""

	@mcp.tool()
	async def list_plans(status: str = "", query: str = "") -> str:
		"""
		List plans, optionally filtered by status or a text match.

		Args:
			status: Filter by status (draft, active, pending-approval, completed, partial, abandoned)
			query: Case-insensitive match on plan name, creator or shift
		"""
		service = await get_plan_service()

		plan_status = None
		if status:
			try:
				plan_status = PlanStatus(status)
			except ValueError:
				return json.dumps({
					"error": f"Invalid status: {status}",
					"valid_statuses": [s.value for s in PlanStatus],
				})

		plans = service.manager.list_plans(status=plan_status, query=query)
		return json.dumps({
			"plans": [_plan_row(p) for p in plans],
			"total": len(plans),
		}, indent=2)

	@mcp.tool()
	async def get_plan(plan_id: str) -> str:
		"""
		Get a plan by ID with its progress breakdown.

		Args:
			plan_id: The plan ID
		"""
		service = await get_plan_service()
		plan = service.manager.get_plan(plan_id)

		if not plan:
			return json.dumps({"error": "not_found", "detail": f"Plan not found: {plan_id}"})

		return json.dumps({
			"plan": plan.model_dump(mode="json"),
			"progress": get_progress(plan),
			"completion": service.manager.assess(plan_id).to_dict(),
		}, indent=2)

	@mcp.tool()
	async def get_plan_activity(plan_id: str, newest_first: bool = True) -> str:
		"""
		Get the activity log of a plan.

		Args:
			plan_id: The plan ID
			newest_first: Order entries newest first (default) or oldest first
		"""
		service = await get_plan_service()
		entries = service.manager.get_activity(plan_id, newest_first=newest_first)
		return json.dumps({
			"plan_id": plan_id,
			"entries": [e.model_dump(mode="json") for e in entries],
			"total": len(entries),
		}, indent=2)

	@mcp.tool()
	async def get_plan_stats() -> str:
		"""Plan counts by status, success rate, and any conflicting active plans."""
		service = await get_plan_service()
		return json.dumps({
			"stats": service.manager.stats(),
			"active_conflicts": [p.id for p in service.manager.active_conflicts()],
		}, indent=2)

	@mcp.tool()
	async def get_plan_history(plan_id: str) -> str:
		"""
		Get all stored versions of a plan.

		Args:
			plan_id: Plan ID
		"""
		service = await get_plan_service()
		versions = await service.store.get_plan_history(plan_id)

		if not versions:
			return json.dumps({"error": "not_found", "detail": f"Plan not found: {plan_id}"})

		return json.dumps({
			"plan_id": plan_id,
			"versions": [
				{
					"version": p.version,
					"status": p.status.value,
					"progress": p.progress,
				}
				for p in versions
			],
			"total_versions": len(versions),
		}, indent=2)

	@mcp.tool()
	async def create_plan(
		name: str,
		tasks_json: str = "[]",
		success_criteria: str = "",
		priority: str = "normal",
		shift_context: str = "",
		created_by: str = "",
		activate_immediately: bool = False,
	) -> str:
		"""
		Create a plan as a draft, or as an active plan.

		Args:
			name: Plan name
			tasks_json: JSON list of tasks ({"id", "title", "assignee", "actions": [...]})
			success_criteria: Semicolon-separated success criteria
			priority: normal, high or critical
			shift_context: Shift the plan runs in (e.g. "Day")
			created_by: Name of the plan author
			activate_immediately: Start the plan right away instead of drafting it
		"""
		service = await get_plan_service()

		try:
			tasks = json.loads(tasks_json or "[]")
		except json.JSONDecodeError as e:
			return json.dumps({"error": "missing_required_field", "detail": f"Invalid tasks_json: {e}"})

		criteria = [
			{"id": f"c{i + 1}", "text": c.strip()}
			for i, c in enumerate(success_criteria.split(";")) if c.strip()
		]

		try:
			command = CreatePlan(
				name=name,
				tasks=tasks,
				success_criteria=criteria,
				priority=priority,
				shift_context=shift_context,
				created_by={"name": created_by} if created_by else None,
				activate_immediately=activate_immediately,
			)
		except ValidationError as e:
			return _invalid(e)

		return _result_json(await service.run(command))

	@mcp.tool()
	async def update_task_status(plan_id: str, task_id: str, status: str) -> str:
		"""
		Start or complete a task.

		Args:
			plan_id: Plan ID
			task_id: Task ID
			status: in-progress or done
		"""
		service = await get_plan_service()

		try:
			task_status = TaskStatus(status)
		except ValueError:
			return json.dumps({
				"error": f"Invalid status: {status}",
				"valid_statuses": [TaskStatus.IN_PROGRESS.value, TaskStatus.DONE.value],
			})

		command = UpdateTaskStatus(plan_id=plan_id, task_id=task_id, status=task_status)
		return _result_json(await service.run(command))

	@mcp.tool()
	async def toggle_action(plan_id: str, task_id: str, action_id: str) -> str:
		"""
		Flip an action between pending and applied.

		Args:
			plan_id: Plan ID
			task_id: Task owning the action
			action_id: Action ID
		"""
		service = await get_plan_service()
		command = ToggleAction(plan_id=plan_id, task_id=task_id, action_id=action_id)
		return _result_json(await service.run(command))

	@mcp.tool()
	async def add_comment(plan_id: str, text: str, user: str = "You") -> str:
		"""
		Add a comment to a plan's activity log.

		Args:
			plan_id: Plan ID
			text: Comment text
			user: Comment author
		"""
		service = await get_plan_service()
		return _result_json(await service.run(AddComment(plan_id=plan_id, text=text, actor=user)))

	@mcp.tool()
	async def record_metric(plan_id: str, name: str, value: float, unit: str = "") -> str:
		"""
		Record a metric reading against a plan.

		Args:
			plan_id: Plan ID
			name: Metric name (e.g. "Picking Throughput")
			value: Observed value
			unit: Optional unit (e.g. "orders/hr")
		"""
		service = await get_plan_service()
		command = RecordMetric(plan_id=plan_id, name=name, value=value, unit=unit)
		return _result_json(await service.run(command))

	@mcp.tool()
	async def discard_draft(plan_id: str) -> str:
		"""
		Delete a draft plan.

		Args:
			plan_id: Plan ID
		"""
		service = await get_plan_service()
		return _result_json(await service.run(DiscardDraft(plan_id=plan_id)))

	@mcp.tool()
	async def execute_draft(plan_id: str) -> str:
		"""
		Make a draft plan active.

		Args:
			plan_id: Plan ID
		"""
		service = await get_plan_service()
		return _result_json(await service.run(ExecuteDraft(plan_id=plan_id)))

	@mcp.tool()
	async def stop_plan(plan_id: str, reason: str, notes: str = "") -> str:
		"""
		Stop an active plan before it is finished.

		Args:
			plan_id: Plan ID
			reason: changed, not-working, priority, conflict or other
			notes: Notes for the next plan
		"""
		service = await get_plan_service()
		return _result_json(await service.run(StopPlan(plan_id=plan_id, reason=reason, notes=notes)))

	@mcp.tool()
	async def complete_plan(plan_id: str, disposition: str = "complete", notes: str = "") -> str:
		"""
		Complete an active plan.

		Args:
			plan_id: Plan ID
			disposition: complete (no carry-over), follow-on, handoff or close
			notes: Completion notes
		"""
		service = await get_plan_service()
		command = CompletePlan(plan_id=plan_id, disposition=disposition, notes=notes)
		return _result_json(await service.run(command))

	@mcp.tool()
	async def accept_handoff(plan_id: str, accepted_by: str) -> str:
		"""
		Accept a handoff plan on behalf of the receiving shift.

		Args:
			plan_id: Handoff plan ID
			accepted_by: Name of the accepting lead
		"""
		service = await get_plan_service()
		return _result_json(await service.run(AcceptHandoff(plan_id=plan_id, actor=accepted_by)))

	@mcp.tool()
	async def preview_plan(plan_id: str, categories: str = "", baseline_json: str = "{}") -> str:
		"""
		Preview the score deltas of a draft plan without executing it.

		Args:
			plan_id: Draft plan ID
			categories: Comma-separated categories (empty = all)
			baseline_json: JSON object of current scores per category
		"""
		service = await get_plan_service()

		try:
			context = PreviewContext(plan_id=plan_id, baseline=json.loads(baseline_json or "{}"))
		except (json.JSONDecodeError, ValidationError) as e:
			return json.dumps({"error": "missing_required_field", "detail": f"Invalid baseline_json: {e}"})

		keys = [c.strip() for c in categories.split(",") if c.strip()] or None
		try:
			preview = service.manager.preview(context, keys)
		except PlanError as e:
			return json.dumps({"error": e.kind.value, "detail": e.detail})

		return json.dumps(preview.model_dump(), indent=2)
