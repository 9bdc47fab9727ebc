"""Rich views for plans and their activity."""

from datetime import datetime
from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..plans.models import ActionStatus, ActivityEntry, ActivityType, Plan, PlanStatus, TaskStatus
from ..plans.progress import get_progress
from ..plans.resolver import assess_completion

STATUS_ICONS = {
	TaskStatus.TODO: "[dim][ ][/dim]",
	TaskStatus.IN_PROGRESS: "[yellow][~][/yellow]",
	TaskStatus.DONE: "[green][x][/green]",
	TaskStatus.INCOMPLETE: "[red][-][/red]",
}

PLAN_STYLES = {
	PlanStatus.ACTIVE: "green",
	PlanStatus.DRAFT: "dim",
	PlanStatus.PENDING_APPROVAL: "yellow",
	PlanStatus.COMPLETED: "cyan",
	PlanStatus.PARTIAL: "yellow",
	PlanStatus.ABANDONED: "red",
}


def format_time(value: Optional[datetime]) -> str:
	"""HH:MM for display, "-" when unset."""
	return value.strftime("%H:%M") if value else "-"


def render_plan_progress(plan: Plan, console: Optional[Console] = None) -> None:
	"""Render a plan as a Rich Tree with tasks and their actions."""
	console = console or Console()

	progress = get_progress(plan)
	tree = Tree(
		f"[bold]{plan.name}[/bold]  "
		f"[dim]({progress['done_tasks']}/{progress['total_tasks']} tasks, {plan.progress}%)[/dim]"
	)

	for task in plan.tasks:
		icon = STATUS_ICONS.get(task.status, "[ ]")
		stats = task.action_stats()
		label = f"{icon} {task.title}"
		if stats["total"]:
			label += f" [dim]({stats['applied']}/{stats['total']} actions applied)[/dim]"
		branch = tree.add(label)

		for action in task.actions:
			mark = "[green]applied[/green]" if action.status == ActionStatus.APPLIED else "[dim]pending[/dim]"
			branch.add(f"{action.entity.name} [dim]{action.type}[/dim] {mark}")

	console.print(tree)


def render_plan_summary(plan: Plan, console: Optional[Console] = None) -> None:
	"""Render a summary panel for a plan."""
	console = console or Console()

	progress = get_progress(plan)
	lines = []
	lines.append(f"[bold]Status:[/bold] {plan.status.value}")
	if plan.outcome:
		lines.append(f"[bold]Outcome:[/bold] {plan.outcome.value}")
	lines.append(f"[bold]Priority:[/bold] {plan.priority.value}")
	lines.append(f"[bold]Shift:[/bold] {plan.shift_context or '-'}")
	lines.append(f"[bold]Target:[/bold] {format_time(plan.target_completion)}")
	if plan.origin:
		lines.append(f"[bold]Origin:[/bold] {plan.origin.type} {plan.origin.title}".rstrip())
	lines.append("")
	lines.append(
		f"[bold]Progress:[/bold] {progress['done_tasks']}/{progress['total_tasks']} tasks ({plan.progress}%)"
	)
	lines.append(
		f"[bold]Actions:[/bold] {progress['applied_actions']}/{progress['total_actions']} applied"
	)

	if plan.success_criteria:
		lines.append("")
		lines.append("[bold]Success Criteria:[/bold]")
		for c in plan.success_criteria:
			mark = "[green]met[/green]" if c.met else "[red]unmet[/red]"
			lines.append(f"  - {c.text} ({mark})")

	if plan.status == PlanStatus.ACTIVE:
		assessment = assess_completion(plan)
		if assessment.incomplete_work:
			lines.append("")
			lines.append(
				f"[yellow]Carry-over:[/yellow] {assessment.open_tasks} open tasks, "
				f"{assessment.pending_actions} pending actions, {assessment.unmet_criteria} unmet criteria"
			)

	style = PLAN_STYLES.get(plan.status, "cyan")
	console.print(Panel("\n".join(lines), title=f"Plan: {plan.name}", border_style=style))


def render_plan_table(plans: Iterable[Plan], console: Optional[Console] = None) -> None:
	"""Render a table of plans."""
	console = console or Console()

	table = Table(title="Plans")
	table.add_column("ID", style="dim")
	table.add_column("Name")
	table.add_column("Status")
	table.add_column("Outcome")
	table.add_column("Progress", justify="right")
	table.add_column("Shift")

	for plan in plans:
		style = PLAN_STYLES.get(plan.status, "")
		table.add_row(
			plan.id,
			plan.name,
			f"[{style}]{plan.status.value}[/{style}]" if style else plan.status.value,
			plan.outcome.value if plan.outcome else "",
			f"{plan.progress}%",
			plan.shift_context,
		)

	console.print(table)


def describe_entry(entry: ActivityEntry) -> str:
	"""One-line description of an activity entry."""
	payload = entry.payload
	user = payload.get("user", "")
	if entry.type == ActivityType.COMMENT:
		return f"{user}: {payload.get('content', '')}"
	if entry.type == ActivityType.METRIC:
		return f"{payload.get('name', '')} = {payload.get('value')} {payload.get('unit', '')}".rstrip()
	return f"{user} {payload.get('action', '')} {payload.get('target', '')}".strip()


def render_activity(entries: Iterable[ActivityEntry], console: Optional[Console] = None) -> None:
	"""Render activity entries as a table."""
	console = console or Console()

	table = Table(title="Activity")
	table.add_column("Time", style="dim")
	table.add_column("Type")
	table.add_column("Entry")

	for entry in entries:
		table.add_row(format_time(entry.timestamp), entry.type.value, describe_entry(entry))

	console.print(table)


def render_stats(stats: dict, console: Optional[Console] = None) -> None:
	"""Render plan statistics as a panel."""
	console = console or Console()

	lines = [
		f"[bold]Active:[/bold] {stats['active']}",
		f"[bold]Drafts:[/bold] {stats['drafts']}",
		f"[bold]Pending approval:[/bold] {stats['pending']}",
		f"[bold]Completed:[/bold] {stats['completed']}  "
		f"[bold]Partial:[/bold] {stats['partial']}  "
		f"[bold]Abandoned:[/bold] {stats['abandoned']}",
		f"[bold]Success rate:[/bold] {stats['success_rate']}%",
	]
	console.print(Panel("\n".join(lines), title="Plan Stats", border_style="cyan"))
