"""CLI for ops-plans: serve, list, show, activity and stats commands."""

import argparse
import asyncio
import sys

from .config import load_config
from .logging_config import setup_logging
from .plans.models import PlanStatus


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	from .server import mcp
	mcp.run()


async def _load_service():
	from .plans.service import get_plan_service
	return await get_plan_service()


def cmd_list(args: argparse.Namespace) -> None:
	"""List plans as a table."""
	from .visualizer.plan_view import render_plan_table

	status = None
	if args.status:
		try:
			status = PlanStatus(args.status)
		except ValueError:
			valid = ", ".join(s.value for s in PlanStatus)
			print(f"Invalid status: {args.status} (valid: {valid})")
			sys.exit(1)

	service = asyncio.run(_load_service())
	render_plan_table(service.manager.list_plans(status=status, query=args.query or ""))


def cmd_show(args: argparse.Namespace) -> None:
	"""Show one plan as a tree or summary panel."""
	from .visualizer.plan_view import render_plan_progress, render_plan_summary

	service = asyncio.run(_load_service())
	plan = service.manager.get_plan(args.plan_id)
	if plan is None:
		print(f"No plan found: {args.plan_id}")
		sys.exit(1)

	if args.summary:
		render_plan_summary(plan)
	else:
		render_plan_progress(plan)


def cmd_activity(args: argparse.Namespace) -> None:
	"""Show a plan's activity log, newest first."""
	from .visualizer.plan_view import render_activity

	service = asyncio.run(_load_service())
	render_activity(service.manager.get_activity(args.plan_id, newest_first=True))


def cmd_stats(args: argparse.Namespace) -> None:
	"""Show plan counts and success rate."""
	from .visualizer.plan_view import render_stats

	service = asyncio.run(_load_service())
	render_stats(service.manager.stats())
	conflicts = service.manager.active_conflicts()
	if conflicts:
		names = ", ".join(p.name for p in conflicts)
		print(f"Warning: {len(conflicts)} plans are active at once: {names}")


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="ops-plans",
		description="Track operational plans from draft to completion",
	)
	subparsers = parser.add_subparsers(dest="command")

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	# list
	list_parser = subparsers.add_parser("list", help="List plans")
	list_parser.add_argument("--status", type=str, default=None, help="Filter by plan status")
	list_parser.add_argument("--query", type=str, default=None, help="Match name, creator or shift")
	list_parser.set_defaults(func=cmd_list)

	# show
	show_parser = subparsers.add_parser("show", help="Show a plan")
	show_parser.add_argument("plan_id", help="Plan ID")
	show_parser.add_argument("--summary", action="store_true", help="Show summary panel instead of tree")
	show_parser.set_defaults(func=cmd_show)

	# activity
	activity_parser = subparsers.add_parser("activity", help="Show a plan's activity log")
	activity_parser.add_argument("plan_id", help="Plan ID")
	activity_parser.set_defaults(func=cmd_activity)

	# stats
	stats_parser = subparsers.add_parser("stats", help="Plan statistics")
	stats_parser.set_defaults(func=cmd_stats)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	config = load_config()
	setup_logging(log_dir=str(config.log_dir))
	args.func(args)
