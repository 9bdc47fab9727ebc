"""Visualizer package - Rich terminal views for plans."""

from .plan_view import (
	render_activity,
	render_plan_progress,
	render_plan_summary,
	render_plan_table,
	render_stats,
)

__all__ = [
	"render_activity",
	"render_plan_progress",
	"render_plan_summary",
	"render_plan_table",
	"render_stats",
]
