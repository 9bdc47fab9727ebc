"""
Scenario Projector - previews the effect of a draft plan.

Projected values come from an external predictor; this module only
derives deltas and shapes the preview for display. A preview is driven
by an explicit PreviewContext so that several previews can coexist.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidTransitionError
from .models import ImpactDelta, Plan, PlanStatus

SCENARIO_RAMP = timedelta(hours=1)


class PreviewContext(BaseModel):
	"""Which draft plan is previewed and the scores it is compared against."""
	model_config = ConfigDict(frozen=True)

	plan_id: str
	baseline: dict[str, float] = Field(default_factory=dict)


class RootCause(BaseModel):
	id: str
	title: str
	severity: str = "low"


class ExploratorySnapshot(BaseModel):
	"""Predicted system state before and after a plan, as supplied by the predictor."""
	before: dict[str, float] = Field(default_factory=dict)
	after: dict[str, float] = Field(default_factory=dict)
	alerts_resolved: int = 0
	alerts_new: int = 0
	remaining_root_causes: list[RootCause] = Field(default_factory=list)


class ScenarioPreview(BaseModel):
	plan_id: str
	deltas: dict[str, float]
	values: dict[str, float] = Field(default_factory=dict)


class InsightsProvider(Protocol):
	"""External predictor supplying exploratory snapshots."""

	def exploratory_snapshot(self, plan: Plan) -> Mapping[str, Any]:
		...


def project_deltas(
	projected_impact: Optional[Mapping[str, ImpactDelta]],
	categories: Optional[Iterable[str]] = None,
) -> dict[str, float]:
	"""
	projected - base for each requested category.

	Categories missing from the impact map are left out of the result.
	All categories are returned when none are requested.
	"""
	if not projected_impact:
		return {}
	keys = list(projected_impact) if categories is None else list(categories)
	return {
		key: projected_impact[key].projected - projected_impact[key].base
		for key in keys
		if key in projected_impact
	}


def preview_plan(
	plan: Plan,
	context: PreviewContext,
	categories: Optional[Iterable[str]] = None,
) -> ScenarioPreview:
	"""Deltas of a draft plan, applied to the context baseline where one is given."""
	if context.plan_id != plan.id:
		raise ValueError(f"Preview context is for {context.plan_id}, not {plan.id}")
	if plan.status != PlanStatus.DRAFT:
		raise InvalidTransitionError(f"Only draft plans can be previewed (plan is {plan.status.value})")

	deltas = project_deltas(plan.projected_impact, categories)
	values = {
		key: context.baseline[key] + delta
		for key, delta in deltas.items()
		if key in context.baseline
	}
	return ScenarioPreview(plan_id=plan.id, deltas=deltas, values=values)


def run_exploratory_preview(plan: Plan, provider: InsightsProvider) -> ExploratorySnapshot:
	"""Ask the predictor for a snapshot and validate its shape. Read-only."""
	return ExploratorySnapshot.model_validate(provider.exploratory_snapshot(plan))


def scenario_value(
	base: float,
	delta: float,
	trigger: datetime,
	at: datetime,
	ramp: timedelta = SCENARIO_RAMP,
) -> int:
	"""Score at `at` once a scenario triggered at `trigger` ramps in linearly."""
	if at < trigger:
		return math.floor(base + 0.5)
	factor = 1.0 if ramp <= timedelta(0) else min(1.0, (at - trigger) / ramp)
	# rounded half up, like progress
	return math.floor(base + delta * factor + 0.5)
