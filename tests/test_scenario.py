"""Tests for scenario previews of draft plans."""

from datetime import timedelta

import pytest

from ops_plans.plans.errors import InvalidTransitionError
from ops_plans.plans.models import ImpactDelta, PlanStatus
from ops_plans.plans.scenario import (
	PreviewContext,
	project_deltas,
	preview_plan,
	run_exploratory_preview,
	scenario_value,
)

from .helpers import NOW, make_plan

IMPACT = {
	"staff": ImpactDelta(base=76, projected=88, delta=12),
	"schedule": ImpactDelta(base=91, projected=89, delta=-2),
}


class TestProjectDeltas:
	def test_all_categories(self):
		assert project_deltas(IMPACT) == {"staff": 12, "schedule": -2}

	def test_requested_categories(self):
		assert project_deltas(IMPACT, ["schedule"]) == {"schedule": -2}

	def test_missing_category_omitted(self):
		assert project_deltas(IMPACT, ["staff", "equipment"]) == {"staff": 12}

	def test_no_impact(self):
		assert project_deltas(None, ["staff"]) == {}

	def test_delta_field_ignored(self):
		impact = {"staff": ImpactDelta(base=70, projected=75, delta=99)}
		assert project_deltas(impact) == {"staff": 5}


class TestPreviewPlan:
	def test_values_from_baseline(self):
		plan = make_plan(status=PlanStatus.DRAFT)
		context = PreviewContext(plan_id=plan.id, baseline={"staff": 70, "schedule": 90})

		preview = preview_plan(plan, context)

		assert preview.deltas == {"staff": 12, "schedule": -2}
		assert preview.values == {"staff": 82, "schedule": 88}

	def test_independent_contexts(self):
		first = make_plan("plan-a", PlanStatus.DRAFT)
		second = make_plan("plan-b", PlanStatus.DRAFT)
		a = preview_plan(first, PreviewContext(plan_id="plan-a", baseline={"staff": 10}))
		b = preview_plan(second, PreviewContext(plan_id="plan-b", baseline={"staff": 50}))
		assert a.values["staff"] == 22
		assert b.values["staff"] == 62

	def test_context_mismatch(self):
		with pytest.raises(ValueError):
			preview_plan(make_plan(status=PlanStatus.DRAFT), PreviewContext(plan_id="other"))

	def test_only_drafts(self):
		with pytest.raises(InvalidTransitionError):
			preview_plan(make_plan(status=PlanStatus.ACTIVE), PreviewContext(plan_id="plan-001"))


class TestExploratoryPreview:
	def test_validates_provider_snapshot(self):
		class Provider:
			def exploratory_snapshot(self, plan):
				return {
					"before": {"staff": 76},
					"after": {"staff": 88},
					"alerts_resolved": 2,
					"remaining_root_causes": [{"id": "rc1", "title": "Z07 staging", "severity": "high"}],
				}

		snapshot = run_exploratory_preview(make_plan(status=PlanStatus.DRAFT), Provider())
		assert snapshot.alerts_resolved == 2
		assert snapshot.alerts_new == 0
		assert snapshot.remaining_root_causes[0].severity == "high"


class TestScenarioValue:
	def test_before_trigger(self):
		assert scenario_value(76, 12, NOW, NOW - timedelta(minutes=5)) == 76

	def test_ramps_linearly(self):
		assert scenario_value(76, 12, NOW, NOW + timedelta(minutes=30)) == 82

	def test_full_after_ramp(self):
		assert scenario_value(76, 12, NOW, NOW + timedelta(hours=3)) == 88

	def test_zero_ramp_is_immediate(self):
		assert scenario_value(76, 12, NOW, NOW, ramp=timedelta(0)) == 88
