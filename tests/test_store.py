"""Tests for the SQLite plan store."""

from pathlib import Path

import pytest
import pytest_asyncio

from ops_plans.plans.models import ActivityEntry, ActivityType, PlanStatus
from ops_plans.plans.store import OptimisticLockError, PlanNotFoundError, PlanStore

from .helpers import NOW, make_plan, make_scenario_plan


def _entry(entry_id: str, plan_id: str = "plan-001") -> ActivityEntry:
	return ActivityEntry(
		id=entry_id,
		plan_id=plan_id,
		type=ActivityType.COMMENT,
		payload={"user": "You", "content": entry_id},
		timestamp=NOW,
	)


@pytest_asyncio.fixture
async def store(tmp_path: Path):
	store = PlanStore(str(tmp_path / "plans.db"))
	await store.init()
	yield store
	await store.close()


class TestPlanVersions:
	@pytest.mark.asyncio
	async def test_save_and_get(self, store):
		plan = make_scenario_plan()
		await store.save_plan(plan)

		loaded = await store.get_plan("plan-001")
		assert loaded == plan

	@pytest.mark.asyncio
	async def test_get_missing_returns_none(self, store):
		assert await store.get_plan("missing") is None

	@pytest.mark.asyncio
	async def test_next_version_saved(self, store):
		plan = make_plan()
		await store.save_plan(plan)

		updated = plan.model_copy(update={"version": 2, "name": "Renamed"})
		await store.save_plan(updated)

		assert (await store.get_plan("plan-001")).name == "Renamed"
		assert (await store.get_plan("plan-001", version=1)).name == plan.name

	@pytest.mark.asyncio
	async def test_stale_version_rejected(self, store):
		plan = make_plan()
		await store.save_plan(plan)
		await store.save_plan(plan.model_copy(update={"version": 2}))

		with pytest.raises(OptimisticLockError):
			await store.save_plan(plan.model_copy(update={"version": 2, "name": "Stale"}))
		assert (await store.get_plan("plan-001")).name == plan.name

	@pytest.mark.asyncio
	async def test_history_newest_first(self, store):
		plan = make_plan()
		await store.save_plan(plan)
		await store.save_plan(plan.model_copy(update={"version": 2}))
		await store.save_plan(plan.model_copy(update={"version": 3}))

		history = await store.get_plan_history("plan-001")
		assert [p.version for p in history] == [3, 2, 1]


class TestSearchAndDelete:
	@pytest.mark.asyncio
	async def test_search_by_status(self, store):
		await store.save_plan(make_plan("p1", PlanStatus.ACTIVE))
		await store.save_plan(make_plan("p2", PlanStatus.DRAFT))
		await store.save_plan(make_plan("p3", PlanStatus.DRAFT))

		drafts = await store.search_plans(status=PlanStatus.DRAFT)
		assert [p.id for p in drafts] == ["p2", "p3"]
		assert len(await store.load_plans()) == 3

	@pytest.mark.asyncio
	async def test_search_uses_current_version(self, store):
		plan = make_plan("p1", PlanStatus.DRAFT)
		await store.save_plan(plan)
		await store.save_plan(plan.model_copy(update={"version": 2, "status": PlanStatus.ACTIVE}))

		assert await store.search_plans(status=PlanStatus.DRAFT) == []
		assert [p.id for p in await store.search_plans(status=PlanStatus.ACTIVE)] == ["p1"]

	@pytest.mark.asyncio
	async def test_delete(self, store):
		plan = make_plan(status=PlanStatus.DRAFT)
		await store.save_plan(plan)
		await store.delete_plan("plan-001")
		assert await store.get_plan("plan-001") is None
		assert await store.get_plan_history("plan-001") == []

	@pytest.mark.asyncio
	async def test_delete_missing(self, store):
		with pytest.raises(PlanNotFoundError):
			await store.delete_plan("missing")


class TestActivity:
	@pytest.mark.asyncio
	async def test_append_order_kept(self, store):
		for entry_id in ("e3", "e1", "e2"):
			await store.append_activity(_entry(entry_id))

		entries = await store.get_activity("plan-001")
		assert [e.id for e in entries] == ["e3", "e1", "e2"]
		assert entries[0].payload["content"] == "e3"

	@pytest.mark.asyncio
	async def test_filter_by_plan(self, store):
		await store.append_activity(_entry("e1", "plan-001"))
		await store.append_activity(_entry("e2", "plan-002"))

		assert [e.id for e in await store.get_activity("plan-002")] == ["e2"]
		assert len(await store.get_activity()) == 2

	@pytest.mark.asyncio
	async def test_activity_survives_plan_delete(self, store):
		await store.save_plan(make_plan(status=PlanStatus.DRAFT))
		await store.append_activity(_entry("e1"))
		await store.delete_plan("plan-001")
		assert len(await store.get_activity("plan-001")) == 1
