"""
Plan Service - runs lifecycle commands and persists their effects.

The manager decides; the store records. Commands are serialized: a
command is prepared against the in-memory plans, its effects are written
to the store, and only then is it committed to the manager. A store
failure leaves the manager unchanged.
"""

import asyncio
import logging
from typing import Optional

from ..clock import Clock
from .activity import ActivityLog
from .commands import DEFAULT_POLICY, Command, CommandResult, LifecyclePolicy
from .lifecycle import PlanLifecycleManager
from .store import PlanStore

logger = logging.getLogger(__name__)


class PlanService:
	"""Async facade over a PlanLifecycleManager backed by a PlanStore."""

	def __init__(
		self,
		store: PlanStore,
		clock: Optional[Clock] = None,
		policy: LifecyclePolicy = DEFAULT_POLICY,
	):
		self.store = store
		self._clock = clock
		self._policy = policy
		self._lock = asyncio.Lock()
		self.manager = PlanLifecycleManager(clock=clock, policy=policy)

	async def init(self) -> None:
		"""Load the current plans and the activity log from the store."""
		async with self._lock:
			await self.store.init()
			plans = await self.store.load_plans()
			activity = ActivityLog(await self.store.get_activity())
			self.manager = PlanLifecycleManager(
				clock=self._clock,
				policy=self._policy,
				plans=plans,
				activity=activity,
			)
		logger.info(f"Loaded {len(plans)} plans and {len(activity)} activity entries")

	async def run(self, command: Command) -> CommandResult:
		"""Apply a command, persist what it changed, then commit it in memory."""
		async with self._lock:
			outcome = self.manager.prepare(command)
			if outcome.result.ok:
				try:
					await self._persist(outcome.result)
				except Exception as e:
					logger.error(f"{type(command).__name__} not persisted, manager left unchanged: {e}")
					raise
			return self.manager.commit(command, outcome)

	async def _persist(self, result: CommandResult) -> None:
		if result.removed_plan_id is not None:
			await self.store.delete_plan(result.removed_plan_id)
		for plan in (result.plan, result.derived_plan):
			if plan is not None:
				await self.store.save_plan(plan)
		for entry in result.events:
			await self.store.append_activity(entry)

	async def close(self) -> None:
		await self.store.close()


# Global service instance
_service: Optional[PlanService] = None
_service_lock = asyncio.Lock()


async def get_plan_service(db_path: str = "") -> PlanService:
	"""Get or create the global plan service. Callers never see an unloaded service."""
	global _service
	if _service is not None:
		return _service

	async with _service_lock:
		if _service is None:
			from ..config import get_config
			config = get_config()
			store = PlanStore(db_path or str(config.plans_db_path))
			service = PlanService(store, policy=config.lifecycle_policy())
			await service.init()
			_service = service
	return _service
