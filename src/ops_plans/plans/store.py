"""
Plan Store - SQLite-backed versioned plan storage.

Features:
- Version history: every save inserts a new row
- Optimistic locking on the plan version stamp
- Append-only activity table
- Search by status
"""

import logging
from pathlib import Path
from typing import Optional

import aiosqlite

from .models import ActivityEntry, Plan, PlanStatus

logger = logging.getLogger(__name__)


class OptimisticLockError(Exception):
	"""Raised when a concurrent update conflicts."""
	pass


class PlanNotFoundError(Exception):
	"""Raised when a plan is not found."""
	pass


class PlanStore:
	"""
	SQLite-backed plan storage with versioning.

	Usage:
		store = PlanStore("data/plans.db")
		await store.init()

		# Save a plan produced by a command (plan.version must be current + 1)
		await store.save_plan(plan)

		# Load everything back into a manager
		plans = await store.load_plans()
	"""

	def __init__(self, db_path: str):
		"""Initialize the plan store."""
		self.db_path = Path(db_path)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)
		self._db: Optional[aiosqlite.Connection] = None

	async def init(self):
		"""Initialize the database schema."""
		self._db = await aiosqlite.connect(str(self.db_path))
		self._db.row_factory = aiosqlite.Row

		await self._db.execute("""
			CREATE TABLE IF NOT EXISTS plans (
				id TEXT NOT NULL,
				version INTEGER NOT NULL,
				status TEXT NOT NULL,
				data TEXT NOT NULL,
				is_current INTEGER DEFAULT 1,
				PRIMARY KEY (id, version)
			)
		""")

		await self._db.execute("""
			CREATE INDEX IF NOT EXISTS idx_plans_current ON plans(is_current, status)
		""")

		await self._db.execute("""
			CREATE TABLE IF NOT EXISTS activity (
				seq INTEGER PRIMARY KEY AUTOINCREMENT,
				id TEXT NOT NULL UNIQUE,
				plan_id TEXT NOT NULL,
				type TEXT NOT NULL,
				data TEXT NOT NULL,
				timestamp TEXT NOT NULL
			)
		""")

		await self._db.execute("""
			CREATE INDEX IF NOT EXISTS idx_activity_plan ON activity(plan_id)
		""")

		await self._db.commit()
		logger.info(f"Plan store initialized: {self.db_path}")

	async def close(self):
		"""Close the database connection."""
		if self._db:
			await self._db.close()
			self._db = None

	async def _current_version(self, plan_id: str) -> Optional[int]:
		async with self._db.execute(
			"SELECT version FROM plans WHERE id = ? AND is_current = 1",
			(plan_id,)
		) as cursor:
			row = await cursor.fetchone()
		return row["version"] if row else None

	async def save_plan(self, plan: Plan) -> Plan:
		"""
		Save a new version of a plan.

		Args:
			plan: Plan to save. A new plan may have any version; an
				existing plan must be exactly one version ahead of the
				stored one.

		Returns:
			The saved Plan

		Raises:
			OptimisticLockError: If the stored version is not plan.version - 1
		"""
		if not self._db:
			await self.init()

		current_version = await self._current_version(plan.id)
		if current_version is not None and current_version != plan.version - 1:
			raise OptimisticLockError(
				f"Version mismatch for {plan.id}: stored {current_version}, saving {plan.version}"
			)

		await self._db.execute(
			"UPDATE plans SET is_current = 0 WHERE id = ?",
			(plan.id,)
		)
		await self._db.execute(
			"""
			INSERT INTO plans (id, version, status, data, is_current)
			VALUES (?, ?, ?, ?, 1)
			""",
			(plan.id, plan.version, plan.status.value, plan.model_dump_json())
		)
		await self._db.commit()

		if current_version is None:
			logger.info(f"Created plan {plan.id}")
		else:
			logger.info(f"Updated plan {plan.id} to version {plan.version}")
		return plan

	async def get_plan(self, plan_id: str, version: Optional[int] = None) -> Optional[Plan]:
		"""
		Get a plan by ID, optionally at a specific version.

		Args:
			plan_id: Plan ID
			version: Optional version number (defaults to current)

		Returns:
			Plan object or None if not found
		"""
		if not self._db:
			await self.init()

		if version:
			query = "SELECT data FROM plans WHERE id = ? AND version = ?"
			params = (plan_id, version)
		else:
			query = "SELECT data FROM plans WHERE id = ? AND is_current = 1"
			params = (plan_id,)

		async with self._db.execute(query, params) as cursor:
			row = await cursor.fetchone()

		if not row:
			return None

		return Plan.model_validate_json(row["data"])

	async def get_plan_history(self, plan_id: str) -> list[Plan]:
		"""All stored versions of a plan, newest first."""
		if not self._db:
			await self.init()

		async with self._db.execute(
			"SELECT data FROM plans WHERE id = ? ORDER BY version DESC",
			(plan_id,)
		) as cursor:
			rows = await cursor.fetchall()

		return [Plan.model_validate_json(row["data"]) for row in rows]

	async def search_plans(self, status: Optional[PlanStatus] = None) -> list[Plan]:
		"""
		Current versions of all plans, optionally filtered by status.

		Args:
			status: Filter by status

		Returns:
			List of matching Plan objects
		"""
		if not self._db:
			await self.init()

		conditions = ["is_current = 1"]
		params = []

		if status:
			conditions.append("status = ?")
			params.append(status.value)

		where_clause = " AND ".join(conditions)

		async with self._db.execute(
			f"SELECT data FROM plans WHERE {where_clause} ORDER BY id",
			params
		) as cursor:
			rows = await cursor.fetchall()

		return [Plan.model_validate_json(row["data"]) for row in rows]

	async def load_plans(self) -> list[Plan]:
		return await self.search_plans()

	async def delete_plan(self, plan_id: str):
		"""
		Delete a plan and all its versions.

		Raises:
			PlanNotFoundError: If no version of the plan is stored
		"""
		if not self._db:
			await self.init()

		cursor = await self._db.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
		await self._db.commit()
		if cursor.rowcount == 0:
			raise PlanNotFoundError(f"Plan not found: {plan_id}")
		logger.info(f"Deleted plan {plan_id}")

	async def append_activity(self, entry: ActivityEntry) -> None:
		"""Append an activity entry. Entries are never updated."""
		if not self._db:
			await self.init()

		await self._db.execute(
			"""
			INSERT INTO activity (id, plan_id, type, data, timestamp)
			VALUES (?, ?, ?, ?, ?)
			""",
			(entry.id, entry.plan_id, entry.type.value, entry.model_dump_json(), entry.timestamp.isoformat())
		)
		await self._db.commit()

	async def get_activity(self, plan_id: Optional[str] = None) -> list[ActivityEntry]:
		"""Activity entries in the order they were appended."""
		if not self._db:
			await self.init()

		if plan_id:
			query = "SELECT data FROM activity WHERE plan_id = ? ORDER BY seq"
			params = (plan_id,)
		else:
			query = "SELECT data FROM activity ORDER BY seq"
			params = ()

		async with self._db.execute(query, params) as cursor:
			rows = await cursor.fetchall()

		return [ActivityEntry.model_validate_json(row["data"]) for row in rows]
