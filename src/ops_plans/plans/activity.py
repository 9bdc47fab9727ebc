"""Append-only activity log keyed by plan id."""

import logging
from typing import Iterable

from .models import ActivityEntry

logger = logging.getLogger(__name__)


class ActivityLog:
	"""
	Chronological record of plan events.

	Entries are stored in the order they were appended. Entries of a
	discarded plan stay in the log.
	"""

	def __init__(self, entries: Iterable[ActivityEntry] = ()):
		self._entries: dict[str, list[ActivityEntry]] = {}
		for entry in entries:
			self.append(entry)

	def append(self, entry: ActivityEntry) -> ActivityEntry:
		self._entries.setdefault(entry.plan_id, []).append(entry)
		logger.debug(f"Activity {entry.type.value} recorded for plan {entry.plan_id}")
		return entry

	def entries(self, plan_id: str, newest_first: bool = False) -> list[ActivityEntry]:
		"""Entries for a plan, oldest first unless asked otherwise."""
		entries = list(self._entries.get(plan_id, []))
		if newest_first:
			entries.reverse()
		return entries

	def __len__(self) -> int:
		return sum(len(e) for e in self._entries.values())
