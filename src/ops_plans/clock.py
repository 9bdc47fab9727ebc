"""Clock providers. Commands read the clock once and pass the timestamp down."""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
	def now(self) -> datetime:
		...


class SystemClock:
	"""Wall clock in UTC."""

	def now(self) -> datetime:
		return datetime.now(timezone.utc)


class FixedClock:
	"""Clock that only moves when told to. Used by tests and replays."""

	def __init__(self, start: datetime):
		self._now = start

	def now(self) -> datetime:
		return self._now

	def advance(self, **kwargs) -> datetime:
		self._now = self._now + timedelta(**kwargs)
		return self._now
