"""Clock and timer sources driving the engagement detector."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Callable, Optional, Protocol


class Clock(Protocol):
	def now_ms(self) -> float:
		...


class TimerHandle(Protocol):
	def cancel(self) -> None:
		...


class TimerSource(Protocol):
	def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
		...


class SystemClock:
	def now_ms(self) -> float:
		return time.monotonic() * 1000


class ManualClock:
	"""Clock that only moves when told to."""

	def __init__(self, start_ms: float = 0.0) -> None:
		self._now = float(start_ms)

	def now_ms(self) -> float:
		return self._now

	def advance(self, ms: float) -> float:
		self._now += max(0.0, float(ms))
		return self._now

	def set(self, now_ms: float) -> None:
		self._now = float(now_ms)


class AsyncioTimerSource:
	"""Schedules callbacks on the running event loop."""

	def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
		self._loop = loop

	def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
		loop = self._loop or asyncio.get_running_loop()
		return loop.call_later(max(0.0, delay_ms) / 1000, callback)


class _ManualHandle:
	__slots__ = ("cancelled",)

	def __init__(self) -> None:
		self.cancelled = False

	def cancel(self) -> None:
		self.cancelled = True


class ManualTimerSource:
	"""Timer source bound to a ``ManualClock``; ``advance`` fires due callbacks in order."""

	def __init__(self, clock: ManualClock) -> None:
		self.clock = clock
		self._queue: list[tuple[float, int, Callable[[], None], _ManualHandle]] = []
		self._seq = itertools.count()

	def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _ManualHandle:
		handle = _ManualHandle()
		due = self.clock.now_ms() + max(0.0, float(delay_ms))
		heapq.heappush(self._queue, (due, next(self._seq), callback, handle))
		return handle

	@property
	def pending(self) -> int:
		return sum(1 for *_, handle in self._queue if not handle.cancelled)

	def advance(self, ms: float) -> int:
		"""Move the clock forward, running every callback that comes due; return how many ran."""
		target = self.clock.now_ms() + max(0.0, float(ms))
		fired = 0
		while self._queue and self._queue[0][0] <= target:
			due, _, callback, handle = heapq.heappop(self._queue)
			if handle.cancelled:
				continue
			self.clock.set(due)
			callback()
			fired += 1
		self.clock.set(target)
		return fired
