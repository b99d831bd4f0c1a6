"""One-shot timers for the transport.

The transport only needs two things from a timer: run a callback after a
delay, and cancel it before it runs.  Two implementations are provided:

- `AsyncioTimer` runs callbacks on the asyncio event loop (live playback).
- `VirtualTimer` runs callbacks in simulated time, as fast as possible
  (offline rendering and tests).

All delays and times are in milliseconds.
"""

import asyncio
import dataclasses
import heapq
import itertools
import typing


@typing.runtime_checkable
class TimerHandle (typing.Protocol):

	"""
	Handle returned by `Timer.call_later`.
	"""

	def cancel (self) -> None:

		"""
		Prevent the callback from running if it has not run yet.
		"""

		...


@typing.runtime_checkable
class Timer (typing.Protocol):

	"""
	Protocol for schedule-and-cancel timers used by the transport.
	"""

	def call_later (self, delay_ms: float, callback: typing.Callable[[], typing.Any]) -> TimerHandle:

		"""
		Run *callback* once, *delay_ms* from now.
		"""

		...


	def now (self) -> float:

		"""
		Current time in milliseconds.
		"""

		...


class AsyncioTimer:

	"""
	Timer backed by ``loop.call_later`` on the running event loop.
	"""

	def __init__ (self, loop: typing.Optional[asyncio.AbstractEventLoop] = None) -> None:

		"""
		Use *loop* if given, otherwise the loop running at call time.
		"""

		self._loop = loop


	def _get_loop (self) -> asyncio.AbstractEventLoop:

		return self._loop if self._loop is not None else asyncio.get_running_loop()


	def call_later (self, delay_ms: float, callback: typing.Callable[[], typing.Any]) -> asyncio.TimerHandle:

		"""Schedule *callback* on the event loop."""

		return self._get_loop().call_later(max(0.0, delay_ms) / 1000, callback)


	def now (self) -> float:

		"""The loop's monotonic clock in milliseconds."""

		return self._get_loop().time() * 1000


@dataclasses.dataclass (order=True)
class VirtualTimerHandle:

	"""
	A callback queued on a `VirtualTimer`.
	"""

	when_ms: float
	order: int
	callback: typing.Callable[[], typing.Any] = dataclasses.field(compare=False)
	cancelled: bool = dataclasses.field(compare=False, default=False)


	def cancel (self) -> None:

		"""Skip this callback when its time comes."""

		self.cancelled = True


class VirtualTimer:

	"""
	Timer that advances only when told to.

	Callbacks due at the same time run in the order they were scheduled.
	Callbacks may schedule further callbacks; those run in the same `advance`
	call if they fall due before its target time.

	Example:
		```python
		timer = VirtualTimer()
		timer.call_later(250, lambda: print("a"))
		timer.advance(100)   # nothing yet
		timer.advance(150)   # prints "a", timer.now() == 250
		```
	"""

	def __init__ (self, start_ms: float = 0.0) -> None:

		"""
		Start the virtual clock at *start_ms*.
		"""

		self._now = start_ms
		self._queue: typing.List[VirtualTimerHandle] = []
		self._counter = itertools.count()


	def now (self) -> float:

		"""Current virtual time in milliseconds."""

		return self._now


	def call_later (self, delay_ms: float, callback: typing.Callable[[], typing.Any]) -> VirtualTimerHandle:

		"""Queue *callback* at ``now() + delay_ms`` (negative delays run at ``now()``)."""

		handle = VirtualTimerHandle(
			when_ms = self._now + max(0.0, delay_ms),
			order = next(self._counter),
			callback = callback
		)

		heapq.heappush(self._queue, handle)

		return handle


	@property
	def pending (self) -> int:

		"""Number of queued callbacks that have not been cancelled."""

		return sum(1 for handle in self._queue if not handle.cancelled)


	def _run_next (self) -> None:

		handle = heapq.heappop(self._queue)

		if handle.cancelled:
			return

		self._now = max(self._now, handle.when_ms)
		handle.callback()


	def advance (self, delay_ms: float) -> None:

		"""
		Move the clock forward by *delay_ms*, running every callback that falls due.
		"""

		target = self._now + delay_ms

		while self._queue and self._queue[0].when_ms <= target:
			self._run_next()

		self._now = max(self._now, target)


	def run_until_idle (self, limit_ms: typing.Optional[float] = None) -> None:

		"""
		Run queued callbacks until none remain.

		Parameters:
			limit_ms: Stop once the clock would pass this time.  Guards against
				callbacks that keep rescheduling themselves forever.
		"""

		while self._queue:

			if limit_ms is not None and self._queue[0].when_ms > limit_ms:
				break

			self._run_next()
