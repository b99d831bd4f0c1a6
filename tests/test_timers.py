import asyncio

import pytest

import barline.timers


def test_virtual_timer_runs_in_time_order () -> None:

	"""Callbacks run by due time, ties broken by scheduling order."""

	timer = barline.timers.VirtualTimer()
	ran: list[str] = []

	timer.call_later(200, lambda: ran.append("late"))
	timer.call_later(100, lambda: ran.append("first"))
	timer.call_later(100, lambda: ran.append("second"))

	timer.run_until_idle()

	assert ran == ["first", "second", "late"]
	assert timer.now() == 200


def test_virtual_timer_advance_stops_at_target () -> None:

	"""advance() runs only what falls due and leaves the clock at the target."""

	timer = barline.timers.VirtualTimer()
	ran: list[float] = []

	timer.call_later(250, lambda: ran.append(timer.now()))

	timer.advance(100)

	assert ran == []
	assert timer.now() == 100

	timer.advance(150)

	assert ran == [250]
	assert timer.now() == 250


def test_virtual_timer_runs_callbacks_scheduled_during_advance () -> None:

	"""Callbacks queued by callbacks run in the same advance if they fall due."""

	timer = barline.timers.VirtualTimer()
	ran: list[float] = []

	def chain () -> None:
		ran.append(timer.now())
		if len(ran) < 5:
			timer.call_later(100, chain)

	timer.call_later(0, chain)
	timer.advance(250)

	assert ran == [0, 100, 200]


def test_virtual_timer_cancel () -> None:

	"""A cancelled callback never runs and no longer counts as pending."""

	timer = barline.timers.VirtualTimer()
	ran: list[str] = []

	handle = timer.call_later(100, lambda: ran.append("cancelled"))
	timer.call_later(100, lambda: ran.append("kept"))

	assert timer.pending == 2

	handle.cancel()

	assert timer.pending == 1

	timer.run_until_idle()

	assert ran == ["kept"]


def test_virtual_timer_negative_delay_runs_now () -> None:

	"""Negative delays are clamped to the current time."""

	timer = barline.timers.VirtualTimer(start_ms=500)
	ran: list[float] = []

	timer.call_later(-50, lambda: ran.append(timer.now()))
	timer.advance(0)

	assert ran == [500]


def test_run_until_idle_limit () -> None:

	"""A limit stops endlessly rescheduling callbacks."""

	timer = barline.timers.VirtualTimer()

	def forever () -> None:
		timer.call_later(100, forever)

	timer.call_later(0, forever)
	timer.run_until_idle(limit_ms=1000)

	assert timer.now() == 1000
	assert timer.pending == 1


def test_timers_satisfy_protocol () -> None:

	"""Both implementations match the Timer protocol."""

	assert isinstance(barline.timers.VirtualTimer(), barline.timers.Timer)
	assert isinstance(barline.timers.AsyncioTimer(), barline.timers.Timer)


@pytest.mark.asyncio
async def test_asyncio_timer_calls_back () -> None:

	"""AsyncioTimer runs callbacks on the running loop after the delay."""

	timer = barline.timers.AsyncioTimer()
	done = asyncio.Event()
	started = timer.now()
	fired_at: list[float] = []

	def callback () -> None:
		fired_at.append(timer.now())
		done.set()

	timer.call_later(20, callback)

	await asyncio.wait_for(done.wait(), timeout=2)

	assert fired_at[0] - started >= 15


@pytest.mark.asyncio
async def test_asyncio_timer_cancel () -> None:

	"""A cancelled asyncio handle does not fire."""

	timer = barline.timers.AsyncioTimer()
	ran: list[str] = []

	handle = timer.call_later(10, lambda: ran.append("x"))
	handle.cancel()

	await asyncio.sleep(0.05)

	assert ran == []
