import pytest

import barline.event_emitter


def test_on_and_emit () -> None:

	"""Registered callbacks are called on emit."""

	emitter = barline.event_emitter.EventEmitter()
	received: list[int] = []

	emitter.on("tick", lambda v: received.append(v))
	emitter.emit("tick", 42)

	assert received == [42]


def test_emit_without_listeners () -> None:

	"""Emitting an event nobody listens to is harmless."""

	emitter = barline.event_emitter.EventEmitter()

	emitter.emit("tick", 1)


def test_any_event_listeners_run_after_named_ones () -> None:

	"""Catch-all listeners see every event, after the event's own listeners."""

	emitter = barline.event_emitter.EventEmitter()
	order: list[str] = []

	emitter.on(barline.event_emitter.ANY_EVENT, lambda v: order.append(f"any:{v}"))
	emitter.on("tick", lambda v: order.append(f"tick:{v}"))

	emitter.emit("tick", 1)
	emitter.emit("tock", 2)

	assert order == ["tick:1", "any:1", "any:2"]


def test_emitting_any_event_does_not_double_call () -> None:

	"""Emitting the wildcard name itself calls each catch-all listener once."""

	emitter = barline.event_emitter.EventEmitter()
	received: list[int] = []

	emitter.on(barline.event_emitter.ANY_EVENT, received.append)
	emitter.emit(barline.event_emitter.ANY_EVENT, 5)

	assert received == [5]


def test_off_removes_callback () -> None:

	"""off() prevents a previously registered callback from being called."""

	emitter = barline.event_emitter.EventEmitter()
	received: list[int] = []

	def cb (v: int) -> None:
		received.append(v)

	emitter.on("tick", cb)
	emitter.off("tick", cb)
	emitter.emit("tick", 1)

	assert received == []


def test_off_only_removes_target_callback () -> None:

	"""off() leaves other callbacks for the same event intact."""

	emitter = barline.event_emitter.EventEmitter()
	a: list[int] = []
	b: list[int] = []

	def cb_a (v: int) -> None:
		a.append(v)

	def cb_b (v: int) -> None:
		b.append(v)

	emitter.on("tick", cb_a)
	emitter.on("tick", cb_b)
	emitter.off("tick", cb_a)
	emitter.emit("tick", 7)

	assert a == []
	assert b == [7]


def test_off_raises_for_unregistered_callback () -> None:

	"""off() raises ValueError when the callback was never registered."""

	emitter = barline.event_emitter.EventEmitter()

	with pytest.raises(ValueError, match="tick"):
		emitter.off("tick", lambda: None)


def test_off_raises_after_already_removed () -> None:

	"""off() raises ValueError when called twice for the same callback."""

	emitter = barline.event_emitter.EventEmitter()

	def cb (v: int) -> None:
		pass

	emitter.on("tick", cb)
	emitter.off("tick", cb)

	with pytest.raises(ValueError):
		emitter.off("tick", cb)


def test_async_callbacks_are_rejected () -> None:

	"""Listeners run inside timer callbacks, so they must be plain functions."""

	emitter = barline.event_emitter.EventEmitter()

	async def cb (v: int) -> None:
		pass

	with pytest.raises(ValueError, match="synchronous"):
		emitter.on("tick", cb)


def test_listener_may_unregister_itself () -> None:

	"""Removing a listener during emit does not skip the others."""

	emitter = barline.event_emitter.EventEmitter()
	received: list[str] = []

	def once (v: int) -> None:
		received.append("once")
		emitter.off("tick", once)

	emitter.on("tick", once)
	emitter.on("tick", lambda v: received.append("always"))

	emitter.emit("tick", 1)
	emitter.emit("tick", 2)

	assert received == ["once", "always", "always"]
