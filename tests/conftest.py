import typing

import mido
import pytest

import barline.timers
import barline.transport


class FakeMidiOut:

	"""Minimal MIDI output stub for tests."""

	def __init__ (self) -> None:

		"""Start with no sent messages."""

		self.sent: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		"""Record outgoing MIDI messages."""

		self.sent.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


# Module-level reference so tests can access the most recently opened FakeMidiOut.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> typing.List[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut()
	_current_fake_output = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture
def timer () -> barline.timers.VirtualTimer:

	"""A virtual clock starting at 0 ms."""

	return barline.timers.VirtualTimer()


@pytest.fixture
def transport (timer: barline.timers.VirtualTimer) -> barline.transport.Transport:

	"""A transport driven by the virtual clock."""

	return barline.transport.Transport(timer=timer)


Summary = typing.List[typing.Tuple[float, str, typing.Any]]


def _summarise (events: typing.List[barline.transport.SequencerEvent]) -> Summary:

	"""Reduce events to ``(time, type, detail)`` tuples for compact assertions."""

	summary = []

	for event in events:

		if event.action is not None and event.action.note is not None:
			detail: typing.Any = event.action.note.pitch
		elif event.action is not None and event.action.rest is not None:
			detail = event.action.rest.duration
		else:
			detail = event.bar_index

		summary.append((event.time_ms, event.type, detail))

	return summary


@pytest.fixture
def summarise () -> typing.Callable[[typing.List[barline.transport.SequencerEvent]], Summary]:

	"""Reduce events to ``(time, type, detail)`` tuples for compact assertions."""

	return _summarise
