import asyncio
import bisect
import dataclasses
import functools
import logging
import typing

import barline.actions
import barline.compiler
import barline.constants.timing
import barline.event_emitter
import barline.music
import barline.notation
import barline.timers


logger = logging.getLogger(__name__)


SEQUENCE_START = "sequenceStart"
SEQUENCE_END = "sequenceEnd"
BAR_START = "barStart"
BAR_END = "barEnd"
NOTE_START = "noteStart"
NOTE_END = "noteEnd"
REST_START = "restStart"
REST_END = "restEnd"
SUSTAIN_PEDAL_UP = barline.actions.SUSTAIN_PEDAL_UP
SUSTAIN_PEDAL_DOWN = barline.actions.SUSTAIN_PEDAL_DOWN

STATUS_IDLE = "idle"
STATUS_PLAYING = "playing"
STATUS_PAUSED = "paused"
STATUS_STOPPED = "stopped"


@dataclasses.dataclass
class SequencerEvent:

	"""
	An event emitted by the transport.

	``bar_index`` is set for bar events, ``action`` for note and rest events.
	``time_ms`` is the timer's clock when the event was emitted.
	"""

	type: str
	time_ms: float = 0.0
	bar_index: typing.Optional[int] = None
	action: typing.Optional[barline.actions.Action] = None


EventCallback = typing.Callable[[SequencerEvent], typing.Any]


@dataclasses.dataclass
class TransportState:

	"""
	Everything that changes while a sequence plays.

	``clock_ms`` is the start of the next frame to be scanned.
	"""

	bpm: float
	key_signature: str
	status: str = STATUS_IDLE
	clock_ms: float = 0.0
	bar_index: typing.Optional[int] = None
	tick_handle: typing.Optional[barline.timers.TimerHandle] = None


class Transport:

	"""
	Plays a compiled sequence under play / pause / stop control.

	The transport ticks once per frame (every 100 ms by default).  Each tick
	finds the groups starting inside the frame and schedules each one for its
	exact offset within the frame, so dispatch is finer than the frame period.

	Pausing or stopping cancels only the next tick.  Groups already scheduled
	for the current frame still play.

	Example:
		```python
		transport = Transport(timer=barline.timers.VirtualTimer())
		transport.init_sequence_with_notation("bpm=120 | C4 E4 G4 C5", on_event=print)
		transport.play_sequence()
		transport.timer.run_until_idle()
		```
	"""

	def __init__ (
		self,
		timer: typing.Optional[barline.timers.Timer] = None,
		initial_bpm: float = barline.constants.timing.DEFAULT_BPM,
		frame_rate: float = barline.constants.timing.FRAME_RATE
	) -> None:

		"""
		Parameters:
			timer: Where deferred callbacks run.  Defaults to an `AsyncioTimer`
				on the running event loop.
			initial_bpm: Tempo before the first ``bpm=`` directive.
			frame_rate: Ticks per second.
		"""

		if initial_bpm <= 0:
			raise ValueError("BPM must be positive")

		if frame_rate <= 0:
			raise ValueError("Frame rate must be positive")

		self.timer: barline.timers.Timer = timer if timer is not None else barline.timers.AsyncioTimer()
		self.initial_bpm = initial_bpm
		self.frame_length_ms = 1000 / frame_rate
		self.events = barline.event_emitter.EventEmitter()

		self.sequence: typing.Optional[barline.compiler.CompiledSequence] = None
		self.state = self._fresh_state()

		self._start_times: typing.List[float] = []
		self._sink: typing.Optional[EventCallback] = None


	def _fresh_state (self) -> TransportState:

		return TransportState(bpm=self.initial_bpm, key_signature=barline.constants.timing.DEFAULT_KEY_SIGNATURE)


	@property
	def is_playing (self) -> bool:

		"""True while the transport is ticking."""

		return self.state.status == STATUS_PLAYING


	@property
	def status (self) -> str:

		"""One of ``idle``, ``playing``, ``paused`` or ``stopped``."""

		return self.state.status


	def on_event (self, event_name: str, callback: EventCallback) -> None:

		"""
		Register a callback for one event type (or ``barline.event_emitter.ANY_EVENT``).
		"""

		self.events.on(event_name, callback)


	def init_sequence (self, bars: typing.List[barline.actions.Bar], on_event: typing.Optional[EventCallback] = None) -> None:

		"""
		Compile *bars* and arm the transport, replacing any previous sequence.

		Parameters:
			bars: Bars to play.
			on_event: Receives every `SequencerEvent` of this sequence.
		"""

		self._cancel_tick()

		if self._sink is not None:
			self.events.off(barline.event_emitter.ANY_EVENT, self._sink)
			self._sink = None

		self.sequence = barline.compiler.compile(bars, initial_bpm=self.initial_bpm)
		self.state = self._fresh_state()
		self._start_times = [group.start_time_in_sequence_ms for group in self.sequence.groups]

		if on_event is not None:
			self._sink = on_event
			self.events.on(barline.event_emitter.ANY_EVENT, on_event)

		logger.info(
			f"Sequence ready: {self.sequence.bar_count} bars, {len(self.sequence.groups)} groups, "
			f"{self.sequence.total_duration_ms:.0f} ms"
		)


	def init_sequence_with_notation (self, notation: str, on_event: typing.Optional[EventCallback] = None) -> None:

		"""
		Parse *notation* and arm the transport with the result.
		"""

		self.init_sequence(barline.notation.parse(notation), on_event)


	def play_sequence (self) -> None:

		"""
		Start or resume playback.

		Does nothing before `init_sequence`, while already playing, or when
		the sequence is empty.  ``sequenceStart`` is emitted only when playing
		from the beginning.
		"""

		if self.sequence is None or self.is_playing or self.sequence.is_empty:
			return

		self.state.status = STATUS_PLAYING

		logger.info(f"Playback started at {self.state.clock_ms:.0f} ms")

		if self.state.clock_ms == 0:
			self._emit(SEQUENCE_START)

		self._tick()


	def pause_sequence (self) -> None:

		"""
		Pause playback, keeping the clock for `play_sequence` to resume from.
		"""

		if not self.is_playing:
			return

		self._cancel_tick()
		self.state.status = STATUS_PAUSED

		logger.info(f"Playback paused at {self.state.clock_ms:.0f} ms")


	def stop_sequence (self) -> None:

		"""
		Stop and rewind to the beginning.

		Always emits ``sequenceEnd`` once a sequence has been initialised, even
		when nothing is playing, so it can be used to force a reset.  Tempo and
		key signature return to their initial values.
		"""

		if self.sequence is None:
			return

		self._cancel_tick()
		self.state = self._fresh_state()
		self.state.status = STATUS_STOPPED

		logger.info("Playback stopped")

		self._emit(SEQUENCE_END)


	async def play (self) -> None:

		"""
		Convenience method to start playback and wait for the sequence to end.

		Requires an `AsyncioTimer` (the default).
		"""

		finished = asyncio.Event()

		def on_end (event: SequencerEvent) -> None:
			finished.set()

		self.events.on(SEQUENCE_END, on_end)

		try:
			self.play_sequence()

			if self.is_playing:
				await finished.wait()

		finally:
			self.events.off(SEQUENCE_END, on_end)


	def _cancel_tick (self) -> None:

		if self.state.tick_handle is not None:
			self.state.tick_handle.cancel()
			self.state.tick_handle = None


	def _emit (self, event_type: str, bar_index: typing.Optional[int] = None, action: typing.Optional[barline.actions.Action] = None) -> None:

		event = SequencerEvent(type=event_type, time_ms=self.timer.now(), bar_index=bar_index, action=action)

		logger.debug(f"{event_type} at {event.time_ms:.1f} ms")

		self.events.emit(event_type, event)


	def _emit_for (self, sequence: barline.compiler.CompiledSequence, event_type: str, action: barline.actions.Action) -> None:

		"""Emit a deferred end event unless its sequence has been replaced."""

		if sequence is not self.sequence:
			return

		self._emit(event_type, action=action)


	def _tick (self) -> None:

		"""
		Schedule every group starting in ``[clock, clock + frame)`` and queue the next tick.
		"""

		sequence = self.sequence

		if sequence is None or not self.is_playing:
			return

		self.state.tick_handle = None
		frame_start = self.state.clock_ms
		frame_end = frame_start + self.frame_length_ms

		first = bisect.bisect_left(self._start_times, frame_start)
		last = bisect.bisect_left(self._start_times, frame_end)

		for group in sequence.groups[first:last]:

			if group.bar_index != self.state.bar_index:

				if self.state.bar_index is not None:
					self._emit(BAR_END, bar_index=self.state.bar_index)

				self._emit(BAR_START, bar_index=group.bar_index)
				self.state.bar_index = group.bar_index

			self.timer.call_later(
				group.start_time_in_sequence_ms - frame_start,
				functools.partial(self._dispatch_group, sequence, group)
			)

		if frame_start >= sequence.total_duration_ms:

			if self.state.bar_index is not None:
				self._emit(BAR_END, bar_index=self.state.bar_index)

			self.stop_sequence()
			return

		self.state.clock_ms = frame_end
		self.state.tick_handle = self.timer.call_later(self.frame_length_ms, self._tick)


	def _dispatch_group (self, sequence: barline.compiler.CompiledSequence, group: barline.actions.SequencedActionGroup) -> None:

		# Callbacks left over from a replaced sequence are dropped.
		if sequence is not self.sequence:
			return

		for action in group.actions:
			self._play_action(sequence, group, action)


	def _play_action (
		self,
		sequence: barline.compiler.CompiledSequence,
		group: barline.actions.SequencedActionGroup,
		action: barline.actions.Action
	) -> None:

		if action.type == barline.actions.NOTE and action.note is not None:
			self._play_note(sequence, group, action)

		elif action.type == barline.actions.REST and action.rest is not None:

			self._emit(REST_START, action=action)

			rest_length = barline.music.duration_ms(self.state.bpm, action.rest.duration, action.rest.dotted)
			self.timer.call_later(rest_length, functools.partial(self._emit_for, sequence, REST_END, action))

		elif action.type in barline.actions.PEDAL_ACTION_TYPES:
			self._emit(action.type)

		elif action.type == barline.actions.SET_BPM and action.bpm is not None:
			self.state.bpm = action.bpm

		elif action.type == barline.actions.SET_KEY_SIGNATURE and action.key_signature is not None:
			self.state.key_signature = action.key_signature


	def _spell (self, pitch: str) -> str:

		return barline.music.adjust_pitch_to_key_signature(self.state.key_signature, pitch)


	def _play_note (
		self,
		sequence: barline.compiler.CompiledSequence,
		group: barline.actions.SequencedActionGroup,
		action: barline.actions.Action
	) -> None:

		"""
		Respell for the current key, then start the note unless a tie from the
		previous note group is already holding it.
		"""

		written = typing.cast(barline.actions.NoteWithDuration, action.note)
		note = dataclasses.replace(written, pitch=self._spell(written.pitch))
		action = dataclasses.replace(action, note=note)

		if self._is_held_by_tie(sequence, group.sequence_number, note.pitch):
			logger.debug(f"{note.pitch} held by tie, not re-triggered")
			return

		self._emit(NOTE_START, action=action)

		sounding_length = self._sounding_duration_ms(sequence, group.sequence_number, note)
		self.timer.call_later(sounding_length, functools.partial(self._emit_for, sequence, NOTE_END, action))


	def _adjacent_note_group_index (self, sequence: barline.compiler.CompiledSequence, index: int, step: int) -> typing.Optional[int]:

		"""
		Index of the nearest note group before (``step=-1``) or after (``step=1``) *index*.

		Pedal and directive groups are skipped.  A rest ends the search.
		"""

		cursor = index + step

		while 0 <= cursor < len(sequence.groups):

			candidate = sequence.groups[cursor]

			if barline.actions.is_note_group(candidate):
				return cursor

			if barline.actions.is_rest_group(candidate):
				return None

			cursor += step

		return None


	def _is_held_by_tie (self, sequence: barline.compiler.CompiledSequence, index: int, pitch: str) -> bool:

		previous_index = self._adjacent_note_group_index(sequence, index, step=-1)

		if previous_index is None:
			return False

		return any(
			previous.note is not None and previous.note.tied and self._spell(previous.note.pitch) == pitch
			for previous in sequence.groups[previous_index].actions
		)


	def _sounding_duration_ms (self, sequence: barline.compiler.CompiledSequence, index: int, note: barline.actions.NoteWithDuration) -> float:

		"""
		Own length plus the length of every note the tie chain reaches.
		"""

		total = barline.music.duration_ms(self.state.bpm, note.duration, note.dotted)
		tied = note.tied
		cursor = index

		while tied:

			next_index = self._adjacent_note_group_index(sequence, cursor, step=1)

			if next_index is None:
				break

			continuation = next(
				(
					candidate.note for candidate in sequence.groups[next_index].actions
					if candidate.note is not None and self._spell(candidate.note.pitch) == note.pitch
				),
				None
			)

			if continuation is None:
				break

			total += barline.music.duration_ms(self.state.bpm, continuation.duration, continuation.dotted)
			tied = continuation.tied
			cursor = next_index

		return total
