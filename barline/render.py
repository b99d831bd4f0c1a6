"""Offline rendering.

Runs a sequence through a transport on a `VirtualTimer`, so a whole piece
renders in a fraction of a second.  The event list is the same one a live
listener would see, with ``time_ms`` measured from the start of playback.
"""

import logging
import typing

import mido

import barline.actions
import barline.constants.timing
import barline.constants.velocity
import barline.midi_output
import barline.notation
import barline.timers
import barline.transport


logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 480

NotationOrBars = typing.Union[str, typing.List[barline.actions.Bar]]


def render_events (
	source: NotationOrBars,
	initial_bpm: float = barline.constants.timing.DEFAULT_BPM,
	frame_rate: float = barline.constants.timing.FRAME_RATE
) -> typing.List[barline.transport.SequencerEvent]:

	"""
	Play *source* to the end in virtual time and return every event.

	Parameters:
		source: A notation string or a list of bars.
		initial_bpm: Tempo before the first ``bpm=`` directive.
		frame_rate: Transport ticks per second.
	"""

	bars = barline.notation.parse(source) if isinstance(source, str) else source

	timer = barline.timers.VirtualTimer()
	transport = barline.transport.Transport(timer=timer, initial_bpm=initial_bpm, frame_rate=frame_rate)
	events: typing.List[barline.transport.SequencerEvent] = []

	transport.init_sequence(bars, on_event=events.append)
	transport.play_sequence()
	timer.run_until_idle()

	return events


def render_to_midi (
	source: NotationOrBars,
	filename: typing.Optional[str] = None,
	channel: int = 0,
	velocity: int = barline.constants.velocity.DEFAULT_VELOCITY,
	initial_bpm: float = barline.constants.timing.DEFAULT_BPM
) -> mido.MidiFile:

	"""
	Render *source* to a type 1 MIDI file.

	Event times are absolute, so tempo directives in the notation are already
	baked into the note positions; the file carries a single tempo of
	*initial_bpm*.

	Parameters:
		source: A notation string or a list of bars.
		filename: Where to save the file.  When None the file is only returned.
		channel: MIDI channel 0-15.
		velocity: Note on velocity.
		initial_bpm: Tempo before the first ``bpm=`` directive.

	Returns:
		The `mido.MidiFile`.
	"""

	events = render_events(source, initial_bpm=initial_bpm)
	listener = barline.midi_output.MidiOutputListener(channel=channel, velocity=velocity)
	tempo = mido.bpm2tempo(initial_bpm)

	mid = mido.MidiFile(type=1)
	mid.ticks_per_beat = TICKS_PER_BEAT
	track = mido.MidiTrack()
	mid.tracks.append(track)

	track.append(mido.MetaMessage('set_tempo', tempo=tempo, time=0))

	start_ms = events[0].time_ms if events else 0.0
	last_tick = 0

	for event in events:

		# Absolute ticks first, so rounding never accumulates.
		tick = int(round(mido.second2tick((event.time_ms - start_ms) / 1000, TICKS_PER_BEAT, tempo)))

		for message in listener.messages_for(event):
			message.time = max(0, tick - last_tick)
			track.append(message)
			last_tick = max(last_tick, tick)

	if filename is not None:
		mid.save(filename)
		logger.info(f"Saved {filename} ({len(track)} messages)")

	return mid
