"""Tests for offline rendering: event capture and MIDI file output."""

import pathlib

import mido

import barline.notation
import barline.render
import barline.transport


def test_render_events_returns_full_stream () -> None:

	"""Rendering plays the sequence to the end in virtual time."""

	events = barline.render.render_events("C4 D4")
	types = [event.type for event in events]

	assert types[0] == barline.transport.SEQUENCE_START
	assert types[-1] == barline.transport.SEQUENCE_END
	assert types.count(barline.transport.NOTE_START) == 2
	assert events[-1].time_ms == 2000.0


def test_render_events_accepts_bars () -> None:

	"""Bars can be rendered as well as notation."""

	events = barline.render.render_events(barline.notation.parse("bpm=60 | C4"))
	ends = [event.time_ms for event in events if event.type == barline.transport.NOTE_END]

	assert ends == [1000.0]


def test_render_events_initial_bpm () -> None:

	"""The initial tempo applies until a directive changes it."""

	events = barline.render.render_events("C4", initial_bpm=60)

	assert events[-1].time_ms == 4000.0


def test_render_events_empty () -> None:

	"""Nothing to play renders no events."""

	assert barline.render.render_events("bpm=90") == []


# ---------------------------------------------------------------------------
# MIDI file output
# ---------------------------------------------------------------------------

def test_render_to_midi_ticks () -> None:

	"""Quarter notes at 120 BPM are 480 ticks apart."""

	mid = barline.render.render_to_midi("C4 D4")
	track = mid.tracks[0]

	assert mid.ticks_per_beat == barline.render.TICKS_PER_BEAT
	assert track[0].type == 'set_tempo'
	assert track[0].tempo == mido.bpm2tempo(120)

	notes = [(message.type, message.note, message.time) for message in track if message.type in ('note_on', 'note_off')]

	assert notes == [
		('note_on', 60, 0),
		('note_off', 60, 480),
		('note_on', 62, 0),
		('note_off', 62, 480),
	]


def test_render_to_midi_ends_with_pedal_release () -> None:

	"""The end of the sequence lifts the pedal at the final bar line."""

	mid = barline.render.render_to_midi("C4 D4")
	last = mid.tracks[0][-1]

	assert last.type == 'control_change'
	assert last.control == 64
	assert last.value == 0
	assert last.time == 960


def test_render_to_midi_channel_and_velocity () -> None:

	"""Messages use the requested channel and velocity."""

	mid = barline.render.render_to_midi("C4", channel=9, velocity=64)
	note_on = next(message for message in mid.tracks[0] if message.type == 'note_on')

	assert note_on.channel == 9
	assert note_on.velocity == 64


def test_render_to_midi_saves_file (tmp_path: pathlib.Path) -> None:

	"""A filename writes a readable MIDI file."""

	filename = str(tmp_path / "out.mid")

	barline.render.render_to_midi("C4_E4_G4:2 ## C5", filename=filename)

	loaded = mido.MidiFile(filename)
	note_ons = [message for message in loaded.tracks[0] if message.type == 'note_on']

	assert [message.note for message in note_ons] == [60, 64, 67, 72]
