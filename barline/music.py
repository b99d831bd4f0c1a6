"""Pitch spelling and duration arithmetic.

This module holds the pure helpers the compiler and the transport share.

Pitches are strings: a letter ``A``-``G``, an optional accidental (``#``, ``b``
or ``n`` for an explicit natural) and an octave ``0``-``8`` (``"C4"``, ``"F#3"``,
``"Bn5"``).  Relative pitches omit the octave or give a signed offset from
octave 4 (``"C"`` → ``"C4"``, ``"E+1"`` → ``"E5"``, ``"G-2"`` → ``"G2"``).

Durations are denominators of a whole note (see ``barline.constants.durations``)
and all times are in milliseconds.

Module-level helpers:
- `quarter_note_ms(bpm)`: Length of one quarter note.
- `bar_length_ms(bpm, time_signature)`: Nominal length of one bar.
- `duration_ms(bpm, duration, dotted)`: Length of a note or rest value.
- `rests_for_duration_ms(bpm, duration)`: Greedy rest decomposition of a gap.
- `adjust_pitch_to_key_signature(key_signature, pitch)`: Respell a pitch for a key.
- `note_to_midi(pitch)`: MIDI note number (C4 = 60).
"""

import re
import typing

import barline.constants.durations


PITCH_CLASS_PATTERN = r"[A-G][#bn]?"

_NOTE_RE = re.compile(rf"^{PITCH_CLASS_PATTERN}[0-8]$")
_RELATIVE_NOTE_RE = re.compile(rf"^(?P<pitch_class>{PITCH_CLASS_PATTERN})(?P<offset>[-+][1-4])?$")
_TIME_SIGNATURE_RE = re.compile(r"^(?P<beats>\d+)/(?P<unit>\d+)$")

REFERENCE_OCTAVE = 4

LETTER_TO_SEMITONE: typing.Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
}

ACCIDENTAL_TO_OFFSET: typing.Dict[str, int] = {
	"": 0,
	"n": 0,
	"#": 1,
	"b": -1,
}

# Sharps and flats each key signature applies to unmarked notes.
KEY_SIGNATURE_ADJUSTMENTS: typing.Dict[str, typing.List[str]] = {
	"C": [],
	"G": ["F#"],
	"D": ["F#", "C#"],
	"A": ["F#", "C#", "G#"],
	"E": ["F#", "C#", "G#", "D#"],
	"B": ["F#", "C#", "G#", "D#", "A#"],
	"F#": ["F#", "C#", "G#", "D#", "A#", "E#"],
	"C#": ["F#", "C#", "G#", "D#", "A#", "E#", "B#"],
	"F": ["Bb"],
	"Bb": ["Bb", "Eb"],
	"Eb": ["Bb", "Eb", "Ab"],
	"Ab": ["Bb", "Eb", "Ab", "Db"],
	"Db": ["Bb", "Eb", "Ab", "Db", "Gb"],
	"Gb": ["Bb", "Eb", "Ab", "Db", "Gb", "Cb"],
}

_SHARP_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# The 88 keys of a piano, A0 to C8, spelled with sharps.
PIANO_KEYS: typing.List[str] = [
	f"{_SHARP_NAMES[midi % 12]}{midi // 12 - 1}" for midi in range(21, 109)
]


def is_note (pitch: str) -> bool:

	"""Return True for an absolute pitch such as ``"C4"`` or ``"Bb3"``."""

	return bool(_NOTE_RE.match(pitch))


def is_relative_note (pitch: str) -> bool:

	"""Return True for a pitch with no octave or a signed octave offset (``"C"``, ``"D+1"``)."""

	return bool(_RELATIVE_NOTE_RE.match(pitch))


def relative_note_to_absolute_note (pitch: str) -> typing.Optional[str]:

	"""
	Resolve a relative pitch against octave 4.

	No offset means octave 4, ``+n`` means *n* octaves above and ``-n`` *n*
	octaves below.  Returns ``None`` when the pitch is not relative.
	"""

	match = _RELATIVE_NOTE_RE.match(pitch)

	if match is None:
		return None

	offset = int(match.group("offset")) if match.group("offset") else 0

	return f"{match.group('pitch_class')}{REFERENCE_OCTAVE + offset}"


def is_note_duration (duration: int) -> bool:

	"""Return True when *duration* is one of 1, 2, 4, 8, 16, 32 or 64."""

	return duration in barline.constants.durations.NOTE_DURATIONS


def is_time_signature (time_signature: str) -> bool:

	"""
	Return True for a usable ``beats/unit`` string.

	Beats must be positive and the unit must be a note duration, so ``"4/4"``,
	``"6/8"`` and ``"5/4"`` pass while ``"0/4"`` and ``"3/5"`` do not.
	"""

	match = _TIME_SIGNATURE_RE.match(time_signature)

	if match is None:
		return False

	return int(match.group("beats")) > 0 and is_note_duration(int(match.group("unit")))


def parse_time_signature (time_signature: str) -> typing.Tuple[int, int]:

	"""Split a time signature into ``(beats_per_bar, beat_unit)``."""

	if not is_time_signature(time_signature):
		raise ValueError(f"Invalid time signature: {time_signature!r}")

	beats, unit = time_signature.split("/")

	return int(beats), int(unit)


def is_key_signature (key_signature: str) -> bool:

	"""Return True for one of the fourteen supported major key signatures."""

	return key_signature in KEY_SIGNATURE_ADJUSTMENTS


def quarter_note_ms (bpm: float) -> float:

	"""Length of one quarter note in milliseconds at *bpm*."""

	if bpm <= 0:
		raise ValueError("BPM must be positive")

	return (60 / bpm) * 1000


def bar_length_ms (bpm: float, time_signature: str) -> float:

	"""
	Nominal length of one bar in milliseconds.

	Example:
		```python
		bar_length_ms(120, "4/4")  # → 2000.0
		bar_length_ms(120, "6/8")  # → 1500.0
		```
	"""

	beats_per_bar, beat_unit = parse_time_signature(time_signature)

	return beats_per_bar * quarter_note_ms(bpm) * (4 / beat_unit)


def duration_ms (bpm: float, duration: int, dotted: bool = False) -> float:

	"""
	Length of a note or rest value in milliseconds.

	Parameters:
		bpm: Tempo in quarter notes per minute.
		duration: Denominator of a whole note (1, 2, 4, 8, 16, 32 or 64).
		dotted: When True, the value is lengthened by half.

	Example:
		```python
		duration_ms(120, 4)               # → 500.0
		duration_ms(120, 4, dotted=True)  # → 750.0
		```
	"""

	if not is_note_duration(duration):
		raise ValueError(f"Invalid note duration: {duration!r}")

	length = quarter_note_ms(bpm) / (duration / 4)

	if dotted:
		length *= barline.constants.durations.DOTTED_MULTIPLIER

	return length


def rests_for_duration_ms (bpm: float, duration: float) -> typing.List[typing.Tuple[int, bool]]:

	"""
	Decompose a gap into rests, longest first.

	Each step takes the longest value that still fits, trying the dotted form
	before the plain one.  Decomposition stops once the remainder is shorter
	than a sixty-fourth note, so the rests sum to within one such unit of
	*duration*.

	Returns:
		A list of ``(duration, dotted)`` pairs.

	Example:
		```python
		rests_for_duration_ms(120, 1300)
		# → [(2, False), (8, False), (64, True)]  (1000 + 250 + 46.875 ms)
		```
	"""

	smallest = duration_ms(bpm, barline.constants.durations.SIXTYFOURTH)
	rests: typing.List[typing.Tuple[int, bool]] = []
	remaining = duration

	while remaining >= smallest:

		for rest_duration in barline.constants.durations.NOTE_DURATIONS:

			dotted_length = duration_ms(bpm, rest_duration, dotted=True)

			if dotted_length <= remaining:
				rests.append((rest_duration, True))
				remaining -= dotted_length
				break

			plain_length = duration_ms(bpm, rest_duration)

			if plain_length <= remaining:
				rests.append((rest_duration, False))
				remaining -= plain_length
				break

	return rests


def adjust_pitch_to_key_signature (key_signature: str, pitch: str) -> str:

	"""
	Respell an absolute pitch for a key signature.

	Unmarked notes whose letter the key alters take the key's accidental
	(``"F4"`` in G → ``"F#4"``).  Explicit sharps and flats are kept, and an
	explicit natural (``"Fn4"``) is written back as the plain letter.
	"""

	if not is_key_signature(key_signature):
		raise ValueError(f"Invalid key signature: {key_signature!r}")

	letter, accidental, octave = pitch[0], pitch[1:-1], pitch[-1]

	if accidental == "n":
		return f"{letter}{octave}"

	if accidental:
		return pitch

	for adjustment in KEY_SIGNATURE_ADJUSTMENTS[key_signature]:
		if adjustment[0] == letter:
			return f"{adjustment}{octave}"

	return pitch


def note_to_midi (pitch: str) -> int:

	"""
	Convert an absolute pitch to a MIDI note number (C4 = 60).

	Accidentals that cross an octave boundary follow the letter's octave, so
	``"Cb4"`` is 59 and ``"B#3"`` is 60.
	"""

	if not is_note(pitch):
		raise ValueError(f"Invalid pitch: {pitch!r}")

	letter, accidental, octave = pitch[0], pitch[1:-1], int(pitch[-1])

	return (octave + 1) * 12 + LETTER_TO_SEMITONE[letter] + ACCIDENTAL_TO_OFFSET[accidental]


def note_to_piano_key (pitch: str) -> typing.Optional[str]:

	"""
	Map an absolute pitch onto the sharp-spelled name of a piano key.

	Returns ``None`` when the pitch falls outside the 88-key range.
	"""

	if not is_note(pitch):
		return None

	midi = note_to_midi(pitch)

	if not 21 <= midi <= 108:
		return None

	return PIANO_KEYS[midi - 21]


def is_piano_note (pitch: str) -> bool:

	"""Return True when *pitch* sounds on an 88-key piano."""

	return note_to_piano_key(pitch) is not None
