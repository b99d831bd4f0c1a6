"""Bar notation parser.

Turns a notation string into a list of `Bar` objects.

**Syntax:**
- `|` separates bars, whitespace separates tokens within a bar.
- `C4`, `F#3`, `Bb`, `E+1`, `G-2`: a pitch, absolute or relative to octave 4.
- `C4_E4_G4`: a chord (pitches joined by `_`).
- `:8`, `:4.`: a duration suffix (and dot) for the token it is attached to.
  On its own (`:8`) it sets the default duration for the tokens that follow.
  A dot there (`:4.`) is ignored: defaults are always plain values.
- `~`: a tie, after a pitch (`C4~_E4`) or after the whole token (`C4:2~`).
- `@3`: places the token at quarter-note position 3 of the bar.
- `##`: a rest, with the same `:n`, `.` and `@n` suffixes.
- `[_` / `_]`: sustain pedal down / up.
- `>`: the bar is exactly as long as its content.
- `bpm=96`, `time=3/4`, `key=D`, `autoSustain=on`: directives.

Malformed tokens never stop the parse - they are logged and dropped.

Example:
	```python
	bars = parse("bpm=90 time=3/4 | C4:2 E4 | G4_B4_D5:2. | ##:4 C5@3")
	```
"""

import dataclasses
import logging
import re
import typing

import barline.actions
import barline.constants.durations
import barline.music


logger = logging.getLogger(__name__)


TOKEN_DIRECTIVE = "directive"
TOKEN_PEDAL_DOWN = "pedal_down"
TOKEN_PEDAL_UP = "pedal_up"
TOKEN_PARTIAL_MARKER = "partial_marker"
TOKEN_NOTE_GROUP = "note_group"
TOKEN_REST = "rest"
TOKEN_BARE_DURATION = "bare_duration"
TOKEN_UNKNOWN = "unknown"

_PITCH = r"[A-G][#bn]?(?:[0-8]|[-+][1-4])?"
_DURATION = r"64|32|16|8|4|2|1"
_SUFFIXES = rf"(?P<dot_only>\.)?(?::(?P<duration>{_DURATION})(?P<dotted>\.)?)?"
_POSITION = r"(?:@(?P<position>\d+(?:\.\d+)?))?"

_PITCH_RE = re.compile(rf"^(?P<pitch>{_PITCH})(?P<tied>~)?$")

# Exact-match markers are checked before the patterns.
_MARKERS: typing.Dict[str, str] = {
	"[_": TOKEN_PEDAL_DOWN,
	"_]": TOKEN_PEDAL_UP,
	">": TOKEN_PARTIAL_MARKER,
}

_PATTERNS: typing.List[typing.Tuple[str, re.Pattern[str]]] = [
	(TOKEN_DIRECTIVE, re.compile(r"^(?P<key>[^=]*)=(?P<value>.*)$")),
	(TOKEN_BARE_DURATION, re.compile(rf"^:(?P<duration>{_DURATION})(?P<dotted>\.)?$")),
	(TOKEN_REST, re.compile(rf"^##{_SUFFIXES}{_POSITION}$")),
	(TOKEN_NOTE_GROUP, re.compile(rf"^(?P<pitches>{_PITCH}~?(?:_{_PITCH}~?)*){_SUFFIXES}(?P<tied>~)?{_POSITION}$")),
]


@dataclasses.dataclass
class Token:

	"""
	A classified notation token.
	"""

	kind: str
	text: str
	fields: typing.Dict[str, typing.Optional[str]] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class _ParseState:

	"""Running state shared by the grammar rules."""

	default_duration: int = barline.constants.durations.QUARTER
	bar_number: int = 0
	bar: barline.actions.Bar = dataclasses.field(default_factory=barline.actions.Bar)


def classify (text: str) -> Token:

	"""
	Classify a single whitespace-free token.
	"""

	if text in _MARKERS:
		return Token(kind=_MARKERS[text], text=text)

	for kind, pattern in _PATTERNS:

		match = pattern.match(text)

		if match is not None:
			return Token(kind=kind, text=text, fields=match.groupdict())

	return Token(kind=TOKEN_UNKNOWN, text=text)


def tokenize (bar_text: str) -> typing.List[Token]:

	"""
	Split the text of one bar into classified tokens.
	"""

	return [classify(text) for text in bar_text.split()]


def _apply_directive (token: Token, state: _ParseState) -> None:

	"""Turn ``key=value`` into a control group, or drop it with a warning."""

	key = token.fields.get("key") or ""
	value = token.fields.get("value") or ""
	action: typing.Optional[barline.actions.Action] = None

	if key == "bpm":
		if value.isdigit() and int(value) > 0:
			action = barline.actions.set_bpm_action(int(value))

	elif key == "time":
		if barline.music.is_time_signature(value):
			action = barline.actions.set_time_signature_action(value)

	elif key == "key":
		if barline.music.is_key_signature(value):
			action = barline.actions.set_key_signature_action(value)

	elif key == "autoSustain":
		if value in ("on", "off"):
			action = barline.actions.auto_sustain_pedal_action(value == "on")

	else:
		logger.warning(f"Bar {state.bar_number}: unknown directive {token.text!r} dropped")
		return

	if action is None:
		logger.warning(f"Bar {state.bar_number}: invalid value in directive {token.text!r} dropped")
		return

	state.bar.action_groups.append(barline.actions.ActionGroup(actions=[action]))


def _apply_pedal_down (token: Token, state: _ParseState) -> None:

	state.bar.action_groups.append(barline.actions.ActionGroup(actions=[barline.actions.pedal_action(down=True)]))


def _apply_pedal_up (token: Token, state: _ParseState) -> None:

	state.bar.action_groups.append(barline.actions.ActionGroup(actions=[barline.actions.pedal_action(down=False)]))


def _apply_partial_marker (token: Token, state: _ParseState) -> None:

	state.bar.partial_length = True


def _apply_bare_duration (token: Token, state: _ParseState) -> None:

	"""A duration with nothing attached becomes the new default."""

	state.default_duration = int(typing.cast(str, token.fields["duration"]))

	if token.fields.get("dotted"):
		logger.warning(f"Bar {state.bar_number}: dot ignored in default duration {token.text!r}")


def _token_timing (token: Token, state: _ParseState) -> typing.Tuple[int, bool, typing.Optional[float]]:

	"""Resolve ``(duration, dotted, position)`` for a note or rest token."""

	duration_text = token.fields.get("duration")
	duration = int(duration_text) if duration_text else state.default_duration
	dotted = bool(token.fields.get("dotted") or token.fields.get("dot_only"))
	position_text = token.fields.get("position")
	position = float(position_text) if position_text is not None else None

	return duration, dotted, position


def _apply_rest (token: Token, state: _ParseState) -> None:

	duration, dotted, position = _token_timing(token, state)

	state.bar.action_groups.append(
		barline.actions.ActionGroup(
			actions = [barline.actions.rest_action(duration, dotted)],
			start_position_in_bar = position
		)
	)


def _apply_note_group (token: Token, state: _ParseState) -> None:

	"""Resolve each pitch of a chord token and add the group."""

	duration, dotted, position = _token_timing(token, state)
	tie_all = bool(token.fields.get("tied"))
	actions: typing.List[barline.actions.Action] = []

	for entity in typing.cast(str, token.fields["pitches"]).split("_"):

		match = _PITCH_RE.match(entity)

		if match is None:
			continue

		pitch = match.group("pitch")

		if not barline.music.is_note(pitch):
			pitch = barline.music.relative_note_to_absolute_note(pitch) or ""

		if not barline.music.is_note(pitch):
			logger.warning(f"Bar {state.bar_number}: unresolvable pitch {entity!r} in {token.text!r} dropped")
			continue

		actions.append(
			barline.actions.note_action(
				pitch = pitch,
				duration = duration,
				dotted = dotted,
				tied = tie_all or bool(match.group("tied"))
			)
		)

	if not actions:
		logger.warning(f"Bar {state.bar_number}: no playable pitches in {token.text!r}")
		return

	state.bar.action_groups.append(barline.actions.ActionGroup(actions=actions, start_position_in_bar=position))


def _apply_unknown (token: Token, state: _ParseState) -> None:

	logger.warning(f"Bar {state.bar_number}: unrecognised token {token.text!r} dropped")


_RULES: typing.Dict[str, typing.Callable[[Token, _ParseState], None]] = {
	TOKEN_DIRECTIVE: _apply_directive,
	TOKEN_PEDAL_DOWN: _apply_pedal_down,
	TOKEN_PEDAL_UP: _apply_pedal_up,
	TOKEN_PARTIAL_MARKER: _apply_partial_marker,
	TOKEN_BARE_DURATION: _apply_bare_duration,
	TOKEN_REST: _apply_rest,
	TOKEN_NOTE_GROUP: _apply_note_group,
	TOKEN_UNKNOWN: _apply_unknown,
}


def parse (notation: str) -> typing.List[barline.actions.Bar]:

	"""
	Parse a notation string into bars.

	Empty bars are skipped.  The default duration starts at a quarter note and
	carries from bar to bar until a bare ``:n`` token changes it.  Bars made
	only of directives are kept here - the compiler merges them forward.

	Parameters:
		notation: The notation string.

	Returns:
		The bars in textual order.
	"""

	state = _ParseState()
	bars: typing.List[barline.actions.Bar] = []

	for bar_text in notation.split("|"):

		if not bar_text.strip():
			continue

		state.bar_number += 1
		state.bar = barline.actions.Bar()

		for token in tokenize(bar_text):
			_RULES[token.kind](token, state)

		bars.append(state.bar)

	logger.debug(f"Parsed {len(bars)} bars")

	return bars
