"""Sequence model: actions, action groups and bars.

An `Action` is one instruction (play a note, rest, press the pedal, change the
tempo).  Actions that happen together form an `ActionGroup` - a chord is one
group holding several note actions.  A `Bar` is an ordered list of groups.

After compilation each group is wrapped in a `SequencedActionGroup` carrying
its absolute start time and sequence number.
"""

import dataclasses
import typing

import barline.music


NOTE = "note"
REST = "rest"
SUSTAIN_PEDAL_UP = "sustainPedalUp"
SUSTAIN_PEDAL_DOWN = "sustainPedalDown"
SET_BPM = "setBPM"
SET_TIME_SIGNATURE = "setTimeSignature"
SET_KEY_SIGNATURE = "setKeySignature"
AUTO_SUSTAIN_PEDAL = "autoSustainPedal"

PEDAL_ACTION_TYPES = (SUSTAIN_PEDAL_UP, SUSTAIN_PEDAL_DOWN)
CONTROL_ACTION_TYPES = (SET_BPM, SET_TIME_SIGNATURE, SET_KEY_SIGNATURE, AUTO_SUSTAIN_PEDAL)


@dataclasses.dataclass
class NoteWithDuration:

	"""
	A pitched note value.

	``tied`` holds the note through into the next note group if that group
	contains the same pitch.
	"""

	pitch: str
	duration: int
	dotted: bool = False
	tied: bool = False

	def __post_init__ (self) -> None:

		if not barline.music.is_note_duration(self.duration):
			raise ValueError(f"Invalid note duration: {self.duration!r}")


@dataclasses.dataclass
class RestWithDuration:

	"""
	A silent value.
	"""

	duration: int
	dotted: bool = False

	def __post_init__ (self) -> None:

		if not barline.music.is_note_duration(self.duration):
			raise ValueError(f"Invalid rest duration: {self.duration!r}")


@dataclasses.dataclass
class Action:

	"""
	One sequencer instruction.

	``type`` selects the variant and decides which of the payload fields is set:
	``note`` for note actions, ``rest`` for rests, ``bpm``, ``time_signature``,
	``key_signature`` and ``enabled`` for the matching directives.  Pedal
	actions carry no payload.
	"""

	type: str
	note: typing.Optional[NoteWithDuration] = None
	rest: typing.Optional[RestWithDuration] = None
	bpm: typing.Optional[int] = None
	time_signature: typing.Optional[str] = None
	key_signature: typing.Optional[str] = None
	enabled: typing.Optional[bool] = None


def note_action (pitch: str, duration: int, dotted: bool = False, tied: bool = False) -> Action:

	"""Build a note action."""

	return Action(type=NOTE, note=NoteWithDuration(pitch=pitch, duration=duration, dotted=dotted, tied=tied))


def rest_action (duration: int, dotted: bool = False) -> Action:

	"""Build a rest action."""

	return Action(type=REST, rest=RestWithDuration(duration=duration, dotted=dotted))


def pedal_action (down: bool) -> Action:

	"""Build a sustain pedal action."""

	return Action(type=SUSTAIN_PEDAL_DOWN if down else SUSTAIN_PEDAL_UP)


def set_bpm_action (bpm: int) -> Action:

	"""Build a tempo directive."""

	if bpm <= 0:
		raise ValueError("BPM must be positive")

	return Action(type=SET_BPM, bpm=bpm)


def set_time_signature_action (time_signature: str) -> Action:

	"""Build a time signature directive."""

	if not barline.music.is_time_signature(time_signature):
		raise ValueError(f"Invalid time signature: {time_signature!r}")

	return Action(type=SET_TIME_SIGNATURE, time_signature=time_signature)


def set_key_signature_action (key_signature: str) -> Action:

	"""Build a key signature directive."""

	if not barline.music.is_key_signature(key_signature):
		raise ValueError(f"Invalid key signature: {key_signature!r}")

	return Action(type=SET_KEY_SIGNATURE, key_signature=key_signature)


def auto_sustain_pedal_action (enabled: bool) -> Action:

	"""Build a directive that turns per-bar automatic pedalling on or off."""

	return Action(type=AUTO_SUSTAIN_PEDAL, enabled=enabled)


@dataclasses.dataclass
class ActionGroup:

	"""
	Actions that happen at the same moment.

	``start_position_in_bar`` places the group at an explicit quarter-note
	position (1 = the first beat) instead of after the previous group.
	"""

	actions: typing.List[Action] = dataclasses.field(default_factory=list)
	start_position_in_bar: typing.Optional[float] = None


@dataclasses.dataclass
class Bar:

	"""
	One bar of the sequence.

	``partial_length`` makes the bar exactly as long as its content instead of
	padding it to the time signature.  ``with_sustain_pedal`` brackets the bar
	with pedal down/up regardless of the auto-sustain directive.
	"""

	action_groups: typing.List[ActionGroup] = dataclasses.field(default_factory=list)
	with_sustain_pedal: bool = False
	partial_length: bool = False


@dataclasses.dataclass
class SequencedActionGroup:

	"""
	An action group placed on the global timeline.
	"""

	actions: typing.List[Action]
	bar_index: int
	start_time_in_sequence_ms: float
	duration_ms: typing.Optional[float] = None
	start_position_in_bar: typing.Optional[float] = None
	sequence_number: int = -1

	@property
	def end_time_in_sequence_ms (self) -> float:

		"""Start time plus duration (groups without a duration end where they start)."""

		return self.start_time_in_sequence_ms + (self.duration_ms or 0.0)


GroupLike = typing.Union[ActionGroup, SequencedActionGroup]


def is_note_group (group: GroupLike) -> bool:

	"""One or more note actions and nothing else."""

	return len(group.actions) > 0 and all(action.type == NOTE for action in group.actions)


def is_rest_group (group: GroupLike) -> bool:

	"""Exactly one rest."""

	return len(group.actions) == 1 and group.actions[0].type == REST


def is_pedal_group (group: GroupLike) -> bool:

	"""Exactly one sustain pedal action."""

	return len(group.actions) == 1 and group.actions[0].type in PEDAL_ACTION_TYPES


def is_control_group (group: GroupLike) -> bool:

	"""One or more directives and nothing else."""

	return len(group.actions) > 0 and all(action.type in CONTROL_ACTION_TYPES for action in group.actions)


def is_sequencable (group: GroupLike) -> bool:

	"""Note, rest and pedal groups occupy a place on the timeline; directives do not."""

	return is_note_group(group) or is_rest_group(group) or is_pedal_group(group)


def is_playable (bar: Bar) -> bool:

	"""A bar with at least one sequencable group."""

	return any(is_sequencable(group) for group in bar.action_groups)


def has_tied_notes (group: GroupLike, next_group: GroupLike, key_signature: typing.Optional[str] = None) -> bool:

	"""
	True when a tied note in *group* finds its pitch in *next_group*.

	With *key_signature*, both sides are respelled for the key before they are
	compared, so ``F4~`` reaches ``F#4`` in G major.
	"""

	if not is_note_group(group) or not is_note_group(next_group):
		return False

	def spell (pitch: str) -> str:
		if key_signature is None:
			return pitch
		return barline.music.adjust_pitch_to_key_signature(key_signature, pitch)

	next_pitches = {spell(action.note.pitch) for action in next_group.actions if action.note is not None}

	return any(
		action.note is not None and action.note.tied and spell(action.note.pitch) in next_pitches
		for action in group.actions
	)


def action_duration_ms (bpm: float, action: Action) -> float:

	"""
	Nominal length of a single action.

	Notes and rests use their own value; ties are resolved at dispatch time
	and never lengthen the action here.  Everything else takes no time.
	"""

	if action.type == NOTE and action.note is not None:
		return barline.music.duration_ms(bpm, action.note.duration, action.note.dotted)

	if action.type == REST and action.rest is not None:
		return barline.music.duration_ms(bpm, action.rest.duration, action.rest.dotted)

	return 0.0


def group_duration_ms (bpm: float, group: GroupLike) -> float:

	"""Length of the longest action in the group."""

	if not group.actions:
		return 0.0

	return max(action_duration_ms(bpm, action) for action in group.actions)
