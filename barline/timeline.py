"""Bar timeliner.

Places the groups of each bar on the sequence timeline.  Directives in a bar
take effect at the start of that bar, so tempo and time signature are applied
before the bar's length is worked out.

Groups without an explicit position are packed one after the other from the
start of the bar.  Groups with ``start_position_in_bar`` are placed at
``(position - 1)`` quarter notes from the bar start and do not move the
linear fill point.

When a bar carries ``with_sustain_pedal``, or the most recent ``autoSustain``
directive turned pedalling on, the bar is bracketed by a pedal-down at its
start and a pedal-up shortly before its end.  A bracket edge is left out
where a tie crosses the bar line, so the held note is not re-articulated.
"""

import dataclasses
import logging
import typing

import barline.actions
import barline.constants.timing
import barline.music


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class BarTimeline:

	"""
	Output of `timeline_bars`: placed groups (in bar order, not yet sorted)
	plus the start and length of every bar.
	"""

	groups: typing.List[barline.actions.SequencedActionGroup] = dataclasses.field(default_factory=list)
	bar_start_times_ms: typing.List[float] = dataclasses.field(default_factory=list)
	bar_lengths_ms: typing.List[float] = dataclasses.field(default_factory=list)

	@property
	def end_time_ms (self) -> float:

		"""Sum of all bar lengths."""

		return sum(self.bar_lengths_ms)


@dataclasses.dataclass
class _TimelineState:

	"""Directive state carried from bar to bar."""

	bpm: float
	time_signature: str
	key_signature: str = barline.constants.timing.DEFAULT_KEY_SIGNATURE
	auto_sustain: bool = False
	bar_start_ms: float = 0.0
	previous_bar_ties_forward: bool = False


def _apply_directives (bar: barline.actions.Bar, state: _TimelineState) -> None:

	"""Apply tempo, time signature, key signature and auto-sustain directives in textual order."""

	for group in bar.action_groups:
		for action in group.actions:

			if action.type == barline.actions.SET_BPM and action.bpm is not None:
				state.bpm = action.bpm

			elif action.type == barline.actions.SET_TIME_SIGNATURE and action.time_signature is not None:
				state.time_signature = action.time_signature

			elif action.type == barline.actions.SET_KEY_SIGNATURE and action.key_signature is not None:
				state.key_signature = action.key_signature

			elif action.type == barline.actions.AUTO_SUSTAIN_PEDAL and action.enabled is not None:
				state.auto_sustain = action.enabled


def _drop_invalid_positions (bar: barline.actions.Bar, bar_index: int) -> None:

	"""Remove groups placed before the first beat of the bar."""

	kept: typing.List[barline.actions.ActionGroup] = []

	for group in bar.action_groups:

		if group.start_position_in_bar is not None and group.start_position_in_bar < 1:
			logger.warning(
				f"Invalid start position {group.start_position_in_bar} in bar {bar_index + 1} dropped. "
				f"Positions are counted in quarter notes from 1."
			)
			continue

		kept.append(group)

	bar.action_groups = kept


def position_offset_ms (bpm: float, start_position_in_bar: float) -> float:

	"""Offset from the bar start of a 1-based quarter-note position."""

	return barline.music.quarter_note_ms(bpm) * (start_position_in_bar - 1)


def rendered_length_ms (bpm: float, bar: barline.actions.Bar) -> float:

	"""
	Length the bar's content actually needs.

	The larger of the linear groups laid end to end and the end of the
	latest-ending positioned group.
	"""

	linear_total = 0.0
	positioned_end = 0.0

	for group in bar.action_groups:

		if not barline.actions.is_sequencable(group):
			continue

		duration = barline.actions.group_duration_ms(bpm, group)

		if group.start_position_in_bar is None:
			linear_total += duration
		else:
			positioned_end = max(positioned_end, position_offset_ms(bpm, group.start_position_in_bar) + duration)

	return max(linear_total, positioned_end)


def _first_sequencable (bar: typing.Optional[barline.actions.Bar]) -> typing.Optional[barline.actions.ActionGroup]:

	if bar is None:
		return None

	return next((group for group in bar.action_groups if barline.actions.is_sequencable(group)), None)


def _last_sequencable (bar: barline.actions.Bar) -> typing.Optional[barline.actions.ActionGroup]:

	return next((group for group in reversed(bar.action_groups) if barline.actions.is_sequencable(group)), None)


def _key_signature_in (bar: barline.actions.Bar, key_signature: str) -> str:

	"""Key signature in effect once *bar*'s own directives have applied."""

	for group in bar.action_groups:
		for action in group.actions:
			if action.type == barline.actions.SET_KEY_SIGNATURE and action.key_signature is not None:
				key_signature = action.key_signature

	return key_signature


def ties_into_next_bar (
	bar: barline.actions.Bar,
	next_bar: typing.Optional[barline.actions.Bar],
	key_signature: str = barline.constants.timing.DEFAULT_KEY_SIGNATURE
) -> bool:

	"""
	True when the bar's last sequencable group ties into the next bar's first.

	Pitches are compared as they will sound in the next bar: respelled for
	*key_signature*, updated by any key directive the next bar carries.
	"""

	last_group = _last_sequencable(bar)
	first_group = _first_sequencable(next_bar)

	if next_bar is None or last_group is None or first_group is None:
		return False

	return barline.actions.has_tied_notes(last_group, first_group, _key_signature_in(next_bar, key_signature))


def _place_sequencable_groups (
	bar: barline.actions.Bar,
	bar_index: int,
	state: _TimelineState
) -> typing.List[barline.actions.SequencedActionGroup]:

	"""Give each note, rest and pedal group its absolute start time."""

	placed: typing.List[barline.actions.SequencedActionGroup] = []
	linear_offset = 0.0

	for group in bar.action_groups:

		if not barline.actions.is_sequencable(group):
			continue

		duration = barline.actions.group_duration_ms(state.bpm, group)

		if group.start_position_in_bar is not None:
			offset = position_offset_ms(state.bpm, group.start_position_in_bar)
		else:
			offset = linear_offset
			linear_offset += duration

		placed.append(
			barline.actions.SequencedActionGroup(
				actions = group.actions,
				bar_index = bar_index,
				start_time_in_sequence_ms = state.bar_start_ms + offset,
				duration_ms = None if barline.actions.is_pedal_group(group) else duration,
				start_position_in_bar = group.start_position_in_bar
			)
		)

	return placed


def timeline_bars (
	bars: typing.List[barline.actions.Bar],
	initial_bpm: float = barline.constants.timing.DEFAULT_BPM,
	initial_time_signature: str = barline.constants.timing.DEFAULT_TIME_SIGNATURE
) -> BarTimeline:

	"""
	Place every group of every (playable) bar on the timeline.

	Parameters:
		bars: Bars with non-playable bars already merged forward.  Groups with
			a start position below 1 are removed from the bars in place.
		initial_bpm: Tempo in effect before the first ``bpm=`` directive.
		initial_time_signature: Time signature before the first ``time=`` directive.

	Returns:
		A `BarTimeline` with the placed groups in bar order.
	"""

	state = _TimelineState(bpm=initial_bpm, time_signature=initial_time_signature)
	timeline = BarTimeline()
	pedal_lead = barline.constants.timing.SUSTAIN_PEDAL_LEAD_MS

	for bar_index, bar in enumerate(bars):

		_apply_directives(bar, state)
		_drop_invalid_positions(bar, bar_index)

		nominal_length = barline.music.bar_length_ms(state.bpm, state.time_signature)
		content_length = rendered_length_ms(state.bpm, bar)

		if content_length > nominal_length:
			logger.warning(
				f"Bar {bar_index + 1}: content ({content_length:.1f} ms) exceeds the "
				f"{state.time_signature} bar length ({nominal_length:.1f} ms)"
			)

		if bar.partial_length:
			bar_length = content_length
		else:
			bar_length = max(nominal_length, content_length)

		control_groups = [
			barline.actions.SequencedActionGroup(
				actions = group.actions,
				bar_index = bar_index,
				start_time_in_sequence_ms = state.bar_start_ms
			)
			for group in bar.action_groups
			if not barline.actions.is_sequencable(group)
		]

		sequencable_groups = _place_sequencable_groups(bar, bar_index, state)

		next_bar = bars[bar_index + 1] if bar_index + 1 < len(bars) else None
		ties_forward = ties_into_next_bar(bar, next_bar, state.key_signature)

		timeline.groups.extend(control_groups)

		if bar.with_sustain_pedal or state.auto_sustain:

			if not state.previous_bar_ties_forward:
				timeline.groups.append(
					barline.actions.SequencedActionGroup(
						actions = [barline.actions.pedal_action(down=True)],
						bar_index = bar_index,
						start_time_in_sequence_ms = state.bar_start_ms
					)
				)

			timeline.groups.extend(sequencable_groups)

			if not ties_forward:
				timeline.groups.append(
					barline.actions.SequencedActionGroup(
						actions = [barline.actions.pedal_action(down=False)],
						bar_index = bar_index,
						start_time_in_sequence_ms = state.bar_start_ms + max(0.0, bar_length - pedal_lead)
					)
				)

		else:
			timeline.groups.extend(sequencable_groups)

		timeline.bar_start_times_ms.append(state.bar_start_ms)
		timeline.bar_lengths_ms.append(bar_length)

		state.previous_bar_ties_forward = ties_forward
		state.bar_start_ms += bar_length

	return timeline
