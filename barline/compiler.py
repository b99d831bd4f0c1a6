"""Schedule compiler.

Turns parsed bars into one flat, time-ordered list of `SequencedActionGroup`
objects that the transport plays.

Bars holding only directives (``"bpm=100 | C4 D4"``) take no time of their
own; their directives are carried forward into the next bar that does.
"""

import copy
import dataclasses
import logging
import typing

import barline.actions
import barline.constants.timing
import barline.debug
import barline.timeline


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class CompiledSequence:

	"""
	A sequence ready for playback.

	``groups`` is sorted by start time and ``groups[i].sequence_number == i``.
	"""

	groups: typing.List[barline.actions.SequencedActionGroup] = dataclasses.field(default_factory=list)
	total_duration_ms: float = 0.0
	bar_start_times_ms: typing.List[float] = dataclasses.field(default_factory=list)
	bar_lengths_ms: typing.List[float] = dataclasses.field(default_factory=list)
	initial_bpm: float = barline.constants.timing.DEFAULT_BPM

	@property
	def is_empty (self) -> bool:

		"""True when there is nothing to play."""

		return not self.groups

	@property
	def bar_count (self) -> int:

		"""Number of playable bars."""

		return len(self.bar_lengths_ms)


def merge_non_playable_bars (bars: typing.List[barline.actions.Bar]) -> typing.List[barline.actions.Bar]:

	"""
	Carry the directives of non-playable bars into the next playable bar.

	Carried directives are placed ahead of the receiving bar's own groups, in
	their original order.  Non-playable bars are removed, including any at
	the end that have nothing to carry into.
	"""

	merged: typing.List[barline.actions.Bar] = []
	carried: typing.List[barline.actions.ActionGroup] = []

	for bar in bars:

		if not barline.actions.is_playable(bar):
			carried.extend(group for group in bar.action_groups if barline.actions.is_control_group(group))
			continue

		if carried:
			bar.action_groups = carried + bar.action_groups
			carried = []

		merged.append(bar)

	if carried:
		logger.warning(f"{len(carried)} trailing directive(s) have no bar to apply to and were dropped")

	return merged


def compile (
	bars: typing.List[barline.actions.Bar],
	initial_bpm: float = barline.constants.timing.DEFAULT_BPM
) -> CompiledSequence:

	"""
	Compile bars into a playable sequence.

	The input bars are copied, never modified.  Compiling the same bars twice
	gives identical start times and sequence numbers.

	Parameters:
		bars: Bars as returned by `barline.notation.parse` (or built by hand).
		initial_bpm: Tempo before the first ``bpm=`` directive.

	Returns:
		A `CompiledSequence`.  It is empty when no bar has anything to play.
	"""

	playable_bars = merge_non_playable_bars(copy.deepcopy(bars))

	if not playable_bars:
		logger.warning("Nothing to play: the sequence has no notes, rests or pedal markers")
		return CompiledSequence(initial_bpm=initial_bpm)

	timeline = barline.timeline.timeline_bars(playable_bars, initial_bpm=initial_bpm)

	if not any(barline.actions.is_sequencable(group) for group in timeline.groups):
		logger.warning("Nothing to play: every sequencable group was dropped")
		return CompiledSequence(initial_bpm=initial_bpm)

	# sorted() is stable, so groups sharing a start time keep bar order.
	groups = sorted(timeline.groups, key=lambda group: group.start_time_in_sequence_ms)

	for sequence_number, group in enumerate(groups):
		group.sequence_number = sequence_number

	last_group_end = max(group.end_time_in_sequence_ms for group in groups)
	total_duration = max(timeline.end_time_ms, last_group_end)

	logger.debug(f"Compiled {len(groups)} groups over {total_duration:.1f} ms:\n{barline.debug.format_sequenced_groups(groups)}")

	return CompiledSequence(
		groups = groups,
		total_duration_ms = total_duration,
		bar_start_times_ms = timeline.bar_start_times_ms,
		bar_lengths_ms = timeline.bar_lengths_ms,
		initial_bpm = initial_bpm
	)
