"""Readable dumps of compiled sequences for debug logging."""

import typing

import barline.actions


def format_action (action: barline.actions.Action) -> str:

	"""``C4:8.`` for notes, ``##:4`` for rests, the action type otherwise."""

	if action.type == barline.actions.NOTE and action.note is not None:
		return f"{action.note.pitch}:{action.note.duration}{'.' if action.note.dotted else ''}{'~' if action.note.tied else ''}"

	if action.type == barline.actions.REST and action.rest is not None:
		return f"##:{action.rest.duration}{'.' if action.rest.dotted else ''}"

	return action.type


def format_sequenced_groups (groups: typing.Iterable[barline.actions.SequencedActionGroup]) -> str:

	"""
	One line per group: sequence number, bar, start time and actions.

	Example output::

		[ 0 B0 T:    0 (setBPM)]
		[ 1 B0 T:    0 (C4:4, E4:4)]
	"""

	lines = []

	for group in groups:

		number = str(group.sequence_number) if group.sequence_number >= 0 else "_"
		actions = ", ".join(format_action(action) for action in group.actions)

		lines.append(f"[{number:>2} B{group.bar_index} T: {group.start_time_in_sequence_ms:>4g} ({actions})]")

	return "\n".join(lines)
