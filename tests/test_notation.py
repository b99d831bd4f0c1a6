import logging

import pytest

import barline.actions
import barline.notation


def test_tokenize_classifies_token_kinds () -> None:

	"""Each token is classified without reference to timing."""

	kinds = [token.kind for token in barline.notation.tokenize("bpm=90 [_ C4_E4:8 ## :16 > _] ???")]

	assert kinds == [
		barline.notation.TOKEN_DIRECTIVE,
		barline.notation.TOKEN_PEDAL_DOWN,
		barline.notation.TOKEN_NOTE_GROUP,
		barline.notation.TOKEN_REST,
		barline.notation.TOKEN_BARE_DURATION,
		barline.notation.TOKEN_PARTIAL_MARKER,
		barline.notation.TOKEN_PEDAL_UP,
		barline.notation.TOKEN_UNKNOWN,
	]


def test_classify_note_group_fields () -> None:

	"""Duration, dot, tie and position suffixes are captured."""

	token = barline.notation.classify("G4_B4:2.~@3")

	assert token.kind == barline.notation.TOKEN_NOTE_GROUP
	assert token.fields["pitches"] == "G4_B4"
	assert token.fields["duration"] == "2"
	assert token.fields["dotted"] == "."
	assert token.fields["tied"] == "~"
	assert token.fields["position"] == "3"


def test_bars_split_on_pipe () -> None:

	"""Bars are separated by |; empty bars are ignored."""

	bars = barline.notation.parse("C4 | D4 || E4 |")

	assert len(bars) == 3
	assert [bar.action_groups[0].actions[0].note.pitch for bar in bars] == ["C4", "D4", "E4"]


def test_chord_token_becomes_one_group () -> None:

	"""Underscore-joined pitches sound together."""

	bars = barline.notation.parse("C4_E4_G4")
	group = bars[0].action_groups[0]

	assert barline.actions.is_note_group(group)
	assert [action.note.pitch for action in group.actions] == ["C4", "E4", "G4"]


def test_relative_pitches_resolve () -> None:

	"""Pitches without an octave, or with a signed offset, are relative to octave 4."""

	bars = barline.notation.parse("C_E-1_G+1")
	pitches = [action.note.pitch for action in bars[0].action_groups[0].actions]

	assert pitches == ["C4", "E3", "G5"]


def test_default_duration_is_quarter () -> None:

	"""Tokens with no duration are quarter notes."""

	bars = barline.notation.parse("C4 ##")

	assert bars[0].action_groups[0].actions[0].note.duration == 4
	assert bars[0].action_groups[1].actions[0].rest.duration == 4


def test_attached_duration_scopes_to_token () -> None:

	"""A duration attached to a pitch group applies to that token only."""

	bars = barline.notation.parse("C4:8 D4")
	notes = [group.actions[0].note for group in bars[0].action_groups]

	assert notes[0].duration == 8
	assert notes[1].duration == 4


def test_bare_duration_changes_default () -> None:

	"""A bare :n sets the default for the following tokens, across bars."""

	bars = barline.notation.parse("C4 :8 D4 E4:2 F4 | G4")
	durations = [group.actions[0].note.duration for bar in bars for group in bar.action_groups]

	assert durations == [4, 8, 2, 8, 8]


def test_dotted_bare_duration_sets_plain_default (caplog: pytest.LogCaptureFixture) -> None:

	"""A dot on a bare duration is ignored; the value still becomes the default."""

	with caplog.at_level(logging.WARNING, logger="barline.notation"):
		bars = barline.notation.parse(":8 C4 | D4 | :4. E4")

	notes = [group.actions[0].note for bar in bars for group in bar.action_groups]

	assert [note.duration for note in notes] == [8, 8, 4]
	assert not notes[2].dotted
	assert ":4." in caplog.text


def test_dotted_and_tied () -> None:

	"""A dot after the duration dots the value; ~ ties the note."""

	bars = barline.notation.parse("C4:4.~ D4.")
	first, second = (group.actions[0].note for group in bars[0].action_groups)

	assert first.dotted and first.tied
	assert second.dotted and not second.tied


def test_per_pitch_tie () -> None:

	"""A ~ after a single pitch ties only that pitch of the chord."""

	bars = barline.notation.parse("C4~_E4:2")
	notes = [action.note for action in bars[0].action_groups[0].actions]

	assert notes[0].tied
	assert not notes[1].tied
	assert notes[0].duration == 2


def test_rest_with_suffixes () -> None:

	"""Rests take the same duration and dot suffixes as notes."""

	bars = barline.notation.parse("##:2.")
	rest = bars[0].action_groups[0].actions[0].rest

	assert rest.duration == 2
	assert rest.dotted


def test_start_position () -> None:

	"""@n places a token at a quarter-note position."""

	bars = barline.notation.parse("C4 E4@3 G4@2.5")
	positions = [group.start_position_in_bar for group in bars[0].action_groups]

	assert positions == [None, 3.0, 2.5]


def test_pedal_and_partial_markers () -> None:

	"""[_ and _] add pedal groups; > marks the bar partial."""

	bars = barline.notation.parse("[_ C4 _] > | D4")

	assert bars[0].partial_length
	assert not bars[1].partial_length
	assert bars[0].action_groups[0].actions[0].type == barline.actions.SUSTAIN_PEDAL_DOWN
	assert bars[0].action_groups[2].actions[0].type == barline.actions.SUSTAIN_PEDAL_UP


def test_directives () -> None:

	"""Each known directive becomes a control group."""

	bars = barline.notation.parse("bpm=90 time=3/4 key=Eb autoSustain=on C4")
	actions = [group.actions[0] for group in bars[0].action_groups[:4]]

	assert all(barline.actions.is_control_group(group) for group in bars[0].action_groups[:4])
	assert actions[0].type == barline.actions.SET_BPM and actions[0].bpm == 90
	assert actions[1].type == barline.actions.SET_TIME_SIGNATURE and actions[1].time_signature == "3/4"
	assert actions[2].type == barline.actions.SET_KEY_SIGNATURE and actions[2].key_signature == "Eb"
	assert actions[3].type == barline.actions.AUTO_SUSTAIN_PEDAL and actions[3].enabled is True


@pytest.mark.parametrize("directive", ["bpm=0", "bpm=fast", "bpm=", "time=4", "time=3/5", "key=H", "autoSustain=maybe", "tempo=120"])
def test_malformed_directives_are_dropped (directive: str, caplog: pytest.LogCaptureFixture) -> None:

	"""Bad directives are logged and dropped; the rest of the bar survives."""

	with caplog.at_level(logging.WARNING, logger="barline.notation"):
		bars = barline.notation.parse(f"{directive} C4")

	assert len(bars[0].action_groups) == 1
	assert barline.actions.is_note_group(bars[0].action_groups[0])
	assert directive in caplog.text


def test_unknown_tokens_are_dropped (caplog: pytest.LogCaptureFixture) -> None:

	"""Unrecognised tokens never abort the parse."""

	with caplog.at_level(logging.WARNING, logger="barline.notation"):
		bars = barline.notation.parse("C4 X9 C4:3 D4")

	pitches = [group.actions[0].note.pitch for group in bars[0].action_groups]

	assert pitches == ["C4", "D4"]
	assert "X9" in caplog.text
	assert "C4:3" in caplog.text


def test_empty_notation () -> None:

	"""No bars in, no bars out."""

	assert barline.notation.parse("") == []
	assert barline.notation.parse(" | | ") == []
