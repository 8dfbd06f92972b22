import pytest

import perpetua.pitch


def test_semitones_and_midi () -> None:

	"""C4 is 48 semitones from C0 and MIDI note 60."""

	c4 = perpetua.pitch.Pitch(octave=4, pitch_class=0)

	assert c4.semitones == 48
	assert c4.midi == 60


def test_from_semitones_round_trip () -> None:

	pitch = perpetua.pitch.Pitch.from_semitones(61)

	assert pitch == perpetua.pitch.Pitch(octave=5, pitch_class=1)
	assert pitch.name() == "C#5"


def test_transpose_crosses_octave () -> None:

	"""B3 up a semitone is C4, and C4 down a semitone is B3."""

	b3 = perpetua.pitch.Pitch(octave=3, pitch_class=11)
	c4 = perpetua.pitch.Pitch(octave=4, pitch_class=0)

	assert b3.transpose(1) == c4
	assert c4.transpose(-1) == b3


def test_ordering_follows_absolute_pitch () -> None:

	"""B3 sorts below C4 even though its pitch class is higher."""

	b3 = perpetua.pitch.Pitch(octave=3, pitch_class=11)
	c4 = perpetua.pitch.Pitch(octave=4, pitch_class=0)

	assert b3 < c4


def test_invalid_pitch_class () -> None:

	with pytest.raises(ValueError):
		perpetua.pitch.Pitch(octave=4, pitch_class=12)


def test_note_names () -> None:

	assert perpetua.pitch.note_name_to_pc("C") == 0
	assert perpetua.pitch.note_name_to_pc("Bb") == 10

	with pytest.raises(ValueError):
		perpetua.pitch.note_name_to_pc("H")


def test_format_slots () -> None:

	"""Rests render as dashes, notes by name."""

	slots = [
		perpetua.pitch.Note(perpetua.pitch.Pitch(octave=4, pitch_class=0)),
		perpetua.pitch.REST,
		perpetua.pitch.Note(perpetua.pitch.Pitch(octave=4, pitch_class=7)),
	]

	assert perpetua.pitch.format_slots(slots) == "C4 - G4"
