import perpetua.intervals
import perpetua.pitch


MAJOR = perpetua.intervals.get_scale(0)


def test_catalog_order_and_shape () -> None:

	"""Seven scales in control order, each 5–7 ascending offsets from 0."""

	assert perpetua.intervals.SCALE_ORDER == ("major", "minor", "pentatonic", "blues", "dorian", "phrygian", "lydian")

	for offsets in perpetua.intervals.SCALE_DEFINITIONS.values():
		assert 5 <= len(offsets) <= 7
		assert offsets[0] == 0
		assert list(offsets) == sorted(set(offsets))


def test_scale_index_is_clamped () -> None:

	assert perpetua.intervals.scale_name(99) == "lydian"
	assert perpetua.intervals.scale_name(-3) == "major"


def test_display_and_root_names () -> None:

	assert perpetua.intervals.display_name(1) == "Minor"
	assert perpetua.intervals.root_name(0) == "C"
	assert perpetua.intervals.root_name(13) == "C#"


def test_degree_to_pitch_within_octave () -> None:

	assert perpetua.intervals.degree_to_pitch(MAJOR, 0, 4, 4) == perpetua.pitch.Pitch(octave=4, pitch_class=7)


def test_degree_beyond_scale_wraps_up_an_octave () -> None:

	"""Degree 8 of a seven-note scale is the second, one octave up."""

	assert perpetua.intervals.degree_to_pitch(MAJOR, 0, 8, 4) == perpetua.pitch.Pitch(octave=5, pitch_class=2)


def test_negative_degree_wraps_down () -> None:

	assert perpetua.intervals.degree_to_pitch(MAJOR, 0, -1, 4) == perpetua.pitch.Pitch(octave=3, pitch_class=11)


def test_root_offset_carries_into_octave () -> None:

	"""The third of A major (C#) lands in the octave above A4."""

	assert perpetua.intervals.degree_to_pitch(MAJOR, 9, 2, 4) == perpetua.pitch.Pitch(octave=5, pitch_class=1)


def test_scale_pitch_classes () -> None:

	assert perpetua.intervals.scale_pitch_classes(2, MAJOR) == [2, 4, 6, 7, 9, 11, 1]
