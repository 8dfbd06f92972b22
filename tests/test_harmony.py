import pytest

import perpetua.harmony
import perpetua.intervals
import perpetua.pitch
import perpetua.seeded_random


MAJOR = perpetua.intervals.get_scale(0)


def _progression (seed: int = 42, complexity: float = 0.2, tension: float = 0.2) -> perpetua.harmony.ChordProgression:

	rng = perpetua.seeded_random.SeededRandom(seed)
	return perpetua.harmony.build_progression(MAJOR, 0, 4, complexity, tension, rng)


def test_template_pool_buckets () -> None:

	assert perpetua.harmony.template_pool(0.0) == "pop"
	assert perpetua.harmony.template_pool(0.32) == "pop"
	assert perpetua.harmony.template_pool(0.33) == "emotional"
	assert perpetua.harmony.template_pool(0.65) == "emotional"
	assert perpetua.harmony.template_pool(0.66) == "epic"
	assert perpetua.harmony.template_pool(1.0) == "epic"


def test_seed_42_low_complexity_uses_pop_pool () -> None:

	"""Seed 42, C major, octave 4, complexity 0.2 draws a pop template."""

	progression = _progression(seed=42, complexity=0.2)

	assert progression.pool == "pop"
	assert progression.degrees in perpetua.harmony.PROGRESSION_TEMPLATES["pop"]
	assert len(progression) == 4


@pytest.mark.parametrize("complexity, pool", [(0.5, "emotional"), (0.9, "epic")])
def test_progression_comes_from_selected_pool (complexity: float, pool: str) -> None:

	for seed in range(20):

		progression = _progression(seed=seed, complexity=complexity)

		assert progression.pool == pool
		assert progression.degrees in perpetua.harmony.PROGRESSION_TEMPLATES[pool]
		assert 4 <= len(progression) <= 8


@pytest.mark.parametrize("tension, size", [
	(0.0, 3),
	(0.5, 3),
	(0.51, 4),
	(0.8, 4),
	(0.81, 5),
	(1.0, 5),
])
def test_chord_size_follows_tension (tension: float, size: int) -> None:

	"""Triads up to 0.5, sevenths above 0.5, ninths above 0.8."""

	progression = _progression(seed=3, complexity=0.5, tension=tension)

	assert all(len(chord) == size for chord in progression)


def test_build_chord_stacks_thirds () -> None:

	"""A C major ninth chord on degree 0: C4 E4 G4 B4 D5."""

	chord = perpetua.harmony.build_chord(MAJOR, 0, 0, 4, 0.9)

	assert chord.name() == "C4 E4 G4 B4 D5"
	assert chord.triad == chord.pitches[:3]


def test_chord_pitches_ascend () -> None:

	for chord in _progression(seed=8, complexity=0.9, tension=0.9):
		semitones = [pitch.semitones for pitch in chord.pitches]
		assert semitones == sorted(semitones)
		assert len(set(semitones)) == len(semitones)


def test_progression_indexing_wraps () -> None:

	progression = _progression()

	assert progression[len(progression)] == progression[0]


def _bassline (bass_intensity: float, rhythm_complexity: float, seed: int = 7) -> perpetua.harmony.Bassline:

	rng = perpetua.seeded_random.SeededRandom(seed)
	progression = perpetua.harmony.build_progression(MAJOR, 0, 4, 0.5, 0.3, rng)

	return perpetua.harmony.build_bassline(progression, bass_intensity, rhythm_complexity, rng)


@pytest.mark.parametrize("bass_intensity, rhythm_complexity, size", [
	(0.0, 0.9, 1),
	(0.3, 0.9, 1),
	(0.31, 0.9, 2),
	(0.6, 0.9, 2),
	(0.61, 0.9, 3),
	(0.9, 0.3, 3),
	(0.9, 0.9, 4),
])
def test_bassline_feature_growth (bass_intensity: float, rhythm_complexity: float, size: int) -> None:

	"""Entries gain the fifth, the walking tone and the doubling as intensity rises."""

	bassline = _bassline(bass_intensity, rhythm_complexity)

	assert bassline
	assert all(len(entry) == size for entry in bassline)


def test_full_bassline_has_four_pitches_per_entry () -> None:

	"""bassIntensity 0.9 with rhythmComplexity 0.9 gives four pitches everywhere."""

	for seed in range(10):
		assert all(len(entry) == 4 for entry in _bassline(0.9, 0.9, seed=seed))


def test_bassline_tones () -> None:

	"""Fundamental an octave below the chord root, doubling an octave above it."""

	rng = perpetua.seeded_random.SeededRandom(11)
	progression = perpetua.harmony.build_progression(MAJOR, 0, 4, 0.2, 0.3, rng)
	bassline = perpetua.harmony.build_bassline(progression, 0.9, 0.9, rng)

	for chord, entry in zip(progression, bassline):

		fundamental, fifth, walking, doubling = entry

		assert fundamental.semitones == chord.root.semitones - 12
		assert fifth.semitones == chord.pitches[2].semitones - 12
		assert abs(walking.semitones - fundamental.semitones) == 1
		assert doubling.semitones == fundamental.semitones + 12


def test_walking_tone_direction () -> None:

	"""The walking tone steps a semitone toward the target."""

	rng = perpetua.seeded_random.SeededRandom(1)
	c3 = perpetua.pitch.Pitch(octave=3, pitch_class=0)
	e3 = perpetua.pitch.Pitch(octave=3, pitch_class=4)
	b2 = perpetua.pitch.Pitch(octave=2, pitch_class=11)

	assert perpetua.harmony.walking_tone(c3, e3, rng) == perpetua.pitch.Pitch(octave=3, pitch_class=1)
	assert perpetua.harmony.walking_tone(e3, c3, rng) == perpetua.pitch.Pitch(octave=3, pitch_class=3)

	# Compared by absolute pitch: B2 is below C3, so the step is upward.
	assert perpetua.harmony.walking_tone(b2, c3, rng) == c3


def test_walking_tone_tie_break_is_seeded () -> None:

	"""Equal pitches step either way, reproducibly for a given seed."""

	c3 = perpetua.pitch.Pitch(octave=3, pitch_class=0)

	results = set()

	for seed in range(30):
		a = perpetua.harmony.walking_tone(c3, c3, perpetua.seeded_random.SeededRandom(seed))
		b = perpetua.harmony.walking_tone(c3, c3, perpetua.seeded_random.SeededRandom(seed))

		assert a == b
		assert abs(a.semitones - c3.semitones) == 1

		results.add(a)

	assert len(results) == 2


def test_empty_progression_gives_empty_bassline () -> None:

	progression = perpetua.harmony.ChordProgression(pool="pop", degrees=(), chords=())

	assert perpetua.harmony.build_bassline(progression, 0.9, 0.9, perpetua.seeded_random.SeededRandom(1)) == ()
