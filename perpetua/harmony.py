"""Chord progressions and basslines.

Progressions are drawn from template pools selected by chord complexity:
short pop loops, longer emotional arcs, and epic progressions. Each template
entry is a scale degree that becomes a stacked-thirds voicing (root, +2 and
+4 scale steps), extended with the 7th and 9th as harmonic tension rises.

Basslines follow the progression one entry per chord, adding tones as bass
intensity rises: the fundamental, the chord fifth, a walking tone that leans
toward the next chord, and an octave doubling.
"""

import dataclasses
import logging
import typing

import perpetua.intervals
import perpetua.pitch
import perpetua.seeded_random


logger = logging.getLogger(__name__)


PROGRESSION_TEMPLATES: typing.Dict[str, typing.Tuple[typing.Tuple[int, ...], ...]] = {
	"pop": (
		(0, 5, 3, 4),	# I-vi-IV-V
		(0, 3, 4, 0),	# I-IV-V-I
		(0, 3, 5, 4),	# I-IV-vi-V
	),
	"emotional": (
		(0, 5, 3, 4, 0, 5, 1, 4),
		(0, 5, 3, 0, 5, 3, 4),
	),
	"epic": (
		(0, 2, 4, 5),
		(0, 5, 1, 4, 0),
	),
}

SEVENTH_TENSION = 0.5
NINTH_TENSION = 0.8

FIFTH_INTENSITY = 0.3
WALKING_INTENSITY = 0.6
DOUBLING_INTENSITY = 0.8
DOUBLING_RHYTHM = 0.5


BasslineEntry = typing.Tuple[perpetua.pitch.Pitch, ...]
Bassline = typing.Tuple[BasslineEntry, ...]


@dataclasses.dataclass(frozen=True)
class ChordVoicing:

	"""
	A chord built on a scale degree: 3 to 5 ascending pitches.
	"""

	degree: int
	pitches: typing.Tuple[perpetua.pitch.Pitch, ...]

	@property
	def root (self) -> perpetua.pitch.Pitch:

		return self.pitches[0]

	@property
	def triad (self) -> typing.Tuple[perpetua.pitch.Pitch, ...]:

		return self.pitches[:3]

	def __len__ (self) -> int:

		return len(self.pitches)

	def name (self) -> str:

		return " ".join(p.name() for p in self.pitches)


@dataclasses.dataclass(frozen=True)
class ChordProgression:

	"""A cyclic chord sequence and the template pool it came from.

	Attributes:
		pool: Template pool name (``"pop"``, ``"emotional"`` or ``"epic"``).
		degrees: The scale-degree template that was drawn.
		chords: One voicing per template entry.
	"""

	pool: str
	degrees: typing.Tuple[int, ...]
	chords: typing.Tuple[ChordVoicing, ...]

	def __len__ (self) -> int:

		return len(self.chords)

	def __getitem__ (self, index: int) -> ChordVoicing:

		return self.chords[index % len(self.chords)]

	def __iter__ (self) -> typing.Iterator[ChordVoicing]:

		return iter(self.chords)


def template_pool (complexity: float) -> str:

	"""Return the template pool name for a chord complexity value."""

	if complexity < 0.33:
		return "pop"

	if complexity < 0.66:
		return "emotional"

	return "epic"


def build_chord (
	scale: typing.Sequence[int],
	root: int,
	degree: int,
	octave: int,
	harmonic_tension: float
) -> ChordVoicing:

	"""Voice a chord on a scale degree.

	The triad stacks +2 and +4 scale steps on the degree. Above a tension of
	0.5 the 7th (+6) is added; above 0.8 the 9th (+8, an octave above the
	2nd) is added as well.
	"""

	steps = [0, 2, 4]

	if harmonic_tension > SEVENTH_TENSION:
		steps.append(6)

	if harmonic_tension > NINTH_TENSION:
		steps.append(8)

	pitches = tuple(
		perpetua.intervals.degree_to_pitch(scale, root, degree + step, octave)
		for step in steps
	)

	return ChordVoicing(degree=degree, pitches=pitches)


def build_progression (
	scale: typing.Sequence[int],
	root: int,
	octave: int,
	complexity: float,
	harmonic_tension: float,
	rng: perpetua.seeded_random.SeededRandom
) -> ChordProgression:

	"""Draw a progression template and voice every entry.

	One draw selects the template within the pool picked by *complexity*.
	Templates are never modified; each call builds fresh voicings.

	Example:
		```python
		rng = SeededRandom(42)
		scale = perpetua.intervals.get_scale(0)
		progression = build_progression(scale, 0, 4, 0.2, 0.3, rng)
		progression.pool   # "pop"
		```
	"""

	pool = template_pool(complexity)
	degrees = rng.choice(PROGRESSION_TEMPLATES[pool])

	chords = tuple(
		build_chord(scale, root, degree, octave, harmonic_tension)
		for degree in degrees
	)

	logger.debug(f"Progression: {pool} {list(degrees)}")

	return ChordProgression(pool=pool, degrees=degrees, chords=chords)


def walking_tone (
	current: perpetua.pitch.Pitch,
	target: perpetua.pitch.Pitch,
	rng: perpetua.seeded_random.SeededRandom
) -> perpetua.pitch.Pitch:

	"""Step a semitone from *current* toward *target*.

	Pitches are compared by absolute semitone count. When they are equal the
	direction is an explicit coin flip from *rng* (up when the draw is above
	0.5), so the choice stays reproducible for a given seed.
	"""

	if current.semitones < target.semitones:
		return current.transpose(1)

	if current.semitones > target.semitones:
		return current.transpose(-1)

	return current.transpose(1 if rng.draw() > 0.5 else -1)


def build_bassline (
	progression: ChordProgression,
	bass_intensity: float,
	rhythm_complexity: float,
	rng: perpetua.seeded_random.SeededRandom
) -> Bassline:

	"""Derive one bass entry per progression chord.

	Every entry starts with the chord root one octave down. Further tones are
	added in order as intensity rises:

	- above 0.3: the chord fifth, in the bass octave
	- above 0.6: a walking tone toward the next chord's fundamental
	- above 0.8 with rhythm complexity above 0.5: the fundamental doubled an
	  octave up
	"""

	chords = progression.chords

	if not chords:
		return ()

	fundamentals = [chord.root.transpose(-12) for chord in chords]
	entries: typing.List[BasslineEntry] = []

	for i, chord in enumerate(chords):

		fundamental = fundamentals[i]
		entry = [fundamental]

		if bass_intensity > FIFTH_INTENSITY:
			entry.append(chord.pitches[2].transpose(-12))

		if bass_intensity > WALKING_INTENSITY:
			following = fundamentals[(i + 1) % len(fundamentals)]
			entry.append(walking_tone(fundamental, following, rng))

		if bass_intensity > DOUBLING_INTENSITY and rhythm_complexity > DOUBLING_RHYTHM:
			entry.append(fundamental.transpose(12))

		entries.append(tuple(entry))

	return tuple(entries)
