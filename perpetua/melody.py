"""Main melodic pattern and hook generation.

The main pattern is an 8–16 slot cycle. A fixed rhythm template (chosen by
rhythm complexity) decides most onsets; template rests occasionally sprout
an extra off-beat onset. Each onset samples the tension curve at its
position in the pattern:

- low tension (< 0.3): strong degrees only (root, third, fifth)
- medium tension (< 0.6): any degree of the scale
- high tension: raised one octave, with degrees across two octaves above
  that, so the line climbs into the upper register

The hook is a four-slot motif from strong degrees only. Its first and last
slots always sound, and its octave alternates by slot, which keeps it short
and recognizable. Callers regenerate it less often than the main pattern.
"""

import logging
import typing

import perpetua.constants
import perpetua.intervals
import perpetua.pitch
import perpetua.seeded_random
import perpetua.tension


logger = logging.getLogger(__name__)


RHYTHM_TEMPLATES: typing.Dict[str, typing.Tuple[int, ...]] = {
	"simple": (1, 0, 0, 1, 0, 1, 0, 0),
	"medium": (1, 0, 1, 0, 1, 0, 1, 1, 0, 1, 0, 0),
	"complex": (1, 0, 1, 1, 0, 1, 0, 1, 0, 1, 1, 0, 1, 0, 1, 1),
}

LOW_TENSION = 0.3
MEDIUM_TENSION = 0.6


MelodicPattern = typing.Tuple[perpetua.pitch.Slot, ...]
HookPattern = typing.Tuple[perpetua.pitch.Slot, ...]


def rhythm_template (rhythm_complexity: float) -> typing.Tuple[int, ...]:

	"""Return the onset template for a rhythm complexity value."""

	if rhythm_complexity < 0.33:
		return RHYTHM_TEMPLATES["simple"]

	if rhythm_complexity < 0.66:
		return RHYTHM_TEMPLATES["medium"]

	return RHYTHM_TEMPLATES["complex"]


def pattern_length (rhythm_complexity: float) -> int:

	"""Return the slot count, 8 to 16, for a rhythm complexity value."""

	clamped = max(0.0, min(1.0, rhythm_complexity))
	return 8 + int(clamped * 8)


def choose_degree (
	tension: float,
	scale_size: int,
	rng: perpetua.seeded_random.SeededRandom
) -> int:

	"""
	Pick a scale degree biased by the tension at the slot.
	"""

	if tension < LOW_TENSION:
		return rng.choice(perpetua.constants.STRONG_DEGREES)

	if tension < MEDIUM_TENSION:
		return rng.below(scale_size)

	# Extended register, one octave up: two octaves of degrees above the base.
	return scale_size + rng.below(scale_size * 2)


def build_pattern (
	scale: typing.Sequence[int],
	root: int,
	octave: int,
	rhythm_complexity: float,
	tension_curve: perpetua.tension.TensionCurve,
	rng: perpetua.seeded_random.SeededRandom
) -> MelodicPattern:

	"""Build the main melodic pattern.

	Parameters:
		scale: Semitone offsets of the scale.
		root: Root pitch class.
		octave: Base octave of the melody.
		rhythm_complexity: 0.0–1.0, sets the template and the length.
		tension_curve: Sampled at each onset's relative position.
		rng: Seeded generator, advanced by every decision.

	Returns:
		A tuple of slots, either ``REST`` or ``Note``.
	"""

	template = rhythm_template(rhythm_complexity)
	length = pattern_length(rhythm_complexity)
	slots: typing.List[perpetua.pitch.Slot] = []

	for i in range(length):

		onset = template[i % len(template)] == 1 or rng.draw() > perpetua.constants.EXTRA_ONSET_THRESHOLD

		if not onset:
			slots.append(perpetua.pitch.REST)
			continue

		tension = tension_curve.sample(i / length)
		degree = choose_degree(tension, len(scale), rng)
		pitch = perpetua.intervals.degree_to_pitch(scale, root, degree, octave)

		slots.append(perpetua.pitch.Note(pitch))

	logger.debug(f"Melody: {perpetua.pitch.format_slots(slots)}")

	return tuple(slots)


def build_hook (
	scale: typing.Sequence[int],
	root: int,
	octave: int,
	rng: perpetua.seeded_random.SeededRandom
) -> HookPattern:

	"""Build the four-slot hook from strong degrees.

	Slots 0 and 3 always sound. Interior slots sound when a draw exceeds 0.3
	(about 70% of the time). Odd slots sit one octave above even slots.
	"""

	length = perpetua.constants.HOOK_LENGTH
	slots: typing.List[perpetua.pitch.Slot] = []

	for i in range(length):

		if i == 0 or i == length - 1 or rng.draw() > perpetua.constants.HOOK_INTERIOR_THRESHOLD:
			degree = rng.choice(perpetua.constants.STRONG_DEGREES)
			pitch = perpetua.intervals.degree_to_pitch(scale, root, degree, octave + i % 2)
			slots.append(perpetua.pitch.Note(pitch))

		else:
			slots.append(perpetua.pitch.REST)

	logger.debug(f"Hook: {perpetua.pitch.format_slots(slots)}")

	return tuple(slots)
