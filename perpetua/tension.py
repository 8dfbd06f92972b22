"""Long-arc tension model.

A :class:`TensionCurve` is a fixed array of 32 tension values built from six
seeded control points that follow a rise–fall–rise shape: a low intro, an
early peak, a valley, the main peak near 70%, a descent and a low ending.
Samples between control points are linearly interpolated, the same ramp used
by a ``Line`` automation signal.

The curve is sampled by the melody generator (register choice) and by the
clock (chord length and note velocity).
"""

import dataclasses
import math
import typing

import perpetua.constants
import perpetua.seeded_random


# (x as a fraction of the curve length, baseline height, seeded spread).
# The final point sits on the last sample.
CONTROL_POINT_SHAPE: typing.Tuple[typing.Tuple[float, float, float], ...] = (
	(0.0, 0.2, 0.2),	# intro
	(0.3, 0.4, 0.3),	# early peak
	(0.5, 0.3, 0.2),	# valley
	(0.7, 0.6, 0.4),	# main peak
	(0.9, 0.4, 0.3),	# descent
	(1.0, 0.2, 0.2),	# ending
)


def _interpolate (x: float, points: typing.Sequence[typing.Tuple[float, float]]) -> float:

	"""
	Linearly interpolate *y* at *x* between the bracketing control points.
	"""

	start = points[0]
	end = points[-1]

	for left, right in zip(points, points[1:]):
		if left[0] <= x <= right[0]:
			start, end = left, right
			break

	span = end[0] - start[0]

	if span <= 0:
		return start[1]

	progress = (x - start[0]) / span
	return start[1] + progress * (end[1] - start[1])


@dataclasses.dataclass(frozen=True)
class TensionCurve:

	"""An immutable, sampled tension arc with values in ``[0, 1)``."""

	values: typing.Tuple[float, ...]

	@classmethod
	def generate (
		cls,
		seed: int,
		rng: typing.Optional[perpetua.seeded_random.SeededRandom] = None,
		length: int = perpetua.constants.TENSION_CURVE_LENGTH
	) -> "TensionCurve":

		"""Build the curve for a seed.

		The generator is reset to *seed* and six perturbations are drawn, one
		per control point, in curve order. When *rng* is given it is reset
		and advanced, so the caller observes the draws.
		"""

		if length < 2:
			raise ValueError("Tension curve needs at least two samples")

		rng = rng or perpetua.seeded_random.SeededRandom(seed)
		rng.reset(seed)

		last_index = length - 1
		points = [
			(min(fraction * length, last_index), base + rng.draw() * spread)
			for fraction, base, spread in CONTROL_POINT_SHAPE
		]

		return cls(values=tuple(_interpolate(float(i), points) for i in range(length)))

	def __len__ (self) -> int:

		return len(self.values)

	def at (self, index: int) -> float:

		"""Return the value at an integer index, wrapping around the curve."""

		return self.values[index % len(self.values)]

	def sample (self, position: float) -> float:

		"""Map a continuous position in ``[0, 1]`` to a curve value.

		Positions outside the range are clamped to the first or last sample.
		"""

		length = len(self.values)
		index = int(math.floor(position * length))

		return self.values[max(0, min(index, length - 1))]
