"""Deterministic draw sequence derived from an integer seed.

Each draw evaluates ``x = sin(cursor) * 10000``, advances the cursor by one
and returns the fractional part of ``x``. It is cheap and reproducible, not
statistically strong: every generated chord, note and tension value is a
pure function of the seed and the order of draws.

``reset()`` always rewinds the cursor to the stored seed (or to an explicit
value), never to a fresh random value, so regenerating from the same seed
reproduces the same material.
"""

import math
import typing


T = typing.TypeVar("T")


class SeededRandom:

	"""Sine-hash pseudo-random generator with a resettable integer cursor."""

	def __init__ (self, seed: int = 0) -> None:

		self.seed = int(seed)
		self.cursor = self.seed

	def reset (self, seed: typing.Optional[int] = None) -> None:

		"""Rewind the cursor to *seed*, or to the stored seed when omitted.

		Passing a seed also replaces the stored seed.
		"""

		if seed is not None:
			self.seed = int(seed)

		self.cursor = self.seed

	def draw (self) -> float:

		"""Return the next value in ``[0, 1)`` and advance the cursor."""

		x = math.sin(self.cursor) * 10000
		self.cursor += 1

		return x - math.floor(x)

	def below (self, n: int) -> int:

		"""Return an integer in ``[0, n)`` using one draw."""

		if n <= 0:
			raise ValueError("Upper bound must be positive")

		return min(int(self.draw() * n), n - 1)

	def choice (self, options: typing.Sequence[T]) -> T:

		"""Pick one element using one draw."""

		if not options:
			raise ValueError("Cannot choose from an empty sequence")

		return options[self.below(len(options))]
