"""Long-form evolution arc: Intro → Development → Climax → Resolution.

The stage advances each time the clock completes ``phrases_per_stage``
phrases, and wraps from Resolution back to Intro. There is no terminal stage.

Besides deciding when the melody is refreshed, the active stage biases
playback at tick time:

- **Pattern source**: Intro and Climax play the main pattern, Development
  alternates main/hook by bar parity, Resolution settles on the hook.
- **Note length**: shorter in Climax, longer in Resolution.
- **Dynamic level**: a velocity scale that peaks in Climax.
"""

import enum
import logging
import typing

import perpetua.constants


logger = logging.getLogger(__name__)


class EvolutionStage (enum.IntEnum):

	"""The four phases of the arc, in playing order."""

	INTRO = 0
	DEVELOPMENT = 1
	CLIMAX = 2
	RESOLUTION = 3

	@property
	def label (self) -> str:

		"""Display label, e.g. ``"Development"``."""

		return self.name.capitalize()

	def next (self) -> "EvolutionStage":

		return EvolutionStage((self.value + 1) % len(EvolutionStage))


class PatternSource (enum.Enum):

	"""Which melodic pattern a tick reads from."""

	MAIN = "main"
	HOOK = "hook"


# Stages that refresh the main melodic pattern on entry.
MELODY_REGENERATION_STAGES = frozenset({EvolutionStage.DEVELOPMENT, EvolutionStage.CLIMAX})

DYNAMIC_LEVELS: typing.Dict[EvolutionStage, float] = {
	EvolutionStage.INTRO: 0.85,
	EvolutionStage.DEVELOPMENT: 0.95,
	EvolutionStage.CLIMAX: 1.0,
	EvolutionStage.RESOLUTION: 0.8,
}

# (simple, busy) melody note lengths in beats, picked by rhythm complexity.
NOTE_DURATIONS: typing.Dict[EvolutionStage, typing.Tuple[float, float]] = {
	EvolutionStage.INTRO: (0.25, 0.5),
	EvolutionStage.DEVELOPMENT: (0.25, 0.5),
	EvolutionStage.CLIMAX: (0.25, 0.125),
	EvolutionStage.RESOLUTION: (0.5, 0.25),
}


class EvolutionStateMachine:

	"""Track the current evolution stage.

	The owner counts phrases and calls :meth:`advance` when
	``phrases_per_stage`` of them have completed.

	Example:
		```python
		evolution = EvolutionStateMachine(phrases_per_stage=4)
		evolution.stage.label          # "Intro"
		evolution.advance()            # EvolutionStage.DEVELOPMENT
		evolution.regenerates_melody() # True
		```
	"""

	def __init__ (self, phrases_per_stage: int = perpetua.constants.DEFAULT_PHRASES_PER_STAGE) -> None:

		if phrases_per_stage < 1:
			raise ValueError(f"phrases_per_stage must be at least 1, got {phrases_per_stage}")

		self.phrases_per_stage = phrases_per_stage
		self._stage = EvolutionStage.INTRO
		self._cycles = 0

	@property
	def stage (self) -> EvolutionStage:

		return self._stage

	@property
	def cycles (self) -> int:

		"""Number of completed Intro-to-Resolution arcs."""

		return self._cycles

	def advance (self) -> EvolutionStage:

		"""Move to the next stage and return it."""

		self._stage = self._stage.next()

		if self._stage is EvolutionStage.INTRO:
			self._cycles += 1

		logger.info(f"Evolution: {self._stage.label}")

		return self._stage

	def reset (self) -> None:

		"""Return to Intro."""

		self._stage = EvolutionStage.INTRO
		self._cycles = 0

	def regenerates_melody (self) -> bool:

		"""Return True if entering the current stage refreshes the main pattern."""

		return self._stage in MELODY_REGENERATION_STAGES

	def pattern_source (self, bar: int) -> PatternSource:

		"""Return the melodic source for a bar in the current stage."""

		if self._stage is EvolutionStage.RESOLUTION:
			return PatternSource.HOOK

		if self._stage is EvolutionStage.DEVELOPMENT and bar % 2 == 1:
			return PatternSource.HOOK

		return PatternSource.MAIN

	def note_duration (self, rhythm_complexity: float) -> float:

		"""Return the melody note length in beats."""

		simple, busy = NOTE_DURATIONS[self._stage]

		return simple if rhythm_complexity < 0.5 else busy

	@property
	def dynamic_level (self) -> float:

		return DYNAMIC_LEVELS[self._stage]
