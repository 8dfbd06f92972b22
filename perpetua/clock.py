"""Hierarchical step/bar/section/phrase clock.

The clock is ticked once per sixteenth note. Each tick it advances its
counters, then decides what to hand to the instrument sink:

- **Section start** (the bar counter wraps): the section's chord and its
  bass fundamental. In the Climax stage a sustained pad of the chord triad
  is added.
- **Other bar starts**: a secondary bass tone, when bass intensity allows.
- **Every step**: a melody note from the pattern the evolution stage
  selects, with swing on odd steps and velocity from the tension curve.

Counters roll over strictly: 16 steps make a bar, 4 bars a section, one
section per progression chord, and a full pass of the progression a
phrase. Every ``phrases_per_stage`` phrases the evolution stage advances.

Material and parameters are read through getter callables on every tick,
so regeneration between ticks takes effect on the next read and never
interrupts an emission in progress.
"""

import dataclasses
import logging
import random
import typing

import perpetua.constants
import perpetua.evolution
import perpetua.pitch
import perpetua.sink

if typing.TYPE_CHECKING:
	import perpetua.engine


logger = logging.getLogger(__name__)


CHORD_SHORT_TENSION = 0.5
CHORD_SHORT_BEATS = 2.0
CHORD_LONG_BEATS = 4.0
BASS_FUNDAMENTAL_BEATS = 1.0
SECONDARY_BASS_INTENSITY = 0.3
SECONDARY_BASS_SHORT_INTENSITY = 0.7
PAD_BEATS = 8.0


@dataclasses.dataclass(frozen=True)
class ClockPosition:

	"""A snapshot of the clock counters."""

	step: int = 0
	bar: int = 0
	section: int = 0
	phrase: int = 0

	def to_dict (self) -> typing.Dict[str, int]:

		return dataclasses.asdict(self)


class SequencerClock:

	"""Decide, tick by tick, what the sink plays.

	Parameters:
		get_material: Returns the current generated material.
		get_params: Returns the current generation parameters.
		evolution: The evolution stage tracker. Its ``phrases_per_stage``
			sets the phrase counter range.
		sink: Receives note events.
		on_stage_change: Called with the new stage after the evolution
			advances, before anything is emitted for that tick.
		on_variation: Called at the start of a full structural cycle when the
			variation draw succeeds. No draw is made on a tick that changed the
			evolution stage.
		on_bar: Called with the position at every bar start, after emission.
		variation_rng: Source for the occasional-variation draw. Unseeded by
			default.
	"""

	def __init__ (
		self,
		get_material: typing.Callable[[], "perpetua.engine.Material"],
		get_params: typing.Callable[[], "perpetua.engine.GenerationParams"],
		evolution: perpetua.evolution.EvolutionStateMachine,
		sink: perpetua.sink.InstrumentSink,
		on_stage_change: typing.Optional[typing.Callable[[perpetua.evolution.EvolutionStage], None]] = None,
		on_variation: typing.Optional[typing.Callable[[], None]] = None,
		on_bar: typing.Optional[typing.Callable[[ClockPosition], None]] = None,
		variation_rng: typing.Optional[random.Random] = None
	) -> None:

		self._get_material = get_material
		self._get_params = get_params
		self.evolution = evolution
		self.sink = sink
		self._on_stage_change = on_stage_change
		self._on_variation = on_variation
		self._on_bar = on_bar
		self.variation_rng = variation_rng or random.Random()

		self.step = 0
		self.bar = 0
		self.section = 0
		self.phrase = 0
		self.ticks = 0
		self._stage_changed = False

	@property
	def position (self) -> ClockPosition:

		return ClockPosition(step=self.step, bar=self.bar, section=self.section, phrase=self.phrase)

	def reset (self) -> None:

		"""Return every counter to zero."""

		self.step = 0
		self.bar = 0
		self.section = 0
		self.phrase = 0
		self.ticks = 0
		self._stage_changed = False

	def tick (self, time: float) -> None:

		"""Advance one step and emit the events due at *time* (in beats)."""

		self.ticks += 1
		self._stage_changed = False

		section_started = self._advance()

		material = self._get_material()
		params = self._get_params()

		if self.step == 0:

			if section_started:
				self._emit_section_start(material, time)
			else:
				self._emit_secondary_bass(material, params, time)

		self._emit_melody(material, params, time)

		if self.step == 0 and self._on_bar is not None:
			self._on_bar(self.position)

		# No variation on the tick that changed the stage.
		if self.step == 0 and self.bar == 0 and self.section == 0 and not self._stage_changed and self._on_variation is not None:
			if self.variation_rng.random() < perpetua.constants.VARIATION_PROBABILITY:
				logger.info("Variation: regenerating all material")
				self._on_variation()

	def _advance (self) -> bool:

		"""Advance the counters and return True when a new section begins."""

		self.step = (self.step + 1) % perpetua.constants.STEPS_PER_BAR

		if self.step != 0:
			return False

		self.bar = (self.bar + 1) % perpetua.constants.BARS_PER_SECTION

		if self.bar != 0:
			return False

		sections = len(self._get_material().progression)
		self.section = (self.section + 1) % sections if sections else 0

		if self.section == 0:
			self.phrase = (self.phrase + 1) % self.evolution.phrases_per_stage

			if self.phrase == 0:
				stage = self.evolution.advance()
				self._stage_changed = True

				if self._on_stage_change is not None:
					self._on_stage_change(stage)

		return True

	def _trigger (
		self,
		voice: perpetua.sink.Voice,
		pitches: typing.Sequence[perpetua.pitch.Pitch],
		duration: float,
		time: float,
		velocity: float = 1.0
	) -> None:

		"""Hand one event to the sink. A failing sink never stops the tick."""

		try:
			self.sink.trigger(voice, pitches, duration, time, velocity)
		except Exception:
			logger.exception(f"Sink failed to trigger {voice.value} at beat {time:.2f}")

	def _emit_section_start (self, material: "perpetua.engine.Material", time: float) -> None:

		"""Play the section chord, its bass fundamental and, in Climax, the pad."""

		if len(material.progression):

			chord = material.progression[self.section]
			tension = material.tension_curve.at(self.bar + self.section * perpetua.constants.BARS_PER_SECTION)
			duration = CHORD_SHORT_BEATS if tension > CHORD_SHORT_TENSION else CHORD_LONG_BEATS

			self._trigger(perpetua.sink.Voice.CHORD, chord.pitches, duration, time)

			if self.evolution.stage is perpetua.evolution.EvolutionStage.CLIMAX:
				self._trigger(perpetua.sink.Voice.PAD, chord.triad, PAD_BEATS, time)

		if material.bassline:
			entry = material.bassline[self.section % len(material.bassline)]
			self._trigger(perpetua.sink.Voice.BASS, entry[:1], BASS_FUNDAMENTAL_BEATS, time)

	def _emit_secondary_bass (
		self,
		material: "perpetua.engine.Material",
		params: "perpetua.engine.GenerationParams",
		time: float
	) -> None:

		"""Play an added bass tone on a bar start inside the section."""

		if not material.bassline or params.bass_intensity <= SECONDARY_BASS_INTENSITY:
			return

		entry = material.bassline[self.section % len(material.bassline)]

		if len(entry) <= 1:
			return

		pitch = entry[min(self.bar, len(entry) - 1)]
		duration = 0.5 if params.bass_intensity > SECONDARY_BASS_SHORT_INTENSITY else 1.0

		self._trigger(perpetua.sink.Voice.BASS, (pitch,), duration, time)

	def _emit_melody (
		self,
		material: "perpetua.engine.Material",
		params: "perpetua.engine.GenerationParams",
		time: float
	) -> None:

		"""Play the melody slot for this step, if it holds a note."""

		source = self.evolution.pattern_source(self.bar)
		pattern = material.hook if source is perpetua.evolution.PatternSource.HOOK else material.pattern

		if not pattern:
			return

		slot = pattern[self.step % len(pattern)]

		if not isinstance(slot, perpetua.pitch.Note):
			return

		offset = params.swing_feel * perpetua.constants.SWING_BEATS_PER_UNIT if self.step % 2 == 1 else 0.0
		duration = self.evolution.note_duration(params.rhythm_complexity)

		tension = material.tension_curve.at(self.step + self.section * perpetua.constants.STEPS_PER_BAR)
		velocity = max(0.0, min(1.0, (0.5 + 0.5 * tension) * self.evolution.dynamic_level))

		self._trigger(perpetua.sink.Voice.MELODY, (slot.pitch,), duration, time + offset, velocity)
