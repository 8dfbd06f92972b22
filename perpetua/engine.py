"""The composition engine: parameters, seed, material and the public contract.

:class:`CompositionEngine` owns every piece of generation state: the seed
and its draw cursor, the tension curve, the current :class:`Material`, the
evolution stage and the clock. Nothing is global, so two engines never
share state.

Parameters form a closed set (:class:`Param`). Each has a row in
``PARAMETER_TABLE`` describing its range, whether it is an integer, and what
a change does:

- **regenerate**: scale, root, octave, chordComplexity, bassIntensity,
  harmonicTension and rhythmComplexity rebuild all material.
- **tempo**: forwarded to the sink's ``set_tempo``.
- **effect**: reverbAmount, delayAmount and filterCutoff are forwarded to
  the sink as ``reverbWet``, ``delayWet`` and ``filterCutoff``.
- **live**: swingFeel is read by the clock on every tick.

Updates arrive from a live control surface, so they never raise: unknown
names and non-numeric values are ignored, numbers are clamped to range and
integer parameters are floored.
"""

import dataclasses
import enum
import logging
import math
import random
import typing

import perpetua.clock
import perpetua.constants
import perpetua.event_emitter
import perpetua.evolution
import perpetua.harmony
import perpetua.intervals
import perpetua.melody
import perpetua.seeded_random
import perpetua.sink
import perpetua.tension


logger = logging.getLogger(__name__)


SEED_MODULUS = 2 ** 32
RANDOM_SEED_LIMIT = 1_000_000


class Param (enum.Enum):

	"""The recognized generation parameters, valued by their wire names."""

	SCALE = "scale"
	ROOT = "root"
	OCTAVE = "octave"
	CHORD_COMPLEXITY = "chordComplexity"
	BASS_INTENSITY = "bassIntensity"
	HARMONIC_TENSION = "harmonicTension"
	TEMPO = "tempo"
	RHYTHM_COMPLEXITY = "rhythmComplexity"
	SWING_FEEL = "swingFeel"
	REVERB_AMOUNT = "reverbAmount"
	DELAY_AMOUNT = "delayAmount"
	FILTER_CUTOFF = "filterCutoff"


class Action (enum.Enum):

	"""What happens after a parameter is stored."""

	REGENERATE = "regenerate"
	TEMPO = "tempo"
	EFFECT = "effect"
	LIVE = "live"


@dataclasses.dataclass(frozen=True)
class ParamSpec:

	"""Range, type and side effect of one parameter."""

	field: str
	minimum: float
	maximum: float
	integer: bool = False
	action: Action = Action.LIVE
	effect_name: typing.Optional[str] = None

	def coerce (self, value: typing.Any) -> typing.Optional[typing.Union[int, float]]:

		"""Return *value* clamped (and floored for integers), or None if it is not a number."""

		if isinstance(value, bool):
			return None

		try:
			number = float(value)
		except (TypeError, ValueError, OverflowError):
			return None

		if math.isnan(number):
			return None

		number = max(self.minimum, min(self.maximum, number))

		if self.integer:
			return int(math.floor(number))

		return number


PARAMETER_TABLE: typing.Dict[Param, ParamSpec] = {
	Param.SCALE: ParamSpec("scale", 0, 6, integer=True, action=Action.REGENERATE),
	Param.ROOT: ParamSpec("root", 0, 11, integer=True, action=Action.REGENERATE),
	Param.OCTAVE: ParamSpec("octave", 2, 6, integer=True, action=Action.REGENERATE),
	Param.CHORD_COMPLEXITY: ParamSpec("chord_complexity", 0.0, 1.0, action=Action.REGENERATE),
	Param.BASS_INTENSITY: ParamSpec("bass_intensity", 0.0, 1.0, action=Action.REGENERATE),
	Param.HARMONIC_TENSION: ParamSpec("harmonic_tension", 0.0, 1.0, action=Action.REGENERATE),
	Param.TEMPO: ParamSpec("tempo", 60.0, 180.0, action=Action.TEMPO),
	Param.RHYTHM_COMPLEXITY: ParamSpec("rhythm_complexity", 0.0, 1.0, action=Action.REGENERATE),
	Param.SWING_FEEL: ParamSpec("swing_feel", 0.0, 0.5),
	Param.REVERB_AMOUNT: ParamSpec("reverb_amount", 0.0, 1.0, action=Action.EFFECT, effect_name=perpetua.sink.REVERB_WET),
	Param.DELAY_AMOUNT: ParamSpec("delay_amount", 0.0, 1.0, action=Action.EFFECT, effect_name=perpetua.sink.DELAY_WET),
	Param.FILTER_CUTOFF: ParamSpec("filter_cutoff", 100.0, 10000.0, action=Action.EFFECT, effect_name=perpetua.sink.FILTER_CUTOFF),
}

# Wire names, field names, and the short knob names.
_ALIASES: typing.Dict[str, Param] = {
	**{param.value: param for param in Param},
	**{rule.field: param for param, rule in PARAMETER_TABLE.items()},
	"reverb": Param.REVERB_AMOUNT,
	"delay": Param.DELAY_AMOUNT,
	"filter": Param.FILTER_CUTOFF,
}


def resolve_param (name: typing.Union[str, Param]) -> typing.Optional[Param]:

	"""Return the parameter for any accepted name, or None if unrecognized.

	Example:
		```python
		resolve_param("chordComplexity")   # Param.CHORD_COMPLEXITY
		resolve_param("chord_complexity")  # Param.CHORD_COMPLEXITY
		resolve_param("reverb")            # Param.REVERB_AMOUNT
		resolve_param("volume")            # None
		```
	"""

	if isinstance(name, Param):
		return name

	return _ALIASES.get(name)


def normalize_seed (seed: typing.Any) -> int:

	"""Reduce a seed to the 32-bit range. Raises ``ValueError`` for non-numbers."""

	try:
		return int(seed) % SEED_MODULUS
	except (TypeError, ValueError, OverflowError) as exc:
		raise ValueError(f"Seed must be an integer, got {seed!r}") from exc


def random_seed () -> int:

	"""Draw a fresh seed from system randomness."""

	return random.randrange(RANDOM_SEED_LIMIT)


@dataclasses.dataclass(frozen=True)
class GenerationParams:

	"""The twelve controls. Replace with :func:`dataclasses.replace`; never mutate."""

	scale: int = 0
	root: int = 0
	octave: int = 4
	chord_complexity: float = 0.3
	bass_intensity: float = 0.5
	harmonic_tension: float = 0.2
	tempo: float = 120.0
	rhythm_complexity: float = 0.4
	swing_feel: float = 0.1
	reverb_amount: float = 0.3
	delay_amount: float = 0.2
	filter_cutoff: float = 2000.0

	def __post_init__ (self) -> None:

		for param, rule in PARAMETER_TABLE.items():

			value = getattr(self, rule.field)

			if not rule.minimum <= value <= rule.maximum:
				raise ValueError(f"{param.value} must be in [{rule.minimum}, {rule.maximum}], got {value}")

	def get (self, param: Param) -> typing.Union[int, float]:

		return typing.cast(typing.Union[int, float], getattr(self, PARAMETER_TABLE[param].field))

	def to_dict (self) -> typing.Dict[str, typing.Union[int, float]]:

		"""Return the values keyed by wire name."""

		return {param.value: self.get(param) for param in Param}


def build_params (
	values: typing.Mapping[str, typing.Any],
	base: typing.Optional[GenerationParams] = None
) -> GenerationParams:

	"""Apply a name → value mapping (any accepted alias) to *base*.

	Unknown names and non-numeric values are logged and skipped; numbers are
	clamped, as for live updates.
	"""

	params = base or GenerationParams()
	changes: typing.Dict[str, typing.Union[int, float]] = {}

	for name, value in values.items():

		param = resolve_param(name)

		if param is None:
			logger.warning(f"Ignoring unknown parameter {name!r}")
			continue

		rule = PARAMETER_TABLE[param]
		coerced = rule.coerce(value)

		if coerced is None:
			logger.warning(f"Ignoring non-numeric value {value!r} for {param.value}")
			continue

		changes[rule.field] = coerced

	return dataclasses.replace(params, **changes)


@dataclasses.dataclass(frozen=True)
class Material:

	"""Everything the clock plays from. Replaced wholesale on regeneration."""

	progression: perpetua.harmony.ChordProgression
	bassline: perpetua.harmony.Bassline
	pattern: perpetua.melody.MelodicPattern
	hook: perpetua.melody.HookPattern
	tension_curve: perpetua.tension.TensionCurve

	@classmethod
	def empty (cls, tension_curve: perpetua.tension.TensionCurve) -> "Material":

		"""Material with nothing to play."""

		return cls(
			progression = perpetua.harmony.ChordProgression(pool="", degrees=(), chords=()),
			bassline = (),
			pattern = (),
			hook = (),
			tension_curve = tension_curve
		)


@dataclasses.dataclass(frozen=True)
class DisplaySnapshot:

	"""Read-only values for a display widget."""

	seed: int
	scale_name: str
	root_name: str
	bpm: float
	evolution_phase: str

	def to_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"seed": self.seed,
			"scaleName": self.scale_name,
			"rootName": self.root_name,
			"bpm": self.bpm,
			"evolutionPhase": self.evolution_phase,
		}


class Transport (typing.Protocol):

	"""A real-time driver that calls back once per sixteenth note."""

	async def start (self, step_callback: typing.Callable[[float], typing.Any]) -> None:
		...

	def stop (self) -> None:
		...


class CompositionEngine:

	"""Generate and play an endless, seed-reproducible piece.

	Parameters:
		sink: Receives note events, effect values and tempo.
		seed: Starting seed. A random seed is drawn when omitted.
		params: Starting parameters (defaults when omitted).
		phrases_per_stage: Phrases per evolution stage.
		transport: Optional real-time driver (e.g. a
			:class:`~perpetua.sequencer.Sequencer`). Without one, the caller
			invokes :meth:`tick` itself.
		variation_rng: Source for the occasional-variation draw. Unseeded by
			default; pass a seeded ``random.Random`` for repeatable sessions.

	Events (see ``engine.events``):
		``"bar"`` (ClockPosition), ``"stage"`` (EvolutionStage),
		``"regenerate"`` (Material), ``"seed"`` (int), ``"param"`` (Param, value).

	Example:
		```python
		sink = perpetua.sink.RecordingSink()
		engine = perpetua.engine.CompositionEngine(sink, seed=42)

		await engine.start()
		engine.update_param("harmonicTension", 0.9)

		for step in range(256):
			engine.tick(step * 0.25)

		engine.stop()
		```
	"""

	def __init__ (
		self,
		sink: perpetua.sink.InstrumentSink,
		seed: typing.Optional[int] = None,
		params: typing.Optional[GenerationParams] = None,
		phrases_per_stage: int = perpetua.constants.DEFAULT_PHRASES_PER_STAGE,
		transport: typing.Optional[Transport] = None,
		variation_rng: typing.Optional[random.Random] = None
	) -> None:

		self.sink = sink
		self.transport = transport
		self.params = params or GenerationParams()
		self.seed = normalize_seed(seed) if seed is not None else random_seed()

		self.rng = perpetua.seeded_random.SeededRandom(self.seed)
		self.tension_curve = perpetua.tension.TensionCurve.generate(self.seed, self.rng)
		self.material = Material.empty(self.tension_curve)

		self.evolution = perpetua.evolution.EvolutionStateMachine(phrases_per_stage)
		self.events = perpetua.event_emitter.EventEmitter(events=("bar", "stage", "regenerate", "seed", "param"))

		self.clock = perpetua.clock.SequencerClock(
			get_material = lambda: self.material,
			get_params = lambda: self.params,
			evolution = self.evolution,
			sink = sink,
			on_stage_change = self._on_stage_change,
			on_variation = self.regenerate,
			on_bar = self._on_bar,
			variation_rng = variation_rng
		)

		self.playing = False
		self._starting = False

		self.regenerate()

	# -------------------------------------------------------------------------
	# Lifecycle
	# -------------------------------------------------------------------------

	async def start (self) -> None:

		"""Wait for the sink to be ready, then begin ticking.

		Calling this while started (or while a start is in progress) does
		nothing. Material is rebuilt from the seed, the clock starts from
		zero in the Intro stage, and tempo and effects are sent to the sink.
		"""

		if self.playing or self._starting:
			return

		self._starting = True

		try:
			await self.sink.prepare()

			self.clock.reset()
			self.evolution.reset()
			self.regenerate()
			self._forward_tempo()

			for param, rule in PARAMETER_TABLE.items():
				if rule.action is Action.EFFECT:
					self._forward_effect(param)

			self.playing = True

			if self.transport is not None:
				await self.transport.start(self.tick)

		finally:
			self._starting = False

		logger.info(f"Engine started (seed {self.seed})")

	def stop (self) -> None:

		"""Halt playback and reset the clock and evolution stage.

		Safe to call when never started.
		"""

		if self.transport is not None:
			self.transport.stop()

		was_playing = self.playing
		self.playing = False

		self.clock.reset()
		self.evolution.reset()

		if was_playing:
			logger.info("Engine stopped")

	def tick (self, time: float) -> None:

		"""Process one sixteenth-note step at *time* (in beats). Ignored when stopped."""

		if not self.playing:
			return

		self.clock.tick(time)

	@property
	def position (self) -> perpetua.clock.ClockPosition:

		return self.clock.position

	@property
	def stage (self) -> perpetua.evolution.EvolutionStage:

		return self.evolution.stage

	# -------------------------------------------------------------------------
	# Controls
	# -------------------------------------------------------------------------

	def update_param (self, name: typing.Union[str, Param], value: typing.Any) -> bool:

		"""Store a parameter and apply its side effect.

		Returns True if the update was applied. Unknown names and values that
		are not numbers are ignored (and return False).
		"""

		param = resolve_param(name)

		if param is None:
			logger.debug(f"Ignoring unknown parameter {name!r}")
			return False

		rule = PARAMETER_TABLE[param]
		coerced = rule.coerce(value)

		if coerced is None:
			logger.warning(f"Ignoring non-numeric value {value!r} for {param.value}")
			return False

		self.params = dataclasses.replace(self.params, **{rule.field: coerced})

		logger.debug(f"Param {param.value} = {coerced}")

		if rule.action is Action.REGENERATE:
			self.regenerate()

		elif rule.action is Action.TEMPO:
			self._forward_tempo()

		elif rule.action is Action.EFFECT:
			self._forward_effect(param)

		self.events.emit("param", param, coerced)

		return True

	def randomize_all_knobs (self) -> None:

		"""Draw every parameter from the seed, regenerate, and update the sink.

		The draw cursor is rewound first, so the same seed always gives the
		same knob settings.
		"""

		self.rng.reset()
		draw = self.rng.draw

		scale = int(draw() * 7)
		root = int(draw() * 12)
		octave = 3 + int(draw() * 3)
		chord_complexity = draw()
		bass_intensity = draw()
		harmonic_tension = draw()
		tempo = 80 + int(draw() * 100)
		rhythm_complexity = draw()
		swing_feel = draw() * 0.5
		reverb_amount = draw()
		delay_amount = draw()
		filter_cutoff = 500 + draw() * 9500

		self.params = GenerationParams(
			scale = scale,
			root = root,
			octave = octave,
			chord_complexity = chord_complexity,
			bass_intensity = bass_intensity,
			harmonic_tension = harmonic_tension,
			tempo = float(tempo),
			rhythm_complexity = rhythm_complexity,
			swing_feel = swing_feel,
			reverb_amount = reverb_amount,
			delay_amount = delay_amount,
			filter_cutoff = filter_cutoff
		)

		logger.info(f"Randomized knobs: {self.params.to_dict()}")

		self.regenerate()
		self._forward_tempo()

		for param, rule in PARAMETER_TABLE.items():
			if rule.action is Action.EFFECT:
				self._forward_effect(param)

	def change_seed (self, new_seed: typing.Optional[typing.Any] = None) -> None:

		"""Switch to a new seed (random when omitted) and start the arc again.

		The tension curve is rebuilt, the evolution stage returns to Intro and
		all material is regenerated. A seed that is not a number is ignored.
		"""

		if new_seed is None:
			seed = random_seed()
		else:
			try:
				seed = normalize_seed(new_seed)
			except ValueError:
				logger.warning(f"Ignoring invalid seed {new_seed!r}")
				return

		self.seed = seed
		self.rng.reset(seed)
		self.tension_curve = perpetua.tension.TensionCurve.generate(seed, self.rng)
		self.evolution.reset()

		logger.info(f"Seed: {seed}")

		self.regenerate()
		self.events.emit("seed", seed)

	def display_snapshot (self) -> DisplaySnapshot:

		"""Return the values a display shows. Safe to poll at any rate."""

		return DisplaySnapshot(
			seed = self.seed,
			scale_name = perpetua.intervals.display_name(self.params.scale),
			root_name = perpetua.intervals.root_name(self.params.root),
			bpm = self.params.tempo,
			evolution_phase = self.evolution.stage.label
		)

	# -------------------------------------------------------------------------
	# Generation
	# -------------------------------------------------------------------------

	def regenerate (self) -> None:

		"""Rebuild all material from the seed and current parameters.

		Draw order: progression, bassline and main pattern from a rewound
		cursor, then the hook from a second rewind, so the hook depends only
		on the seed, scale, root and octave.
		"""

		p = self.params
		scale = perpetua.intervals.get_scale(p.scale)

		self.rng.reset()

		progression = perpetua.harmony.build_progression(scale, p.root, p.octave, p.chord_complexity, p.harmonic_tension, self.rng)
		bassline = perpetua.harmony.build_bassline(progression, p.bass_intensity, p.rhythm_complexity, self.rng)
		pattern = perpetua.melody.build_pattern(scale, p.root, p.octave, p.rhythm_complexity, self.tension_curve, self.rng)

		self.rng.reset()

		hook = perpetua.melody.build_hook(scale, p.root, p.octave, self.rng)

		self.material = Material(
			progression = progression,
			bassline = bassline,
			pattern = pattern,
			hook = hook,
			tension_curve = self.tension_curve
		)

		logger.info(
			f"Regenerated: {perpetua.intervals.root_name(p.root)} {perpetua.intervals.display_name(p.scale)}, "
			f"{progression.pool} progression {list(progression.degrees)}, {len(pattern)}-step melody"
		)

		self.events.emit("regenerate", self.material)

	def regenerate_melody (self) -> None:

		"""Rebuild only the main pattern, continuing the draw cursor.

		Harmony, bassline and hook are kept. Because the cursor is not
		rewound, each call gives a new line that is still determined by the
		seed and the call history.
		"""

		p = self.params
		scale = perpetua.intervals.get_scale(p.scale)

		pattern = perpetua.melody.build_pattern(scale, p.root, p.octave, p.rhythm_complexity, self.tension_curve, self.rng)

		self.material = dataclasses.replace(self.material, pattern=pattern)

		logger.debug(f"Melody regenerated ({len(pattern)} steps)")

	# -------------------------------------------------------------------------
	# Internals
	# -------------------------------------------------------------------------

	def _on_stage_change (self, stage: perpetua.evolution.EvolutionStage) -> None:

		if self.evolution.regenerates_melody():
			self.regenerate_melody()

		self.events.emit("stage", stage)

	def _on_bar (self, position: perpetua.clock.ClockPosition) -> None:

		self.events.emit("bar", position)

	def _forward_tempo (self) -> None:

		try:
			self.sink.set_tempo(self.params.tempo)
		except Exception:
			logger.exception("Sink failed to set tempo")

	def _forward_effect (self, param: Param) -> None:

		rule = PARAMETER_TABLE[param]

		if rule.effect_name is None:
			return

		try:
			self.sink.set_effect_parameter(rule.effect_name, self.params.get(param))
		except Exception:
			logger.exception(f"Sink failed to set {rule.effect_name}")
