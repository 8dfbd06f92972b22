"""Instrument and effect sinks.

The engine never produces sound itself. It hands note events and effect
updates to an :class:`InstrumentSink`:

- ``trigger(voice, pitches, duration, start_time, velocity)``: one call per
  voice event. ``duration`` and ``start_time`` are in beats, ``velocity``
  is in ``[0, 1]``.
- ``set_effect_parameter(name, value)``: ``reverbWet`` and ``delayWet`` in
  ``[0, 1]``, ``filterCutoff`` in Hz.
- ``set_tempo(bpm)``.
- ``prepare()``: awaited once by ``CompositionEngine.start()`` before the
  first tick.

Two sinks are provided. :class:`RecordingSink` keeps everything in memory
for tests and headless runs. :class:`MidiSink` schedules MIDI on a
:class:`~perpetua.sequencer.Sequencer`, one channel per voice.
"""

import dataclasses
import enum
import logging
import math
import typing

import perpetua.pitch
import perpetua.sequencer


logger = logging.getLogger(__name__)


class Voice (enum.Enum):

	"""The logically separate voices the engine plays."""

	MELODY = "melody"
	CHORD = "chord"
	BASS = "bass"
	PAD = "pad"


REVERB_WET = "reverbWet"
DELAY_WET = "delayWet"
FILTER_CUTOFF = "filterCutoff"

EFFECT_PARAMETERS: typing.Tuple[str, ...] = (REVERB_WET, DELAY_WET, FILTER_CUTOFF)

# General MIDI effect depth controllers plus brightness for the filter.
EFFECT_CONTROLLERS: typing.Dict[str, int] = {
	REVERB_WET: 91,
	DELAY_WET: 94,
	FILTER_CUTOFF: 74,
}

FILTER_MIN_HZ = 100.0
FILTER_MAX_HZ = 10000.0

DEFAULT_CHANNELS: typing.Dict[Voice, int] = {
	Voice.MELODY: 0,
	Voice.CHORD: 1,
	Voice.BASS: 2,
	Voice.PAD: 3,
}


@dataclasses.dataclass(frozen=True)
class NoteEvent:

	"""One triggered voice event, as received by a sink."""

	voice: Voice
	pitches: typing.Tuple[perpetua.pitch.Pitch, ...]
	duration: float
	start_time: float
	velocity: float


class InstrumentSink (typing.Protocol):

	"""Anything that can realize the engine's note and effect output."""

	def trigger (
		self,
		voice: Voice,
		pitches: typing.Sequence[perpetua.pitch.Pitch],
		duration: float,
		start_time: float,
		velocity: float
	) -> None:
		...

	def set_effect_parameter (self, name: str, value: float) -> None:
		...

	def set_tempo (self, bpm: float) -> None:
		...

	async def prepare (self) -> None:
		...


class RecordingSink:

	"""
	An in-memory sink: note events, effect values and tempo are stored.

	Example:
		```python
		sink = RecordingSink()
		engine = CompositionEngine(sink, seed=42)
		await engine.start()
		for step in range(64):
			engine.tick(step * 0.25)
		chords = sink.voice_events(Voice.CHORD)
		```
	"""

	def __init__ (self) -> None:

		self.events: typing.List[NoteEvent] = []
		self.effects: typing.Dict[str, float] = {}
		self.effect_history: typing.List[typing.Tuple[str, float]] = []
		self.tempo: typing.Optional[float] = None
		self.prepare_count = 0

	def trigger (
		self,
		voice: Voice,
		pitches: typing.Sequence[perpetua.pitch.Pitch],
		duration: float,
		start_time: float,
		velocity: float
	) -> None:

		self.events.append(NoteEvent(
			voice = voice,
			pitches = tuple(pitches),
			duration = duration,
			start_time = start_time,
			velocity = velocity
		))

	def set_effect_parameter (self, name: str, value: float) -> None:

		self.effects[name] = value
		self.effect_history.append((name, value))

	def set_tempo (self, bpm: float) -> None:

		self.tempo = bpm

	async def prepare (self) -> None:

		self.prepare_count += 1

	def voice_events (self, voice: Voice) -> typing.List[NoteEvent]:

		"""Return the recorded events for one voice, in trigger order."""

		return [event for event in self.events if event.voice is voice]

	def clear (self) -> None:

		"""Forget recorded note events (effects and tempo are kept)."""

		self.events = []


def velocity_to_midi (velocity: float) -> int:

	"""Map a ``[0, 1]`` velocity to a MIDI velocity in ``1..127``."""

	return max(1, min(127, int(round(velocity * 127))))


def effect_to_midi (name: str, value: float) -> int:

	"""Map an effect value to a 0–127 controller value.

	Wet amounts scale linearly. The filter cutoff is mapped on a log scale
	over 100–10000 Hz, so each octave gets an equal share of the range.
	"""

	if name == FILTER_CUTOFF:
		hz = max(FILTER_MIN_HZ, min(FILTER_MAX_HZ, value))
		fraction = math.log(hz / FILTER_MIN_HZ) / math.log(FILTER_MAX_HZ / FILTER_MIN_HZ)
	else:
		fraction = max(0.0, min(1.0, value))

	return int(round(fraction * 127))


class MidiSink:

	"""Schedule engine output as MIDI on a sequencer.

	Each voice plays on its own channel. Effect parameters become control
	changes sent on every voice channel, and tempo changes retime the
	sequencer.

	Parameters:
		sequencer: The transport that sends the scheduled events.
		channels: Optional voice → channel (0–15) map. Every voice must be
			present.
	"""

	def __init__ (
		self,
		sequencer: perpetua.sequencer.Sequencer,
		channels: typing.Optional[typing.Mapping[Voice, int]] = None
	) -> None:

		channels = dict(channels) if channels is not None else dict(DEFAULT_CHANNELS)

		missing = [voice.value for voice in Voice if voice not in channels]

		if missing:
			raise ValueError(f"No MIDI channel for voices: {', '.join(missing)}")

		for voice, channel in channels.items():
			if not 0 <= channel <= 15:
				raise ValueError(f"MIDI channel for {voice.value} must be 0-15, got {channel}")

		self.sequencer = sequencer
		self.channels = channels

	def trigger (
		self,
		voice: Voice,
		pitches: typing.Sequence[perpetua.pitch.Pitch],
		duration: float,
		start_time: float,
		velocity: float
	) -> None:

		channel = self.channels[voice]
		start_pulse = self.sequencer.beats_to_pulses(start_time)
		duration_pulses = self.sequencer.beats_to_pulses(duration)
		midi_velocity = velocity_to_midi(velocity)

		for pitch in pitches:

			note = pitch.midi

			if not 0 <= note <= 127:
				logger.debug(f"Skipping out-of-range note {pitch.name()} on {voice.value}")
				continue

			self.sequencer.schedule_note(start_pulse, channel, note, midi_velocity, duration_pulses)

	def set_effect_parameter (self, name: str, value: float) -> None:

		control = EFFECT_CONTROLLERS.get(name)

		if control is None:
			logger.debug(f"Ignoring unknown effect parameter {name!r}")
			return

		cc_value = effect_to_midi(name, value)

		for channel in sorted(set(self.channels.values())):
			self.sequencer.schedule_control_change(self.sequencer.pulse_count, channel, control, cc_value)

	def set_tempo (self, bpm: float) -> None:

		self.sequencer.set_bpm(bpm)

	async def prepare (self) -> None:

		if self.sequencer.midi_out is None:
			logger.warning("No MIDI output open - events will only be recorded")
