import asyncio
import dataclasses
import datetime
import heapq
import logging
import time
import typing

import mido

import perpetua.constants
import perpetua.midi_utils


logger = logging.getLogger(__name__)


StepCallback = typing.Callable[[float], typing.Any]


@dataclasses.dataclass (order=True)
class MidiEvent:

	"""
	Represents a MIDI event scheduled at a specific pulse.
	"""

	pulse: int
	# Note-offs (0) sort before other events (1) at the same pulse.
	priority: int
	message_type: str = dataclasses.field(compare=False)
	channel: int = dataclasses.field(compare=False)
	note: int = dataclasses.field(compare=False, default=0)
	velocity: int = dataclasses.field(compare=False, default=0)
	control: int = dataclasses.field(compare=False, default=0)
	value: int = dataclasses.field(compare=False, default=0)


class Sequencer:

	"""
	Real-time pulse transport for the composition engine.

	The sequencer keeps a 24 PPQN clock, calls a step callback once per
	sixteenth note with the current time in beats, and sends the MIDI events
	that callback schedules at their pulse.

	Everything runs as one task on the asyncio loop. Callers that mutate
	engine state from the same loop (OSC handlers, the snapshot feed) are
	therefore serialized with tick processing.
	"""

	def __init__ (
		self,
		output_device_name: typing.Optional[str] = None,
		initial_bpm: float = 120,
		record: bool = False,
		record_filename: typing.Optional[str] = None,
		spin_wait: bool = True,
		open_output: bool = True
	) -> None:

		"""Initialize the sequencer and open the MIDI output.

		Parameters:
			output_device_name: MIDI output device name. When omitted, the
				first available output is used.
			initial_bpm: Tempo in BPM.
			record: When True, record all MIDI events to a file.
			record_filename: Optional filename for the recording (defaults to timestamp).
			spin_wait: When True (default), sleep to within 1 ms of each pulse
				and busy-wait the remainder for tighter timing.
			open_output: When False, no device is opened. Events are still
				recorded, which is what offline rendering needs.
		"""

		self.output_device_name = output_device_name
		self.pulses_per_beat = perpetua.constants.MIDI_QUARTER_NOTE
		self.pulses_per_step = perpetua.constants.MIDI_SIXTEENTH_NOTE

		self.recording = record
		self.record_filename = record_filename
		self.recorded_events: typing.List[typing.Tuple[float, typing.Union[mido.Message, mido.MetaMessage]]] = []

		# Render mode: run as fast as possible and stop after render_bars.
		self.render_mode: bool = False
		self.render_bars: int = 0

		self.event_queue: typing.List[MidiEvent] = []
		self.task: typing.Optional[asyncio.Task] = None
		self.start_time = 0.0
		self.pulse_count = 0
		self.current_bar: int = -1
		self.active_notes: typing.Set[typing.Tuple[int, int]] = set()
		self._step_callback: typing.Optional[StepCallback] = None

		self.current_bpm: float = 0
		self.seconds_per_beat = 0.0
		self.seconds_per_pulse = 0.0
		self.running = False
		self._spin_wait: bool = spin_wait
		self._spin_threshold: float = 0.001

		self.set_bpm(initial_bpm)

		self.midi_out: typing.Any = None

		if open_output:
			self._init_midi_output()

	def _init_midi_output (self) -> None:

		"""Open the configured (or first available) MIDI output."""

		device_name, midi_out = perpetua.midi_utils.select_output_device(self.output_device_name)

		if device_name:
			self.output_device_name = device_name
			self.midi_out = midi_out

	def _record_event (self, pulse: int, message: typing.Union[mido.Message, mido.MetaMessage]) -> None:

		"""Record a MIDI message with an absolute pulse timestamp for later export."""

		if not self.recording:
			return

		self.recorded_events.append((float(pulse), message))

	def save_recording (self) -> None:

		"""Write the recorded session to a type-1 MIDI file at 480 ticks per beat."""

		if not self.recording or not self.recorded_events:
			return

		if self.record_filename:
			filename = self.record_filename
		else:
			filename = datetime.datetime.now().strftime("perpetua_%Y%m%d_%H%M%S.mid")

		logger.info(f"Saving MIDI recording ({len(self.recorded_events)} events) to {filename}...")

		mid = mido.MidiFile(type=1)
		track = mido.MidiTrack()
		mid.tracks.append(track)

		# 24 PPQN internal, 480 in the file.
		mid.ticks_per_beat = 480
		ticks_per_pulse = mid.ticks_per_beat // self.pulses_per_beat

		# Stable sort preserves send order within a pulse.
		events = sorted(self.recorded_events, key=lambda x: x[0])
		last_pulse = 0.0

		for pulse, message in events:

			delta_ticks = max(0, int((pulse - last_pulse) * ticks_per_pulse))
			track.append(message.copy(time=delta_ticks))
			last_pulse = pulse

		try:
			mid.save(filename)
			logger.info(f"Saved {filename}")
		except OSError as e:
			logger.error(f"Failed to save MIDI recording: {e}")

		self.recorded_events = []

	def disable_spin_wait (self) -> None:

		"""Use pure ``asyncio.sleep()`` between pulses (lower CPU, higher jitter)."""

		self._spin_wait = False

	def set_bpm (self, bpm: float) -> None:

		"""
		Instantly change the tempo.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		if bpm == self.current_bpm:
			return

		self.current_bpm = bpm
		self.seconds_per_beat = 60.0 / self.current_bpm
		self.seconds_per_pulse = self.seconds_per_beat / self.pulses_per_beat

		logger.info(f"BPM set to {self.current_bpm:.2f}")

		if self.recording:
			tempo = mido.bpm2tempo(self.current_bpm)
			self._record_event(self.pulse_count, mido.MetaMessage('set_tempo', tempo=tempo))

	@property
	def beat (self) -> float:

		"""Current transport position in beats."""

		return self.pulse_count / self.pulses_per_beat

	def beats_to_pulses (self, beats: float) -> int:

		return int(round(beats * self.pulses_per_beat))

	def schedule_note (self, pulse: int, channel: int, note: int, velocity: int, duration_pulses: int) -> None:

		"""Queue a note-on at *pulse* and its note-off *duration_pulses* later."""

		duration_pulses = max(1, duration_pulses)

		heapq.heappush(self.event_queue, MidiEvent(pulse=pulse, priority=1, message_type='note_on', channel=channel, note=note, velocity=velocity))
		heapq.heappush(self.event_queue, MidiEvent(pulse=pulse + duration_pulses, priority=0, message_type='note_off', channel=channel, note=note))

	def schedule_control_change (self, pulse: int, channel: int, control: int, value: int) -> None:

		"""Queue a control change at *pulse*."""

		heapq.heappush(self.event_queue, MidiEvent(pulse=pulse, priority=1, message_type='control_change', channel=channel, control=control, value=value))

	async def start (self, step_callback: StepCallback) -> None:

		"""Start playback in a separate asyncio task.

		*step_callback* is called once per sixteenth note with the transport
		time in beats. Calling ``start()`` while running does nothing.
		"""

		if self.running:
			return

		self._step_callback = step_callback
		self.running = True
		self.task = asyncio.create_task(self._run_loop())

		logger.info("Sequencer started")

	async def run (self, step_callback: StepCallback) -> None:

		"""
		Start playback and wait until the loop ends (render limit or ``stop()``).
		"""

		await self.start(step_callback)

		try:
			if self.task:
				await self.task
		except asyncio.CancelledError:
			pass
		finally:
			self.stop()

	def stop (self) -> None:

		"""Stop playback immediately.

		Cancels the loop task, silences sounding notes, drops pending events
		and writes the recording. Safe to call when not running.
		"""

		if not self.running and self.task is None:
			return

		logger.info("Stopping sequencer...")

		self.running = False

		if self.task is not None and not self.task.done():
			self.task.cancel()

		self.task = None
		self._step_callback = None

		self.panic()
		self.event_queue = []
		self.save_recording()
		self.pulse_count = 0

		logger.info("Sequencer stopped")

	def close (self) -> None:

		"""Stop playback and close the MIDI output."""

		self.stop()

		if self.midi_out is not None:
			self.midi_out.close()
			self.midi_out = None

	async def _run_loop (self) -> None:

		"""Playback loop driven by the internal wall clock.

		In render mode the loop runs as fast as possible, simulating time
		rather than waiting for the wall clock, and stops after
		``render_bars`` bars.
		"""

		self.start_time = time.perf_counter()
		self.pulse_count = 0
		self.current_bar = -1

		pulses_per_bar = perpetua.constants.STEPS_PER_BAR * self.pulses_per_step
		next_pulse_time = self.start_time

		while self.running:

			current_time = next_pulse_time if self.render_mode else time.perf_counter()

			while current_time >= next_pulse_time:

				self._check_bar_change(self.pulse_count, pulses_per_bar)

				if not self.running:
					break

				self._advance_pulse()
				next_pulse_time += self.seconds_per_pulse

			if not self.running:
				break

			if self.render_mode:
				await asyncio.sleep(0)
				continue

			sleep_time = next_pulse_time - time.perf_counter()

			if sleep_time > 0:
				if self._spin_wait and sleep_time > self._spin_threshold:
					await asyncio.sleep(sleep_time - self._spin_threshold)
					while time.perf_counter() < next_pulse_time:
						pass
				else:
					await asyncio.sleep(sleep_time)

	def _check_bar_change (self, pulse: int, pulses_per_bar: int) -> None:

		"""Track bar boundaries and end a render after the requested bars."""

		new_bar = pulse // pulses_per_bar

		if new_bar > self.current_bar:
			self.current_bar = new_bar

			if self.render_mode and self.render_bars > 0 and self.current_bar >= self.render_bars:
				logger.info(f"Render complete after {self.render_bars} bars")
				self.running = False

	def _advance_pulse (self) -> None:

		"""Fire the step callback on step boundaries, then send due events."""

		pulse = self.pulse_count

		if pulse % self.pulses_per_step == 0 and self._step_callback is not None:

			try:
				self._step_callback(pulse / self.pulses_per_beat)
			except Exception:
				logger.exception(f"Step callback failed at pulse {pulse}")

		self._process_pulse(pulse)
		self.pulse_count += 1

	def _process_pulse (self, pulse: int) -> None:

		"""
		Process and execute all events for a specific pulse.
		"""

		while self.event_queue and self.event_queue[0].pulse <= pulse:

			event = heapq.heappop(self.event_queue)

			if event.message_type == 'note_on' and event.velocity > 0:
				self.active_notes.add((event.channel, event.note))
			elif event.message_type == 'note_off':
				self.active_notes.discard((event.channel, event.note))

			# Late events are sent immediately.
			self._send_midi(event)

			if self.recording:
				self._record_event(event.pulse, self._build_message(event))

	def _build_message (self, event: MidiEvent) -> mido.Message:

		if event.message_type == 'control_change':
			return mido.Message('control_change', channel=event.channel, control=event.control, value=event.value)

		return mido.Message(event.message_type, channel=event.channel, note=event.note, velocity=event.velocity)

	def _send_midi (self, event: MidiEvent) -> None:

		"""
		Send a MIDI message to the output port.
		"""

		if self.midi_out is None:
			return

		try:
			self.midi_out.send(self._build_message(event))
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")

	def panic (self) -> None:

		"""
		Release sounding notes and send All Notes Off to every channel.
		"""

		logger.info("Panic: sending all notes off.")

		active = list(self.active_notes)
		self.active_notes.clear()

		for channel, note in active:
			self._record_event(self.pulse_count, mido.Message('note_off', channel=channel, note=note, velocity=0))

		if self.midi_out is None:
			return

		try:
			for channel, note in active:
				self.midi_out.send(mido.Message('note_off', channel=channel, note=note, velocity=0))

			for channel in range(16):
				self.midi_out.send(mido.Message('control_change', channel=channel, control=123, value=0))
				self.midi_out.send(mido.Message('control_change', channel=channel, control=120, value=0))

		except Exception:
			logger.exception("MIDI panic failed (device may be disconnected)")
