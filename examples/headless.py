"""
Perpetua - headless run

Drives the engine by hand with an in-memory sink and prints what each voice
plays. No MIDI device and no event loop timing are involved: each call to
engine.tick() is one sixteenth note.

Run it twice with the same seed and the output is identical.
"""

import asyncio
import logging

import perpetua.engine
import perpetua.pitch
import perpetua.sink

logging.basicConfig(level=logging.INFO)

SEED = 42
BARS = 32


async def main () -> None:

	sink = perpetua.sink.RecordingSink()
	params = perpetua.engine.GenerationParams(scale=1, root=9, chord_complexity=0.5, harmonic_tension=0.6)
	engine = perpetua.engine.CompositionEngine(sink, seed=SEED, params=params)

	engine.events.on("stage", lambda stage: logging.info(f"Stage: {stage.label}"))

	await engine.start()

	print("Melody:", perpetua.pitch.format_slots(engine.material.pattern))
	print("Hook:  ", perpetua.pitch.format_slots(engine.material.hook))

	for step in range(BARS * 16):
		engine.tick(step * 0.25)

	engine.stop()

	for event in sink.voice_events(perpetua.sink.Voice.CHORD):
		names = " ".join(pitch.name() for pitch in event.pitches)
		print(f"{event.start_time:6.2f}  chord  {names}")

	print(f"{len(sink.events)} events, display: {engine.display_snapshot().to_dict()}")


if __name__ == "__main__":
	asyncio.run(main())
