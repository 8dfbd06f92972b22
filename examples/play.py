"""
Perpetua - live MIDI playback

Plays the engine through the first MIDI output (or the one named below)
with the OSC control surface on port 9000 and the snapshot feed on 8765.
Press Ctrl+C to stop.

Channels
────────
Melody 1, chords 2, bass 3, Climax pad 4 (MIDI channels 0-3).
Reverb, delay and filter are sent as CC 91, 94 and 74.
"""

import asyncio
import logging

import perpetua.engine
import perpetua.osc
import perpetua.sequencer
import perpetua.sink
import perpetua.snapshot_feed

logging.basicConfig(level=logging.INFO)

DEVICE = None	# e.g. "FLUID Synth"


async def main () -> None:

	params = perpetua.engine.GenerationParams(tempo=96, swing_feel=0.2, reverb_amount=0.5)

	sequencer = perpetua.sequencer.Sequencer(output_device_name=DEVICE, initial_bpm=params.tempo)
	sink = perpetua.sink.MidiSink(sequencer)
	engine = perpetua.engine.CompositionEngine(sink, params=params, transport=sequencer)

	osc_server = perpetua.osc.OscServer(engine)
	feed = perpetua.snapshot_feed.SnapshotFeed(engine)

	await osc_server.start()
	await feed.start()

	try:
		await engine.start()

		if sequencer.task is not None:
			await sequencer.task

	finally:
		engine.stop()
		await osc_server.stop()
		await feed.stop()
		sequencer.close()


if __name__ == "__main__":

	try:
		asyncio.run(main())
	except KeyboardInterrupt:
		pass
