import argparse
import asyncio
import logging
import os
import typing

import yaml

import perpetua.constants
import perpetua.engine
import perpetua.osc
import perpetua.sequencer
import perpetua.sink
import perpetua.snapshot_feed


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "perpetua.yaml"
DEFAULT_RENDER_FILENAME = "perpetua.mid"


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> typing.Dict[str, typing.Any]:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		config = yaml.safe_load(f)

	if config is None:
		return {}

	if not isinstance(config, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping, got {type(config).__name__}")

	return config


def parse_channels (mapping: typing.Optional[typing.Mapping[str, int]]) -> typing.Dict[perpetua.sink.Voice, int]:

	"""Build a voice → MIDI channel map from config names, filling gaps with defaults."""

	channels = dict(perpetua.sink.DEFAULT_CHANNELS)

	for name, channel in (mapping or {}).items():
		try:
			voice = perpetua.sink.Voice(name)
		except ValueError as exc:
			known = ", ".join(v.value for v in perpetua.sink.Voice)
			raise ValueError(f"Unknown voice {name!r} in midi.channels. Known voices: {known}") from exc
		channels[voice] = int(channel)

	return channels


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(
		prog = "perpetua",
		description = "Play an endless, seed-reproducible generative piece over MIDI."
	)

	parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML configuration file (default: %(default)s)")
	parser.add_argument("--seed", type=int, help="Seed (overrides the config file)")
	parser.add_argument("--device", help="MIDI output device name (overrides the config file)")
	parser.add_argument("--render", type=int, metavar="BARS", help="Render BARS bars to a MIDI file as fast as possible, then exit")
	parser.add_argument("--output", help="MIDI file for --render or recording")
	parser.add_argument("--osc", action="store_true", help="Enable the OSC control surface")
	parser.add_argument("--feed", action="store_true", help="Enable the WebSocket snapshot feed")
	parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level (default: %(default)s)")

	return parser


async def run (config: typing.Dict[str, typing.Any], args: argparse.Namespace) -> None:

	"""
	Wire the engine to a sequencer and the optional control surfaces, then play.
	"""

	midi_config = config.get('midi') or {}
	osc_config = config.get('osc') or {}
	feed_config = config.get('feed') or {}
	record_config = config.get('record') or {}

	params = perpetua.engine.build_params(config.get('params') or {})
	seed = args.seed if args.seed is not None else config.get('seed')
	rendering = args.render is not None

	if rendering and args.render <= 0:
		raise ValueError("--render needs a positive number of bars")

	record = rendering or bool(record_config.get('enabled', False))
	record_filename = args.output or record_config.get('filename')

	if rendering and record_filename is None:
		record_filename = DEFAULT_RENDER_FILENAME

	sequencer = perpetua.sequencer.Sequencer(
		output_device_name = args.device or midi_config.get('device_name'),
		initial_bpm = params.tempo,
		record = record,
		record_filename = record_filename,
		open_output = not rendering
	)

	if rendering:
		sequencer.render_mode = True
		sequencer.render_bars = args.render

	sink = perpetua.sink.MidiSink(sequencer, parse_channels(midi_config.get('channels')))

	engine = perpetua.engine.CompositionEngine(
		sink,
		seed = seed,
		params = params,
		phrases_per_stage = int(config.get('phrases_per_stage', perpetua.constants.DEFAULT_PHRASES_PER_STAGE)),
		transport = sequencer
	)

	osc_server: typing.Optional[perpetua.osc.OscServer] = None
	feed: typing.Optional[perpetua.snapshot_feed.SnapshotFeed] = None

	if not rendering and (args.osc or osc_config.get('enabled', False)):
		osc_server = perpetua.osc.OscServer(
			engine,
			receive_port = osc_config.get('receive_port', 9000),
			send_port = osc_config.get('send_port', 9001),
			send_host = osc_config.get('send_host', "127.0.0.1")
		)
		await osc_server.start()

	if not rendering and (args.feed or feed_config.get('enabled', False)):
		feed = perpetua.snapshot_feed.SnapshotFeed(engine, port=feed_config.get('port', 8765))
		await feed.start()

	logger.info(f"Perpetua starting (seed {engine.seed})...")

	try:
		await engine.start()

		if sequencer.task is not None:
			await sequencer.task

	except asyncio.CancelledError:
		logger.info("Stopping...")
		raise

	finally:
		engine.stop()

		if osc_server is not None:
			await osc_server.stop()

		if feed is not None:
			await feed.stop()

		sequencer.close()


def main (argv: typing.Optional[typing.Sequence[str]] = None) -> None:

	"""
	Main entry point for the perpetua application.
	"""

	args = build_parser().parse_args(argv)

	logging.basicConfig(level=getattr(logging, args.log_level))

	config = load_config(args.config)

	try:
		asyncio.run(run(config, args))
	except KeyboardInterrupt:
		logger.info("Interrupted")


if __name__ == "__main__":
	main()
