import asyncio
import random
import typing

import pytest
import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import perpetua.engine
import perpetua.osc
import perpetua.sink


@pytest.fixture
def engine (recording_sink: perpetua.sink.RecordingSink, never_vary: random.Random) -> perpetua.engine.CompositionEngine:

	"""Create an engine for testing."""

	return perpetua.engine.CompositionEngine(recording_sink, seed=42, variation_rng=never_vary)


async def _started_server (engine: perpetua.engine.CompositionEngine, send_port: int = 0) -> typing.Tuple[perpetua.osc.OscServer, pythonosc.udp_client.SimpleUDPClient]:

	server = perpetua.osc.OscServer(engine, receive_port=0, send_port=send_port)
	await server.start()

	assert server.port is not None

	client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", server.port)

	return server, client


@pytest.mark.asyncio
async def test_osc_param_handler (engine: perpetua.engine.CompositionEngine, recording_sink: perpetua.sink.RecordingSink) -> None:

	"""Sending /param/<name> should update the engine."""

	server, client = await _started_server(engine)

	client.send_message("/param/reverbAmount", 0.75)
	client.send_message("/param/tempo", 145)

	await asyncio.sleep(0.1)

	assert engine.params.reverb_amount == 0.75
	assert engine.params.tempo == 145
	assert recording_sink.effects["reverbWet"] == 0.75
	assert recording_sink.tempo == 145

	await server.stop()


@pytest.mark.asyncio
async def test_osc_unknown_param_is_ignored (engine: perpetua.engine.CompositionEngine) -> None:

	server, client = await _started_server(engine)
	params = engine.params

	client.send_message("/param/volume", 0.5)
	client.send_message("/param/tempo", "fast")

	await asyncio.sleep(0.1)

	assert engine.params is params

	await server.stop()


@pytest.mark.asyncio
async def test_osc_seed_handler (engine: perpetua.engine.CompositionEngine) -> None:

	"""Sending /seed should rebuild everything from the new seed."""

	server, client = await _started_server(engine)

	client.send_message("/seed", 1234)

	await asyncio.sleep(0.1)

	assert engine.seed == 1234

	client.send_message("/seed", [])

	await asyncio.sleep(0.1)

	assert 0 <= engine.seed < 1_000_000

	await server.stop()


@pytest.mark.asyncio
async def test_osc_randomize_handler (engine: perpetua.engine.CompositionEngine) -> None:

	server, client = await _started_server(engine)
	params = engine.params

	client.send_message("/randomize", [])

	await asyncio.sleep(0.1)

	assert engine.params is not params

	await server.stop()


@pytest.mark.asyncio
async def test_osc_display_broadcasting (engine: perpetua.engine.CompositionEngine) -> None:

	"""The server should send the display snapshot on every bar."""

	received_messages: typing.List[typing.Tuple[str, typing.Tuple[typing.Any, ...]]] = []

	def handle_display (address: str, *args: typing.Any) -> None:
		received_messages.append((address, args))

	dispatcher = pythonosc.dispatcher.Dispatcher()
	dispatcher.map("/display/*", handle_display)

	loop = asyncio.get_running_loop()
	recv_server = pythonosc.osc_server.AsyncIOOSCUDPServer(("127.0.0.1", 0), dispatcher, loop)
	transport, _ = await recv_server.create_serve_endpoint()
	recv_port = transport.get_extra_info("sockname")[1]

	server, _client = await _started_server(engine, send_port=recv_port)

	await engine.start()

	for i in range(16):
		engine.tick(i * 0.25)

	await asyncio.sleep(0.1)

	received = dict(received_messages)

	assert received["/display/seed"] == (42,)
	assert received["/display/scale"] == ("Major",)
	assert received["/display/root"] == ("C",)
	assert received["/display/bpm"] == (120.0,)
	assert received["/display/phase"] == ("Intro",)

	await server.stop()
	transport.close()
	engine.stop()


@pytest.mark.asyncio
async def test_osc_stop_unregisters_bar_listener (engine: perpetua.engine.CompositionEngine) -> None:

	server, _client = await _started_server(engine)

	assert engine.events.listener_count("bar") == 1

	await server.stop()

	assert engine.events.listener_count("bar") == 0
	assert server.port is None
