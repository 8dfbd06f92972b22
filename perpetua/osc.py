"""OSC control surface and display broadcast.

The server listens on a UDP port (default 9000) for knob and button
messages and sends display updates to a target host/port (default
127.0.0.1:9001).

Receive Handlers
────────────────
- ``/param/<name> <value>``: Set a parameter (any accepted name)
- ``/seed [<int>]``: Change seed (random when no argument)
- ``/randomize``: Randomize all knobs

Send Events (after every bar)
─────────────────────────────
- ``/display/seed <int>``
- ``/display/scale <string>``
- ``/display/root <string>``
- ``/display/bpm <float>``
- ``/display/phase <string>``
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

if typing.TYPE_CHECKING:
	from perpetua.engine import CompositionEngine


logger = logging.getLogger(__name__)


class OscServer:

	"""Async OSC server/client bound to a composition engine."""

	def __init__ (
		self,
		engine: "CompositionEngine",
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._engine = engine
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[pythonosc.osc_server.AsyncIOOSCUDPServer] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/param/*", self._handle_param)
		self._dispatcher.map("/seed", self._handle_seed)
		self._dispatcher.map("/randomize", self._handle_randomize)

	@property
	def port (self) -> typing.Optional[int]:

		"""The bound receive port, once started."""

		if self._transport is None:
			return None

		return typing.cast(int, self._transport.get_extra_info("sockname")[1])

	async def start (self) -> None:

		"""Start the OSC server and client, and broadcast on every bar."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		self._engine.events.on("bar", self._on_bar)

		logger.info(f"OSC listening on :{self.port}, sending to {self._send_host}:{self._send_port}")

	async def stop (self) -> None:

		"""Stop the OSC server."""

		if self._transport:
			self._engine.events.off("bar", self._on_bar)
			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")

	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message."""

		if self._client:
			try:
				self._client.send_message(address, list(args))
			except OSError as e:
				logger.warning(f"OSC send error: {e}")

	def broadcast_display (self) -> None:

		"""Send the current display snapshot, one address per field."""

		snapshot = self._engine.display_snapshot()

		self.send("/display/seed", snapshot.seed)
		self.send("/display/scale", snapshot.scale_name)
		self.send("/display/root", snapshot.root_name)
		self.send("/display/bpm", float(snapshot.bpm))
		self.send("/display/phase", snapshot.evolution_phase)

	def _on_bar (self, position: typing.Any) -> None:

		self.broadcast_display()

	# Handlers

	def _handle_param (self, address: str, *args: typing.Any) -> None:
		# address is like /param/chordComplexity
		parts = address.split("/")
		if len(parts) < 3 or not args:
			logger.warning(f"OSC {address} needs a parameter name and a value")
			return
		if not self._engine.update_param(parts[2], args[0]):
			logger.warning(f"OSC {address} ignored (value {args[0]!r})")

	def _handle_seed (self, address: str, *args: typing.Any) -> None:
		if not args:
			self._engine.change_seed()
			return
		try:
			seed = int(args[0])
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC seed argument: {args[0]}")
			return
		self._engine.change_seed(seed)

	def _handle_randomize (self, address: str, *args: typing.Any) -> None:
		self._engine.randomize_all_knobs()
