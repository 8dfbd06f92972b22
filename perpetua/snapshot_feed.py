"""WebSocket feed of display snapshots.

Connected clients receive a JSON object ten times a second::

	{"seed": 42, "scaleName": "Major", "rootName": "C", "bpm": 120.0,
	 "evolutionPhase": "Intro", "playing": true,
	 "position": {"step": 3, "bar": 1, "section": 0, "phrase": 0}}

The feed is read-only. Anything a client sends is ignored.
"""

import asyncio
import json
import logging
import typing

import websockets.asyncio.server
import websockets.exceptions

if typing.TYPE_CHECKING:
	from perpetua.engine import CompositionEngine


logger = logging.getLogger(__name__)


class SnapshotFeed:

	"""
	Broadcast engine snapshots to WebSocket clients without blocking the tick loop.
	"""

	def __init__ (
		self,
		engine: "CompositionEngine",
		host: str = "0.0.0.0",
		port: int = 8765,
		interval: float = 0.1
	) -> None:

		if interval <= 0:
			raise ValueError("Broadcast interval must be positive")

		self._engine = engine
		self.host = host
		self.port = port
		self.interval = interval

		self._ws_server: typing.Optional[websockets.asyncio.server.Server] = None
		self._broadcast_task: typing.Optional[asyncio.Task] = None
		self._clients: typing.Set[websockets.asyncio.server.ServerConnection] = set()

	@property
	def client_count (self) -> int:

		return len(self._clients)

	async def start (self) -> None:

		"""Open the WebSocket server and begin broadcasting."""

		self._ws_server = await websockets.asyncio.server.serve(self._handle_client, self.host, self.port)

		# Port 0 asks the OS for a free port; report the real one.
		sockets = list(self._ws_server.sockets)
		if sockets:
			self.port = sockets[0].getsockname()[1]

		self._broadcast_task = asyncio.create_task(self._broadcast_loop())

		logger.info(f"Snapshot feed on ws://{self.host}:{self.port}")

	async def stop (self) -> None:

		"""Stop broadcasting and close every connection."""

		if self._broadcast_task:
			self._broadcast_task.cancel()

			try:
				await self._broadcast_task
			except asyncio.CancelledError:
				pass

			self._broadcast_task = None

		if self._ws_server:
			self._ws_server.close()
			await self._ws_server.wait_closed()
			self._ws_server = None
			logger.info("Snapshot feed stopped")

	def get_state (self) -> typing.Dict[str, typing.Any]:

		"""Return the message sent to clients."""

		state = self._engine.display_snapshot().to_dict()
		state["playing"] = self._engine.playing
		state["position"] = self._engine.position.to_dict()

		return state

	async def _handle_client (self, websocket: websockets.asyncio.server.ServerConnection) -> None:

		self._clients.add(websocket)

		# Send one snapshot straight away so a new display is not blank.
		try:
			await websocket.send(json.dumps(self.get_state()))

			async for _message in websocket:
				pass

		except websockets.exceptions.ConnectionClosed:
			pass

		finally:
			self._clients.discard(websocket)

	async def _broadcast_loop (self) -> None:

		while True:

			await asyncio.sleep(self.interval)

			if not self._clients:
				continue

			try:
				websockets.asyncio.server.broadcast(self._clients, json.dumps(self.get_state()))
			except Exception:
				logger.exception("Snapshot broadcast failed")
