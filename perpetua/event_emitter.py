import asyncio
import logging
import typing


logger = logging.getLogger(__name__)


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A synchronous named-event hub.

	Listeners run in registration order on the emitting thread, so an event
	raised from a tick is fully handled before the tick returns. A listener
	that raises is logged and skipped; the remaining listeners still run.

	When ``events`` is given, only those names may be used.
	"""

	def __init__ (self, events: typing.Optional[typing.Iterable[str]] = None) -> None:

		self._allowed: typing.Optional[typing.FrozenSet[str]] = frozenset(events) if events is not None else None
		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}

	def _check_name (self, event_name: str) -> None:

		if self._allowed is not None and event_name not in self._allowed:
			known = ", ".join(sorted(self._allowed))
			raise ValueError(f"Unknown event {event_name!r}. Known events: {known}")

	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.

		Coroutine functions are rejected, since emission never awaits.
		"""

		self._check_name(event_name)

		if asyncio.iscoroutinefunction(callback):
			raise ValueError(f"Listener for {event_name!r} must be a plain function, not a coroutine function")

		self._listeners.setdefault(event_name, []).append(callback)

	def once (self, event_name: str, callback: CallbackType) -> None:

		"""Register a callback that is removed after its first call."""

		def wrapper (*args: typing.Any, **kwargs: typing.Any) -> typing.Any:
			self.off(event_name, wrapper)
			return callback(*args, **kwargs)

		self.on(event_name, wrapper)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		listeners = self._listeners.get(event_name, [])

		if callback not in listeners:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		listeners.remove(callback)

	def listener_count (self, event_name: str) -> int:

		return len(self._listeners.get(event_name, []))

	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""Call every listener for *event_name* with the given arguments."""

		self._check_name(event_name)

		# Copy so listeners may unregister themselves while being called.
		for callback in list(self._listeners.get(event_name, [])):

			try:
				callback(*args, **kwargs)

			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")
