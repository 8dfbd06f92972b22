import random
import typing

import mido
import pytest

import perpetua.sink


class FakeMidiOut:

	"""MIDI output stub that keeps every message sent to it."""

	def __init__ (self, name: str) -> None:

		self.name = name
		self.sent: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		"""Store the outgoing message."""

		self.sent.append(message)

	def close (self) -> None:

		self.closed = True


class NeverVary (random.Random):

	"""Variation source whose draw never passes the variation threshold."""

	def random (self) -> float:

		return 0.99


class AlwaysVary (random.Random):

	"""Variation source whose draw always passes the variation threshold."""

	def random (self) -> float:

		return 0.0


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> typing.List[FakeMidiOut]:

	"""Patch mido to use fake MIDI outputs. Returns the list of opened outputs."""

	opened: typing.List[FakeMidiOut] = []

	def fake_open_output (name: str) -> FakeMidiOut:
		port = FakeMidiOut(name)
		opened.append(port)
		return port

	monkeypatch.setattr(mido, "get_output_names", lambda: ["Dummy MIDI", "FLUID Synth (1234):0"])
	monkeypatch.setattr(mido, "open_output", fake_open_output)

	return opened


@pytest.fixture
def recording_sink () -> perpetua.sink.RecordingSink:

	"""A fresh in-memory sink."""

	return perpetua.sink.RecordingSink()


@pytest.fixture
def never_vary () -> random.Random:

	return NeverVary()


@pytest.fixture
def always_vary () -> random.Random:

	return AlwaysVary()
