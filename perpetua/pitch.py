"""Pitches, pitch-class names and melodic slots.

A :class:`Pitch` is a pitch class (0 = C … 11 = B) plus an integer octave.
Its absolute ``semitones`` value (``octave * 12 + pitch_class``) is the
number used whenever two pitches are compared, so registral direction is
tracked across octaves: B3 (47) is below C4 (48).

Melodic patterns mix notes and silences. Each position is a :data:`Slot`,
either the :data:`REST` singleton or a :class:`Note` wrapping a pitch.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g. `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME`: Maps pitch classes to sharp-spelled note names
"""

import dataclasses
import typing


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]


def note_name_to_pc (note_name: str) -> int:

	"""Validate a note name and return its pitch class (0–11).

	Raises:
		ValueError: If the note name is not recognised.

	Example:
		```python
		note_name_to_pc("C")   # → 0
		note_name_to_pc("Bb")  # → 10
		```
	"""

	if note_name not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown note name: {note_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[note_name]


@dataclasses.dataclass(frozen=True, order=True)
class Pitch:

	"""
	A concrete pitch: pitch class (0–11) and octave.
	"""

	octave: int
	pitch_class: int

	def __post_init__ (self) -> None:

		if not 0 <= self.pitch_class < 12:
			raise ValueError(f"Pitch class must be 0-11, got {self.pitch_class}")

	@classmethod
	def from_semitones (cls, semitones: int) -> "Pitch":

		"""Build a pitch from its absolute semitone count (C0 = 0)."""

		return cls(octave=semitones // 12, pitch_class=semitones % 12)

	@property
	def semitones (self) -> int:

		"""Absolute semitone count from C0."""

		return self.octave * 12 + self.pitch_class

	@property
	def midi (self) -> int:

		"""MIDI note number (C4 = 60)."""

		return self.semitones + 12

	def transpose (self, semitones: int) -> "Pitch":

		"""Return this pitch moved by a number of semitones."""

		return Pitch.from_semitones(self.semitones + semitones)

	def name (self) -> str:

		"""Return a human-friendly name such as ``"F#3"``."""

		return f"{PC_TO_NOTE_NAME[self.pitch_class]}{self.octave}"

	def __str__ (self) -> str:

		return self.name()


@dataclasses.dataclass(frozen=True)
class Rest:

	"""A silent slot."""

	def __str__ (self) -> str:

		return "-"


@dataclasses.dataclass(frozen=True)
class Note:

	"""A sounding slot."""

	pitch: Pitch

	def __str__ (self) -> str:

		return self.pitch.name()


Slot = typing.Union[Rest, Note]

REST = Rest()


def format_slots (slots: typing.Sequence[Slot]) -> str:

	"""Render a slot sequence compactly, e.g. ``"C4 - E4 G4"``."""

	return " ".join(str(slot) for slot in slots)
