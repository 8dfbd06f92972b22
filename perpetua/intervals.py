"""Scale catalog and scale-degree arithmetic.

The seven scales are addressed by the integer ``scale`` control (0–6) in a
fixed order. Each definition is an ascending tuple of semitone offsets from
the root, starting at 0.

Degrees index into a scale definition. Indices beyond the scale length wrap
around (modulo the scale length) and carry the overflow into the octave, so
degree 7 of a seven-note scale is the tonic one octave up.
"""

import typing

import perpetua.pitch


SCALE_DEFINITIONS: typing.Dict[str, typing.Tuple[int, ...]] = {
	"major": (0, 2, 4, 5, 7, 9, 11),
	"minor": (0, 2, 3, 5, 7, 8, 10),
	"pentatonic": (0, 2, 4, 7, 9),
	"blues": (0, 3, 5, 6, 7, 10),
	"dorian": (0, 2, 3, 5, 7, 9, 10),
	"phrygian": (0, 1, 3, 5, 7, 8, 10),
	"lydian": (0, 2, 4, 6, 7, 9, 11),
}

# Order matches the integer scale control.
SCALE_ORDER: typing.Tuple[str, ...] = tuple(SCALE_DEFINITIONS)

SCALE_DISPLAY_NAMES: typing.Dict[str, str] = {
	"major": "Major",
	"minor": "Minor",
	"pentatonic": "Pentatonic",
	"blues": "Blues",
	"dorian": "Dorian",
	"phrygian": "Phrygian",
	"lydian": "Lydian",
}


def _validate_definition (name: str, offsets: typing.Sequence[int]) -> None:

	"""Check that a scale definition is usable for degree arithmetic."""

	if not 5 <= len(offsets) <= 7:
		raise ValueError(f"Scale {name!r} must have 5-7 offsets, got {len(offsets)}")

	if offsets[0] != 0:
		raise ValueError(f"Scale {name!r} must start at offset 0")

	if any(b <= a for a, b in zip(offsets, offsets[1:])) or offsets[-1] >= 12:
		raise ValueError(f"Scale {name!r} offsets must ascend within one octave")


for _name, _offsets in SCALE_DEFINITIONS.items():
	_validate_definition(_name, _offsets)


def scale_name (index: int) -> str:

	"""Return the catalog key for a scale index, clamped to the catalog."""

	return SCALE_ORDER[max(0, min(int(index), len(SCALE_ORDER) - 1))]


def get_scale (index: int) -> typing.Tuple[int, ...]:

	"""
	Return the semitone offsets for a scale index (clamped to 0–6).
	"""

	return SCALE_DEFINITIONS[scale_name(index)]


def display_name (index: int) -> str:

	"""Return the human-readable scale name shown on the display."""

	return SCALE_DISPLAY_NAMES[scale_name(index)]


def root_name (root: int) -> str:

	"""Return the note name for a root pitch class."""

	return perpetua.pitch.PC_TO_NOTE_NAME[int(root) % 12]


def degree_to_pitch (
	scale: typing.Sequence[int],
	root: int,
	degree: int,
	octave: int
) -> perpetua.pitch.Pitch:

	"""Resolve a scale degree to a concrete pitch.

	Parameters:
		scale: Semitone offsets of the scale.
		root: Root pitch class (0–11).
		degree: Scale degree index. Values outside ``[0, len(scale))`` are
			normalised modulo the scale length; every full wrap raises the
			result by one octave (negative degrees lower it).
		octave: Octave of the scale root.

	Example:
		```python
		major = get_scale(0)
		degree_to_pitch(major, 0, 4, 4)   # G4
		degree_to_pitch(major, 0, 8, 4)   # D5 (a ninth above C4)
		degree_to_pitch(major, 9, 2, 4)   # C#5 (A major third, carried over B)
		```
	"""

	if not scale:
		raise ValueError("Scale must contain at least one offset")

	size = len(scale)
	index = degree % size
	octave_shift = degree // size

	semitones = (octave + octave_shift) * 12 + (root % 12) + scale[index]

	return perpetua.pitch.Pitch.from_semitones(semitones)


def scale_pitch_classes (root: int, scale: typing.Sequence[int]) -> typing.List[int]:

	"""
	Return the pitch classes (0–11) that belong to a root and scale.
	"""

	return [(root + offset) % 12 for offset in scale]
