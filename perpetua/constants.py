"""Timing and structural constants.

The transport uses **24 pulses per quarter note** (PPQN = 24) as its time
base, and the sequencer clock advances once per sixteenth note:

- `MIDI_QUARTER_NOTE = 24`: one beat (the base unit)
- `MIDI_SIXTEENTH_NOTE = 6`: one clock step

Structural constants describe the clock hierarchy: 16 steps per bar, 4 bars
per section (one progression entry), one phrase per full progression cycle,
and a fixed number of phrases per evolution stage.
"""

# MIDI Standards - number of pulses in each

MIDI_SIXTEENTH_NOTE = 6
MIDI_QUARTER_NOTE = 24

# Clock hierarchy

STEPS_PER_BAR = 16
BARS_PER_SECTION = 4
DEFAULT_PHRASES_PER_STAGE = 4

# Generated material

TENSION_CURVE_LENGTH = 32
HOOK_LENGTH = 4
STRONG_DEGREES = (0, 2, 4)

# Probabilities

EXTRA_ONSET_THRESHOLD = 0.7
HOOK_INTERIOR_THRESHOLD = 0.3
VARIATION_PROBABILITY = 0.3

# Swing delay (beats) per unit of swing feel on odd steps
SWING_BEATS_PER_UNIT = 0.1
