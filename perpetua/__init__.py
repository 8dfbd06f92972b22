"""
Perpetua - an endless, seed-reproducible generative music engine.

Perpetua composes continuously from twelve knobs. A seed drives every
decision, so the same seed and settings always give the same piece:

- **Harmony.** Chord progressions drawn from pop, emotional and epic
  template pools by chord complexity, voiced as triads with 7ths and 9ths
  added as harmonic tension rises. Basslines grow from a lone fundamental
  to fifths, walking tones and octave doublings as bass intensity rises.
- **Melody.** A main pattern of 8 to 16 slots built on rhythm templates,
  with pitch choice biased by a long-arc tension curve, and a short
  four-slot hook made only of strong degrees.
- **Evolution.** A cyclic Intro → Development → Climax → Resolution arc
  that refreshes the melody, swaps between the main pattern and the hook,
  and shapes note length and dynamics.
- **Clock.** A step/bar/section/phrase counter, ticked every sixteenth
  note, that decides what each voice plays.

Sound is delegated to an instrument sink. The bundled ``MidiSink`` plays
four voices (melody, chord, bass, pad) on separate MIDI channels through a
real-time sequencer that can also record or render to a MIDI file. Knobs
can be turned over OSC, and a WebSocket feed serves display snapshots.

Minimal example:

    ```python
    import asyncio
    import perpetua

    async def main ():
        sequencer = perpetua.Sequencer(initial_bpm=100)
        engine = perpetua.CompositionEngine(perpetua.MidiSink(sequencer), seed=42, transport=sequencer)
        await engine.start()
        await sequencer.task

    asyncio.run(main())
    ```

Package-level exports: ``CompositionEngine``, ``GenerationParams``,
``MidiSink``, ``RecordingSink``, ``Sequencer``, ``Voice``.
"""

import perpetua.engine
import perpetua.sequencer
import perpetua.sink


CompositionEngine = perpetua.engine.CompositionEngine
GenerationParams = perpetua.engine.GenerationParams
MidiSink = perpetua.sink.MidiSink
RecordingSink = perpetua.sink.RecordingSink
Sequencer = perpetua.sequencer.Sequencer
Voice = perpetua.sink.Voice
