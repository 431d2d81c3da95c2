
"""
Continuo - procedural four-voice Baroque composition for Python.

Continuo writes complete SATB pieces in one call. It builds a functional
harmonic skeleton, voices it in four parts under classical voice-leading
rules, decorates the lines with Baroque ornaments, and for fugues builds the
whole contrapuntal plan from subject to final cadence. Every random decision
comes from one seeded stream, so a seed reproduces a piece note for note.

What it does:

- **Functional harmony.** Progressions walk tonic, subdominant and dominant
  functions through a weighted transition table, favour strong root motion,
  and always close on a cadence (perfect, imperfect, half, deceptive, or
  the Phrygian half cadence in minor). Pieces always end authentically.
- **Voice leading.** A small constrained search voices each chord: voices
  stay ordered, spaced and in range, parallel fifths and octaves are
  forbidden, hidden perfects and unresolved sevenths cost extra.
- **Ornamentation.** 4-3 and 9-8 suspensions, passing and neighbor tones,
  appoggiaturas, trills, mordents and turns, each gated by density, voice
  and a dissonance guard. The final cadence is left plain.
- **Form.** Chorale, Prelude, Gigue, Ritornello, Variations and Suite as
  sections with a key plan through closely related keys and period,
  sentence, binary or ternary phrase shapes.
- **Fugue.** Exposition, episodes on harmonic sequences, middle entries in
  the relative key, stretto, and a final entry over a tonic pedal.
- **Output.** Plain note values with velocities and timing offsets, or a
  standard MIDI file (``continuo.midi_export.to_midi_file()``).

Minimal example:

    ```python
    import continuo

    result = continuo.generate({"form": "Fugue", "key": "D", "mode": "minor", "seed": "bach"})

    result["meta"]["stages"][0]["name"]  # "Exposition"
    continuo.to_midi_file(result["notes"], path="fugue.mid")
    ```

Package-level exports: ``generate``, ``GenerationError``, ``load_config``, ``to_midi_file``.
"""

import continuo.config
import continuo.midi_export
import continuo.planner


generate = continuo.planner.generate
GenerationError = continuo.planner.GenerationError
load_config = continuo.config.load_config
to_midi_file = continuo.midi_export.to_midi_file
