"""Constants for Continuo.

- ``continuo.constants.durations`` - Rhythmic values and their length in beats
- ``continuo.constants.voices`` - SATB voice indices, names and MIDI ranges
"""
