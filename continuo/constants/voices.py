"""SATB voice indices, names and MIDI ranges.

Ranges are inclusive MIDI note numbers (C4 = 60).
"""

import typing


SOPRANO = 0
ALTO = 1
TENOR = 2
BASS = 3

VOICES: typing.Tuple[int, ...] = (SOPRANO, ALTO, TENOR, BASS)

VOICE_NAMES: typing.Dict[int, str] = {
	SOPRANO: "Soprano",
	ALTO: "Alto",
	TENOR: "Tenor",
	BASS: "Bass",
}

# C4-A5, G3-D5, C3-G4, E2-C4
VOICE_RANGES: typing.Dict[int, typing.Tuple[int, int]] = {
	SOPRANO: (60, 81),
	ALTO: (55, 74),
	TENOR: (48, 67),
	BASS: (40, 60),
}

# Outer voices carry the texture; when two voices compete the lower rank loses.
VOICE_PRIORITY: typing.Dict[int, int] = {
	SOPRANO: 3,
	BASS: 2,
	ALTO: 1,
	TENOR: 0,
}


def in_range (voice: int, midi: int) -> bool:

	"""Return True if a MIDI note lies inside the voice's range."""

	low, high = VOICE_RANGES[voice]

	return low <= midi <= high
