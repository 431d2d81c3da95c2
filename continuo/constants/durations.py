"""Rhythmic values for notes, measured in beats (1.0 = one quarter note).

Each :class:`Duration` carries a tone-style label (``"2n"`` for a half note,
``"8n."`` for a dotted eighth) as its value, so note lists serialize with the
same vocabulary performers and players use.

Every value is a dyadic fraction of a beat, which keeps float start times
exact when durations are summed.
"""

import enum
import typing


BEATS_PER_MEASURE = 4.0
CHORD_SLOT_BEATS = 2.0


class Duration (enum.Enum):

	"""
	A rhythmic value from whole note down to thirty-second note.
	"""

	WHOLE = "1n"
	DOTTED_HALF = "2n."
	HALF = "2n"
	DOTTED_QUARTER = "4n."
	QUARTER = "4n"
	DOTTED_EIGHTH = "8n."
	EIGHTH = "8n"
	DOTTED_SIXTEENTH = "16n."
	SIXTEENTH = "16n"
	THIRTYSECOND = "32n"

	@property
	def beats (self) -> float:

		"""Length of this value in beats."""

		return _BEATS[self]


_BEATS: typing.Dict[Duration, float] = {
	Duration.WHOLE: 4.0,
	Duration.DOTTED_HALF: 3.0,
	Duration.HALF: 2.0,
	Duration.DOTTED_QUARTER: 1.5,
	Duration.QUARTER: 1.0,
	Duration.DOTTED_EIGHTH: 0.75,
	Duration.EIGHTH: 0.5,
	Duration.DOTTED_SIXTEENTH: 0.375,
	Duration.SIXTEENTH: 0.25,
	Duration.THIRTYSECOND: 0.125,
}

# Longest first, so greedy splitting uses the fewest notes.
_BY_LENGTH: typing.List[Duration] = sorted(_BEATS, key=lambda d: -_BEATS[d])


def from_beats (beats: float) -> typing.Optional[Duration]:

	"""Return the Duration exactly ``beats`` long, or ``None`` if there is none."""

	for duration, length in _BEATS.items():
		if length == beats:
			return duration

	return None


def halve (duration: Duration) -> typing.Optional[Duration]:

	"""Return the Duration half as long, or ``None`` below a thirty-second."""

	return from_beats(duration.beats / 2)


def split_beats (beats: float) -> typing.List[Duration]:

	"""
	Break a span of beats into tied durations, longest first.

	Spans that cannot be expressed in thirty-seconds are truncated to the
	nearest thirty-second below.

	Example:
		```python
		split_beats(1.75)  # [Duration.DOTTED_QUARTER, Duration.SIXTEENTH]
		split_beats(6.0)   # [Duration.WHOLE, Duration.HALF]
		```
	"""

	result: typing.List[Duration] = []
	remaining = beats

	while remaining >= _BEATS[Duration.THIRTYSECOND]:

		for duration in _BY_LENGTH:
			if duration.beats <= remaining:
				result.append(duration)
				remaining -= duration.beats
				break

	return result
