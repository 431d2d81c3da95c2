"""Rhythmic motifs and the scale-degree walks that turn them into melodies.

A :class:`Motif` pairs scale degrees with durations. Realizing it in a key
gives the ``(pitch, duration)`` pairs a fugue subject is made of.
"""

import dataclasses
import logging
import random
import typing

import continuo.chords
import continuo.constants.durations
import continuo.intervals
import continuo.markov_chain
import continuo.pitch_oracle


logger = logging.getLogger(__name__)

Duration = continuo.constants.durations.Duration

_Q = Duration.QUARTER
_E = Duration.EIGHTH
_H = Duration.HALF
_DQ = Duration.DOTTED_QUARTER

# Two measures each.
RHYTHM_TEMPLATES: typing.List[typing.List[Duration]] = [
	[_Q, _E, _E, _Q, _Q, _Q, _Q, _H],
	[_E, _E, _E, _E, _Q, _Q, _H, _H],
	[_DQ, _E, _Q, _Q, _E, _E, _Q, _H],
	[_H, _Q, _Q, _E, _E, _E, _E, _H],
]

# Degree steps: step up, step down, skip up, skip down.
STEP_WEIGHTS: typing.List[typing.Tuple[int, float]] = [(1, 40), (-1, 30), (2, 15), (-2, 15)]

LOWEST_DEGREE = -2
HIGHEST_DEGREE = 7

MODE_SCALES: typing.Dict[str, str] = {"major": "major", "minor": "minor"}


@dataclasses.dataclass(frozen=True)
class MotifNote:

	"""
	One realized motif note.
	"""

	pitch: str
	duration: Duration

	@property
	def beats (self) -> float:
		return self.duration.beats

	@property
	def midi (self) -> int:
		return continuo.pitch_oracle.midi_number(self.pitch)


@dataclasses.dataclass(frozen=True)
class Motif:

	"""
	Scale degrees (0 = tonic, negative below it) with a duration for each.
	"""

	degrees: typing.Tuple[int, ...]
	durations: typing.Tuple[Duration, ...]

	def __post_init__ (self) -> None:

		if len(self.degrees) != len(self.durations):
			raise ValueError(f"Motif has {len(self.degrees)} degrees but {len(self.durations)} durations")

		if not self.degrees:
			raise ValueError("Motif cannot be empty")

	@property
	def beats (self) -> float:

		"""Total length in beats."""

		return sum(duration.beats for duration in self.durations)

	def realize (self, tonic: str, mode: str = "major", octave: int = 4) -> typing.List[MotifNote]:

		"""
		Spell the motif in a key, degree 0 on the tonic in ``octave``.

		Minor keys use the natural minor scale.

		Example:
			```python
			Motif((0, 1, 2), (Duration.QUARTER,) * 3).realize("D", "minor")
			# [MotifNote("D4", ...), MotifNote("E4", ...), MotifNote("F4", ...)]
			```
		"""

		scale_type = MODE_SCALES[mode]
		names = continuo.chords.scale_names(tonic, scale_type)
		steps = continuo.intervals.SCALE_INTERVALS[scale_type]
		base = continuo.pitch_oracle.midi_number(f"{tonic}{octave}")

		notes: typing.List[MotifNote] = []

		for degree, duration in zip(self.degrees, self.durations):
			midi = base + 12 * (degree // 7) + steps[degree % 7]
			notes.append(MotifNote(pitch=continuo.pitch_oracle.spell(midi, names), duration=duration))

		return notes


def random_walk_motif (rng: random.Random, template: typing.Optional[typing.Sequence[Duration]] = None) -> Motif:

	"""
	Fill a rhythm template with a random walk over scale degrees.

	The walk starts on the tonic. A step that would leave the degree window
	turns around instead.
	"""

	durations = tuple(template) if template is not None else tuple(rng.choice(RHYTHM_TEMPLATES))
	degrees = [0]

	while len(degrees) < len(durations):

		step = continuo.markov_chain.choose_weighted(STEP_WEIGHTS, rng)
		degree = degrees[-1] + step

		if not LOWEST_DEGREE <= degree <= HIGHEST_DEGREE:
			degree = degrees[-1] - step

		degrees.append(degree)

	logger.debug(f"Motif degrees {degrees}")

	return Motif(degrees=tuple(degrees), durations=durations)
