import random

import pytest

import continuo.constants.durations
import continuo.motif


Duration = continuo.constants.durations.Duration


def test_rhythm_templates_fill_two_measures () -> None:

	for template in continuo.motif.RHYTHM_TEMPLATES:
		assert sum(duration.beats for duration in template) == 2 * continuo.constants.durations.BEATS_PER_MEASURE


def test_realize_in_minor () -> None:

	"""Degrees count from the tonic; negative degrees fall below it."""

	motif = continuo.motif.Motif((0, 1, 2, -1, 7), (Duration.QUARTER,) * 5)
	notes = motif.realize("D", "minor")

	assert [n.pitch for n in notes] == ["D4", "E4", "F4", "C4", "D5"]
	assert motif.beats == 5.0


def test_realize_keeps_key_spelling () -> None:

	"""Flat keys spell with flats."""

	motif = continuo.motif.Motif((0, 3, 4), (Duration.HALF, Duration.QUARTER, Duration.QUARTER))
	notes = motif.realize("F", "major", octave=3)

	assert [n.pitch for n in notes] == ["F3", "Bb3", "C4"]
	assert notes[0].beats == 2.0
	assert notes[1].midi == 58


def test_motif_validation () -> None:

	with pytest.raises(ValueError):
		continuo.motif.Motif((0, 1), (Duration.QUARTER,))

	with pytest.raises(ValueError):
		continuo.motif.Motif((), ())


def test_random_walk_stays_in_window () -> None:

	"""Walks start on the tonic, move by steps and skips, and stay between the degree bounds."""

	for seed in range(50):

		motif = continuo.motif.random_walk_motif(random.Random(seed))

		assert motif.degrees[0] == 0
		assert list(motif.durations) in continuo.motif.RHYTHM_TEMPLATES
		assert all(continuo.motif.LOWEST_DEGREE <= d <= continuo.motif.HIGHEST_DEGREE for d in motif.degrees)

		for a, b in zip(motif.degrees, motif.degrees[1:]):
			assert abs(b - a) in (1, 2)


def test_random_walk_uses_given_template () -> None:

	template = [Duration.HALF, Duration.HALF]
	motif = continuo.motif.random_walk_motif(random.Random(1), template)

	assert motif.durations == tuple(template)
	assert len(motif.degrees) == 2
