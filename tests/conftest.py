import random
import typing

import pytest

import continuo.chords
import continuo.ornaments


@pytest.fixture
def rng () -> random.Random:

	"""A fresh seeded random stream for each test."""

	return random.Random("continuo-tests")


@pytest.fixture
def cadence_chords () -> typing.List[continuo.chords.Chord]:

	"""I - IV - V - I in C major, all root position."""

	return [continuo.chords.make_chord("C", numeral) for numeral in ("I", "IV", "V", "I")]


@pytest.fixture
def c_major_spans () -> typing.List[continuo.ornaments.HarmonicSpan]:

	"""One C major span covering sixteen beats."""

	return [continuo.ornaments.HarmonicSpan(0.0, 16.0, "C", "major")]
