import random

import pytest

import continuo.chords
import continuo.harmony
import continuo.phrases


C_MAJOR = ("C", "major")
G_MAJOR = ("G", "major")
A_MINOR = ("A", "minor")


@pytest.fixture
def structure (rng: random.Random) -> continuo.phrases.PhraseStructure:

	return continuo.phrases.PhraseStructure(rng)


def test_period (structure: continuo.phrases.PhraseStructure) -> None:

	"""The antecedent half-closes at home; the consequent closes authentically in the new key."""

	plan = structure.build("period", 16, C_MAJOR, G_MAJOR)

	assert len(plan.chords) == 16
	assert [m.name for m in plan.markers] == ["antecedent", "consequent"]
	assert continuo.harmony.identify_cadence(plan.chords[:8]) == "HC"
	assert plan.chords[7].key == "C"
	assert plan.markers[1].cadence in continuo.harmony.AUTHENTIC_CADENCES
	assert plan.chords[-1].key == "G"
	assert plan.chords[-1].numeral == "I"


def test_period_closes_authentically_in_the_middle (structure: continuo.phrases.PhraseStructure) -> None:

	for _ in range(20):
		plan = structure.build("period", 8, C_MAJOR, C_MAJOR, position="middle")
		assert plan.markers[-1].cadence in continuo.harmony.AUTHENTIC_CADENCES


def test_sentence (structure: continuo.phrases.PhraseStructure) -> None:

	"""Presentation alternates tonic and dominant; the last three chords are the cadence."""

	plan = structure.build("sentence", 8, C_MAJOR, C_MAJOR)

	assert len(plan.chords) == 8
	assert [m.name for m in plan.markers] == ["presentation", "continuation", "cadential"]
	assert [chord.label() for chord in plan.chords[:2]] == ["I", "V6"]
	assert plan.markers[-1].start == 5
	assert continuo.harmony.identify_cadence(plan.chords) == plan.markers[-1].cadence


def test_binary_major_cadences_in_dominant (structure: continuo.phrases.PhraseStructure) -> None:

	plan = structure.build("binary", 16, C_MAJOR, C_MAJOR)

	assert len(plan.chords) == 16
	assert continuo.harmony.identify_cadence(plan.chords[:8]) == "PAC"
	assert plan.chords[7].key == "G"
	assert plan.chords[-1].key == "C"


def test_binary_minor_cadences_in_relative (structure: continuo.phrases.PhraseStructure) -> None:

	"""Minor binaries reach the relative major at the double bar."""

	plan = structure.build("binary", 16, A_MINOR, A_MINOR)

	assert (plan.chords[7].key, plan.chords[7].mode) == ("C", "major")
	assert plan.chords[-1].key == "A"


def test_ternary_repeats_opening (structure: continuo.phrases.PhraseStructure) -> None:

	"""A section that ends where it began brings back A unchanged."""

	plan = structure.build("ternary", 12, C_MAJOR, C_MAJOR)

	assert len(plan.chords) == 12
	assert [m.name for m in plan.markers] == ["A", "B", "A'"]
	assert plan.chords[:4] == plan.chords[8:]
	assert {chord.key for chord in plan.chords[4:8]} == {"A"}


def test_ternary_reprise_moves_to_end_key (structure: continuo.phrases.PhraseStructure) -> None:

	plan = structure.build("ternary", 12, C_MAJOR, G_MAJOR)

	assert plan.chords[-1].key == "G"
	assert plan.markers[-1].cadence in continuo.harmony.AUTHENTIC_CADENCES


def test_short_section_is_one_phrase (structure: continuo.phrases.PhraseStructure) -> None:

	"""Too few chords for the shape gives one phrase in the end key."""

	plan = structure.build("ternary", 6, C_MAJOR, G_MAJOR)

	assert len(plan.chords) == 6
	assert len(plan.markers) == 1
	assert plan.chords[-1].key == "G"


def test_unknown_shape_raises (structure: continuo.phrases.PhraseStructure) -> None:

	with pytest.raises(ValueError):
		structure.build("rondo", 16, C_MAJOR, C_MAJOR)


def test_is_awkward_transition () -> None:

	"""Repeated chords and tritone root motion are awkward; a fourth is fine."""

	tonic = continuo.chords.make_chord("C", "I")
	subdominant = continuo.chords.make_chord("C", "IV")
	leading = continuo.chords.make_chord("C", "vii°")

	assert continuo.phrases.is_awkward_transition(tonic, continuo.chords.make_chord("C", "I"))
	assert continuo.phrases.is_awkward_transition(subdominant, leading)
	assert not continuo.phrases.is_awkward_transition(tonic, subdominant)
	assert not continuo.phrases.is_awkward_transition(tonic, continuo.chords.make_chord("C", "I", inversion=1))


def test_analyze_phrases (rng: random.Random) -> None:

	"""Phrases split after each cadence; trailing chords form an open phrase."""

	chords = continuo.harmony.generate_progression("C", 4, rng, cadence="HC")
	chords += continuo.harmony.generate_progression("C", 4, rng, cadence="PAC")
	chords.append(continuo.chords.make_chord("C", "IV"))

	markers = continuo.phrases.analyze_phrases(chords)

	assert [(m.name, m.start, m.length, m.cadence) for m in markers] == [
		("phrase 1", 0, 4, "HC"),
		("phrase 2", 4, 4, "PAC"),
		("phrase 3", 8, 1, None),
	]


def test_marker_shift () -> None:

	marker = continuo.phrases.PhraseMarker("antecedent", 0, 4, "HC").shifted(8)

	assert marker == continuo.phrases.PhraseMarker("antecedent", 8, 4, "HC")
