import pytest

import continuo.chords


def test_parse_numeral_qualities () -> None:

	"""Case and markers decide the chord quality."""

	assert continuo.chords.parse_numeral("I") == (0, "major")
	assert continuo.chords.parse_numeral("ii") == (1, "minor")
	assert continuo.chords.parse_numeral("V7") == (4, "dominant_7th")
	assert continuo.chords.parse_numeral("vii°") == (6, "diminished")
	assert continuo.chords.parse_numeral("vii°7") == (6, "diminished_7th")
	assert continuo.chords.parse_numeral("iiø7") == (1, "half_diminished_7th")


def test_parse_numeral_rejects_garbage () -> None:

	"""Anything that is not a roman numeral raises."""

	with pytest.raises(ValueError):
		continuo.chords.parse_numeral("X")


def test_make_chord_major () -> None:

	"""Numerals resolve to named chords with their tones."""

	chord = continuo.chords.make_chord("C", "V7")

	assert chord.name == "G7"
	assert chord.tones == ("G", "B", "D", "F")
	assert chord.seventh == "F"
	assert chord.bass == "G"


def test_make_chord_minor_dominant_inversion () -> None:

	"""Minor-key dominants carry the raised leading tone; inversion picks the bass."""

	chord = continuo.chords.make_chord("A", "V7", "minor", inversion=1)

	assert chord.name == "E7"
	assert chord.bass == "G#"
	assert chord.label() == "V6/5"


def test_labels () -> None:

	"""Figured-bass labels follow the inversion."""

	assert continuo.chords.make_chord("C", "I", inversion=0).label() == "I"
	assert continuo.chords.make_chord("C", "I", inversion=1).label() == "I6"
	assert continuo.chords.make_chord("C", "I", inversion=2).label() == "I6/4"
	assert continuo.chords.make_chord("C", "V7", inversion=2).label() == "V4/3"


def test_chord_rejects_bad_inversion () -> None:

	"""Chords validate their fields at construction."""

	with pytest.raises(ValueError):
		continuo.chords.Chord(name="C", numeral="I", inversion=3, key="C", mode="major", tones=("C", "E", "G"))

	with pytest.raises(ValueError):
		continuo.chords.Chord(name="C", numeral="I", inversion=0, key="C", mode="dorian", tones=("C", "E", "G"))


def test_fallback_tones_match_oracle () -> None:

	"""The semitone table gives the same pitch classes as the oracle."""

	for key, numeral, mode in (("C", "V7", "major"), ("D", "iv", "minor"), ("A", "vii°", "minor"), ("F", "ii", "major")):

		oracle = continuo.chords.make_chord(key, numeral, mode)
		_, tones = continuo.chords.fallback_tones(key, numeral, mode)

		assert [continuo.chords.NOTE_NAME_TO_PC[t] for t in tones] == oracle.pitch_classes


def test_scale_names () -> None:

	"""Scales come from the oracle, including minor forms."""

	assert continuo.chords.scale_names("A", "harmonic minor") == ("A", "B", "C", "D", "E", "F", "G#")
	assert continuo.chords.scale_names("F", "major") == ("F", "G", "A", "Bb", "C", "D", "E")


def test_key_name_to_pc () -> None:

	"""Key names map to pitch classes; unknown names raise."""

	assert continuo.chords.key_name_to_pc("Eb") == 3

	with pytest.raises(ValueError):
		continuo.chords.key_name_to_pc("Q")
