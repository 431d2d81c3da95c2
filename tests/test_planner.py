import itertools
import typing

import pytest

import continuo
import continuo.constants.durations
import continuo.constants.voices
import continuo.intervals
import continuo.notes
import continuo.ornaments
import continuo.pitch_oracle
import continuo.planner


Note = continuo.notes.Note


def _labels (progression: str) -> typing.List[str]:

	"""Chord labels of the last section in a ``meta["progression"]`` string."""

	return progression.split(" | ")[-1].split(" - ")


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

def test_two_bar_chorale () -> None:

	"""Four chords, four voices each, closing V - I in C major."""

	result = continuo.generate({"form": "Chorale", "mode": "major", "key": "C", "duration": 2, "seed": "t1"})
	notes = result["notes"]
	meta = result["meta"]

	assert len(notes) == 16
	assert meta["key"] == "C"
	assert meta["mode"] == "major"
	assert meta["form"] == "Chorale"
	assert meta["measures"] == 2

	for start in (0.0, 2.0, 4.0, 6.0):
		assert sorted(n.voice for n in notes if n.start == start) == [0, 1, 2, 3]

	labels = _labels(meta["progression"])

	assert labels[-2].startswith("V")
	assert labels[-1] in ("I", "I6")


def test_d_minor_fugue () -> None:

	"""A fugue runs through its named stages in order and ends on a D in the bass."""

	result = continuo.generate({"form": "Fugue", "key": "D", "mode": "minor", "seed": "t2"})
	meta = result["meta"]
	stages = meta["stages"]

	assert meta["form"] == "Fugue"
	assert meta["style"] == "Baroque Fugue"
	assert len(stages) >= 5
	assert [s["start"] for s in stages] == sorted(s["start"] for s in stages)
	assert len(meta["subject"]) >= 4

	bass = continuo.notes.by_voice(result["notes"])[continuo.constants.voices.BASS]

	assert continuo.pitch_oracle.pitch_class(bass[-1].pitch) == "D"
	assert meta["progression"].endswith("i")


# ---------------------------------------------------------------------------
# Invariants across forms
# ---------------------------------------------------------------------------

FORMS = [
	("Chorale", "G", "major", 8),
	("Prelude", "E", "minor", 8),
	("Gigue", "F", "major", 8),
	("Ritornello", "A", "minor", 12),
	("Variations", "D", "major", 16),
	("Suite", "Bb", "major", 16),
]


@pytest.mark.parametrize("form,key,mode,duration", FORMS)
def test_forms_hold_invariants (form: str, key: str, mode: str, duration: int) -> None:

	"""Notes stay in range and never overlap in a voice; the piece closes on the tonic."""

	result = continuo.generate({"form": form, "key": key, "mode": mode, "duration": duration, "seed": form, "ornamentDensity": 80})
	notes = result["notes"]

	assert notes

	for note in notes:
		assert continuo.constants.voices.in_range(note.voice, note.midi)
		assert note.velocity is not None

	assert continuo.notes.voice_overlaps(notes) == []

	labels = _labels(result["meta"]["progression"])

	assert labels[-1] in ("I", "I6", "i", "i6")
	assert labels[-2].startswith("V")


FUGUES = [
	("Fugue", "D", "minor", 28),
	("Fugue", "C", "major", 28),
	("Fugue", "G", "major", 28),
]


@pytest.mark.parametrize("form,key,mode,duration", FORMS + FUGUES)
def test_ornaments_never_clash (form: str, key: str, mode: str, duration: int) -> None:

	"""After cleanup, no ornament forms a second, seventh or ninth with another voice."""

	notes = continuo.generate({"form": form, "key": key, "mode": mode, "duration": duration, "seed": "clash", "ornamentDensity": 100})["notes"]

	for a, b in itertools.combinations(notes, 2):

		if a.voice == b.voice or not continuo.notes.overlaps(a, b):
			continue

		if a.type in continuo.ornaments.ORNAMENT_TYPES or b.type in continuo.ornaments.ORNAMENT_TYPES:
			assert not continuo.intervals.is_harsh(a.midi, b.midi), (a, b)


@pytest.mark.parametrize("form,key,mode,duration", FUGUES)
def test_fugue_lines_never_clash (form: str, key: str, mode: str, duration: int) -> None:

	"""Subject, answer, countersubject, free lines and pedal form no 2nds, 7ths or 9ths with each other."""

	notes = continuo.generate({"form": form, "key": key, "mode": mode, "seed": key + mode})["notes"]
	lines = [n for n in notes if n.type in continuo.ornaments.LINE_PRIORITY]

	assert lines

	for a, b in itertools.combinations(lines, 2):

		if a.voice == b.voice or not continuo.notes.overlaps(a, b):
			continue

		assert not continuo.intervals.is_harsh(a.midi, b.midi), (a, b)

	assert continuo.notes.voice_overlaps(notes) == []


@pytest.mark.parametrize("form", ["Ritornello", "Variations", "Suite"])
def test_extended_forms_honour_short_durations (form: str) -> None:

	result = continuo.generate({"form": form, "duration": 2, "seed": "short"})

	assert result["meta"]["measures"] == 2
	assert len(result["notes"]) == 2 * continuo.planner.CHORDS_PER_MEASURE * 4


def test_generation_is_deterministic () -> None:

	options = {"form": "Prelude", "key": "A", "mode": "minor", "duration": 8, "seed": "same"}

	assert continuo.generate(options) == continuo.generate(options)


def test_seeds_differ () -> None:

	first = continuo.generate({"form": "Chorale", "duration": 8, "seed": "one"})
	second = continuo.generate({"form": "Chorale", "duration": 8, "seed": "two"})

	assert first["notes"] != second["notes"]


def test_zero_density_leaves_chords_plain () -> None:

	"""Without ornaments there is one half note per voice per chord."""

	result = continuo.generate({"form": "Chorale", "duration": 8, "seed": "plain", "ornamentDensity": 0})

	assert len(result["notes"]) == 8 * continuo.planner.CHORDS_PER_MEASURE * 4
	assert all(n.duration == continuo.constants.durations.Duration.HALF for n in result["notes"])
	assert all(n.type is None for n in result["notes"])


def test_meta_sections_and_markers () -> None:

	"""Each section reports its keys and progression; phrase markers carry the section name."""

	meta = continuo.generate({"form": "Prelude", "key": "C", "duration": 8, "seed": "meta"})["meta"]

	assert [s["name"] for s in meta["sections"]] == ["Exposition", "Development", "Recapitulation"]
	assert sum(s["bars"] for s in meta["sections"]) == 8
	assert meta["sections"][0]["startKey"] == "C"
	assert meta["sections"][-1]["endKey"] == "C"
	assert len(meta["progression"].split(" | ")) == 3
	assert meta["sections"][0]["start"] == 0.0
	assert meta["sections"][-1]["end"] == 32.0
	assert meta["phraseMarkers"][0]["section"] == "Exposition"
	assert meta["phraseMarkers"][0]["start"] == 0.0
	assert meta["phraseMarkers"][-1]["cadence"] in ("PAC", "IAC")
	assert meta["style"] == "Baroque Prelude"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

def test_malformed_options_fall_back_to_defaults () -> None:

	"""Nothing the caller passes makes generation fail."""

	result = continuo.generate({"form": "Toccata", "key": "H", "mode": "dorian", "duration": "long", "ornamentDensity": "lots"})

	assert result["meta"]["form"] == "Chorale"
	assert result["meta"]["key"] == "C"
	assert result["meta"]["mode"] == "major"
	assert result["meta"]["measures"] == 2


def test_options_normalization () -> None:

	options = continuo.planner.Options.from_mapping({
		"form": "fugue",
		"key": "f#",
		"mode": " Minor ",
		"duration": 500,
		"seed": 42,
		"ornament_density": -5,
	})

	assert options.form == "Fugue"
	assert options.key == "F#"
	assert options.mode == "minor"
	assert options.duration == continuo.planner.MAX_DURATION
	assert options.seed == "42"
	assert options.ornament_density == 0.0


def test_options_defaults () -> None:

	assert continuo.planner.Options.from_mapping(None) == continuo.planner.Options()
	assert continuo.planner.Options.from_mapping({"duration": 1}).duration == continuo.planner.MIN_DURATION
	assert continuo.planner.Options.from_mapping({"duration": True}).duration == continuo.planner.DEFAULT_DURATION
	assert continuo.planner.Options.from_mapping({"ornamentDensity": float("nan")}).ornament_density == continuo.planner.DEFAULT_DENSITY


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

def test_bad_config_names_the_stage () -> None:

	"""An unusable setting surfaces as a GenerationError for the stage that read it."""

	with pytest.raises(continuo.GenerationError) as info:
		continuo.generate({"seed": "x"}, config={"ornaments": {"voice_multipliers": [1.0, 1.0]}})

	assert info.value.stage == "ornamentation"


@pytest.mark.parametrize("humanize", [{"timing": [0.1]}, "off"])
def test_malformed_setting_types_name_the_stage (humanize: typing.Any) -> None:

	"""Wrong types in a config section fail as a GenerationError for that stage."""

	with pytest.raises(continuo.GenerationError) as info:
		continuo.generate({"seed": "x"}, config={"humanize": humanize})

	assert info.value.stage == "humanization"
	assert isinstance(info.value.__cause__, (TypeError, AttributeError))


def test_validate_notes () -> None:

	continuo.planner.validate_notes([Note(pitch="C5", duration=continuo.constants.durations.Duration.HALF, start=0.0, voice=0)])

	with pytest.raises(continuo.GenerationError) as info:
		continuo.planner.validate_notes([Note(pitch="C2", duration=continuo.constants.durations.Duration.HALF, start=0.0, voice=0)])

	assert info.value.stage == "validation"

	with pytest.raises(continuo.GenerationError):
		continuo.planner.validate_notes([
			Note(pitch="C5", duration=continuo.constants.durations.Duration.HALF, start=0.0, voice=0),
			Note(pitch="D5", duration=continuo.constants.durations.Duration.HALF, start=1.0, voice=0),
		])


def test_humanize_settings_come_from_config () -> None:

	"""Turning timing jitter off in the config leaves every offset at zero."""

	result = continuo.generate({"duration": 4, "seed": "steady"}, config={"humanize": {"timing": 0.0}})

	assert all(n.offset == 0.0 for n in result["notes"])
