import pathlib

import mido
import pytest

import continuo.config
import continuo.midi_export
import continuo.ornaments


def test_load_config_merges_over_defaults (tmp_path: pathlib.Path) -> None:

	"""Values in the file replace defaults; everything else is kept."""

	path = tmp_path / "continuo.yaml"
	path.write_text("ornaments:\n  cadence_measures: 1\n  probabilities:\n    trill: 0.5\nmidi:\n  bpm: 60\n")

	config = continuo.config.load_config(str(path))

	assert config["ornaments"]["cadence_measures"] == 1
	assert config["ornaments"]["probabilities"]["trill"] == 0.5
	assert config["ornaments"]["probabilities"]["passing"] == 0.6
	assert config["midi"] == {"bpm": 60, "ticks_per_beat": 480}
	assert config["humanize"] == continuo.config.DEFAULT_CONFIG["humanize"]


def test_missing_file_gives_defaults (tmp_path: pathlib.Path) -> None:

	config = continuo.config.load_config(str(tmp_path / "absent.yaml"))

	assert config == continuo.config.DEFAULT_CONFIG

	config["midi"]["bpm"] = 1

	assert continuo.config.DEFAULT_CONFIG["midi"]["bpm"] == 72


def test_empty_file_gives_defaults (tmp_path: pathlib.Path) -> None:

	path = tmp_path / "empty.yaml"
	path.write_text("")

	assert continuo.config.load_config(str(path)) == continuo.config.DEFAULT_CONFIG


def test_non_mapping_raises (tmp_path: pathlib.Path) -> None:

	path = tmp_path / "list.yaml"
	path.write_text("- 1\n- 2\n")

	with pytest.raises(ValueError):
		continuo.config.load_config(str(path))


def test_merge_leaves_base_untouched () -> None:

	base = {"a": {"b": 1, "c": 2}, "d": 3}
	merged = continuo.config.merge(base, {"a": {"b": 10}, "e": 4})

	assert merged == {"a": {"b": 10, "c": 2}, "d": 3, "e": 4}
	assert base == {"a": {"b": 1, "c": 2}, "d": 3}


def test_defaults_follow_the_modules () -> None:

	"""Ornament and MIDI defaults come from the modules that use them."""

	ornaments = continuo.config.DEFAULT_CONFIG["ornaments"]
	midi = continuo.config.DEFAULT_CONFIG["midi"]

	assert ornaments["probabilities"] == continuo.ornaments.DEFAULT_PROBABILITIES
	assert tuple(ornaments["voice_multipliers"]) == continuo.ornaments.DEFAULT_VOICE_MULTIPLIERS
	assert ornaments["cadence_measures"] == continuo.ornaments.DEFAULT_CADENCE_MEASURES
	assert midi == {"bpm": continuo.midi_export.DEFAULT_BPM, "ticks_per_beat": continuo.midi_export.DEFAULT_TICKS_PER_BEAT}
	assert ornaments["probabilities"] is not continuo.ornaments.DEFAULT_PROBABILITIES


def test_loaded_midi_section_drives_export (tmp_path: pathlib.Path) -> None:

	path = tmp_path / "continuo.yaml"
	path.write_text("midi:\n  bpm: 100\n")

	config = continuo.config.load_config(str(path))
	mid = continuo.midi_export.to_midi_file([], config=config)
	tempo = [m for m in mid.tracks[0] if m.type == "set_tempo"]

	assert tempo[0].tempo == mido.bpm2tempo(100)
	assert mid.ticks_per_beat == continuo.midi_export.DEFAULT_TICKS_PER_BEAT
