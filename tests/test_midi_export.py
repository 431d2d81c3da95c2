import pathlib
import typing

import mido
import pytest

import continuo
import continuo.constants.durations
import continuo.midi_export
import continuo.notes


Duration = continuo.constants.durations.Duration
Note = continuo.notes.Note


def _messages (track: mido.MidiTrack, kind: str) -> list:

	return [message for message in track if message.type == kind]


def test_one_track_per_voice () -> None:

	"""Four named tracks; tempo on the first."""

	notes = [
		Note(pitch="C5", duration=Duration.HALF, start=0.0, voice=0, velocity=90),
		Note(pitch="C3", duration=Duration.HALF, start=0.0, voice=3),
	]

	mid = continuo.midi_export.to_midi_file(notes, bpm=60)

	assert mid.type == 1
	assert mid.ticks_per_beat == 480
	assert len(mid.tracks) == 4
	assert [track.name for track in mid.tracks] == ["Soprano", "Alto", "Tenor", "Bass"]

	tempo = _messages(mid.tracks[0], "set_tempo")

	assert len(tempo) == 1
	assert tempo[0].tempo == mido.bpm2tempo(60)


def test_note_timing_and_velocity () -> None:

	notes = [
		Note(pitch="C5", duration=Duration.HALF, start=0.0, voice=0, velocity=90),
		Note(pitch="D5", duration=Duration.QUARTER, start=2.0, voice=0),
		Note(pitch="C3", duration=Duration.WHOLE, start=1.0, voice=3, velocity=70),
	]

	mid = continuo.midi_export.to_midi_file(notes)
	soprano_on = _messages(mid.tracks[0], "note_on")
	soprano_off = _messages(mid.tracks[0], "note_off")
	bass_on = _messages(mid.tracks[3], "note_on")

	assert [(m.note, m.velocity, m.channel) for m in soprano_on] == [(72, 90, 0), (74, continuo.midi_export.DEFAULT_VELOCITY, 0)]
	assert soprano_off[0].time == 960
	assert (bass_on[0].note, bass_on[0].channel, bass_on[0].time) == (48, 3, 480)


def test_offsets_shift_playback () -> None:

	"""Humanized timing moves the note on; the written start does not matter."""

	notes = [Note(pitch="C5", duration=Duration.HALF, start=1.0, voice=0, offset=0.25)]
	mid = continuo.midi_export.to_midi_file(notes)

	assert _messages(mid.tracks[0], "note_on")[0].time == 600


def test_bpm_must_be_positive () -> None:

	with pytest.raises(ValueError):
		continuo.midi_export.to_midi_file([], bpm=0)


def test_save_generated_piece (tmp_path: pathlib.Path) -> None:

	"""A generated chorale saves and reads back with every note."""

	result = continuo.generate({"form": "Chorale", "duration": 4, "seed": "midi"})
	path = tmp_path / "chorale.mid"

	continuo.to_midi_file(result["notes"], path=str(path))

	loaded = mido.MidiFile(str(path))
	note_ons = [m for track in loaded.tracks for m in track if m.type == "note_on" and m.velocity > 0]

	assert path.exists()
	assert len(loaded.tracks) == 4
	assert len(note_ons) == len(result["notes"])


def _absolute (track: mido.MidiTrack) -> typing.List[typing.Tuple[str, int, int]]:

	"""``(type, note, tick)`` for every note message in a track."""

	tick = 0
	result = []

	for message in track:
		tick += message.time
		if message.type in ("note_on", "note_off"):
			result.append((message.type, message.note, tick))

	return result


def _restrikes_while_sounding (mid: mido.MidiFile) -> int:

	count = 0

	for track in mid.tracks:

		sounding: typing.Dict[int, int] = {}

		for kind, note, _ in _absolute(track):
			if kind == "note_on":
				count += sounding.get(note, 0)
				sounding[note] = sounding.get(note, 0) + 1
			else:
				sounding[note] = max(0, sounding.get(note, 0) - 1)

	return count


def test_held_common_tone_is_not_cut_short () -> None:

	"""A late release of the first note must not silence the early restrike of the second."""

	notes = [
		Note(pitch="C5", duration=Duration.HALF, start=0.0, voice=0, offset=0.02),
		Note(pitch="C5", duration=Duration.HALF, start=2.0, voice=0, offset=-0.02),
	]

	mid = continuo.midi_export.to_midi_file(notes)

	assert _absolute(mid.tracks[0]) == [
		("note_on", 72, 10),
		("note_off", 72, 950),
		("note_on", 72, 950),
		("note_off", 72, 1910),
	]


def test_generated_piece_never_restrikes_a_sounding_pitch () -> None:

	result = continuo.generate({"form": "Chorale", "key": "C", "duration": 8, "seed": "m1"})
	mid = continuo.midi_export.to_midi_file(result["notes"])

	assert _restrikes_while_sounding(mid) == 0


def test_tempo_and_resolution_from_config () -> None:

	"""The midi config section fills in what the caller leaves out."""

	notes = [Note(pitch="C5", duration=Duration.HALF, start=0.0, voice=0)]
	config = {"midi": {"bpm": 60, "ticks_per_beat": 240}}

	mid = continuo.midi_export.to_midi_file(notes, config=config)

	assert mid.ticks_per_beat == 240
	assert _messages(mid.tracks[0], "set_tempo")[0].tempo == mido.bpm2tempo(60)
	assert _messages(mid.tracks[0], "note_off")[0].time == 480

	explicit = continuo.midi_export.to_midi_file(notes, bpm=90, config=config)

	assert _messages(explicit.tracks[0], "set_tempo")[0].tempo == mido.bpm2tempo(90)
	assert explicit.ticks_per_beat == 240
