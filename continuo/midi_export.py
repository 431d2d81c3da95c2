"""Standard MIDI file export.

Writes one track per voice on its own channel. Timing offsets from
humanization are applied here, so the written rhythm and the played rhythm
can differ slightly.
"""

import logging
import typing

import mido

import continuo.constants.voices
import continuo.notes


logger = logging.getLogger(__name__)

DEFAULT_BPM = 72
DEFAULT_TICKS_PER_BEAT = 480
DEFAULT_VELOCITY = 80


def _events (notes: typing.Iterable[continuo.notes.Note], ticks_per_beat: int) -> typing.List[typing.Tuple[int, int, mido.Message]]:

	"""
	Absolute-tick note on and off messages for one voice, note offs first at equal ticks.

	A note's off is pulled back to the next strike of the same pitch, so a
	repeated pitch is never cut short by the previous note's release.
	"""

	timed: typing.List[typing.Tuple[int, int, continuo.notes.Note]] = []

	for note in sorted(notes, key=continuo.notes.sort_key):
		start = max(0, int(round((note.start + note.offset) * ticks_per_beat)))
		end = max(start + 1, int(round((note.end + note.offset) * ticks_per_beat)))
		timed.append((start, end, note))

	events: typing.List[typing.Tuple[int, int, mido.Message]] = []
	next_strike: typing.Dict[int, int] = {}

	for start, end, note in reversed(timed):

		strike = next_strike.get(note.midi)

		if strike is not None and start < strike < end:
			end = strike

		next_strike[note.midi] = start
		velocity = note.velocity if note.velocity is not None else DEFAULT_VELOCITY

		events.append((start, 1, mido.Message('note_on', channel=note.voice, note=note.midi, velocity=velocity)))
		events.append((end, 0, mido.Message('note_off', channel=note.voice, note=note.midi, velocity=0)))

	events.sort(key=lambda e: (e[0], e[1]))

	return events


def to_midi_file (
	notes: typing.Sequence[continuo.notes.Note],
	bpm: typing.Optional[float] = None,
	ticks_per_beat: typing.Optional[int] = None,
	path: typing.Optional[str] = None,
	config: typing.Optional[typing.Mapping[str, typing.Any]] = None
) -> mido.MidiFile:

	"""
	Render notes as a type 1 MIDI file, saving it when ``path`` is given.

	Parameters:
		notes: Notes of any voices, in any order.
		bpm: Tempo written to the first track.
		ticks_per_beat: File resolution.
		path: Where to save the file.
		config: Settings whose ``midi`` section (``bpm``, ``ticks_per_beat``)
			fills in whatever is not passed directly.

	Example:
		```python
		config = continuo.config.load_config("continuo.yaml")
		result = continuo.planner.generate({"form": "Chorale", "seed": "x"}, config=config)
		to_midi_file(result["notes"], path="chorale.mid", config=config)
		```
	"""

	section = (config or {}).get("midi", {})

	if bpm is None:
		bpm = section.get("bpm", DEFAULT_BPM)

	if ticks_per_beat is None:
		ticks_per_beat = int(section.get("ticks_per_beat", DEFAULT_TICKS_PER_BEAT))

	if bpm <= 0:
		raise ValueError("BPM must be positive")

	mid = mido.MidiFile(type=1)
	mid.ticks_per_beat = ticks_per_beat
	grouped = continuo.notes.by_voice(notes)

	for voice in continuo.constants.voices.VOICES:

		track = mido.MidiTrack()
		mid.tracks.append(track)

		track.append(mido.MetaMessage('track_name', name=continuo.constants.voices.VOICE_NAMES[voice], time=0))

		if voice == continuo.constants.voices.SOPRANO:
			track.append(mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(bpm), time=0))

		last_tick = 0

		for tick, _, message in _events(grouped[voice], ticks_per_beat):
			message.time = tick - last_tick
			track.append(message)
			last_tick = tick

	if path is not None:
		mid.save(path)
		logger.info(f"Saved {path} ({len(notes)} notes)")

	return mid
