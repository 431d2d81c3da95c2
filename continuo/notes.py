"""The Note value type and helpers for working with note lists.

Notes are immutable. Passes that change a piece build new lists, replacing
notes with ``dataclasses.replace`` rather than editing them in place.
"""

import dataclasses
import typing

import continuo.constants.durations
import continuo.constants.voices
import continuo.pitch_oracle


@dataclasses.dataclass(frozen=True)
class Note:

	"""
	A single pitched event in one voice.

	Attributes:
		pitch: Pitch with octave (``"C#4"``).
		duration: Rhythmic value.
		start: Beats from the start of the piece.
		voice: 0-3 (soprano, alto, tenor, bass).
		velocity: MIDI velocity 1-127, set by humanization.
		type: Tag naming the line or ornament that produced the note
			(``"passing"``, ``"subject"``, ``"resolution"``).
		offset: Timing deviation in beats, applied only when the note is played.
	"""

	pitch: str
	duration: continuo.constants.durations.Duration
	start: float
	voice: int
	velocity: typing.Optional[int] = None
	type: typing.Optional[str] = None
	offset: float = 0.0

	def __post_init__ (self) -> None:

		"""Reject malformed notes at construction."""

		continuo.pitch_oracle.midi_number(self.pitch)

		if not isinstance(self.duration, continuo.constants.durations.Duration):
			raise ValueError(f"Duration must be a Duration, got {self.duration!r}")

		if self.voice not in continuo.constants.voices.VOICES:
			raise ValueError(f"Voice must be 0-3, got {self.voice}")

		if self.start < 0:
			raise ValueError(f"Start cannot be negative, got {self.start}")

		if self.velocity is not None and not 1 <= self.velocity <= 127:
			raise ValueError(f"Velocity must be 1-127, got {self.velocity}")

	@property
	def beats (self) -> float:

		"""Length in beats."""

		return self.duration.beats

	@property
	def end (self) -> float:

		"""Beat at which the note stops sounding."""

		return self.start + self.duration.beats

	@property
	def midi (self) -> int:

		"""MIDI note number."""

		return continuo.pitch_oracle.midi_number(self.pitch)

	def to_dict (self) -> typing.Dict[str, typing.Any]:

		"""Serialize with the field names callers of ``generate`` expect."""

		data: typing.Dict[str, typing.Any] = {
			"pitch": self.pitch,
			"duration": self.duration.value,
			"startTime": self.start,
			"voice": self.voice,
		}

		if self.velocity is not None:
			data["velocity"] = self.velocity

		if self.type is not None:
			data["type"] = self.type

		if self.offset:
			data["offset"] = self.offset

		return data


def overlaps (a: Note, b: Note) -> bool:

	"""True if two notes sound at the same time."""

	return a.start < b.end and b.start < a.end


def sort_key (note: Note) -> typing.Tuple[float, int, int, float]:

	"""Canonical order: start, voice, pitch, length."""

	return (note.start, note.voice, note.midi, note.beats)


def by_voice (notes: typing.Iterable[Note]) -> typing.Dict[int, typing.List[Note]]:

	"""Group notes per voice, each list ordered by start."""

	grouped: typing.Dict[int, typing.List[Note]] = {voice: [] for voice in continuo.constants.voices.VOICES}

	for note in notes:
		grouped[note.voice].append(note)

	for voice_notes in grouped.values():
		voice_notes.sort(key=sort_key)

	return grouped


def flatten (grouped: typing.Dict[int, typing.List[Note]]) -> typing.List[Note]:

	"""Merge per-voice lists back into one list in canonical order."""

	return sorted((note for voice_notes in grouped.values() for note in voice_notes), key=sort_key)


def sounding (notes: typing.Iterable[Note], start: float, end: float, exclude_voice: typing.Optional[int] = None) -> typing.List[Note]:

	"""Notes in other voices that overlap the span ``[start, end)``."""

	return [
		note for note in notes
		if note.voice != exclude_voice and note.start < end and start < note.end
	]


def voice_overlaps (notes: typing.Iterable[Note]) -> typing.List[typing.Tuple[Note, Note]]:

	"""Pairs of consecutive notes in the same voice that overlap."""

	problems: typing.List[typing.Tuple[Note, Note]] = []

	for voice_notes in by_voice(notes).values():
		for current, following in zip(voice_notes, voice_notes[1:]):
			if following.start < current.end:
				problems.append((current, following))

	return problems


def hold (pitch: str, start: float, beats: float, voice: int, note_type: typing.Optional[str] = None) -> typing.List[Note]:

	"""
	Sustain a pitch for a span of beats as tied notes of standard durations.
	"""

	result: typing.List[Note] = []
	position = start

	for duration in continuo.constants.durations.split_beats(beats):
		result.append(Note(pitch=pitch, duration=duration, start=position, voice=voice, type=note_type))
		position += duration.beats

	return result
