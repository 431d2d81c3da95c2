"""Four-voice fugue generation.

A :class:`FugueGenerator` builds a fugue as a fixed sequence of stages:

1. Exposition: subject and answer enter one voice at a time; the voice that
   just finished continues with a countersubject, older voices go free.
2. Episode: a harmonic sequence voiced in four parts, inner voices dropping out.
3. Middle entries: subject and answer in the relative key.
4. Episode: a second sequence type.
5. Stretto: all four voices enter in close imitation.
6. Final entry: the subject over a tonic pedal, then a final cadence in the home key.

The subject is a random-walk motif. The answer is the subject a fifth higher,
except that the dominant note answers a fourth higher so the tonic stays the tonic.

Example:
	```python
	result = FugueGenerator("D", "minor", random.Random("t2")).generate()
	[stage.name for stage in result.stages]
	# ["Exposition", "Episode 1", "Middle Entries", "Episode 2", "Stretto", "Final Entry"]
	```
"""

import dataclasses
import logging
import random
import typing

import continuo.chords
import continuo.constants.durations
import continuo.constants.voices
import continuo.form
import continuo.harmony
import continuo.intervals
import continuo.modulation
import continuo.motif
import continuo.notes
import continuo.ornaments
import continuo.pitch_oracle
import continuo.voicings


logger = logging.getLogger(__name__)

Duration = continuo.constants.durations.Duration
Note = continuo.notes.Note

SOPRANO = continuo.constants.voices.SOPRANO
ALTO = continuo.constants.voices.ALTO
TENOR = continuo.constants.voices.TENOR
BASS = continuo.constants.voices.BASS

EXPOSITION_ORDER: typing.List[typing.Tuple[int, str]] = [
	(ALTO, "subject"),
	(TENOR, "answer"),
	(SOPRANO, "subject"),
	(BASS, "answer"),
]

STRETTO_ORDER: typing.List[typing.Tuple[int, str]] = [
	(BASS, "subject"),
	(TENOR, "answer"),
	(ALTO, "subject"),
	(SOPRANO, "answer"),
]

STRETTO_OFFSET = 2.0
EPISODE_DROPOUT = 0.3
EPISODE_SEQUENCES: typing.Tuple[str, ...] = ("descending_fifths", "romanesca")

FREE_SEGMENT = Duration.HALF
COUNTERSUBJECT_MIN_BEATS = 1.0
MAX_LEAP = 5

CADENCE_RHYTHMS: typing.Dict[int, typing.List[Duration]] = {
	3: [Duration.HALF, Duration.HALF, Duration.WHOLE],
	4: [Duration.HALF, Duration.QUARTER, Duration.QUARTER, Duration.WHOLE],
}

Line = typing.List[continuo.motif.MotifNote]
Segments = typing.List[typing.Tuple[float, Duration]]


@dataclasses.dataclass(frozen=True)
class FugueStage:

	"""Where one stage of the fugue sits, and its key."""

	name: str
	type: str
	start: float
	end: float
	key: str
	mode: str

	def to_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"name": self.name,
			"type": self.type,
			"start": self.start,
			"end": self.end,
			"key": self.key,
			"mode": self.mode,
		}


@dataclasses.dataclass(frozen=True)
class FugueResult:

	"""
	A generated fugue before ornamentation.

	Attributes:
		notes: Every note, in canonical order.
		spans: Keys (and chords, in episodes and the cadence) over time.
		stages: The stages in order.
		subject: The subject as realized in the home key.
		progressions: Chord labels of each harmonized stage.
	"""

	notes: typing.Tuple[Note, ...]
	spans: typing.Tuple[continuo.ornaments.HarmonicSpan, ...]
	stages: typing.Tuple[FugueStage, ...]
	subject: typing.Tuple[continuo.motif.MotifNote, ...]
	progressions: typing.Tuple[typing.Tuple[str, str], ...]

	@property
	def total_beats (self) -> float:
		return self.stages[-1].end if self.stages else 0.0


def _shift (pitch: str, octaves: int) -> str:

	"""Move a pitch by whole octaves, keeping its spelling."""

	return f"{continuo.pitch_oracle.pitch_class(pitch)}{continuo.pitch_oracle.octave(pitch) + octaves}"


def make_answer (subject: typing.Sequence[continuo.motif.MotifNote], tonic: str, mode: str) -> Line:

	"""
	Transpose a subject to the dominant as a tonal answer.

	Every note rises a perfect fifth, except the dominant itself, which rises a
	fourth to the tonic.

	Example:
		```python
		# D minor: A4 answers as D5, D4 answers as A4
		```
	"""

	dominant_pc = (continuo.pitch_oracle.pitch_class_number(tonic) + 7) % 12
	dominant = continuo.modulation.related_key(tonic, mode, "dominant")
	names = continuo.chords.scale_names(dominant[0], "major" if mode == "major" else "minor")

	answer: Line = []

	for note in subject:

		tonal = continuo.pitch_oracle.pitch_class_number(note.pitch) == dominant_pc
		interval = "P4" if tonal else "P5"
		lookup = continuo.pitch_oracle.transpose(note.pitch, interval)

		if lookup.ok and lookup.value:
			pitch = lookup.value
		else:
			logger.warning(f"Answer transposition failed ({lookup.error}); spelling from the scale")
			pitch = continuo.pitch_oracle.spell(note.midi + (5 if tonal else 7), names)

		answer.append(continuo.motif.MotifNote(pitch=pitch, duration=note.duration))

	return answer


def fit_line (line: typing.Sequence[continuo.motif.MotifNote], voice: int) -> Line:

	"""
	Move a line by octaves into a voice's range.

	The octave that keeps the most notes in range wins (nearest to the written
	octave on ties). Notes still outside the range fold in one at a time.
	"""

	def in_range_count (octaves: int) -> int:
		return sum(1 for note in line if continuo.constants.voices.in_range(voice, note.midi + 12 * octaves))

	shift = max(range(-3, 4), key=lambda k: (in_range_count(k), -abs(k)))
	low, high = continuo.constants.voices.VOICE_RANGES[voice]

	fitted: Line = []

	for note in line:

		octaves = shift
		midi = note.midi + 12 * octaves

		while midi < low:
			octaves += 1
			midi += 12

		while midi > high:
			octaves -= 1
			midi -= 12

		fitted.append(continuo.motif.MotifNote(pitch=_shift(note.pitch, octaves), duration=note.duration))

	return fitted


def place (line: typing.Sequence[continuo.motif.MotifNote], start: float, voice: int, note_type: str) -> typing.List[Note]:

	"""Turn a line into notes starting at ``start`` in ``voice``."""

	result: typing.List[Note] = []
	position = start

	for note in line:
		result.append(Note(pitch=note.pitch, duration=note.duration, start=position, voice=voice, type=note_type))
		position += note.beats

	return result


def merge_rhythm (notes: typing.Sequence[Note]) -> Segments:

	"""
	A slower rhythm against a line: its short notes grouped into values of at least a beat.
	"""

	segments: Segments = []
	position: typing.Optional[float] = None
	length = 0.0

	def flush () -> None:
		start = position
		for duration in continuo.constants.durations.split_beats(length):
			segments.append((start, duration))
			start += duration.beats

	for note in notes:

		if position is None:
			position = note.start

		length += note.beats

		if length >= COUNTERSUBJECT_MIN_BEATS:
			flush()
			position = None
			length = 0.0

	if position is not None:
		flush()

	return segments


def even_segments (start: float, end: float, duration: Duration = FREE_SEGMENT) -> Segments:

	"""Split ``[start, end)`` into equal values, with a shorter remainder at the end."""

	segments: Segments = []
	position = start

	while position + duration.beats <= end:
		segments.append((position, duration))
		position += duration.beats

	for rest in continuo.constants.durations.split_beats(end - position):
		segments.append((position, rest))
		position += rest.beats

	return segments


class FugueGenerator:

	"""
	Generate a fugue in a key.

	Parameters:
		tonic: Home key tonic (``"D"``).
		mode: ``"major"`` or ``"minor"``.
		rng: Random stream for the subject, counterpoint choices, voicing
			tie-breaks, episode dropout and the final cadence.
	"""

	def __init__ (self, tonic: str, mode: str, rng: random.Random) -> None:

		self.tonic = tonic
		self.mode = mode
		self.rng = rng

		self.notes: typing.List[Note] = []
		self.spans: typing.List[continuo.ornaments.HarmonicSpan] = []
		self.stages: typing.List[FugueStage] = []
		self.progressions: typing.List[typing.Tuple[str, str]] = []

		self.motif: typing.Optional[continuo.motif.Motif] = None
		self.subject: Line = []
		self.answer: Line = []


	def _names (self, key: str, mode: str) -> typing.Tuple[str, ...]:

		return continuo.chords.scale_names(key, "major" if mode == "major" else "harmonic minor")


	def _midi_at (self, voice: int, beat: float) -> typing.Optional[int]:

		"""MIDI number sounding in ``voice`` at ``beat``, if any."""

		for note in self.notes:
			if note.voice == voice and note.start <= beat < note.end:
				return note.midi

		return None


	def _last_midi (self, voice: int, before: float) -> typing.Optional[int]:

		"""MIDI number of the last note in ``voice`` ending by ``before``."""

		previous = [note for note in self.notes if note.voice == voice and note.end <= before]

		if not previous:
			return None

		return max(previous, key=lambda n: n.start).midi


	def _entry (self, line: Line, start: float, voice: int, note_type: str) -> typing.List[Note]:

		notes = place(fit_line(line, voice), start, voice, note_type)
		self.notes.extend(notes)

		return notes


	def _counterpoint (
		self,
		voice: int,
		segments: Segments,
		names: typing.Sequence[str],
		note_type: str,
		leader: typing.Optional[int] = None
	) -> typing.List[Note]:

		"""
		Write a line over ``segments`` against everything already placed.

		Each segment takes the scale pitch in range that, in order of priority,
		clashes with the fewest sounding notes, makes no parallel fifths or
		octaves, avoids leaps above a fourth, forms an imperfect consonance with
		the ``leader`` voice, and lies closest to the previous pitch.
		"""

		if not segments:
			return []

		pcs = {continuo.pitch_oracle.pitch_class_number(name) for name in names}
		low, high = continuo.constants.voices.VOICE_RANGES[voice]
		candidates = [midi for midi in range(low, high + 1) if midi % 12 in pcs]
		others = [v for v in continuo.constants.voices.VOICES if v != voice]

		previous = self._last_midi(voice, segments[0][0])
		previous_start: typing.Optional[float] = None
		written: typing.List[Note] = []

		for start, duration in segments:

			end = start + duration.beats
			sounding = continuo.notes.sounding(self.notes, start, end, exclude_voice=voice)
			lead = self._midi_at(leader, start) if leader is not None else None
			reference = previous if previous is not None else (low + high) // 2

			motions: typing.List[typing.Tuple[int, int]] = []

			if previous is not None and previous_start is not None:
				for other in others:
					before = self._midi_at(other, previous_start)
					now = self._midi_at(other, start)
					if before is not None and now is not None:
						motions.append((before, now))

			best: typing.Optional[typing.Tuple[typing.Tuple[float, ...], int]] = None

			for midi in candidates:

				clashes = sum(1 for note in sounding if not continuo.intervals.is_consonant(midi, note.midi))
				parallels = sum(
					1 for before, now in motions
					if previous is not None and continuo.intervals.is_parallel_perfect(previous, midi, before, now)
				)
				leap = abs(midi - reference)
				imperfect = lead is None or continuo.intervals.interval_class(midi, lead) in continuo.intervals.IMPERFECT_CLASSES

				rank = (clashes, parallels, leap > MAX_LEAP, not imperfect, leap, self.rng.random())

				if best is None or rank < best[0]:
					best = (rank, midi)

			if best is None:
				raise ValueError(f"No pitch available for voice {voice} at beat {start}")

			midi = best[1]
			note = Note(pitch=continuo.pitch_oracle.spell(midi, names), duration=duration, start=start, voice=voice, type=note_type)
			self.notes.append(note)
			written.append(note)

			previous = midi
			previous_start = start

		return written


	def _voice_chords (
		self,
		chords: typing.Sequence[continuo.chords.Chord],
		start: float,
		rhythm: typing.Sequence[Duration],
		note_type: str,
		dropout: typing.FrozenSet[int] = frozenset()
	) -> float:

		"""Voice chords in four parts; voices in ``dropout`` may rest on a chord. Returns the end beat."""

		voicings = continuo.voicings.voice_progression(chords, self.rng)
		position = start

		for chord, voicing, duration in zip(chords, voicings, rhythm):

			for voice in continuo.constants.voices.VOICES:

				if voice in dropout and self.rng.random() < EPISODE_DROPOUT:
					continue

				self.notes.append(Note(pitch=voicing.pitches[voice], duration=duration, start=position, voice=voice, type=note_type))

			self.spans.append(continuo.ornaments.HarmonicSpan(position, position + duration.beats, chord.key, chord.mode, chord))
			position += duration.beats

		return position


	def exposition (self, start: float, end: float) -> None:

		"""Subject and answer in turn; the previous entrant plays the countersubject."""

		names = self._names(self.tonic, self.mode)
		length = sum(note.beats for note in self.subject)
		entered: typing.List[int] = []

		for index, (voice, role) in enumerate(EXPOSITION_ORDER):

			window = start + index * length

			if window + length > end:
				break

			line = self.subject if role == "subject" else self.answer
			entry = self._entry(line, window, voice, role)

			if entered:
				self._counterpoint(entered[-1], merge_rhythm(entry), names, "countersubject", leader=voice)

			for older in entered[:-1]:
				self._counterpoint(older, even_segments(window, window + length), names, "free")

			entered.append(voice)

		self.spans.append(continuo.ornaments.HarmonicSpan(start, end, self.tonic, self.mode))


	def episode (self, start: float, end: float, sequence_type: str) -> None:

		"""A harmonic sequence in half notes; alto and tenor sometimes rest."""

		count = int((end - start) // continuo.constants.durations.CHORD_SLOT_BEATS)
		chords = continuo.harmony.generate_sequence(self.tonic, self.mode, sequence_type, count)

		self._voice_chords(chords, start, [Duration.HALF] * count, "episode", dropout=frozenset({ALTO, TENOR}))
		self.progressions.append((sequence_type, continuo.harmony.format_progression(chords)))


	def middle_entries (self, start: float, end: float) -> None:

		"""Subject then answer in the relative key, in the alto then the tenor."""

		if self.motif is None:
			raise ValueError("Middle entries need a subject; call generate()")

		key, mode = continuo.modulation.related_key(self.tonic, self.mode, "relative")
		names = self._names(key, mode)

		subject = self.motif.realize(key, mode)
		answer = make_answer(subject, key, mode)
		length = sum(note.beats for note in subject)

		plan = [(ALTO, subject, "subject", TENOR), (TENOR, answer, "answer", ALTO)]

		for index, (voice, line, role, partner) in enumerate(plan):

			window = start + index * length

			if window + length > end:
				break

			entry = self._entry(line, window, voice, role)
			self._counterpoint(partner, merge_rhythm(entry), names, "countersubject", leader=voice)

			for free in (SOPRANO, BASS):
				self._counterpoint(free, even_segments(window, window + length), names, "free")

		self.spans.append(continuo.ornaments.HarmonicSpan(start, end, key, mode))


	def stretto (self, start: float, end: float) -> None:

		"""Overlapping entries two beats apart; each voice holds its last pitch to the end."""

		for index, (voice, role) in enumerate(STRETTO_ORDER):

			line = self.subject if role == "subject" else self.answer
			entry = self._entry(line, start + index * STRETTO_OFFSET, voice, role)
			last = entry[-1]

			if last.end < end:
				self.notes.extend(continuo.notes.hold(last.pitch, last.end, end - last.end, voice, "free"))

		self.spans.append(continuo.ornaments.HarmonicSpan(start, end, self.tonic, self.mode))


	def final_entry (self, start: float, end: float) -> None:

		"""Subject in the soprano over a tonic pedal, then the final cadence in the home key."""

		names = self._names(self.tonic, self.mode)
		chords = continuo.harmony.get_final_cadence(self.tonic, self.mode, self.rng)
		rhythm = CADENCE_RHYTHMS[len(chords)]
		cadence_start = end - sum(duration.beats for duration in rhythm)

		entry = self._entry(self.subject, start, SOPRANO, "subject")
		entry_end = min(entry[-1].end, cadence_start)

		pedal = f"{self.tonic}3"
		self.notes.extend(continuo.notes.hold(pedal, start, entry_end - start, BASS, "pedal"))

		for inner in (ALTO, TENOR):
			self._counterpoint(inner, even_segments(start, entry_end), names, "free")

		self.spans.append(continuo.ornaments.HarmonicSpan(start, cadence_start, self.tonic, self.mode))
		self._voice_chords(chords, cadence_start, rhythm, "cadence")
		self.progressions.append(("final cadence", continuo.harmony.format_progression(chords)))


	def generate (self) -> FugueResult:

		"""Build every stage in order and return the assembled fugue."""

		self.motif = continuo.motif.random_walk_motif(self.rng)
		self.subject = self.motif.realize(self.tonic, self.mode)
		self.answer = make_answer(self.subject, self.tonic, self.mode)

		position = 0.0
		episodes = iter(EPISODE_SEQUENCES)

		for section in continuo.form.FUGUE_STAGES:

			start = position
			end = start + section.bars * continuo.constants.durations.BEATS_PER_MEASURE
			key, mode = self.tonic, self.mode

			if section.type == "exposition":
				self.exposition(start, end)
			elif section.type == "episode":
				self.episode(start, end, next(episodes))
			elif section.type == "middle_entries":
				self.middle_entries(start, end)
				key, mode = continuo.modulation.related_key(self.tonic, self.mode, "relative")
			elif section.type == "stretto":
				self.stretto(start, end)
			elif section.type == "final_entry":
				self.final_entry(start, end)
			else:
				raise ValueError(f"Unknown fugue stage: {section.type}")

			self.stages.append(FugueStage(section.name, section.type, start, end, key, mode))
			logger.debug(f"Fugue stage {section.name}: beats {start}-{end} in {key} {mode}")

			position = end

		return FugueResult(
			notes = tuple(sorted(self.notes, key=continuo.notes.sort_key)),
			spans = tuple(self.spans),
			stages = tuple(self.stages),
			subject = tuple(self.subject),
			progressions = tuple(self.progressions)
		)
