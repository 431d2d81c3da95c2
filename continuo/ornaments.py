"""Melodic ornamentation passes.

Each pass takes an immutable note list and returns a new one, working through
the voices in order and through each voice left to right. An ornament is only
written when:

1. its note lies outside the cadence zone (the last ``cadence_measures`` measures),
2. a roll against ``base_density x voice multiplier x ornament probability`` succeeds,
3. every new pitch stays in the voice's range and forms no harsh interval
   (2nd, 7th, 9th) with any overlapping note in another voice.

:func:`cleanup` then removes ornaments that still clash, and :func:`humanize`
adds performance jitter. :func:`fix_fugue_dissonances` runs on fugues before
any of this, nudging clashing contrapuntal lines onto consonances.

Example:
	```python
	config = OrnamentConfig(base_density=0.5, total_measures=8)
	notes = ornament(notes, spans, config, rng)
	notes = humanize(notes, rng)
	```
"""

import bisect
import dataclasses
import logging
import random
import typing

import continuo.chords
import continuo.constants.durations
import continuo.constants.voices
import continuo.intervals
import continuo.notes
import continuo.pitch_oracle


logger = logging.getLogger(__name__)

Duration = continuo.constants.durations.Duration
Note = continuo.notes.Note

ORNAMENT_TYPES: typing.FrozenSet[str] = frozenset({
	"suspension",
	"passing",
	"neighbor",
	"appoggiatura",
	"trill",
	"mordent",
	"turn",
})

DEFAULT_PROBABILITIES: typing.Dict[str, float] = {
	"suspension": 0.8,
	"passing": 0.6,
	"neighbor": 0.3,
	"appoggiatura": 0.3,
	"suspension_98": 0.25,
	"trill": 0.25,
	"mordent": 0.2,
	"turn": 0.15,
}

DEFAULT_VOICE_MULTIPLIERS: typing.Tuple[float, ...] = (1.0, 0.6, 0.6, 0.4)

DEFAULT_CADENCE_MEASURES = 2

# Appoggiaturas belong mainly to the melody.
APPOGGIATURA_VOICE_WEIGHT: typing.Dict[int, float] = {0: 1.0, 1: 0.25, 2: 0.25, 3: 0.1}

APPOGGIATURA_FROM_ABOVE = 0.7

VOICE_VELOCITY: typing.Dict[int, int] = {0: 90, 1: 78, 2: 78, 3: 86}
ACCENT_TYPES: typing.FrozenSet[str] = frozenset({"appoggiatura", "suspension"})
ACCENT_VELOCITY = 10

# Independent lines the fugue pre-pass may adjust, strongest first. A pedal never moves.
LINE_PRIORITY: typing.Dict[str, int] = {
	"pedal": 4,
	"subject": 3,
	"answer": 3,
	"countersubject": 2,
	"free": 1,
}

MAX_STEP = 3

# Semitones a clashing fugue note may move.
FIX_WINDOW = 12


@dataclasses.dataclass(frozen=True)
class HarmonicSpan:

	"""
	The key (and chord, where there is one) in force over ``[start, end)`` beats.
	"""

	start: float
	end: float
	key: str
	mode: str
	chord: typing.Optional[continuo.chords.Chord] = None


@dataclasses.dataclass(frozen=True)
class OrnamentConfig:

	"""
	Settings shared by every ornament pass.

	Attributes:
		base_density: Overall ornament density, 0-1.
		voice_multipliers: Per-voice scale on the density, soprano first.
		total_measures: Length of the piece in measures.
		cadence_measures: Final measures left unornamented.
		probabilities: Base probability per ornament type.
		beats_per_measure: Measure length in beats.
	"""

	base_density: float = 0.5
	voice_multipliers: typing.Tuple[float, ...] = DEFAULT_VOICE_MULTIPLIERS
	total_measures: int = 0
	cadence_measures: int = DEFAULT_CADENCE_MEASURES
	probabilities: typing.Mapping[str, float] = dataclasses.field(default_factory=lambda: dict(DEFAULT_PROBABILITIES))
	beats_per_measure: float = continuo.constants.durations.BEATS_PER_MEASURE

	def probability (self, ornament: str, voice: int) -> float:

		"""Chance of writing ``ornament`` on one eligible note in ``voice``."""

		return self.base_density * self.voice_multipliers[voice] * self.probabilities.get(ornament, 0.0)

	def in_cadence_zone (self, beat: float) -> bool:

		"""True if ``beat`` falls in the final unornamented measures."""

		measure = int(beat // self.beats_per_measure)

		return measure >= self.total_measures - self.cadence_measures


class _KeyMap:

	"""Look up the key in force at any beat."""

	def __init__ (self, spans: typing.Sequence[HarmonicSpan]) -> None:

		if not spans:
			raise ValueError("Ornamentation needs at least one harmonic span")

		self.spans = sorted(spans, key=lambda s: s.start)
		self.starts = [span.start for span in self.spans]

	def span_at (self, beat: float) -> HarmonicSpan:

		index = bisect.bisect_right(self.starts, beat) - 1

		return self.spans[max(index, 0)]

	def scale (self, beat: float, scale_type: typing.Optional[str] = None) -> typing.Tuple[str, ...]:

		"""Scale at ``beat``: major, or the given minor form (harmonic by default)."""

		span = self.span_at(beat)

		if span.mode == "major":
			return continuo.chords.scale_names(span.key, "major")

		return continuo.chords.scale_names(span.key, scale_type or "harmonic minor")


class _Pass (_KeyMap):

	"""State for one pass: the key map, config, stream, and the notes of other voices."""

	def __init__ (
		self,
		spans: typing.Sequence[HarmonicSpan],
		config: OrnamentConfig,
		rng: random.Random
	) -> None:

		super().__init__(spans)

		self.config = config
		self.rng = rng
		self.others: typing.List[Note] = []

	def gate (self, ornament: str, note: Note, weight: float = 1.0) -> bool:

		"""Cadence-zone check, then a probability roll."""

		if self.config.in_cadence_zone(note.start):
			return False

		return self.rng.random() < self.config.probability(ornament, note.voice) * weight

	def fits (self, midi: int, voice: int, start: float, end: float) -> bool:

		"""Range check plus the dissonance guard against other voices."""

		if not continuo.constants.voices.in_range(voice, midi):
			return False

		for other in continuo.notes.sounding(self.others, start, end, exclude_voice=voice):
			if continuo.intervals.is_harsh(midi, other.midi):
				return False

		return True


def _step (midi: int, direction: int, names: typing.Sequence[str]) -> typing.Optional[int]:

	"""The next scale tone above (``direction`` 1) or below (-1) ``midi``."""

	pcs = {continuo.pitch_oracle.pitch_class_number(name) for name in names}

	for size in range(1, MAX_STEP + 1):
		candidate = midi + direction * size
		if candidate % 12 in pcs:
			return candidate

	return None


def _note (template: Note, pitch: str, duration: Duration, start: float, note_type: typing.Optional[str]) -> Note:

	return dataclasses.replace(template, pitch=pitch, duration=duration, start=start, type=note_type)


def _run (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random,
	rewrite: typing.Callable[[_Pass, typing.List[Note]], typing.List[Note]],
	voices: typing.Sequence[int] = continuo.constants.voices.VOICES
) -> typing.List[Note]:

	"""Apply ``rewrite`` to each voice in turn, guarding against the current state of the others."""

	state = _Pass(spans, config, rng)
	grouped = continuo.notes.by_voice(notes)

	for voice in voices:
		state.others = [note for other, voice_notes in grouped.items() if other != voice for note in voice_notes]
		grouped[voice] = rewrite(state, grouped[voice])

	return continuo.notes.flatten(grouped)


def _is_base (note: Note) -> bool:

	return note.type not in ORNAMENT_TYPES


def add_suspensions (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random
) -> typing.List[Note]:

	"""
	4-3 suspensions at V to I boundaries.

	Where an upper voice holds the dominant's third and was on the tonic root
	a semitone above just before, the tonic is held over half the note and
	then resolves down.
	"""

	chord_spans = [span for span in sorted(spans, key=lambda s: s.start) if span.chord is not None]
	targets: typing.Dict[float, continuo.chords.Chord] = {}

	for current, following in zip(chord_spans, chord_spans[1:]):
		if current.chord.numeral in ("V", "V7") and following.chord.numeral in ("I", "i") and following.start == current.end:
			targets[current.start] = following.chord

	def rewrite (state: _Pass, voice_notes: typing.List[Note]) -> typing.List[Note]:

		result: typing.List[Note] = []

		for index, note in enumerate(voice_notes):

			tonic = targets.get(note.start)
			span = state.span_at(note.start)
			half = continuo.constants.durations.halve(note.duration)
			previous = voice_notes[index - 1] if index > 0 else None

			prepared = (
				tonic is not None
				and span.chord is not None
				and half is not None
				and previous is not None
				and previous.end == note.start
				and _is_base(note)
				and continuo.pitch_oracle.pitch_class_number(note.pitch) == continuo.pitch_oracle.pitch_class_number(span.chord.third)
				and continuo.pitch_oracle.pitch_class_number(previous.pitch) == continuo.pitch_oracle.pitch_class_number(tonic.root)
				and previous.midi == note.midi + 1
			)

			if prepared and state.gate("suspension", note) and state.fits(previous.midi, note.voice, note.start, note.start + half.beats):
				result.append(_note(note, previous.pitch, half, note.start, "suspension"))
				result.append(_note(note, note.pitch, half, note.start + half.beats, "resolution"))
				continue

			result.append(note)

		return result

	upper = (continuo.constants.voices.SOPRANO, continuo.constants.voices.ALTO, continuo.constants.voices.TENOR)

	return _run(notes, spans, config, rng, rewrite, voices=upper)


def add_passing_tones (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random
) -> typing.List[Note]:

	"""
	Fill melodic thirds with a diatonic passing tone at the midpoint of the first note.

	Ascending lines in minor use the melodic-minor 6th and 7th.
	"""

	def rewrite (state: _Pass, voice_notes: typing.List[Note]) -> typing.List[Note]:

		result: typing.List[Note] = []

		for index, note in enumerate(voice_notes):

			following = voice_notes[index + 1] if index + 1 < len(voice_notes) else None
			half = continuo.constants.durations.halve(note.duration)

			if following is None or half is None or not _is_base(note) or following.start != note.end:
				result.append(note)
				continue

			leap = following.midi - note.midi

			if abs(leap) not in (3, 4) or not state.gate("passing", note):
				result.append(note)
				continue

			names = state.scale(note.start, "melodic minor" if leap > 0 else "minor")
			pcs = {continuo.pitch_oracle.pitch_class_number(name) for name in names}
			low, high = sorted((note.midi, following.midi))
			between = [m for m in range(low + 1, high) if m % 12 in pcs]
			start = note.start + half.beats

			if not between or not state.fits(between[0], note.voice, start, note.end):
				result.append(note)
				continue

			result.append(_note(note, note.pitch, half, note.start, note.type))
			result.append(_note(note, continuo.pitch_oracle.spell(between[0], names), half, start, "passing"))

		return result

	return _run(notes, spans, config, rng, rewrite)


def add_neighbor_tones (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random
) -> typing.List[Note]:

	"""
	Step to an upper or lower neighbor and back in the second half of a note.
	"""

	def rewrite (state: _Pass, voice_notes: typing.List[Note]) -> typing.List[Note]:

		result: typing.List[Note] = []

		for note in voice_notes:

			half = continuo.constants.durations.halve(note.duration)
			quarter = continuo.constants.durations.halve(half) if half is not None else None

			if half is None or quarter is None or not _is_base(note) or not state.gate("neighbor", note):
				result.append(note)
				continue

			direction = 1 if state.rng.random() < 0.5 else -1
			names = state.scale(note.start)
			neighbor = _step(note.midi, direction, names)
			start = note.start + half.beats

			if neighbor is None or not state.fits(neighbor, note.voice, start, start + quarter.beats):
				result.append(note)
				continue

			result.append(_note(note, note.pitch, half, note.start, note.type))
			result.append(_note(note, continuo.pitch_oracle.spell(neighbor, names), quarter, start, "neighbor"))
			result.append(_note(note, note.pitch, quarter, start + quarter.beats, note.type))

		return result

	return _run(notes, spans, config, rng, rewrite)


def add_appoggiaturas (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random
) -> typing.List[Note]:

	"""
	Put an accented step above (or below) on the beat, delaying the target note by half.
	"""

	def rewrite (state: _Pass, voice_notes: typing.List[Note]) -> typing.List[Note]:

		result: typing.List[Note] = []

		for note in voice_notes:

			half = continuo.constants.durations.halve(note.duration)
			weight = APPOGGIATURA_VOICE_WEIGHT[note.voice]

			if half is None or not _is_base(note) or not state.gate("appoggiatura", note, weight):
				result.append(note)
				continue

			side = 1 if state.rng.random() < APPOGGIATURA_FROM_ABOVE else -1
			names = state.scale(note.start)
			approach = _step(note.midi, side, names)

			if approach is None or not state.fits(approach, note.voice, note.start, note.start + half.beats):
				result.append(note)
				continue

			result.append(_note(note, continuo.pitch_oracle.spell(approach, names), half, note.start, "appoggiatura"))
			result.append(_note(note, note.pitch, half, note.start + half.beats, note.type))

		return result

	return _run(notes, spans, config, rng, rewrite)


def add_98_suspensions (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random
) -> typing.List[Note]:

	"""
	Where a line steps down by a semitone or tone, hold the upper pitch into the
	next note (one beat, or half of a shorter note) before resolving.
	"""

	def rewrite (state: _Pass, voice_notes: typing.List[Note]) -> typing.List[Note]:

		result: typing.List[Note] = []

		for index, note in enumerate(voice_notes):

			previous = voice_notes[index - 1] if index > 0 else None

			if previous is None or previous.end != note.start or not _is_base(previous) or not _is_base(note):
				result.append(note)
				continue

			drop = previous.midi - note.midi
			held = 1.0 if note.beats >= 2 else note.beats / 2
			hold = continuo.constants.durations.from_beats(held)
			rest = continuo.constants.durations.from_beats(note.beats - held)

			if drop not in (1, 2) or hold is None or rest is None or not state.gate("suspension_98", note):
				result.append(note)
				continue

			if not state.fits(previous.midi, note.voice, note.start, note.start + held):
				result.append(note)
				continue

			result.append(_note(note, previous.pitch, hold, note.start, "suspension"))
			result.append(_note(note, note.pitch, rest, note.start + held, "resolution"))

		return result

	return _run(notes, spans, config, rng, rewrite)


def _figure (
	note: Note,
	pattern: typing.Sequence[typing.Tuple[int, Duration]],
	names: typing.Sequence[str],
	ornament: str
) -> typing.List[Note]:

	"""Write ``(midi, duration)`` pairs as ornament notes, then hold the main pitch for the rest."""

	result: typing.List[Note] = []
	position = note.start

	for midi, duration in pattern:
		pitch = note.pitch if midi == note.midi else continuo.pitch_oracle.spell(midi, names)
		result.append(_note(note, pitch, duration, position, ornament))
		position += duration.beats

	for duration in continuo.constants.durations.split_beats(note.end - position):
		result.append(_note(note, note.pitch, duration, position, note.type))
		position += duration.beats

	return result


def add_figures (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random
) -> typing.List[Note]:

	"""
	Trills, mordents and turns on long notes, each ending on the written pitch.

	- trill (2+ beats): main and upper neighbor in sixteenths for half the note
	- mordent (1+ beat): main, lower neighbor, main in thirty-seconds
	- turn (1+ beat): upper, main, lower, main in sixteenths
	"""

	sixteenth = Duration.SIXTEENTH
	thirtysecond = Duration.THIRTYSECOND

	def rewrite (state: _Pass, voice_notes: typing.List[Note]) -> typing.List[Note]:

		result: typing.List[Note] = []

		for note in voice_notes:

			if not _is_base(note) or note.beats < 1:
				result.append(note)
				continue

			names = state.scale(note.start)
			upper = _step(note.midi, 1, names)
			lower = _step(note.midi, -1, names)

			if note.beats >= 2 and upper is not None and state.gate("trill", note):

				length = note.beats / 2

				if state.fits(upper, note.voice, note.start, note.start + length):
					count = int(length / sixteenth.beats)
					pattern = [(note.midi if i % 2 == 0 else upper, sixteenth) for i in range(count)]
					result.extend(_figure(note, pattern, names, "trill"))
					continue

			if lower is not None and state.gate("mordent", note):

				start = note.start + thirtysecond.beats

				if state.fits(lower, note.voice, start, start + thirtysecond.beats):
					pattern = [(note.midi, thirtysecond), (lower, thirtysecond), (note.midi, thirtysecond)]
					result.extend(_figure(note, pattern, names, "mordent"))
					continue

			if upper is not None and lower is not None and state.gate("turn", note):

				if state.fits(upper, note.voice, note.start, note.start + 1) and state.fits(lower, note.voice, note.start, note.start + 1):
					pattern = [(upper, sixteenth), (note.midi, sixteenth), (lower, sixteenth), (note.midi, sixteenth)]
					result.extend(_figure(note, pattern, names, "turn"))
					continue

			result.append(note)

		return result

	return _run(notes, spans, config, rng, rewrite)


ORNAMENT_PASSES: typing.Tuple[typing.Callable[..., typing.List[Note]], ...] = (
	add_suspensions,
	add_passing_tones,
	add_neighbor_tones,
	add_appoggiaturas,
	add_98_suspensions,
	add_figures,
)


def _cleanup_victim (a: Note, b: Note) -> Note:

	"""The note to drop from a clashing pair: the ornament, else the lower-priority voice."""

	a_ornament = a.type in ORNAMENT_TYPES
	b_ornament = b.type in ORNAMENT_TYPES

	if a_ornament != b_ornament:
		return a if a_ornament else b

	priority = continuo.constants.voices.VOICE_PRIORITY

	return a if priority[a.voice] < priority[b.voice] else b


def cleanup (notes: typing.Sequence[Note]) -> typing.List[Note]:

	"""
	Remove ornaments that form a harsh interval with any overlapping note in another voice.

	Pairs of two ornaments lose the one in the lower-priority voice (soprano,
	bass, alto, tenor from strongest). Clashes between two structural notes
	are left alone. The result depends only on the set of notes, not their order.
	"""

	ordered = sorted(notes, key=continuo.notes.sort_key)
	alive = [True] * len(ordered)
	removed = 0

	for i, first in enumerate(ordered):

		for j in range(i + 1, len(ordered)):

			if not alive[i]:
				break

			second = ordered[j]

			if second.start >= first.end:
				break

			if not alive[j] or second.voice == first.voice:
				continue

			if first.type not in ORNAMENT_TYPES and second.type not in ORNAMENT_TYPES:
				continue

			if continuo.intervals.is_harsh(first.midi, second.midi):
				victim = i if _cleanup_victim(first, second) is first else j
				alive[victim] = False
				removed += 1

	if removed:
		logger.debug(f"Cleanup removed {removed} clashing ornament notes")

	return [note for note, keep in zip(ordered, alive) if keep]


def ornament (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan],
	config: OrnamentConfig,
	rng: random.Random,
	passes: typing.Sequence[typing.Callable[..., typing.List[Note]]] = ORNAMENT_PASSES
) -> typing.List[Note]:

	"""
	Run the ornament passes in order, then :func:`cleanup`.
	"""

	current = list(notes)

	for ornament_pass in passes:
		current = ornament_pass(current, spans, config, rng)

	added = len(current) - len(notes)
	result = cleanup(current)

	logger.debug(f"Ornamentation added {added} notes, kept {len(result) - len(notes)}")

	return result


def _line_rank (note: Note) -> typing.Tuple[int, int]:

	return (LINE_PRIORITY.get(note.type or "", 0), continuo.constants.voices.VOICE_PRIORITY[note.voice])


def _fix_order (note: Note) -> typing.Tuple[int, int, float, int]:

	rank, priority = _line_rank(note)

	return (-rank, -priority, note.start, note.voice)


def _consonant_pitch (
	note: Note,
	against: typing.Sequence[Note],
	names: typing.Sequence[str]
) -> typing.Optional[str]:

	"""
	Nearest scale pitch that forms no harsh interval with any note in ``against``.

	Pitches in the note's own octave come first, then full consonances (a
	fourth is allowed but ranks behind), then the smallest move.
	"""

	octave = continuo.pitch_oracle.octave(note.pitch)
	pcs = {continuo.pitch_oracle.pitch_class_number(name) for name in names}
	best: typing.Optional[typing.Tuple[typing.Tuple[int, bool, int, int], int]] = None

	for midi in range(note.midi - FIX_WINDOW, note.midi + FIX_WINDOW + 1):

		if midi == note.midi or midi % 12 not in pcs or not continuo.constants.voices.in_range(note.voice, midi):
			continue

		if any(continuo.intervals.is_harsh(midi, other.midi) for other in against):
			continue

		dissonant = sum(1 for other in against if not continuo.intervals.is_consonant(midi, other.midi))
		rank = (dissonant, midi // 12 - 1 != octave, abs(midi - note.midi), midi)

		if best is None or rank < best[0]:
			best = (rank, midi)

	return continuo.pitch_oracle.spell(best[1], names) if best is not None else None


def _segments (note: Note, against: typing.Sequence[Note]) -> typing.List[typing.Tuple[float, float]]:

	"""Cut a note's span wherever a note in ``against`` starts or stops."""

	cuts = {note.start, note.end}

	for other in against:
		for beat in (other.start, other.end):
			if note.start < beat < note.end:
				cuts.add(beat)

	ordered = sorted(cuts)

	return list(zip(ordered, ordered[1:]))


def fix_fugue_dissonances (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[HarmonicSpan]
) -> typing.List[Note]:

	"""
	Move clashing notes of independent fugal lines onto consonances.

	Only notes tagged as contrapuntal lines (``LINE_PRIORITY``) take part.
	Lines are settled strongest first: pedal, then subject and answer, then
	countersubject, then free counterpoint, with voice priority breaking ties.
	A note that forms a 2nd, 7th or 9th with an already settled note moves to
	the nearest diatonic pitch clear of all of them. When no single pitch
	fits the whole note, it is cut where the settled notes change and each
	piece is placed on its own; a piece with nowhere to go is dropped.

	Every settled note stays fixed, so the result has no harsh interval
	between any two overlapping line notes.
	"""

	keys = _KeyMap(spans)
	lines = sorted((note for note in notes if note.type in LINE_PRIORITY), key=_fix_order)
	result = [note for note in notes if note.type not in LINE_PRIORITY]
	settled: typing.List[Note] = []
	moved = 0
	split = 0
	dropped = 0

	for note in lines:

		against = continuo.notes.sounding(settled, note.start, note.end, exclude_voice=note.voice)

		if not any(continuo.intervals.is_harsh(note.midi, other.midi) for other in against):
			settled.append(note)
			continue

		names = keys.scale(note.start)
		pitch = _consonant_pitch(note, against, names)

		if pitch is not None:
			settled.append(dataclasses.replace(note, pitch=pitch))
			moved += 1
			continue

		split += 1

		for start, end in _segments(note, against):

			pieces = continuo.notes.hold(note.pitch, start, end - start, note.voice, note.type)

			if not pieces:
				continue

			local = continuo.notes.sounding(against, start, end)

			if any(continuo.intervals.is_harsh(note.midi, other.midi) for other in local):
				pitch = _consonant_pitch(pieces[0], local, names)

				if pitch is None:
					dropped += len(pieces)
					continue

				pieces = [dataclasses.replace(piece, pitch=pitch) for piece in pieces]

			settled.extend(dataclasses.replace(piece, velocity=note.velocity) for piece in pieces)

	logger.debug(f"Fugue dissonance pass moved {moved} notes, split {split}, dropped {dropped} pieces")

	return sorted(result + settled, key=continuo.notes.sort_key)


def humanize (
	notes: typing.Sequence[Note],
	rng: random.Random,
	timing: float = 0.02,
	velocity: float = 0.08
) -> typing.List[Note]:

	"""
	Add small random timing and velocity variations.

	Velocities start from a per-voice level (outer voices louder), accent
	appoggiaturas and suspensions, then scale by a random factor in
	``[1 - velocity, 1 + velocity]`` clamped to 1-127. Timing jitter within
	``[-timing, +timing]`` beats goes into ``Note.offset`` so the written
	rhythm is untouched.

	Parameters:
		notes: Notes in any order; the result is in canonical order.
		rng: Random stream.
		timing: Maximum timing offset in beats.
		velocity: Maximum velocity scale deviation (0.0 to 1.0).
	"""

	result: typing.List[Note] = []

	for note in sorted(notes, key=continuo.notes.sort_key):

		level = note.velocity if note.velocity is not None else VOICE_VELOCITY[note.voice]

		if note.type in ACCENT_TYPES:
			level += ACCENT_VELOCITY

		if velocity:
			level = level * rng.uniform(1.0 - velocity, 1.0 + velocity)

		offset = rng.uniform(-timing, timing) if timing else 0.0

		result.append(dataclasses.replace(
			note,
			velocity = max(1, min(127, int(round(level)))),
			offset = max(offset, -note.start)
		))

	return result
