"""Four-part voice leading.

Turns a chord sequence into SATB pitches. The first chord gets a closed
position voicing with the bass from the chord's inversion. Every following
chord is chosen by a small search: each voice considers the chord tones
nearest its previous pitch, and the cheapest combination that keeps the
voices ordered and spaced wins.

Cost of a candidate (see :func:`evaluate_transition`):

- total semitone motion of all four voices
- infinite for parallel fifths or octaves between any pair of voices
- +50 for hidden fifths or octaves (similar motion into a perfect interval)
- +20 for each chordal seventh that does not step down

Example:
	```python
	state = VoiceLeadingState(rng)
	first = state.next(continuo.chords.make_chord("C", "I"))
	second = state.next(continuo.chords.make_chord("C", "V7", inversion=1))
	second.midis  # (67, 62, 55, 47) or similar: B3 in the bass
	```
"""

import collections
import dataclasses
import itertools
import logging
import random
import typing

import continuo.chords
import continuo.constants.voices
import continuo.intervals
import continuo.pitch_oracle


logger = logging.getLogger(__name__)

INFINITE_COST = float("inf")
HIDDEN_PERFECT_PENALTY = 50.0
UNRESOLVED_SEVENTH_PENALTY = 20.0
DOUBLED_LEADING_TONE_PENALTY = 100.0
MISSING_THIRD_PENALTY = 30.0
UNDOUBLED_ROOT_PENALTY = 5.0

MAX_UPPER_SPACING = 12
OPTIONS_PER_VOICE = 2

# Closed voicings put the bass near C3.
BASS_CENTER = 48

VOICE_ORDER = (
	continuo.constants.voices.SOPRANO,
	continuo.constants.voices.ALTO,
	continuo.constants.voices.TENOR,
	continuo.constants.voices.BASS,
)


@dataclasses.dataclass(frozen=True)
class Voicing:

	"""
	One chord realized as four pitches, soprano to bass.
	"""

	soprano: str
	alto: str
	tenor: str
	bass: str

	def __post_init__ (self) -> None:

		"""Reject pitch strings the oracle cannot read."""

		for pitch in self.pitches:
			continuo.pitch_oracle.midi_number(pitch)

	@classmethod
	def from_midis (cls, midis: typing.Sequence[int], tones: typing.Sequence[str]) -> "Voicing":

		"""Build a voicing from MIDI numbers, spelling each with the chord's tone names."""

		names = [continuo.pitch_oracle.spell(m, tones) for m in midis]

		return cls(soprano=names[0], alto=names[1], tenor=names[2], bass=names[3])

	@property
	def pitches (self) -> typing.Tuple[str, str, str, str]:

		"""Pitches indexed by voice (0 = soprano)."""

		return (self.soprano, self.alto, self.tenor, self.bass)

	@property
	def midis (self) -> typing.Tuple[int, ...]:

		"""MIDI numbers indexed by voice."""

		return tuple(continuo.pitch_oracle.midi_number(p) for p in self.pitches)

	def is_valid (self) -> bool:

		"""True if ordering, ranges and upper-voice spacing all hold."""

		return is_acceptable(self.midis)


def is_acceptable (midis: typing.Sequence[int]) -> bool:

	"""
	Check strict S > A > T > B ordering, voice ranges, and S-A / A-T spacing within an octave.
	"""

	soprano, alto, tenor, bass = midis

	if not soprano > alto > tenor > bass:
		return False

	if soprano - alto > MAX_UPPER_SPACING or alto - tenor > MAX_UPPER_SPACING:
		return False

	return all(continuo.constants.voices.in_range(voice, midis[voice]) for voice in VOICE_ORDER)


def evaluate_transition (
	previous: typing.Sequence[int],
	candidate: typing.Sequence[int],
	previous_chord: typing.Optional[continuo.chords.Chord] = None
) -> float:

	"""
	Score the motion from one voicing to the next. Lower is smoother.

	Parameters:
		previous: MIDI numbers of the sounding voicing, indexed by voice.
		candidate: MIDI numbers of the proposed voicing.
		previous_chord: The sounding chord, used to find a seventh that must resolve.

	Returns:
		Total motion plus penalties, or ``INFINITE_COST`` for parallel perfect intervals.
	"""

	cost = float(sum(abs(c - p) for c, p in zip(candidate, previous)))

	for upper, lower in itertools.combinations(range(4), 2):

		if continuo.intervals.is_parallel_perfect(previous[upper], candidate[upper], previous[lower], candidate[lower]):
			return INFINITE_COST

		if continuo.intervals.is_hidden_perfect(previous[upper], candidate[upper], previous[lower], candidate[lower]):
			cost += HIDDEN_PERFECT_PENALTY

	if previous_chord is not None and previous_chord.seventh is not None:

		seventh_pc = continuo.pitch_oracle.pitch_class_number(previous_chord.seventh)

		for before, after in zip(previous, candidate):
			if before % 12 == seventh_pc and not -2 <= after - before <= -1:
				cost += UNRESOLVED_SEVENTH_PENALTY

	return cost


def validate_doubling (midis: typing.Sequence[int], chord: continuo.chords.Chord) -> float:

	"""
	Penalty for poor doubling: a doubled leading tone costs 100, a missing
	third 30, and a root-position triad without a doubled root 5.
	"""

	counts = collections.Counter(m % 12 for m in midis)
	pcs = chord.pitch_classes
	leading_tone = (continuo.chords.NOTE_NAME_TO_PC.get(chord.key, continuo.pitch_oracle.pitch_class_number(chord.key)) + 11) % 12

	cost = 0.0

	if counts[leading_tone] > 1:
		cost += DOUBLED_LEADING_TONE_PENALTY

	if counts[pcs[1]] == 0:
		cost += MISSING_THIRD_PENALTY

	if len(pcs) == 3 and chord.inversion == 0 and counts[pcs[0]] < 2:
		cost += UNDOUBLED_ROOT_PENALTY

	return cost


def _upper_tones (chord: continuo.chords.Chord) -> typing.List[int]:

	"""Pitch classes for tenor, alto and soprano in a closed voicing."""

	pcs = chord.pitch_classes

	if len(pcs) == 4:
		return [pc for index, pc in enumerate(pcs) if index != chord.inversion]

	if chord.inversion == 1:
		return [pcs[0], pcs[2], pcs[0]]

	return list(pcs)


def _stack (bass: int, floor: int, tones: typing.List[int]) -> typing.Optional[typing.Tuple[int, int, int, int]]:

	"""Place the upper tones on the lowest free pitches at or above ``floor``."""

	remaining = collections.Counter(tones)
	picked: typing.List[int] = []
	midi = max(floor, bass + 1)
	ceiling = continuo.constants.voices.VOICE_RANGES[continuo.constants.voices.SOPRANO][1]

	while len(picked) < 3 and midi <= ceiling:
		if remaining[midi % 12] > 0:
			picked.append(midi)
			remaining[midi % 12] -= 1
		midi += 1

	if len(picked) < 3:
		return None

	tenor, alto, soprano = picked

	return (soprano, alto, tenor, bass)


def closed_voicings (chord: continuo.chords.Chord) -> typing.List[typing.Tuple[int, ...]]:

	"""
	Every valid closed-position voicing of a chord, most central first.

	The bass takes the inversion's pitch class; the upper voices stack the
	remaining tones (doubling the root of triads) as tightly as possible.
	"""

	bass_pc = continuo.pitch_oracle.pitch_class_number(chord.bass)
	low, high = continuo.constants.voices.VOICE_RANGES[continuo.constants.voices.BASS]
	basses = sorted((m for m in range(low, high + 1) if m % 12 == bass_pc), key=lambda m: (abs(m - BASS_CENTER), m))
	tenor_floor = continuo.constants.voices.VOICE_RANGES[continuo.constants.voices.TENOR][0]
	upper = _upper_tones(chord)

	result: typing.List[typing.Tuple[int, ...]] = []

	for bass in basses:
		for offset in range(12):
			stacked = _stack(bass, tenor_floor + offset, upper)
			if stacked is not None and is_acceptable(stacked) and stacked not in result:
				result.append(stacked)

	return result


def closed_voicing (chord: continuo.chords.Chord) -> Voicing:

	"""
	The closed-position voicing used to open a progression.

	Example:
		```python
		closed_voicing(continuo.chords.make_chord("C", "I")).pitches
		# ("C4", "G3", "E3", "C3")
		```
	"""

	candidates = closed_voicings(chord)

	if not candidates:
		raise ValueError(f"No closed voicing fits the voice ranges for {chord.name}")

	return Voicing.from_midis(candidates[0], chord.tones)


class VoiceLeadingState:

	"""Carry the sounding voicing from chord to chord.

	Parameters:
		rng: Random stream used to break ties between equally close options.
		use_doubling: Fold :func:`validate_doubling` into the search cost.
	"""

	def __init__ (self, rng: random.Random, use_doubling: bool = True, previous: typing.Optional[Voicing] = None) -> None:

		"""Start with an optional sounding voicing."""

		self.rng = rng
		self.use_doubling = use_doubling
		self.previous: typing.Optional[Voicing] = previous
		self.previous_chord: typing.Optional[continuo.chords.Chord] = None


	def next (self, chord: continuo.chords.Chord) -> Voicing:

		"""Voice the next chord and make it the sounding voicing."""

		if self.previous is None:
			voicing = closed_voicing(chord)
		else:
			voicing = self._lead(self.previous, chord)

		self.previous = voicing
		self.previous_chord = chord

		return voicing


	def _options (self, voice: int, chord: continuo.chords.Chord, previous: str, limit: typing.Optional[int]) -> typing.List[int]:

		"""Candidate MIDI pitches for one voice, nearest first."""

		previous_midi = continuo.pitch_oracle.midi_number(previous)
		tones = [chord.bass] if voice == continuo.constants.voices.BASS else list(chord.tones)

		if limit is None:
			octaves = range(1, 7)
		else:
			center = continuo.pitch_oracle.octave(previous)
			octaves = range(center - 1, center + 2)

		options: typing.List[int] = []

		for tone in tones:
			for octave in octaves:
				midi = continuo.pitch_oracle.midi_number(f"{tone}{octave}")
				if continuo.constants.voices.in_range(voice, midi) and midi not in options:
					options.append(midi)

		tiebreak = {midi: self.rng.random() for midi in options}
		options.sort(key=lambda m: (abs(m - previous_midi), tiebreak[m]))

		return options if limit is None else options[:limit]


	def _cost (self, previous: typing.Sequence[int], candidate: typing.Sequence[int], chord: continuo.chords.Chord) -> float:

		cost = evaluate_transition(previous, candidate, self.previous_chord)

		if self.use_doubling and cost < INFINITE_COST:
			cost += validate_doubling(candidate, chord)

		return cost


	def _search (self, previous: Voicing, chord: continuo.chords.Chord, limit: typing.Optional[int]) -> typing.Optional[typing.Tuple[int, ...]]:

		previous_midis = previous.midis
		options = [self._options(voice, chord, previous.pitches[voice], limit) for voice in VOICE_ORDER]

		best: typing.Optional[typing.Tuple[int, ...]] = None
		best_cost = INFINITE_COST

		for candidate in itertools.product(*options):

			if not is_acceptable(candidate):
				continue

			cost = self._cost(previous_midis, candidate, chord)

			if cost < best_cost:
				best_cost = cost
				best = tuple(candidate)

		return best


	def _lead (self, previous: Voicing, chord: continuo.chords.Chord) -> Voicing:

		"""
		Decision path:
			1. Two nearest options per voice (at most 16 combinations).
			2. Every in-range option per voice.
			3. The cheapest closed voicing, even if it moves in parallels.
		"""

		best = self._search(previous, chord, OPTIONS_PER_VOICE)

		if best is None:
			logger.debug(f"Narrow voice-leading search exhausted for {chord.name}; widening")
			best = self._search(previous, chord, None)

		if best is None:
			logger.warning(f"Voice leading found no candidate for {chord.name}; using closed voicing")
			candidates = closed_voicings(chord)
			if not candidates:
				raise ValueError(f"No closed voicing fits the voice ranges for {chord.name}")
			best = min(candidates, key=lambda c: self._cost(previous.midis, c, chord))

		return Voicing.from_midis(best, chord.tones)


def voice_progression (
	chords: typing.Sequence[continuo.chords.Chord],
	rng: random.Random,
	previous: typing.Optional[Voicing] = None,
	use_doubling: bool = True
) -> typing.List[Voicing]:

	"""
	Voice every chord of a progression.

	Parameters:
		chords: The progression.
		rng: Random stream for tie-breaks.
		previous: A sounding voicing to lead from; the first chord is voiced
			closed when omitted.
		use_doubling: Include :func:`validate_doubling` in the cost.
	"""

	state = VoiceLeadingState(rng, use_doubling=use_doubling, previous=previous)

	return [state.next(chord) for chord in chords]
