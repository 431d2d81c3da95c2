"""Phrase shapes built from harmony-generator calls.

A :class:`PhraseStructure` stitches several progressions into one section:
periods (antecedent closing on a half cadence, consequent closing
authentically), sentences (presentation, continuation, cadential), binary and
ternary shapes. Each sub-phrase is marked so callers can report where phrases
begin and which cadence closes them.

Where two phrases meet, an awkward seam (roots a tritone apart, or the same
chord repeated) makes the structure regenerate the second phrase a few times.
"""

import dataclasses
import logging
import random
import typing

import continuo.chords
import continuo.harmony
import continuo.modulation


logger = logging.getLogger(__name__)

Key = typing.Tuple[str, str]
Chords = typing.List[continuo.chords.Chord]

MAX_SEAM_ATTEMPTS = 3

MIN_LENGTHS: typing.Dict[str, int] = {
	"period": 8,
	"sentence": 8,
	"binary": 8,
	"ternary": 12,
}

PRESENTATION: typing.Dict[str, typing.List[typing.Tuple[str, int]]] = {
	"major": [("I", 0), ("V", 1), ("I", 1), ("V", 0)],
	"minor": [("i", 0), ("V", 1), ("i", 1), ("V", 0)],
}


@dataclasses.dataclass(frozen=True)
class PhraseMarker:

	"""
	A named phrase inside a chord sequence.

	Attributes:
		name: Phrase role (``"antecedent"``, ``"continuation"``, ``"B"``).
		start: Index of the phrase's first chord.
		length: Number of chords.
		cadence: Cadence type closing the phrase, if it closes on one.
	"""

	name: str
	start: int
	length: int
	cadence: typing.Optional[str] = None

	def shifted (self, offset: int) -> "PhraseMarker":

		"""The same marker moved ``offset`` chords later."""

		return dataclasses.replace(self, start=self.start + offset)


@dataclasses.dataclass(frozen=True)
class PhrasePlan:

	"""Chords of a section with the phrase boundaries inside it."""

	chords: typing.Tuple[continuo.chords.Chord, ...]
	markers: typing.Tuple[PhraseMarker, ...]


def is_awkward_transition (last: continuo.chords.Chord, first: continuo.chords.Chord) -> bool:

	"""
	True if two chords make a poor phrase seam.

	A seam is awkward when the roots lie a tritone apart or the second chord
	repeats the first exactly (same numeral and inversion).
	"""

	if last.numeral == first.numeral and last.inversion == first.inversion and last.key == first.key:
		return True

	a = continuo.chords.NOTE_NAME_TO_PC.get(last.root)
	b = continuo.chords.NOTE_NAME_TO_PC.get(first.root)

	if a is None or b is None:
		return False

	return (b - a) % 12 == 6


def analyze_phrases (chords: typing.Sequence[continuo.chords.Chord]) -> typing.List[PhraseMarker]:

	"""
	Split a progression into phrases at every recognised cadence.

	Chords after the last cadence form a final phrase with no cadence.

	Example:
		```python
		chords = generate_progression("C", 4, rng, cadence="HC") + generate_progression("C", 4, rng, cadence="PAC")
		[(m.start, m.cadence) for m in analyze_phrases(chords)]
		# [(0, "HC"), (4, "PAC")]
		```
	"""

	markers: typing.List[PhraseMarker] = []
	start = 0

	for index in range(2, len(chords)):

		if index - start < 2:
			continue

		cadence = continuo.harmony.identify_cadence(chords[index - 2:index + 1])

		if cadence is not None:
			markers.append(PhraseMarker(f"phrase {len(markers) + 1}", start, index + 1 - start, cadence))
			start = index + 1

	if start < len(chords):
		markers.append(PhraseMarker(f"phrase {len(markers) + 1}", start, len(chords) - start))

	return markers


class PhraseStructure:

	"""
	Build sections as joined phrases.

	Example:
		```python
		structure = PhraseStructure(rng)
		plan = structure.build("period", 16, ("C", "major"), ("G", "major"))
		[m.name for m in plan.markers]  # ["antecedent", "consequent"]
		```
	"""

	def __init__ (self, rng: random.Random, check_seams: bool = True) -> None:

		self.rng = rng
		self.check_seams = check_seams


	def _join (self, first: Chords, make_second: typing.Callable[[], Chords]) -> Chords:

		"""Generate the phrase after ``first``, retrying while the seam is awkward."""

		second = make_second()

		if not self.check_seams or not first or not second:
			return second

		attempt = 1

		while is_awkward_transition(first[-1], second[0]) and attempt < MAX_SEAM_ATTEMPTS:
			logger.debug(f"Awkward seam {first[-1].label()} -> {second[0].label()}; regenerating")
			second = make_second()
			attempt += 1

		return second


	def _cadence (self, key: Key, position: str) -> typing.Tuple[str, Chords]:

		cadence_type = continuo.harmony.select_cadence(key[1], position, self.rng)

		return cadence_type, continuo.harmony.cadence_chords(key[0], key[1], cadence_type)


	def _after_tonic (self, key: Key, length: int) -> Chords:

		"""A walk of ``length`` chords that does not restate the opening tonic."""

		if length <= 0:
			return []

		return continuo.harmony.walk(key[0], length + 1, self.rng, key[1])[1:]


	def phrase (self, length: int, key: Key, position: str = "end") -> PhrasePlan:

		"""One progression with a cadence chosen for ``position``."""

		cadence_type = continuo.harmony.select_cadence(key[1], position, self.rng)
		chords = continuo.harmony.generate_progression(key[0], length, self.rng, key[1], cadence=cadence_type)

		return PhrasePlan(tuple(chords), (PhraseMarker("phrase", 0, length, cadence_type),))


	def period (self, length: int, start: Key, end: Key, position: str = "end") -> PhrasePlan:

		"""
		Antecedent to a half cadence in ``start``, consequent to an authentic cadence in ``end``.

		The consequent always closes authentically, whatever the position.
		"""

		first = length // 2
		antecedent = continuo.harmony.generate_progression(start[0], first, self.rng, start[1], cadence="HC")

		chosen: typing.List[str] = []

		def consequent () -> Chords:
			cadence_type = continuo.harmony.select_cadence(end[1], "end", self.rng)
			chosen.append(cadence_type)
			return continuo.harmony.generate_progression(end[0], length - first, self.rng, end[1], cadence=cadence_type)

		second = self._join(antecedent, consequent)

		markers = (
			PhraseMarker("antecedent", 0, first, "HC"),
			PhraseMarker("consequent", first, length - first, chosen[-1]),
		)

		return PhrasePlan(tuple(antecedent + second), markers)


	def sentence (self, length: int, start: Key, end: Key, position: str = "end") -> PhrasePlan:

		"""
		Presentation (tonic and dominant in ``start``), continuation, cadential close in ``end``.

		The presentation takes a quarter of the chords (at least two) and the
		cadential phrase the last three.
		"""

		presentation_length = max(2, length // 4)
		template = PRESENTATION[start[1]]
		presentation = [
			continuo.chords.make_chord(start[0], numeral, start[1], inversion)
			for numeral, inversion in (template[i % len(template)] for i in range(presentation_length))
		]

		continuation_length = length - presentation_length - 3
		continuation = self._join(presentation, lambda: self._after_tonic(end, continuation_length))

		cadence_type, cadential = self._cadence(end, position)
		markers = [PhraseMarker("presentation", 0, presentation_length)]

		if continuation_length > 0:
			markers.append(PhraseMarker("continuation", presentation_length, continuation_length))

		markers.append(PhraseMarker("cadential", length - 3, 3, cadence_type))

		return PhrasePlan(tuple(presentation + continuation + cadential), tuple(markers))


	def binary (self, length: int, start: Key, end: Key, position: str = "end") -> PhrasePlan:

		"""
		A closes with a perfect cadence in the secondary key (dominant, or the
		relative major in minor); B leads from there back to ``end``.
		"""

		relation = "dominant" if start[1] == "major" else "relative"
		secondary = continuo.modulation.related_key(start[0], start[1], relation)

		first = length // 2
		part_a = continuo.harmony.walk(start[0], first - 3, self.rng, start[1])
		part_a += continuo.harmony.cadence_chords(secondary[0], secondary[1], "PAC")

		part_b = self._join(part_a, lambda: self._after_tonic(secondary, length - first - 3))
		cadence_type, close = self._cadence(end, position)

		markers = (
			PhraseMarker("A", 0, first, "PAC"),
			PhraseMarker("B", first, length - first, cadence_type),
		)

		return PhrasePlan(tuple(part_a + part_b + close), markers)


	def ternary (self, length: int, start: Key, end: Key, position: str = "end") -> PhrasePlan:

		"""
		A in ``start``, a contrasting B in the relative key, then A again.

		The return is the opening phrase verbatim when the section ends where it
		began, otherwise a fresh phrase closing in ``end``.
		"""

		outer = length // 3
		middle = length - 2 * outer
		relative = continuo.modulation.related_key(start[0], start[1], "relative")

		part_a = self.phrase(outer, start, "end")
		part_b = self._join(
			list(part_a.chords),
			lambda: continuo.harmony.generate_progression(relative[0], middle, self.rng, relative[1], position="middle")
		)

		if start == end:
			reprise = part_a
		else:
			reprise = self.phrase(outer, end, position)

		middle_cadence = continuo.harmony.identify_cadence(part_b)

		markers = (
			PhraseMarker("A", 0, outer, part_a.markers[0].cadence),
			PhraseMarker("B", outer, middle, middle_cadence),
			PhraseMarker("A'", outer + middle, outer, reprise.markers[0].cadence),
		)

		return PhrasePlan(part_a.chords + tuple(part_b) + reprise.chords, markers)


	def build (self, shape: str, length: int, start: Key, end: Key, position: str = "end") -> PhrasePlan:

		"""
		Realize a section of ``length`` chords in the named shape.

		Sections too short for their shape become a single phrase in the end key.

		Raises:
			ValueError: For an unknown shape.
		"""

		if shape not in MIN_LENGTHS:
			raise ValueError(f"Unknown phrase shape '{shape}'. Available: {sorted(MIN_LENGTHS)}")

		if length < MIN_LENGTHS[shape]:
			logger.debug(f"{length} chords is too short for a {shape}; using one phrase")
			return self.phrase(length, end, position)

		builder: typing.Callable[[int, Key, Key, str], PhrasePlan] = getattr(self, shape)

		return builder(length, start, end, position)
