"""Functional harmony generation.

Progressions walk between three harmonic functions (tonic, subdominant and
dominant) using a fixed transition table, pick a numeral from the function's
weight table, and bias root motion toward strong intervals. The last three
chords of every progression are a cadence template.

Example:
	```python
	import random
	import continuo.harmony

	rng = random.Random("seed")
	chords = continuo.harmony.generate_progression("C", 8, rng)
	continuo.harmony.format_progression(chords)  # e.g. "I - IV - ii6 - V - I - I6/4 - V - I"
	```
"""

import enum
import logging
import random
import typing

import continuo.chords
import continuo.markov_chain


logger = logging.getLogger(__name__)


class Function (enum.Enum):

	"""Harmonic function of a chord."""

	TONIC = "tonic"
	SUBDOMINANT = "subdominant"
	DOMINANT = "dominant"


WEIGHT_STRONG = 6
WEIGHT_MEDIUM = 4
WEIGHT_COMMON = 3
WEIGHT_WEAK = 1

FUNCTION_NUMERALS: typing.Dict[str, typing.Dict[Function, typing.List[typing.Tuple[str, float]]]] = {
	"major": {
		Function.TONIC: [("I", WEIGHT_STRONG), ("vi", WEIGHT_COMMON), ("iii", WEIGHT_WEAK)],
		Function.SUBDOMINANT: [("IV", WEIGHT_STRONG), ("ii", WEIGHT_MEDIUM), ("ii7", WEIGHT_WEAK)],
		Function.DOMINANT: [("V", WEIGHT_STRONG), ("V7", WEIGHT_MEDIUM), ("vii°", 2), ("vii°7", WEIGHT_WEAK)],
	},
	# Harmonic minor: raised 7th in V, V7 and vii°.
	"minor": {
		Function.TONIC: [("i", WEIGHT_STRONG), ("VI", WEIGHT_COMMON), ("III", WEIGHT_WEAK)],
		Function.SUBDOMINANT: [("iv", WEIGHT_STRONG), ("ii°", WEIGHT_COMMON), ("iiø7", WEIGHT_WEAK)],
		Function.DOMINANT: [("V", WEIGHT_STRONG), ("V7", WEIGHT_MEDIUM), ("vii°", 2), ("vii°7", WEIGHT_WEAK)],
	},
}

# Used instead of the tonic table when a dominant resolves.
RESOLUTION_NUMERALS: typing.Dict[str, typing.List[typing.Tuple[str, float]]] = {
	"major": [("I", 8), ("vi", WEIGHT_WEAK)],
	"minor": [("i", 8), ("VI", WEIGHT_WEAK)],
}

FUNCTION_TRANSITIONS: typing.Dict[Function, typing.List[typing.Tuple[Function, float]]] = {
	Function.TONIC: [(Function.TONIC, 0.25), (Function.SUBDOMINANT, 0.45), (Function.DOMINANT, 0.30)],
	Function.SUBDOMINANT: [(Function.TONIC, 0.10), (Function.SUBDOMINANT, 0.20), (Function.DOMINANT, 0.70)],
	Function.DOMINANT: [(Function.TONIC, 0.85), (Function.SUBDOMINANT, 0.05), (Function.DOMINANT, 0.10)],
}

# Acceptance probability by root interval in semitones (mod 12).
ROOT_MOTION_QUALITY: typing.Dict[int, float] = {
	0: 0.3,
	1: 0.4,
	2: 0.7,
	3: 0.6,
	4: 0.6,
	5: 1.0,
	6: 0.1,
	7: 1.0,
	8: 0.6,
	9: 0.6,
	10: 0.7,
	11: 0.4,
}

FREE_MOTION_PROBABILITY = 0.2
ROOT_MOTION_ATTEMPTS = 3

INVERSION_WEIGHTS: typing.List[typing.Tuple[int, float]] = [(0, 0.50), (1, 0.35), (2, 0.15)]
SECOND_INVERSION_NUMERALS: typing.FrozenSet[str] = frozenset({"V", "V7", "IV", "iv"})

TONIC_NUMERAL: typing.Dict[str, str] = {"major": "I", "minor": "i"}

CadenceTemplate = typing.List[typing.Tuple[str, int]]

CADENCES: typing.Dict[str, typing.Dict[str, CadenceTemplate]] = {
	"major": {
		"PAC": [("I", 2), ("V", 0), ("I", 0)],
		"IAC": [("I", 2), ("V", 0), ("I", 1)],
		"HC": [("I", 0), ("IV", 0), ("V", 0)],
		"DC": [("I", 2), ("V", 0), ("vi", 0)],
	},
	"minor": {
		"PAC": [("i", 2), ("V", 0), ("i", 0)],
		"IAC": [("i", 2), ("V", 0), ("i", 1)],
		"HC": [("i", 0), ("iv", 0), ("V", 0)],
		"DC": [("i", 2), ("V", 0), ("VI", 0)],
		# Phrygian half cadence.
		"PC": [("i", 0), ("iv", 1), ("V", 0)],
	},
}

AUTHENTIC_CADENCES: typing.Tuple[str, ...] = ("PAC", "IAC")

CADENCE_WEIGHTS: typing.Dict[str, typing.Dict[str, typing.List[typing.Tuple[str, float]]]] = {
	"major": {
		"beginning": [("PAC", 1)],
		"middle": [("HC", 6), ("DC", 3), ("IAC", 1)],
		"end": [("PAC", 7), ("IAC", 3)],
	},
	"minor": {
		"beginning": [("PAC", 1)],
		"middle": [("HC", 5), ("DC", 3), ("PC", 2), ("IAC", 1)],
		"end": [("PAC", 7), ("IAC", 3)],
	},
}

SEQUENCES: typing.Dict[str, typing.Dict[str, typing.List[str]]] = {
	"descending_fifths": {
		"major": ["I", "IV", "vii°", "iii", "vi", "ii", "V", "I"],
		"minor": ["i", "iv", "VII", "III", "VI", "ii°", "V", "i"],
	},
	"romanesca": {
		"major": ["I", "V", "vi", "iii", "IV", "I", "IV", "V"],
		"minor": ["i", "v", "VI", "III", "iv", "i", "iv", "V"],
	},
	"ascending_5_6": {
		"major": ["I", "vi", "ii", "vii°", "iii", "I", "IV", "V"],
		"minor": ["i", "VI", "iv", "ii°", "V", "i", "iv", "V"],
	},
}

FINAL_CADENCES: typing.Dict[str, typing.Dict[str, CadenceTemplate]] = {
	"major": {
		"plain": [("IV", 0), ("V", 0), ("I", 0)],
		"cadential_64": [("IV", 0), ("I", 2), ("V", 0), ("I", 0)],
	},
	"minor": {
		"plain": [("iv", 0), ("V", 0), ("i", 0)],
		"cadential_64": [("iv", 0), ("i", 2), ("V", 0), ("i", 0)],
	},
}


def _check_mode (mode: str) -> None:

	if mode not in CADENCES:
		raise ValueError(f"Unknown mode: {mode}")


def _realize (key: str, mode: str, template: CadenceTemplate) -> typing.List[continuo.chords.Chord]:

	return [continuo.chords.make_chord(key, numeral, mode, inversion) for numeral, inversion in template]


def select_cadence (mode: str, position: str, rng: random.Random) -> str:

	"""
	Pick a cadence type for a phrase ending.

	Parameters:
		mode: ``"major"`` or ``"minor"``.
		position: ``"beginning"``, ``"middle"`` or ``"end"``. Middle phrases may
			close on a half or deceptive cadence; ``"end"`` only ever returns an
			authentic cadence (``"PAC"`` or ``"IAC"``).
		rng: Random stream.

	Raises:
		ValueError: For an unknown mode or position.
	"""

	_check_mode(mode)

	if position not in CADENCE_WEIGHTS[mode]:
		raise ValueError(f"Unknown cadence position: {position}")

	return continuo.markov_chain.choose_weighted(CADENCE_WEIGHTS[mode][position], rng)


def cadence_chords (key: str, mode: str, cadence_type: str) -> typing.List[continuo.chords.Chord]:

	"""Return the three chords of a cadence template in a key."""

	_check_mode(mode)

	if cadence_type not in CADENCES[mode]:
		raise ValueError(f"Unknown cadence type {cadence_type} for {mode}")

	return _realize(key, mode, CADENCES[mode][cadence_type])


def identify_cadence (chords: typing.Sequence[continuo.chords.Chord]) -> typing.Optional[str]:

	"""
	Name the cadence template matched by the last three chords, or ``None``.
	"""

	if len(chords) < 3:
		return None

	tail = [(chord.numeral, chord.inversion) for chord in chords[-3:]]
	mode = chords[-1].mode

	for cadence_type, template in CADENCES[mode].items():
		if tail == template:
			return cadence_type

	return None


def root_motion_quality (from_numeral: str, to_numeral: str, mode: str) -> float:

	"""
	Score the root movement between two numerals (1.0 = fourth/fifth, 0.1 = tritone).
	"""

	start = continuo.chords.numeral_root_offset(from_numeral, mode)
	end = continuo.chords.numeral_root_offset(to_numeral, mode)

	return ROOT_MOTION_QUALITY[(end - start) % 12]


def _choose_numeral (
	previous: str,
	table: typing.List[typing.Tuple[str, float]],
	mode: str,
	rng: random.Random
) -> str:

	"""Sample a numeral, retrying weak root motion a few times before accepting."""

	candidate = continuo.markov_chain.choose_weighted(table, rng)

	for attempt in range(ROOT_MOTION_ATTEMPTS):

		if attempt > 0:
			candidate = continuo.markov_chain.choose_weighted(table, rng)

		if rng.random() < FREE_MOTION_PROBABILITY:
			return candidate

		if rng.random() < root_motion_quality(previous, candidate, mode):
			return candidate

	return candidate


def _choose_inversion (numeral: str, rng: random.Random) -> int:

	inversion = continuo.markov_chain.choose_weighted(INVERSION_WEIGHTS, rng)

	if inversion == 2 and numeral not in SECOND_INVERSION_NUMERALS:
		return 0

	return inversion


def walk (key: str, length: int, rng: random.Random, mode: str = "major") -> typing.List[continuo.chords.Chord]:

	"""
	Walk the function chain for ``length`` chords, starting on the tonic in root position.

	No cadence is applied; see :func:`generate_progression`.
	"""

	_check_mode(mode)

	if length <= 0:
		return []

	chain = continuo.markov_chain.MarkovChain(FUNCTION_TRANSITIONS, Function.TONIC, rng)
	current = continuo.chords.make_chord(key, TONIC_NUMERAL[mode], mode, 0)
	result = [current]

	while len(result) < length:

		source = chain.state
		target = chain.step()

		if source == Function.DOMINANT and target == Function.TONIC:
			table = RESOLUTION_NUMERALS[mode]
		else:
			table = FUNCTION_NUMERALS[mode][target]

		numeral = _choose_numeral(current.numeral, table, mode, rng)
		current = continuo.chords.make_chord(key, numeral, mode, _choose_inversion(numeral, rng))
		result.append(current)

	return result


def generate_progression (
	key: str,
	length: int,
	rng: random.Random,
	mode: str = "major",
	cadence: typing.Optional[str] = None,
	position: str = "end"
) -> typing.List[continuo.chords.Chord]:

	"""
	Generate a functional progression ending in a cadence.

	Parameters:
		key: Tonic pitch class.
		length: Number of chords (at least 3).
		rng: Random stream.
		mode: ``"major"`` or ``"minor"``.
		cadence: Explicit cadence type (``"PAC"``, ``"IAC"``, ``"HC"``, ``"DC"``,
			minor ``"PC"``); chosen with :func:`select_cadence` when omitted.
		position: Phrase position passed to :func:`select_cadence`.

	Returns:
		``length`` chords whose last three are the cadence template.

	Raises:
		ValueError: If ``length`` is below 3 or the mode/cadence is unknown.
	"""

	if length < 3:
		raise ValueError(f"A progression needs at least 3 chords for its cadence, got {length}")

	chords = walk(key, length, rng, mode)
	cadence_type = cadence or select_cadence(mode, position, rng)

	logger.debug(f"Cadence {cadence_type} ({position}) in {key} {mode}")

	return chords[:-3] + cadence_chords(key, mode, cadence_type)


def generate_sequence (
	key: str,
	mode: str = "major",
	sequence_type: str = "descending_fifths",
	length: typing.Optional[int] = None
) -> typing.List[continuo.chords.Chord]:

	"""
	Return a fixed harmonic sequence for episodic material.

	The pattern repeats or truncates to ``length`` chords. Minor keys use the
	natural-minor ``VII`` and ``III`` where the major pattern has ``vii°`` and ``iii``.

	Raises:
		ValueError: For an unknown sequence type.
	"""

	_check_mode(mode)

	if sequence_type not in SEQUENCES:
		raise ValueError(f"Unknown sequence type '{sequence_type}'. Available: {sorted(SEQUENCES)}")

	pattern = SEQUENCES[sequence_type][mode]
	count = length if length is not None else len(pattern)

	return [continuo.chords.make_chord(key, pattern[i % len(pattern)], mode, 0) for i in range(count)]


def get_final_cadence (
	key: str,
	mode: str = "major",
	rng: typing.Optional[random.Random] = None,
	variant: typing.Optional[str] = None
) -> typing.List[continuo.chords.Chord]:

	"""
	Return an unconditional IV-V-I close in ``key``.

	``variant`` is ``"plain"`` (IV-V-I) or ``"cadential_64"`` (IV-I6/4-V-I). When
	omitted, ``rng`` picks one; without ``rng`` the plain form is used.
	"""

	_check_mode(mode)

	if variant is None:
		variant = "cadential_64" if rng is not None and rng.random() < 0.5 else "plain"

	if variant not in FINAL_CADENCES[mode]:
		raise ValueError(f"Unknown final cadence variant: {variant}")

	return _realize(key, mode, FINAL_CADENCES[mode][variant])


def format_progression (chords: typing.Sequence[continuo.chords.Chord]) -> str:

	"""Join chord labels with figured-bass inversions (``"I - IV6 - V - I"``)."""

	return " - ".join(chord.label() for chord in chords)
