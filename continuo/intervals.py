"""Interval classification, voice-motion analysis and fallback scale tables.

Intervals here are plain semitone counts between MIDI notes. Classification is
by interval class (mod 12), so compound intervals behave like their simple
forms: a major 9th (14) is as harsh as a major 2nd (2).
"""

import typing


SCALE_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 2, 4, 5, 7, 9, 11],
	"minor": [0, 2, 3, 5, 7, 8, 10],
	"harmonic minor": [0, 2, 3, 5, 7, 8, 11],
	"melodic minor": [0, 2, 3, 5, 7, 9, 11],
}

# Unison/octave and fifth.
PERFECT_CLASSES: typing.FrozenSet[int] = frozenset({0, 7})

# Thirds and sixths.
IMPERFECT_CLASSES: typing.FrozenSet[int] = frozenset({3, 4, 8, 9})

# Seconds, sevenths and ninths.
HARSH_CLASSES: typing.FrozenSet[int] = frozenset({1, 2, 10, 11})

# Consonances a contrapuntal line may form against another.
CONSONANT_CLASSES: typing.FrozenSet[int] = PERFECT_CLASSES | IMPERFECT_CLASSES


def interval_class (a: int, b: int) -> int:

	"""Return the simple interval class (0-11) between two MIDI notes."""

	return abs(a - b) % 12


def is_perfect (a: int, b: int) -> bool:

	"""True for unisons, fifths and octaves (including compounds)."""

	return interval_class(a, b) in PERFECT_CLASSES


def is_harsh (a: int, b: int) -> bool:

	"""True for minor/major 2nds, 7ths and 9ths."""

	return interval_class(a, b) in HARSH_CLASSES


def is_consonant (a: int, b: int) -> bool:

	"""True for perfect and imperfect consonances."""

	return interval_class(a, b) in CONSONANT_CLASSES


def analyze_motion (
	from_a: int,
	to_a: int,
	from_b: int,
	to_b: int
) -> str:

	"""
	Classify the motion between two voices moving from one sonority to the next.

	Returns:
		``"static"`` when neither voice moves, ``"oblique"`` when only one moves,
		``"contrary"`` for opposite directions, ``"parallel"`` when both move the
		same way by the same distance, otherwise ``"similar"``.
	"""

	move_a = to_a - from_a
	move_b = to_b - from_b

	if move_a == 0 and move_b == 0:
		return "static"

	if move_a == 0 or move_b == 0:
		return "oblique"

	if (move_a > 0) != (move_b > 0):
		return "contrary"

	if move_a == move_b:
		return "parallel"

	return "similar"


def is_parallel_perfect (
	from_a: int,
	to_a: int,
	from_b: int,
	to_b: int
) -> bool:

	"""
	True when two voices move in the same direction from one perfect
	consonance to another (consecutive fifths or octaves, compounds included).
	"""

	if analyze_motion(from_a, to_a, from_b, to_b) not in ("parallel", "similar"):
		return False

	return is_perfect(from_a, from_b) and is_perfect(to_a, to_b)


def is_hidden_perfect (
	from_a: int,
	to_a: int,
	from_b: int,
	to_b: int
) -> bool:

	"""True when two voices reach a perfect consonance by similar motion from an imperfect one."""

	if analyze_motion(from_a, to_a, from_b, to_b) not in ("parallel", "similar"):
		return False

	return not is_perfect(from_a, from_b) and is_perfect(to_a, to_b)


def scale_pitch_classes (tonic_pc: int, scale_type: str = "major") -> typing.List[int]:

	"""
	Return the pitch classes (0-11) of a scale, in degree order.

	Example:
		```python
		scale_pitch_classes(9, "harmonic minor")  # [9, 11, 0, 2, 4, 5, 8]
		```
	"""

	if scale_type not in SCALE_INTERVALS:
		raise ValueError(f"Unknown scale type '{scale_type}'. Available: {sorted(SCALE_INTERVALS)}")

	return [(tonic_pc + i) % 12 for i in SCALE_INTERVALS[scale_type]]
