"""Pitch arithmetic backed by music21.

Pitches are strings of letter, accidental and octave (``"C#4"``, ``"Bb3"``);
pitch classes drop the octave (``"F#"``). Flats use ``b`` on the way in and out
and are translated to music21's ``-`` at this boundary only.

Lookups that can fail (an unknown chord symbol, a scale name music21 does not
know) return a :class:`Lookup` instead of raising, so callers can substitute
their own table without wrapping every call in ``try``. Plain conversions
(``midi_number``, ``pitch_class``) raise ``ValueError`` on malformed input.

Example:
	```python
	import continuo.pitch_oracle as oracle

	oracle.midi_number("C4")                        # 60
	oracle.transpose("D4", "P5").value              # "A4"
	oracle.chord_tones("G7").value                  # ("G", "B", "D", "F")
	oracle.roman_to_chord_symbol("A", "vii°", "minor").value  # "G#dim"
	```
"""

import dataclasses
import functools
import logging
import re
import typing

import music21.exceptions21
import music21.interval
import music21.key
import music21.pitch
import music21.roman
import music21.scale


logger = logging.getLogger(__name__)

ValueType = typing.TypeVar("ValueType")

PITCH_PATTERN = re.compile(r"^([A-Ga-g])(#{1,2}|b{1,2})?(-?\d+)?$")
SYMBOL_PATTERN = re.compile(r"^([A-G](?:#{1,2}|b{1,2})?)(.*)$")

# Interval names stacked on a chord root, by chord-symbol suffix.
SUFFIX_INTERVALS: typing.Dict[str, typing.Tuple[str, ...]] = {
	"": ("P1", "M3", "P5"),
	"m": ("P1", "m3", "P5"),
	"dim": ("P1", "m3", "d5"),
	"+": ("P1", "M3", "A5"),
	"7": ("P1", "M3", "P5", "m7"),
	"maj7": ("P1", "M3", "P5", "M7"),
	"m7": ("P1", "m3", "P5", "m7"),
	"m7b5": ("P1", "m3", "d5", "m7"),
	"dim7": ("P1", "m3", "d5", "d7"),
}

# Semitones above the root (third, fifth[, seventh]) to chord-symbol suffix.
SHAPE_SUFFIX: typing.Dict[typing.Tuple[int, ...], str] = {
	(4, 7): "",
	(3, 7): "m",
	(3, 6): "dim",
	(4, 8): "+",
	(4, 7, 10): "7",
	(4, 7, 11): "maj7",
	(3, 7, 10): "m7",
	(3, 6, 10): "m7b5",
	(3, 6, 9): "dim7",
}

SCALE_TYPES = ("major", "minor", "harmonic minor", "melodic minor")

_ORACLE_ERRORS = (music21.exceptions21.Music21Exception, ValueError, KeyError, TypeError, AttributeError)


@dataclasses.dataclass(frozen=True)
class Lookup (typing.Generic[ValueType]):

	"""
	The outcome of an oracle call that may fail.

	Attributes:
		ok: True if ``value`` holds a result.
		value: The result, or ``None`` on failure.
		error: A description of the failure, or ``None`` on success.
	"""

	ok: bool
	value: typing.Optional[ValueType] = None
	error: typing.Optional[str] = None

	@classmethod
	def success (cls, value: ValueType) -> "Lookup[ValueType]":

		"""Wrap a successful result."""

		return cls(ok=True, value=value)

	@classmethod
	def failure (cls, error: str) -> "Lookup[ValueType]":

		"""Describe a failed lookup."""

		return cls(ok=False, error=error)

	def value_or (self, default: ValueType) -> ValueType:

		"""Return the value, or ``default`` when the lookup failed."""

		if self.ok and self.value is not None:
			return self.value

		return default


def _parse (pitch: str) -> typing.Tuple[str, str, typing.Optional[int]]:

	"""Split a pitch string into letter, accidental and optional octave."""

	match = PITCH_PATTERN.match(pitch.strip()) if isinstance(pitch, str) else None

	if match is None:
		raise ValueError(f"Unknown pitch: {pitch!r}")

	letter, accidental, octave = match.groups()

	return letter.upper(), accidental or "", int(octave) if octave is not None else None


def _to_music21 (pitch: str) -> str:

	letter, accidental, octave = _parse(pitch)

	name = letter + accidental.replace("b", "-")

	return name if octave is None else f"{name}{octave}"


def _from_music21 (name: str) -> str:

	return name.replace("-", "b")


def _interval_name (interval: str) -> str:

	"""Translate ``"-m3"`` to music21's descending form ``"m-3"``."""

	if interval.startswith("-"):
		return f"{interval[1]}-{interval[2:]}"

	return interval


@functools.lru_cache(maxsize=4096)
def midi_number (pitch: str) -> int:

	"""Return the MIDI note number of a pitch with octave (``"C4"`` -> 60)."""

	_, _, octave = _parse(pitch)

	if octave is None:
		raise ValueError(f"Pitch has no octave: {pitch!r}")

	return int(music21.pitch.Pitch(_to_music21(pitch)).midi)


@functools.lru_cache(maxsize=4096)
def pitch_class (pitch: str) -> str:

	"""Return the letter and accidental of a pitch (``"Bb3"`` -> ``"Bb"``)."""

	letter, accidental, _ = _parse(pitch)

	return letter + accidental


def octave (pitch: str) -> int:

	"""Return the octave number of a pitch (``"Bb3"`` -> 3)."""

	_, _, value = _parse(pitch)

	if value is None:
		raise ValueError(f"Pitch has no octave: {pitch!r}")

	return value


@functools.lru_cache(maxsize=1024)
def pitch_class_number (name: str) -> int:

	"""Return the pitch class 0-11 of a pitch or pitch-class name."""

	letter, accidental, _ = _parse(name)

	return int(music21.pitch.Pitch(_to_music21(letter + accidental)).pitchClass)


def from_midi (midi: int) -> str:

	"""Return music21's default spelling of a MIDI note number (``61`` -> ``"C#4"``)."""

	p = music21.pitch.Pitch()
	p.midi = midi

	return _from_music21(p.nameWithOctave)


def spell (midi: int, names: typing.Sequence[str]) -> str:

	"""
	Spell a MIDI note using the first matching pitch-class name.

	Used to keep scale spellings (``"Bb"`` rather than ``"A#"``) when pitches
	are computed as numbers. Falls back to :func:`from_midi`.
	"""

	for name in names:

		if pitch_class_number(name) != midi % 12:
			continue

		guess = midi // 12 - 1

		for candidate in (guess, guess - 1, guess + 1):
			if midi_number(f"{name}{candidate}") == midi:
				return f"{name}{candidate}"

	return from_midi(midi)


def transpose (pitch: str, interval: str) -> Lookup[str]:

	"""
	Transpose a pitch or pitch class by a named interval.

	Descending intervals carry a leading minus (``"-P5"``). A pitch class in
	gives a pitch class out.
	"""

	try:
		_, _, source_octave = _parse(pitch)
		result = music21.pitch.Pitch(_to_music21(pitch)).transpose(_interval_name(interval))
	except _ORACLE_ERRORS as exc:
		return Lookup.failure(f"Cannot transpose {pitch} by {interval}: {exc}")

	if source_octave is None:
		return Lookup.success(_from_music21(result.name))

	return Lookup.success(_from_music21(result.nameWithOctave))


def distance (pitch_a: str, pitch_b: str) -> str:

	"""Return the directed interval name from ``pitch_a`` to ``pitch_b`` (``"-m3"`` when descending)."""

	iv = music21.interval.Interval(
		music21.pitch.Pitch(_to_music21(pitch_a)),
		music21.pitch.Pitch(_to_music21(pitch_b))
	)

	if iv.semitones < 0:
		return f"-{iv.name}"

	return str(iv.name)


def semitones (interval: str) -> int:

	"""Return the signed semitone size of a named interval."""

	return int(music21.interval.Interval(_interval_name(interval)).semitones)


def simplify (interval: str) -> str:

	"""Reduce a compound interval to its simple form, keeping direction (``"M10"`` -> ``"M3"``)."""

	sign = "-" if interval.startswith("-") else ""
	simple = music21.interval.Interval(interval.lstrip("-")).simpleName

	return f"{sign}{simple}"


@functools.lru_cache(maxsize=256)
def scale_notes (tonic: str, scale_type: str = "major") -> Lookup[typing.Tuple[str, ...]]:

	"""
	Return the seven pitch classes of a scale starting on ``tonic``.

	Parameters:
		tonic: Pitch class of the first degree (``"D"``, ``"Bb"``).
		scale_type: One of ``"major"``, ``"minor"`` (natural), ``"harmonic minor"``
			or ``"melodic minor"`` (ascending form).
	"""

	try:
		root = _to_music21(pitch_class(tonic))

		if scale_type == "major":
			pitches = music21.scale.MajorScale(root).pitches[:7]
		elif scale_type == "minor":
			pitches = music21.scale.MinorScale(root).pitches[:7]
		elif scale_type == "harmonic minor":
			pitches = music21.scale.HarmonicMinorScale(root).pitches[:7]
		elif scale_type == "melodic minor":
			# Natural minor with the 6th and 7th raised by an augmented unison.
			natural = list(music21.scale.MinorScale(root).pitches[:7])
			pitches = natural[:5] + [p.transpose("A1") for p in natural[5:]]
		else:
			return Lookup.failure(f"Unknown scale type: {scale_type}")

	except _ORACLE_ERRORS as exc:
		return Lookup.failure(f"Scale {tonic} {scale_type} not found: {exc}")

	return Lookup.success(tuple(_from_music21(p.name) for p in pitches))


@functools.lru_cache(maxsize=512)
def chord_tones (symbol: str) -> Lookup[typing.Tuple[str, ...]]:

	"""
	Return ``(root, third, fifth[, seventh])`` pitch classes for a chord symbol.

	Symbols are a root followed by one of the suffixes in ``SUFFIX_INTERVALS``
	(``"C"``, ``"F#m"``, ``"Bdim"``, ``"G7"``, ``"C#dim7"``).
	"""

	match = SYMBOL_PATTERN.match(symbol)

	if match is None or match.group(2) not in SUFFIX_INTERVALS:
		return Lookup.failure(f"Unknown chord symbol: {symbol}")

	root, suffix = match.groups()

	try:
		root_pitch = music21.pitch.Pitch(_to_music21(root))
		tones = tuple(_from_music21(root_pitch.transpose(iv).name) for iv in SUFFIX_INTERVALS[suffix])
	except _ORACLE_ERRORS as exc:
		return Lookup.failure(f"Cannot spell {symbol}: {exc}")

	return Lookup.success(tones)


@functools.lru_cache(maxsize=512)
def roman_to_chord_symbol (key: str, numeral: str, mode: str = "major") -> Lookup[str]:

	"""
	Resolve a roman numeral in a key to a chord symbol.

	Minor keys follow harmonic-minor convention for ``V`` and ``vii°``; upper-case
	``VI`` and ``VII`` in minor are the natural-minor major triads.

	Example:
		```python
		roman_to_chord_symbol("C", "V7").value           # "G7"
		roman_to_chord_symbol("D", "ii°", "minor").value  # "Edim"
		```
	"""

	try:
		tonic = _to_music21(pitch_class(key))
		rn = music21.roman.RomanNumeral(
			numeral.replace("°", "o").replace("ø", "/o"),
			music21.key.Key(tonic if mode == "major" else tonic.lower())
		)
		root = rn.root()
		members = [rn.third, rn.fifth]

		if rn.seventh is not None:
			members.append(rn.seventh)

		shape = tuple((m.pitchClass - root.pitchClass) % 12 for m in members)

	except _ORACLE_ERRORS as exc:
		return Lookup.failure(f"Cannot resolve {numeral} in {key} {mode}: {exc}")

	if shape not in SHAPE_SUFFIX:
		return Lookup.failure(f"Unsupported chord shape {shape} for {numeral} in {key} {mode}")

	return Lookup.success(_from_music21(root.name) + SHAPE_SUFFIX[shape])
