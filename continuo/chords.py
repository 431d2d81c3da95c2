"""Chord value type, roman-numeral parsing and the fallback chord table.

A :class:`Chord` is a numeral resolved in a key: it keeps the numeral label
for analysis (``"V7"``, ``"vii°"``), the resolved chord symbol (``"G7"``), the
inversion, and the chord tones spelled as pitch classes.

Chord tones come from the pitch oracle. When the oracle cannot resolve a
numeral, :func:`fallback_tones` builds the chord from semitone tables so
generation continues with the same seed-determined result.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME` / `PC_TO_FLAT_NAME`: Maps pitch classes to sharp or flat spellings
- `CHORD_INTERVALS`: Maps chord quality names to interval lists (semitones from root)
- `CHORD_SUFFIX`: Maps chord quality names to chord-symbol suffixes
"""

import dataclasses
import logging
import re
import typing

import continuo.intervals
import continuo.pitch_oracle


logger = logging.getLogger(__name__)


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

PC_TO_FLAT_NAME: typing.List[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

CHORD_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 4, 7],
	"minor": [0, 3, 7],
	"diminished": [0, 3, 6],
	"augmented": [0, 4, 8],
	"dominant_7th": [0, 4, 7, 10],
	"major_7th": [0, 4, 7, 11],
	"minor_7th": [0, 3, 7, 10],
	"half_diminished_7th": [0, 3, 6, 10],
	"diminished_7th": [0, 3, 6, 9],
}

CHORD_SUFFIX: typing.Dict[str, str] = {
	"major": "",
	"minor": "m",
	"diminished": "dim",
	"augmented": "+",
	"dominant_7th": "7",
	"major_7th": "maj7",
	"minor_7th": "m7",
	"half_diminished_7th": "m7b5",
	"diminished_7th": "dim7",
}

NUMERAL_PATTERN = re.compile(r"^(VII|VI|IV|V|III|II|I|vii|vi|iv|v|iii|ii|i)(°|ø|\+)?(7)?$")

NUMERAL_DEGREES: typing.Dict[str, int] = {
	"i": 0,
	"ii": 1,
	"iii": 2,
	"iv": 3,
	"v": 4,
	"vi": 5,
	"vii": 6,
}

# Keys written with flats; every other key spells accidentals as sharps.
FLAT_KEYS: typing.FrozenSet[str] = frozenset({"F", "Bb", "Eb", "Ab", "Db", "Gb", "Cb"})
FLAT_MINOR_KEYS: typing.FrozenSet[str] = frozenset({"D", "G", "C", "F", "Bb", "Eb", "Ab"})


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name and return its pitch class (0-11).

	Raises:
		ValueError: If the key name is not recognised.
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise ValueError(f"Unknown key name: {key_name}")

	return NOTE_NAME_TO_PC[key_name]


def uses_flats (key: str, mode: str) -> bool:

	"""True if the key signature is written with flats."""

	if mode == "minor":
		return key in FLAT_MINOR_KEYS

	return key in FLAT_KEYS


def parse_numeral (numeral: str) -> typing.Tuple[int, str]:

	"""
	Split a numeral into its scale degree (0-6) and a chord quality name.

	Raises:
		ValueError: If the numeral is not a recognised roman numeral.
	"""

	match = NUMERAL_PATTERN.match(numeral)

	if match is None:
		raise ValueError(f"Unknown numeral: {numeral}")

	roman, marker, seventh = match.groups()
	degree = NUMERAL_DEGREES[roman.lower()]
	upper = roman.isupper()

	if marker == "°":
		quality = "diminished_7th" if seventh else "diminished"
	elif marker == "ø":
		quality = "half_diminished_7th"
	elif marker == "+":
		quality = "augmented"
	elif seventh:
		if upper:
			quality = "dominant_7th" if degree == 4 else "major_7th"
		else:
			quality = "minor_7th"
	else:
		quality = "major" if upper else "minor"

	return degree, quality


def numeral_root_offset (numeral: str, mode: str) -> int:

	"""
	Semitones from the tonic to the root of a numeral.

	Minor keys raise the leading tone for dominant-function numerals (``V``,
	``vii°``) and keep the natural 7th for ``VII``.
	"""

	degree, _ = parse_numeral(numeral)

	if mode == "minor":
		scale = continuo.intervals.SCALE_INTERVALS["minor"]
		if degree == 6 and numeral.startswith("vii"):
			return continuo.intervals.SCALE_INTERVALS["harmonic minor"][6]
		return scale[degree]

	return continuo.intervals.SCALE_INTERVALS["major"][degree]


def fallback_tones (key: str, numeral: str, mode: str) -> typing.Tuple[str, typing.Tuple[str, ...]]:

	"""
	Build a chord symbol and its tones from semitone tables alone.

	Spelling follows the key signature (flats or sharps) rather than strict
	letter names, which is enough for pitch arithmetic downstream.
	"""

	tonic_pc = NOTE_NAME_TO_PC.get(key, 0)
	_, quality = parse_numeral(numeral)
	root_pc = (tonic_pc + numeral_root_offset(numeral, mode)) % 12
	names = PC_TO_FLAT_NAME if uses_flats(key, mode) else PC_TO_NOTE_NAME

	tones = tuple(names[(root_pc + i) % 12] for i in CHORD_INTERVALS[quality])

	return names[root_pc] + CHORD_SUFFIX[quality], tones


@dataclasses.dataclass(frozen=True)
class Chord:

	"""
	A roman numeral resolved in a key.

	Attributes:
		name: Chord symbol (``"G7"``, ``"F#dim"``).
		numeral: Roman numeral label (``"V7"``, ``"vii°"``).
		inversion: 0 = root position, 1 = third in bass, 2 = fifth in bass.
		key: Tonic pitch class of the key the numeral is read in.
		mode: ``"major"`` or ``"minor"``.
		tones: ``(root, third, fifth[, seventh])`` as pitch classes.
	"""

	name: str
	numeral: str
	inversion: int
	key: str
	mode: str
	tones: typing.Tuple[str, ...]

	def __post_init__ (self) -> None:

		"""Reject malformed chords at construction."""

		if self.inversion not in (0, 1, 2):
			raise ValueError(f"Inversion must be 0, 1 or 2, got {self.inversion}")

		if len(self.tones) not in (3, 4):
			raise ValueError(f"Chord {self.name} needs 3 or 4 tones, got {self.tones}")

		if self.mode not in ("major", "minor"):
			raise ValueError(f"Unknown mode: {self.mode}")

	@property
	def root (self) -> str:

		"""Root pitch class."""

		return self.tones[0]

	@property
	def third (self) -> str:

		"""Third pitch class."""

		return self.tones[1]

	@property
	def seventh (self) -> typing.Optional[str]:

		"""Seventh pitch class, or ``None`` for triads."""

		return self.tones[3] if len(self.tones) == 4 else None

	@property
	def bass (self) -> str:

		"""Pitch class the inversion puts in the bass."""

		return self.tones[self.inversion]

	@property
	def pitch_classes (self) -> typing.List[int]:

		"""Chord tones as integers 0-11."""

		return [continuo.pitch_oracle.pitch_class_number(t) for t in self.tones]

	def label (self) -> str:

		"""
		Numeral with its figured-bass inversion (``"I6"``, ``"I6/4"``, ``"V6/5"``).
		"""

		if self.seventh is not None and self.numeral.endswith("7"):
			base = self.numeral[:-1]
			return base + ("7", "6/5", "4/3")[self.inversion]

		return self.numeral + ("", "6", "6/4")[self.inversion]


def make_chord (key: str, numeral: str, mode: str = "major", inversion: int = 0) -> Chord:

	"""
	Resolve a numeral in a key to a :class:`Chord`.

	Uses the pitch oracle first and the semitone table when the oracle cannot
	resolve the numeral or spell the symbol.

	Example:
		```python
		chord = make_chord("A", "V7", "minor", inversion=1)
		chord.name   # "E7"
		chord.bass   # "G#"
		chord.label()  # "V6/5"
		```
	"""

	parse_numeral(numeral)

	symbol = continuo.pitch_oracle.roman_to_chord_symbol(key, numeral, mode)
	error = symbol.error

	if symbol.ok and symbol.value:

		tones = continuo.pitch_oracle.chord_tones(symbol.value)

		if tones.ok and tones.value:
			return Chord(name=symbol.value, numeral=numeral, inversion=inversion, key=key, mode=mode, tones=tuple(tones.value))

		error = tones.error

	logger.warning(f"Chord lookup failed ({error}); using table for {numeral} in {key} {mode}")
	name, table_tones = fallback_tones(key, numeral, mode)

	return Chord(name=name, numeral=numeral, inversion=inversion, key=key, mode=mode, tones=table_tones)


def scale_names (key: str, scale_type: str = "major") -> typing.Tuple[str, ...]:

	"""
	Pitch-class names of a scale, from the oracle or the semitone table.

	Example:
		```python
		scale_names("A", "harmonic minor")  # ("A", "B", "C", "D", "E", "F", "G#")
		```
	"""

	lookup = continuo.pitch_oracle.scale_notes(key, scale_type)

	if lookup.ok and lookup.value:
		return tuple(lookup.value)

	logger.warning(f"Scale lookup failed ({lookup.error}); using table for {key} {scale_type}")

	mode = "minor" if "minor" in scale_type else "major"
	names = PC_TO_FLAT_NAME if uses_flats(key, mode) else PC_TO_NOTE_NAME
	tonic_pc = NOTE_NAME_TO_PC.get(key, 0)

	return tuple(names[pc] for pc in continuo.intervals.scale_pitch_classes(tonic_pc, scale_type))
