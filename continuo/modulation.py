"""Key plans across a form's sections.

The :class:`Modulator` assigns each section a start and end key, moving only
to closely related keys of the home key (dominant, subdominant, relative,
supertonic) by weighted choice. A section's descriptor biases the choice
toward the degree it names, and the final section always returns home.
"""

import dataclasses
import logging
import random
import typing

import continuo.chords
import continuo.form
import continuo.markov_chain
import continuo.pitch_oracle


logger = logging.getLogger(__name__)

# Interval up from the tonic and resulting mode, per relation and source mode.
RELATIONS: typing.Dict[str, typing.Dict[str, typing.Tuple[str, str]]] = {
	"dominant": {"major": ("P5", "major"), "minor": ("P5", "minor")},
	"subdominant": {"major": ("P4", "major"), "minor": ("P4", "minor")},
	"relative": {"major": ("M6", "minor"), "minor": ("m3", "major")},
	# A minor key's supertonic is diminished, so there is no such key.
	"supertonic": {"major": ("M2", "minor")},
}

RELATION_WEIGHTS: typing.Dict[str, float] = {
	"dominant": 4,
	"subdominant": 2,
	"relative": 3,
	"supertonic": 1,
}

DEGREE_RELATIONS: typing.Dict[str, str] = {
	"V": "dominant",
	"v": "dominant",
	"IV": "subdominant",
	"iv": "subdominant",
	"vi": "relative",
	"III": "relative",
	"ii": "supertonic",
}

TARGET_BOOST = 3.0

TONIC_DEGREES: typing.FrozenSet[str] = frozenset({"I", "i"})

# Preferred spelling of each tonic pitch class, by mode.
PREFERRED_TONICS: typing.Dict[str, typing.List[str]] = {
	"major": ["C", "Db", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B"],
	"minor": ["C", "C#", "D", "Eb", "E", "F", "F#", "G", "G#", "A", "Bb", "B"],
}


@dataclasses.dataclass(frozen=True)
class KeyPlanEntry:

	"""Keys at the start and end of one section."""

	start: str
	end: str
	start_mode: str
	end_mode: str

	@property
	def modulates (self) -> bool:

		"""True if the section ends in a different key."""

		return (self.start, self.start_mode) != (self.end, self.end_mode)


def simplify_tonic (tonic: str, mode: str) -> str:

	"""Respell a tonic with the fewest accidentals for its mode (``"A#"`` major -> ``"Bb"``)."""

	return PREFERRED_TONICS[mode][continuo.pitch_oracle.pitch_class_number(tonic)]


def related_key (tonic: str, mode: str, relation: str) -> typing.Tuple[str, str]:

	"""
	Return ``(tonic, mode)`` of a related key.

	Raises:
		ValueError: If the relation does not exist from this mode.
	"""

	if relation not in RELATIONS or mode not in RELATIONS[relation]:
		raise ValueError(f"No {relation} key from {tonic} {mode}")

	interval, target_mode = RELATIONS[relation][mode]
	lookup = continuo.pitch_oracle.transpose(tonic, interval)

	if lookup.ok and lookup.value:
		target = lookup.value
	else:
		logger.warning(f"Transposition failed ({lookup.error}); using semitone table")
		pc = (continuo.chords.NOTE_NAME_TO_PC.get(tonic, 0) + abs(continuo.pitch_oracle.semitones(interval))) % 12
		target = continuo.chords.PC_TO_NOTE_NAME[pc]

	return simplify_tonic(target, target_mode), target_mode


class Modulator:

	"""
	Walk a key plan across sections.

	Example:
		```python
		sections = continuo.form.sections_for("Prelude", 28)
		plan = Modulator("C", "major", rng).plan(sections)
		[(entry.start, entry.end) for entry in plan]
		# e.g. [("C", "G"), ("G", "A"), ("A", "C")]
		```
	"""

	def __init__ (self, tonic: str, mode: str, rng: random.Random) -> None:

		"""Set the home key."""

		self.tonic = tonic
		self.mode = mode
		self.rng = rng


	def choose_relation (self, target: typing.Optional[str] = None) -> str:

		"""
		Weighted choice of a relation to the home key, boosting the one ``target`` names.
		"""

		boosted = DEGREE_RELATIONS.get(target or "")
		options = [
			(relation, weight * (TARGET_BOOST if relation == boosted else 1.0))
			for relation, weight in RELATION_WEIGHTS.items()
			if self.mode in RELATIONS[relation]
		]

		return continuo.markov_chain.choose_weighted(options, self.rng)


	def plan (self, sections: typing.Sequence[continuo.form.Section]) -> typing.List[KeyPlanEntry]:

		"""
		Assign start and end keys to every section.

		Decision path:
			- Start: home when the descriptor opens on I, else where the last section ended.
			- End: home for the final section or a descriptor closing on I; the
			  start key when the descriptor does not move; otherwise a related key.
		"""

		home = (self.tonic, self.mode)
		current = home
		entries: typing.List[KeyPlanEntry] = []

		for index, section in enumerate(sections):

			degrees = section.key_change.split("-")
			start = home if index == 0 or degrees[0] in TONIC_DEGREES else current

			if index == len(sections) - 1 or degrees[-1] in TONIC_DEGREES:
				end = home
			elif section.key_change != "modulating" and degrees[-1] == degrees[0]:
				end = start
			else:
				target = None if section.key_change == "modulating" else degrees[-1]
				end = related_key(self.tonic, self.mode, self.choose_relation(target))

			entries.append(KeyPlanEntry(start=start[0], end=end[0], start_mode=start[1], end_mode=end[1]))
			current = end

			logger.debug(f"Section {section.name}: {start[0]} {start[1]} -> {end[0]} {end[1]}")

		return entries
