"""Musical forms as ordered sections.

A form maps to a list of :class:`Section` blocks. Fixed forms (Chorale,
Prelude, Gigue) scale their template to the requested number of measures;
extended forms (Ritornello, Variations, Suite) repeat their section cycle
until the piece is long enough. The Fugue template names its stages.

Each section's ``type`` names the phrase shape the planner realizes it with,
and ``key_change`` is a degree descriptor (``"I-V"``, ``"V-vi"``,
``"modulating"``) read by :mod:`continuo.modulation`.
"""

import dataclasses
import logging
import typing


logger = logging.getLogger(__name__)

MIN_SECTION_BARS = 2


@dataclasses.dataclass(frozen=True)
class Section:

	"""
	One block of a form.

	Attributes:
		name: Display name (``"A"``, ``"Exposition"``, ``"Sarabande"``).
		type: Realization shape (``"period"``, ``"sentence"``, ``"binary"``,
			``"ternary"``, ``"variation"``) or a fugue stage type.
		bars: Length in measures.
		key_change: Degree descriptor for the key plan.
	"""

	name: str
	type: str
	bars: int
	key_change: str

	def __post_init__ (self) -> None:

		"""Reject empty sections."""

		if self.bars <= 0:
			raise ValueError(f"Section {self.name} must have at least one bar")


FIXED_FORMS: typing.Dict[str, typing.List[Section]] = {
	"Chorale": [
		Section("A", "period", 8, "I-V"),
		Section("A", "period", 8, "I-V"),
		Section("B", "period", 8, "V-I"),
		Section("B", "period", 8, "V-I"),
	],
	"Prelude": [
		Section("Exposition", "sentence", 8, "I-V"),
		Section("Development", "sentence", 12, "V-vi"),
		Section("Recapitulation", "sentence", 8, "vi-I"),
	],
	"Gigue": [
		Section("A", "period", 8, "I-V"),
		Section("B", "period", 8, "V-I"),
	],
}

FUGUE_STAGES: typing.List[Section] = [
	Section("Exposition", "exposition", 8, "I-I"),
	Section("Episode 1", "episode", 4, "I-I"),
	Section("Middle Entries", "middle_entries", 4, "vi-vi"),
	Section("Episode 2", "episode", 4, "I-I"),
	Section("Stretto", "stretto", 4, "I-I"),
	Section("Final Entry", "final_entry", 4, "I-I"),
]

DEFAULT_FORM = "Chorale"
EXTENDED_FORMS: typing.Tuple[str, ...] = ("Ritornello", "Variations", "Suite")
FORM_NAMES: typing.Tuple[str, ...] = tuple(FIXED_FORMS) + EXTENDED_FORMS + ("Fugue",)

SUITE_DANCES: typing.Tuple[str, ...] = ("Allemande", "Courante", "Sarabande", "Gigue")

# Extended forms use full-size blocks from this length up.
EXTENDED_CYCLE_BARS = 16


def scale_template (template: typing.Sequence[Section], measures: int) -> typing.List[Section]:

	"""
	Fit a template to ``measures`` bars, keeping proportions.

	Every section keeps at least ``MIN_SECTION_BARS`` bars. When there is no
	room for all of them the middle sections are dropped, keeping the opening
	and the closing section; a single remaining section stays in the tonic.
	"""

	count = min(len(template), max(1, measures // MIN_SECTION_BARS))

	if count == 1:
		first = template[0]
		return [Section(first.name, first.type, max(1, measures), "I-I")]

	chosen = list(template[:count - 1]) + [template[-1]]
	total = sum(section.bars for section in chosen)
	bars = [max(MIN_SECTION_BARS, measures * section.bars // total) for section in chosen]

	while sum(bars) > measures:
		largest = max(range(len(bars)), key=lambda i: (bars[i], i))
		bars[largest] -= 1

	bars[-1] += measures - sum(bars)

	return [dataclasses.replace(section, bars=length) for section, length in zip(chosen, bars)]


def _block (bars: int, measures: int) -> int:

	"""Shrink a full-size block in proportion for pieces shorter than one cycle."""

	if measures >= EXTENDED_CYCLE_BARS:
		return bars

	return max(MIN_SECTION_BARS, bars * measures // EXTENDED_CYCLE_BARS)


def _extended_sections (form: str, measures: int) -> typing.List[Section]:

	"""
	Repeat a form's section cycle until it covers ``measures`` bars.

	Below one full cycle the blocks shrink, so a short request gets a short piece.
	"""

	sections: typing.List[Section] = []
	tutti = _block(4, measures)
	solo = _block(8, measures)
	movement = _block(16, measures)

	def total () -> int:
		return sum(section.bars for section in sections)

	if form == "Ritornello":

		sections.append(Section("Tutti 1", "period", tutti, "I-I"))
		count = 0

		while total() < measures:
			count += 1
			sections.append(Section(f"Solo {count}", "sentence", solo, "modulating"))
			sections.append(Section(f"Tutti {count + 1}", "period", tutti, "I-I"))

	elif form == "Variations":

		sections.append(Section("Theme", "ternary", movement, "I-I"))
		variation = 0

		while total() < measures:
			variation += 1
			sections.append(Section(f"Variation {variation}", "variation", movement, "I-I"))

	elif form == "Suite":

		index = 0

		while index == 0 or total() < measures:
			dance = SUITE_DANCES[index % len(SUITE_DANCES)]
			cycle = index // len(SUITE_DANCES)
			name = dance if cycle == 0 else f"{dance} {cycle + 1}"
			sections.append(Section(name, "binary", movement, "I-V-I"))
			index += 1

	else:
		raise ValueError(f"Unknown extended form: {form}")

	return sections


def sections_for (form: str, measures: int) -> typing.List[Section]:

	"""
	Return the sections of a form for a piece of ``measures`` bars.

	Raises:
		ValueError: For an unknown form name.

	Example:
		```python
		[s.name for s in sections_for("Prelude", 28)]
		# ["Exposition", "Development", "Recapitulation"]
		[s.bars for s in sections_for("Chorale", 2)]
		# [2]
		```
	"""

	if form == "Fugue":
		sections = list(FUGUE_STAGES)
	elif form in FIXED_FORMS:
		sections = scale_template(FIXED_FORMS[form], measures)
	elif form in EXTENDED_FORMS:
		sections = _extended_sections(form, measures)
	else:
		raise ValueError(f"Unknown form '{form}'. Available: {list(FORM_NAMES)}")

	logger.debug(f"Form {form}: {[(s.name, s.bars) for s in sections]}")

	return sections
