import random

import pytest

import continuo.form
import continuo.modulation


@pytest.mark.parametrize("tonic,mode,relation,expected", [
	("C", "major", "dominant", ("G", "major")),
	("C", "major", "relative", ("A", "minor")),
	("C", "major", "supertonic", ("D", "minor")),
	("F", "major", "subdominant", ("Bb", "major")),
	("A", "minor", "relative", ("C", "major")),
	("D", "minor", "dominant", ("A", "minor")),
	("E", "minor", "subdominant", ("A", "minor")),
])
def test_related_key (tonic: str, mode: str, relation: str, expected: tuple) -> None:

	assert continuo.modulation.related_key(tonic, mode, relation) == expected


def test_minor_has_no_supertonic_key () -> None:

	"""The supertonic of a minor key is diminished, so it is not a key."""

	with pytest.raises(ValueError):
		continuo.modulation.related_key("A", "minor", "supertonic")


def test_simplify_tonic () -> None:

	assert continuo.modulation.simplify_tonic("A#", "major") == "Bb"
	assert continuo.modulation.simplify_tonic("Db", "minor") == "C#"
	assert continuo.modulation.simplify_tonic("G", "major") == "G"


def test_choose_relation_respects_mode () -> None:

	"""Minor keys never pick the supertonic."""

	modulator = continuo.modulation.Modulator("A", "minor", random.Random(2))
	chosen = {modulator.choose_relation() for _ in range(300)}

	assert "supertonic" not in chosen
	assert chosen <= set(continuo.modulation.RELATION_WEIGHTS)


def test_choose_relation_boosts_target () -> None:

	"""Naming a degree makes its relation the most common choice."""

	modulator = continuo.modulation.Modulator("C", "major", random.Random(3))
	chosen = [modulator.choose_relation("vi") for _ in range(600)]

	assert max(set(chosen), key=chosen.count) == "relative"


@pytest.mark.parametrize("form", ["Chorale", "Prelude", "Gigue", "Ritornello", "Suite"])
def test_plan_returns_home (form: str) -> None:

	"""Every plan starts and ends in the home key, and sections chain where they do not restart."""

	sections = continuo.form.sections_for(form, 48)
	plan = continuo.modulation.Modulator("D", "minor", random.Random(form)).plan(sections)

	assert len(plan) == len(sections)
	assert (plan[0].start, plan[0].start_mode) == ("D", "minor")
	assert (plan[-1].end, plan[-1].end_mode) == ("D", "minor")

	for section, previous, entry in zip(sections[1:], plan, plan[1:]):
		if section.key_change.split("-")[0] not in continuo.modulation.TONIC_DEGREES:
			assert (entry.start, entry.start_mode) == (previous.end, previous.end_mode)


def test_plan_moves_to_related_keys () -> None:

	"""Keys reached by modulation are all closely related to home."""

	related = {
		continuo.modulation.related_key("C", "major", relation)
		for relation in continuo.modulation.RELATION_WEIGHTS
	}

	for seed in range(20):
		plan = continuo.modulation.Modulator("C", "major", random.Random(seed)).plan(continuo.form.sections_for("Prelude", 28))
		for entry in plan[:-1]:
			assert (entry.end, entry.end_mode) in related | {("C", "major")}


def test_static_descriptors_do_not_modulate () -> None:

	"""Fugue stages name one degree each, so the plan stays put."""

	plan = continuo.modulation.Modulator("G", "major", random.Random(1)).plan(continuo.form.FUGUE_STAGES)

	assert not any(entry.modulates for entry in plan)
