"""Top-level piece generation.

:func:`generate` is the single entry point: it normalizes the caller's
options, seeds one random stream, and runs the pipeline

	form -> key plan -> phrases -> voice leading -> ornamentation -> humanization

(or the fugue generator in place of the first four steps). Every random
decision draws from that one stream, so the same options always give the same
piece.

Example:
	```python
	import continuo.planner

	result = continuo.planner.generate({"form": "Chorale", "key": "C", "duration": 2, "seed": "t1"})
	result["meta"]["progression"]   # e.g. "I - I6/4 - V - I"
	len(result["notes"])            # 16
	```
"""

import contextlib
import dataclasses
import logging
import random
import typing

import continuo.chords
import continuo.config
import continuo.constants.durations
import continuo.constants.voices
import continuo.form
import continuo.fugue
import continuo.harmony
import continuo.modulation
import continuo.notes
import continuo.ornaments
import continuo.phrases
import continuo.voicings


logger = logging.getLogger(__name__)

Note = continuo.notes.Note

DEFAULT_KEY = "C"
DEFAULT_MODE = "major"
DEFAULT_DURATION = 2
DEFAULT_SEED = "default"
DEFAULT_DENSITY = 50.0

MIN_DURATION = 2
MAX_DURATION = 64

MODES: typing.Tuple[str, ...] = ("major", "minor")

CHORDS_PER_MEASURE = int(continuo.constants.durations.BEATS_PER_MEASURE // continuo.constants.durations.CHORD_SLOT_BEATS)


class GenerationError (RuntimeError):

	"""
	An internal invariant failed while generating a piece.

	Attributes:
		stage: The pipeline stage that failed (``"harmony"``, ``"voicing"``, ...).
	"""

	def __init__ (self, stage: str, message: str) -> None:

		super().__init__(f"Generation failed during {stage}: {message}")
		self.stage = stage


@contextlib.contextmanager
def _stage (name: str) -> typing.Iterator[None]:

	"""Report any internal error raised inside the block as a :class:`GenerationError` for ``name``."""

	try:
		yield
	except GenerationError:
		raise
	except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
		raise GenerationError(name, str(exc)) from exc


@dataclasses.dataclass(frozen=True)
class Options:

	"""
	Normalized generation options.

	Attributes:
		form: A name from ``continuo.form.FORM_NAMES``.
		key: Tonic pitch class.
		mode: ``"major"`` or ``"minor"``.
		duration: Length in measures (ignored by the fugue, which has a fixed plan).
		seed: Seed for the random stream.
		ornament_density: 0-100.
	"""

	form: str = continuo.form.DEFAULT_FORM
	key: str = DEFAULT_KEY
	mode: str = DEFAULT_MODE
	duration: int = DEFAULT_DURATION
	seed: str = DEFAULT_SEED
	ornament_density: float = DEFAULT_DENSITY

	@classmethod
	def from_mapping (cls, options: typing.Optional[typing.Mapping[str, typing.Any]] = None) -> "Options":

		"""
		Read caller options, replacing anything malformed with its default.

		Never raises; every substitution is logged as a warning. Form names
		match case-insensitively, ``"f#"`` reads as ``"F#"``, durations are
		clamped to 2-64 measures and densities to 0-100. ``ornamentDensity``
		and ``ornament_density`` are both accepted.
		"""

		options = options or {}

		return cls(
			form = _normalize_form(options.get("form")),
			key = _normalize_key(options.get("key")),
			mode = _normalize_mode(options.get("mode")),
			duration = _normalize_duration(options.get("duration")),
			seed = DEFAULT_SEED if options.get("seed") is None else str(options.get("seed")),
			ornament_density = _normalize_density(options.get("ornamentDensity", options.get("ornament_density")))
		)


def _normalize_form (value: typing.Any) -> str:

	if value is None:
		return continuo.form.DEFAULT_FORM

	by_lower = {name.lower(): name for name in continuo.form.FORM_NAMES}

	if isinstance(value, str) and value.strip().lower() in by_lower:
		return by_lower[value.strip().lower()]

	logger.warning(f"Unknown form {value!r}; using {continuo.form.DEFAULT_FORM}")

	return continuo.form.DEFAULT_FORM


def _normalize_key (value: typing.Any) -> str:

	if value is None:
		return DEFAULT_KEY

	if isinstance(value, str) and value.strip():
		name = value.strip()
		name = name[0].upper() + name[1:]
		if name in continuo.chords.NOTE_NAME_TO_PC:
			return name

	logger.warning(f"Unknown key {value!r}; using {DEFAULT_KEY}")

	return DEFAULT_KEY


def _normalize_mode (value: typing.Any) -> str:

	if value is None:
		return DEFAULT_MODE

	if isinstance(value, str) and value.strip().lower() in MODES:
		return value.strip().lower()

	logger.warning(f"Unknown mode {value!r}; using {DEFAULT_MODE}")

	return DEFAULT_MODE


def _normalize_duration (value: typing.Any) -> int:

	if value is None:
		return DEFAULT_DURATION

	try:
		if isinstance(value, bool):
			raise TypeError(value)
		measures = int(value)
	except (TypeError, ValueError):
		logger.warning(f"Invalid duration {value!r}; using {DEFAULT_DURATION}")
		return DEFAULT_DURATION

	clamped = max(MIN_DURATION, min(MAX_DURATION, measures))

	if clamped != measures:
		logger.warning(f"Duration {measures} clamped to {clamped}")

	return clamped


def _normalize_density (value: typing.Any) -> float:

	if value is None:
		return DEFAULT_DENSITY

	try:
		if isinstance(value, bool):
			raise TypeError(value)
		density = float(value)
	except (TypeError, ValueError):
		logger.warning(f"Invalid ornament density {value!r}; using {DEFAULT_DENSITY}")
		return DEFAULT_DENSITY

	if density != density:
		logger.warning(f"Invalid ornament density {value!r}; using {DEFAULT_DENSITY}")
		return DEFAULT_DENSITY

	return max(0.0, min(100.0, density))


def ornament_config (config: typing.Mapping[str, typing.Any], density: float, total_measures: int) -> continuo.ornaments.OrnamentConfig:

	"""
	Build the ornament settings from the ``ornaments`` config section.

	Raises:
		ValueError: If the voice multipliers are not one per voice.
	"""

	section = config.get("ornaments", {})
	multipliers = tuple(float(m) for m in section.get("voice_multipliers", continuo.ornaments.DEFAULT_VOICE_MULTIPLIERS))

	if len(multipliers) != len(continuo.constants.voices.VOICES):
		raise ValueError(f"Expected {len(continuo.constants.voices.VOICES)} voice multipliers, got {len(multipliers)}")

	probabilities = dict(continuo.ornaments.DEFAULT_PROBABILITIES)
	probabilities.update(section.get("probabilities", {}))

	return continuo.ornaments.OrnamentConfig(
		base_density = density / 100.0,
		voice_multipliers = multipliers,
		total_measures = total_measures,
		cadence_measures = int(section.get("cadence_measures", continuo.ornaments.DEFAULT_CADENCE_MEASURES)),
		probabilities = probabilities
	)


def validate_notes (notes: typing.Sequence[Note]) -> None:

	"""
	Check the finished note list.

	Raises:
		GenerationError: If a note lies outside its voice's range or two notes
			in one voice overlap.
	"""

	for note in notes:
		if not continuo.constants.voices.in_range(note.voice, note.midi):
			voice = continuo.constants.voices.VOICE_NAMES[note.voice]
			raise GenerationError("validation", f"{note.pitch} at beat {note.start} is outside the {voice} range")

	overlaps = continuo.notes.voice_overlaps(notes)

	if overlaps:
		first, second = overlaps[0]
		raise GenerationError("validation", f"Voice {first.voice} overlaps at beats {first.start} and {second.start}")


def _realize_sections (
	sections: typing.Sequence[continuo.form.Section],
	plan: typing.Sequence[continuo.modulation.KeyPlanEntry],
	rng: random.Random
) -> typing.Tuple[typing.List[continuo.chords.Chord], typing.List[typing.Dict[str, typing.Any]], typing.List[typing.Dict[str, typing.Any]]]:

	"""Chords, phrase markers and a summary for every section, in order. Marker and section bounds are in beats."""

	structure = continuo.phrases.PhraseStructure(rng)
	slot = continuo.constants.durations.CHORD_SLOT_BEATS
	chords: typing.List[continuo.chords.Chord] = []
	markers: typing.List[typing.Dict[str, typing.Any]] = []
	summaries: typing.List[typing.Dict[str, typing.Any]] = []
	theme: typing.Optional[continuo.phrases.PhrasePlan] = None

	for index, (section, entry) in enumerate(zip(sections, plan)):

		length = section.bars * CHORDS_PER_MEASURE
		position = "end" if index == len(sections) - 1 else "middle"
		start = (entry.start, entry.start_mode)
		end = (entry.end, entry.end_mode)

		if section.type == "variation" and theme is not None:
			section_chords = tuple(theme.chords[i % len(theme.chords)] for i in range(length))
			section_markers = theme.markers if len(theme.chords) == length else (continuo.phrases.PhraseMarker("variation", 0, length, continuo.harmony.identify_cadence(section_chords)),)
			phrase_plan = continuo.phrases.PhrasePlan(section_chords, section_markers)
		else:
			shape = "period" if section.type == "variation" else section.type
			phrase_plan = structure.build(shape, length, start, end, position)

		if theme is None:
			theme = phrase_plan

		offset = len(chords)
		chords.extend(phrase_plan.chords)

		for marker in phrase_plan.markers:
			placed = marker.shifted(offset)
			markers.append({
				"section": section.name,
				"phrase": marker.name,
				"start": placed.start * slot,
				"end": (placed.start + placed.length) * slot,
				"cadence": marker.cadence,
			})

		summaries.append({
			"name": section.name,
			"type": section.type,
			"bars": section.bars,
			"start": offset * slot,
			"end": len(chords) * slot,
			"startKey": entry.start,
			"startMode": entry.start_mode,
			"endKey": entry.end,
			"endMode": entry.end_mode,
			"progression": continuo.harmony.format_progression(phrase_plan.chords),
		})

	return chords, markers, summaries


def _generate_form (options: Options, config: typing.Mapping[str, typing.Any], rng: random.Random) -> typing.Dict[str, typing.Any]:

	with _stage("structure"):
		sections = continuo.form.sections_for(options.form, options.duration)
		plan = continuo.modulation.Modulator(options.key, options.mode, rng).plan(sections)

	with _stage("harmony"):
		chords, markers, summaries = _realize_sections(sections, plan, rng)

	with _stage("voicing"):
		voicings = continuo.voicings.voice_progression(chords, rng)

	slot = continuo.constants.durations.CHORD_SLOT_BEATS
	notes: typing.List[Note] = []
	spans: typing.List[continuo.ornaments.HarmonicSpan] = []

	with _stage("assembly"):
		for index, (chord, voicing) in enumerate(zip(chords, voicings)):
			start = index * slot
			for voice in continuo.constants.voices.VOICES:
				notes.append(Note(pitch=voicing.pitches[voice], duration=continuo.constants.durations.Duration.HALF, start=start, voice=voice))
			spans.append(continuo.ornaments.HarmonicSpan(start, start + slot, chord.key, chord.mode, chord))

	total_measures = sum(section.bars for section in sections)
	notes = _finish(notes, spans, options, config, rng, total_measures)

	meta = {
		"key": options.key,
		"mode": options.mode,
		"form": options.form,
		"style": f"Baroque {options.form}",
		"progression": " | ".join(summary["progression"] for summary in summaries),
		"measures": total_measures,
		"sections": summaries,
		"phraseMarkers": markers,
	}

	return {"notes": notes, "meta": meta}


def _generate_fugue (options: Options, config: typing.Mapping[str, typing.Any], rng: random.Random) -> typing.Dict[str, typing.Any]:

	logger.debug(f"Fugue uses its fixed stage plan; duration {options.duration} is not used")

	with _stage("fugue"):
		result = continuo.fugue.FugueGenerator(options.key, options.mode, rng).generate()

	with _stage("counterpoint"):
		notes = continuo.ornaments.fix_fugue_dissonances(result.notes, result.spans)

	total_measures = int(result.total_beats // continuo.constants.durations.BEATS_PER_MEASURE)
	notes = _finish(notes, list(result.spans), options, config, rng, total_measures)

	meta = {
		"key": options.key,
		"mode": options.mode,
		"form": options.form,
		"style": "Baroque Fugue",
		"progression": " | ".join(f"{name}: {labels}" for name, labels in result.progressions),
		"measures": total_measures,
		"subject": [note.pitch for note in result.subject],
		"stages": [stage.to_dict() for stage in result.stages],
	}

	return {"notes": notes, "meta": meta}


def _finish (
	notes: typing.Sequence[Note],
	spans: typing.Sequence[continuo.ornaments.HarmonicSpan],
	options: Options,
	config: typing.Mapping[str, typing.Any],
	rng: random.Random,
	total_measures: int
) -> typing.List[Note]:

	"""Ornament, humanize and validate."""

	with _stage("ornamentation"):
		settings = ornament_config(config, options.ornament_density, total_measures)
		result = continuo.ornaments.ornament(notes, spans, settings, rng)

	with _stage("humanization"):
		humanize = config.get("humanize", {})
		result = continuo.ornaments.humanize(
			result,
			rng,
			timing = float(humanize.get("timing", 0.02)),
			velocity = float(humanize.get("velocity", 0.08))
		)

	validate_notes(result)

	return result


def generate (
	options: typing.Optional[typing.Mapping[str, typing.Any]] = None,
	config: typing.Optional[typing.Mapping[str, typing.Any]] = None
) -> typing.Dict[str, typing.Any]:

	"""
	Generate a complete piece.

	Parameters:
		options: ``form``, ``key``, ``mode``, ``duration`` (measures), ``seed``
			and ``ornamentDensity`` (0-100). Missing or malformed values fall
			back to defaults.
		config: Settings laid over ``continuo.config.DEFAULT_CONFIG``
			(see :func:`continuo.config.load_config`).

	Returns:
		``{"notes": [...], "meta": {...}}``. Notes are :class:`continuo.notes.Note`
		values in canonical order. ``meta`` holds ``key``, ``mode``, ``form``,
		``style``, ``progression`` and ``measures``, plus ``sections`` and
		``phraseMarkers`` for phrase-based forms, or ``subject`` and ``stages``
		for a fugue.

	Raises:
		GenerationError: If an internal invariant fails; ``stage`` names where.
	"""

	normalized = Options.from_mapping(options)
	settings = continuo.config.merge(continuo.config.DEFAULT_CONFIG, config or {})
	rng = random.Random(normalized.seed)

	logger.info(f"Generating {normalized.form} in {normalized.key} {normalized.mode} (seed {normalized.seed!r})")

	if normalized.form == "Fugue":
		result = _generate_fugue(normalized, settings, rng)
	else:
		result = _generate_form(normalized, settings, rng)

	logger.info(f"Generated {len(result['notes'])} notes over {result['meta']['measures']} measures")

	return result
