"""Generation settings loaded from YAML.

Every key has a default; a YAML file only needs the values it changes.

Example ``continuo.yaml``:

```yaml
ornaments:
  cadence_measures: 1
  probabilities:
    trill: 0.5
humanize:
  timing: 0.0
midi:
  bpm: 60
```
"""

import copy
import logging
import os
import typing

import yaml

import continuo.midi_export
import continuo.ornaments


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "continuo.yaml"

DEFAULT_CONFIG: typing.Dict[str, typing.Any] = {
	"ornaments": {
		"cadence_measures": continuo.ornaments.DEFAULT_CADENCE_MEASURES,
		"voice_multipliers": list(continuo.ornaments.DEFAULT_VOICE_MULTIPLIERS),
		"probabilities": dict(continuo.ornaments.DEFAULT_PROBABILITIES),
	},
	"humanize": {
		"timing": 0.02,
		"velocity": 0.08,
	},
	"midi": {
		"bpm": continuo.midi_export.DEFAULT_BPM,
		"ticks_per_beat": continuo.midi_export.DEFAULT_TICKS_PER_BEAT,
	},
}



def merge (base: typing.Dict[str, typing.Any], override: typing.Mapping[str, typing.Any]) -> typing.Dict[str, typing.Any]:

	"""
	Return a copy of ``base`` with ``override`` laid over it, nested mappings merged key by key.
	"""

	result = copy.deepcopy(base)

	for key, value in override.items():

		if isinstance(value, dict) and isinstance(result.get(key), dict):
			result[key] = merge(result[key], value)
		else:
			result[key] = copy.deepcopy(value)

	return result


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> typing.Dict[str, typing.Any]:

	"""
	Load configuration from a YAML file over the defaults.

	A missing file logs a warning and gives the defaults.

	Raises:
		ValueError: If the file does not hold a mapping.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return copy.deepcopy(DEFAULT_CONFIG)

	with open(config_path, 'r') as f:
		loaded = yaml.safe_load(f)

	if loaded is None:
		return copy.deepcopy(DEFAULT_CONFIG)

	if not isinstance(loaded, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping, got {type(loaded).__name__}")

	logger.info(f"Loaded config from {config_path}")

	return merge(DEFAULT_CONFIG, loaded)
