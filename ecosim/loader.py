"""
YAML configuration loader with schema validation.

Loads the ecosystem configuration and named scenarios from YAML and
validates against a JSON schema. Configuration problems are recoverable:
a missing or malformed section falls back wholesale to its defaults and a
[WARN] line says why.
"""

import yaml
import json
from pathlib import Path
from typing import Dict, List, Optional, get_args, get_type_hints
import jsonschema

from .data_types import EcosystemConfig, PopulationConfig, CONFIG_SECTIONS


DATA_ROOT = Path(__file__).parent.parent / "data"
DEFAULT_CONFIG_PATH = DATA_ROOT / "ecosystem.yaml"
DEFAULT_SCHEMA_PATH = DATA_ROOT / "schemas" / "ecosystem.schema.json"


class DataLoadError(Exception):
    """Raised when data loading or validation fails"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DataLoadError(f"Expected a mapping at top level of {file_path}, got {type(data).__name__}")
    return data


def load_schema(schema_path: Optional[Path]) -> Optional[dict]:
    """Load JSON schema, or None when no schema file is available"""
    if schema_path is None:
        return None

    schema_path = Path(schema_path)
    if not schema_path.exists():
        print(f"[WARN] Schema not found: {schema_path}, checking field types only")
        return None

    try:
        with open(schema_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


def _invalid_sections(data: dict, schema: Optional[dict]) -> Dict[str, str]:
    """
    Validate the whole document and group errors by ecosystem section.

    Returns:
        Dict of section name -> first validation message. Key '' marks an
        error that is not confined to one section (e.g. `ecosystem` is not
        a mapping).
    """
    if schema is None:
        return {}

    invalid = {}
    validator = jsonschema.Draft7Validator(schema)
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        path = list(error.absolute_path)
        if path and path[0] == 'ecosystem' and len(path) >= 2:
            section = str(path[1])
        elif path and path[0] == 'scenarios':
            section = 'scenarios'
        else:
            section = ''
        invalid.setdefault(section, error.message)
    return invalid


def _matches_type(value, expected) -> bool:
    """
    Check a YAML scalar against a config field annotation.

    Handles the annotations the config dataclasses use: int, float and
    Optional[int]. Booleans never count as numbers; ints are accepted
    where a float is expected.
    """
    allowed = get_args(expected) or (expected,)
    if value is None:
        return type(None) in allowed
    if isinstance(value, bool):
        return bool in allowed
    if float in allowed:
        return isinstance(value, (int, float))
    return isinstance(value, tuple(t for t in allowed if t is not type(None)))


def _field_type_problem(cls, raw: dict) -> Optional[str]:
    """First unknown or mistyped field of a section, or None if it is usable"""
    hints = get_type_hints(cls)
    for key, value in raw.items():
        if key not in hints:
            return f"unknown field '{key}'"
        if not _matches_type(value, hints[key]):
            return f"'{key}' has invalid value {value!r}"
    return None


def _build_section(name: str, raw, invalid: Dict[str, str]):
    """Build one section dataclass, falling back to defaults when unusable"""
    cls = CONFIG_SECTIONS[name]

    if raw is None:
        return cls()

    if name in invalid:
        print(f"[WARN] Config section '{name}' invalid ({invalid[name]}), using defaults")
        return cls()

    if not isinstance(raw, dict):
        print(f"[WARN] Config section '{name}' is not a mapping, using defaults")
        return cls()

    problem = _field_type_problem(cls, raw)
    if problem is not None:
        print(f"[WARN] Config section '{name}' malformed ({problem}), using defaults")
        return cls()

    return cls(**raw)


def parse_config(data: dict, schema: Optional[dict] = None) -> EcosystemConfig:
    """
    Parse a loaded YAML document into EcosystemConfig.

    Args:
        data: Parsed YAML (top-level keys `ecosystem` and `scenarios`)
        schema: Optional JSON schema for validation

    Returns:
        EcosystemConfig; never raises for bad content
    """
    invalid = _invalid_sections(data, schema)
    if '' in invalid:
        print(f"[WARN] Config invalid ({invalid['']}), using defaults")
        return EcosystemConfig()

    ecosystem = data.get('ecosystem')
    if not isinstance(ecosystem, dict):
        if ecosystem is not None:
            print("[WARN] Config 'ecosystem' is not a mapping, using defaults")
        return EcosystemConfig()

    sections = {
        name: _build_section(name, ecosystem.get(name), invalid)
        for name in CONFIG_SECTIONS
    }
    return EcosystemConfig(**sections)


def _load_document(file_path: Optional[Path], schema_path: Optional[Path]):
    """Load YAML + schema, reporting failures. Returns (data, schema) or (None, None)."""
    file_path = Path(file_path) if file_path is not None else DEFAULT_CONFIG_PATH

    try:
        data = load_yaml(file_path)
        schema = load_schema(schema_path)
    except DataLoadError as e:
        print(f"[WARN] {e}")
        print("[WARN] Using default configuration")
        return None, None

    return data, schema


def load_config(file_path: Optional[Path] = None,
                schema_path: Optional[Path] = DEFAULT_SCHEMA_PATH) -> EcosystemConfig:
    """
    Load ecosystem configuration from YAML.

    Args:
        file_path: YAML file (defaults to data/ecosystem.yaml)
        schema_path: JSON schema (None checks field types only)

    Returns:
        EcosystemConfig (defaults on any load failure)
    """
    data, schema = _load_document(file_path, schema_path)
    if data is None:
        return EcosystemConfig()
    return parse_config(data, schema)


def load_scenario(name: str, file_path: Optional[Path] = None,
                  schema_path: Optional[Path] = DEFAULT_SCHEMA_PATH) -> EcosystemConfig:
    """
    Load configuration and overlay a named scenario.

    A scenario overrides only the three initial population counts; counts
    missing from the scenario use PopulationConfig defaults.

    Args:
        name: Scenario key under `scenarios:` (e.g. "balanced")
        file_path: YAML file (defaults to data/ecosystem.yaml)
        schema_path: JSON schema (None checks field types only)

    Returns:
        EcosystemConfig with the scenario's population (base population if unknown)
    """
    data, schema = _load_document(file_path, schema_path)
    if data is None:
        return EcosystemConfig()

    config = parse_config(data, schema)

    scenarios = data.get('scenarios')
    if not isinstance(scenarios, dict) or name not in scenarios:
        print(f"[WARN] Scenario '{name}' not found, using base population")
        return config

    if 'scenarios' in _invalid_sections(data, schema):
        print(f"[WARN] Scenarios invalid, using base population for '{name}'")
        return config

    scenario = scenarios[name] or {}
    if not isinstance(scenario, dict):
        print(f"[WARN] Scenario '{name}' is not a mapping, using base population")
        return config

    problem = _field_type_problem(PopulationConfig, scenario)
    if problem is not None:
        print(f"[WARN] Scenario '{name}' malformed ({problem}), using base population")
        return config

    defaults = PopulationConfig()
    return config.with_population(
        producers=scenario.get('producers', defaults.producers),
        herbivores=scenario.get('herbivores', defaults.herbivores),
        carnivores=scenario.get('carnivores', defaults.carnivores)
    )


def list_scenarios(file_path: Optional[Path] = None) -> List[str]:
    """Scenario names defined in the YAML file (empty if unreadable)"""
    data, _ = _load_document(file_path, None)
    if not data or not isinstance(data.get('scenarios'), dict):
        return []
    return list(data['scenarios'].keys())
