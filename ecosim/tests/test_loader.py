"""
Configuration loading: YAML -> EcosystemConfig with schema validation.

Verifies:
- Shipped ecosystem.yaml loads with the documented defaults
- Scenarios override only the initial population
- Missing, unparsable and invalid files fall back to defaults
- An invalid section falls back alone; valid sections are kept
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ecosim.loader import (
    load_config, load_scenario, list_scenarios, parse_config,
    load_schema, DEFAULT_CONFIG_PATH, DEFAULT_SCHEMA_PATH
)
from ecosim.data_types import EcosystemConfig, GridConfig
from ecosim.simulation import Ecosystem


def write_yaml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "ecosystem.yaml"
    path.write_text(text, encoding='utf-8')
    return path


class TestShippedConfig:
    """data/ecosystem.yaml"""

    def test_files_exist(self):
        assert DEFAULT_CONFIG_PATH.exists(), f"Missing {DEFAULT_CONFIG_PATH}"
        assert load_schema(DEFAULT_SCHEMA_PATH) is not None, "Schema not loaded"

    def test_defaults(self):
        config = load_config()

        print(f"[OK] Loaded config: grid {config.grid.width}x{config.grid.height}")
        assert config == EcosystemConfig(), "Shipped YAML should match built-in defaults"
        assert config.grid.width == 50
        assert config.grid.height == 30
        assert config.energy.transfer_rate == 0.10
        assert config.movement.carnivore_speed == 2
        assert config.hunting.success_rate == 0.8
        assert config.reproduction.producer_spawn_rate == 0.02
        assert config.simulation.seed is None

    def test_scenarios(self):
        assert list_scenarios() == ['balanced', 'overpopulation', 'extinction']

        overpopulation = load_scenario("overpopulation")
        assert (overpopulation.population.producers,
                overpopulation.population.herbivores,
                overpopulation.population.carnivores) == (50, 80, 5)

        extinction = load_scenario("extinction")
        assert extinction.population.carnivores == 25
        assert extinction.energy == load_config().energy, "Scenario changes only population"
        print("[OK] Scenarios overlay the initial population")

    def test_unknown_scenario_uses_base(self):
        config = load_scenario("no-such-scenario")
        assert config.population.producers == 100


class TestFallbacks:
    """Recoverable configuration problems."""

    def test_missing_file(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config == EcosystemConfig()

    def test_unparsable_yaml(self, tmp_path):
        path = write_yaml(tmp_path, "ecosystem: [unclosed\n")
        assert load_config(path) == EcosystemConfig()

    def test_empty_file(self, tmp_path):
        path = write_yaml(tmp_path, "")
        assert load_config(path) == EcosystemConfig()

    def test_invalid_section_falls_back_alone(self, tmp_path):
        path = write_yaml(tmp_path, """
ecosystem:
  grid:
    width: wide
    height: 10
  energy:
    herbivore_hunger_rate: 4.0
  simulation:
    seed: 7
""")
        config = load_config(path)

        assert config.grid.width == 50, "Invalid grid section uses defaults"
        assert config.grid.height == 30, "Whole section falls back, not just the bad field"
        assert config.energy.herbivore_hunger_rate == 4.0
        assert config.energy.carnivore_hunger_rate == 3.0, "Unset fields keep defaults"
        assert config.simulation.seed == 7
        print("[OK] Invalid section replaced by defaults")

    def test_out_of_range_value(self, tmp_path):
        path = write_yaml(tmp_path, """
ecosystem:
  hunting:
    success_rate: 1.5
  movement:
    herbivore_vision: 3
""")
        config = load_config(path)

        assert config.hunting.success_rate == 0.8
        assert config.movement.herbivore_vision == 3

    def test_unknown_field_without_schema(self, tmp_path):
        path = write_yaml(tmp_path, """
ecosystem:
  grid:
    width: 10
    depth: 4
  population:
    producers: 5
""")
        config = load_config(path, schema_path=None)

        assert config.grid.width == 50, "Unknown field makes the section unusable"
        assert config.population.producers == 5

    def test_wrong_type_with_missing_schema(self, tmp_path, capsys):
        path = write_yaml(tmp_path, """
ecosystem:
  grid:
    width: wide
    height: 10
  energy:
    herbivore_hunger_rate: 4
  simulation:
    seed: null
""")
        config = load_config(path, schema_path=tmp_path / "absent.schema.json")

        out = capsys.readouterr().out
        assert "[WARN] Schema not found" in out, "Missing schema must be reported"
        assert config.grid == GridConfig(), "Mistyped section falls back wholesale"
        assert config.energy.herbivore_hunger_rate == 4, "int accepted for a float field"
        assert config.simulation.seed is None

        world = Ecosystem(config.with_population(5, 2, 1))
        world.initialize()
        assert world.width == 50
        print("[OK] Mistyped section replaced without a schema")

    def test_bool_and_scenario_types_without_schema(self, tmp_path):
        path = write_yaml(tmp_path, """
ecosystem:
  hunting:
    success_rate: true
  population:
    producers: 12
scenarios:
  broken:
    herbivores: many
""")
        config = load_config(path, schema_path=None)
        assert config.hunting.success_rate == 0.8, "Booleans are not numbers"
        assert config.population.producers == 12

        scenario = load_scenario("broken", path, schema_path=None)
        assert scenario.population.herbivores == 30, "Mistyped scenario keeps base population"
        assert scenario.population.producers == 12

    def test_invalid_scenario_uses_base(self, tmp_path):
        path = write_yaml(tmp_path, """
ecosystem:
  population:
    producers: 12
    herbivores: 4
    carnivores: 1
scenarios:
  broken:
    herbivores: -3
""")
        config = load_scenario("broken", path)

        assert config.population.producers == 12
        assert config.population.herbivores == 4

    def test_partial_scenario(self, tmp_path):
        path = write_yaml(tmp_path, """
scenarios:
  sparse:
    producers: 7
""")
        config = load_scenario("sparse", path)

        assert config.population.producers == 7
        assert config.population.herbivores == 30, "Missing counts use defaults"


def test_parse_config_roundtrip_shape():
    config = parse_config({'ecosystem': EcosystemConfig().to_dict()})
    assert config == EcosystemConfig()
