"""
Data types mirroring YAML configuration structures and simulation records.

Configuration dataclasses are populated by loader.py from YAML files.
EcosystemStats is produced by the Ecosystem once per tick.
"""

from dataclasses import dataclass, field, replace, asdict
from typing import Dict, Any, Optional
from enum import Enum

from .constants import (
    DEFAULT_TRANSFER_RATE,
    DEFAULT_HUNT_SUCCESS_RATE,
    TICK_INTERVAL_DEFAULT_MS,
    BALANCE_RATIO_LIMIT,
)


class OrganismKind(Enum):
    """Closed set of organism variants"""
    PRODUCER = "producer"
    HERBIVORE = "herbivore"
    CARNIVORE = "carnivore"


class SimulationState(Enum):
    """Engine lifecycle states"""
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


# ============================================================================
# Configuration Sections
# ============================================================================

@dataclass
class GridConfig:
    """Grid dimensions in cells"""
    width: int = 50
    height: int = 30


@dataclass
class EnergyConfig:
    """Energy budget per organism kind"""
    transfer_rate: float = DEFAULT_TRANSFER_RATE
    producer_initial: float = 30.0
    producer_max: float = 100.0
    producer_photosynthesis: float = 5.0
    herbivore_initial: float = 50.0
    herbivore_hunger_rate: float = 2.0
    carnivore_initial: float = 80.0
    carnivore_hunger_rate: float = 3.0


@dataclass
class MovementConfig:
    """Vision (Manhattan radius) and speed (cells per tick) for consumers"""
    herbivore_vision: int = 5
    herbivore_speed: int = 1
    carnivore_vision: int = 7
    carnivore_speed: int = 2


@dataclass
class HuntingConfig:
    """Carnivore hunt parameters"""
    success_rate: float = DEFAULT_HUNT_SUCCESS_RATE


@dataclass
class ReproductionConfig:
    """Reproduction thresholds/costs and spontaneous producer spawning"""
    producer_threshold: float = 80.0
    producer_cost: float = 40.0
    herbivore_threshold: float = 100.0
    herbivore_cost: float = 50.0
    carnivore_threshold: float = 150.0
    carnivore_cost: float = 75.0
    producer_spawn_rate: float = 0.02


@dataclass
class SimulationConfig:
    """Scheduling and termination"""
    tick_interval_ms: int = TICK_INTERVAL_DEFAULT_MS
    max_generations: int = 10000
    seed: Optional[int] = None  # None = fresh OS entropy each run


@dataclass
class PopulationConfig:
    """Initial population counts (overridable by a scenario)"""
    producers: int = 100
    herbivores: int = 30
    carnivores: int = 10


@dataclass
class EcosystemConfig:
    """Complete ecosystem configuration, one field per YAML section"""
    grid: GridConfig = field(default_factory=GridConfig)
    energy: EnergyConfig = field(default_factory=EnergyConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)
    hunting: HuntingConfig = field(default_factory=HuntingConfig)
    reproduction: ReproductionConfig = field(default_factory=ReproductionConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)

    def with_population(self, producers: int, herbivores: int, carnivores: int) -> 'EcosystemConfig':
        """Return a copy with only the initial population replaced."""
        return replace(
            self,
            population=PopulationConfig(
                producers=producers,
                herbivores=herbivores,
                carnivores=carnivores
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the nested dict shape of the `ecosystem:` YAML section."""
        return asdict(self)


# Section name -> dataclass, in YAML order (used by loader.py)
CONFIG_SECTIONS = {
    'grid': GridConfig,
    'energy': EnergyConfig,
    'movement': MovementConfig,
    'hunting': HuntingConfig,
    'reproduction': ReproductionConfig,
    'simulation': SimulationConfig,
    'population': PopulationConfig,
}


# ============================================================================
# Statistics Snapshot
# ============================================================================

@dataclass(frozen=True)
class EcosystemStats:
    """
    Immutable statistics for one tick.

    Attributes:
        tick: Tick number the snapshot describes (0 = freshly initialized)
        producer_count / herbivore_count / carnivore_count: Living organisms per kind
        producer_energy / herbivore_energy / carnivore_energy: Summed energy per kind
        total_energy: Sum across all kinds
        average_*_energy: Per-kind energy / count (0.0 for an empty kind)
    """
    tick: int
    producer_count: int
    herbivore_count: int
    carnivore_count: int
    producer_energy: float
    herbivore_energy: float
    carnivore_energy: float
    total_energy: float
    average_producer_energy: float
    average_herbivore_energy: float
    average_carnivore_energy: float

    @property
    def total_organisms(self) -> int:
        return self.producer_count + self.herbivore_count + self.carnivore_count

    def count_of(self, kind: OrganismKind) -> int:
        return {
            OrganismKind.PRODUCER: self.producer_count,
            OrganismKind.HERBIVORE: self.herbivore_count,
            OrganismKind.CARNIVORE: self.carnivore_count,
        }[kind]

    def is_ecosystem_alive(self) -> bool:
        """True while any mobile organism survives."""
        return self.herbivore_count > 0 or self.carnivore_count > 0

    def is_balanced(self) -> bool:
        """
        Rough balance heuristic.

        Carnivores must be fewer than half the herbivores, and herbivores
        fewer than half the producers. No herbivores is never balanced.
        """
        if self.herbivore_count == 0:
            return False

        carnivore_ratio = self.carnivore_count / self.herbivore_count
        herbivore_producer_ratio = (
            self.herbivore_count / self.producer_count if self.producer_count > 0 else 0.0
        )
        return carnivore_ratio < BALANCE_RATIO_LIMIT and herbivore_producer_ratio < BALANCE_RATIO_LIMIT

    def summary(self) -> str:
        return (f"Tick {self.tick} | "
                f"Producers: {self.producer_count} (avg: {self.average_producer_energy:.1f}) | "
                f"Herbivores: {self.herbivore_count} (avg: {self.average_herbivore_energy:.1f}) | "
                f"Carnivores: {self.carnivore_count} (avg: {self.average_carnivore_energy:.1f}) | "
                f"Total Energy: {self.total_energy:.1f}")

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to JSON-compatible dict.
        Ensures no numpy types leak through.
        """
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, float):
                result[key] = float(value)
            else:
                result[key] = int(value)
        return result
