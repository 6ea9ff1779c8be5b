"""
Organism runtime representation.

Organisms are spawned from the ecosystem configuration (or by their
parent's reproduce()) and live on the grid. Each organism has a unique
organism_id, a grid position, energy, and an alive flag.

Organisms never hold a reference to the world; per-tick behavior lives in
behavior.py as update(world, organism) functions.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple

from .constants import DEFAULT_TRANSFER_RATE, DEFAULT_HUNT_SUCCESS_RATE
from .data_types import OrganismKind


@dataclass(eq=False)
class Organism:
    """
    Base state and energy bookkeeping shared by every kind.

    Attributes:
        organism_id: Unique, monotonically assigned by the owning Ecosystem
        x, y: Grid position (must agree with the cell that holds this organism)
        energy: Current energy; energy <= 0 always implies alive == False
        reproduction_threshold: Minimum energy needed to reproduce
        reproduction_cost: Energy deducted from the parent when reproducing
        transfer_rate: Fraction of energy handed to whoever consumes this organism
        alive: False once dead or consumed (terminal)
        age: Ticks survived
    """
    organism_id: int
    x: int
    y: int
    energy: float
    reproduction_threshold: float
    reproduction_cost: float
    transfer_rate: float = DEFAULT_TRANSFER_RATE
    alive: bool = True
    age: int = 0

    kind: ClassVar[OrganismKind]

    def __post_init__(self):
        self.energy = float(self.energy)
        if self.energy <= 0:
            self.die()

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y

    def set_position(self, x: int, y: int):
        self.x = x
        self.y = y

    # ------------------------------------------------------------------
    # Energy
    # ------------------------------------------------------------------

    def gain_energy(self, amount: float):
        """Add energy, uncapped (kind-specific caps live in the subclass)"""
        self.energy += amount

    def lose_energy(self, amount: float):
        """Remove energy; reaching zero or below is death"""
        self.energy -= amount
        if self.energy <= 0:
            self.die()

    def die(self):
        self.alive = False
        self.energy = 0.0

    def increment_age(self):
        self.age += 1

    # ------------------------------------------------------------------
    # Consumable
    # ------------------------------------------------------------------

    def energy_value(self) -> float:
        """Energy a consumer receives for eating this organism right now"""
        return self.energy * self.transfer_rate

    def is_edible(self) -> bool:
        return self.alive and self.energy > 0

    def be_consumed(self):
        """Terminal consumed state, regardless of how much energy was left"""
        self.die()

    def consume(self, target: 'Organism') -> float:
        """
        Eat target.

        The gain is computed from target's energy before it is zeroed.

        Returns:
            Energy gained (0.0 and no effect if target is not edible)
        """
        if target is None or not target.is_edible():
            return 0.0

        gained = target.energy_value()
        self.gain_energy(gained)
        target.be_consumed()
        return gained

    # ------------------------------------------------------------------
    # Reproducible
    # ------------------------------------------------------------------

    def can_reproduce(self) -> bool:
        return self.alive and self.energy >= self.reproduction_threshold

    def reproduce(self, offspring_id: int) -> Optional['Organism']:
        """
        Pay the reproduction cost and return a same-kind offspring.

        The offspring starts at the parent's cell with half the cost as
        energy; the caller decides where it is finally placed.

        Returns:
            Offspring, or None (no energy deducted) if can_reproduce() is False
        """
        if not self.can_reproduce():
            return None

        self.lose_energy(self.reproduction_cost)
        return self._make_offspring(offspring_id, self.reproduction_cost / 2)

    def _make_offspring(self, offspring_id: int, energy: float) -> 'Organism':
        raise NotImplementedError

    def to_dict(self) -> dict:
        """
        Serialize organism to JSON-compatible dict.

        Returns:
            Dict with identity, kind, position and life-cycle fields
        """
        return {
            'organism_id': self.organism_id,
            'kind': self.kind.value,
            'x': self.x,
            'y': self.y,
            'energy': float(self.energy),
            'alive': self.alive,
            'age': self.age,
        }

    def __repr__(self) -> str:
        return (f"{type(self).__name__}[id={self.organism_id}, energy={self.energy:.1f}, "
                f"pos=({self.x},{self.y}), alive={self.alive}]")


@dataclass(eq=False, repr=False)
class Producer(Organism):
    """Stationary photosynthesizer, energy capped at max_energy"""
    photosynthesis_rate: float = 5.0
    max_energy: float = 100.0

    kind: ClassVar[OrganismKind] = OrganismKind.PRODUCER

    def photosynthesize(self):
        if self.alive:
            self.energy = min(self.energy + self.photosynthesis_rate, self.max_energy)

    def _make_offspring(self, offspring_id: int, energy: float) -> 'Producer':
        return Producer(
            organism_id=offspring_id,
            x=self.x,
            y=self.y,
            energy=energy,
            reproduction_threshold=self.reproduction_threshold,
            reproduction_cost=self.reproduction_cost,
            transfer_rate=self.transfer_rate,
            photosynthesis_rate=self.photosynthesis_rate,
            max_energy=self.max_energy
        )


@dataclass(eq=False, repr=False)
class Consumer(Organism):
    """
    Mobile organism that loses energy every tick and feeds on prey_kind.

    Attributes:
        hunger_rate: Energy lost per tick
        vision_range: Manhattan radius for food detection
        speed: Cells traversable per tick
    """
    hunger_rate: float = 0.0
    vision_range: int = 0
    speed: int = 1

    prey_kind: ClassVar[OrganismKind]

    def apply_hunger(self):
        self.lose_energy(self.hunger_rate)

    def can_eat(self, other: Optional[Organism]) -> bool:
        """True if other is a living member of this consumer's prey kind"""
        return other is not None and other.kind is self.prey_kind and other.is_edible()

    def _consumer_fields(self) -> dict:
        return {
            'reproduction_threshold': self.reproduction_threshold,
            'reproduction_cost': self.reproduction_cost,
            'transfer_rate': self.transfer_rate,
            'hunger_rate': self.hunger_rate,
            'vision_range': self.vision_range,
            'speed': self.speed,
        }


@dataclass(eq=False, repr=False)
class Herbivore(Consumer):
    """Forages producers"""
    kind: ClassVar[OrganismKind] = OrganismKind.HERBIVORE
    prey_kind: ClassVar[OrganismKind] = OrganismKind.PRODUCER

    def _make_offspring(self, offspring_id: int, energy: float) -> 'Herbivore':
        return Herbivore(
            organism_id=offspring_id,
            x=self.x,
            y=self.y,
            energy=energy,
            **self._consumer_fields()
        )


@dataclass(eq=False, repr=False)
class Carnivore(Consumer):
    """Hunts herbivores; each hunt succeeds with probability hunt_success_rate"""
    hunt_success_rate: float = DEFAULT_HUNT_SUCCESS_RATE

    kind: ClassVar[OrganismKind] = OrganismKind.CARNIVORE
    prey_kind: ClassVar[OrganismKind] = OrganismKind.HERBIVORE

    def _make_offspring(self, offspring_id: int, energy: float) -> 'Carnivore':
        return Carnivore(
            organism_id=offspring_id,
            x=self.x,
            y=self.y,
            energy=energy,
            hunt_success_rate=self.hunt_success_rate,
            **self._consumer_fields()
        )
