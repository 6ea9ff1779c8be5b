"""
Organism spawning system.

Builds organisms from the ecosystem configuration and places initial
populations and spontaneous producers at uniformly random empty cells.
"""

from typing import Optional, TYPE_CHECKING

from .entity import Organism, Producer, Herbivore, Carnivore
from .data_types import EcosystemConfig, OrganismKind
from .rng import random_choice

if TYPE_CHECKING:
    from .simulation import Ecosystem


def create_organism(
    kind: OrganismKind,
    organism_id: int,
    x: int,
    y: int,
    config: EcosystemConfig,
    energy: Optional[float] = None
) -> Organism:
    """
    Create an organism of the given kind with per-kind parameters from config.

    Args:
        kind: Organism variant
        organism_id: Identity from the owning Ecosystem's sequence
        x, y: Initial grid position
        config: Ecosystem configuration
        energy: Initial energy override (defaults to the kind's configured initial)

    Returns:
        New living organism (not yet placed on any grid)
    """
    energy_cfg = config.energy
    movement = config.movement
    reproduction = config.reproduction

    if kind is OrganismKind.PRODUCER:
        return Producer(
            organism_id=organism_id,
            x=x,
            y=y,
            energy=energy_cfg.producer_initial if energy is None else energy,
            reproduction_threshold=reproduction.producer_threshold,
            reproduction_cost=reproduction.producer_cost,
            transfer_rate=energy_cfg.transfer_rate,
            photosynthesis_rate=energy_cfg.producer_photosynthesis,
            max_energy=energy_cfg.producer_max
        )

    if kind is OrganismKind.HERBIVORE:
        return Herbivore(
            organism_id=organism_id,
            x=x,
            y=y,
            energy=energy_cfg.herbivore_initial if energy is None else energy,
            reproduction_threshold=reproduction.herbivore_threshold,
            reproduction_cost=reproduction.herbivore_cost,
            transfer_rate=energy_cfg.transfer_rate,
            hunger_rate=energy_cfg.herbivore_hunger_rate,
            vision_range=movement.herbivore_vision,
            speed=movement.herbivore_speed
        )

    if kind is OrganismKind.CARNIVORE:
        return Carnivore(
            organism_id=organism_id,
            x=x,
            y=y,
            energy=energy_cfg.carnivore_initial if energy is None else energy,
            reproduction_threshold=reproduction.carnivore_threshold,
            reproduction_cost=reproduction.carnivore_cost,
            transfer_rate=energy_cfg.transfer_rate,
            hunger_rate=energy_cfg.carnivore_hunger_rate,
            vision_range=movement.carnivore_vision,
            speed=movement.carnivore_speed,
            hunt_success_rate=config.hunting.success_rate
        )

    raise ValueError(f"Unknown organism kind: {kind}")


def spawn_random(world: 'Ecosystem', kind: OrganismKind) -> Optional[Organism]:
    """
    Spawn one organism of kind at a uniformly random empty cell.

    Returns:
        The placed organism, or None if the grid is full
    """
    cell = random_choice(world.rng, world.get_empty_cells())
    if cell is None:
        return None

    organism = create_organism(kind, world.next_organism_id(), cell.x, cell.y, world.config)
    if not world.add_organism(organism):
        return None
    return organism


def spawn_population(world: 'Ecosystem') -> dict:
    """
    Spawn the configured initial population: producers, then herbivores,
    then carnivores.

    Returns:
        Dict of kind value -> number actually placed (less than requested
        when the grid fills up)
    """
    population = world.config.population
    requested = [
        (OrganismKind.PRODUCER, population.producers),
        (OrganismKind.HERBIVORE, population.herbivores),
        (OrganismKind.CARNIVORE, population.carnivores),
    ]

    placed = {}
    for kind, count in requested:
        spawned = 0
        for _ in range(count):
            if spawn_random(world, kind) is None:
                print(f"[WARN] Grid full, placed {spawned}/{count} {kind.value}s")
                break
            spawned += 1
        placed[kind.value] = spawned

    return placed
