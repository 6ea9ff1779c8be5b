"""
Per-tick behavior for every organism kind.

Each kind's update is an explicit update(world, organism) function; the
organism holds only its coordinates and the world owns the grid and
registries.

Tick shapes:
- Producer: photosynthesize, age, reproduce
- Herbivore: hunger, eat adjacent food or approach it (else wander), age, reproduce
- Carnivore: hunger, hunt adjacent prey or chase up to `speed` steps, age, reproduce
"""

import numpy as np
from enum import Enum
from typing import Optional, TYPE_CHECKING

from .entity import Organism, Producer, Consumer, Herbivore, Carnivore
from .data_types import OrganismKind
from .spatial import manhattan_distance, step_towards
from .constants import NEIGHBOR_OFFSETS, HUNT_FAILURE_PENALTY_FACTOR
from .rng import random_choice, shuffled

if TYPE_CHECKING:
    from .simulation import Ecosystem


# ============================================================================
# Food Search
# ============================================================================

def find_food(world: 'Ecosystem', consumer: Consumer) -> Optional[Organism]:
    """
    Find the nearest edible prey within vision range.

    Scans the registry of consumer.prey_kind, computing Manhattan distances
    in one vectorized pass. Ties at equal distance go to the lowest
    organism_id so the result never depends on registry order.

    Args:
        world: Ecosystem to search
        consumer: Searching herbivore or carnivore

    Returns:
        Nearest prey, or None if nothing edible is within vision_range
    """
    prey = [p for p in world.iter_organisms(consumer.prey_kind) if p.is_edible()]
    if not prey:
        return None

    coords = np.array([(p.x, p.y) for p in prey], dtype=np.int64)  # (N, 2)
    ids = np.array([p.organism_id for p in prey], dtype=np.int64)
    distances = np.abs(coords[:, 0] - consumer.x) + np.abs(coords[:, 1] - consumer.y)

    visible = np.nonzero(distances <= consumer.vision_range)[0]
    if len(visible) == 0:
        return None

    # lexsort: last key is primary (distance), then id
    order = np.lexsort((ids[visible], distances[visible]))
    return prey[int(visible[order[0]])]


def distance_to(organism: Organism, other: Organism) -> int:
    return manhattan_distance(organism.x, organism.y, other.x, other.y)


# ============================================================================
# Movement
# ============================================================================

class StepResult(Enum):
    """Outcome of one step toward a target"""
    MOVED = "moved"        # stepped into an empty cell
    BLOCKED = "blocked"    # no step taken, no contact
    ATE = "ate"            # contact with food, food consumed, moved in
    MISSED = "missed"      # contact with prey, hunt failed, stayed put


def move_towards(world: 'Ecosystem', consumer: Consumer, target_x: int, target_y: int) -> StepResult:
    """
    Take one step along the sign of (target - position) on both axes.

    The destination must be in bounds and either empty or hold something
    this consumer eats. Stepping onto food is contact: a herbivore eats
    it, a carnivore hunts it, and the step completes only if the food was
    consumed.

    Returns:
        StepResult; ATE and MISSED both mean a contact feeding happened
    """
    dx, dy = step_towards(consumer.x, consumer.y, target_x, target_y)
    if dx == 0 and dy == 0:
        return StepResult.BLOCKED

    cell = world.get_cell(consumer.x + dx, consumer.y + dy)
    if cell is None:
        return StepResult.BLOCKED

    occupant = cell.occupant
    if occupant is None:
        if world.move_organism(consumer, cell.x, cell.y):
            return StepResult.MOVED
        return StepResult.BLOCKED

    if not consumer.can_eat(occupant):
        return StepResult.BLOCKED
    if not feed(world, consumer, occupant):
        return StepResult.MISSED

    world.move_organism(consumer, cell.x, cell.y)
    return StepResult.ATE


def move_randomly(world: 'Ecosystem', consumer: Consumer) -> bool:
    """
    Try the 8 neighbor offsets in shuffled order and step into the first
    empty one.

    Returns:
        True if the consumer moved
    """
    for dx, dy in shuffled(world.rng, NEIGHBOR_OFFSETS):
        cell = world.get_cell(consumer.x + dx, consumer.y + dy)
        if cell is not None and cell.is_empty():
            return world.move_organism(consumer, cell.x, cell.y)
    return False


def approach(world: 'Ecosystem', consumer: Consumer, target: Optional[Organism]) -> StepResult:
    """
    Move toward target if there is one.

    Falls back to a random step only when the direct step was blocked;
    after a contact feeding (eaten or missed) the consumer does not move
    again.
    """
    if target is not None:
        result = move_towards(world, consumer, target.x, target.y)
        if result is not StepResult.BLOCKED:
            return result

    if move_randomly(world, consumer):
        return StepResult.MOVED
    return StepResult.BLOCKED


# ============================================================================
# Feeding
# ============================================================================

def eat(world: 'Ecosystem', consumer: Consumer, food: Organism) -> bool:
    """
    Consume food and release its cell.

    Registry eviction happens in the Ecosystem's end-of-tick cleanup.

    Returns:
        True if food was edible and is now consumed
    """
    if not consumer.can_eat(food):
        return False

    gained = consumer.consume(food)
    world.release_cell(food)
    world.record_feeding(consumer, food, gained)
    return True


def hunt(world: 'Ecosystem', carnivore: Carnivore, prey: Herbivore) -> bool:
    """
    Attempt to kill and eat prey.

    Succeeds with probability carnivore.hunt_success_rate; a failed attempt
    costs half the carnivore's hunger_rate and leaves the prey alive.

    Returns:
        True if the prey was eaten
    """
    if prey is None or not prey.alive:
        return False

    if world.rng.random() < carnivore.hunt_success_rate:
        return eat(world, carnivore, prey)

    carnivore.lose_energy(carnivore.hunger_rate * HUNT_FAILURE_PENALTY_FACTOR)
    world.record_failed_hunt(carnivore, prey)
    return False


def feed(world: 'Ecosystem', consumer: Consumer, food: Organism) -> bool:
    """Dispatch contact with food: carnivores hunt, herbivores simply eat"""
    if isinstance(consumer, Carnivore):
        return hunt(world, consumer, food)
    return eat(world, consumer, food)


# ============================================================================
# Reproduction
# ============================================================================

def try_reproduce(world: 'Ecosystem', parent: Organism) -> Optional[Organism]:
    """
    Reproduce if possible and place the offspring on a random empty
    8-neighbor of the parent.

    The parent pays the cost even when no neighbor is free; the offspring
    is then discarded.

    Returns:
        The placed offspring, or None
    """
    if not parent.can_reproduce():
        return None

    offspring = parent.reproduce(world.next_organism_id())
    if offspring is None:
        return None

    cell = random_choice(world.rng, world.get_empty_neighbors(parent.x, parent.y))
    if cell is None:
        return None

    offspring.set_position(cell.x, cell.y)
    if not world.add_organism(offspring):
        return None

    world.record_birth(offspring)
    return offspring


# ============================================================================
# Per-kind Updates
# ============================================================================

def update_producer(world: 'Ecosystem', producer: Producer):
    if not producer.alive:
        return

    producer.photosynthesize()
    producer.increment_age()
    try_reproduce(world, producer)


def update_herbivore(world: 'Ecosystem', herbivore: Herbivore):
    if not herbivore.alive:
        return

    herbivore.apply_hunger()
    if not herbivore.alive:
        return

    food = find_food(world, herbivore)
    if food is not None and distance_to(herbivore, food) <= 1:
        eat(world, herbivore, food)
    else:
        approach(world, herbivore, food)

    herbivore.increment_age()
    try_reproduce(world, herbivore)


def update_carnivore(world: 'Ecosystem', carnivore: Carnivore):
    if not carnivore.alive:
        return

    carnivore.apply_hunger()
    if not carnivore.alive:
        return

    prey = find_food(world, carnivore)
    if prey is not None and distance_to(carnivore, prey) <= 1:
        hunt(world, carnivore, prey)
    elif prey is not None:
        chase(world, carnivore)
    else:
        move_randomly(world, carnivore)

    if not carnivore.alive:
        return

    carnivore.increment_age()
    try_reproduce(world, carnivore)


def chase(world: 'Ecosystem', carnivore: Carnivore):
    """
    Up to `speed` single steps, re-targeting the nearest prey before each.

    Stops early once adjacent to prey or when a step is blocked. A step
    that lands on prey is a hunt, successful or not, and ends the chase,
    so a carnivore never hunts more than once per tick.
    """
    for _ in range(carnivore.speed):
        prey = find_food(world, carnivore)
        if prey is None:
            move_randomly(world, carnivore)
            continue

        if distance_to(carnivore, prey) <= 1:
            break

        if approach(world, carnivore, prey) is not StepResult.MOVED or not carnivore.alive:
            break


_UPDATERS = {
    OrganismKind.PRODUCER: update_producer,
    OrganismKind.HERBIVORE: update_herbivore,
    OrganismKind.CARNIVORE: update_carnivore,
}


def update_organism(world: 'Ecosystem', organism: Organism):
    """Run one tick of organism's per-kind behavior against world"""
    _UPDATERS[organism.kind](world, organism)
