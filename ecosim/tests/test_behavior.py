"""
Per-kind behavior: food search, movement, feeding, hunting, reproduction.

Verifies:
- Nearest-food search honors vision range and breaks ties by lowest id
- Stepping onto food is contact feeding; other occupants block
- Herbivore eats adjacent producer in one tick (10% rule, hunger first)
- Failed hunts cost half the hunger rate and leave the prey alive
- Carnivores chase up to `speed` cells and stop once adjacent
- Offspring land on an empty neighbor or are discarded

No fixtures - worlds are built empty with inline helpers and explicit seeds.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ecosim.simulation import Ecosystem
from ecosim.data_types import (
    EcosystemConfig, GridConfig, ReproductionConfig, HuntingConfig,
    SimulationConfig, OrganismKind
)
from ecosim.behavior import (
    find_food, move_towards, move_randomly, approach, hunt, eat, StepResult,
    try_reproduce, update_carnivore, chase
)


def make_world(width=10, height=10, seed=42, hunt_success_rate=0.8,
               producer_threshold=1000.0) -> Ecosystem:
    """Empty world: no initial population, no spontaneous producers"""
    config = EcosystemConfig(
        grid=GridConfig(width=width, height=height),
        hunting=HuntingConfig(success_rate=hunt_success_rate),
        reproduction=ReproductionConfig(
            producer_threshold=producer_threshold,
            producer_spawn_rate=0.0
        ),
        simulation=SimulationConfig(seed=seed),
    ).with_population(0, 0, 0)
    return Ecosystem(config)


def place(world, kind, x, y, energy=None):
    organism = world.create_organism(kind, x, y, energy=energy)
    assert world.add_organism(organism), f"Could not place {kind.value} at ({x},{y})"
    return organism


class TestFindFood:
    """Nearest-prey search."""

    def test_nearest_within_vision(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 5)
        near = place(world, OrganismKind.PRODUCER, 5, 7)
        place(world, OrganismKind.PRODUCER, 8, 8)

        assert find_food(world, herbivore) is near

    def test_out_of_vision_is_none(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 0, 0)
        place(world, OrganismKind.PRODUCER, 3, 3)  # distance 6 > vision 5

        assert find_food(world, herbivore) is None
        print("[OK] Vision range limits food search")

    def test_tie_goes_to_lowest_id(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 5)
        first = place(world, OrganismKind.PRODUCER, 7, 5)
        second = place(world, OrganismKind.PRODUCER, 3, 5)

        assert first.organism_id < second.organism_id
        assert find_food(world, herbivore) is first, "Equal distance should pick lowest id"

    def test_ignores_other_kinds(self):
        world = make_world()
        carnivore = place(world, OrganismKind.CARNIVORE, 5, 5)
        place(world, OrganismKind.PRODUCER, 5, 6)

        assert find_food(world, carnivore) is None, "Carnivores never target producers"

    def test_ignores_dead_prey(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 5)
        producer = place(world, OrganismKind.PRODUCER, 5, 6)
        producer.die()

        assert find_food(world, herbivore) is None


class TestMovement:
    """Single steps and contact feeding."""

    def test_move_towards_empty_cell(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 0, 0)

        assert move_towards(world, herbivore, 4, 4) is StepResult.MOVED

        assert herbivore.position == (1, 1)
        assert world.get_cell(1, 1).occupant is herbivore
        assert world.get_cell(0, 0).is_empty(), "Old cell must be released"

    def test_step_onto_producer_eats_it(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 0, 0, energy=50.0)
        producer = place(world, OrganismKind.PRODUCER, 1, 1, energy=30.0)

        assert move_towards(world, herbivore, 1, 1) is StepResult.ATE

        assert not producer.alive
        assert herbivore.position == (1, 1)
        assert world.get_cell(1, 1).occupant is herbivore
        assert abs(herbivore.energy - 53.0) < 1e-9, f"Expected 53.0, got {herbivore.energy}"
        print("[OK] Stepping onto food consumes it")

    def test_non_food_blocks(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 0, 0)
        carnivore = place(world, OrganismKind.CARNIVORE, 1, 1)

        assert move_towards(world, herbivore, 1, 1) is StepResult.BLOCKED

        assert herbivore.position == (0, 0)
        assert world.get_cell(1, 1).occupant is carnivore

    def test_move_randomly_when_surrounded(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 0, 0)
        for x, y in [(1, 0), (0, 1), (1, 1)]:
            place(world, OrganismKind.PRODUCER, x, y)

        assert not move_randomly(world, herbivore), "No empty neighbor, no move"
        assert herbivore.position == (0, 0)

    def test_move_randomly_stays_adjacent(self):
        world = make_world(seed=7)
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 5)

        assert move_randomly(world, herbivore)

        assert max(abs(herbivore.x - 5), abs(herbivore.y - 5)) == 1
        assert world.get_cell(5, 5).is_empty()


class TestHerbivoreTick:
    """End-to-end herbivore feeding through Ecosystem.step()."""

    def test_eats_adjacent_producer(self):
        world = make_world(width=10, height=10)
        producer = place(world, OrganismKind.PRODUCER, 2, 2, energy=100.0)
        herbivore = place(world, OrganismKind.HERBIVORE, 2, 3, energy=50.0)

        stats = world.step()

        # 50 - hunger 2 + 10% of 100 (producer already at cap if it went first)
        assert abs(herbivore.energy - 58.0) < 1e-9, f"Expected 58.0, got {herbivore.energy}"
        assert not producer.alive
        assert stats.producer_count == 0
        assert world.registry_size(OrganismKind.PRODUCER) == 0, "Eaten producer evicted at cleanup"
        assert stats.herbivore_count == 1
        print(f"[OK] Herbivore energy after meal: {herbivore.energy:.1f}")

    def test_starving_herbivore_is_removed(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 4, 4, energy=2.0)

        stats = world.step()

        assert not herbivore.alive
        assert stats.herbivore_count == 0
        assert world.get_cell(4, 4).is_empty()
        assert world.get_telemetry()['deaths_this_tick'] == 1


class TestHunting:
    """Probabilistic hunts."""

    def test_failed_hunt_penalty(self):
        world = make_world(hunt_success_rate=0.0)
        carnivore = place(world, OrganismKind.CARNIVORE, 5, 5, energy=80.0)
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 6, energy=50.0)

        assert not hunt(world, carnivore, herbivore)

        assert abs(carnivore.energy - 78.5) < 1e-9, f"Expected 80 - 3 * 0.5, got {carnivore.energy}"
        assert herbivore.alive
        assert herbivore.energy == 50.0
        assert world.get_telemetry()['total_failed_hunts'] == 1
        print("[OK] Failed hunt costs half the hunger rate")

    def test_successful_hunt(self):
        world = make_world(hunt_success_rate=1.0)
        carnivore = place(world, OrganismKind.CARNIVORE, 5, 5, energy=80.0)
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 6, energy=50.0)

        assert hunt(world, carnivore, herbivore)

        assert abs(carnivore.energy - 85.0) < 1e-9
        assert not herbivore.alive
        assert world.get_cell(5, 6).is_empty(), "Prey cell released on kill"

    def test_adjacent_failed_hunt_in_update(self):
        world = make_world(hunt_success_rate=0.0)
        carnivore = place(world, OrganismKind.CARNIVORE, 5, 5, energy=80.0)
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 6, energy=50.0)

        update_carnivore(world, carnivore)

        # hunger 3 then penalty 1.5
        assert abs(carnivore.energy - 75.5) < 1e-9, f"Expected 75.5, got {carnivore.energy}"
        assert carnivore.position == (5, 5), "Adjacent hunt does not move"
        assert herbivore.alive

    def test_eat_requires_prey_kind(self):
        world = make_world()
        carnivore = place(world, OrganismKind.CARNIVORE, 5, 5)
        producer = place(world, OrganismKind.PRODUCER, 5, 6)

        assert not eat(world, carnivore, producer)
        assert producer.alive


class TestChase:
    """Carnivore multi-step pursuit."""

    def test_chase_covers_speed_cells(self):
        world = make_world()
        carnivore = place(world, OrganismKind.CARNIVORE, 0, 0, energy=80.0)
        place(world, OrganismKind.HERBIVORE, 4, 0)

        update_carnivore(world, carnivore)

        assert carnivore.position == (2, 0), f"Expected (2, 0), got {carnivore.position}"
        assert abs(carnivore.energy - 77.0) < 1e-9

    def test_chase_stops_when_adjacent(self):
        world = make_world()
        carnivore = place(world, OrganismKind.CARNIVORE, 0, 0)
        herbivore = place(world, OrganismKind.HERBIVORE, 2, 0)

        chase(world, carnivore)

        assert carnivore.position == (1, 0)
        assert herbivore.alive, "Reaching adjacency does not hunt in the same chase"
        print("[OK] Chase stops next to prey")

    def test_missed_contact_does_not_wander(self):
        world = make_world(hunt_success_rate=0.0)
        carnivore = place(world, OrganismKind.CARNIVORE, 5, 5, energy=80.0)
        herbivore = place(world, OrganismKind.HERBIVORE, 6, 6)

        assert approach(world, carnivore, herbivore) is StepResult.MISSED

        assert carnivore.position == (5, 5), "Failed hunt leaves the carnivore in place"
        assert abs(carnivore.energy - 78.5) < 1e-9
        assert herbivore.alive

    def test_one_failed_hunt_per_tick(self):
        """A diagonal contact hunt ends movement, whatever the speed"""
        for seed in range(50):
            world = make_world(width=12, height=12, seed=seed, hunt_success_rate=0.0)
            carnivore = place(world, OrganismKind.CARNIVORE, 5, 5, energy=80.0)
            carnivore.speed = 3
            herbivore = place(world, OrganismKind.HERBIVORE, 6, 6)

            update_carnivore(world, carnivore)

            hunts = world.get_telemetry()['total_failed_hunts']
            assert hunts == 1, f"Seed {seed}: carnivore hunted {hunts} times in one tick"
            # hunger 3 plus a single 1.5 penalty
            assert abs(carnivore.energy - 75.5) < 1e-9, f"Seed {seed}: energy {carnivore.energy}"
            assert carnivore.position == (5, 5)
            assert herbivore.alive

        print("[OK] Failed contact hunt ends the chase")

    def test_successful_contact_ends_chase(self):
        world = make_world(width=12, height=12, hunt_success_rate=1.0)
        carnivore = place(world, OrganismKind.CARNIVORE, 5, 5, energy=80.0)
        carnivore.speed = 3
        herbivore = place(world, OrganismKind.HERBIVORE, 6, 6, energy=50.0)
        place(world, OrganismKind.HERBIVORE, 8, 8)

        update_carnivore(world, carnivore)

        assert not herbivore.alive
        assert carnivore.position == (6, 6), "Carnivore moves into the cell of its kill and stops"
        assert abs(carnivore.energy - 82.0) < 1e-9, f"Expected 80 - 3 + 5, got {carnivore.energy}"


class TestReproducePlacement:
    """Offspring placement."""

    def test_offspring_on_empty_neighbor(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 5, 5, energy=120.0)

        offspring = try_reproduce(world, herbivore)

        assert offspring is not None
        assert offspring.alive
        assert max(abs(offspring.x - 5), abs(offspring.y - 5)) == 1
        assert world.get_cell(offspring.x, offspring.y).occupant is offspring
        assert herbivore.energy == 70.0
        assert offspring.energy == 25.0
        assert offspring.organism_id != herbivore.organism_id

    def test_no_space_discards_offspring(self):
        world = make_world()
        herbivore = place(world, OrganismKind.HERBIVORE, 0, 0, energy=120.0)
        for x, y in [(1, 0), (0, 1), (1, 1)]:
            place(world, OrganismKind.CARNIVORE, x, y)

        assert try_reproduce(world, herbivore) is None

        assert herbivore.energy == 70.0, "Parent pays the cost even without space"
        assert world.registry_size(OrganismKind.HERBIVORE) == 1
        print("[OK] Offspring discarded when no neighbor is free")
