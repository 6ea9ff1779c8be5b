"""
Ecosystem simulation kernel.

The Ecosystem owns the grid and the per-kind organism registries,
executes one simulation step, and produces statistics snapshots.
"""

import itertools
from collections import deque
import threading
import time
import numpy as np
from typing import Dict, Iterator, List, Optional

from .entity import Organism
from .data_types import EcosystemConfig, EcosystemStats, OrganismKind
from .spatial import Cell, Grid
from .spawning import create_organism, spawn_random, spawn_population
from .behavior import update_organism
from .rng import make_rng, shuffled
from .constants import (
    TICK_TIME_WINDOW,
    CELL_PRODUCER,
    CELL_HERBIVORE,
    CELL_CARNIVORE,
)

KIND_ORDER = (OrganismKind.PRODUCER, OrganismKind.HERBIVORE, OrganismKind.CARNIVORE)

CELL_CODES = {
    OrganismKind.PRODUCER: CELL_PRODUCER,
    OrganismKind.HERBIVORE: CELL_HERBIVORE,
    OrganismKind.CARNIVORE: CELL_CARNIVORE,
}


class Ecosystem:
    """
    The world: grid, registries, and the tick step.

    Registries are dicts keyed by organism_id (membership unique, order
    irrelevant). Dead organisms stay registered until the end-of-tick
    cleanup so nothing is evicted while the tick is iterating.

    Thread safety: step() holds an RLock for the whole tick and every
    public read takes the same lock and returns copies, so external
    readers never observe a registry mid-mutation.
    """

    def __init__(self, config: EcosystemConfig, rng: Optional[np.random.Generator] = None):
        """
        Args:
            config: Ecosystem configuration
            rng: Optional Generator (defaults to one seeded from config.simulation.seed)
        """
        self.config = config
        self.rng: np.random.Generator = rng if rng is not None else make_rng(config.simulation.seed)
        self.grid = Grid(config.grid.width, config.grid.height)

        self.tick_count: int = 0
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

        self._registries: Dict[OrganismKind, Dict[int, Organism]] = {
            kind: {} for kind in KIND_ORDER
        }

        # Performance metrics
        self._tick_times: deque = deque(maxlen=TICK_TIME_WINDOW)

        # Ecosystem telemetry
        self._telemetry: Dict = {}
        self._reset_telemetry()

    def _reset_telemetry(self):
        self._telemetry = {
            'births_this_tick': 0,
            'deaths_this_tick': 0,
            'meals_this_tick': 0,
            'failed_hunts_this_tick': 0,
            'spawns_this_tick': 0,
            'update_failures_this_tick': 0,
            'total_births': 0,
            'total_deaths': 0,
            'total_meals': 0,
            'total_failed_hunts': 0,
            'total_spawns': 0,
            'total_update_failures': 0,
            'energy_transferred': 0.0,
        }

    @property
    def width(self) -> int:
        return self.grid.width

    @property
    def height(self) -> int:
        return self.grid.height

    def next_organism_id(self) -> int:
        """Next identity from this world's monotonic sequence"""
        return next(self._ids)

    # ========================================================================
    # Population management
    # ========================================================================

    def initialize(self):
        """Clear the world and spawn the configured initial population"""
        with self._lock:
            self.clear()
            placed = spawn_population(self)

        print(f"[OK] Ecosystem initialized: {self.width}x{self.height} grid, "
              f"producers={placed['producer']}, herbivores={placed['herbivore']}, "
              f"carnivores={placed['carnivore']}")

    def clear(self):
        """Empty grid and registries and reset the tick counter"""
        with self._lock:
            self.grid.clear()
            for registry in self._registries.values():
                registry.clear()
            self.tick_count = 0
            self._tick_times.clear()
            self._reset_telemetry()

    def create_organism(self, kind: OrganismKind, x: int, y: int,
                        energy: Optional[float] = None) -> Organism:
        """Build (but do not place) an organism with a fresh identity"""
        return create_organism(kind, self.next_organism_id(), x, y, self.config, energy)

    def spawn_random_organism(self, kind: OrganismKind) -> Optional[Organism]:
        """Place a new organism of kind at a random empty cell (None if full)"""
        with self._lock:
            return spawn_random(self, kind)

    def add_organism(self, organism: Organism) -> bool:
        """
        Place organism at its (x, y) and register it.

        Returns:
            False (no state change) if the position is out of bounds, the
            cell holds a living organism, or the organism is already registered
        """
        if organism is None or not organism.alive:
            return False

        with self._lock:
            cell = self.grid.get_cell(organism.x, organism.y)
            if cell is None:
                return False

            registry = self._registries[organism.kind]
            if organism.organism_id in registry:
                return False

            if not cell.set_occupant(organism):
                return False

            registry[organism.organism_id] = organism
            return True

    def remove_organism(self, organism: Organism):
        """Evict organism from its registry and clear its cell if it still owns it"""
        if organism is None:
            return

        with self._lock:
            self.release_cell(organism)
            self._registries[organism.kind].pop(organism.organism_id, None)

    def release_cell(self, organism: Organism):
        """Clear organism's cell only if that cell still points at it"""
        cell = self.grid.get_cell(organism.x, organism.y)
        if cell is not None and cell.holds(organism):
            cell.clear()

    def move_organism(self, organism: Organism, x: int, y: int) -> bool:
        """
        Move organism to (x, y), keeping position and cell in agreement.

        Returns:
            False (no change) if the target is out of bounds or occupied
        """
        with self._lock:
            target = self.grid.get_cell(x, y)
            if target is None or not target.is_empty():
                return False

            self.release_cell(organism)
            target.set_occupant(organism)
            return True

    # ========================================================================
    # Telemetry hooks (called from behavior.py)
    # ========================================================================

    def record_birth(self, offspring: Organism):
        self._telemetry['births_this_tick'] += 1
        self._telemetry['total_births'] += 1

    def record_feeding(self, consumer: Organism, food: Organism, gained: float):
        self._telemetry['meals_this_tick'] += 1
        self._telemetry['total_meals'] += 1
        self._telemetry['energy_transferred'] += gained

    def record_failed_hunt(self, carnivore: Organism, prey: Organism):
        self._telemetry['failed_hunts_this_tick'] += 1
        self._telemetry['total_failed_hunts'] += 1

    def get_telemetry(self) -> dict:
        with self._lock:
            return dict(self._telemetry)

    # ========================================================================
    # Tick
    # ========================================================================

    def step(self) -> EcosystemStats:
        """
        Advance the ecosystem by one tick.

        1. Increment tick counter
        2. With probability producer_spawn_rate, spawn one producer
        3. Update every living organism once, in uniformly shuffled order
           (no systematic first-mover advantage)
        4. Evict every dead organism from registries and grid
        5. Return the statistics snapshot

        An exception from one organism's update is reported and treated
        as that organism doing nothing this tick.

        Returns:
            Statistics after the tick
        """
        start_time = time.perf_counter()

        with self._lock:
            self.tick_count += 1
            for key in self._telemetry:
                if key.endswith('_this_tick'):
                    self._telemetry[key] = 0

            if self.rng.random() < self.config.reproduction.producer_spawn_rate:
                if spawn_random(self, OrganismKind.PRODUCER) is not None:
                    self._telemetry['spawns_this_tick'] += 1
                    self._telemetry['total_spawns'] += 1

            living = [
                organism
                for kind in KIND_ORDER
                for organism in self._registries[kind].values()
                if organism.alive
            ]

            for organism in shuffled(self.rng, living):
                if organism.alive:
                    self._update_safely(organism)

            deaths = self._cleanup_dead()
            self._telemetry['deaths_this_tick'] = deaths
            self._telemetry['total_deaths'] += deaths

            stats = self._compute_statistics()

        elapsed = time.perf_counter() - start_time
        self._record_tick_time(elapsed)

        return stats

    def _update_safely(self, organism: Organism):
        try:
            update_organism(self, organism)
        except Exception as e:
            self._telemetry['update_failures_this_tick'] += 1
            self._telemetry['total_update_failures'] += 1
            print(f"[WARN] Tick {self.tick_count}: update failed for {organism!r}: {e}")

    def _cleanup_dead(self) -> int:
        """
        Evict dead organisms from every registry.

        A dead organism's cell is cleared only if it still owns that cell,
        since the cell may already hold whoever moved in.

        Returns:
            Number of organisms evicted
        """
        evicted = 0
        for registry in self._registries.values():
            dead = [organism for organism in registry.values() if not organism.alive]
            for organism in dead:
                self.release_cell(organism)
                del registry[organism.organism_id]
            evicted += len(dead)
        return evicted

    # ========================================================================
    # Read-only queries
    # ========================================================================

    def get_cell(self, x: int, y: int) -> Optional[Cell]:
        """Bounds-checked cell lookup (None outside the grid)"""
        return self.grid.get_cell(x, y)

    def get_empty_cells(self) -> List[Cell]:
        with self._lock:
            return self.grid.empty_cells()

    def get_empty_neighbors(self, x: int, y: int) -> List[Cell]:
        with self._lock:
            return self.grid.empty_neighbors(x, y)

    def iter_organisms(self, kind: OrganismKind) -> Iterator[Organism]:
        """
        Iterate a registry in place.

        For use inside a tick only; the caller must not add or remove
        organisms while iterating. External readers use get_organisms().
        """
        return iter(self._registries[kind].values())

    def get_organisms(self, kind: OrganismKind) -> List[Organism]:
        """Copy of the living organisms of kind"""
        with self._lock:
            return [o for o in self._registries[kind].values() if o.alive]

    def get_producers(self) -> List[Organism]:
        return self.get_organisms(OrganismKind.PRODUCER)

    def get_herbivores(self) -> List[Organism]:
        return self.get_organisms(OrganismKind.HERBIVORE)

    def get_carnivores(self) -> List[Organism]:
        return self.get_organisms(OrganismKind.CARNIVORE)

    def registry_size(self, kind: OrganismKind) -> int:
        """Registered organisms of kind, dead ones included until cleanup"""
        with self._lock:
            return len(self._registries[kind])

    def get_statistics(self) -> EcosystemStats:
        with self._lock:
            return self._compute_statistics()

    def _compute_statistics(self) -> EcosystemStats:
        counts = {}
        energies = {}
        for kind in KIND_ORDER:
            values = np.array(
                [o.energy for o in self._registries[kind].values() if o.alive],
                dtype=np.float64
            )
            counts[kind] = int(values.size)
            energies[kind] = float(values.sum()) if values.size else 0.0

        def average(kind: OrganismKind) -> float:
            return energies[kind] / counts[kind] if counts[kind] else 0.0

        return EcosystemStats(
            tick=self.tick_count,
            producer_count=counts[OrganismKind.PRODUCER],
            herbivore_count=counts[OrganismKind.HERBIVORE],
            carnivore_count=counts[OrganismKind.CARNIVORE],
            producer_energy=energies[OrganismKind.PRODUCER],
            herbivore_energy=energies[OrganismKind.HERBIVORE],
            carnivore_energy=energies[OrganismKind.CARNIVORE],
            total_energy=sum(energies.values()),
            average_producer_energy=average(OrganismKind.PRODUCER),
            average_herbivore_energy=average(OrganismKind.HERBIVORE),
            average_carnivore_energy=average(OrganismKind.CARNIVORE)
        )

    def grid_snapshot(self) -> np.ndarray:
        """
        Occupancy codes for renderers.

        Returns:
            (width, height) int8 array: 0 empty, 1 producer, 2 herbivore, 3 carnivore
        """
        with self._lock:
            return self.grid.occupancy_array(CELL_CODES)

    # ========================================================================
    # Timing
    # ========================================================================

    def get_tick_stats(self) -> dict:
        """
        Step() wall-clock timing over the last TICK_TIME_WINDOW ticks.

        Returns:
            Dict with tick_count, avg_tick_time_ms, last_tick_time_ms
            (both 0.0 before the first tick)
        """
        with self._lock:
            times = list(self._tick_times)
            tick_count = self.tick_count

        avg_ms = float(np.mean(times)) * 1000.0 if times else 0.0
        last_ms = times[-1] * 1000.0 if times else 0.0
        return {
            'tick_count': tick_count,
            'avg_tick_time_ms': avg_ms,
            'last_tick_time_ms': last_ms
        }

    def _record_tick_time(self, elapsed: float):
        """Append one step() duration in seconds; the deque drops the oldest"""
        with self._lock:
            self._tick_times.append(elapsed)

    def print_tick_summary(self):
        """One console line: tick, step timing, and living producers/herbivores/carnivores"""
        stats = self.get_tick_stats()
        snapshot = self.get_statistics()
        print(f"Tick {stats['tick_count']:5d} | "
              f"step avg {stats['avg_tick_time_ms']:6.3f} ms, last {stats['last_tick_time_ms']:6.3f} ms | "
              f"P/H/C: {snapshot.producer_count}/{snapshot.herbivore_count}/{snapshot.carnivore_count}")
