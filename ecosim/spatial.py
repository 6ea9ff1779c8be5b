"""
Spatial grid for the ecosystem.

A fixed width x height array of cells, each holding at most one organism.
An organism's (x, y) and its cell's occupant must always agree; every
placement goes through Cell.set_occupant(), which writes both sides.
"""

import numpy as np
from typing import List, Optional, Tuple, TYPE_CHECKING

from .constants import NEIGHBOR_OFFSETS, CELL_EMPTY

if TYPE_CHECKING:
    from .entity import Organism


def manhattan_distance(x1: int, y1: int, x2: int, y2: int) -> int:
    """Manhattan (L1) distance between two grid points"""
    return abs(x1 - x2) + abs(y1 - y2)


def step_towards(x: int, y: int, target_x: int, target_y: int) -> Tuple[int, int]:
    """
    Single-step offset toward a target.

    Moves along the sign of the difference on each axis simultaneously,
    so diagonal steps are allowed.

    Returns:
        (dx, dy) with each component in {-1, 0, 1}
    """
    dx = (target_x > x) - (target_x < x)
    dy = (target_y > y) - (target_y < y)
    return dx, dy


class Cell:
    """
    One grid square.

    The occupant is cleared lazily whenever read if it is no longer alive,
    so "empty" means no occupant or a dead occupant.
    """

    __slots__ = ('x', 'y', '_occupant')

    def __init__(self, x: int, y: int):
        self.x = x
        self.y = y
        self._occupant: Optional['Organism'] = None

    @property
    def occupant(self) -> Optional['Organism']:
        if self._occupant is not None and not self._occupant.alive:
            self._occupant = None
        return self._occupant

    def is_empty(self) -> bool:
        return self.occupant is None

    def holds(self, organism: 'Organism') -> bool:
        """True if this cell's occupant slot points at exactly this organism (alive or not)"""
        return self._occupant is organism

    def set_occupant(self, organism: 'Organism') -> bool:
        """
        Place organism here and update its position.

        Returns:
            False (no change) if the cell is occupied by a living organism
        """
        if not self.is_empty():
            return False
        self._occupant = organism
        organism.set_position(self.x, self.y)
        return True

    def clear(self):
        self._occupant = None

    def __repr__(self) -> str:
        occupant = self.occupant
        if occupant is None:
            return f"Cell({self.x},{self.y}): empty"
        return f"Cell({self.x},{self.y}): {occupant.kind.value}"


class Grid:
    """
    Fixed-size 2-D cell array indexed as grid[x][y].

    Owns no organisms; it only records which living organism sits where.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self._cells: List[List[Cell]] = [
            [Cell(x, y) for y in range(height)] for x in range(width)
        ]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_cell(self, x: int, y: int) -> Optional[Cell]:
        """Bounds-checked lookup, None outside the grid"""
        if not self.in_bounds(x, y):
            return None
        return self._cells[x][y]

    def empty_cells(self) -> List[Cell]:
        """All empty cells in column-major order"""
        return [cell for column in self._cells for cell in column if cell.is_empty()]

    def neighbors(self, x: int, y: int) -> List[Cell]:
        """In-bounds 8-neighbors of (x, y)"""
        result = []
        for dx, dy in NEIGHBOR_OFFSETS:
            cell = self.get_cell(x + dx, y + dy)
            if cell is not None:
                result.append(cell)
        return result

    def empty_neighbors(self, x: int, y: int) -> List[Cell]:
        """In-bounds, empty 8-neighbors of (x, y)"""
        return [cell for cell in self.neighbors(x, y) if cell.is_empty()]

    def clear(self):
        for column in self._cells:
            for cell in column:
                cell.clear()

    def occupancy_array(self, codes: dict) -> np.ndarray:
        """
        Encode the grid as a (width, height) int8 array.

        Args:
            codes: OrganismKind -> integer code

        Returns:
            Array with CELL_EMPTY where no living organism sits
        """
        snapshot = np.full((self.width, self.height), CELL_EMPTY, dtype=np.int8)
        for column in self._cells:
            for cell in column:
                occupant = cell.occupant
                if occupant is not None:
                    snapshot[cell.x, cell.y] = codes[occupant.kind]
        return snapshot
