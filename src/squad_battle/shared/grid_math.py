"""
Square Grid Math Library
System: integer (x, y) cells, x grows to the right, y grows downwards.
Movement is axis-aligned only; attack footprints are fixed offset sets.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from squad_battle.shared.schemas import UnitKind

Coord = Tuple[int, int]

@dataclass(frozen=True, eq=True)
class Step:
    """
    Immutable grid offset.
    Frozen allows this to be used in constant tables and as dictionary keys.
    """
    dx: int
    dy: int

    def __add__(self, other: 'Step') -> 'Step':
        return Step(self.dx + other.dx, self.dy + other.dy)

    def __mul__(self, k: int) -> 'Step':
        return Step(self.dx * k, self.dy * k)

    def apply(self, coord: Coord) -> Coord:
        return (coord[0] + self.dx, coord[1] + self.dy)

    def __repr__(self):
        return f"Step({self.dx}, {self.dy})"

# --- Constants ---

# Axis of a single path segment
AXIS_X = "x"
AXIS_Y = "y"

# Orthogonal neighbours, in the order footprints list them
EAST, SOUTH, WEST, NORTH = Step(1, 0), Step(0, 1), Step(-1, 0), Step(0, -1)

ORC_FOOTPRINT = (
    EAST, SOUTH, WEST, NORTH,
    Step(1, 1), Step(-1, -1), Step(-1, 1), Step(1, -1),
)

MAGE_FOOTPRINT = (
    EAST, EAST * 2, WEST, WEST * 2,
    SOUTH, SOUTH * 2, NORTH, NORTH * 2,
)

SKELETON_FOOTPRINT = (EAST, WEST, SOUTH, NORTH)

FOOTPRINTS: Dict[UnitKind, Tuple[Step, ...]] = {
    UnitKind.ORC: ORC_FOOTPRINT,
    UnitKind.MAGE: MAGE_FOOTPRINT,
    UnitKind.SKELETON: SKELETON_FOOTPRINT,
}

# --- Segment Geometry ---

def segment_axis(a: Coord, b: Coord) -> Optional[str]:
    """
    Axis a segment travels along, or None for a diagonal.
    A segment that does not move at all reports the y axis (distance 0).
    """
    if a[0] == b[0]:
        return AXIS_Y
    if a[1] == b[1]:
        return AXIS_X
    return None

def segment_distance(a: Coord, b: Coord, axis: str) -> int:
    if axis == AXIS_X:
        return abs(a[0] - b[0])
    return abs(a[1] - b[1])

def jumped_cell(a: Coord, b: Coord, axis: str) -> Coord:
    """The cell one step from the lower end of the segment along its axis."""
    if axis == AXIS_X:
        return (min(a[0], b[0]) + 1, a[1])
    return (a[0], min(a[1], b[1]) + 1)

def segments(path: Sequence[Coord]) -> Iterator[Tuple[int, Coord, Coord]]:
    """Yields (index, start, end) for each consecutive waypoint pair."""
    for i in range(len(path) - 1):
        yield i, tuple(path[i]), tuple(path[i + 1])

# --- Range & Area ---

def footprint(center: Coord, kind: UnitKind) -> List[Coord]:
    """
    Every coordinate an attack centred on `center` reaches, on or off the grid.
    The centre itself is never part of a footprint.
    """
    return [step.apply(center) for step in FOOTPRINTS[kind]]
