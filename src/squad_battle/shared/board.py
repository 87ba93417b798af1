from typing import Dict, List, Optional

from pydantic import BaseModel, PrivateAttr

from squad_battle.shared.errors import CellOccupied, PositionNotFound, UnitNotFound
from squad_battle.shared.grid_math import Coord, footprint
from squad_battle.shared.schemas import Cell, Position, Unit, UnitKind

# apply_damage result when nobody was removed
NO_REMOVAL = -1

class Board(BaseModel):
    """
    The desk: one Cell per (x, y) stored column by column, so the cell for
    (x, y) sits at index x * height + y. Unit ids are indexed privately and
    the index is rebuilt whenever a board is loaded from a snapshot.
    """
    width: int
    height: int
    cells: List[Cell]

    _unit_cells: Dict[int, int] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._unit_cells = {
            cell.unit.id: i for i, cell in enumerate(self.cells) if cell.unit is not None
        }

    @classmethod
    def create(cls, width: int, height: int) -> 'Board':
        if width <= 0 or height <= 0:
            raise ValueError(f"Board dimensions must be positive, got {width}x{height}")
        cells = []
        index = 0
        for x in range(width):
            for y in range(height):
                cells.append(Cell(position=Position(x=x, y=y, tag=index)))
                index += 1
        return cls(width=width, height=height, cells=cells)

    # --- Spatial Queries ---

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _index(self, x: int, y: int) -> int:
        if not self.contains(x, y):
            raise PositionNotFound(f"No cell at ({x}, {y}) on a {self.width}x{self.height} board")
        return x * self.height + y

    def cell_at(self, x: int, y: int) -> Cell:
        return self.cells[self._index(x, y)]

    def unit_at(self, x: int, y: int) -> Optional[Unit]:
        return self.cell_at(x, y).unit

    def unit_by_id(self, unit_id: int) -> Unit:
        index = self._unit_cells.get(unit_id)
        if index is None:
            raise UnitNotFound(f"No unit with id {unit_id} on this board")
        return self.cells[index].unit

    def units(self) -> List[Unit]:
        return [cell.unit for cell in self.cells if cell.unit is not None]

    def damage_footprint(self, target: Position, kind: UnitKind) -> List[Cell]:
        """Cells hit by an attack of `kind` centred on `target`; off-grid cells are skipped."""
        return [
            self.cell_at(x, y)
            for x, y in footprint(target.as_tuple(), kind)
            if self.contains(x, y)
        ]

    # --- Mutation ---

    def _install(self, index: int, unit: Optional[Unit]) -> None:
        cell = self.cells[index]
        if cell.unit is not None:
            self._unit_cells.pop(cell.unit.id, None)
        cell.unit = unit
        if unit is not None:
            unit.position = Position(x=cell.position.x, y=cell.position.y, tag=cell.position.tag)
            self._unit_cells[unit.id] = index

    def place_unit(self, position: Position, unit: Unit) -> None:
        index = self._index(position.x, position.y)
        if self.cells[index].unit is not None:
            raise CellOccupied(f"Cell ({position.x}, {position.y}) already holds a unit")
        self._install(index, unit)

    def move_unit(self, start: Coord, end: Coord) -> None:
        """Lifts whatever stands on `start` and puts it on `end`. No rule checks."""
        src = self._index(*start)
        dst = self._index(*end)
        unit = self.cells[src].unit
        self._install(src, None)
        self._install(dst, unit)

    def apply_damage(self, position: Position, amount: float) -> int:
        """
        Hurts the occupant of `position`. Returns the id of a unit that dropped
        to 0 hp or below (it is taken off the board), otherwise NO_REMOVAL.
        """
        index = self._index(position.x, position.y)
        unit = self.cells[index].unit
        if unit is None:
            return NO_REMOVAL
        unit.stats.hp -= amount
        if unit.stats.hp <= 0:
            self._install(index, None)
            return unit.id
        return NO_REMOVAL
