from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator

# --- Enums (Strict Vocabulary) ---

class UnitKind(str, Enum):
    ORC = "Orc"
    MAGE = "Mage"
    SKELETON = "Skeleton"

    @classmethod
    def from_code(cls, code: int) -> "UnitKind":
        """Numeric wire codes used by placement triples."""
        try:
            return UNIT_KIND_CODES[code]
        except KeyError:
            raise ValueError(f"Unknown unit type code: {code}") from None

class BattlePhase(str, Enum):
    WAITING_FOR_OPPONENT = "WaitingForOpponent"
    PLACING_UNITS = "PlacingUnits"
    IN_PROGRESS = "InProgress"
    FINISHED = "Finished"

UNIT_KIND_CODES = {
    0: UnitKind.MAGE,
    1: UnitKind.ORC,
    2: UnitKind.SKELETON,
}

# Board limits. Coordinates fit in a signed byte, and the second side needs
# at least one column past no-man's-land (column 3)
MAX_BOARD_SIDE = 127
MIN_BOARD_WIDTH = 5
MIN_BOARD_HEIGHT = 1

# --- Basic Primitives ---

class Position(BaseModel):
    """
    Grid coordinate. The tag is a transient marker (the cell's sequential
    index on a board, -1 for an unplaced unit) and never takes part in
    equality or hashing.
    """
    x: int
    y: int
    tag: int = 0

    def __hash__(self):
        return hash((self.x, self.y))

    def __eq__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)

class UnitStats(BaseModel):
    hp: float
    damage: float
    max_hp: float

class Unit(BaseModel):
    id: int
    kind: UnitKind
    level: int
    stats: UnitStats
    position: Position = Field(default_factory=lambda: Position(x=0, y=0, tag=-1))

class Cell(BaseModel):
    position: Position
    unit: Optional[Unit] = None

# --- Commands (host -> engine) ---

class UnitPlacement(BaseModel):
    """One (kind, x, y) triple of a placement batch."""
    kind: UnitKind
    x: int
    y: int

    @field_validator('kind', mode='before')
    def accept_numeric_code(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return UnitKind.from_code(v)
        return v

class CreateBattleRequest(BaseModel):
    stake: int = Field(ge=0)
    # Omitted dimensions fall back to the host's configured board size
    width: Optional[int] = Field(default=None, ge=MIN_BOARD_WIDTH, le=MAX_BOARD_SIDE)
    height: Optional[int] = Field(default=None, ge=MIN_BOARD_HEIGHT, le=MAX_BOARD_SIDE)

class JoinBattleRequest(BaseModel):
    deposit: int = Field(ge=0)

class PlaceUnitsRequest(BaseModel):
    units: List[UnitPlacement]

class MoveRequest(BaseModel):
    unit_id: int
    path: List[Tuple[int, int]]

# --- Responses (engine/host -> caller) ---

class CreateBattleResponse(BaseModel):
    battle_id: int

class JoinBattleResponse(BaseModel):
    joined: bool

class OpenBattle(BaseModel):
    stake: int
    battle_id: int

class LastBattle(BaseModel):
    battle_id: Optional[int] = None

class MoveResult(BaseModel):
    """What a single accepted move did, without the full snapshot."""
    damage: float
    removed_unit_ids: List[int]
    turn_owner: int
    phase: BattlePhase
    winner: Optional[str] = None
