from typing import List, Optional

from pydantic import BaseModel, Field

from squad_battle.shared.board import Board
from squad_battle.shared.schemas import BattlePhase

FIRST_SIDE = 0
SECOND_SIDE = 1

class BattleState(BaseModel):
    """
    Full battle snapshot. This is what the host stores and what
    get_battle_info returns; it round-trips through JSON unchanged.
    """
    battle_id: int
    first_player: Optional[str] = None
    second_player: Optional[str] = None
    board: Board
    stake: int
    first_player_units: List[int] = Field(default_factory=list)
    second_player_units: List[int] = Field(default_factory=list)
    phase: BattlePhase = BattlePhase.WAITING_FOR_OPPONENT
    turn_owner: int = FIRST_SIDE
    next_unit_id: int = 0
    winner: Optional[str] = None

    def side_of(self, player: Optional[str]) -> Optional[int]:
        if player is None:
            return None
        if player == self.first_player:
            return FIRST_SIDE
        if player == self.second_player:
            return SECOND_SIDE
        return None

    def player_of(self, side: int) -> Optional[str]:
        return self.first_player if side == FIRST_SIDE else self.second_player

    def roster(self, side: int) -> List[int]:
        return self.first_player_units if side == FIRST_SIDE else self.second_player_units
