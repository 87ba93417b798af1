import logging
from copy import deepcopy
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel

from squad_battle.shared.board import NO_REMOVAL, Board
from squad_battle.shared.errors import (
    BattleFull, IllegalMove, IllegalPlacement, InsufficientStake,
    InvalidBoardSize, NotYourTurn, UnitNotOwned, WrongPhase,
)
from squad_battle.shared.grid_math import (
    Coord, jumped_cell, segment_axis, segment_distance, segments,
)
from squad_battle.shared.schemas import (
    MAX_BOARD_SIDE, MIN_BOARD_HEIGHT, MIN_BOARD_WIDTH, BattlePhase, Position,
    UnitKind, UnitPlacement,
)
from squad_battle.shared.state import FIRST_SIDE, SECOND_SIDE, BattleState
from squad_battle.shared.unit_stats import jump_multiplier, new_unit

logger = logging.getLogger(__name__)

# --- Constants ---
MAX_SQUAD_SIZE = 6
PLACED_UNIT_LEVEL = 1
FIRST_SIDE_MAX_COLUMN = 2
# Column 3 is no-man's-land: neither side may place there
SECOND_SIDE_MIN_COLUMN = MIN_BOARD_WIDTH - 1
MAX_SEGMENT_DISTANCE = 2


def check_board_size(width: int, height: int):
    if not MIN_BOARD_WIDTH <= width <= MAX_BOARD_SIDE:
        raise InvalidBoardSize(
            f"Width must be between {MIN_BOARD_WIDTH} and {MAX_BOARD_SIDE}, got {width}"
        )
    if not MIN_BOARD_HEIGHT <= height <= MAX_BOARD_SIDE:
        raise InvalidBoardSize(
            f"Height must be between {MIN_BOARD_HEIGHT} and {MAX_BOARD_SIDE}, got {height}"
        )


class MoveOutcome(BaseModel):
    state: BattleState
    damage: float
    removed_unit_ids: List[int]

    @property
    def winner(self) -> Optional[str]:
        return self.state.winner


def path_damage(board: Board, path: Sequence[Coord], base_damage: float) -> float:
    """
    Validates every segment of `path` against `board` and returns the damage
    the move will deal.

    A jumping segment replaces the running damage with
    base * (1 + 0.5 * (k + 1)); later jumps overwrite earlier ones and plain
    steps leave it alone. Raises IllegalMove on the first bad segment.
    """
    damage = base_damage
    for i, start, end in segments(path):
        axis = segment_axis(start, end)
        if axis is None:
            raise IllegalMove(f"Diagonal segment {start} -> {end}")

        distance = segment_distance(start, end, axis)
        if distance <= 0 or distance > MAX_SEGMENT_DISTANCE:
            raise IllegalMove(f"Segment {start} -> {end} covers {distance} cells")

        if distance == MAX_SEGMENT_DISTANCE:
            middle = jumped_cell(start, end, axis)
            if board.unit_at(*middle) is None:
                raise IllegalMove(f"Jump {start} -> {end} has nothing to jump over at {middle}")
            damage = base_damage * jump_multiplier(i)
    return damage


class BattleEngine:
    """
    Pure state transitions over BattleState snapshots.

    Every operation works on a deep copy of the snapshot it is given and
    returns that copy; the input is never touched, so a raised BattleError
    leaves the caller's state exactly as it was.
    """

    def create_battle(self, battle_id: int, creator: str, stake: int,
                      width: int, height: int) -> BattleState:
        check_board_size(width, height)
        state = BattleState(
            battle_id=battle_id,
            first_player=creator,
            board=Board.create(width, height),
            stake=stake,
        )
        logger.info(f"Battle {battle_id} created by {creator} ({width}x{height}, stake {stake})")
        return state

    def join_battle(self, state: BattleState, joiner: str, deposit: int) -> BattleState:
        if state.second_player is not None:
            raise BattleFull(f"Battle {state.battle_id} already has two players")
        if joiner == state.first_player:
            raise BattleFull("The creator cannot take the second seat")
        if deposit < state.stake:
            raise InsufficientStake(f"Deposit {deposit} is below the stake {state.stake}")

        next_state = deepcopy(state)
        next_state.second_player = joiner
        next_state.phase = BattlePhase.PLACING_UNITS
        logger.info(f"Battle {state.battle_id}: {joiner} joined")
        return next_state

    def place_units(self, state: BattleState, caller: str,
                    placements: Sequence[UnitPlacement]) -> BattleState:
        if state.phase != BattlePhase.PLACING_UNITS:
            raise WrongPhase(f"Cannot place units while battle is {state.phase.value}")

        side = state.side_of(caller)
        if side is None:
            raise IllegalPlacement(f"{caller} is not a player in battle {state.battle_id}")

        # 1. Validate the whole batch before anything is written
        self._check_placements(state, side, placements)

        # 2. Apply
        next_state = deepcopy(state)
        roster = next_state.roster(side)
        for placement in placements:
            unit = new_unit(placement.kind, PLACED_UNIT_LEVEL, next_state.next_unit_id)
            roster.append(unit.id)
            next_state.next_unit_id += 1
            next_state.board.place_unit(Position(x=placement.x, y=placement.y), unit)

        # 3. Both squads on the field -> fight
        if next_state.first_player_units and next_state.second_player_units:
            next_state.phase = BattlePhase.IN_PROGRESS

        logger.info(f"Battle {state.battle_id}: {caller} placed {len(placements)} units")
        return next_state

    def make_move(self, state: BattleState, caller: str, unit_id: int,
                  path: Sequence[Coord]) -> MoveOutcome:
        """
        Main Simulation Step.
        Args:
            state: Current BattleState snapshot
            caller: Player issuing the command
            unit_id: Unit to move
            path: Waypoints, the first being the unit's current cell
        """
        # 0. Who may move
        if state.phase != BattlePhase.IN_PROGRESS:
            raise WrongPhase(f"Cannot move while battle is {state.phase.value}")

        side = state.side_of(caller)
        if side is None or unit_id not in state.roster(side):
            raise UnitNotOwned(f"Unit {unit_id} does not belong to {caller}")
        if state.turn_owner != side:
            raise NotYourTurn(f"It is not {caller}'s turn")

        # 1. Path validation against the untouched board
        waypoints = [tuple(p) for p in path]
        damage, unit_kind = self._validate_path(state.board, unit_id, waypoints)

        # 2. Apply
        next_state = deepcopy(state)
        start, end = waypoints[0], waypoints[-1]
        next_state.board.move_unit(start, end)
        removed = self._resolve_damage(next_state, Position(x=end[0], y=end[1]), unit_kind, damage)

        # 3. Turn & victory
        next_state.turn_owner = SECOND_SIDE if side == FIRST_SIDE else FIRST_SIDE
        self._check_victory(next_state)

        logger.info(
            f"Battle {state.battle_id}: unit {unit_id} {start} -> {end}, "
            f"damage {damage}, removed {removed}"
        )
        return MoveOutcome(state=next_state, damage=damage, removed_unit_ids=removed)

    # --- Validation ---

    def _check_placements(self, state: BattleState, side: int,
                          placements: Sequence[UnitPlacement]):
        roster = state.roster(side)
        if len(placements) > MAX_SQUAD_SIZE or len(roster) + len(placements) > MAX_SQUAD_SIZE:
            raise IllegalPlacement(f"Max units is {MAX_SQUAD_SIZE}")

        board = state.board
        taken = set()
        for placement in placements:
            x, y = placement.x, placement.y
            if side == FIRST_SIDE:
                in_half = 0 <= x <= FIRST_SIDE_MAX_COLUMN
            else:
                in_half = SECOND_SIDE_MIN_COLUMN <= x < board.width
            if not in_half or not board.contains(x, y):
                raise IllegalPlacement(f"You can't place a unit on ({x}, {y})")
            if (x, y) in taken or board.unit_at(x, y) is not None:
                raise IllegalPlacement(f"Cell ({x}, {y}) is already taken")
            taken.add((x, y))

    def _validate_path(self, board: Board, unit_id: int,
                       path: List[Coord]) -> Tuple[float, UnitKind]:
        if len(path) < 2:
            raise IllegalMove("A move needs at least a start and an end waypoint")

        # Off-board waypoints raise PositionNotFound
        for x, y in path:
            board.cell_at(x, y)

        unit = board.unit_by_id(unit_id)
        start, end = path[0], path[-1]
        if board.unit_at(*start) is not unit:
            raise IllegalMove(f"Unit {unit_id} is not standing on {start}")

        damage = path_damage(board, path, unit.stats.damage)

        occupant = board.unit_at(*end)
        if end != start and occupant is not None:
            raise IllegalMove(f"Destination {end} is occupied by unit {occupant.id}")
        return damage, unit.kind

    # --- Damage & Victory ---

    def _resolve_damage(self, state: BattleState, target: Position,
                        kind: UnitKind, damage: float) -> List[int]:
        """Hits every occupied footprint cell, friend or foe, and prunes rosters."""
        removed = []
        for cell in state.board.damage_footprint(target, kind):
            if cell.unit is None:
                continue
            unit_id = state.board.apply_damage(cell.position, damage)
            if unit_id == NO_REMOVAL:
                continue
            removed.append(unit_id)
            if unit_id in state.first_player_units:
                state.first_player_units.remove(unit_id)
            elif unit_id in state.second_player_units:
                state.second_player_units.remove(unit_id)
        return removed

    def _check_victory(self, state: BattleState):
        if not state.first_player_units:
            state.winner = state.player_of(SECOND_SIDE)
            state.phase = BattlePhase.FINISHED
        elif not state.second_player_units:
            state.winner = state.player_of(FIRST_SIDE)
            state.phase = BattlePhase.FINISHED

        if state.phase == BattlePhase.FINISHED:
            logger.info(f"Battle {state.battle_id} finished, winner {state.winner}")
