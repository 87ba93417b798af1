import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from squad_battle.server.config import Settings
from squad_battle.server.engine import BattleEngine, MoveOutcome, check_board_size
from squad_battle.server.models import BattleRecord, Payout, PlayerPointer
from squad_battle.shared.errors import (
    BattleError, BattleNotFound, InsufficientStake, NoOpenBattle,
)
from squad_battle.shared.grid_math import Coord
from squad_battle.shared.schemas import BattlePhase, OpenBattle, UnitPlacement
from squad_battle.shared.state import BattleState

logger = logging.getLogger(__name__)

# (winner, amount) -> None; settles the pot outside the engine
PayoutHook = Callable[[str, int], None]


class BattleHost:
    """
    Owns everything around the engine: snapshot storage, one-at-a-time
    access per battle, open-battle discovery and the payout trigger.

    Each state-changing call holds the battle's lock for the whole
    load -> apply -> store cycle and runs inside a single transaction.
    """

    def __init__(self, session_factory: sessionmaker, settings: Settings,
                 engine: Optional[BattleEngine] = None,
                 payout: Optional[PayoutHook] = None):
        self.session_factory = session_factory
        self.settings = settings
        self.engine = engine or BattleEngine()
        self._payout = payout
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # --- Helpers ---

    def _stored_phase(self, battle_id: int) -> str:
        with self.session_factory() as session:
            phase = session.scalar(select(BattleRecord.phase).where(BattleRecord.id == battle_id))
        if phase is None:
            raise BattleNotFound(f"Battle {battle_id} not found")
        return phase

    @contextmanager
    def _battle_lock(self, battle_id: int) -> Iterator[None]:
        """
        Locks are only handed out for stored, unfinished battles. A finished
        battle rejects every write, so it runs unlocked and keeps no entry.
        """
        if self._stored_phase(battle_id) == BattlePhase.FINISHED.value:
            yield
            return
        with self._locks_guard:
            lock = self._locks.setdefault(battle_id, threading.Lock())
        with lock:
            yield

    def _release_lock(self, battle_id: int):
        with self._locks_guard:
            self._locks.pop(battle_id, None)

    @contextmanager
    def _battle(self, battle_id: int) -> Iterator[Tuple[Session, BattleRecord, BattleState]]:
        """Locked, transactional access to one stored battle."""
        with self._battle_lock(battle_id), self.session_factory.begin() as session:
            record = session.get(BattleRecord, battle_id)
            if record is None:
                raise BattleNotFound(f"Battle {battle_id} not found")
            state = BattleState.model_validate(record.state_snapshot)
            try:
                yield session, record, state
            except BattleError as e:
                logger.debug(f"Battle {battle_id}: rejected {e.code}: {e.message}")
                raise

    def _store(self, record: BattleRecord, state: BattleState):
        record.state_snapshot = state.model_dump(mode="json")
        record.phase = state.phase.value
        record.opponent = state.second_player

    def _point(self, session: Session, player: str, battle_id: int):
        session.merge(PlayerPointer(player=player, battle_id=battle_id))

    # --- Operations ---

    def create_battle(self, creator: str, stake: int,
                      width: Optional[int] = None, height: Optional[int] = None) -> int:
        if stake < self.settings.min_stake:
            raise InsufficientStake(
                f"Attached deposit {stake} is less than minimum stake {self.settings.min_stake}"
            )
        width = self.settings.board_width if width is None else width
        height = self.settings.board_height if height is None else height
        check_board_size(width, height)

        with self.session_factory.begin() as session:
            record = BattleRecord(creator=creator, stake=str(stake), state_snapshot={})
            session.add(record)
            session.flush() # assigns record.id
            state = self.engine.create_battle(record.id, creator, stake, width, height)
            self._store(record, state)
            self._point(session, creator, record.id)
            return record.id

    def join_battle(self, battle_id: int, joiner: str, deposit: int) -> bool:
        with self._battle(battle_id) as (session, record, state):
            next_state = self.engine.join_battle(state, joiner, deposit)
            self._store(record, next_state)
            self._point(session, joiner, battle_id)
        return True

    def place_units(self, battle_id: int, caller: str,
                    placements: Sequence[UnitPlacement]) -> BattleState:
        with self._battle(battle_id) as (session, record, state):
            next_state = self.engine.place_units(state, caller, placements)
            self._store(record, next_state)
        return next_state

    def make_move(self, battle_id: int, caller: str, unit_id: int,
                  path: Sequence[Coord]) -> MoveOutcome:
        with self._battle(battle_id) as (session, record, state):
            outcome = self.engine.make_move(state, caller, unit_id, path)
            self._store(record, outcome.state)
            if outcome.winner is not None:
                amount = 2 * outcome.state.stake
                session.add(Payout(battle_id=battle_id, winner=outcome.winner, amount=str(amount)))

        if outcome.winner is not None:
            self._release_lock(battle_id)
            self._trigger_payout(battle_id, outcome.winner, 2 * outcome.state.stake)
        return outcome

    def get_battle_info(self, battle_id: int) -> BattleState:
        with self.session_factory() as session:
            record = session.get(BattleRecord, battle_id)
            if record is None:
                raise BattleNotFound(f"Battle {battle_id} not found")
            return BattleState.model_validate(record.state_snapshot)

    def find_open_battle(self) -> OpenBattle:
        with self.session_factory() as session:
            record = session.scalars(
                select(BattleRecord)
                .where(BattleRecord.phase == BattlePhase.WAITING_FOR_OPPONENT.value)
                .order_by(BattleRecord.id)
                .limit(1)
            ).first()
            if record is None:
                raise NoOpenBattle("No opened battles found")
            return OpenBattle(stake=int(record.stake), battle_id=record.id)

    def get_last_battle_of_player(self, player: str) -> Optional[int]:
        with self.session_factory() as session:
            pointer = session.get(PlayerPointer, player)
            return pointer.battle_id if pointer else None

    def leave_battle(self, player: str):
        """Forgets the player's last battle; the battle itself is untouched."""
        with self.session_factory.begin() as session:
            pointer = session.get(PlayerPointer, player)
            if pointer is not None:
                session.delete(pointer)

    def _trigger_payout(self, battle_id: int, winner: str, amount: int):
        logger.info(f"Battle {battle_id}: paying {amount} to {winner}")
        if self._payout is not None:
            self._payout(winner, amount)
