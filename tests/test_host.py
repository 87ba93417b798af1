import threading

import pytest
from sqlalchemy import select

from conftest import ALICE, BOB
from squad_battle.server.models import Payout
from squad_battle.shared.errors import (
    BattleError, BattleNotFound, IllegalMove, InsufficientStake, InvalidBoardSize,
    NoOpenBattle, NotYourTurn, WrongPhase,
)
from squad_battle.shared.schemas import BattlePhase, UnitKind, UnitPlacement


def _place(kind, x, y) -> UnitPlacement:
    return UnitPlacement(kind=kind, x=x, y=y)


def _fighting_battle(host, stake=50) -> int:
    """ALICE: Mage (0,0) + Orc (1,0); BOB: Mage (4,0). ALICE can win in one jump."""
    battle_id = host.create_battle(ALICE, stake)
    host.join_battle(battle_id, BOB, stake)
    host.place_units(battle_id, ALICE, [_place(UnitKind.MAGE, 0, 0), _place(UnitKind.ORC, 1, 0)])
    host.place_units(battle_id, BOB, [_place(UnitKind.MAGE, 4, 0)])
    return battle_id


def test_create_requires_minimum_stake(host) -> None:
    with pytest.raises(InsufficientStake):
        host.create_battle(ALICE, 9)


def test_create_uses_configured_board(host) -> None:
    battle_id = host.create_battle(ALICE, 10)
    state = host.get_battle_info(battle_id)

    assert state.battle_id == battle_id
    assert (state.board.width, state.board.height) == (7, 4)
    assert state.phase == BattlePhase.WAITING_FOR_OPPONENT

    other = host.get_battle_info(host.create_battle(BOB, 10, width=9, height=5))
    assert (other.board.width, other.board.height) == (9, 5)


def test_create_refuses_boards_the_second_side_cannot_use(host) -> None:
    with pytest.raises(InvalidBoardSize):
        host.create_battle(ALICE, 10, width=4, height=4)
    with pytest.raises(InvalidBoardSize):
        host.create_battle(ALICE, 10, width=7, height=128)

    with pytest.raises(NoOpenBattle):
        host.find_open_battle()
    assert host.get_last_battle_of_player(ALICE) is None


def test_unknown_battle(host) -> None:
    with pytest.raises(BattleNotFound):
        host.get_battle_info(42)
    with pytest.raises(BattleNotFound):
        host.join_battle(42, BOB, 100)


def test_find_open_battle_skips_joined_ones(host) -> None:
    with pytest.raises(NoOpenBattle):
        host.find_open_battle()

    first = host.create_battle(ALICE, 10)
    second = host.create_battle("carol.testnet", 30)
    assert host.find_open_battle().battle_id == first

    host.join_battle(first, BOB, 10)

    open_battle = host.find_open_battle()
    assert open_battle.battle_id == second
    assert open_battle.stake == 30


def test_large_stakes_survive_storage(host) -> None:
    stake = 10 ** 24
    battle_id = host.create_battle(ALICE, stake)

    assert host.get_battle_info(battle_id).stake == stake
    assert host.find_open_battle().stake == stake


def test_snapshot_round_trip_matches_engine_result(host) -> None:
    battle_id = host.create_battle(ALICE, 10)
    host.join_battle(battle_id, BOB, 10)

    returned = host.place_units(battle_id, BOB, [_place(UnitKind.SKELETON, 5, 2), _place(UnitKind.ORC, 4, 0)])

    stored = host.get_battle_info(battle_id)
    assert stored == returned
    assert stored.second_player_units == [0, 1]


def test_rejected_command_keeps_stored_snapshot(host) -> None:
    battle_id = _fighting_battle(host)
    before = host.get_battle_info(battle_id)

    with pytest.raises(IllegalMove):
        host.make_move(battle_id, ALICE, 0, [(0, 0), (0, 2)])

    assert host.get_battle_info(battle_id) == before


def test_winning_move_pays_double_stake_once(host, payouts) -> None:
    battle_id = _fighting_battle(host, stake=50)

    outcome = host.make_move(battle_id, ALICE, 0, [(0, 0), (2, 0)])

    assert outcome.winner == ALICE
    assert payouts == [(ALICE, 100)]
    stored = host.get_battle_info(battle_id)
    assert stored.phase == BattlePhase.FINISHED
    assert stored.winner == ALICE
    with host.session_factory() as session:
        rows = session.scalars(select(Payout)).all()
        assert [(r.battle_id, r.winner, r.amount) for r in rows] == [(battle_id, ALICE, "100")]


def test_last_battle_pointer_and_leave(host) -> None:
    assert host.get_last_battle_of_player(ALICE) is None

    battle_id = host.create_battle(ALICE, 10)
    host.join_battle(battle_id, BOB, 10)
    assert host.get_last_battle_of_player(ALICE) == battle_id
    assert host.get_last_battle_of_player(BOB) == battle_id

    host.leave_battle(ALICE)
    host.leave_battle("nobody.testnet")

    assert host.get_last_battle_of_player(ALICE) is None
    assert host.get_battle_info(battle_id).first_player == ALICE


def test_concurrent_moves_on_one_battle_are_serialized(host) -> None:
    battle_id = host.create_battle(ALICE, 10)
    host.join_battle(battle_id, BOB, 10)
    host.place_units(battle_id, ALICE, [_place(UnitKind.ORC, 0, 0)])
    host.place_units(battle_id, BOB, [_place(UnitKind.ORC, 6, 3)])

    barrier = threading.Barrier(2)
    results = []

    def move(path):
        barrier.wait()
        try:
            host.make_move(battle_id, ALICE, 0, path)
            results.append("ok")
        except BattleError as e:
            results.append(e.code)

    threads = [
        threading.Thread(target=move, args=([(0, 0), (0, 1)],)),
        threading.Thread(target=move, args=([(0, 0), (1, 0)],)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == [NotYourTurn.code, "ok"]
    assert host.get_battle_info(battle_id).turn_owner == 1


def test_unknown_battle_ids_do_not_allocate_locks(host) -> None:
    for battle_id in range(100, 150):
        with pytest.raises(BattleNotFound):
            host.join_battle(battle_id, BOB, 10)
        with pytest.raises(BattleNotFound):
            host.make_move(battle_id, ALICE, 0, [(0, 0), (0, 1)])

    assert host._locks == {}


def test_finished_battle_drops_its_lock(host) -> None:
    battle_id = _fighting_battle(host)
    assert battle_id in host._locks

    host.make_move(battle_id, ALICE, 0, [(0, 0), (2, 0)])
    assert battle_id not in host._locks

    with pytest.raises(WrongPhase):
        host.make_move(battle_id, ALICE, 1, [(1, 0), (1, 1)])
    assert battle_id not in host._locks
