"""
Pytest configuration and shared fixtures.
"""

from typing import List, Tuple

import pytest

from squad_battle.server.config import Settings
from squad_battle.server.engine import BattleEngine
from squad_battle.server.host import BattleHost
from squad_battle.server.models import create_session_factory
from squad_battle.shared.state import BattleState

ALICE = "alice.testnet"
BOB = "bob.testnet"
STAKE = 100


@pytest.fixture
def engine() -> BattleEngine:
    return BattleEngine()


@pytest.fixture
def placing_state(engine: BattleEngine) -> BattleState:
    """A 7x4 battle between ALICE and BOB, ready for placement."""
    state = engine.create_battle(0, ALICE, STAKE, 7, 4)
    return engine.join_battle(state, BOB, STAKE)


@pytest.fixture
def payouts() -> List[Tuple[str, int]]:
    return []


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://", min_stake=10, board_width=7, board_height=4)


@pytest.fixture
def host(settings: Settings, payouts: List[Tuple[str, int]]) -> BattleHost:
    """Host over a fresh in-memory database that records payouts."""
    return BattleHost(
        create_session_factory(settings.database_url),
        settings,
        payout=lambda winner, amount: payouts.append((winner, amount)),
    )
