import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import httpx

from squad_battle.shared.errors import ERRORS_BY_CODE, BattleError
from squad_battle.shared.schemas import (
    CreateBattleRequest, CreateBattleResponse, JoinBattleRequest,
    JoinBattleResponse, LastBattle, MoveRequest, MoveResult, OpenBattle,
    PlaceUnitsRequest, UnitKind, UnitPlacement,
)
from squad_battle.shared.state import BattleState

# --- Logging Setup ---
logger = logging.getLogger("squad_battle.client")

Placement = Tuple[Union[UnitKind, int, str], int, int]


class BattleClientError(BattleError):
    """A failure the server reported without a known battle error code."""

    code = "ClientError"


def _raise_for_error(resp: httpx.Response):
    if resp.status_code < 400:
        return
    detail = None
    try:
        detail = resp.json().get("detail")
    except ValueError:
        pass
    if isinstance(detail, dict) and detail.get("code") in ERRORS_BY_CODE:
        error = ERRORS_BY_CODE[detail["code"]](detail.get("message", ""))
    else:
        error = BattleClientError(f"HTTP {resp.status_code}: {detail or resp.text}")
    error.status_code = resp.status_code
    logger.debug(f"Request failed: {error.code} {error.message}")
    raise error


class BattleClient:
    """
    One player's view of a battle server. The player name is sent as the
    Authorization header on every call.
    """

    def __init__(self, player: str, server_url: str = "http://localhost:8000",
                 http: Optional[httpx.Client] = None, timeout: float = 5.0):
        self.player = player
        self.client = http if http is not None else httpx.Client(base_url=server_url, timeout=timeout)

    def _headers(self) -> dict:
        return {"Authorization": self.player}

    def _get(self, url: str) -> httpx.Response:
        resp = self.client.get(url, headers=self._headers())
        _raise_for_error(resp)
        return resp

    def _post(self, url: str, body) -> httpx.Response:
        resp = self.client.post(url, json=body.model_dump(mode="json"), headers=self._headers())
        _raise_for_error(resp)
        return resp

    # --- Battle lifecycle ---

    def create_battle(self, stake: int, width: Optional[int] = None,
                      height: Optional[int] = None) -> int:
        resp = self._post("/battles", CreateBattleRequest(stake=stake, width=width, height=height))
        battle_id = CreateBattleResponse(**resp.json()).battle_id
        logger.info(f"{self.player} created battle {battle_id} (stake {stake})")
        return battle_id

    def join_battle(self, battle_id: int, deposit: int) -> bool:
        resp = self._post(f"/battles/{battle_id}/join", JoinBattleRequest(deposit=deposit))
        return JoinBattleResponse(**resp.json()).joined

    def place_units(self, battle_id: int, units: Iterable[Placement]) -> BattleState:
        placements = [UnitPlacement(kind=kind, x=x, y=y) for kind, x, y in units]
        resp = self._post(f"/battles/{battle_id}/units", PlaceUnitsRequest(units=placements))
        logger.info(f"{self.player} placed {len(placements)} units in battle {battle_id}")
        return BattleState(**resp.json())

    def make_move(self, battle_id: int, unit_id: int,
                  path: Sequence[Tuple[int, int]]) -> MoveResult:
        resp = self._post(f"/battles/{battle_id}/moves", MoveRequest(unit_id=unit_id, path=list(path)))
        result = MoveResult(**resp.json())
        logger.info(f"{self.player} moved unit {unit_id} along {list(path)}: damage {result.damage}")
        if result.winner:
            logger.info(f"Battle {battle_id} won by {result.winner}")
        return result

    # --- Lookups ---

    def get_battle_info(self, battle_id: int) -> BattleState:
        return BattleState(**self._get(f"/battles/{battle_id}").json())

    def find_open_battle(self) -> OpenBattle:
        return OpenBattle(**self._get("/battles/open").json())

    def last_battle(self, player: Optional[str] = None) -> Optional[int]:
        resp = self._get(f"/players/{player or self.player}/last-battle")
        return LastBattle(**resp.json()).battle_id

    def leave_battle(self):
        resp = self.client.delete("/players/me/last-battle", headers=self._headers())
        _raise_for_error(resp)

    def my_units(self, battle_id: int) -> List[int]:
        state = self.get_battle_info(battle_id)
        side = state.side_of(self.player)
        return [] if side is None else list(state.roster(side))
