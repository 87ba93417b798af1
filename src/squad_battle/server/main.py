import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from squad_battle.server.config import Settings, load_settings
from squad_battle.server.host import BattleHost, PayoutHook
from squad_battle.server.models import create_session_factory
from squad_battle.shared.errors import (
    BattleError, BattleFull, BattleNotFound, CellOccupied, InsufficientStake,
    NoOpenBattle, NotYourTurn, PositionNotFound, UnitNotFound, WrongPhase,
)
from squad_battle.shared.schemas import (
    CreateBattleRequest, CreateBattleResponse, JoinBattleRequest,
    JoinBattleResponse, LastBattle, MoveRequest, MoveResult, OpenBattle,
    PlaceUnitsRequest,
)
from squad_battle.shared.state import BattleState

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Error code -> HTTP status; anything else is a plain 400
ERROR_STATUS = {
    BattleNotFound: 404,
    NoOpenBattle: 404,
    UnitNotFound: 404,
    PositionNotFound: 404,
    InsufficientStake: 402,
    BattleFull: 409,
    WrongPhase: 409,
    NotYourTurn: 409,
    CellOccupied: 409,
}

# --- Logging Setup ---

def configure_logging(level: str = "INFO"):
    root = logging.getLogger("squad_battle")
    root.setLevel(level.upper())
    if not root.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console_handler)

def build_host(settings: Settings, payout: Optional[PayoutHook] = None) -> BattleHost:
    return BattleHost(create_session_factory(settings.database_url), settings, payout=payout)

# --- Helper: Caller identity ---

def get_host(request: Request) -> BattleHost:
    return request.app.state.host

def get_caller(authorization: Optional[str] = Header(default=None)) -> str:
    """The upstream gateway authenticates; we only read who it says is calling."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    return authorization

# --- App ---

def create_app(host: Optional[BattleHost] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "host", None) is None:
            settings = load_settings()
            configure_logging(settings.log_level)
            app.state.host = build_host(settings)
            logger.info(f"--- Battle host started ({settings.database_url}) ---")
        yield

    app = FastAPI(title="Squad Battle", lifespan=lifespan)
    app.state.host = host

    @app.exception_handler(BattleError)
    async def battle_error_handler(request: Request, exc: BattleError):
        status = ERROR_STATUS.get(type(exc), 400)
        return JSONResponse(
            status_code=status,
            content={"detail": {"code": exc.code, "message": exc.message}},
        )

    @app.get("/")
    def health_check():
        return {"status": "ok"}

    @app.post("/battles", response_model=CreateBattleResponse)
    def create_battle(body: CreateBattleRequest,
                      caller: str = Depends(get_caller),
                      host: BattleHost = Depends(get_host)):
        battle_id = host.create_battle(caller, body.stake, body.width, body.height)
        return CreateBattleResponse(battle_id=battle_id)

    # Declared before /battles/{battle_id} so "open" is not parsed as an id
    @app.get("/battles/open", response_model=OpenBattle)
    def find_open_battle(host: BattleHost = Depends(get_host)):
        return host.find_open_battle()

    @app.get("/battles/{battle_id}", response_model=BattleState)
    def get_battle_info(battle_id: int, host: BattleHost = Depends(get_host)):
        return host.get_battle_info(battle_id)

    @app.post("/battles/{battle_id}/join", response_model=JoinBattleResponse)
    def join_battle(battle_id: int, body: JoinBattleRequest,
                    caller: str = Depends(get_caller),
                    host: BattleHost = Depends(get_host)):
        return JoinBattleResponse(joined=host.join_battle(battle_id, caller, body.deposit))

    @app.post("/battles/{battle_id}/units", response_model=BattleState)
    def place_units(battle_id: int, body: PlaceUnitsRequest,
                    caller: str = Depends(get_caller),
                    host: BattleHost = Depends(get_host)):
        return host.place_units(battle_id, caller, body.units)

    @app.post("/battles/{battle_id}/moves", response_model=MoveResult)
    def make_move(battle_id: int, body: MoveRequest,
                  caller: str = Depends(get_caller),
                  host: BattleHost = Depends(get_host)):
        outcome = host.make_move(battle_id, caller, body.unit_id, body.path)
        return MoveResult(
            damage=outcome.damage,
            removed_unit_ids=outcome.removed_unit_ids,
            turn_owner=outcome.state.turn_owner,
            phase=outcome.state.phase,
            winner=outcome.winner,
        )

    @app.get("/players/{player}/last-battle", response_model=LastBattle)
    def get_last_battle(player: str, host: BattleHost = Depends(get_host)):
        return LastBattle(battle_id=host.get_last_battle_of_player(player))

    @app.delete("/players/me/last-battle")
    def leave_battle(caller: str = Depends(get_caller),
                     host: BattleHost = Depends(get_host)):
        host.leave_battle(caller)
        return {"status": "left"}

    return app

app = create_app()
