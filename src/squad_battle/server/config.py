import json
import logging
import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from squad_battle.shared.schemas import MAX_BOARD_SIDE, MIN_BOARD_HEIGHT, MIN_BOARD_WIDTH

logger = logging.getLogger(__name__)

# 0.01 of a 10^24-unit token
DEFAULT_MIN_STAKE = 10_000_000_000_000_000_000_000

ENV_VARS = {
    "database_url": "SQUAD_BATTLE_DATABASE_URL",
    "min_stake": "SQUAD_BATTLE_MIN_STAKE",
    "board_width": "SQUAD_BATTLE_BOARD_WIDTH",
    "board_height": "SQUAD_BATTLE_BOARD_HEIGHT",
    "log_level": "SQUAD_BATTLE_LOG_LEVEL",
}
PARAMS_FILE_VAR = "SQUAD_BATTLE_PARAMS_FILE"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseModel):
    """Host configuration. The engine itself reads none of this."""
    database_url: str = "sqlite:///squad_battle.db"
    min_stake: int = Field(default=DEFAULT_MIN_STAKE, ge=0)
    board_width: int = Field(default=7, ge=MIN_BOARD_WIDTH, le=MAX_BOARD_SIDE)
    board_height: int = Field(default=4, ge=MIN_BOARD_HEIGHT, le=MAX_BOARD_SIDE)
    log_level: LogLevel = "INFO"

    @field_validator('log_level', mode='before')
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v


def load_params_file(path: str) -> dict:
    """Loads a JSON parameters file; unreadable files yield no overrides."""
    try:
        with open(path, 'r') as f:
            params = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not load parameters file {path}: {e}")
        return {}
    if not isinstance(params, dict):
        logger.warning(f"Parameters file {path} is not a JSON object, ignoring it")
        return {}
    return params


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Defaults, then the parameters file, then individual environment variables."""
    env = os.environ if environ is None else environ
    values = {}

    params_path = env.get(PARAMS_FILE_VAR)
    if params_path:
        values.update({k: v for k, v in load_params_file(params_path).items() if k in ENV_VARS})

    for field, var in ENV_VARS.items():
        raw = env.get(var)
        if raw is not None and raw != "":
            values[field] = raw

    return Settings(**values)
