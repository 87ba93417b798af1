"""Battle error taxonomy.

Every rule violation raised by the board, the engine or the host is a
``BattleError``. The engine finishes validating a command before it writes
anything, so catching one of these always means the battle is unchanged.
"""


class BattleError(Exception):
    """Base class. ``code`` is the stable identifier sent over the wire."""

    code = "BattleError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class IllegalMove(BattleError):
    """Bad path geometry or a two-cell jump over an empty cell."""

    code = "IllegalMove"


class UnitNotOwned(BattleError):
    code = "UnitNotOwned"


class NotYourTurn(BattleError):
    code = "NotYourTurn"


class WrongPhase(BattleError):
    code = "WrongPhase"


class CellOccupied(BattleError):
    code = "CellOccupied"


class BattleFull(BattleError):
    code = "BattleFull"


class InsufficientStake(BattleError):
    code = "InsufficientStake"


class IllegalPlacement(BattleError):
    code = "IllegalPlacement"


class UnitNotFound(BattleError):
    code = "UnitNotFound"


class PositionNotFound(BattleError):
    code = "PositionNotFound"


class InvalidBoardSize(BattleError):
    """Board too narrow for both sides to deploy, or too large."""

    code = "InvalidBoardSize"


# --- Host-level ---

class BattleNotFound(BattleError):
    code = "BattleNotFound"


class NoOpenBattle(BattleError):
    code = "NoOpenBattle"


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        IllegalMove, UnitNotOwned, NotYourTurn, WrongPhase, CellOccupied,
        BattleFull, InsufficientStake, IllegalPlacement, UnitNotFound,
        PositionNotFound, InvalidBoardSize, BattleNotFound, NoOpenBattle,
    )
}
