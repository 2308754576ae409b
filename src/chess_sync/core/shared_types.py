"""
Type definitions used across layers
"""

from enum import StrEnum


class GameStatus(StrEnum):
    """Lifecycle of a game. Only moves forward: waiting -> active -> finished | aborted."""

    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"
    ABORTED = "aborted"


TERMINAL_STATUSES: frozenset[GameStatus] = frozenset(
    {GameStatus.FINISHED, GameStatus.ABORTED}
)


class GameMode(StrEnum):
    BOT = "bot"
    PVP = "pvp"


class GameResult(StrEnum):
    WHITE_WINS = "1-0"
    BLACK_WINS = "0-1"
    DRAW = "1/2-1/2"
    IN_PROGRESS = "*"


class Termination(StrEnum):
    CHECKMATE = "checkmate"
    RESIGN = "resign"
    TIMEOUT = "timeout"
    STALEMATE = "stalemate"
    DRAW_AGREEMENT = "draw_agreement"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    THREEFOLD_REPETITION = "threefold_repetition"
    FIFTY_MOVE_RULE = "fifty_move_rule"
    ABORTED = "aborted"


# --- Color here DOES NOT contain an option for empty squares. The domain layer has its own version (src/chess_sync/chess/pieces.py)
# --- NOTE Same name on purpose: the imports show which one a module works with


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class ColorPreference(StrEnum):
    WHITE = "white"
    BLACK = "black"
    RANDOM = "random"