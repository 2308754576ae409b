"""Requests and Response models"""

from datetime import datetime
from typing import Optional, Self
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from chess_sync.chess.fen import is_valid_fen
from chess_sync.chess.square import is_valid_square_name
from chess_sync.core.models import GameModel, GameSnapshot, MoveAccepted, MoveModel
from chess_sync.core.shared_types import (
    Color,
    ColorPreference,
    GameMode,
    GameResult,
    GameStatus,
    Termination,
)
from chess_sync.services.bot import BOT_DIFFICULTIES

PROMOTION_LETTERS = ("q", "r", "b", "n")


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    mode: GameMode
    color: ColorPreference = ColorPreference.RANDOM
    base_ms: int = Field(default=300_000, gt=0)
    increment_ms: int = Field(default=0, ge=0)
    initial_fen: Optional[str] = None

    @field_validator("initial_fen")
    @classmethod
    def validate_initial_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not is_valid_fen(value):
            raise ValueError(f"Cannot interpret {value!r} as a FEN string.")
        return value


class MoveRequest(BaseModel):
    """
    A move in coordinate form plus the number of plies the client believes were played.
    Shape is checked here, legality is up to the rules engine.
    """

    from_square: str
    to_square: str
    promotion: Optional[str] = None
    claimed_ply: int = Field(ge=0)
    default_promotion: bool = False

    @field_validator("from_square", "to_square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        value = value.strip().lower()
        if not is_valid_square_name(value):
            raise ValueError(f"Cannot interpret {value!r} as a valid square name.")
        return value

    @field_validator("promotion")
    @classmethod
    def validate_promotion(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip().lower()
        if value not in PROMOTION_LETTERS:
            raise ValueError(
                f"Cannot promote to {value!r}. Options: {', '.join(PROMOTION_LETTERS)}"
            )
        return value


class TimeoutRequest(BaseModel):
    flagged: Color


class BotMoveRequest(BaseModel):
    difficulty: str = "medium"

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in BOT_DIFFICULTIES:
            raise ValueError(
                f"Unknown difficulty {value!r}. Options: {', '.join(BOT_DIFFICULTIES)}"
            )
        return value


# --- RESPONSE MODELS ---
class MoveResponse(BaseModel):
    ply: int
    uci: str
    san: str
    fen_after: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, move: MoveModel) -> Self:
        return cls(
            ply=move.ply,
            uci=move.uci,
            san=move.san,
            fen_after=move.fen_after,
            created_at=move.created_at,
        )


class GameResponse(BaseModel):
    game_id: UUID
    mode: GameMode
    status: GameStatus
    white_id: Optional[str]
    black_id: Optional[str]
    created_by: str
    initial_fen: str
    current_fen: str
    pgn: str
    result: GameResult
    termination: Optional[Termination]
    ply: int
    draw_offer: Optional[Color]
    base_ms: int
    increment_ms: int
    moves: Optional[list[MoveResponse]] = None

    @classmethod
    def from_model(cls, game: GameModel, moves: Optional[list[MoveModel]] = None) -> Self:
        return cls(
            game_id=game.id,
            mode=game.mode,
            status=game.status,
            white_id=game.white_id,
            black_id=game.black_id,
            created_by=game.created_by,
            initial_fen=game.initial_fen,
            current_fen=game.current_fen,
            pgn=game.pgn,
            result=game.result,
            termination=game.termination,
            ply=game.ply,
            draw_offer=game.draw_offer,
            base_ms=game.time_control.base_ms,
            increment_ms=game.time_control.increment_ms,
            moves=[MoveResponse.from_model(move) for move in moves] if moves is not None else None,
        )

    @classmethod
    def from_snapshot(cls, snapshot: GameSnapshot) -> Self:
        return cls.from_model(snapshot.game, snapshot.moves)


class MoveSubmissionResponse(BaseModel):
    """
    Outcome of a move submission. Rejections use the same shape (see api/errors.py) with `accepted` False,
    a `reason` code and, for OutOfSync, the authoritative ply and position.
    """

    accepted: bool
    reason: Optional[str] = None
    detail: Optional[str] = None
    authoritative_ply: Optional[int] = None
    authoritative_fen: Optional[str] = None
    status: Optional[GameStatus] = None
    result: Optional[GameResult] = None
    termination: Optional[Termination] = None
    move: Optional[MoveResponse] = None
    degraded: bool = False

    @classmethod
    def from_accepted(cls, accepted: MoveAccepted) -> Self:
        game = accepted.game
        return cls(
            accepted=True,
            authoritative_ply=game.ply,
            authoritative_fen=game.current_fen,
            status=game.status,
            result=game.result,
            termination=game.termination,
            move=MoveResponse.from_model(accepted.move),
            degraded=accepted.degraded,
        )


class LegalMovesResponse(BaseModel):
    game_id: UUID
    square: str
    destinations: list[str]
