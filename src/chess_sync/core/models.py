"""
Boundary layer data model(s).

These objects are used to communicate with the Service.
Both the API layer (higher) and the db layer (lower) use the models defined here to send to/receive from the Service.
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from chess_sync.core.shared_types import (
    Color,
    GameMode,
    GameResult,
    GameStatus,
    Termination,
)

PlayerId = str


@dataclass(frozen=True)
class TimeControl:
    """Base time budget and increment per move, both in milliseconds"""

    base_ms: int = 300_000
    increment_ms: int = 0


@dataclass
class GameModel:
    """One row per game. `current_fen` is an advisory cache, the move log is the source of truth."""

    id: UUID
    mode: GameMode
    status: GameStatus
    white_id: Optional[PlayerId]
    black_id: Optional[PlayerId]
    created_by: PlayerId
    initial_fen: str
    current_fen: str
    pgn: str = ""
    result: GameResult = GameResult.IN_PROGRESS
    termination: Optional[Termination] = None
    ply: int = 0
    draw_offer: Optional[Color] = None
    time_control: TimeControl = field(default_factory=TimeControl)
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    def player_id(self, color: Color) -> Optional[PlayerId]:
        return self.white_id if color == Color.WHITE else self.black_id

    def seats_of(self, actor_id: PlayerId) -> set[Color]:
        """Colors the actor sits at. Both, if someone plays against themselves."""
        return {color for color in Color if self.player_id(color) == actor_id}

    def is_participant(self, actor_id: PlayerId) -> bool:
        return bool(self.seats_of(actor_id))

    def open_seat(self) -> Optional[Color]:
        return next((color for color in Color if self.player_id(color) is None), None)


@dataclass(frozen=True)
class MoveModel:
    """One row per ply. Append-only: never changed once written."""

    game_id: UUID
    ply: int
    uci: str
    san: str
    fen_after: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class GamePatch:
    """
    Changes to write to a game row. Fields left at None stay as they are.

    NOTE: every patch clears a pending draw offer: an offer only stands until the next move or the end of the game.
    """

    current_fen: Optional[str] = None
    pgn: Optional[str] = None
    status: Optional[GameStatus] = None
    result: Optional[GameResult] = None
    termination: Optional[Termination] = None
    ended_at: Optional[datetime] = None

    def changes(self) -> dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return {name: value for name, value in values.items() if value is not None}


@dataclass(frozen=True)
class GameSnapshot:
    """A game with its full move log: the read a client uses to (re)synchronize."""

    game: GameModel
    moves: list[MoveModel]


@dataclass(frozen=True)
class MoveSubmission:
    """
    A proposed move, already checked for shape at the boundary.

    `claimed_ply` is the number of plies the client believes have been played: the optimistic concurrency token.
    `promotion` is a piece letter ('q', 'r', 'b', 'n') and is required when a pawn reaches the last rank, unless
    the caller explicitly asks for `default_promotion` (queen).
    """

    game_id: UUID
    actor_id: PlayerId
    origin: str
    destination: str
    claimed_ply: int
    promotion: Optional[str] = None
    default_promotion: bool = False


@dataclass(frozen=True)
class MoveAccepted:
    game: GameModel
    move: MoveModel
    # the move log could not be replayed: ply-sync and repetition checks were skipped
    degraded: bool = False
