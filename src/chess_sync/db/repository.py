"""Protocol repository: the Game Record Store the service talks to (implemented with SQLAlchemy in sql_repository.py)"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chess_sync.core.models import GameModel, GamePatch, MoveModel, PlayerId
from chess_sync.core.shared_types import Color, GameStatus


class GameRepository(Protocol):
    """
    Persistence layer orchestration.

    The conditional writes are the only way game rows change after creation. Each one either applies completely
    or raises a Conflict error and changes nothing.
    """

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def list_moves(self, game_id: UUID) -> list[MoveModel]:
        """The move log, ordered by ply ascending."""
        ...

    def create_game(self, game: GameModel) -> GameModel:
        """Store a new game and return the stored data."""
        ...

    def write_game_and_append_move(
        self, game_id: UUID, expected_ply: int, patch: GamePatch, move: MoveModel
    ) -> GameModel:
        """
        Compare-and-swap: only if the game is still active and at `expected_ply`, apply the patch, bump the ply
        and append the move, all in one transaction. Raises ConflictStaleError otherwise.
        """
        ...

    def update_game_status(
        self, game_id: UUID, expected_status: GameStatus, patch: GamePatch
    ) -> GameModel:
        """Compare-and-swap on status (resign, timeout, abort, draw agreement). Raises ConflictStaleError."""
        ...

    def update_game_seats(
        self,
        game_id: UUID,
        expected_open_seat: Color,
        filler_id: PlayerId,
        started_at: datetime,
    ) -> GameModel:
        """Fill a seat that is still empty on a game still waiting, making it active. Raises ConflictFullError."""
        ...

    def set_draw_offer(
        self, game_id: UUID, expected_ply: int, offered_by: Color
    ) -> GameModel:
        """Record a draw offer, if the game is still active at `expected_ply`. Raises ConflictStaleError."""
        ...
