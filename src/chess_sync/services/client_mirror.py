"""
Client-side copy of a game, as a UI would keep it.

The mirror applies the player's moves optimistically (through the same rules engine) so the board updates without
waiting for the server, and it supplies the `claimed_ply` for the next submission. It is never authoritative:
every server response overwrites it, and an OutOfSync rejection always resynchronizes it.
"""

import logging
from typing import Optional
from uuid import UUID

from chess_sync.chess.pieces import FEN_TO_PIECE
from chess_sync.chess.position import Position
from chess_sync.chess.rules import MoveRecord, apply_move, legal_moves_from
from chess_sync.core.exceptions import GameError, OutOfSyncError
from chess_sync.core.models import GameModel, GameSnapshot, MoveSubmission, PlayerId
from chess_sync.core.shared_types import GameStatus

logger = logging.getLogger(__name__)


class ClientGameMirror:
    def __init__(
        self,
        game_id: UUID,
        player_id: PlayerId,
        fen: str,
        ply: int,
        status: GameStatus = GameStatus.ACTIVE,
    ) -> None:
        self.game_id = game_id
        self.player_id = player_id
        self.position = Position.from_fen(fen)
        self.ply = ply
        self.status = status
        # moves shown on the board, not yet confirmed by the server
        self.pending: list[MoveRecord] = []

    @classmethod
    def from_snapshot(cls, snapshot: GameSnapshot, player_id: PlayerId) -> "ClientGameMirror":
        game = snapshot.game
        return cls(game.id, player_id, game.current_fen, game.ply, game.status)

    @property
    def fen(self) -> str:
        return self.position.to_fen()

    @property
    def is_synchronized(self) -> bool:
        return not self.pending

    def highlight(self, square: str) -> set[str]:
        """Destinations to highlight for the piece on `square`, computed locally (may be stale)."""
        if self.status != GameStatus.ACTIVE:
            return set()
        return legal_moves_from(self.position, square)

    def apply_local_move(
        self, origin: str, destination: str, promotion: Optional[str] = None
    ) -> Optional[MoveSubmission]:
        """
        Show the move right away and return the submission to send to the server.
        Returns None when the local copy already considers the move illegal: nothing is sent, nothing changes.
        """
        if self.status != GameStatus.ACTIVE:
            return None

        claimed_ply = self.ply
        promote_to = FEN_TO_PIECE.get(promotion.lower()) if promotion else None
        try:
            self.position, record = apply_move(self.position, origin, destination, promote_to)
        except GameError as exc:
            logger.debug("Locally rejected %s%s: %s", origin, destination, exc)
            return None

        self.ply += 1
        self.pending.append(record)
        return MoveSubmission(
            game_id=self.game_id,
            actor_id=self.player_id,
            origin=origin,
            destination=destination,
            claimed_ply=claimed_ply,
            promotion=promotion,
        )

    def apply_server_state(self, game: GameModel) -> None:
        """The server's answer (a response or a pushed game row) always wins over the local copy."""
        if game.id != self.game_id:
            return
        if game.ply < self.ply - len(self.pending):
            # an event that is older than what was already confirmed
            logger.debug("Ignoring outdated state of game %s at ply %d", game.id, game.ply)
            return
        self.position = Position.from_fen(game.current_fen)
        self.ply = game.ply
        self.status = game.status
        self.pending.clear()

    def resync(self, error: OutOfSyncError) -> None:
        """Drop the optimistic moves and continue from the authoritative state carried by the rejection."""
        logger.info(
            "Resynchronizing game %s: local ply %d, authoritative ply %d",
            self.game_id,
            self.ply,
            error.authoritative_ply,
        )
        self.position = Position.from_fen(error.authoritative_fen)
        self.ply = error.authoritative_ply
        self.pending.clear()

    def rollback(self, snapshot: GameSnapshot) -> None:
        """Any other rejection (IllegalMove, NotYourTurn, ...): the move simply does not apply."""
        self.apply_server_state(snapshot.game)
        self.pending.clear()
