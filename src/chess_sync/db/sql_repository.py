"""Implementation of (Game)Repository using SQLAlchemy"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from chess_sync.core.exceptions import (
    ConflictFullError,
    ConflictStaleError,
    RepositoryError,
)
from chess_sync.core.models import (
    GameModel,
    GamePatch,
    MoveModel,
    PlayerId,
    TimeControl,
)
from chess_sync.core.shared_types import (
    Color,
    GameMode,
    GameResult,
    GameStatus,
    Termination,
)
from chess_sync.db.schema import DBGame, DBMove, utc_now

logger = logging.getLogger(__name__)


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        with self._unit_of_work():
            game_db = self._fetch_game(game_id)
            return self._to_model(game_db) if game_db else None

    def list_moves(self, game_id: UUID) -> list[MoveModel]:
        """The move log, ordered by ply ascending."""
        query = select(DBMove).where(DBMove.game_id == game_id).order_by(DBMove.ply)
        with self._unit_of_work():
            return [self._to_move_model(move_db) for move_db in self.db.scalars(query)]

    def create_game(self, game: GameModel) -> GameModel:
        """Store a new game and return the stored data."""
        game_db = DBGame(
            id=game.id,
            mode=game.mode.value,
            status=game.status.value,
            white_id=game.white_id,
            black_id=game.black_id,
            created_by=game.created_by,
            initial_fen=game.initial_fen,
            current_fen=game.current_fen,
            pgn=game.pgn,
            result=game.result.value,
            termination=game.termination.value if game.termination else None,
            ply=game.ply,
            draw_offer=None,
            base_ms=game.time_control.base_ms,
            increment_ms=game.time_control.increment_ms,
            created_at=game.created_at or utc_now(),
            started_at=game.started_at,
            ended_at=game.ended_at,
        )
        with self._unit_of_work():
            self.db.add(game_db)
            self.db.commit()
            self.db.refresh(game_db)
            return self._to_model(game_db)

    def write_game_and_append_move(
        self, game_id: UUID, expected_ply: int, patch: GamePatch, move: MoveModel
    ) -> GameModel:
        """Conditional UPDATE on (ply, status) + INSERT of the move row, committed together or not at all."""
        condition = (
            (DBGame.id == game_id)
            & (DBGame.ply == expected_ply)
            & (DBGame.status == GameStatus.ACTIVE.value)
        )
        values = self._patch_values(patch)
        values["ply"] = expected_ply + 1

        with self._unit_of_work():
            rows = self._conditional_update(condition, values)
            if rows != 1:
                self.db.rollback()
                raise ConflictStaleError(
                    f"Game {game_id} is no longer active at ply {expected_ply}.",
                    current_ply=self._current_ply(game_id),
                )

            self.db.add(
                DBMove(
                    game_id=game_id,
                    ply=move.ply,
                    uci=move.uci,
                    san=move.san,
                    fen_after=move.fen_after,
                    created_at=move.created_at or utc_now(),
                )
            )
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictStaleError(
                    f"Ply {move.ply} of game {game_id} was already written."
                ) from exc
            return self._reload(game_id)

    def update_game_status(
        self, game_id: UUID, expected_status: GameStatus, patch: GamePatch
    ) -> GameModel:
        condition = (DBGame.id == game_id) & (DBGame.status == expected_status.value)
        with self._unit_of_work():
            rows = self._conditional_update(condition, self._patch_values(patch))
            if rows != 1:
                self.db.rollback()
                raise ConflictStaleError(
                    f"Game {game_id} is no longer {expected_status.value}."
                )
            self.db.commit()
            return self._reload(game_id)

    def update_game_seats(
        self,
        game_id: UUID,
        expected_open_seat: Color,
        filler_id: PlayerId,
        started_at: datetime,
    ) -> GameModel:
        seat_column = DBGame.white_id if expected_open_seat == Color.WHITE else DBGame.black_id
        condition = (
            (DBGame.id == game_id)
            & (DBGame.status == GameStatus.WAITING.value)
            & seat_column.is_(None)
        )
        values = {
            seat_column.key: filler_id,
            "status": GameStatus.ACTIVE.value,
            "started_at": started_at,
        }
        with self._unit_of_work():
            rows = self._conditional_update(condition, values)
            if rows != 1:
                self.db.rollback()
                raise ConflictFullError(
                    f"The {expected_open_seat.value} seat of game {game_id} is taken."
                )
            self.db.commit()
            return self._reload(game_id)

    def set_draw_offer(
        self, game_id: UUID, expected_ply: int, offered_by: Color
    ) -> GameModel:
        condition = (
            (DBGame.id == game_id)
            & (DBGame.ply == expected_ply)
            & (DBGame.status == GameStatus.ACTIVE.value)
        )
        with self._unit_of_work():
            rows = self._conditional_update(condition, {"draw_offer": offered_by.value})
            if rows != 1:
                self.db.rollback()
                raise ConflictStaleError(
                    f"Game {game_id} is no longer active at ply {expected_ply}.",
                    current_ply=self._current_ply(game_id),
                )
            self.db.commit()
            return self._reload(game_id)

    # -- Internal helpers --
    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        """Infrastructure failures become RepositoryError (no reason code: the caller retries)."""
        try:
            yield
        except OperationalError as exc:
            self.db.rollback()
            logger.error("Game store unavailable: %s", exc, exc_info=True)
            raise RepositoryError("Game store unavailable.") from exc

    def _conditional_update(self, condition: Any, values: dict[str, Any]) -> int:
        values["updated_at"] = utc_now()
        statement = (
            update(DBGame)
            .where(condition)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(statement).rowcount

    def _patch_values(self, patch: GamePatch) -> dict[str, Any]:
        values = {
            name: value.value if hasattr(value, "value") else value
            for name, value in patch.changes().items()
        }
        values["draw_offer"] = None
        return values

    def _current_ply(self, game_id: UUID) -> int | None:
        return self.db.scalar(select(DBGame.ply).where(DBGame.id == game_id))

    def _reload(self, game_id: UUID) -> GameModel:
        # the conditional UPDATE bypassed the identity map: make sure we do not read a stale object
        self.db.expire_all()
        game_db = self._fetch_game(game_id)
        assert game_db is not None
        return self._to_model(game_db)

    def _fetch_game(self, game_id: UUID) -> DBGame | None:
        query = (
            select(DBGame)
            .where(DBGame.id == game_id)
            .execution_options(populate_existing=True)
        )
        return self.db.scalar(query)

    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            id=game_db.id,
            mode=GameMode(game_db.mode),
            status=GameStatus(game_db.status),
            white_id=game_db.white_id,
            black_id=game_db.black_id,
            created_by=game_db.created_by,
            initial_fen=game_db.initial_fen,
            current_fen=game_db.current_fen,
            pgn=game_db.pgn,
            result=GameResult(game_db.result),
            termination=Termination(game_db.termination) if game_db.termination else None,
            ply=game_db.ply,
            draw_offer=Color(game_db.draw_offer) if game_db.draw_offer else None,
            time_control=TimeControl(game_db.base_ms, game_db.increment_ms),
            created_at=game_db.created_at,
            started_at=game_db.started_at,
            ended_at=game_db.ended_at,
        )

    def _to_move_model(self, move_db: DBMove) -> MoveModel:
        return MoveModel(
            game_id=move_db.game_id,
            ply=move_db.ply,
            uci=move_db.uci,
            san=move_db.san,
            fen_after=move_db.fen_after,
            created_at=move_db.created_at,
        )
