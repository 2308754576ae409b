"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from chess_sync.core.exceptions import ConflictFullError, ConflictStaleError
from chess_sync.core.models import GameModel, GamePatch, MoveModel, PlayerId
from chess_sync.core.shared_types import Color, GameStatus
from chess_sync.db.schema import Base
from chess_sync.services.game_service import GameService
from chess_sync.services.notifications import InMemoryNotifier

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session_shared() -> Generator[Session, None, None]:
    """Connection to a test database. Mock real setup with multiple sessions connecting to the same engine / database tables."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    """Open extra sessions on the test database, as concurrent requests would"""
    return TestingSessionLocal


# --- MOCK DEPENDENCIES ----
class MockRepository:
    """Mock the GameRepository using dictionaries, with the same compare-and-swap behaviour as the SQL store."""

    def __init__(self) -> None:
        self._games: dict[UUID, GameModel] = {}
        self._moves: dict[UUID, list[MoveModel]] = {}
        self._lock = threading.Lock()

    def get_game(self, game_id: UUID) -> GameModel | None:
        game = self._games.get(game_id)
        return replace(game) if game else None

    def list_moves(self, game_id: UUID) -> list[MoveModel]:
        return list(self._moves.get(game_id, []))

    def create_game(self, game: GameModel) -> GameModel:
        self._games[game.id] = replace(game)
        self._moves[game.id] = []
        return replace(game)

    def write_game_and_append_move(
        self, game_id: UUID, expected_ply: int, patch: GamePatch, move: MoveModel
    ) -> GameModel:
        with self._lock:
            game = self._games[game_id]
            if game.ply != expected_ply or game.status != GameStatus.ACTIVE:
                raise ConflictStaleError("stale", current_ply=game.ply)
            if any(stored.ply == move.ply for stored in self._moves[game_id]):
                raise ConflictStaleError("duplicate ply")
            self._games[game_id] = replace(
                game, **patch.changes(), ply=expected_ply + 1, draw_offer=None
            )
            self._moves[game_id].append(move)
            return replace(self._games[game_id])

    def update_game_status(
        self, game_id: UUID, expected_status: GameStatus, patch: GamePatch
    ) -> GameModel:
        with self._lock:
            game = self._games[game_id]
            if game.status != expected_status:
                raise ConflictStaleError("status changed")
            self._games[game_id] = replace(game, **patch.changes(), draw_offer=None)
            return replace(self._games[game_id])

    def update_game_seats(
        self,
        game_id: UUID,
        expected_open_seat: Color,
        filler_id: PlayerId,
        started_at: datetime,
    ) -> GameModel:
        with self._lock:
            game = self._games[game_id]
            if game.status != GameStatus.WAITING or game.player_id(expected_open_seat):
                raise ConflictFullError("seat taken")
            seat = "white_id" if expected_open_seat == Color.WHITE else "black_id"
            self._games[game_id] = replace(
                game, **{seat: filler_id}, status=GameStatus.ACTIVE, started_at=started_at
            )
            return replace(self._games[game_id])

    def set_draw_offer(
        self, game_id: UUID, expected_ply: int, offered_by: Color
    ) -> GameModel:
        with self._lock:
            game = self._games[game_id]
            if game.ply != expected_ply or game.status != GameStatus.ACTIVE:
                raise ConflictStaleError("stale", current_ply=game.ply)
            self._games[game_id] = replace(game, draw_offer=offered_by)
            return replace(self._games[game_id])

    # -- test helpers --
    def put_game(self, game: GameModel) -> None:
        self._games[game.id] = replace(game)
        self._moves.setdefault(game.id, [])

    def put_moves(self, game_id: UUID, moves: list[MoveModel]) -> None:
        self._moves[game_id] = list(moves)

    def clear(self) -> None:
        """Clear the repository (useful in between tests)"""
        self._games.clear()
        self._moves.clear()


@pytest.fixture
def mock_repository() -> Generator[MockRepository, None, None]:
    repo = MockRepository()
    yield repo
    repo.clear()


@pytest.fixture
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture
def service(mock_repository: MockRepository, notifier: InMemoryNotifier) -> GameService:
    return GameService(mock_repository, notifier=notifier)
