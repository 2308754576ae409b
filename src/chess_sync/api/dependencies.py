"""
Dependency injection for API endpoints.
"""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from chess_sync.core.config import Settings, get_settings
from chess_sync.core.models import PlayerId
from chess_sync.db.database import get_db
from chess_sync.db.sql_repository import SQLGameRepository
from chess_sync.services.bot import BotMoveSource, RandomMoveBot
from chess_sync.services.game_service import GameService
from chess_sync.services.notifications import InMemoryNotifier, Notifier

# one fan-out per process: subscribers outlive single requests
_notifier = InMemoryNotifier()
_bot = RandomMoveBot()


def get_actor_id(x_user_id: Annotated[str, Header(min_length=1)]) -> PlayerId:
    """The identity provider in front of this service sets the X-User-Id header."""
    return x_user_id


def get_notifier() -> Notifier:
    return _notifier


def get_bot() -> BotMoveSource:
    return _bot


def get_game_service(
    db: Annotated[Session, Depends(get_db)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> GameService:
    return GameService(
        SQLGameRepository(db), notifier=notifier, clock_service_id=settings.clock_service_id
    )


ActorId = Annotated[PlayerId, Depends(get_actor_id)]
Service = Annotated[GameService, Depends(get_game_service)]
Bot = Annotated[BotMoveSource, Depends(get_bot)]
