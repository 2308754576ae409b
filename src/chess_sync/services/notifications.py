"""
Notification fan-out: pushes changed game rows and new move rows to whoever is subscribed to a game.

Delivery is fire-and-forget. The service never depends on it for correctness, only for how quickly clients see
the opponent's move. A client that missed an event resynchronizes by reading the game.
"""

import logging
from collections import defaultdict
from typing import Callable, Protocol
from uuid import UUID

from chess_sync.core.models import GameModel, MoveModel

logger = logging.getLogger(__name__)

Event = GameModel | MoveModel
Subscriber = Callable[[UUID, Event], None]


class Notifier(Protocol):
    def publish(self, game_id: UUID, event: Event) -> None: ...


class InMemoryNotifier:
    """Single process fan-out. Subscribers are plain callables, called in subscription order."""

    def __init__(self) -> None:
        self._subscribers: dict[UUID, list[Subscriber]] = defaultdict(list)

    def subscribe(self, game_id: UUID, subscriber: Subscriber) -> Callable[[], None]:
        """Returns a function that cancels the subscription"""
        self._subscribers[game_id].append(subscriber)

        def unsubscribe() -> None:
            subscribers = self._subscribers.get(game_id, [])
            if subscriber in subscribers:
                subscribers.remove(subscriber)
            if not subscribers:
                self._subscribers.pop(game_id, None)

        return unsubscribe

    @property
    def watched_games(self) -> frozenset[UUID]:
        """Games with at least one subscriber"""
        return frozenset(self._subscribers)

    def publish(self, game_id: UUID, event: Event) -> None:
        for subscriber in list(self._subscribers.get(game_id, [])):
            subscriber(game_id, event)


class LoggingNotifier:
    """Default when nothing is wired up: the events only show in the logs."""

    def publish(self, game_id: UUID, event: Event) -> None:
        kind = "move" if isinstance(event, MoveModel) else "game"
        logger.debug("Publishing %s event for game %s", kind, game_id)
