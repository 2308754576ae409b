"""Unit tests for chess_sync/services/notifications.py"""

import logging
from uuid import UUID, uuid4

import pytest

from chess_sync.chess.fen import STARTING_FEN
from chess_sync.core.models import GameModel, MoveModel
from chess_sync.core.shared_types import GameMode, GameStatus
from chess_sync.services.notifications import Event, InMemoryNotifier, LoggingNotifier


def make_game(game_id: UUID) -> GameModel:
    return GameModel(
        id=game_id,
        mode=GameMode.PVP,
        status=GameStatus.ACTIVE,
        white_id="alice",
        black_id="bob",
        created_by="alice",
        initial_fen=STARTING_FEN,
        current_fen=STARTING_FEN,
    )


def test_subscribers_called_in_order() -> None:
    notifier = InMemoryNotifier()
    game_id = uuid4()
    calls: list[tuple[str, Event]] = []
    notifier.subscribe(game_id, lambda _, event: calls.append(("first", event)))
    notifier.subscribe(game_id, lambda _, event: calls.append(("second", event)))

    game = make_game(game_id)
    notifier.publish(game_id, game)
    assert calls == [("first", game), ("second", game)]


def test_only_subscribers_of_the_game() -> None:
    notifier = InMemoryNotifier()
    watched, other = uuid4(), uuid4()
    received: list[Event] = []
    notifier.subscribe(watched, lambda _, event: received.append(event))

    notifier.publish(other, make_game(other))
    assert received == []


def test_unsubscribe() -> None:
    notifier = InMemoryNotifier()
    game_id = uuid4()
    received: list[Event] = []
    unsubscribe = notifier.subscribe(game_id, lambda _, event: received.append(event))

    unsubscribe()
    unsubscribe()
    notifier.publish(game_id, MoveModel(game_id, 1, "e2e4", "e4", STARTING_FEN))
    assert received == []


def test_logging_notifier(caplog: pytest.LogCaptureFixture) -> None:
    game_id = uuid4()
    with caplog.at_level(logging.DEBUG, logger="chess_sync.services.notifications"):
        LoggingNotifier().publish(game_id, MoveModel(game_id, 1, "e2e4", "e4", STARTING_FEN))
    assert "move event" in caplog.text


def test_publishing_does_not_register_games() -> None:
    """Long-lived notifier: only games with subscribers are kept"""
    notifier = InMemoryNotifier()
    game_id = uuid4()
    for _ in range(3):
        notifier.publish(uuid4(), make_game(game_id))
    assert notifier.watched_games == frozenset()

    unsubscribe = notifier.subscribe(game_id, lambda _, event: None)
    assert notifier.watched_games == {game_id}
    unsubscribe()
    assert notifier.watched_games == frozenset()
