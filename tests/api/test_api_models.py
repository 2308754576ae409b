"""Unit tests for chess_sync/api/models.py"""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from chess_sync.api.models import (
    BotMoveRequest,
    CreateGameRequest,
    GameResponse,
    MoveRequest,
    MoveSubmissionResponse,
)
from chess_sync.chess.fen import STARTING_FEN
from chess_sync.core.models import GameModel, MoveAccepted, MoveModel, TimeControl
from chess_sync.core.shared_types import ColorPreference, GameMode, GameStatus

AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"


# -- Validation - CreateGameRequest --
def test_create_request_defaults() -> None:
    request = CreateGameRequest(mode=GameMode.PVP)
    assert request.color == ColorPreference.RANDOM
    assert request.initial_fen is None
    assert (request.base_ms, request.increment_ms) == (300_000, 0)


def test_valid_fen() -> None:
    """Surrounding whitespace is dropped"""
    request = CreateGameRequest(mode=GameMode.BOT, initial_fen=f"  {STARTING_FEN} ")
    assert request.initial_fen == STARTING_FEN


@pytest.mark.parametrize(
    "invalid_fen",
    [
        "",
        "not a fen",
        "8/8/8/8/8/8/8/8 w - - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP w KQkq - 0 1",
    ],
)
def test_invalid_fen(invalid_fen: str) -> None:
    with pytest.raises(ValidationError):
        CreateGameRequest(mode=GameMode.PVP, initial_fen=invalid_fen)


@pytest.mark.parametrize("field, value", [("base_ms", 0), ("increment_ms", -1)])
def test_invalid_time_control(field: str, value: int) -> None:
    with pytest.raises(ValidationError):
        CreateGameRequest(mode=GameMode.PVP, **{field: value})


def test_unknown_mode() -> None:
    with pytest.raises(ValidationError):
        CreateGameRequest(mode="hotseat")  # type: ignore[arg-type]


# -- Validation - MoveRequest --
def test_move_request_normalizes_squares() -> None:
    request = MoveRequest(from_square=" E2", to_square="e4 ", claimed_ply=0)
    assert (request.from_square, request.to_square) == ("e2", "e4")
    assert request.promotion is None
    assert not request.default_promotion


@pytest.mark.parametrize("square", ["", "e", "e9", "i1", "e22", "4e"])
def test_move_request_invalid_square(square: str) -> None:
    with pytest.raises(ValidationError):
        MoveRequest(from_square=square, to_square="e4", claimed_ply=0)
    with pytest.raises(ValidationError):
        MoveRequest(from_square="e2", to_square=square, claimed_ply=0)


@pytest.mark.parametrize("letter, expected", [("q", "q"), ("N", "n"), (" r ", "r"), ("b", "b")])
def test_move_request_promotion(letter: str, expected: str) -> None:
    request = MoveRequest(from_square="a7", to_square="a8", promotion=letter, claimed_ply=10)
    assert request.promotion == expected


@pytest.mark.parametrize("letter", ["k", "p", "queen", ""])
def test_move_request_invalid_promotion(letter: str) -> None:
    with pytest.raises(ValidationError):
        MoveRequest(from_square="a7", to_square="a8", promotion=letter, claimed_ply=10)


def test_move_request_needs_claimed_ply() -> None:
    with pytest.raises(ValidationError):
        MoveRequest(from_square="e2", to_square="e4")  # type: ignore[call-arg]
    with pytest.raises(ValidationError):
        MoveRequest(from_square="e2", to_square="e4", claimed_ply=-1)


# -- Validation - BotMoveRequest --
def test_bot_request_difficulty() -> None:
    assert BotMoveRequest().difficulty == "medium"
    assert BotMoveRequest(difficulty="Hard").difficulty == "hard"
    with pytest.raises(ValidationError):
        BotMoveRequest(difficulty="grandmaster")


# -- Responses --
def test_game_response_from_model() -> None:
    game = GameModel(
        id=uuid4(),
        mode=GameMode.PVP,
        status=GameStatus.ACTIVE,
        white_id="alice",
        black_id="bob",
        created_by="alice",
        initial_fen=STARTING_FEN,
        current_fen=AFTER_E4,
        pgn="1. e4",
        ply=1,
        time_control=TimeControl(60_000, 1_000),
    )
    move = MoveModel(game.id, 1, "e2e4", "e4", AFTER_E4)

    response = GameResponse.from_model(game, [move])
    assert response.game_id == game.id
    assert response.result == "*"
    assert (response.base_ms, response.increment_ms) == (60_000, 1_000)
    assert response.moves is not None
    assert [m.san for m in response.moves] == ["e4"]

    assert GameResponse.from_model(game).moves is None

    accepted = MoveSubmissionResponse.from_accepted(MoveAccepted(game=game, move=move))
    assert accepted.accepted
    assert accepted.reason is None
    assert accepted.authoritative_ply == 1
    assert accepted.authoritative_fen == AFTER_E4
    assert accepted.move is not None
    assert accepted.move.uci == "e2e4"
