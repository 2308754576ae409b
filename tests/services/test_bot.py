"""Unit tests for chess_sync/services/bot.py"""

import pytest

from chess_sync.chess.fen import STARTING_FEN
from chess_sync.chess.position import Position
from chess_sync.chess.rules import legal_moves
from chess_sync.services.bot import BOT_DIFFICULTIES, RandomMoveBot


def test_difficulties() -> None:
    assert list(BOT_DIFFICULTIES) == ["beginner", "easy", "medium", "hard", "expert"]
    depths = [difficulty.depth for difficulty in BOT_DIFFICULTIES.values()]
    assert depths == sorted(depths)


def test_random_bot_proposes_legal_moves() -> None:
    bot = RandomMoveBot(seed=7)
    legal = legal_moves(Position.from_fen(STARTING_FEN))
    for _ in range(20):
        assert bot.request_move(STARTING_FEN, BOT_DIFFICULTIES["hard"]) in legal


def test_random_bot_is_reproducible() -> None:
    fen = "r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3"
    first = [RandomMoveBot(seed=1).request_move(fen, BOT_DIFFICULTIES["easy"]) for _ in range(3)]
    assert len(set(first)) == 1


def test_random_bot_without_moves() -> None:
    checkmated = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
    with pytest.raises(ValueError):
        RandomMoveBot().request_move(checkmated, BOT_DIFFICULTIES["easy"])
