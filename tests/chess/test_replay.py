"""Unit tests for chess_sync/chess/replay.py"""

import logging
from uuid import uuid4

import pytest

from chess_sync.chess.fen import STARTING_FEN
from chess_sync.chess.position import Position
from chess_sync.chess.replay import Degraded, Reconstructed, reconstruct, replay
from chess_sync.chess.rules import apply_uci
from chess_sync.core.exceptions import InvalidFENError, ReplayError
from chess_sync.core.models import MoveModel

GAME_ID = uuid4()


def move_log(ucis: list[str], fen: str = STARTING_FEN) -> tuple[list[MoveModel], str]:
    """Stored move rows for the given moves, plus the FEN after the last one"""
    position = Position.from_fen(fen)
    rows: list[MoveModel] = []
    for ply, uci in enumerate(ucis, start=1):
        position, record = apply_uci(position, uci)
        rows.append(MoveModel(GAME_ID, ply, record.uci, record.san, record.fen_after))
    return rows, position.to_fen()


def test_replay_empty_log() -> None:
    result = replay(STARTING_FEN, [])
    assert result.ply == 0
    assert result.position.to_fen() == STARTING_FEN
    assert len(result.history) == 1


def test_replay_matches_stored_fens() -> None:
    """Replaying the log reproduces the FEN stored after every move"""
    moves, final_fen = move_log(["e2e4", "c7c5", "g1f3", "d7d6", "d2d4", "c5d4"])
    result = replay(STARTING_FEN, moves)
    assert result.ply == 6
    assert result.position.to_fen() == final_fen == moves[-1].fen_after
    assert len(result.history) == 7


def test_replay_from_custom_start() -> None:
    fen = "4k3/8/8/8/8/8/4P3/4K3 w - - 0 1"
    moves, final_fen = move_log(["e2e4", "e8d7"], fen)
    assert replay(fen, moves).position.to_fen() == final_fen


def test_replay_rejects_illegal_stored_move() -> None:
    moves, _ = move_log(["e2e4", "e7e5"])
    corrupt = [moves[0], MoveModel(GAME_ID, 2, "e7e4", "e4", moves[1].fen_after)]
    with pytest.raises(ReplayError):
        replay(STARTING_FEN, corrupt)


@pytest.mark.parametrize("plies", [[1, 3], [2, 3], [1, 1], [0, 1]])
def test_replay_rejects_ply_gaps(plies: list[int]) -> None:
    moves, _ = move_log(["e2e4", "e7e5"])
    renumbered = [
        MoveModel(GAME_ID, ply, move.uci, move.san, move.fen_after)
        for ply, move in zip(plies, moves)
    ]
    with pytest.raises(ReplayError):
        replay(STARTING_FEN, renumbered)


def test_reconstruct_healthy_log() -> None:
    moves, final_fen = move_log(["d2d4", "d7d5"])
    result = reconstruct(STARTING_FEN, moves, final_fen)
    assert isinstance(result, Reconstructed)
    assert not result.is_degraded
    assert result.ply == 2


def test_reconstruct_falls_back_to_cached_position(caplog: pytest.LogCaptureFixture) -> None:
    """A corrupt log does not lock the game: play continues from the cached FEN, flagged as degraded"""
    moves, final_fen = move_log(["e2e4", "e7e5", "g1f3"])
    corrupt = moves[:2] + [MoveModel(GAME_ID, 3, "a1a8", "Ra8", final_fen)]

    with caplog.at_level(logging.WARNING):
        result = reconstruct(STARTING_FEN, corrupt, final_fen)

    assert isinstance(result, Degraded)
    assert result.is_degraded
    assert result.ply == 3
    assert result.position.to_fen() == final_fen
    assert "a1a8" in result.reason
    assert any(record.levelno == logging.WARNING for record in caplog.records)


def test_reconstruct_corrupt_log_and_cache() -> None:
    """Nothing left to play from"""
    with pytest.raises(InvalidFENError):
        reconstruct(STARTING_FEN, [MoveModel(GAME_ID, 1, "e2e5", "e5", "x")], "not a fen")


def test_reconstruct_replay_wins_over_drifted_cache(caplog: pytest.LogCaptureFixture) -> None:
    moves, final_fen = move_log(["e2e4", "e7e5"])

    with caplog.at_level(logging.WARNING):
        result = reconstruct(STARTING_FEN, moves, STARTING_FEN)

    assert isinstance(result, Reconstructed)
    assert result.position.to_fen() == final_fen
    assert "drifted" in caplog.text


def test_reconstruct_gapped_log_keeps_stored_ply() -> None:
    """Rows 1 and 3 left after a lost write: the game is still at ply 3"""
    moves, final_fen = move_log(["e2e4", "e7e5", "g1f3"])
    gapped = [moves[0], moves[2]]
    result = reconstruct(STARTING_FEN, gapped, final_fen, cached_ply=3)
    assert isinstance(result, Degraded)
    assert result.ply == 3
    assert result.position.to_fen() == final_fen

    assert reconstruct(STARTING_FEN, gapped, final_fen).ply == 2
