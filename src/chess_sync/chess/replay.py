"""
Position reconstruction: rebuild the authoritative position of a game from its move log.

The current FEN cached on the game row cannot tell how many plies were played or which positions repeated.
Replaying the log from the initial position can, so the log is the source of truth and the cache is advisory.

If the log cannot be replayed (a stored move no longer applies, or ply numbers have gaps) the game must stay
playable: the cached FEN is used instead and the result says so (`Degraded`), so callers know ply-sync and
repetition checks are off for this request.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar, Optional, Protocol, Sequence

from chess_sync.chess.position import Position, RepetitionKey
from chess_sync.chess.rules import apply_uci
from chess_sync.core.exceptions import GameError, ReplayError

logger = logging.getLogger(__name__)


class LoggedMove(Protocol):
    """Just the parts of a stored move row the replay needs"""

    ply: int
    uci: str


@dataclass(frozen=True)
class Reconstructed:
    position: Position
    ply: int
    history: tuple[RepetitionKey, ...]
    is_degraded: ClassVar[bool] = False


@dataclass(frozen=True)
class Degraded:
    position: Position
    ply: int
    reason: str
    is_degraded: ClassVar[bool] = True


ReconstructionResult = Reconstructed | Degraded


def replay(initial_fen: str, moves: Sequence[LoggedMove]) -> Reconstructed:
    """
    Strict replay. Raises ReplayError on the first move that does not apply,
    or when ply numbers are not 1, 2, 3, ... in order.
    """
    try:
        position = Position.from_fen(initial_fen)
    except GameError as exc:
        raise ReplayError(f"Initial position cannot be loaded: {exc}") from exc

    history: list[RepetitionKey] = [position.repetition_key()]
    for expected_ply, logged in enumerate(moves, start=1):
        if logged.ply != expected_ply:
            raise ReplayError(
                f"Move log out of order: expected ply {expected_ply}, found {logged.ply}."
            )
        try:
            position, _ = apply_uci(position, logged.uci)
        except GameError as exc:
            raise ReplayError(
                f"Stored move {logged.uci!r} at ply {logged.ply} does not apply: {exc}"
            ) from exc
        history.append(position.repetition_key())

    return Reconstructed(position, len(moves), tuple(history))


def reconstruct(
    initial_fen: str,
    moves: Sequence[LoggedMove],
    cached_fen: str,
    cached_ply: Optional[int] = None,
) -> ReconstructionResult:
    """
    Replay the log, falling back to the cached FEN when the log is corrupt.

    In the fallback the ply is the stored ply counter when given (`cached_ply`): with gaps in the log the number of
    rows says nothing about how many plies were played.
    """
    try:
        result = replay(initial_fen, moves)
    except ReplayError as exc:
        logger.warning("Falling back to cached position: %s", exc)
        # If the cache cannot be read either there is nothing left to play from: let the InvalidFENError through
        ply = len(moves) if cached_ply is None else cached_ply
        return Degraded(Position.from_fen(cached_fen), ply, str(exc))

    replayed_fen = result.position.to_fen()
    if replayed_fen != cached_fen:
        logger.warning(
            "Cached position drifted from the move log (cached %r, replayed %r). Using the replay.",
            cached_fen,
            replayed_fen,
        )
    return result
