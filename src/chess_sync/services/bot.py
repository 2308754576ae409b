"""
Bot move source.

The engine that picks the bot's moves lives outside this service. All the service needs is something that, given a
position, proposes a move in coordinate notation. The proposal is validated exactly like a human move, so a buggy
engine cannot corrupt a game.
"""

import random
from dataclasses import dataclass
from typing import Optional, Protocol

from chess_sync.chess.position import Position
from chess_sync.chess.rules import legal_moves


@dataclass(frozen=True)
class BotDifficulty:
    label: str
    depth: int
    move_time_ms: int


BOT_DIFFICULTIES: dict[str, BotDifficulty] = {
    difficulty.label.lower(): difficulty
    for difficulty in (
        BotDifficulty("Beginner", depth=2, move_time_ms=50),
        BotDifficulty("Easy", depth=4, move_time_ms=100),
        BotDifficulty("Medium", depth=8, move_time_ms=200),
        BotDifficulty("Hard", depth=12, move_time_ms=400),
        BotDifficulty("Expert", depth=16, move_time_ms=800),
    )
}


class BotMoveSource(Protocol):
    def request_move(self, fen: str, difficulty: BotDifficulty) -> str:
        """Return a move proposal in coordinate notation (e.g. 'e7e5', 'a2a1q')"""
        ...


class RandomMoveBot:
    """Stand-in engine: any legal move. Ignores the difficulty."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._random = random.Random(seed)

    def request_move(self, fen: str, difficulty: BotDifficulty) -> str:
        candidates = legal_moves(Position.from_fen(fen))
        if not candidates:
            raise ValueError(f"No legal move in position {fen!r}")
        return self._random.choice(sorted(candidates))
