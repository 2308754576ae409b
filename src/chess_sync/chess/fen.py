"""
Representation of a single position on the board. The part that can be encoded in a FEN string.
"""

from dataclasses import dataclass, field
from typing import Optional, Self

from chess_sync.chess.castling import (
    CastlingDirection,
    castling_from_fen,
    castling_options,
    castling_to_fen,
)
from chess_sync.chess.pieces import FEN_TO_PIECE, Color
from chess_sync.chess.square import BOARD_DIMENSIONS, Square, is_valid_square_name
from chess_sync.core.exceptions import InvalidFENError

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
VALID_CASTLING_ENCODINGS = [
    "-",
    "K",
    "Q",
    "k",
    "q",
    "KQ",
    "Kk",
    "Kq",
    "Qk",
    "Qq",
    "kq",
    "KQk",
    "KQq",
    "Kkq",
    "Qkq",
    "KQkq",
]


def is_valid_fen(fen: str) -> bool:
    """
    Check if given string follows proper FEN notation.
    """

    # there should be 6 parts to the string
    parts = fen.split(" ")
    if len(parts) != 6:
        return False

    position, color, castling, en_passant, half_move_counter, full_move_counter = parts
    if not is_valid_position(position):
        return False

    if not is_valid_color_code(color):
        return False

    if not is_valid_castling_rights(castling):
        return False

    if not is_valid_en_passant(en_passant):
        return False

    if not is_consistent_en_passant(en_passant, color, position):
        return False

    if not (
        is_valid_move_counter(half_move_counter)
        and is_valid_move_counter(full_move_counter)
    ):
        return False
    return int(full_move_counter) >= 1


def is_valid_position(position: str) -> bool:
    """Only check the part of the FEN encoding for the board position. Needs exactly one king per side."""
    num_files, num_ranks = BOARD_DIMENSIONS
    rank_fens = position.split("/")
    if len(rank_fens) != num_ranks:
        return False

    for rank_fen in rank_fens:
        file_count = 0
        for character in rank_fen:
            if character.isdigit():
                file_count += int(character)
            elif character.lower() in FEN_TO_PIECE:
                file_count += 1
            else:
                return False

        if file_count != num_files:
            return False
    return position.count("K") == 1 and position.count("k") == 1


def is_valid_color_code(color: str) -> bool:
    return color in {"w", "b"}


def is_valid_castling_rights(castling: str) -> bool:
    """A valid castling encoding has either KQkq, KQk, etc. or a '-' if all rights have been revoked."""
    return castling in VALID_CASTLING_ENCODINGS


def is_valid_en_passant(en_passant: str) -> bool:
    """Either '-' or the square a pawn skipped, which lies on the 3rd or 6th rank"""
    if en_passant == "-":
        return True
    return is_valid_square_name(en_passant) and en_passant[1] in {"3", "6"}


def is_consistent_en_passant(en_passant: str, color: str, position: str) -> bool:
    """
    The target square lies right behind the pawn that just made a double push: on the 6th rank with a black pawn
    in front of it when white is to move, on the 3rd rank with a white pawn in front of it when black is to move.
    The target square itself is empty.
    """
    if en_passant == "-":
        return True
    target_rank, pawn_rank, pawn = ("6", "5", "p") if color == "w" else ("3", "4", "P")
    if en_passant[1] != target_rank:
        return False
    return (
        piece_letter_at(position, en_passant) is None
        and piece_letter_at(position, en_passant[0] + pawn_rank) == pawn
    )


def piece_letter_at(position: str, square_name: str) -> Optional[str]:
    """FEN letter of the piece on the square in the board part of a (valid) FEN, None for an empty square"""
    _, num_ranks = BOARD_DIMENSIONS
    rank_fen = position.split("/")[num_ranks - int(square_name[1])]
    expanded = "".join("." * int(c) if c.isdigit() else c for c in rank_fen)
    letter = expanded[ord(square_name[0]) - ord("a")]
    return None if letter == "." else letter


def is_valid_move_counter(counter: str) -> bool:
    return counter.isdigit()


@dataclass
class FENState:
    """
    Data that can be constructed from a FEN string.
    ----

    FEN, or Forsyth-Edwards Notation, is a standard notation for describing a particular board position of a chess game.

    <board position string><active color><castling rights><en passant square><# half move clock><number turns played>

    * The string to describe the board position is described in the Board class
    * The active color is either "w" or "b"
    * Castling rights are "K"/"Q" (white king/queen side) and "k"/"q" (black), or "-" once all are revoked.
    * The en passant square is the square a pawn skipped with a double push in the previous move. If not available a "-" is used.
    * The half move clock counts the half-moves since the last pawn move or capture (fifty-move rule: draw at 100).
    * The number of turns starts at 1 and increments after every move black makes.

    ex) The standard starting position has a FEN
    rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1
    """

    position: str
    color_to_move: Color
    castling_rights: dict[CastlingDirection, bool] = field(
        default_factory=lambda: castling_from_fen("-")
    )
    en_passant_square: Optional[Square] = None
    half_move_clock: int = 0
    num_turns: int = 1

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Parse the FEN into data"""
        if not is_valid_fen(fen):
            raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen}")

        (
            position,
            active_color,
            castling_str,
            en_passant_algebraic,
            half_move_clock,
            num_turns,
        ) = fen.split(" ")

        color_to_move = Color.WHITE if active_color == "w" else Color.BLACK
        en_passant_square = (
            Square.from_algebraic(en_passant_algebraic)
            if en_passant_algebraic != "-"
            else None
        )
        return cls(
            position,
            color_to_move,
            castling_from_fen(castling_str),
            en_passant_square,
            int(half_move_clock),
            int(num_turns),
        )

    def to_fen(self) -> str:
        """reverse operation: write a FEN from the given data"""
        active_color = "w" if self.color_to_move == Color.WHITE else "b"
        castling_str = castling_to_fen(self.castling_rights)
        en_passant_algebraic = (
            self.en_passant_square.to_algebraic()
            if self.en_passant_square is not None
            else "-"
        )
        return f"{self.position} {active_color} {castling_str} {en_passant_algebraic} {self.half_move_clock} {self.num_turns}"

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    def copy(self) -> "FENState":
        return FENState(
            self.position,
            self.color_to_move,
            dict(self.castling_rights),
            self.en_passant_square,
            self.half_move_clock,
            self.num_turns,
        )

    # --- castling rights bookkeeping ---
    def can_castle(self, color: Color) -> bool:
        return any(self.castling_rights[d] for d in castling_options(color))

    def revoke_castling_rights(self, direction: CastlingDirection) -> None:
        self.castling_rights[direction] = False

    def revoke_all_castling_rights(self, color: Color) -> None:
        for direction in castling_options(color):
            self.revoke_castling_rights(direction)

    # --- move counters ---
    def increment_half_move_counter(self) -> None:
        self.half_move_clock += 1

    def reset_half_move_counter(self) -> None:
        self.half_move_clock = 0

    def increment_full_move_counter(self) -> None:
        self.num_turns += 1
