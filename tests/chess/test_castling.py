"""unit tests for chess_sync/chess/castling.py"""

from chess_sync.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    CastlingSquares,
    Square,
    castling_from_fen,
    castling_options,
    castling_to_fen,
)
from chess_sync.chess.pieces import Color


def test_castling_squares_creation() -> None:
    """Test one case, just to have a little contract stating: 'I want to be able to create this dataclass'"""
    castling_squares = CastlingSquares.from_algebraic("e1", "g1", "h1", "f1")
    assert castling_squares.king_from == Square.from_algebraic("e1")
    assert castling_squares.king_to == Square.from_algebraic("g1")
    assert castling_squares.rook_from == Square.from_algebraic("h1")
    assert castling_squares.rook_to == Square.from_algebraic("f1")


def test_squares_between_queen_side() -> None:
    """Queen side castling needs b1 empty too, even though the king never crosses it"""
    squares = CASTLING_RULES[CastlingDirection.WHITE_QUEEN_SIDE].squares_between()
    assert {sq.to_algebraic() for sq in squares} == {"b1", "c1", "d1"}


def test_king_path() -> None:
    """Only the squares the king crosses and lands on must be safe"""
    king_side = CASTLING_RULES[CastlingDirection.BLACK_KING_SIDE].king_path()
    queen_side = CASTLING_RULES[CastlingDirection.BLACK_QUEEN_SIDE].king_path()
    assert [sq.to_algebraic() for sq in king_side] == ["f8", "g8"]
    assert [sq.to_algebraic() for sq in queen_side] == ["d8", "c8"]


def test_castling_fen_round_trip() -> None:
    rights = castling_from_fen("Kq")
    assert rights[CastlingDirection.WHITE_KING_SIDE]
    assert not rights[CastlingDirection.WHITE_QUEEN_SIDE]
    assert not rights[CastlingDirection.BLACK_KING_SIDE]
    assert rights[CastlingDirection.BLACK_QUEEN_SIDE]
    assert castling_to_fen(rights) == "Kq"
    assert castling_to_fen(castling_from_fen("-")) == "-"


def test_castling_options_per_color() -> None:
    assert castling_options(Color.WHITE) == [
        CastlingDirection.WHITE_KING_SIDE,
        CastlingDirection.WHITE_QUEEN_SIDE,
    ]
    assert all(direction.color == Color.BLACK for direction in castling_options(Color.BLACK))
