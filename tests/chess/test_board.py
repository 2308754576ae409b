"""Unit tests for chess_sync/chess/board.py"""

from typing import Callable, Literal

import pytest

from chess_sync.chess.board import Board, Color, Move, Square
from chess_sync.chess.pieces import PIECE_TO_FEN, Piece, PieceType

STARTING_POSITION_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"
EMPTY_FEN = "/".join(["8"] * 8)
PieceColors = Literal[Color.WHITE, Color.BLACK]


@pytest.fixture
def board_with_single_piece() -> Callable[[PieceType, PieceColors, str], Board]:
    """Call the inner function that will be returned with the desired piece type, color, and square"""

    def _create_board(
        piece_type: PieceType,
        color: PieceColors,
        square_name: str = "d4",
    ) -> Board:
        fen_char = (
            PIECE_TO_FEN[piece_type].upper()
            if color == Color.WHITE
            else PIECE_TO_FEN[piece_type].lower()
        )
        file_idx = ord(square_name[0]) - ord("a")
        rank_idx = 8 - int(square_name[1])

        fen_rows = ["8"] * 8
        left = str(file_idx) if file_idx else ""
        right = str(7 - file_idx) if 7 - file_idx else ""
        fen_rows[rank_idx] = f"{left}{fen_char}{right}"
        return Board.from_fen("/".join(fen_rows))

    return _create_board


@pytest.mark.parametrize(
    "fen",
    [
        STARTING_POSITION_FEN,
        EMPTY_FEN,
        "r3k2r/pppq1ppp/2n2n2/3pp3/1b1PP1b1/2N2N2/PPPQ1PPP/R3KB1R",
        "8/8/8/3k4/8/8/4K3/8",
    ],
)
def test_fen_round_trip(fen: str) -> None:
    assert Board.from_fen(fen).to_fen() == fen


def test_starting_position_pieces() -> None:
    board = Board.from_fen(STARTING_POSITION_FEN)
    assert board.piece(Square.from_algebraic("e1")) == Piece(PieceType.KING, Color.WHITE)
    assert board.piece(Square.from_algebraic("d8")) == Piece(PieceType.QUEEN, Color.BLACK)
    assert board.piece(Square.from_algebraic("e4")).is_empty
    assert len(board.locate_color(Color.WHITE)) == 16
    assert len(board.locate_pieces(PieceType.PAWN)) == 16


def test_copy_is_independent() -> None:
    """Moving on a copy must leave the original untouched"""
    board = Board.from_fen(STARTING_POSITION_FEN)
    copy = board.copy()
    copy.move_piece(Move(Square.from_algebraic("e2"), Square.from_algebraic("e4")))
    assert board.to_fen() == STARTING_POSITION_FEN
    assert copy.to_fen() == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR"


def test_move_piece_returns_captured_piece() -> None:
    board = Board.from_fen("8/8/8/3p4/4P3/8/8/8")
    captured = board.move_piece(Move(Square.from_algebraic("e4"), Square.from_algebraic("d5")))
    assert captured == Piece(PieceType.PAWN, Color.BLACK)
    assert board.piece(Square.from_algebraic("e4")).is_empty
    assert board.piece(Square.from_algebraic("d5")) == Piece(PieceType.PAWN, Color.WHITE)


def test_find_king() -> None:
    board = Board.from_fen(STARTING_POSITION_FEN)
    assert board.find_king(Color.WHITE) == Square.from_algebraic("e1")
    assert board.find_king(Color.BLACK) == Square.from_algebraic("e8")
    assert Board.from_fen(EMPTY_FEN).find_king(Color.WHITE) is None


@pytest.mark.parametrize(
    "piece_type, num_moves",
    [
        (PieceType.KNIGHT, 8),
        (PieceType.BISHOP, 13),
        (PieceType.ROOK, 14),
        (PieceType.QUEEN, 27),
        (PieceType.KING, 8),
    ],
)
def test_candidate_moves_single_piece_in_center(
    board_with_single_piece: Callable[[PieceType, PieceColors, str], Board],
    piece_type: PieceType,
    num_moves: int,
) -> None:
    """A lone piece on d4 reaches the textbook number of squares"""
    board = board_with_single_piece(piece_type, Color.WHITE, "d4")
    assert len(board.generate_candidate_moves(Color.WHITE)) == num_moves
    assert board.generate_candidate_moves(Color.BLACK) == []


def test_candidate_moves_starting_position() -> None:
    """16 pawn moves + 4 knight moves"""
    board = Board.from_fen(STARTING_POSITION_FEN)
    assert len(board.generate_candidate_moves(Color.WHITE)) == 20
    assert len(board.generate_candidate_moves(Color.BLACK)) == 20


@pytest.mark.parametrize(
    "fen, square, by_color, expected",
    [
        # rook on the same file, nothing in between
        ("4r3/8/8/8/8/8/8/4K3", "e1", Color.BLACK, True),
        # own pawn blocks the rook
        ("4r3/8/8/8/8/8/4P3/4K3", "e1", Color.BLACK, False),
        # bishop on the long diagonal
        ("7b/8/8/8/8/8/8/K7", "a1", Color.BLACK, True),
        # knight jump
        ("8/8/8/8/8/3n4/8/4K3", "e1", Color.BLACK, True),
        # black pawn attacks diagonally downwards
        ("8/8/8/8/8/8/3p4/4K3", "e1", Color.BLACK, True),
        # ... but not straight ahead
        ("8/8/8/8/8/8/4p3/4K3", "e1", Color.BLACK, False),
        # white pawn attacks upwards
        ("8/8/8/8/8/3k4/4P3/8", "d3", Color.WHITE, True),
        # kings attack adjacent squares
        ("8/8/8/8/8/8/8/4Kk2", "f1", Color.WHITE, True),
    ],
)
def test_is_under_attack(fen: str, square: str, by_color: Color, expected: bool) -> None:
    board = Board.from_fen(fen)
    assert board.is_under_attack(Square.from_algebraic(square), by_color) == expected


def test_is_check() -> None:
    board = Board.from_fen("4r3/8/8/8/8/8/8/4K3")
    assert board.is_check(Color.WHITE)
    assert not board.is_check(Color.BLACK)


def test_material_excludes_kings() -> None:
    board = Board.from_fen("4k3/8/8/8/8/8/8/2B1K1N1")
    assert sorted(board.material(Color.WHITE), key=lambda t: t.value) == [
        PieceType.KNIGHT,
        PieceType.BISHOP,
    ]
    assert board.material(Color.BLACK) == []
