"""
Rules engine: the functional entrypoint into the chess domain for the service layer.

Everything here is pure and deterministic. A Position goes in, a new Position (plus a record of the move) or a verdict
comes out. No I/O, no state kept between calls.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence

from chess_sync.chess.moves import Move, is_pawn_push_to_promotion_square
from chess_sync.chess.notation import to_san
from chess_sync.chess.pieces import Color, Piece, PieceType
from chess_sync.chess.position import Position, RepetitionKey
from chess_sync.chess.square import Square
from chess_sync.core.exceptions import IllegalMoveError
from chess_sync.core.shared_types import GameResult, Termination

FIFTY_MOVE_RULE_HALF_MOVES = 100
REPETITIONS_FOR_DRAW = 3


@dataclass(frozen=True)
class MoveRecord:
    """What gets written to the move log for an accepted move"""

    uci: str
    san: str
    fen_after: str
    moving_piece: Piece
    captured_piece: Piece


def _as_square(square: Square | str) -> Square:
    return square if isinstance(square, Square) else Square.from_algebraic(square)


def legal_moves(position: Position) -> list[str]:
    """All legal moves for the side to move, in coordinate notation"""
    return [move.to_uci() for move in position.legal_moves]


def legal_moves_from(position: Position, square: Square | str) -> set[str]:
    """Destination squares for the piece on `square` (used for highlighting). Empty if there is nothing to move."""
    return {
        move.to_square.to_algebraic()
        for move in position.legal_moves_from(_as_square(square))
    }


def apply_move(
    position: Position,
    origin: Square | str,
    destination: Square | str,
    promote_to: Optional[PieceType] = None,
    default_promotion: bool = False,
) -> tuple[Position, MoveRecord]:
    """
    Validate and play a move.
    ----

    Rejected (IllegalMoveError) when:
    * there is no piece at the origin, or it belongs to the side not to move
    * the destination is not a legal destination for that piece (pins, check evasion, castling and en passant rights)
    * a promotion piece is given for a move that does not promote
    * no promotion piece is given for a move that does promote. Only when the caller asks for `default_promotion`
      does the pawn become a queen.
    """
    from_square = _as_square(origin)
    to_square = _as_square(destination)

    moving_piece = position.board.piece(from_square)
    if moving_piece.is_empty:
        raise IllegalMoveError(f"No piece on {from_square.to_algebraic()}.")
    if moving_piece.color != position.color_to_move:
        raise IllegalMoveError(
            f"Piece on {from_square.to_algebraic()} does not belong to the side to move."
        )

    requested = Move(from_square, to_square)
    promotes = is_pawn_push_to_promotion_square(requested, position.board)
    if promotes and promote_to is None:
        if not default_promotion:
            raise IllegalMoveError(
                f"Move {requested.to_uci()} promotes a pawn: a promotion piece is required."
            )
        promote_to = PieceType.QUEEN
    if not promotes and promote_to is not None:
        raise IllegalMoveError(f"Move {requested.to_uci()} does not promote a pawn.")
    requested.promote_to = promote_to

    legal_move = position.find_legal_move(requested)
    if legal_move is None:
        raise IllegalMoveError(f"Move not allowed: {requested.to_uci()}")

    new_position, accepted = position.play(legal_move)
    record = MoveRecord(
        uci=legal_move.to_uci(),
        san=to_san(position, legal_move, new_position),
        fen_after=new_position.to_fen(),
        moving_piece=accepted.moving_piece,
        captured_piece=accepted.captured_piece,
    )
    return new_position, record


def apply_uci(position: Position, uci: str) -> tuple[Position, MoveRecord]:
    """Convenience: replay a move from the log. The stored notation carries the promotion piece explicitly."""
    move = Move.from_uci(uci)
    return apply_move(position, move.from_square, move.to_square, move.promote_to)


# --- PREDICATES ---
def is_check(position: Position) -> bool:
    return position.is_check()


def is_checkmate(position: Position) -> bool:
    return position.is_check() and not position.has_legal_move()


def is_stalemate(position: Position) -> bool:
    return not position.is_check() and not position.has_legal_move()


def is_insufficient_material(position: Position) -> bool:
    """
    Neither side can ever deliver mate:
    * king vs king
    * king + knight or king + bishop vs king
    * kings + bishops only, with every bishop on the same square color
    """
    white = position.board.material(Color.WHITE)
    black = position.board.material(Color.BLACK)
    pieces = white + black

    if not pieces:
        return True
    if len(pieces) == 1 and pieces[0] in (PieceType.KNIGHT, PieceType.BISHOP):
        return True
    if all(piece_type == PieceType.BISHOP for piece_type in pieces):
        bishop_squares = position.board.locate_pieces(PieceType.BISHOP)
        return len({square.is_light() for square in bishop_squares}) == 1
    return False


def is_threefold_repetition(history: Sequence[RepetitionKey]) -> bool:
    """The last position in the history occurred at least three times (the last one included)"""
    if not history:
        return False
    return Counter(history)[history[-1]] >= REPETITIONS_FOR_DRAW


def is_fifty_move_rule(position: Position) -> bool:
    """50 full moves (100 half-moves) without a pawn move or capture"""
    return position.state.half_move_clock >= FIFTY_MOVE_RULE_HALF_MOVES


# --- TERMINAL STATUS ---
def terminal_status(
    position: Position, history: Optional[Sequence[RepetitionKey]] = None
) -> Optional[Termination]:
    """
    Has the game ended after the last move? The first predicate that holds wins:
    checkmate > stalemate > threefold repetition > insufficient material > fifty-move rule.

    Without a history (degraded replay) repetition cannot be judged and is skipped.
    """
    if is_checkmate(position):
        return Termination.CHECKMATE
    if is_stalemate(position):
        return Termination.STALEMATE
    if history is not None and is_threefold_repetition(history):
        return Termination.THREEFOLD_REPETITION
    if is_insufficient_material(position):
        return Termination.INSUFFICIENT_MATERIAL
    if is_fifty_move_rule(position):
        return Termination.FIFTY_MOVE_RULE
    return None


def result_for_winner(winner: Color) -> GameResult:
    return GameResult.WHITE_WINS if winner == Color.WHITE else GameResult.BLACK_WINS


def result_for_termination(position: Position, termination: Termination) -> GameResult:
    """Result of a move-induced ending: only checkmate has a winner, the side that just moved."""
    if termination == Termination.CHECKMATE:
        return result_for_winner(position.color_to_move.opponent)
    return GameResult.DRAW
