"""
Human readable notations: Standard Algebraic Notation (SAN) for single moves and the move-annotated transcript of a game.

The compact coordinate notation (UCI) lives on Move itself (see moves.py), as that is what gets parsed from requests.
"""

from typing import Optional

from chess_sync.chess.fen import FENState
from chess_sync.chess.moves import Move
from chess_sync.chess.pieces import PIECE_TO_SAN, Color, PieceType
from chess_sync.chess.position import Position


def to_san(before: Position, move: Move, after: Position) -> str:
    """
    SAN of a legal move
    ---

    examples: "e4", "Nf3", "exd5", "Rae1", "N5xd4", "e8=Q+", "O-O", "Qh4#"

    * pawn captures are prefixed with the file the pawn left from
    * pieces get disambiguated by file, then rank, then both, when another piece of the same type can reach the same square
    * "+" for check, "#" for checkmate
    """
    if move.castling_direction is not None:
        san = "O-O" if move.castling_direction.is_king_side else "O-O-O"
        return san + _check_suffix(after)

    moving_piece = before.board.piece(move.from_square)
    is_capture = move.is_en_passant or not before.board.piece(move.to_square).is_empty
    target = move.to_square.to_algebraic()

    if moving_piece.type == PieceType.PAWN:
        san = f"{move.from_square.file_name}x{target}" if is_capture else target
        if move.promote_to is not None:
            san += f"={PIECE_TO_SAN[move.promote_to]}"
        return san + _check_suffix(after)

    san = PIECE_TO_SAN[moving_piece.type] + _disambiguation(before, move)
    if is_capture:
        san += "x"
    return san + target + _check_suffix(after)


def _disambiguation(before: Position, move: Move) -> str:
    moving_piece = before.board.piece(move.from_square)
    rivals = [
        other.from_square
        for other in before.legal_moves
        if other.to_square == move.to_square
        and other.from_square != move.from_square
        and before.board.piece(other.from_square) == moving_piece
    ]
    if not rivals:
        return ""
    if all(square.file != move.from_square.file for square in rivals):
        return move.from_square.file_name
    if all(square.rank != move.from_square.rank for square in rivals):
        return str(move.from_square.rank)
    return move.from_square.to_algebraic()


def _check_suffix(after: Position) -> str:
    if not after.is_check():
        return ""
    return "#" if not after.has_legal_move() else "+"


def build_transcript(initial_fen: str, sans: list[str], result: Optional[str] = None) -> str:
    """
    Movetext of the game, PGN style: "1. e4 e5 2. Nf3 Nc6".

    * Numbering starts at the full move number of the initial position
    * If black moves first: "12... Kd7"
    * Once finished, the result token ("1-0", "0-1", "1/2-1/2") gets appended
    """
    state = FENState.from_fen(initial_fen)
    move_number = state.num_turns
    color = state.color_to_move

    tokens: list[str] = []
    for index, san in enumerate(sans):
        if color == Color.WHITE:
            tokens.append(f"{move_number}.")
        elif index == 0:
            tokens.append(f"{move_number}...")
        tokens.append(san)

        if color == Color.BLACK:
            move_number += 1
        color = color.opponent

    if result is not None and result != "*":
        tokens.append(result)
    return " ".join(tokens)
