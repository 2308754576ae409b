"""
A Position is everything a FEN string encodes: the Board plus the FEN state (side to move, castling rights,
en passant square, move clocks).

It implements the rules that need more than the geometry of moves.py:
* moves that leave your own king in check are filtered out
* castling rights / en passant rights
* promotion (a pawn reaching the last rank yields one move per piece type)
* bookkeeping of the FEN state after a move

Positions are never changed in place by `play()`: a new Position is returned. This keeps the rules engine free of
shared state, so one position can be used by any number of concurrent requests.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Optional, Self

from chess_sync.chess.board import Board
from chess_sync.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    castling_options,
    castling_to_fen,
)
from chess_sync.chess.fen import STARTING_FEN, FENState
from chess_sync.chess.moves import (
    Move,
    candidate_castling_move,
    castling_rook_squares,
    en_passant_moves,
    is_pawn_push_to_promotion_square,
    pawn_direction,
    pawn_pushes_w_promotion,
)
from chess_sync.chess.pieces import Color, Piece, PieceType
from chess_sync.chess.square import Square

# Board placement, side to move, castling rights, en passant square (only if the capture is really possible)
RepetitionKey = tuple[str, Color, str, Optional[Square]]


@dataclass(frozen=True)
class AcceptedMove:
    """Snapshot of the moving pieces, taken before the board gets updated."""

    move: Move
    moving_piece: Piece
    captured_piece: Piece

    @property
    def is_capture(self) -> bool:
        return not self.captured_piece.is_empty


@dataclass
class Position:
    board: Board
    state: FENState

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        state = FENState.from_fen(fen)
        return cls(Board.from_fen(state.position), state)

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    def to_fen(self) -> str:
        return self.state.to_fen()

    @property
    def color_to_move(self) -> Color:
        return self.state.color_to_move

    # --- LEGAL MOVES ---
    @cached_property
    def legal_moves(self) -> tuple[Move, ...]:
        """
        List of legal moves for the side to move
        ----

        1. generate candidate moves, using the basic movement rules for all pieces (the board does this calculation)
        2. add candidate castling moves
        3. add candidate en passant moves
        4. remove moves that put (or leave) you in check.
        5. Pawn push to promotion square? --> one move for every choice of piece type to promote into.
        """
        color = self.color_to_move
        candidate_moves = self.board.generate_candidate_moves(color)
        candidate_moves.extend(
            candidate_castling_move(direction)
            for direction in self._legal_castling_directions()
        )
        if self.state.en_passant_square is not None:
            candidate_moves.extend(
                en_passant_moves(self.state.en_passant_square, color, self.board)
            )

        legal_moves: list[Move] = []
        for move in candidate_moves:
            if self._is_putting_yourself_in_check(move):
                continue
            if is_pawn_push_to_promotion_square(move, self.board):
                legal_moves.extend(pawn_pushes_w_promotion(move))
            else:
                legal_moves.append(move)
        return tuple(legal_moves)

    def legal_moves_from(self, square: Square) -> list[Move]:
        return [move for move in self.legal_moves if move.from_square == square]

    def find_legal_move(self, requested: Move) -> Optional[Move]:
        """The legal move with the same squares/promotion, with castling and en passant flags filled in."""
        return next(
            (move for move in self.legal_moves if move.same_squares(requested)), None
        )

    def has_legal_move(self) -> bool:
        return len(self.legal_moves) > 0

    def is_check(self) -> bool:
        return self.board.is_check(self.color_to_move)

    # --- MAKING A MOVE ---
    def play(self, move: Move) -> tuple["Position", AcceptedMove]:
        """
        Apply an already validated move (one taken from `legal_moves`).
        ----

        1. update the board (NOTE: castling moves king and rook, en passant removes a pawn beside the target square)
        2. promote the pawn, if needed
        3. update the FEN state: castling rights, en passant square, move counters, side to move
        """
        board = self.board.copy()
        moving_piece = board.piece(move.from_square)
        captured_piece = self._move_pieces(board, move)
        if move.promote_to is not None:
            board.place_piece(moving_piece.promoted(move.promote_to), move.to_square)

        accepted = AcceptedMove(move, moving_piece, captured_piece)
        state = self._next_state(accepted, board)
        return Position(board, state), accepted

    def _move_pieces(self, board: Board, move: Move) -> Piece:
        """Apply the movement of a move to the given board. Returns the captured piece (empty piece if none)."""
        if move.castling_direction is not None:
            rook_from, rook_to = castling_rook_squares(move.castling_direction)
            board.move_piece(move)
            board.move_piece(Move(rook_from, rook_to))
            return Piece.empty()

        if move.is_en_passant:
            # the pawn taken stands on the target file, on the rank the moving pawn started from
            board.move_piece(move)
            return board.remove_piece(Square(move.to_square.file, move.from_square.rank))

        return board.move_piece(move)

    def _next_state(self, accepted: AcceptedMove, board: Board) -> FENState:
        state = self.state.copy()
        state.position = board.to_fen()
        mover = self.color_to_move

        self._revoke_castling_rights_if_needed(state, accepted.move)
        state.en_passant_square = self._determine_en_passant_square(accepted)

        if accepted.moving_piece.type == PieceType.PAWN or accepted.is_capture:
            state.reset_half_move_counter()
        else:
            state.increment_half_move_counter()

        if mover == Color.BLACK:
            state.increment_full_move_counter()

        # NOTE update color to move AFTER the checks that depend on the last mover
        state.color_to_move = mover.opponent
        return state

    # -- CHECK HELPERS ---
    def _is_putting_yourself_in_check(self, move: Move) -> bool:
        """Play the move on a copy of the board, then look at your own king"""
        board = self.board.copy()
        self._move_pieces(board, move)
        return board.is_check(self.color_to_move)

    # -- CASTLING RULE HELPERS ---
    def _legal_castling_directions(self) -> list[CastlingDirection]:
        """
        Find the legal castling directions for the side to move
        ---

        **you are allowed to castle if**

        * Castling rights in that direction are not yet revoked (neither king nor that rook has moved).
        * King and rook are standing on their starting squares.
        * All squares between king and rook are empty.
        * You are not in check, and the king does not pass through or land on an attacked square.
        """
        color = self.color_to_move
        if not self.state.can_castle(color):
            return []

        opponent_color = color.opponent
        king = Piece(PieceType.KING, color)
        rook = Piece(PieceType.ROOK, color)
        legal_directions: list[CastlingDirection] = []
        for direction in castling_options(color):
            if not self.state.castling_rights[direction]:
                continue

            rule = CASTLING_RULES[direction]
            if self.board.piece(rule.king_from) != king or self.board.piece(rule.rook_from) != rook:
                continue

            if self.board.is_any_occupied(rule.squares_between()):
                continue

            squares_to_be_safe = [rule.king_from] + rule.king_path()
            if self.board.is_any_under_attack(squares_to_be_safe, opponent_color):
                continue

            legal_directions.append(direction)
        return legal_directions

    def _revoke_castling_rights_if_needed(self, state: FENState, move: Move) -> None:
        """
        Any move starting or ending on a king or rook starting square revokes the rights tied to that square:
        moving the king, moving a rook, castling, or capturing a rook that never moved.
        """
        touched = {move.from_square, move.to_square}
        for direction, rule in CASTLING_RULES.items():
            if touched & {rule.king_from, rule.rook_from}:
                state.revoke_castling_rights(direction)

    # --- EN PASSANT RULE HELPERS ----
    def _determine_en_passant_square(self, accepted: AcceptedMove) -> Optional[Square]:
        """The square a pawn skipped with a double push: the only square it can be taken on next move."""
        move = accepted.move
        ranks_moved = abs(move.from_square.rank - move.to_square.rank)
        if accepted.moving_piece.type == PieceType.PAWN and ranks_moved == 2:
            return move.from_square.offset(0, pawn_direction(accepted.moving_piece.color))
        return None

    # --- REPETITION ---
    def repetition_key(self) -> RepetitionKey:
        """
        Two positions are the same for the repetition rule if the same side is to move, pieces stand on the same
        squares and the possible moves are the same (castling rights, and en passant only when the capture can be played).
        Move clocks do not count.
        """
        en_passant = (
            self.state.en_passant_square
            if any(move.is_en_passant for move in self.legal_moves)
            else None
        )
        return (
            self.state.position,
            self.color_to_move,
            castling_to_fen(self.state.castling_rights),
            en_passant,
        )
