"""The Game board implements all rules that effect the `position` (in chess: the configuration of pieces on the board)"""

from dataclasses import dataclass
from typing import Self

from chess_sync.chess.moves import ATTACK_RULES, MOVEMENT_RULES, CandidateMovesFn, Move
from chess_sync.chess.pieces import Color, Piece, PieceType
from chess_sync.chess.square import BOARD_DIMENSIONS, Square


@dataclass
class Board:
    position: dict[Square, Piece]

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using the first part of a FEN string: the piece placement.

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank, starting with rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank are the white pieces, again read from the a-file to the h-file.
        """
        position: dict[Square, Piece] = {}
        for rank_idx, fen_one_rank in enumerate(fen_str.split("/")):
            # FEN string is read from top rank (8th) to bottom rank (1st)
            rank = BOARD_DIMENSIONS[1] - rank_idx
            file = 1
            for character in fen_one_rank:
                if character.isalpha():
                    position[Square(file, rank)] = Piece.from_fen(character)
                    file += 1
                else:
                    # A number denotes the amount of empty squares after each other
                    for _ in range(int(character)):
                        position[Square(file, rank)] = Piece.empty()
                        file += 1
        return cls(position)

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank) for rank in range(BOARD_DIMENSIONS[1], 0, -1)
        )

    def _rank_to_fen(self, rank: int) -> str:
        """FEN string of a single rank"""
        fen_characters: list[str] = []
        empty_count = 0
        for file in range(1, BOARD_DIMENSIONS[0] + 1):
            piece = self.piece(Square(file, rank))

            if not piece.is_empty:
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(piece.to_fen())
            else:
                empty_count += 1

        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    def copy(self) -> "Board":
        """Pieces are immutable, so a shallow copy of the mapping is a full copy of the board."""
        return Board(dict(self.position))

    def piece(self, square: Square) -> Piece:
        return self.position[square]

    def place_piece(self, piece: Piece, square: Square) -> None:
        self.position[square] = piece

    def remove_piece(self, square: Square) -> Piece:
        removed = self.position[square]
        self.position[square] = Piece.empty()
        return removed

    def locate_pieces(self, piece_type: PieceType) -> list[Square]:
        return [
            square
            for square, piece in self.position.items()
            if piece.type == piece_type
        ]

    def locate_color(self, color: Color) -> list[Square]:
        return [
            square for square, piece in self.position.items() if piece.color == color
        ]

    def find_king(self, color: Color) -> Square | None:
        king = Piece(PieceType.KING, color)
        return next(
            (square for square, piece in self.position.items() if piece == king), None
        )

    def generate_candidate_moves(self, color: Color) -> list[Move]:
        """
        Before knowing the set of legal moves, we use raycasting to find candidate moves, which will later be tested for legality
        (making sure it does not put yourself in check.)

        ---
        NOTE: Castling and en passant are added by Position, they depend on the FEN state.
        """
        candidate_moves: list[Move] = []
        for starting_square in self.locate_color(color):
            movement_rule: CandidateMovesFn = MOVEMENT_RULES[self.piece(starting_square).type]
            candidate_moves.extend(movement_rule(starting_square, self))
        return candidate_moves

    def move_piece(self, move: Move) -> Piece:
        """Update the position on the board, returning whatever stood on the target square"""
        piece_that_moved = self.remove_piece(move.from_square)
        captured = self.position[move.to_square]
        self.position[move.to_square] = piece_that_moved
        return captured

    def is_under_attack(self, square: Square, by_color: Color) -> bool:
        return any(rule(square, by_color, self) for rule in ATTACK_RULES)

    def is_any_under_attack(self, squares: list[Square], by_color: Color) -> bool:
        return any(self.is_under_attack(square, by_color) for square in squares)

    def is_any_occupied(self, squares: list[Square]) -> bool:
        return any(not self.piece(square).is_empty for square in squares)

    def is_check(self, color: Color) -> bool:
        """Is the king of this color attacked? A board without that king is never in check."""
        king_square = self.find_king(color)
        if king_square is None:
            return False
        return self.is_under_attack(king_square, color.opponent)

    def material(self, color: Color) -> list[PieceType]:
        """Piece types (kings excluded) that a player still has on the board"""
        return [
            piece.type
            for piece in self.position.values()
            if piece.color == color and piece.type != PieceType.KING
        ]
