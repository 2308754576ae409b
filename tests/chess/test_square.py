"""Unit tests for chess_sync/chess/square.py"""

from string import ascii_lowercase

import pytest

from chess_sync.chess.square import BOARD_DIMENSIONS, Square, is_valid_square_name
from chess_sync.core.exceptions import InvalidSquareError


@pytest.mark.parametrize(
    "file, rank, notation",
    [
        (file, rank, f"{ascii_lowercase[file - 1]}{rank}")
        for file in range(1, 9)
        for rank in range(1, 9)
    ],
)
def test_creating_from_algebraic(file: int, rank: int, notation: str) -> None:
    """Simply checks if the notation for 'a1' indeed maps to file 1, rank 1, etc."""
    square = Square.from_algebraic(notation)
    assert square.file == file
    assert square.rank == rank
    assert square.to_algebraic() == notation


@pytest.mark.parametrize("name", ["", "a", "a0", "a9", "i1", "A1", "e22", "11", "ee"])
def test_invalid_square_names(name: str) -> None:
    """Anything that is not a file letter a-h followed by a rank digit 1-8 gets rejected"""
    assert not is_valid_square_name(name)
    with pytest.raises(InvalidSquareError):
        Square.from_algebraic(name)


def test_square_within_bounds() -> None:
    """happy case: pieces within the dimensions of the board"""
    for file in range(1, BOARD_DIMENSIONS[0] + 1):
        for rank in range(1, BOARD_DIMENSIONS[1] + 1):
            square = Square(file, rank)
            assert square.is_within_bounds()


def test_square_out_of_bounds() -> None:
    square = Square(BOARD_DIMENSIONS[0] + 1, BOARD_DIMENSIONS[1] + 1)
    assert not square.is_within_bounds()

    square = Square(-1, -1)
    assert not square.is_within_bounds()


def test_offset() -> None:
    assert Square.from_algebraic("e2").offset(0, 2) == Square.from_algebraic("e4")
    assert Square.from_algebraic("b1").offset(-1, 2) == Square.from_algebraic("a3")
    assert not Square.from_algebraic("h8").offset(1, 0).is_within_bounds()


@pytest.mark.parametrize(
    "name, is_light",
    [("a1", False), ("h1", True), ("a8", True), ("h8", False), ("d1", True), ("e1", False)],
)
def test_square_color(name: str, is_light: bool) -> None:
    """a1 is dark, h1 is light ('light on the right')"""
    assert Square.from_algebraic(name).is_light() == is_light
