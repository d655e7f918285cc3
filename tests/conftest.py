import pytest

from twelve_pieces.game.board import Board

from .helpers import board_of, regular


@pytest.fixture
def single_capture_board() -> Board:
    """Player 1 regular on (2,2) facing a player 2 regular on (1,2), (0,2) open."""

    return board_of({(2, 2): regular(1), (1, 2): regular(2)})


@pytest.fixture
def double_capture_board() -> Board:
    """A player 1 regular on (4,2) that can take (3,2) and then (1,2)."""

    return board_of(
        {
            (4, 2): regular(1),
            (4, 0): regular(1),
            (3, 2): regular(2),
            (1, 2): regular(2),
            (0, 0): regular(2),
        }
    )
