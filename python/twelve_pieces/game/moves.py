"""Single-step move generation: quiet moves and one-jump captures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from ..errors import EmptySquare
from .board import Board, Piece, Position, forward, promotion_row, within_bounds


Direction = Tuple[int, int]

# Up, down, left, right
ORTHOGONAL_DIRECTIONS: Tuple[Direction, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


@dataclass(frozen=True)
class Move:
    origin: Position
    target: Position
    captured: Tuple[Position, ...] = ()

    @property
    def is_capture(self) -> bool:
        return len(self.captured) > 0


def directions_for(piece: Piece) -> Tuple[Direction, ...]:
    """Kings use all four directions, regular pieces never step backward."""

    if piece.is_king:
        return ORTHOGONAL_DIRECTIONS
    ahead = forward(piece.owner)
    return tuple(d for d in ORTHOGONAL_DIRECTIONS if d[0] in (0, ahead))


def _step(pos: Position, direction: Direction) -> Position:
    return pos[0] + direction[0], pos[1] + direction[1]


def _piece_at(board: Board, origin: Position) -> Piece:
    piece = board.occupant(origin)
    if piece is None:
        raise EmptySquare(f"No piece on {origin}")
    return piece


def simple_moves(board: Board, origin: Position) -> List[Move]:
    # Non-capturing moves from a square
    piece = _piece_at(board, origin)
    moves: List[Move] = []
    for direction in directions_for(piece):
        target = _step(origin, direction)
        while within_bounds(target) and board.occupant(target) is None:
            moves.append(Move(origin=origin, target=target))
            if not piece.is_king:
                break
            target = _step(target, direction)
    return moves


def is_valid_move(board: Board, origin: Position, target: Position) -> bool:
    """Whether ``origin -> target`` is a legal non-capture move.

    Only meaningful when no mandatory capture applies to the mover.
    """

    if not within_bounds(target):
        return False
    return Move(origin=origin, target=target) in simple_moves(board, origin)


def capture_steps(board: Board, origin: Position) -> List[Move]:
    """Every single jump available to the piece on ``origin``.

    A king slides to the first piece in a direction; if it is an enemy, each
    empty square in the run right behind it is a separate landing.
    """

    piece = _piece_at(board, origin)
    steps: List[Move] = []
    for direction in directions_for(piece):
        if piece.is_king:
            victim = _step(origin, direction)
            while within_bounds(victim) and board.occupant(victim) is None:
                victim = _step(victim, direction)
        else:
            victim = _step(origin, direction)
        if not within_bounds(victim):
            continue

        occupant = board.occupant(victim)
        if occupant is None or occupant.owner == piece.owner:
            continue

        landing = _step(victim, direction)
        while within_bounds(landing) and board.occupant(landing) is None:
            steps.append(Move(origin=origin, target=landing, captured=(victim,)))
            if not piece.is_king:
                break
            landing = _step(landing, direction)
    return steps


def reaches_promotion_row(board: Board, move: Move) -> bool:
    piece = _piece_at(board, move.origin)
    return not piece.is_king and move.target[0] == promotion_row(piece.owner)


__all__ = [
    "Direction",
    "Move",
    "ORTHOGONAL_DIRECTIONS",
    "capture_steps",
    "directions_for",
    "is_valid_move",
    "reaches_promotion_row",
    "simple_moves",
]
