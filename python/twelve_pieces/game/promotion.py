"""Promotion policies.

Two lineages of the rules disagree on when a piece is crowned, so each
variant is a named policy instead of a hard-coded choice.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict

from ..errors import EmptySquare
from .board import Board, Cell, Position, count_pieces, opponent, promotion_row


class PromotionPolicy(str, Enum):
    # Crown on reaching the opponent's back row.
    LAST_ROW = "last-row"
    # ... or when the piece is its owner's last one.
    LAST_ROW_OR_LAST_PIECE = "last-row-or-last-piece"
    # ... and also crown the opponent's lone survivor.
    COMPENSATION = "compensation"


DEFAULT_POLICY = PromotionPolicy.COMPENSATION


def should_promote(board: Board, pos: Position, policy: PromotionPolicy = DEFAULT_POLICY) -> bool:
    piece = board.occupant(pos)
    if piece is None:
        raise EmptySquare(f"No piece on {pos}")
    if piece.is_king:
        return False
    if pos[0] == promotion_row(piece.owner):
        return True
    if policy is PromotionPolicy.LAST_ROW:
        return False
    return count_pieces(board, piece.owner).count == 1


def apply_promotion(
    board: Board,
    landing: Position,
    policy: PromotionPolicy = DEFAULT_POLICY,
) -> Board:
    """Promote after a completed move. Kings are never touched."""

    changes: Dict[Position, Cell] = {}
    if should_promote(board, landing, policy):
        changes[landing] = board.occupant(landing).promoted()

    if policy is PromotionPolicy.COMPENSATION:
        mover = board.occupant(landing).owner
        lone = count_pieces(board, opponent(mover)).last_remaining
        if lone is not None:
            piece = board.occupant(lone)
            if not piece.is_king:
                changes[lone] = piece.promoted()

    if not changes:
        return board
    return board.with_cells(changes)


def crown_on_row(board: Board, pos: Position) -> Board:
    """Crown the piece on ``pos`` if it stands on its promotion row.

    Applied between the jumps of a chain so a piece reaching the back row
    continues as a King. The full policy still runs when the turn passes.
    """

    if not should_promote(board, pos, PromotionPolicy.LAST_ROW):
        return board
    return board.with_cells({pos: board.occupant(pos).promoted()})


__all__ = ["DEFAULT_POLICY", "PromotionPolicy", "apply_promotion", "crown_on_row", "should_promote"]
