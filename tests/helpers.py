from typing import Dict

from twelve_pieces.game.board import Board, Piece, Position, Rank


def regular(owner: int) -> Piece:
    return Piece(owner=owner)


def king(owner: int) -> Piece:
    return Piece(owner=owner, rank=Rank.KING)


def board_of(pieces: Dict[Position, Piece]) -> Board:
    return Board.with_pieces(pieces)
