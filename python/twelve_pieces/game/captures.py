"""Enumeration of complete capture chains.

A chain is followed on a scratch board per branch: the jumping piece is moved
and every captured piece removed before the next jump is looked up, so a
piece can never be taken twice. A piece landing on its back row is crowned
before its next jump is looked up. Landing squares already visited on a
branch are not revisited.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from ..errors import InvalidMove
from .board import Board, Position, execute_move, remove_pieces
from .moves import Move, capture_steps
from .promotion import crown_on_row


_Branch = Tuple[Board, Position, Tuple[Position, ...], Tuple[Position, ...]]


def _walk(board: Board, origin: Position, visited: Iterable[Position]) -> List[Tuple[Move, Board]]:
    seen = tuple(visited) or (origin,)
    if origin not in seen:
        seen = seen + (origin,)

    found: List[Tuple[Move, Board]] = []
    stack: List[_Branch] = [(board, origin, (), seen)]
    while stack:
        scratch, position, captured, path = stack.pop()
        steps = [step for step in capture_steps(scratch, position) if step.target not in path]

        if not steps:
            chain = Move(origin=origin, target=position, captured=captured)
            # Kings may reach the same chain through different landings
            if captured and all(chain != known for known, _ in found):
                found.append((chain, scratch))
            continue

        branches: List[_Branch] = []
        for step in steps:
            after = remove_pieces(execute_move(scratch, position, step.target), step.captured)
            after = crown_on_row(after, step.target)
            branches.append((after, step.target, captured + step.captured, path + (step.target,)))
        # Reversed so the first jump found is explored first
        stack.extend(reversed(branches))
    return found


def capture_chains(
    board: Board,
    origin: Position,
    visited: Iterable[Position] = (),
) -> List[Move]:
    """Return every maximal capture sequence for the piece on ``origin``.

    Each sequence is a separate :class:`Move` whose ``captured`` lists the
    taken pieces in order. Branches split wherever more than one jump is
    available. ``visited`` seeds the squares a chain already in flight has
    landed on.
    """

    return [chain for chain, _ in _walk(board, origin, visited)]


def resolve_chain(board: Board, move: Move, visited: Iterable[Position] = ()) -> Board:
    """Board after the whole chain ``move``, including a crowning on the way."""

    for chain, after in _walk(board, move.origin, visited):
        if chain == move:
            return after
    raise InvalidMove(f"No capture chain {move.origin} -> {move.target}")


__all__ = ["capture_chains", "resolve_chain"]
