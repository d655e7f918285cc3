"""Immutable 5x5 board model for 12 Pieces.

Player 1 starts on the bottom rows and moves toward row 0, player 2 starts on
the top rows and moves toward row 4. Every operation here is pure: it reads a
board snapshot and, where it changes anything, returns a new one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import EmptySquare, InvalidMove, OutOfBounds
from ..protocol import ProtocolError


PlayerId = int
Position = Tuple[int, int]

BOARD_SIZE = 5
PLAYERS: Tuple[PlayerId, PlayerId] = (1, 2)


# Flip between players
def opponent(player: PlayerId) -> PlayerId:
    return 2 if player == 1 else 1


def forward(player: PlayerId) -> int:
    """Row delta of a forward step for ``player``."""

    return -1 if player == 1 else 1


def home_row(player: PlayerId) -> int:
    return BOARD_SIZE - 1 if player == 1 else 0


def promotion_row(player: PlayerId) -> int:
    return home_row(opponent(player))


def advancement(player: PlayerId, row: int) -> int:
    """Rows travelled from the owner's back edge."""

    return abs(row - home_row(player))


def within_bounds(pos: Position) -> bool:
    row, col = pos
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


class Rank(str, Enum):
    REGULAR = "regular"
    KING = "king"


@dataclass(frozen=True)
class Piece:
    owner: PlayerId
    rank: Rank = Rank.REGULAR

    @property
    def is_king(self) -> bool:
        return self.rank is Rank.KING

    def promoted(self) -> "Piece":
        if self.is_king:
            return self
        return Piece(owner=self.owner, rank=Rank.KING)

    def to_wire(self) -> Dict[str, Any]:
        return {"player": self.owner, "type": self.rank.value}

    @classmethod
    def from_wire(cls, data: Any) -> "Piece":
        if not isinstance(data, dict):
            raise ProtocolError(f"Malformed piece: {data!r}")
        owner = data.get("player")
        if owner not in PLAYERS:
            raise ProtocolError(f"Unknown piece owner: {owner!r}")
        try:
            rank = Rank(data.get("type", Rank.REGULAR.value))
        except ValueError as exc:
            raise ProtocolError(f"Unknown piece type: {data.get('type')!r}") from exc
        return cls(owner=owner, rank=rank)


Cell = Optional[Piece]


def _check_bounds(pos: Position) -> None:
    if not within_bounds(pos):
        raise OutOfBounds(f"Position {pos} is outside the {BOARD_SIZE}x{BOARD_SIZE} board")


@dataclass(frozen=True)
class Board:
    rows: Tuple[Tuple[Cell, ...], ...]

    def __post_init__(self) -> None:
        if len(self.rows) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in self.rows):
            raise ValueError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}")

    @classmethod
    def empty(cls) -> "Board":
        return cls(tuple((None,) * BOARD_SIZE for _ in range(BOARD_SIZE)))

    @classmethod
    def from_rows(cls, rows: Iterable[Iterable[Cell]]) -> "Board":
        return cls(tuple(tuple(row) for row in rows))

    @classmethod
    def with_pieces(cls, pieces: Dict[Position, Piece]) -> "Board":
        """Build a board holding only ``pieces``; handy for setting up positions."""

        return cls.empty().with_cells(pieces)

    def occupant(self, pos: Position) -> Cell:
        _check_bounds(pos)
        row, col = pos
        return self.rows[row][col]

    def with_cells(self, changes: Dict[Position, Cell]) -> "Board":
        grid: List[List[Cell]] = [list(row) for row in self.rows]
        for pos, cell in changes.items():
            _check_bounds(pos)
            row, col = pos
            grid[row][col] = cell
        return Board.from_rows(grid)

    def pieces(self, player: Optional[PlayerId] = None) -> Iterator[Tuple[Position, Piece]]:
        """Yield ``(position, piece)`` pairs in row-major order."""

        for row_idx, row in enumerate(self.rows):
            for col_idx, cell in enumerate(row):
                if cell is None:
                    continue
                if player is not None and cell.owner != player:
                    continue
                yield (row_idx, col_idx), cell

    def to_wire(self) -> List[List[Optional[Dict[str, Any]]]]:
        return [[cell.to_wire() if cell else None for cell in row] for row in self.rows]

    @classmethod
    def from_wire(cls, data: Any) -> "Board":
        if not isinstance(data, list) or len(data) != BOARD_SIZE:
            raise ProtocolError("Board payload must be a list of 5 rows")
        rows: List[List[Cell]] = []
        for row in data:
            if not isinstance(row, list) or len(row) != BOARD_SIZE:
                raise ProtocolError("Board rows must hold 5 cells")
            rows.append([None if cell is None else Piece.from_wire(cell) for cell in row])
        return cls.from_rows(rows)

    def render(self) -> str:
        symbols = {
            (1, Rank.REGULAR): "x",
            (1, Rank.KING): "X",
            (2, Rank.REGULAR): "o",
            (2, Rank.KING): "O",
        }
        lines = ["   " + " ".join(str(col) for col in range(BOARD_SIZE))]
        for row_idx, row in enumerate(self.rows):
            cells = [symbols[(cell.owner, cell.rank)] if cell else "." for cell in row]
            lines.append(f"{row_idx}  " + " ".join(cells))
        return "\n".join(lines)


@dataclass(frozen=True)
class PieceCount:
    count: int
    last_remaining: Optional[Position] = None


def initialize() -> Board:
    """Starting layout: two full rows plus two cells of the middle row per side."""

    pieces: Dict[Position, Piece] = {}
    for col in range(BOARD_SIZE):
        pieces[(0, col)] = Piece(owner=2)
        pieces[(1, col)] = Piece(owner=2)
        pieces[(BOARD_SIZE - 1, col)] = Piece(owner=1)
        pieces[(BOARD_SIZE - 2, col)] = Piece(owner=1)

    middle = BOARD_SIZE // 2
    for col in range(2):
        pieces[(middle, col)] = Piece(owner=1)
        pieces[(middle, BOARD_SIZE - 1 - col)] = Piece(owner=2)
    return Board.with_pieces(pieces)


def count_pieces(board: Board, player: PlayerId) -> PieceCount:
    positions = [pos for pos, _ in board.pieces(player)]
    last = positions[0] if len(positions) == 1 else None
    return PieceCount(count=len(positions), last_remaining=last)


def execute_move(board: Board, origin: Position, target: Position) -> Board:
    """Relocate the piece on ``origin``; captures and promotion are separate steps."""

    piece = board.occupant(origin)
    if piece is None:
        raise EmptySquare(f"No piece on {origin}")
    if board.occupant(target) is not None:
        raise InvalidMove(f"Target {target} is occupied")
    return board.with_cells({origin: None, target: piece})


def remove_pieces(board: Board, positions: Iterable[Position]) -> Board:
    changes: Dict[Position, Cell] = {}
    for pos in positions:
        if board.occupant(pos) is None:
            raise EmptySquare(f"Nothing to capture on {pos}")
        changes[pos] = None
    return board.with_cells(changes)


__all__ = [
    "BOARD_SIZE",
    "Board",
    "Cell",
    "Piece",
    "PieceCount",
    "PlayerId",
    "Position",
    "Rank",
    "advancement",
    "count_pieces",
    "execute_move",
    "forward",
    "home_row",
    "initialize",
    "opponent",
    "promotion_row",
    "remove_pieces",
    "within_bounds",
]
