"""Turn enforcement, mandatory capture and game results.

The game is an explicit :class:`GameState` value: every transition returns a
new state and nothing here keeps state between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import EmptySquare, GameOver, InvalidMove
from ..protocol import ProtocolError
from .board import (
    PLAYERS,
    Board,
    PlayerId,
    Position,
    count_pieces,
    execute_move,
    initialize,
    opponent,
    remove_pieces,
)
from .captures import capture_chains, resolve_chain
from .moves import Move, capture_steps, simple_moves
from .promotion import DEFAULT_POLICY, PromotionPolicy, apply_promotion, crown_on_row


class Outcome(str, Enum):
    ONGOING = "ongoing"
    WIN = "win"
    DRAW = "draw"


@dataclass(frozen=True)
class GameResult:
    outcome: Outcome = Outcome.ONGOING
    winner: Optional[PlayerId] = None

    @classmethod
    def win(cls, player: PlayerId) -> "GameResult":
        return cls(outcome=Outcome.WIN, winner=player)

    @classmethod
    def draw(cls) -> "GameResult":
        return cls(outcome=Outcome.DRAW)

    @property
    def is_over(self) -> bool:
        return self.outcome is not Outcome.ONGOING

    def to_wire(self) -> Any:
        if self.outcome is Outcome.WIN:
            return self.winner
        if self.outcome is Outcome.DRAW:
            return "draw"
        return None

    @classmethod
    def from_wire(cls, value: Any) -> "GameResult":
        if value is None:
            return cls()
        if value == "draw":
            return cls.draw()
        if value in PLAYERS:
            return cls.win(value)
        raise ProtocolError(f"Unknown game result: {value!r}")


@dataclass(frozen=True)
class TurnState:
    """Who moves, and whether a capture chain is holding the turn.

    ``visited`` lists the squares the chaining piece has landed on, starting
    with the square the chain began from.
    """

    current_player: PlayerId = 1
    must_capture: bool = False
    active_chain: Optional[Position] = None
    visited: Tuple[Position, ...] = ()

    def __post_init__(self) -> None:
        if self.active_chain is not None and not self.must_capture:
            raise ValueError("An active chain implies a mandatory capture")


@dataclass(frozen=True)
class GameRules:
    promotion: PromotionPolicy = DEFAULT_POLICY
    draw_on_lone_pieces: bool = True


DEFAULT_RULES = GameRules()


def has_any_capture(board: Board, player: PlayerId) -> bool:
    return any(capture_steps(board, pos) for pos, _ in board.pieces(player))


def generate_moves(board: Board, player: PlayerId) -> List[Move]:
    """Legal moves for ``player`` as complete capture chains, in board order.

    Captures are mandatory: when any piece can capture, quiet moves are
    dropped for every piece.
    """

    captures: List[Move] = []
    quiets: List[Move] = []
    for origin, _ in board.pieces(player):
        chains = capture_chains(board, origin)
        if chains:
            captures.extend(chains)
        elif not captures:
            quiets.extend(simple_moves(board, origin))
    if captures:
        return captures
    return quiets


def judge(
    board: Board,
    to_move: PlayerId,
    rules: GameRules = DEFAULT_RULES,
    chain_active: bool = False,
) -> GameResult:
    # Detect finished games
    first = count_pieces(board, 1).count
    second = count_pieces(board, 2).count
    if first == 0:
        return GameResult.win(2)
    if second == 0:
        return GameResult.win(1)
    if rules.draw_on_lone_pieces and first == 1 and second == 1 and not chain_active:
        return GameResult.draw()
    if not chain_active and not generate_moves(board, to_move):
        return GameResult.win(opponent(to_move))
    return GameResult()


@dataclass(frozen=True)
class GameState:
    board: Board
    turn: TurnState = field(default_factory=TurnState)
    result: GameResult = field(default_factory=GameResult)

    @classmethod
    def new(cls) -> "GameState":
        return cls.from_board(initialize())

    @classmethod
    def from_board(
        cls,
        board: Board,
        current_player: PlayerId = 1,
        rules: GameRules = DEFAULT_RULES,
    ) -> "GameState":
        turn = TurnState(
            current_player=current_player,
            must_capture=has_any_capture(board, current_player),
        )
        return cls(board=board, turn=turn, result=judge(board, current_player, rules))

    @property
    def current_player(self) -> PlayerId:
        return self.turn.current_player

    def to_wire(self, selected: Optional[Position] = None) -> Dict[str, Any]:
        chain = self.turn.active_chain
        focus = chain if chain is not None else selected
        return {
            "board": self.board.to_wire(),
            "currentPlayer": self.turn.current_player,
            "gameOver": self.result.to_wire(),
            "selectedPiece": list(focus) if focus is not None else None,
            "mustCapture": self.turn.must_capture,
            "sequentialCapture": chain is not None,
        }

    @classmethod
    def from_wire(cls, data: Dict[str, Any], base: Optional["GameState"] = None) -> "GameState":
        """Rebuild a state from a (possibly partial) relayed payload.

        Missing fields keep the value of ``base``. The payload is trusted as
        authoritative; it is not re-checked against the rules.
        """

        state = base if base is not None else cls.new()
        board = state.board
        if data.get("board"):
            board = Board.from_wire(data["board"])

        player = data.get("currentPlayer", state.turn.current_player)
        if player not in PLAYERS:
            raise ProtocolError(f"Unknown player: {player!r}")

        result = state.result
        if "gameOver" in data:
            result = GameResult.from_wire(data["gameOver"])

        must_capture = bool(data.get("mustCapture", state.turn.must_capture))
        chain = state.turn.active_chain
        if "sequentialCapture" in data:
            chain = None
            selected = data.get("selectedPiece")
            if data["sequentialCapture"] and selected is not None:
                if not isinstance(selected, (list, tuple)) or len(selected) != 2:
                    raise ProtocolError(f"Malformed selectedPiece: {selected!r}")
                chain = (int(selected[0]), int(selected[1]))

        turn = TurnState(
            current_player=player,
            must_capture=must_capture or chain is not None,
            active_chain=chain,
        )
        return cls(board=board, turn=turn, result=result)


def legal_moves(state: GameState) -> List[Move]:
    """Whole-chain legal moves for the player to move."""

    if state.result.is_over:
        return []
    chain = state.turn.active_chain
    if chain is not None:
        return capture_chains(state.board, chain, visited=state.turn.visited)
    return generate_moves(state.board, state.turn.current_player)


def legal_steps(state: GameState) -> List[Move]:
    """Legal moves one jump at a time, for interactive play."""

    if state.result.is_over:
        return []
    chain = state.turn.active_chain
    if chain is not None:
        visited = state.turn.visited or (chain,)
        return [step for step in capture_steps(state.board, chain) if step.target not in visited]

    player = state.turn.current_player
    captures: List[Move] = []
    for origin, _ in state.board.pieces(player):
        captures.extend(capture_steps(state.board, origin))
    if captures:
        return captures

    quiets: List[Move] = []
    for origin, _ in state.board.pieces(player):
        quiets.extend(simple_moves(state.board, origin))
    return quiets


def apply_move(state: GameState, move: Move, rules: GameRules = DEFAULT_RULES) -> GameState:
    """Play ``move`` and return the resulting state.

    The move is relocated and its captures stripped. A piece landing on its
    back row is crowned at once, so a chain may continue as a King. Then either
    the turn is held for the continuation or the promotion policy is applied
    and the turn passes.
    Raises :class:`InvalidMove` for anything that is not currently legal.
    """

    if state.result.is_over:
        raise GameOver("The game is already over")

    player = state.turn.current_player
    piece = state.board.occupant(move.origin)
    if piece is None:
        raise EmptySquare(f"No piece on {move.origin}")
    if piece.owner != player:
        raise InvalidMove(f"Piece on {move.origin} does not belong to player {player}")

    complete = move in legal_moves(state)
    if not complete and move not in legal_steps(state):
        raise InvalidMove(f"Illegal move {move.origin} -> {move.target} for player {player}")
    return _transition(state, move, rules, complete)


def advance(state: GameState, move: Move, rules: GameRules = DEFAULT_RULES) -> GameState:
    """Apply a move taken from ``legal_moves(state)`` without re-validating it."""

    return _transition(state, move, rules, complete=True)


def _transition(state: GameState, move: Move, rules: GameRules, complete: bool) -> GameState:
    player = state.turn.current_player
    if move.is_capture and complete:
        board = resolve_chain(state.board, move, state.turn.visited)
    else:
        board = execute_move(state.board, move.origin, move.target)
        board = remove_pieces(board, move.captured)

    if move.is_capture and not complete:
        board = crown_on_row(board, move.target)
        visited = (state.turn.visited or (move.origin,)) + (move.target,)
        continuation = [s for s in capture_steps(board, move.target) if s.target not in visited]
        if continuation:
            turn = TurnState(
                current_player=player,
                must_capture=True,
                active_chain=move.target,
                visited=visited,
            )
            return GameState(board=board, turn=turn, result=judge(board, player, rules, chain_active=True))

    board = apply_promotion(board, move.target, rules.promotion)
    next_player = opponent(player)
    turn = TurnState(current_player=next_player, must_capture=has_any_capture(board, next_player))
    return GameState(board=board, turn=turn, result=judge(board, next_player, rules))


__all__ = [
    "DEFAULT_RULES",
    "GameResult",
    "GameRules",
    "GameState",
    "Outcome",
    "TurnState",
    "advance",
    "apply_move",
    "generate_moves",
    "has_any_capture",
    "judge",
    "legal_moves",
    "legal_steps",
]
