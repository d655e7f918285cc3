from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .game.board import Board, PlayerId, Rank, advancement
from .game.moves import Move, capture_steps, reaches_promotion_row
from .game.rules import DEFAULT_RULES, GameRules, GameState, Outcome, advance, legal_moves


LOG = logging.getLogger("twelve_pieces.ai")

Score = float

DEFAULT_DEPTH = 4
WIN_SCORE: Score = 1000.0

PIECE_VALUES: Dict[Rank, int] = {Rank.REGULAR: 1, Rank.KING: 3}
ADVANCEMENT_WEIGHT = 0.1


class Evaluation(str, Enum):
    MATERIAL_ADVANCEMENT = "material-advancement"
    MATERIAL_MOBILITY = "material-mobility"


# Material plus a small bonus for regular pieces marching toward promotion
def evaluate_material(board: Board, player: PlayerId) -> Score:
    score: Score = 0.0
    for (row, _), piece in board.pieces():
        value: Score = PIECE_VALUES[piece.rank]
        if not piece.is_king:
            value += ADVANCEMENT_WEIGHT * advancement(piece.owner, row)
        score += value if piece.owner == player else -value
    return score


# Piece count, centre control and pending captures
def evaluate_mobility(board: Board, player: PlayerId) -> Score:
    score: Score = 0.0
    for (row, col), piece in board.pieces():
        captures = len(capture_steps(board, (row, col)))
        if piece.owner == player:
            score += 10 + 1
            if 1 <= row <= 4 and 1 <= col <= 4:
                score += 2
            score += captures * 20
        else:
            score -= 10
            score -= captures * 20
    return score


EVALUATORS: Dict[Evaluation, Callable[[Board, PlayerId], Score]] = {
    Evaluation.MATERIAL_ADVANCEMENT: evaluate_material,
    Evaluation.MATERIAL_MOBILITY: evaluate_mobility,
}


def evaluate(
    board: Board,
    player: PlayerId,
    evaluation: Evaluation = Evaluation.MATERIAL_ADVANCEMENT,
) -> Score:
    return EVALUATORS[evaluation](board, player)


def move_priority(board: Board, move: Move) -> int:
    """Lower sorts first: king captures, captures, promotions, the rest."""

    if move.is_capture:
        if any(board.occupant(pos).is_king for pos in move.captured):
            return 0
        return 1
    if reaches_promotion_row(board, move):
        return 2
    return 3


def order_moves(board: Board, moves: List[Move]) -> List[Move]:
    # sorted() is stable, so ties keep enumeration order
    return sorted(moves, key=lambda move: move_priority(board, move))


@dataclass(frozen=True)
class SearchResult:
    move: Optional[Move]
    score: Score
    cancelled: bool = False


class _Cancelled(Exception):
    pass


class SearchEngine:
    """Fixed-depth minimax with alpha-beta pruning."""

    def __init__(
        self,
        rules: GameRules = DEFAULT_RULES,
        evaluation: Evaluation = Evaluation.MATERIAL_ADVANCEMENT,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.rules = rules
        self.evaluation = evaluation
        self.cancel_event = cancel_event
        self.nodes = 0

    def search(
        self,
        state: GameState,
        depth: int = DEFAULT_DEPTH,
        maximizing_player: Optional[PlayerId] = None,
    ) -> SearchResult:
        player = state.turn.current_player if maximizing_player is None else maximizing_player
        self.nodes = 0
        try:
            result = self.minimax(state, depth, -math.inf, math.inf, player)
        except _Cancelled:
            LOG.debug("Search cancelled after %d nodes", self.nodes)
            return SearchResult(move=None, score=0.0, cancelled=True)
        LOG.debug("Search depth=%d nodes=%d move=%s score=%.2f", depth, self.nodes, result.move, result.score)
        return result

    def minimax(
        self,
        state: GameState,
        depth: int,
        alpha: float,
        beta: float,
        maximizing_player: PlayerId,
    ) -> SearchResult:
        # Depth-limited minimax core
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise _Cancelled()
        self.nodes += 1

        if depth <= 0:
            return SearchResult(move=None, score=evaluate(state.board, maximizing_player, self.evaluation))
        if state.result.outcome is Outcome.DRAW:
            return SearchResult(move=None, score=0.0)

        # A chain continuation keeps the same mover
        mover = state.turn.current_player
        maximizing = mover == maximizing_player

        moves = legal_moves(state)
        if not moves:
            return SearchResult(move=None, score=-WIN_SCORE if maximizing else WIN_SCORE)

        best_move: Optional[Move] = None
        best_score = -math.inf if maximizing else math.inf
        for move in order_moves(state.board, moves):
            child = advance(state, move, self.rules)
            score = self.minimax(child, depth - 1, alpha, beta, maximizing_player).score

            if maximizing:
                if score > best_score:
                    best_score, best_move = score, move
                alpha = max(alpha, best_score)
            else:
                if score < best_score:
                    best_score, best_move = score, move
                beta = min(beta, best_score)
            if beta <= alpha:
                break

        return SearchResult(move=best_move, score=best_score)


class MinimaxAgent:
    def __init__(
        self,
        player: PlayerId,
        depth: int = DEFAULT_DEPTH,
        evaluation: Evaluation = Evaluation.MATERIAL_ADVANCEMENT,
        rules: GameRules = DEFAULT_RULES,
    ) -> None:
        self.player = player
        self.depth = depth
        self.evaluation = evaluation
        self.rules = rules

    def search(self, state: GameState, cancel_event: Optional[threading.Event] = None) -> SearchResult:
        engine = SearchEngine(rules=self.rules, evaluation=self.evaluation, cancel_event=cancel_event)
        return engine.search(state, self.depth, maximizing_player=self.player)

    def choose_move(self, state: GameState) -> Optional[Move]:
        if state.turn.current_player != self.player:
            return None
        return self.search(state).move

    @property
    def description(self) -> str:
        return f"Minimax(depth={self.depth}, {self.evaluation.value})"


class BackgroundSearch:
    """Runs an agent's search on a worker thread so the caller stays responsive."""

    def __init__(self, agent: MinimaxAgent) -> None:
        self.agent = agent
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="twelve-pieces-search")
        self._cancel: Optional[threading.Event] = None
        self._future: Optional[Future] = None

    def submit(self, state: GameState) -> "Future[SearchResult]":
        self.cancel()
        self._cancel = threading.Event()
        self._future = self._executor.submit(self.agent.search, state, self._cancel)
        return self._future

    @property
    def running(self) -> bool:
        return self._future is not None and not self._future.done()

    def cancel(self) -> None:
        if self._cancel is not None:
            self._cancel.set()

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=True)


__all__ = [
    "BackgroundSearch",
    "DEFAULT_DEPTH",
    "Evaluation",
    "MinimaxAgent",
    "SearchEngine",
    "SearchResult",
    "WIN_SCORE",
    "evaluate",
    "move_priority",
    "order_moves",
]
