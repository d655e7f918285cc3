"""Local game controller shared by the CLI, the pygame window and network play.

The session owns the current :class:`GameState` value plus the selection, and
turns clicks into moves. Its highlight queries are read-only.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional

from .ai import BackgroundSearch, MinimaxAgent, SearchResult
from .errors import InvalidMove
from .game.board import PlayerId, Position, initialize
from .game.moves import Move
from .game.rules import DEFAULT_RULES, GameRules, GameState, apply_move, legal_steps


LOG = logging.getLogger("twelve_pieces.session")

MoveListener = Callable[[Dict[str, Any]], None]


class GameSession:
    def __init__(
        self,
        rules: GameRules = DEFAULT_RULES,
        computer: Optional[MinimaxAgent] = None,
        on_move_end: Optional[MoveListener] = None,
    ) -> None:
        self.rules = rules
        self.computer = computer
        self.on_move_end = on_move_end
        self.state = GameState.from_board(initialize(), rules=rules)
        self.selected: Optional[Position] = None
        self.local_seat: Optional[PlayerId] = None
        self.message: Optional[str] = None
        self.last_move: Optional[Move] = None

        self._background: Optional[BackgroundSearch] = None
        self._pending: Optional[Future] = None
        self._pending_state: Optional[GameState] = None

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------
    @property
    def multiplayer(self) -> bool:
        return self.local_seat is not None

    @property
    def thinking(self) -> bool:
        return self._pending is not None

    def reset(self) -> None:
        self.cancel_computer()
        self.state = GameState.from_board(initialize(), rules=self.rules)
        self.selected = None
        self.message = None
        self.last_move = None
        if self.multiplayer:
            self._notify()

    def set_computer(self, agent: Optional[MinimaxAgent]) -> None:
        self.cancel_computer()
        self.computer = agent
        if agent is not None:
            self.local_seat = None

    def set_multiplayer(self, seat: Optional[PlayerId]) -> None:
        """Enter network play as ``seat``; ``None`` returns to local play."""

        self.cancel_computer()
        self.local_seat = seat
        if seat is not None:
            self.computer = None

    def is_computer_turn(self) -> bool:
        return (
            self.computer is not None
            and not self.state.result.is_over
            and self.state.turn.current_player == self.computer.player
        )

    def can_act(self) -> bool:
        if self.state.result.is_over or self.is_computer_turn():
            return False
        if self.multiplayer and self.local_seat != self.state.turn.current_player:
            return False
        return True

    # ------------------------------------------------------------------
    # Highlight queries
    # ------------------------------------------------------------------
    def is_cell_selected(self, pos: Position) -> bool:
        return self.selected == pos

    def is_valid_move_target(self, pos: Position) -> bool:
        return any(not move.is_capture and move.target == pos for move in self._selected_steps())

    def is_valid_capture_target(self, pos: Position) -> bool:
        return any(move.is_capture and move.target == pos for move in self._selected_steps())

    def _steps_from(self, origin: Position) -> List[Move]:
        return [move for move in legal_steps(self.state) if move.origin == origin]

    def _selected_steps(self) -> List[Move]:
        if self.selected is None:
            return []
        return self._steps_from(self.selected)

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------
    def handle_click(self, pos: Position) -> Optional[Move]:
        """Select a piece or move the selected one; returns the move played."""

        if not self.can_act():
            return None
        cell = self.state.board.occupant(pos)

        turn = self.state.turn
        if turn.active_chain is not None:
            # Only the chaining piece may move, and only to a capture landing
            step = next((m for m in self._steps_from(turn.active_chain) if m.target == pos), None)
            return self._play(step) if step is not None else None

        if cell is not None and cell.owner == turn.current_player:
            if not turn.must_capture or any(m.is_capture for m in self._steps_from(pos)):
                self.selected = pos
            return None

        if self.selected is None:
            return None

        step = next((m for m in self._selected_steps() if m.target == pos), None)
        if step is not None:
            return self._play(step)
        if not turn.must_capture:
            self.selected = None
        return None

    def play(self, move: Move) -> GameState:
        """Apply ``move`` for the player to move; raises :class:`InvalidMove`."""

        self.state = apply_move(self.state, move, self.rules)
        self.last_move = move
        self.selected = self.state.turn.active_chain
        self._notify()
        return self.state

    def _play(self, move: Move) -> Optional[Move]:
        try:
            self.play(move)
        except InvalidMove as exc:
            self.selected = None
            self.message = f"Illegal move: {exc}"
            return None
        self.message = None
        return move

    def _notify(self) -> None:
        if self.on_move_end is not None:
            self.on_move_end(self.state.to_wire(selected=self.selected))

    # ------------------------------------------------------------------
    # Remote updates
    # ------------------------------------------------------------------
    def apply_remote(self, game_state: Dict[str, Any]) -> None:
        """Adopt a relayed snapshot as the authoritative local state."""

        self.state = GameState.from_wire(game_state, base=self.state)
        self.selected = self.state.turn.active_chain
        self.last_move = None

    # ------------------------------------------------------------------
    # Computer turns
    # ------------------------------------------------------------------
    def play_computer_turn(self) -> List[Move]:
        """Run the computer synchronously until the turn passes."""

        played: List[Move] = []
        while self.is_computer_turn():
            assert self.computer is not None
            result = self.computer.search(self.state)
            if result.move is None:
                break
            self.play(result.move)
            played.append(result.move)
        return played

    def start_computer_turn(self) -> bool:
        """Start a background search when the computer is to move."""

        if not self.is_computer_turn() or self._pending is not None:
            return False
        assert self.computer is not None
        if self._background is None or self._background.agent is not self.computer:
            self.shutdown()
            self._background = BackgroundSearch(self.computer)
        self._pending_state = self.state
        self._pending = self._background.submit(self.state)
        return True

    def poll_computer(self) -> Optional[Move]:
        """Apply a finished background search; call from the UI loop."""

        if self._pending is None or not self._pending.done():
            return None
        future, searched = self._pending, self._pending_state
        self._pending = None
        self._pending_state = None

        result: SearchResult = future.result()
        if result.cancelled or result.move is None or searched is not self.state:
            return None
        self.play(result.move)
        LOG.debug("Computer played %s (score %.2f)", result.move, result.score)
        return result.move

    def cancel_computer(self) -> None:
        if self._background is not None:
            self._background.cancel()
        self._pending = None
        self._pending_state = None

    def shutdown(self) -> None:
        if self._background is not None:
            self._background.shutdown()
            self._background = None


__all__ = ["GameSession", "MoveListener"]
