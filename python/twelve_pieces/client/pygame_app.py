"""Pygame front-end for 12 Pieces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

try:
    import pygame
except ImportError as exc:  # pragma: no cover - handled at runtime
    raise SystemExit(
        "Pygame is required for the graphical client. Install it with 'pip install twelve-pieces[gui]'."
    ) from exc

from ..ai import DEFAULT_DEPTH, MinimaxAgent
from ..game.board import BOARD_SIZE, PLAYERS, PlayerId, Position, opponent
from ..game.moves import Move
from ..game.rules import DEFAULT_RULES, GameRules, Outcome
from ..session import GameSession
from .multiplayer import MultiplayerController


# ---------------------------------------------------------------------------
# Rendering configuration
# ---------------------------------------------------------------------------

WINDOW_WIDTH = 960
WINDOW_HEIGHT = 760
FPS = 30

CELL_SIZE = 120
BOARD_LEFT = 320
BOARD_TOP = 40

BOARD_BG = (243, 243, 243)
LINE_COLOR = (120, 144, 156)
PIECE_COLORS = {1: (30, 136, 229), 2: (211, 47, 47)}
PIECE_OUTLINE = (38, 50, 56)
KING_MARK = (255, 214, 0)
EMPTY_NODE_FILL = (207, 216, 220)
SELECTION_COLOR = (255, 152, 0)
HIGHLIGHT_MOVE = (129, 199, 132, 140)
HIGHLIGHT_CAPTURE = (239, 83, 80, 160)
TEXT_COLOR = (33, 33, 33)

PIECE_RADIUS = 36
BASE_RADIUS = 8

PLAYER_LABELS = {1: "Blue (1)", 2: "Red (2)"}
DEPTH_CYCLE = {2: 4, 4: 6, 6: 2}


def cell_center(pos: Position) -> Tuple[int, int]:
    row, col = pos
    return BOARD_LEFT + col * CELL_SIZE + CELL_SIZE // 2, BOARD_TOP + row * CELL_SIZE + CELL_SIZE // 2


def cell_at(point: Tuple[int, int]) -> Optional[Position]:
    x, y = point
    col = (x - BOARD_LEFT) // CELL_SIZE
    row = (y - BOARD_TOP) // CELL_SIZE
    if 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE:
        return row, col
    return None


@dataclass
class Button:
    label: str
    rect: pygame.Rect

    def draw(self, surface: pygame.Surface, font: pygame.font.Font, hovered: bool) -> None:
        base_color = (76, 175, 80) if "Depth" in self.label else (33, 150, 243)
        color = tuple(min(c + 40, 255) for c in base_color) if hovered else base_color
        pygame.draw.rect(surface, color, self.rect, border_radius=6)
        pygame.draw.rect(surface, (13, 71, 161), self.rect, width=2, border_radius=6)
        text_surf = font.render(self.label, True, (255, 255, 255))
        surface.blit(text_surf, text_surf.get_rect(center=self.rect.center))

    def contains(self, pos: Tuple[int, int]) -> bool:
        return self.rect.collidepoint(pos)


class TwelvePiecesPygameApp:
    """Human vs computer, or online play when a :class:`MultiplayerController` is given."""

    def __init__(
        self,
        rules: GameRules = DEFAULT_RULES,
        depth: int = DEFAULT_DEPTH,
        controller: Optional[MultiplayerController] = None,
    ) -> None:
        pygame.init()
        self.controller = controller
        caption = "12 Pieces - Online" if controller else "12 Pieces - Human vs AI"
        pygame.display.set_caption(caption)
        self.screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
        self.clock = pygame.time.Clock()

        self.font_small = pygame.font.Font(None, 24)
        self.font_medium = pygame.font.Font(None, 32)

        self.human_player: PlayerId = 1
        if controller is not None:
            self.session = controller.session
            self.buttons = [
                Button("New Game", pygame.Rect(40, WINDOW_HEIGHT - 70, 140, 45)),
                Button("Leave Room", pygame.Rect(200, WINDOW_HEIGHT - 70, 160, 45)),
            ]
        else:
            self.session = GameSession(rules=rules)
            self.session.set_computer(MinimaxAgent(opponent(self.human_player), depth=depth, rules=rules))
            self.buttons = [
                Button("New Game", pygame.Rect(40, WINDOW_HEIGHT - 70, 140, 45)),
                Button(f"Depth: {depth}", pygame.Rect(200, WINDOW_HEIGHT - 70, 140, 45)),
                Button("Switch Color", pygame.Rect(360, WINDOW_HEIGHT - 70, 160, 45)),
            ]

        self.message: Optional[str] = None

    # ------------------------------------------------------------------
    # Game flow helpers
    # ------------------------------------------------------------------
    @property
    def agent(self) -> Optional[MinimaxAgent]:
        return self.session.computer

    def reset(self) -> None:
        self.session.reset()
        self.message = None

    def toggle_player_color(self) -> None:
        self.human_player = opponent(self.human_player)
        depth = self.agent.depth if self.agent else DEFAULT_DEPTH
        self.session.set_computer(MinimaxAgent(opponent(self.human_player), depth=depth, rules=self.session.rules))
        self.reset()

    def set_ai_depth(self, depth: int) -> None:
        self.session.set_computer(MinimaxAgent(opponent(self.human_player), depth=depth, rules=self.session.rules))
        self.buttons[1].label = f"Depth: {depth}"

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------
    def handle_click(self, point: Tuple[int, int]) -> None:
        for button in self.buttons:
            if button.contains(point):
                self._handle_button(button)
                return

        cell = cell_at(point)
        if cell is None:
            return

        move = self.session.handle_click(cell)
        if self.session.message:
            self.message = self.session.message
        elif move is not None:
            self.message = self._format_move_message("You", move)
            if self.session.state.turn.active_chain is not None:
                self.message = "Continue capture with the same piece"

    def _handle_button(self, button: Button) -> None:
        if button.label.startswith("New"):
            self.reset()
        elif button.label.startswith("Leave") and self.controller is not None:
            self.controller.leave_room()
            self.message = "Left the room"
        elif button.label.startswith("Depth") and self.agent is not None:
            self.set_ai_depth(DEPTH_CYCLE.get(self.agent.depth, DEFAULT_DEPTH))
        elif button.label.startswith("Switch"):
            self.toggle_player_color()

    # ------------------------------------------------------------------
    # Per-frame updates
    # ------------------------------------------------------------------
    def update(self) -> None:
        if self.controller is not None:
            self.controller.pump()
            if self.controller.error:
                self.message = self.controller.error
                self.controller.error = None
            return

        played = self.session.poll_computer()
        if played is not None:
            self.message = self._format_move_message("AI", played)
        self.session.start_computer_turn()

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def draw(self) -> None:
        self.screen.fill((250, 250, 250))
        board_rect = pygame.Rect(BOARD_LEFT - 10, BOARD_TOP - 10, CELL_SIZE * BOARD_SIZE + 20, CELL_SIZE * BOARD_SIZE + 20)
        pygame.draw.rect(self.screen, BOARD_BG, board_rect, border_radius=12)

        self._draw_lines()
        self._draw_highlights()
        self._draw_pieces()
        self._draw_ui()

    def _draw_lines(self) -> None:
        for idx in range(BOARD_SIZE):
            pygame.draw.line(self.screen, LINE_COLOR, cell_center((idx, 0)), cell_center((idx, BOARD_SIZE - 1)), 3)
            pygame.draw.line(self.screen, LINE_COLOR, cell_center((0, idx)), cell_center((BOARD_SIZE - 1, idx)), 3)

    def _draw_pieces(self) -> None:
        board = self.session.state.board
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                center = cell_center((row, col))
                piece = board.occupant((row, col))
                if piece is None:
                    pygame.draw.circle(self.screen, EMPTY_NODE_FILL, center, BASE_RADIUS)
                    continue
                pygame.draw.circle(self.screen, PIECE_COLORS[piece.owner], center, PIECE_RADIUS)
                pygame.draw.circle(self.screen, PIECE_OUTLINE, center, PIECE_RADIUS, 3)
                if piece.is_king:
                    pygame.draw.circle(self.screen, KING_MARK, center, PIECE_RADIUS // 3)
                if self.session.is_cell_selected((row, col)):
                    pygame.draw.circle(self.screen, SELECTION_COLOR, center, PIECE_RADIUS + 6, width=4)

    def _draw_highlights(self) -> None:
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                if self.session.is_valid_capture_target((row, col)):
                    color = HIGHLIGHT_CAPTURE
                elif self.session.is_valid_move_target((row, col)):
                    color = HIGHLIGHT_MOVE
                else:
                    continue
                x, y = cell_center((row, col))
                surf = pygame.Surface((PIECE_RADIUS * 3, PIECE_RADIUS * 3), pygame.SRCALPHA)
                pygame.draw.circle(surf, color, (PIECE_RADIUS * 1.5, PIECE_RADIUS * 1.5), PIECE_RADIUS - 4)
                self.screen.blit(surf, (x - PIECE_RADIUS * 1.5, y - PIECE_RADIUS * 1.5))

    def _status_lines(self) -> List[str]:
        state = self.session.state
        if self.controller is not None:
            if not self.controller.in_room:
                return ["Not in a room"]
            lines = [f"Room: {self.controller.room_id}"]
            if not self.controller.room_full:
                lines.append("Waiting for an opponent...")
            else:
                seat = self.session.local_seat
                lines.append(f"You are {PLAYER_LABELS.get(seat, '?')}")
                lines.append("Your turn" if self.session.can_act() else "Opponent's turn")
            return lines

        lines = [
            f"You are playing as {PLAYER_LABELS[self.human_player]}",
            f"Turn: {'You' if state.turn.current_player == self.human_player else 'AI'}",
        ]
        if self.session.thinking:
            lines.append("AI is thinking...")
        return lines

    def _draw_ui(self) -> None:
        mouse_pos = pygame.mouse.get_pos()
        for button in self.buttons:
            button.draw(self.screen, self.font_small, button.contains(mouse_pos))

        for idx, line in enumerate(self._status_lines()):
            text = self.font_medium.render(line, True, TEXT_COLOR)
            self.screen.blit(text, (30, 40 + idx * 32))

        result = self.session.state.result
        banner = None
        if result.outcome is Outcome.WIN:
            banner = f"{PLAYER_LABELS[result.winner]} wins!"
        elif result.outcome is Outcome.DRAW:
            banner = "Draw"
        if banner:
            self.screen.blit(self.font_medium.render(banner, True, (94, 53, 177)), (30, 200))

        if self.message:
            msg = self.font_small.render(self.message, True, (94, 53, 177))
            self.screen.blit(msg, (30, 250))

        board = self.session.state.board
        counts = "  |  ".join(f"{PLAYER_LABELS[p]}: {len(board.pieces(p))}" for p in PLAYERS)
        self.screen.blit(self.font_small.render(counts, True, TEXT_COLOR), (30, 290))

    @staticmethod
    def _format_move_message(actor: str, move: Move) -> str:
        if not move.is_capture:
            return f"{actor} moved {move.origin} -> {move.target}"
        return f"{actor} captured {len(move.captured)} ({move.origin} -> {move.target})"

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def run(self) -> None:
        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                    self.handle_click(event.pos)

            self.update()
            self.draw()
            pygame.display.flip()
            self.clock.tick(FPS)

        self.session.shutdown()
        if self.controller is not None:
            self.controller.leave_room()
            self.controller.client.close()
        pygame.quit()


__all__ = ["TwelvePiecesPygameApp", "cell_at", "cell_center"]
