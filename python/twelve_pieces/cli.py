"""Command-line interface for playing 12 Pieces in a terminal."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Tuple

from .ai import Evaluation, MinimaxAgent
from .client.multiplayer import MultiplayerController
from .client.network import RoomClient
from .config import EngineConfig, ServerConfig
from .errors import InvalidMove, NotConnected
from .game.board import BOARD_SIZE, PlayerId, Position, opponent
from .game.moves import Move
from .game.promotion import PromotionPolicy
from .game.rules import GameState, Outcome, legal_steps
from .session import GameSession


PLAYER_NAMES = {1: "Blue (x)", 2: "Red (o)"}
MAX_AI_TURNS = 200


def _render_board(state: GameState) -> None:
    print("\nBoard state:")
    print(state.board.render())
    turn = state.turn
    line = f"To move: {PLAYER_NAMES[turn.current_player]}"
    if turn.active_chain is not None:
        line += f" (continue capturing from {turn.active_chain})"
    elif turn.must_capture:
        line += " (capture is mandatory)"
    print(line + "\n")


def _announce_result(state: GameState) -> None:
    if state.result.outcome is Outcome.DRAW:
        print("The game is a draw.")
    elif state.result.outcome is Outcome.WIN:
        print(f"{PLAYER_NAMES[state.result.winner]} wins!")


def _parse_position(text: str) -> Optional[Position]:
    parts = text.replace(",", " ").split()
    if len(parts) != 2:
        return None
    try:
        row, col = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE):
        return None
    return row, col


def _prompt_position(prompt: str) -> Optional[Position]:
    while True:
        try:
            value = input(prompt)
        except EOFError:
            return None

        value = value.strip()
        if value.lower() in {"q", "quit", "exit"}:
            return None

        pos = _parse_position(value)
        if pos is not None:
            return pos
        print(f"Please enter 'row col' with values 0-{BOARD_SIZE - 1}, or 'q' to quit.")


def _find_step(state: GameState, origin: Position, target: Position) -> Optional[Move]:
    return next((m for m in legal_steps(state) if m.origin == origin and m.target == target), None)


def _format_move(actor: str, move: Move) -> str:
    if not move.is_capture:
        return f"{actor} moves {move.origin} -> {move.target}."
    captured = ", ".join(str(pos) for pos in move.captured)
    return f"{actor} captures {captured} ({move.origin} -> {move.target})."


def _human_turn(session: GameSession, player: PlayerId) -> bool:
    # Keep prompting until the turn passes or the game ends
    while session.state.turn.current_player == player and not session.state.result.is_over:
        _render_board(session.state)
        chain = session.state.turn.active_chain
        if chain is not None:
            origin: Optional[Position] = chain
            print(f"Capture chain detected - you must continue with the piece on {chain}.")
        else:
            origin = _prompt_position("Select piece to move (row col, or q to quit): ")
            if origin is None:
                return False

        target = _prompt_position("Select destination (row col): ")
        if target is None:
            return False

        step = _find_step(session.state, origin, target)
        if step is None:
            print("Illegal move. Try again.")
            continue
        try:
            session.play(step)
        except InvalidMove as exc:
            print(f"Illegal move: {exc}. Try again.")
            continue
        print(_format_move("You", step))
    return True


def _ai_turn(session: GameSession) -> bool:
    played = session.play_computer_turn()
    if not played:
        print("AI has no legal moves. You win!")
        return False
    for move in played:
        print(_format_move("AI", move))
    return True


def _choose_player() -> PlayerId:
    while True:
        choice = input("Play as Blue (B) or Red (R)? Blue moves first [B/R]: ").strip().lower()
        if choice in {"b", "blue", "1", ""}:
            return 1
        if choice in {"r", "red", "2"}:
            return 2
        print("Please type 'B' or 'R'.")


def _run_human_vs_ai(config: EngineConfig) -> int:
    human_player = _choose_player()
    agent = MinimaxAgent(opponent(human_player), depth=config.depth, evaluation=config.evaluation, rules=config.rules)
    session = GameSession(rules=config.rules, computer=agent)

    print(f"Game start! You play {PLAYER_NAMES[human_player]} against {agent.description}.")
    print("Enter 'q' at any prompt to quit.")

    while not session.state.result.is_over:
        if session.is_computer_turn():
            if not _ai_turn(session):
                break
        elif not _human_turn(session, human_player):
            break

    _render_board(session.state)
    _announce_result(session.state)
    print("Thanks for playing!")
    return 0


def _run_ai_vs_ai(config: EngineConfig, show_board: bool) -> int:
    agents = {
        1: MinimaxAgent(1, depth=config.depth, evaluation=Evaluation.MATERIAL_ADVANCEMENT, rules=config.rules),
        2: MinimaxAgent(2, depth=config.depth, evaluation=Evaluation.MATERIAL_MOBILITY, rules=config.rules),
    }
    session = GameSession(rules=config.rules)

    print(f"Game start! {agents[1].description} plays Blue, {agents[2].description} plays Red.")

    turn_counter = 1
    while not session.state.result.is_over and turn_counter <= MAX_AI_TURNS:
        player = session.state.turn.current_player
        label = f"AI {player}"
        result = agents[player].search(session.state)
        if result.move is None:
            print(f"{label} has no legal moves.")
            break

        session.play(result.move)
        print(f"Turn {turn_counter}: " + _format_move(label, result.move))
        if show_board:
            _render_board(session.state)
        turn_counter += 1

    if not session.state.result.is_over:
        print(f"No result after {MAX_AI_TURNS} turns; calling it a draw.")
    else:
        _announce_result(session.state)
    print("AI vs AI match complete.")
    return 0


def _run_online(config: EngineConfig, server: Tuple[str, int]) -> int:
    host, port = server
    session = GameSession(rules=config.rules)
    client = RoomClient()
    try:
        client.connect(host, port)
    except OSError as exc:
        print(f"Could not connect to {host}:{port}: {exc}")
        return 1

    controller = MultiplayerController(session, client)
    name = input("Your name: ").strip() or "Player"
    code = input("Room code to join (leave empty to create a room): ").strip()
    try:
        if code:
            controller.join_room(code, name)
        else:
            controller.create_room(name)
    except NotConnected as exc:
        print(exc)
        return 1

    announced_wait = False
    try:
        while True:
            msg = client.network.get_message(block=True, timeout=0.5)
            if msg is not None:
                controller.handle(msg)
                controller.pump()

            if controller.error:
                print(controller.error)
                controller.error = None
                if not controller.in_room:
                    return 1

            if not controller.in_room:
                continue
            if not controller.room_full:
                if not announced_wait:
                    print(f"Room {controller.room_id} created. Waiting for an opponent to join...")
                    announced_wait = True
                continue
            announced_wait = False

            if session.state.result.is_over:
                _render_board(session.state)
                _announce_result(session.state)
                return 0
            if session.can_act():
                if not _human_turn(session, session.state.turn.current_player):
                    controller.leave_room()
                    return 0
    finally:
        client.close()


def build_parser() -> argparse.ArgumentParser:
    engine = EngineConfig.from_env()
    server = ServerConfig.from_env()
    parser = argparse.ArgumentParser(description="Play 12 Pieces in the terminal")
    parser.add_argument("--mode", choices=["ai", "ai-vs-ai", "online"])
    parser.add_argument("--depth", type=int, default=engine.depth)
    parser.add_argument("--evaluation", choices=[e.value for e in Evaluation], default=engine.evaluation.value)
    parser.add_argument("--promotion", choices=[p.value for p in PromotionPolicy], default=engine.promotion.value)
    parser.add_argument("--host", default=server.host)
    parser.add_argument("--port", type=int, default=server.port)
    parser.add_argument("--show-board", action="store_true")
    parser.add_argument("--log-level", default=server.log_level)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    config = EngineConfig(
        depth=max(1, args.depth),
        promotion=PromotionPolicy(args.promotion),
        evaluation=Evaluation(args.evaluation),
        draw_on_lone_pieces=EngineConfig.from_env().draw_on_lone_pieces,
    )

    mode = args.mode
    while mode is None:
        choice = input("Select mode: 1) Human vs AI  2) AI vs AI  3) Online : ").strip()
        mode = {"1": "ai", "2": "ai-vs-ai", "3": "online"}.get(choice)
        if mode is None:
            print("Invalid selection. Please choose 1, 2 or 3.")

    if mode == "ai":
        return _run_human_vs_ai(config)
    if mode == "ai-vs-ai":
        return _run_ai_vs_ai(config, args.show_board)
    return _run_online(config, (args.host, args.port))


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    sys.exit(main())
