"""Entry point for the graphical client."""

from __future__ import annotations

import argparse
import logging
import sys

from ..config import EngineConfig, ServerConfig


def main(argv: list[str] | None = None) -> int:
    engine = EngineConfig.from_env()
    server = ServerConfig.from_env()
    parser = argparse.ArgumentParser(description="12 Pieces graphical client")
    parser.add_argument("--depth", type=int, default=engine.depth)
    parser.add_argument("--online", action="store_true", help="play against another person through a relay server")
    parser.add_argument("--join", metavar="ROOM", help="room code to join instead of creating one")
    parser.add_argument("--name", default="Player")
    parser.add_argument("--host", default=server.host)
    parser.add_argument("--port", type=int, default=server.port)
    parser.add_argument("--log-level", default=server.log_level)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    # Imported late so --help works without pygame installed
    from ..session import GameSession
    from .multiplayer import MultiplayerController
    from .network import RoomClient
    from .pygame_app import TwelvePiecesPygameApp

    if not (args.online or args.join):
        TwelvePiecesPygameApp(rules=engine.rules, depth=max(1, args.depth)).run()
        return 0

    client = RoomClient()
    try:
        client.connect(args.host, args.port)
    except OSError as exc:
        print(f"Could not connect to {args.host}:{args.port}: {exc}", file=sys.stderr)
        return 1

    controller = MultiplayerController(GameSession(rules=engine.rules), client)
    if args.join:
        controller.join_room(args.join, args.name)
    else:
        controller.create_room(args.name)
    TwelvePiecesPygameApp(rules=engine.rules, controller=controller).run()
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution
    sys.exit(main())
