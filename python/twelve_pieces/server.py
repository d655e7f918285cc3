"""Asyncio relay server for 12 Pieces rooms."""

from __future__ import annotations

import argparse
import asyncio
import logging
import uuid
from typing import Dict, Iterable, Optional

from .config import ServerConfig
from .errors import RoomError
from .protocol import Event, Message, ProtocolError, event_of, message, read_message, write_message
from .rooms import Delivery, RoomManager


LOG = logging.getLogger("twelve_pieces.server")


class RelayServer:
    def __init__(self, host: str = "127.0.0.1", port: int = 11111, rooms: Optional[RoomManager] = None) -> None:
        self.host = host
        self.port = port
        self.rooms = rooms or RoomManager()
        self.connections: Dict[str, asyncio.StreamWriter] = {}
        self._server: Optional[asyncio.base_events.Server] = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_client, self.host, self.port)
        addr = ", ".join(str(sock.getsockname()) for sock in self._server.sockets)
        LOG.info("Server listening on %s", addr)

    @property
    def bound_port(self) -> int:
        assert self._server is not None
        return self._server.sockets[0].getsockname()[1]

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = writer
        LOG.info("Connection from %s as %s", peer, connection_id)

        try:
            while True:
                msg = await read_message(reader)
                await self.dispatch(connection_id, msg)
        except ProtocolError as exc:
            LOG.warning("Protocol error with %s: %s", connection_id, exc)
        except (asyncio.IncompleteReadError, ConnectionError):
            LOG.info("Client %s dropped", connection_id)
        except Exception:  # pragma: no cover - unexpected failure
            LOG.exception("Unexpected error handling client %s", connection_id)
        finally:
            self.connections.pop(connection_id, None)
            LOG.info("A client disconnected: %s", connection_id)
            await self._deliver(await self.rooms.handle_disconnect(connection_id))
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:  # pragma: no cover
                pass

    async def dispatch(self, connection_id: str, msg: Message) -> None:
        """Route one client event to the room manager and deliver the replies."""

        try:
            event = event_of(msg)
        except ProtocolError as exc:
            LOG.warning("Protocol error with %s: %s", connection_id, exc)
            await self._send_error(connection_id, "Unknown event")
            return

        try:
            if event is Event.CREATE_ROOM:
                name = msg.get("playerName")
                if not isinstance(name, str) or not name.strip():
                    await self._send_error(connection_id, "Invalid player name")
                    return
                update = await self.rooms.create_room(connection_id, name.strip())
                await self._deliver(update.deliveries)
            elif event is Event.JOIN_ROOM:
                name = msg.get("playerName")
                if not isinstance(name, str) or not name.strip():
                    await self._send_error(connection_id, "Invalid player name")
                    return
                update = await self.rooms.join_room(msg.get("roomId"), connection_id, name.strip())
                await self._deliver(update.deliveries)
            elif event is Event.UPDATE_GAME_STATE:
                game_state = msg.get("gameState")
                if not isinstance(game_state, dict):
                    await self._send_error(connection_id, "Invalid game state")
                    return
                await self._deliver(await self.rooms.relay_state(msg.get("roomId"), connection_id, game_state))
            elif event is Event.LEAVE_ROOM:
                await self._deliver(await self.rooms.leave_room(msg.get("roomId"), connection_id))
            else:
                await self._send_error(connection_id, "Unknown event")
        except RoomError as exc:
            LOG.info("Rejected %s from %s: %s", event.value, connection_id, exc)
            await self._send_error(connection_id, str(exc))

    async def _deliver(self, deliveries: Iterable[Delivery]) -> None:
        tasks = []
        for delivery in deliveries:
            writer = self.connections.get(delivery.connection_id)
            if writer is None:
                continue
            tasks.append(write_message(writer, delivery.message))
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                LOG.warning("Failed to deliver message: %s", result)

    async def _send_error(self, connection_id: str, text: str) -> None:
        await self._deliver([Delivery(connection_id, message(Event.ERROR, message=text))])


async def amain(config: ServerConfig) -> None:
    server = RelayServer(host=config.host, port=config.port)
    await server.start()
    await server.serve_forever()


def main(argv: list[str] | None = None) -> None:
    defaults = ServerConfig.from_env()
    parser = argparse.ArgumentParser(description="12 Pieces relay server")
    parser.add_argument("--host", default=defaults.host)
    parser.add_argument("--port", type=int, default=defaults.port)
    parser.add_argument("--log-level", default=defaults.log_level)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        asyncio.run(amain(ServerConfig(host=args.host, port=args.port, log_level=args.log_level.upper())))
    except KeyboardInterrupt:
        LOG.info("Server shutting down")


if __name__ == "__main__":
    main()
