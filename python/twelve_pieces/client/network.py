"""Networking helper that bridges asyncio with a synchronous UI loop."""

from __future__ import annotations

import asyncio
import queue
import threading
from typing import Any, Dict, Optional

from ..errors import NotConnected
from ..protocol import Event, Message, ProtocolError, message, read_message, write_message
from ..rooms import normalize_room_code


# Queued locally when the read loop ends; never sent by the server
CONNECTION_CLOSED = "connection-closed"


class NetworkClient:
    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._incoming: "queue.Queue[Message]" = queue.Queue()
        self._connected = threading.Event()
        self._closed = threading.Event()

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def connect(self, host: str, port: int, timeout: Optional[float] = 10.0) -> None:
        self.start()
        fut = asyncio.run_coroutine_threadsafe(self._connect(host, port), self._loop)
        fut.result(timeout)

    async def _connect(self, host: str, port: int) -> None:
        self._reader, self._writer = await asyncio.open_connection(host, port)
        self._connected.set()
        asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        if self._reader is None:
            return
        try:
            while not self._closed.is_set():
                msg = await read_message(self._reader)
                self._incoming.put(msg)
        except (asyncio.IncompleteReadError, ConnectionError, ProtocolError):
            self._incoming.put({"type": CONNECTION_CLOSED})
        finally:
            self._connected.clear()

    def send(self, msg: Message) -> None:
        if self._writer is None or not self.is_connected():
            raise NotConnected()
        asyncio.run_coroutine_threadsafe(write_message(self._writer, msg), self._loop)

    def get_message(self, block: bool = False, timeout: Optional[float] = None) -> Optional[Message]:
        try:
            return self._incoming.get(block, timeout)
        except queue.Empty:
            return None

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def close(self) -> None:
        self._closed.set()
        if self._writer:
            asyncio.run_coroutine_threadsafe(self._close_writer(), self._loop).result()
        self._loop.call_soon_threadsafe(self._loop.stop)

    async def _close_writer(self) -> None:
        assert self._writer is not None
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except ConnectionError:
            pass


class RoomClient:
    """Room requests over a :class:`NetworkClient`.

    Every request raises :class:`NotConnected` until the transport is up.
    """

    def __init__(self, network: Optional[NetworkClient] = None) -> None:
        self.network = network or NetworkClient()

    def connect(self, host: str, port: int) -> None:
        self.network.connect(host, port)

    def is_connected(self) -> bool:
        return self.network.is_connected()

    def _send(self, event: Event, **payload: Any) -> None:
        if not self.network.is_connected():
            raise NotConnected()
        self.network.send(message(event, **payload))

    def create_room(self, player_name: str) -> None:
        self._send(Event.CREATE_ROOM, playerName=player_name)

    def join_room(self, room_id: str, player_name: str) -> None:
        self._send(Event.JOIN_ROOM, roomId=normalize_room_code(room_id), playerName=player_name)

    def send_state(self, room_id: str, game_state: Dict[str, Any], player_id: str) -> None:
        self._send(Event.UPDATE_GAME_STATE, roomId=room_id, gameState=game_state, playerId=player_id)

    def leave_room(self, room_id: str) -> None:
        self._send(Event.LEAVE_ROOM, roomId=room_id)

    def poll(self) -> Optional[Message]:
        return self.network.get_message()

    def close(self) -> None:
        self.network.close()


__all__ = ["CONNECTION_CLOSED", "NetworkClient", "RoomClient"]
