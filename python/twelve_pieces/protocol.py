"""JSON-lines wire protocol shared by the relay server and its clients."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict


Message = Dict[str, Any]
ENCODING = "utf-8"


class ProtocolError(RuntimeError):
    pass


class Event(str, Enum):
    CREATE_ROOM = "create-room"
    ROOM_CREATED = "room-created"
    JOIN_ROOM = "join-room"
    ROOM_JOINED = "room-joined"
    PLAYER_JOINED = "player-joined"
    UPDATE_GAME_STATE = "update-game-state"
    GAME_STATE_UPDATED = "game-state-updated"
    LEAVE_ROOM = "leave-room"
    ROOM_LEFT = "room-left"
    PLAYER_LEFT = "player-left"
    PLAYER_DISCONNECTED = "player-disconnected"
    ERROR = "error"


def message(event: Event, **payload: Any) -> Message:
    """Build an outgoing message for ``event``."""

    return {"type": event.value, **payload}


def event_of(msg: Message) -> Event:
    """Return the :class:`Event` named by ``msg``."""

    try:
        return Event(msg.get("type"))
    except ValueError as exc:
        raise ProtocolError(f"Unknown event: {msg.get('type')!r}") from exc


def encode(msg: Message) -> bytes:
    """Serialize a message to bytes with a trailing newline."""

    return (json.dumps(msg, separators=(",", ":")) + "\n").encode(ENCODING)


def decode(payload: bytes) -> Message:
    """Parse bytes into a Python dictionary."""

    try:
        data = json.loads(payload.decode(ENCODING))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError("Malformed payload") from exc
    if not isinstance(data, dict):
        raise ProtocolError("Payload must be a JSON object")
    return data


async def read_message(reader) -> Message:
    """Read a newline-delimited JSON message from an asyncio StreamReader."""

    line = await reader.readline()
    if not line:
        raise ProtocolError("Connection closed by peer")
    return decode(line.rstrip(b"\r\n"))


async def write_message(writer, msg: Message) -> None:
    """Write a JSON message to an asyncio StreamWriter."""

    writer.write(encode(msg))
    await writer.drain()
