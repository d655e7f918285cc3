"""Room lifecycle and state relay for the 12 Pieces server.

A room seats at most two connections and moves through
``EMPTY -> WAITING -> ACTIVE``; it falls back to ``WAITING`` when one of two
players leaves and is ``CLOSED`` (and forgotten) when the last one leaves.

Relayed game state is merged and forwarded as-is. The server does not replay
moves against the rule engine, so a client can push an illegal board.
"""

from __future__ import annotations

import asyncio
import logging
import random
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import NotInRoom, RoomFull, RoomNotFound
from .protocol import Event, Message, message


LOG = logging.getLogger("twelve_pieces.rooms")

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_PLAYERS = 2

# Keys of the room record a state update may not overwrite
_RESERVED_KEYS = frozenset({"id", "players", "createdAt"})


def generate_room_code() -> str:
    return "".join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def normalize_room_code(room_id: Any) -> str:
    if not isinstance(room_id, str):
        raise RoomNotFound(str(room_id))
    return room_id.strip().upper()


def initial_room_state() -> Dict[str, Any]:
    # No board until the host starts the game
    return {
        "board": [],
        "currentPlayer": 1,
        "gameOver": None,
        "selectedPiece": None,
        "mustCapture": False,
        "sequentialCapture": False,
    }


class RoomStatus(str, Enum):
    EMPTY = "empty"
    WAITING = "waiting"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class PlayerSlot:
    connection_id: str
    name: str
    seat: int

    def to_wire(self) -> Dict[str, Any]:
        return {"id": self.connection_id, "name": self.name, "player": self.seat}


@dataclass
class Room:
    id: str
    players: List[PlayerSlot] = field(default_factory=list)
    state: Dict[str, Any] = field(default_factory=initial_room_state)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    closed: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def status(self) -> RoomStatus:
        if self.closed:
            return RoomStatus.CLOSED
        if not self.players:
            return RoomStatus.EMPTY
        if len(self.players) < MAX_PLAYERS:
            return RoomStatus.WAITING
        return RoomStatus.ACTIVE

    def slot_for(self, connection_id: str) -> Optional[PlayerSlot]:
        return next((slot for slot in self.players if slot.connection_id == connection_id), None)

    def others(self, connection_id: str) -> List[PlayerSlot]:
        return [slot for slot in self.players if slot.connection_id != connection_id]

    def seat(self, connection_id: str, name: str) -> PlayerSlot:
        if len(self.players) >= MAX_PLAYERS:
            raise RoomFull(self.id)
        slot = PlayerSlot(connection_id=connection_id, name=name, seat=len(self.players) + 1)
        self.players.append(slot)
        return slot

    def unseat(self, connection_id: str) -> PlayerSlot:
        slot = self.slot_for(connection_id)
        if slot is None:
            raise NotInRoom(self.id)
        self.players.remove(slot)
        # The earliest-joined survivor always holds seat 1
        for index, remaining in enumerate(self.players, start=1):
            remaining.seat = index
        return slot

    def merge_state(self, update: Dict[str, Any]) -> None:
        self.state.update({key: value for key, value in update.items() if key not in _RESERVED_KEYS})

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "players": [slot.to_wire() for slot in self.players],
            **self.state,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Delivery:
    connection_id: str
    message: Message


@dataclass
class RoomUpdate:
    room: Room
    slot: PlayerSlot
    deliveries: List[Delivery]


class RoomManager:
    def __init__(self, code_factory: Callable[[], str] = generate_room_code) -> None:
        self.rooms: Dict[str, Room] = {}
        self._lock = asyncio.Lock()
        self._new_code = code_factory

    def get(self, room_id: Any) -> Room:
        room = self.rooms.get(normalize_room_code(room_id))
        if room is None or room.closed:
            raise RoomNotFound(str(room_id))
        return room

    async def create_room(self, connection_id: str, player_name: str) -> RoomUpdate:
        async with self._lock:
            code = self._new_code()
            while code in self.rooms:
                code = self._new_code()
            room = Room(id=code)
            slot = room.seat(connection_id, player_name)
            self.rooms[code] = room

        LOG.info("Room created: %s by player %s", code, player_name)
        reply = message(Event.ROOM_CREATED, roomId=code, player=slot.to_wire(), roomInfo=room.to_wire())
        return RoomUpdate(room=room, slot=slot, deliveries=[Delivery(connection_id, reply)])

    async def join_room(self, room_id: Any, connection_id: str, player_name: str) -> RoomUpdate:
        async with self._lock:
            room = self.get(room_id)

        async with room.lock:
            if room.closed:
                raise RoomNotFound(room.id)
            # A repeated join keeps the existing seat and tells nobody else
            slot = room.slot_for(connection_id)
            others: List[PlayerSlot] = []
            if slot is None:
                slot = room.seat(connection_id, player_name)
                others = room.others(connection_id)
                LOG.info("Player %s joined room: %s", player_name, room.id)
            info = room.to_wire()

        deliveries = [
            Delivery(connection_id, message(Event.ROOM_JOINED, roomId=room.id, player=slot.to_wire(), roomInfo=info))
        ]
        deliveries.extend(
            Delivery(other.connection_id, message(Event.PLAYER_JOINED, player=slot.to_wire(), roomInfo=info))
            for other in others
        )
        return RoomUpdate(room=room, slot=slot, deliveries=deliveries)

    async def relay_state(self, room_id: Any, sender_id: str, game_state: Dict[str, Any]) -> List[Delivery]:
        """Merge ``game_state`` into the room and forward it to the other seat only."""

        room = self.get(room_id)
        async with room.lock:
            if room.closed:
                raise RoomNotFound(room.id)
            if room.slot_for(sender_id) is None:
                raise NotInRoom(room.id)
            room.merge_state(game_state)
            recipients = room.others(sender_id)

        update = message(Event.GAME_STATE_UPDATED, gameState=game_state, playerId=sender_id)
        return [Delivery(slot.connection_id, update) for slot in recipients]

    async def leave_room(self, room_id: Any, connection_id: str) -> List[Delivery]:
        room = self.get(room_id)
        deliveries = await self._depart(room, connection_id, Event.PLAYER_LEFT)
        deliveries.insert(0, Delivery(connection_id, message(Event.ROOM_LEFT, roomId=room.id)))
        return deliveries

    async def handle_disconnect(self, connection_id: str) -> List[Delivery]:
        """Drop ``connection_id`` from every room it sits in.

        The transport gives no room hint on disconnect, so all rooms are scanned.
        """

        async with self._lock:
            candidates = [room for room in self.rooms.values() if room.slot_for(connection_id)]

        deliveries: List[Delivery] = []
        for room in candidates:
            try:
                deliveries.extend(await self._depart(room, connection_id, Event.PLAYER_DISCONNECTED))
            except (NotInRoom, RoomNotFound):
                # Already gone through an explicit leave racing this disconnect
                continue
        return deliveries

    async def _depart(self, room: Room, connection_id: str, notice: Event) -> List[Delivery]:
        async with room.lock:
            if room.closed:
                raise RoomNotFound(room.id)
            room.unseat(connection_id)
            remaining = list(room.players)
            if not remaining:
                room.closed = True
            info = room.to_wire()

        if not remaining:
            async with self._lock:
                self.rooms.pop(room.id, None)
            LOG.info("Room %s deleted (no players left)", room.id)
            return []

        LOG.info("Player %s left room %s", connection_id, room.id)
        update = message(notice, playerId=connection_id, roomInfo=info)
        return [Delivery(slot.connection_id, update) for slot in remaining]


__all__ = [
    "Delivery",
    "MAX_PLAYERS",
    "PlayerSlot",
    "Room",
    "RoomManager",
    "RoomStatus",
    "RoomUpdate",
    "generate_room_code",
    "normalize_room_code",
]
