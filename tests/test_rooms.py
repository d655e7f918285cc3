import asyncio
from typing import Iterator

import pytest

from twelve_pieces.errors import NotInRoom, RoomFull, RoomNotFound
from twelve_pieces.rooms import (
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    RoomManager,
    RoomStatus,
    generate_room_code,
    normalize_room_code,
)


def fixed_codes(*codes: str):
    it: Iterator[str] = iter(codes)
    return lambda: next(it)


@pytest.fixture
def manager() -> RoomManager:
    return RoomManager(code_factory=fixed_codes("ABC123", "XYZ789"))


def types_by_recipient(deliveries) -> dict:
    return {d.connection_id: d.message["type"] for d in deliveries}


# -- Room codes --
def test_generated_codes() -> None:
    code = generate_room_code()

    assert len(code) == ROOM_CODE_LENGTH
    assert all(ch in ROOM_CODE_ALPHABET for ch in code)


def test_code_normalization() -> None:
    assert normalize_room_code("  abc123 ") == "ABC123"
    with pytest.raises(RoomNotFound):
        normalize_room_code(None)


def test_colliding_codes_are_regenerated() -> None:
    async def scenario():
        rooms = RoomManager(code_factory=fixed_codes("SAME01", "SAME01", "OTHER1"))
        first = await rooms.create_room("c1", "Alice")
        second = await rooms.create_room("c2", "Bob")
        return first.room.id, second.room.id

    assert asyncio.run(scenario()) == ("SAME01", "OTHER1")


# -- Create and join --
def test_create_then_join_seats_two_players(manager: RoomManager) -> None:
    async def scenario():
        created = await manager.create_room("c1", "Alice")
        joined = await manager.join_room("abc123", "c2", "Bob")
        with pytest.raises(RoomFull):
            await manager.join_room("ABC123", "c3", "Carol")
        return created, joined

    created, joined = asyncio.run(scenario())

    assert created.slot.seat == 1
    assert created.room.status is RoomStatus.ACTIVE
    assert created.deliveries[0].message["type"] == "room-created"
    assert created.deliveries[0].message["roomId"] == "ABC123"
    assert created.deliveries[0].message["player"] == {"id": "c1", "name": "Alice", "player": 1}

    assert joined.slot.seat == 2
    assert types_by_recipient(joined.deliveries) == {"c2": "room-joined", "c1": "player-joined"}
    info = joined.deliveries[0].message["roomInfo"]
    assert [p["player"] for p in info["players"]] == [1, 2]
    assert info["currentPlayer"] == 1
    assert "createdAt" in info


def test_new_room_is_waiting(manager: RoomManager) -> None:
    update = asyncio.run(manager.create_room("c1", "Alice"))

    assert update.room.status is RoomStatus.WAITING
    assert update.deliveries[0].message["roomInfo"]["board"] == []


def test_join_unknown_room(manager: RoomManager) -> None:
    with pytest.raises(RoomNotFound) as excinfo:
        asyncio.run(manager.join_room("NOPE00", "c1", "Alice"))

    assert str(excinfo.value) == "Room not found"


# -- Relay --
def test_state_is_relayed_to_the_other_player_only(manager: RoomManager) -> None:
    async def scenario():
        await manager.create_room("c1", "Alice")
        await manager.join_room("ABC123", "c2", "Bob")
        return await manager.relay_state("ABC123", "c1", {"currentPlayer": 2, "mustCapture": False})

    deliveries = asyncio.run(scenario())

    assert [d.connection_id for d in deliveries] == ["c2"]
    msg = deliveries[0].message
    assert msg["type"] == "game-state-updated"
    assert msg["gameState"] == {"currentPlayer": 2, "mustCapture": False}
    assert msg["playerId"] == "c1"
    assert manager.get("ABC123").state["currentPlayer"] == 2


def test_relay_cannot_overwrite_room_identity(manager: RoomManager) -> None:
    async def scenario():
        await manager.create_room("c1", "Alice")
        await manager.relay_state("ABC123", "c1", {"id": "HACKED", "players": [], "gameOver": 1})

    asyncio.run(scenario())
    room = manager.get("ABC123")

    assert room.to_wire()["id"] == "ABC123"
    assert len(room.players) == 1
    assert room.state["gameOver"] == 1


def test_relay_from_outsider_is_rejected(manager: RoomManager) -> None:
    async def scenario():
        await manager.create_room("c1", "Alice")
        await manager.relay_state("ABC123", "intruder", {"currentPlayer": 2})

    with pytest.raises(NotInRoom):
        asyncio.run(scenario())


# -- Leaving --
def test_disconnect_renumbers_the_survivor(manager: RoomManager) -> None:
    async def scenario():
        await manager.create_room("c1", "Alice")
        await manager.join_room("ABC123", "c2", "Bob")
        return await manager.handle_disconnect("c1")

    deliveries = asyncio.run(scenario())
    room = manager.get("ABC123")

    assert types_by_recipient(deliveries) == {"c2": "player-disconnected"}
    assert deliveries[0].message["playerId"] == "c1"
    assert [(p.connection_id, p.seat) for p in room.players] == [("c2", 1)]
    assert room.status is RoomStatus.WAITING


def test_explicit_leave(manager: RoomManager) -> None:
    async def scenario():
        await manager.create_room("c1", "Alice")
        await manager.join_room("ABC123", "c2", "Bob")
        return await manager.leave_room("abc123", "c2")

    deliveries = asyncio.run(scenario())

    assert deliveries[0].connection_id == "c2"
    assert deliveries[0].message["type"] == "room-left"
    assert types_by_recipient(deliveries[1:]) == {"c1": "player-left"}


def test_leave_when_not_seated(manager: RoomManager) -> None:
    async def scenario():
        await manager.create_room("c1", "Alice")
        await manager.leave_room("ABC123", "c9")

    with pytest.raises(NotInRoom):
        asyncio.run(scenario())


def test_empty_room_is_deleted(manager: RoomManager) -> None:
    async def scenario():
        update = await manager.create_room("c1", "Alice")
        deliveries = await manager.handle_disconnect("c1")
        return update.room, deliveries

    room, deliveries = asyncio.run(scenario())

    assert deliveries == []
    assert room.status is RoomStatus.CLOSED
    assert "ABC123" not in manager.rooms
    with pytest.raises(RoomNotFound):
        manager.get("ABC123")


def test_rejoin_after_departure(manager: RoomManager) -> None:
    """A room with a free seat accepts a new player as seat 2 again."""

    async def scenario():
        await manager.create_room("c1", "Alice")
        await manager.join_room("ABC123", "c2", "Bob")
        await manager.leave_room("ABC123", "c1")
        return await manager.join_room("ABC123", "c3", "Carol")

    joined = asyncio.run(scenario())

    assert joined.slot.seat == 2
    assert types_by_recipient(joined.deliveries) == {"c3": "room-joined", "c2": "player-joined"}


def test_disconnect_without_rooms(manager: RoomManager) -> None:
    assert asyncio.run(manager.handle_disconnect("ghost")) == []


def test_repeated_join_keeps_the_seat(manager: RoomManager) -> None:
    async def scenario():
        await manager.create_room("c1", "Alice")
        again = await manager.join_room("ABC123", "c1", "Alice")
        joined = await manager.join_room("ABC123", "c2", "Bob")
        return again, joined

    again, joined = asyncio.run(scenario())
    room = manager.get("ABC123")

    assert again.slot.seat == 1
    assert types_by_recipient(again.deliveries) == {"c1": "room-joined"}
    assert joined.slot.seat == 2
    assert [p.connection_id for p in room.players] == ["c1", "c2"]
    assert room.status is RoomStatus.ACTIVE
