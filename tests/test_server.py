import asyncio

from twelve_pieces.protocol import Event, decode, encode, message
from twelve_pieces.rooms import RoomManager
from twelve_pieces.server import RelayServer


TIMEOUT = 5


class Peer:
    """A raw protocol client talking to a live server."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer

    @classmethod
    async def connect(cls, port: int) -> "Peer":
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        return cls(reader, writer)

    async def send(self, msg) -> None:
        self.writer.write(encode(msg))
        await self.writer.drain()

    async def receive(self):
        line = await asyncio.wait_for(self.reader.readline(), TIMEOUT)
        return decode(line.rstrip(b"\n"))

    async def close(self) -> None:
        self.writer.close()
        await self.writer.wait_closed()


async def _with_server(scenario):
    server = RelayServer(host="127.0.0.1", port=0, rooms=RoomManager(code_factory=lambda: "ROOM01"))
    await server.start()
    try:
        return await scenario(server.bound_port)
    finally:
        await server.close()


def test_two_players_play_through_the_relay() -> None:
    async def scenario(port: int):
        host = await Peer.connect(port)
        guest = await Peer.connect(port)

        await host.send(message(Event.CREATE_ROOM, playerName="Alice"))
        created = await host.receive()

        await guest.send(message(Event.JOIN_ROOM, roomId="room01", playerName="Bob"))
        joined = await guest.receive()
        announced = await host.receive()

        host_id = created["player"]["id"]
        await host.send(message(Event.UPDATE_GAME_STATE, roomId="ROOM01", gameState={"currentPlayer": 2}, playerId=host_id))
        relayed = await guest.receive()

        await guest.close()
        dropped = await host.receive()
        await host.close()
        return created, joined, announced, relayed, dropped

    created, joined, announced, relayed, dropped = asyncio.run(_with_server(scenario))

    assert created["type"] == "room-created"
    assert created["roomId"] == "ROOM01"
    assert created["player"]["player"] == 1
    assert joined["type"] == "room-joined"
    assert joined["player"]["player"] == 2
    assert announced["type"] == "player-joined"
    assert relayed["type"] == "game-state-updated"
    assert relayed["gameState"] == {"currentPlayer": 2}
    assert relayed["playerId"] == created["player"]["id"]
    assert dropped["type"] == "player-disconnected"
    assert dropped["roomInfo"]["players"][0]["player"] == 1


def test_errors_are_reported_to_the_sender() -> None:
    async def scenario(port: int):
        peer = await Peer.connect(port)
        await peer.send(message(Event.JOIN_ROOM, roomId="NOPE00", playerName="Alice"))
        missing = await peer.receive()
        await peer.send({"type": "teleport"})
        unknown = await peer.receive()
        await peer.send(message(Event.CREATE_ROOM, playerName="   "))
        nameless = await peer.receive()
        await peer.close()
        return missing, unknown, nameless

    missing, unknown, nameless = asyncio.run(_with_server(scenario))

    assert missing == {"type": "error", "message": "Room not found"}
    assert unknown == {"type": "error", "message": "Unknown event"}
    assert nameless["type"] == "error"


def test_full_room_is_rejected() -> None:
    async def scenario(port: int):
        peers = [await Peer.connect(port) for _ in range(3)]
        await peers[0].send(message(Event.CREATE_ROOM, playerName="Alice"))
        await peers[0].receive()
        await peers[1].send(message(Event.JOIN_ROOM, roomId="ROOM01", playerName="Bob"))
        await peers[1].receive()
        await peers[2].send(message(Event.JOIN_ROOM, roomId="ROOM01", playerName="Carol"))
        rejected = await peers[2].receive()
        for peer in peers:
            await peer.close()
        return rejected

    assert asyncio.run(_with_server(scenario)) == {"type": "error", "message": "Room is full"}
