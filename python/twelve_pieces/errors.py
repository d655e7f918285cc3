"""Error taxonomy shared by the engine, the relay server and the client."""

from __future__ import annotations


class TwelvePiecesError(Exception):
    pass


class InvalidMove(TwelvePiecesError):
    """A move was rejected by the rule engine; the state is unchanged."""


class OutOfBounds(InvalidMove):
    pass


class EmptySquare(InvalidMove):
    pass


class GameOver(InvalidMove):
    pass


class RoomError(TwelvePiecesError):
    """Base for rejected room requests. ``str(exc)`` is the wire message."""


class RoomNotFound(RoomError):
    def __init__(self, room_id: str = "") -> None:
        super().__init__("Room not found")
        self.room_id = room_id


class RoomFull(RoomError):
    def __init__(self, room_id: str = "") -> None:
        super().__init__("Room is full")
        self.room_id = room_id


class NotInRoom(RoomError):
    def __init__(self, room_id: str = "") -> None:
        super().__init__("Not in room")
        self.room_id = room_id


class NotConnected(TwelvePiecesError):
    def __init__(self) -> None:
        super().__init__("Not connected to server")


class OpponentDisconnected(TwelvePiecesError):
    """Notice raised to the local player when the peer leaves the room."""

    def __init__(self, connection_id: str) -> None:
        super().__init__("Opponent has disconnected")
        self.connection_id = connection_id


__all__ = [
    "EmptySquare",
    "GameOver",
    "InvalidMove",
    "NotConnected",
    "NotInRoom",
    "OpponentDisconnected",
    "OutOfBounds",
    "RoomError",
    "RoomFull",
    "RoomNotFound",
    "TwelvePiecesError",
]
