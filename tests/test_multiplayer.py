from collections import deque
from typing import Any, Dict, List, Optional

import pytest

from twelve_pieces.client.multiplayer import MultiplayerController
from twelve_pieces.client.network import CONNECTION_CLOSED
from twelve_pieces.errors import NotConnected, OpponentDisconnected
from twelve_pieces.game.moves import Move
from twelve_pieces.rooms import initial_room_state
from twelve_pieces.session import GameSession


class FakeRoomClient:
    """Records requests and hands out queued server events."""

    def __init__(self, connected: bool = True) -> None:
        self.connected = connected
        self.requests: List[tuple] = []
        self.states: List[Dict[str, Any]] = []
        self.inbox: deque = deque()

    def is_connected(self) -> bool:
        return self.connected

    def _check(self) -> None:
        if not self.connected:
            raise NotConnected()

    def create_room(self, player_name: str) -> None:
        self._check()
        self.requests.append(("create", player_name))

    def join_room(self, room_id: str, player_name: str) -> None:
        self._check()
        self.requests.append(("join", room_id, player_name))

    def send_state(self, room_id: str, game_state: Dict[str, Any], player_id: str) -> None:
        self._check()
        self.states.append({"roomId": room_id, "gameState": game_state, "playerId": player_id})

    def leave_room(self, room_id: str) -> None:
        self.requests.append(("leave", room_id))

    def poll(self) -> Optional[Dict[str, Any]]:
        return self.inbox.popleft() if self.inbox else None


def room_info(*players: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": "ROOM01", "players": list(players), **initial_room_state(), "createdAt": "2024-01-01T00:00:00+00:00"}


HOST = {"id": "host", "name": "Alice", "player": 1}
GUEST = {"id": "guest", "name": "Bob", "player": 2}


@pytest.fixture
def client() -> FakeRoomClient:
    return FakeRoomClient()


@pytest.fixture
def host(client: FakeRoomClient) -> MultiplayerController:
    controller = MultiplayerController(GameSession(), client)
    controller.handle({"type": "room-created", "roomId": "ROOM01", "player": HOST, "roomInfo": room_info(HOST)})
    return controller


# -- Host side --
def test_created_room_waits_for_opponent(host: MultiplayerController, client: FakeRoomClient) -> None:
    assert host.in_room
    assert host.is_host
    assert host.room_id == "ROOM01"
    assert not host.room_full
    assert host.session.local_seat == 1
    assert client.states == []


def test_opponent_joining_starts_the_game(host: MultiplayerController, client: FakeRoomClient) -> None:
    host.handle({"type": "player-joined", "player": GUEST, "roomInfo": room_info(HOST, GUEST)})

    assert host.room_full
    assert len(client.states) == 1
    assert client.states[0]["playerId"] == "host"
    assert client.states[0]["gameState"]["currentPlayer"] == 1


def test_local_moves_are_relayed(host: MultiplayerController, client: FakeRoomClient) -> None:
    host.handle({"type": "player-joined", "player": GUEST, "roomInfo": room_info(HOST, GUEST)})

    host.session.play(Move(origin=(3, 2), target=(2, 2)))

    assert client.states[-1]["roomId"] == "ROOM01"
    assert client.states[-1]["gameState"]["currentPlayer"] == 2
    assert not host.session.can_act()


def test_remote_updates_are_applied(host: MultiplayerController) -> None:
    guest_session = GameSession()
    guest_session.play(Move(origin=(3, 2), target=(2, 2)))
    wire = guest_session.state.to_wire()

    host.handle({"type": "game-state-updated", "gameState": wire, "playerId": "guest"})

    assert host.session.state.current_player == 2
    assert host.session.state.board == guest_session.state.board


def test_own_updates_are_ignored(host: MultiplayerController) -> None:
    host.handle({"type": "game-state-updated", "gameState": {"currentPlayer": 2}, "playerId": "host"})

    assert host.session.state.current_player == 1


def test_opponent_departure(host: MultiplayerController) -> None:
    host.handle({"type": "player-joined", "player": GUEST, "roomInfo": room_info(HOST, GUEST)})

    host.handle({"type": "player-left", "playerId": "guest", "roomInfo": room_info(HOST)})

    assert isinstance(host.notice, OpponentDisconnected)
    assert host.error == "Opponent has disconnected"
    assert host.in_room
    assert not host.room_full
    assert not host.session.multiplayer


def test_leave_room(host: MultiplayerController, client: FakeRoomClient) -> None:
    host.leave_room()

    assert ("leave", "ROOM01") in client.requests
    assert not host.in_room


# -- Guest side --
def test_joined_room_takes_seat_two(client: FakeRoomClient) -> None:
    guest = MultiplayerController(GameSession(), client)
    client.inbox.append({"type": "room-joined", "roomId": "ROOM01", "player": GUEST, "roomInfo": room_info(HOST, GUEST)})

    assert guest.pump() == 1

    assert guest.room_full
    assert not guest.is_host
    assert guest.session.local_seat == 2
    assert not guest.session.can_act()
    # An empty room board leaves the fresh local board in place
    assert guest.session.state.current_player == 1
    assert len(list(guest.session.state.board.pieces())) == 24


def test_seat_follows_renumbering(client: FakeRoomClient) -> None:
    guest = MultiplayerController(GameSession(), client)
    guest.handle({"type": "room-joined", "roomId": "ROOM01", "player": GUEST, "roomInfo": room_info(HOST, GUEST)})

    guest.handle({"type": "player-disconnected", "playerId": "host", "roomInfo": room_info({**GUEST, "player": 1})})

    assert guest.player["player"] == 1


# -- Errors --
def test_server_errors_are_surfaced(client: FakeRoomClient) -> None:
    controller = MultiplayerController(GameSession(), client)

    controller.handle({"type": "error", "message": "Room is full"})

    assert controller.error == "Room is full"
    assert not controller.in_room


def test_requests_need_a_connection() -> None:
    controller = MultiplayerController(GameSession(), FakeRoomClient(connected=False))

    with pytest.raises(NotConnected):
        controller.create_room("Alice")
    assert controller.error == "Not connected to server"


def test_lost_connection_forgets_the_room(host: MultiplayerController) -> None:
    host.handle({"type": CONNECTION_CLOSED})

    assert not host.in_room
    assert host.error == "Not connected to server"
    assert not host.session.multiplayer


def test_unknown_events_are_ignored(host: MultiplayerController) -> None:
    host.handle({"type": "teleport"})

    assert host.in_room
    assert host.error is None
