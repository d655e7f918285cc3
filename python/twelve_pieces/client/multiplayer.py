"""Glue between relayed room events and a local :class:`GameSession`."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import NotConnected, OpponentDisconnected
from ..protocol import Event, Message
from ..session import GameSession
from .network import CONNECTION_CLOSED, RoomClient


LOG = logging.getLogger("twelve_pieces.client")

_STATE_KEYS = ("board", "currentPlayer", "gameOver", "selectedPiece", "mustCapture", "sequentialCapture")


class MultiplayerController:
    def __init__(self, session: GameSession, client: RoomClient) -> None:
        self.session = session
        self.client = client
        self.room_id: Optional[str] = None
        self.player: Optional[Dict[str, Any]] = None
        self.room_info: Optional[Dict[str, Any]] = None
        self.is_host = False
        self.error: Optional[str] = None
        self.notice: Optional[OpponentDisconnected] = None
        session.on_move_end = self._on_move_end

    @property
    def in_room(self) -> bool:
        return self.room_id is not None

    @property
    def room_full(self) -> bool:
        return bool(self.room_info) and len(self.room_info.get("players", [])) >= 2

    @property
    def player_id(self) -> Optional[str]:
        return self.player["id"] if self.player else None

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def create_room(self, player_name: str) -> None:
        try:
            self.client.create_room(player_name)
        except NotConnected as exc:
            self.error = str(exc)
            raise

    def join_room(self, room_id: str, player_name: str) -> None:
        try:
            self.client.join_room(room_id, player_name)
        except NotConnected as exc:
            self.error = str(exc)
            raise

    def leave_room(self) -> None:
        if self.room_id is None:
            return
        if self.client.is_connected():
            self.client.leave_room(self.room_id)
        self._forget_room()
        self.session.reset()

    # ------------------------------------------------------------------
    # Incoming events
    # ------------------------------------------------------------------
    def pump(self) -> int:
        """Handle every queued event; returns how many were processed."""

        handled = 0
        while True:
            msg = self.client.poll()
            if msg is None:
                return handled
            self.handle(msg)
            handled += 1

    def handle(self, msg: Message) -> None:
        kind = msg.get("type")
        if kind == CONNECTION_CLOSED:
            self.error = str(NotConnected())
            self._forget_room()
            return

        try:
            event = Event(kind)
        except ValueError:
            LOG.warning("Ignoring unknown event %r", kind)
            return

        if event is Event.ROOM_CREATED:
            self._enter_room(msg, host=True)
        elif event is Event.ROOM_JOINED:
            self._enter_room(msg, host=False)
            room_state = {key: msg["roomInfo"][key] for key in _STATE_KEYS if key in msg.get("roomInfo", {})}
            self.session.apply_remote(room_state)
        elif event is Event.PLAYER_JOINED:
            self.room_info = msg.get("roomInfo")
            self.notice = None
            self.error = None
            self.session.set_multiplayer(self._seat())
            # The seated host starts a fresh game and pushes it to the newcomer
            self.session.reset()
        elif event is Event.GAME_STATE_UPDATED:
            if msg.get("playerId") == self.player_id:
                return
            self.session.apply_remote(msg.get("gameState") or {})
        elif event in (Event.PLAYER_LEFT, Event.PLAYER_DISCONNECTED):
            self.room_info = msg.get("roomInfo")
            departed = msg.get("playerId")
            if departed != self.player_id:
                self.notice = OpponentDisconnected(departed)
                self.error = str(self.notice)
                if self.player is not None:
                    self.player = {**self.player, "player": self._seat()}
                self.session.set_multiplayer(None)
        elif event is Event.ERROR:
            self.error = msg.get("message")
            LOG.info("Server rejected request: %s", self.error)

    def _enter_room(self, msg: Message, host: bool) -> None:
        # Start from a clean local board; nothing is relayed until a peer joins
        self.session.set_multiplayer(None)
        self.session.reset()
        self.room_id = msg.get("roomId")
        self.player = msg.get("player")
        self.room_info = msg.get("roomInfo")
        self.is_host = host
        self.error = None
        self.notice = None
        self.session.set_multiplayer(self._seat())

    def _seat(self) -> int:
        if self.room_info and self.player:
            for slot in self.room_info.get("players", []):
                if slot.get("id") == self.player.get("id"):
                    return slot.get("player", 1)
        if self.player:
            return self.player.get("player", 1)
        return 1

    def _forget_room(self) -> None:
        self.room_id = None
        self.player = None
        self.room_info = None
        self.is_host = False
        self.session.set_multiplayer(None)

    def _on_move_end(self, game_state: Dict[str, Any]) -> None:
        if self.room_id is None or self.player_id is None:
            return
        try:
            self.client.send_state(self.room_id, game_state, self.player_id)
        except NotConnected as exc:
            LOG.warning("Could not relay move: %s", exc)
            self.error = str(exc)


__all__ = ["MultiplayerController"]
