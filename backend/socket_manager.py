"""WebSocket connection dispatcher for Agile Poker rooms."""

from fastapi import WebSocket, WebSocketDisconnect
from typing import Dict, Optional, Tuple, Union
import logging
import uuid

import config
from errors import (
    AuthorizationError, ProtocolError, RateLimitError, RoomError, ValidationError,
)
from messages import (
    CloseRevealMessage, CreateRoomMessage, InboundMessage, JoinRoomMessage,
    ResetRoundMessage, RevealCardsMessage, SelectCardMessage, StartRoundMessage,
    parse_message,
)
from room import Player, Room
from room_store import RoomStore
from sessions import SessionRegistry
from validation import RateLimiter, is_valid_room_code

logger = logging.getLogger(__name__)


class SocketManager:
    def __init__(self):
        self.sessions = SessionRegistry()
        self.store = RoomStore(self.sessions)
        self.rate_limiter = RateLimiter()
        self.websockets: Dict[str, WebSocket] = {}
        self.players: Dict[str, Player] = {}  # connection_id -> Player

    @property
    def rooms(self) -> Dict[str, Room]:
        return self.store.rooms

    def reset(self):
        self.store.clear()
        self.sessions.clear()
        self.rate_limiter.clear()
        self.websockets.clear()
        self.players.clear()

    def start_cleanup_loop(self):
        self.sessions.start_sweep_loop()

    def stop_cleanup_loop(self):
        self.sessions.stop_sweep_loop()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        self.websockets[connection_id] = websocket
        client = websocket.client.host if websocket.client else "unknown"
        logger.info("Client %s connected from %s", connection_id, client)

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000))
                data = frame.get("text")
                if data is None:
                    data = frame.get("bytes") or b""
                await self.receive(connection_id, data)
        except WebSocketDisconnect:
            logger.info("Client %s disconnected", connection_id)
        except Exception:
            logger.exception("WebSocket error for client %s", connection_id)
        finally:
            await self.disconnect(connection_id)

    async def receive(self, connection_id: str, data: Union[str, bytes]):
        """Gate one raw frame and dispatch it. Errors go back to the sender only."""
        try:
            if not self.rate_limiter.allow(connection_id):
                logger.warning("Rate limit exceeded for client %s", connection_id)
                raise RateLimitError("Rate limit exceeded. Please slow down.")
            raw = data if isinstance(data, bytes) else data.encode("utf-8")
            if len(raw) > config.MAX_WS_MESSAGE_SIZE:
                raise ValidationError("Message too large")
            if isinstance(data, bytes):
                try:
                    data = data.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise ProtocolError("Invalid message format") from e
            message = parse_message(data)
            if message is None:
                logger.debug("Ignoring unknown message from %s", connection_id)
                return
            await self.handle_message(connection_id, message)
        except AuthorizationError:
            logger.debug("Dropped host-only message from %s", connection_id)
        except RoomError as e:
            await self._send(connection_id, {"type": "error", "message": e.message})

    async def _send(self, connection_id: str, message: dict):
        ws = self.websockets.get(connection_id)
        if ws is None:
            return
        try:
            await ws.send_json(message)
        except Exception:
            logger.debug("Failed to send to client %s", connection_id)

    def _lookup(self, connection_id: str) -> Tuple[Optional[Player], Optional[Room]]:
        player = self.players.get(connection_id)
        if player is None:
            return None, None
        return player, self.store.get(player.room_code)

    async def handle_message(self, connection_id: str, message: InboundMessage):
        if isinstance(message, CreateRoomMessage):
            await self._handle_create(connection_id, message)
            return
        if isinstance(message, JoinRoomMessage):
            await self._handle_join(connection_id, message)
            return

        player, room = self._lookup(connection_id)
        if player is None or room is None:
            return

        if isinstance(message, StartRoundMessage):
            room.start_round(player)
            logger.info("Round started in room %s", room.code)
            await room.broadcast({"type": "round_started",
                                  "roomState": room.get_room_state()})

        elif isinstance(message, SelectCardMessage):
            room.select_card(player, message.card)
            logger.info("'%s' selected a card in room %s", player.name, room.code)
            await room.broadcast({
                "type": "player_selected",
                "playerId": player.id,
                "roomState": room.get_room_state(),
            })

        elif isinstance(message, RevealCardsMessage):
            reveal_order = room.reveal_cards(player)
            logger.info("Cards revealed in room %s", room.code)
            await room.broadcast({
                "type": "cards_revealed",
                "revealOrder": reveal_order,
                "consensusCard": room.consensus_card(),
                "roomState": room.get_room_state(include_votes=True),
            })

        elif isinstance(message, ResetRoundMessage):
            room.reset_round(player)
            logger.info("Round reset in room %s", room.code)
            await room.broadcast({"type": "round_reset",
                                  "roomState": room.get_room_state()})

        elif isinstance(message, CloseRevealMessage):
            room.close_reveal(player)
            logger.info("Reveal closed in room %s", room.code)
            await room.broadcast({"type": "reveal_closed"})

    def _ensure_not_in_room(self, connection_id: str):
        if connection_id in self.players:
            raise ValidationError("Already in a room")

    async def _handle_create(self, connection_id: str, message: CreateRoomMessage):
        self._ensure_not_in_room(connection_id)
        room, player = self.store.create(connection_id, message.name,
                                         self.websockets.get(connection_id))
        self.players[connection_id] = player
        await self._send(connection_id, {
            "type": "room_created",
            "roomCode": room.code,
            "playerId": player.id,
            "sessionToken": player.session_token,
            "roomState": room.get_room_state(),
        })

    async def _handle_join(self, connection_id: str, message: JoinRoomMessage):
        self._ensure_not_in_room(connection_id)
        if not is_valid_room_code(message.roomCode):
            raise ValidationError("Invalid room code format")
        code = message.roomCode.upper()
        room, player = self.store.join(code, connection_id, message.name,
                                       self.websockets.get(connection_id))
        self.players[connection_id] = player
        await self._send(connection_id, {
            "type": "joined_room",
            "roomCode": room.code,
            "playerId": player.id,
            "sessionToken": player.session_token,
            "roomState": room.get_room_state(),
        })
        await room.broadcast({
            "type": "player_joined",
            "player": {"id": player.id, "name": player.name, "hasSelected": False},
            "roomState": room.get_room_state(),
        }, exclude=connection_id)

    async def disconnect(self, connection_id: str):
        self.websockets.pop(connection_id, None)
        self.rate_limiter.forget(connection_id)
        player = self.players.pop(connection_id, None)
        if player is None:
            return
        room = self.store.get(player.room_code)
        if room is None:
            return

        _, new_host_id = room.remove_player(connection_id)
        if room.is_empty():
            self.store.delete(room.code)
            return

        logger.info("'%s' left room %s", player.name, room.code)
        if new_host_id is not None:
            await room.send_to(new_host_id, {"type": "became_host"})
        await room.broadcast({
            "type": "player_left",
            "playerId": player.id,
            "roomState": room.get_room_state(),
        })


socket_manager = SocketManager()
