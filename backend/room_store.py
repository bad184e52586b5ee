"""Live room registry: code generation, creation, joining and deletion."""

from fastapi import WebSocket
from typing import Dict, Optional, Tuple
import logging
import random
import uuid

import config
from errors import CapacityError, NotFoundError, RoomFullError, ValidationError
from room import Player, Room
from sessions import SessionRegistry
from validation import sanitize_name

logger = logging.getLogger(__name__)

NAME_ERROR = f"Valid name is required (1-{config.MAX_NAME_LENGTH} characters)"


class RoomStore:
    def __init__(self, sessions: SessionRegistry):
        self.rooms: Dict[str, Room] = {}
        self.sessions = sessions

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, code: str) -> bool:
        return code in self.rooms

    def get(self, code: str) -> Optional[Room]:
        return self.rooms.get(code)

    def generate_code(self) -> str:
        for _ in range(config.MAX_ROOM_CODE_ATTEMPTS):
            code = "".join(random.choices(config.ROOM_CODE_ALPHABET, k=config.ROOM_CODE_LENGTH))
            if code not in self.rooms:
                return code
        raise CapacityError("Server is at capacity. Please try again later.")

    def _new_player(self, room: Room, raw_name, is_host: bool) -> Player:
        name = sanitize_name(raw_name)
        if name is None:
            raise ValidationError(NAME_ERROR)
        player_id = str(uuid.uuid4())
        token = self.sessions.issue(player_id, room.code, name)
        return Player(id=player_id, name=name, room_code=room.code,
                      session_token=token, is_host=is_host)

    def create(self, connection_id: str, name,
               websocket: Optional[WebSocket] = None) -> Tuple[Room, Player]:
        if len(self.rooms) >= config.MAX_ROOMS:
            raise CapacityError("Server is at capacity. Please try again later.")
        room = Room(self.generate_code())
        player = self._new_player(room, name, is_host=True)
        room.add_player(connection_id, player, websocket)
        self.rooms[room.code] = room
        logger.info("Room %s created by '%s'", room.code, player.name)
        return room, player

    def join(self, code: str, connection_id: str, name,
             websocket: Optional[WebSocket] = None) -> Tuple[Room, Player]:
        room = self.rooms.get(code)
        if room is None:
            raise NotFoundError("Room not found")
        if len(room) >= config.MAX_PLAYERS_PER_ROOM:
            raise RoomFullError("Room is full")
        player = self._new_player(room, name, is_host=False)
        room.add_player(connection_id, player, websocket)
        logger.info("'%s' joined room %s", player.name, code)
        return room, player

    def delete(self, code: str):
        if self.rooms.pop(code, None) is not None:
            logger.info("Room %s deleted - no players", code)

    def clear(self):
        self.rooms.clear()
