"""Room entity and its voting state machine."""

from fastapi import WebSocket
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import asyncio
import logging
import time

import config
from errors import AuthorizationError, ValidationError
from validation import is_valid_card

logger = logging.getLogger(__name__)

WAITING = "waiting"
VOTING = "voting"
REVEALED = "revealed"


def _tie_rank(card: str) -> float:
    return int(card) if card.isascii() and card.isdigit() else float("inf")


@dataclass
class Player:
    id: str
    name: str
    room_code: str
    session_token: str
    is_host: bool = False
    selected_card: Optional[str] = None

    def to_public(self, include_card: bool) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "isHost": self.is_host,
            "hasSelected": self.selected_card is not None,
            "card": self.selected_card if include_card else None,
        }


class Room:
    def __init__(self, code: str):
        self.code = code
        self.state = WAITING
        self.players: Dict[str, Player] = {}  # connection_id -> Player, join order
        self.connections: Dict[str, WebSocket] = {}
        self.created_at = time.time()

    def __len__(self) -> int:
        return len(self.players)

    def is_empty(self) -> bool:
        return not self.players

    @property
    def host(self) -> Optional[Player]:
        for player in self.players.values():
            if player.is_host:
                return player
        return None

    def add_player(self, connection_id: str, player: Player,
                   websocket: Optional[WebSocket] = None):
        self.players[connection_id] = player
        if websocket is not None:
            self.connections[connection_id] = websocket

    def remove_player(self, connection_id: str) -> Tuple[Optional[Player], Optional[str]]:
        """Drop a member. Returns (removed player, connection id of the new host).

        The new host is the earliest-joined remaining member and is only
        set when the departing player held the host role.
        """
        self.connections.pop(connection_id, None)
        player = self.players.pop(connection_id, None)
        if player is None:
            return None, None
        new_host_id = None
        if player.is_host and self.players:
            new_host_id, new_host = next(iter(self.players.items()))
            new_host.is_host = True
            logger.info("Host of room %s passed from '%s' to '%s'",
                        self.code, player.name, new_host.name)
        return player, new_host_id

    # --- Round lifecycle (host only) ---

    def _require_host(self, player: Player):
        if not player.is_host:
            raise AuthorizationError("Only the host can do that")

    def _clear_cards(self):
        for p in self.players.values():
            p.selected_card = None

    def start_round(self, player: Player):
        self._require_host(player)
        self._clear_cards()
        self.state = VOTING

    def select_card(self, player: Player, card):
        if self.state != VOTING:
            raise ValidationError("Voting is not open")
        if not is_valid_card(card):
            raise ValidationError("Invalid card value")
        player.selected_card = card

    def reveal_cards(self, player: Player) -> List[dict]:
        self._require_host(player)
        self.state = REVEALED
        return [{"id": p.id, "name": p.name, "card": p.selected_card}
                for p in self.players.values()]

    def reset_round(self, player: Player):
        self._require_host(player)
        self._clear_cards()
        self.state = WAITING

    def close_reveal(self, player: Player):
        self._require_host(player)

    def consensus_card(self) -> Optional[str]:
        """Most common numeric card.

        Ties go to the lowest integer card; "½" ranks after every integer card.
        """
        tally = Counter(
            p.selected_card for p in self.players.values()
            if p.selected_card is not None and p.selected_card not in config.NON_NUMERIC_CARDS
        )
        if not tally:
            return None
        ranked = sorted(tally.items(), key=lambda item: (-item[1], _tie_rank(item[0])))
        return ranked[0][0]

    def get_room_state(self, include_votes: bool = False) -> dict:
        show_cards = include_votes or self.state == REVEALED
        return {
            "roomCode": self.code,
            "state": self.state,
            "players": [p.to_public(show_cards) for p in self.players.values()],
            "cardValues": list(config.CARD_VALUES),
        }

    # --- Delivery ---

    async def _send(self, connection_id: str, websocket: WebSocket, message: dict):
        try:
            await websocket.send_json(message)
        except Exception:
            logger.debug("Dropped message to %s in room %s", connection_id, self.code)

    async def broadcast(self, message: dict, exclude: Optional[str] = None):
        targets = [(cid, ws) for cid, ws in self.connections.items() if cid != exclude]
        await asyncio.gather(*(self._send(cid, ws, message) for cid, ws in targets))

    async def send_to(self, connection_id: str, message: dict):
        ws = self.connections.get(connection_id)
        if ws is not None:
            await self._send(connection_id, ws, message)
