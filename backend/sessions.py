"""Reconnection session tokens with time-based expiry."""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import config

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    player_id: str
    room_code: str
    name: str
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.time()
        return now - self.created_at > config.SESSION_TTL_SECONDS


class SessionRegistry:
    """Maps opaque tokens to the player identity they were issued for.

    Entries outlive the socket that created them and are only removed by
    :meth:`sweep` once their TTL has passed.
    """

    def __init__(self):
        self._entries: Dict[str, SessionEntry] = {}
        self._sweep_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: str) -> bool:
        return token in self._entries

    def issue(self, player_id: str, room_code: str, name: str) -> str:
        token = secrets.token_urlsafe(32)
        self._entries[token] = SessionEntry(player_id, room_code, name)
        return token

    def sweep(self, now: Optional[float] = None) -> int:
        if now is None:
            now = time.time()
        expired = [token for token, entry in self._entries.items() if entry.is_expired(now)]
        for token in expired:
            del self._entries[token]
        return len(expired)

    def clear(self):
        self._entries.clear()

    def start_sweep_loop(self):
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_expired_sessions())

    def stop_sweep_loop(self):
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            self._sweep_task = None

    async def _sweep_expired_sessions(self):
        while True:
            try:
                await asyncio.sleep(config.SESSION_SWEEP_INTERVAL_SECONDS)
                removed = self.sweep()
                if removed:
                    logger.info("Swept %d expired session(s), %d remaining", removed, len(self))
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in session sweep loop")
