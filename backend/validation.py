"""Input hardening: name/room-code/card validation and per-connection rate limiting."""

import re
import time
from typing import Any, Dict, List, Optional

import config

_TAG_RE = re.compile(r"<[^>]*>")
_UNSAFE_CHARS_RE = re.compile(r"[<>\"'`&;()\[\]{}]")
_ROOM_CODE_RE = re.compile(r"[A-Z0-9]{%d}" % config.ROOM_CODE_LENGTH)


def sanitize_name(raw: Any) -> Optional[str]:
    """Return a display-safe name, or None when nothing usable is left."""
    if not raw or not isinstance(raw, str):
        return None
    name = raw.strip()
    name = _TAG_RE.sub("", name)
    name = _UNSAFE_CHARS_RE.sub("", name)
    name = name[:config.MAX_NAME_LENGTH]
    return name if name else None


def is_valid_card(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value in config.CARD_VALUES)


def is_valid_room_code(code: Any) -> bool:
    if not code or not isinstance(code, str):
        return False
    return _ROOM_CODE_RE.fullmatch(code.upper()) is not None


class RateLimiter:
    """Sliding-window limiter keyed by connection id.

    A message is accepted while fewer than ``max_messages`` accepted
    messages fall within the trailing ``window`` seconds. Rejected
    messages are not recorded.
    """

    def __init__(self, max_messages: int = config.RATE_LIMIT_MAX_MESSAGES,
                 window: float = config.RATE_LIMIT_WINDOW_SECONDS):
        self.max_messages = max_messages
        self.window = window
        self._timestamps: Dict[str, List[float]] = {}

    def allow(self, key: str, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.monotonic()
        timestamps = self._timestamps.setdefault(key, [])
        timestamps[:] = [t for t in timestamps if now - t < self.window]
        if len(timestamps) >= self.max_messages:
            return False
        timestamps.append(now)
        return True

    def forget(self, key: str):
        self._timestamps.pop(key, None)

    def clear(self):
        self._timestamps.clear()
