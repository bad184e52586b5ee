"""Centralized configuration, all env vars in one place."""
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# --- Server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))
APP_ENV = os.getenv("APP_ENV", "development").lower()
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "")

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
)

# --- Rate Limiting ---
RATE_LIMIT_WINDOW_SECONDS = 5
RATE_LIMIT_MAX_MESSAGES = 20  # per connection per window

# --- WebSocket Security ---
MAX_WS_MESSAGE_SIZE = 1024  # bytes

# --- Storage Limits ---
MAX_ROOMS = 1000
MAX_PLAYERS_PER_ROOM = 50

# --- Rooms ---
ROOM_CODE_LENGTH = 4
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no I, O, 0, 1
MAX_ROOM_CODE_ATTEMPTS = 100
MAX_NAME_LENGTH = 20

# --- Sessions ---
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "1800"))
SESSION_SWEEP_INTERVAL_SECONDS = 300

# --- Cards ---
CARD_VALUES = ("0", "½", "1", "2", "3", "5", "8", "13", "21", "?", "☕")
NON_NUMERIC_CARDS = ("?", "☕")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")


def is_production() -> bool:
    return APP_ENV == "production"


def allowed_origins() -> list[str]:
    if ALLOWED_ORIGINS.strip():
        return [o.strip() for o in ALLOWED_ORIGINS.split(",") if o.strip()]
    return list(DEFAULT_ALLOWED_ORIGINS)


def setup_logging():
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
