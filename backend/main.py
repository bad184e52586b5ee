"""Agile Poker: planning poker room server"""

from fastapi import FastAPI, WebSocket, status
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

import config
config.setup_logging()

from socket_manager import socket_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Agile Poker backend (%s)", config.APP_ENV)
    socket_manager.start_cleanup_loop()
    yield
    socket_manager.stop_cleanup_loop()
    logger.info("Shutting down Agile Poker backend")


app = FastAPI(title="Agile Poker API", lifespan=lifespan)


def is_origin_allowed(origin: str) -> bool:
    if not config.is_production():
        return True
    return bool(origin) and origin in config.allowed_origins()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    origin = websocket.headers.get("origin", "")
    if not is_origin_allowed(origin):
        logger.warning("Connection rejected from origin: %s", origin or "<none>")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await socket_manager.connect(websocket)


# --- CORS ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)


@app.get("/")
async def root():
    return {"message": "Agile Poker API is running"}


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "rooms": len(socket_manager.rooms),
        "sessions": len(socket_manager.sessions),
    }


if __name__ == "__main__":
    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=not config.is_production())
