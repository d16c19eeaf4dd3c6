"""Kiosk relay application — WebSocket endpoints for kiosks and producers.

Learn: Two socket paths share one listening port:
1. {relay_path}?id=Kiosk-7 — kiosk displays. Anything they send is logged.
2. {relay_ingest_path} — alert producers (the alert service's KioskLink).
   Each text frame is one JSON alert, broadcast to every open kiosk.

Splitting the paths keeps producers out of kiosk membership, so an alert
is never echoed back to the service that sent it.
"""

import json

import structlog
from fastapi import APIRouter, FastAPI, Request, WebSocket, WebSocketDisconnect

from expoalerts import __version__
from expoalerts.config import settings
from expoalerts.realtime.relay import KioskRelay

logger = structlog.get_logger()


def _relay(scope_holder) -> KioskRelay:
    return scope_holder.app.state.kiosk_relay


async def _receive_frame(websocket: WebSocket) -> str | bytes | None:
    """Next data frame, text or binary. Raises WebSocketDisconnect on close."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes")


def build_relay_router(
    kiosk_path: str = settings.relay_path,
    ingest_path: str = settings.relay_ingest_path,
) -> APIRouter:
    """Routes for the relay process."""
    router = APIRouter()

    @router.websocket(kiosk_path)
    async def kiosk_socket(websocket: WebSocket):
        """Kiosk display connection — receives every broadcast alert."""
        relay = _relay(websocket)
        conn = await relay.accept(websocket)
        try:
            while True:
                message = await _receive_frame(websocket)
                relay.on_message(conn, message)
        except WebSocketDisconnect:
            pass
        finally:
            relay.remove(conn)

    @router.websocket(ingest_path)
    async def ingest_socket(websocket: WebSocket):
        """Producer connection — each frame is an alert to fan out."""
        relay = _relay(websocket)
        await websocket.accept()
        client = websocket.client.host if websocket.client else "unknown"
        logger.info("kiosk_relay.producer_connected", client=client)
        try:
            while True:
                message = await _receive_frame(websocket)
                if not isinstance(message, str):
                    logger.error("kiosk_relay.malformed_alert", client=client, error="not a text frame")
                    continue
                try:
                    alert = json.loads(message)
                except json.JSONDecodeError as e:
                    logger.error("kiosk_relay.malformed_alert", client=client, error=str(e))
                    continue
                if not isinstance(alert, dict):
                    logger.error("kiosk_relay.malformed_alert", client=client, error="not an object")
                    continue
                await relay.broadcast(alert)
        except WebSocketDisconnect:
            logger.info("kiosk_relay.producer_disconnected", client=client)

    @router.get("/kiosks")
    async def list_kiosks(request: Request):
        """Current kiosk membership."""
        return _relay(request).describe()

    @router.get("/health")
    async def relay_health(request: Request):
        return {
            "status": "ok",
            "version": __version__,
            "kiosks": len(_relay(request)),
        }

    return router


def create_relay_app(relay: KioskRelay | None = None) -> FastAPI:
    """Build the relay application around a (possibly injected) KioskRelay."""
    app = FastAPI(
        title="Expo Alerts Kiosk Relay",
        description="Fans alerts out to connected kiosk displays",
        version=__version__,
    )
    app.state.kiosk_relay = relay or KioskRelay()
    app.include_router(build_relay_router())
    return app
