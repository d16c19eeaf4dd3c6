"""Kiosk relay — in-memory membership of kiosk sockets and alert fan-out.

Learn: The relay owns every kiosk connection it accepts. Membership only
changes in the relay's own connect/close handlers; broadcast just reads a
snapshot. Everything runs on one event loop, so no lock is needed.

Two deliberate limitations:
- Fallback ids are `Kiosk-<members+1>` and can collide when kiosks
  connect and leave concurrently.
- A kiosk that is not open at broadcast time simply misses the alert.
  There is no per-kiosk queue.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import WebSocket
from starlette.websockets import WebSocketState

from expoalerts.realtime.payload import encode_payload

logger = structlog.get_logger()


@dataclass(eq=False)
class KioskConnection:
    """A connected kiosk display. Identity is the object itself."""

    kiosk_id: str
    websocket: WebSocket
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )


class KioskRelay:
    """Fan-out hub for kiosk displays."""

    def __init__(self):
        self._members: list[KioskConnection] = []

    @property
    def members(self) -> list[KioskConnection]:
        return list(self._members)

    def __len__(self) -> int:
        return len(self._members)

    async def accept(self, websocket: WebSocket) -> KioskConnection:
        """Register and accept an inbound kiosk connection.

        The display id comes from the `id` query parameter, else a
        sequential fallback based on the current membership size.
        """
        kiosk_id = websocket.query_params.get("id") or f"Kiosk-{len(self._members) + 1}"
        conn = KioskConnection(kiosk_id=kiosk_id, websocket=websocket)
        self._members.append(conn)
        try:
            await websocket.accept()
        except Exception:
            self._members = [m for m in self._members if m is not conn]
            raise
        logger.info("kiosk_relay.connected", kiosk_id=kiosk_id, kiosks=len(self._members))
        return conn

    def on_message(self, conn: KioskConnection, message: str | bytes | None) -> None:
        # Kiosks have nothing meaningful to say; keep it for the operator log.
        logger.info("kiosk_relay.kiosk_message", kiosk_id=conn.kiosk_id, message=message)

    def remove(self, conn: KioskConnection) -> None:
        """Drop exactly this connection from membership."""
        self._members = [m for m in self._members if m is not conn]
        logger.info("kiosk_relay.disconnected", kiosk_id=conn.kiosk_id, kiosks=len(self._members))

    async def broadcast(self, alert: Mapping[str, Any]) -> int:
        """Send one alert to every open kiosk. Returns how many were reached.

        Learn: The payload is serialized once so every kiosk gets the same
        text. Closed or half-open members are skipped, not removed. Only
        their close event takes them out of membership. A failing send is
        logged and the fan-out carries on.
        """
        message = encode_payload(alert)
        delivered = 0
        skipped = 0

        for conn in list(self._members):
            if not conn.is_open:
                skipped += 1
                continue
            try:
                await conn.websocket.send_text(message)
                delivered += 1
            except Exception as e:
                logger.error("kiosk_relay.send_failed", kiosk_id=conn.kiosk_id, error=str(e))

        logger.info(
            "kiosk_relay.broadcast",
            delivered=delivered,
            skipped=skipped,
            kiosks=len(self._members),
            alert=alert.get("alert"),
        )
        return delivered

    def describe(self) -> list[dict[str, Any]]:
        """Membership snapshot for monitoring."""
        return [
            {
                "kiosk_id": conn.kiosk_id,
                "connected_at": conn.connected_at.isoformat(),
                "open": conn.is_open,
            }
            for conn in self._members
        ]
