"""Kiosk link — the alert service's single managed WebSocket to the relay.

Learn: The link is a tiny state machine driven by transport events:

    connecting ──handshake ok──▶ open
        ▲                          │
        │ (after 3s)               │ close / handshake failure
        └───────── closed ◀────────┘

Every entry into `closed` schedules exactly one reconnect after a fixed
delay. There is no retry limit and no exponential backoff, so a long relay
outage produces one failed attempt (and one log line pair) every few seconds.

Delivery is fire-and-forget: `send()` only writes while the link is open.
A payload offered while connecting or closed is dropped with a warning,
never queued, never replayed after reconnect.
"""

import asyncio
import enum
from typing import Any, Callable, Optional

import structlog
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from expoalerts.realtime.payload import encode_payload

logger = structlog.get_logger()

# Errors that end a connection attempt; anything else is a bug and propagates.
TRANSPORT_ERRORS = (OSError, WebSocketException)


class LinkState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class KioskLink:
    """Best-effort live link from the alert producer to the kiosk relay.

    Learn: One instance per process, created at startup and handed to
    whoever needs to send (the AlertDispatcher). The socket is owned here
    and never leaves this object.
    """

    def __init__(
        self,
        endpoint: str,
        reconnect_delay: float = 3.0,
        connector: Callable[..., Any] = connect,
    ):
        self.endpoint = endpoint
        self.reconnect_delay = reconnect_delay
        self.state = LinkState.CONNECTING
        self.attempts = 0
        self._connector = connector
        self._socket = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._sends: set[asyncio.Task] = set()
        self._closing = False

    # ─── Lifecycle ────────────────────────────────────────

    def initialize(self) -> None:
        """Start the first connection attempt without waiting for it.

        Must be called from inside the running event loop, once.
        """
        self._connect()

    async def close(self) -> None:
        """Shut the link down for good. No reconnect is scheduled."""
        self._closing = True
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        socket = self._socket
        if socket is not None:
            try:
                await socket.close()
            except TRANSPORT_ERRORS as e:
                logger.warning("kiosk_link.close_failed", error=str(e))

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._socket = None
        self.state = LinkState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state is LinkState.OPEN and self._socket is not None

    @property
    def reconnect_scheduled(self) -> bool:
        return self._reconnect_handle is not None

    # ─── Sending ──────────────────────────────────────────

    def send(self, payload: dict[str, Any] | str) -> bool:
        """Hand a payload to the transport if the link is open.

        Returns True when the write was scheduled, False when the payload
        was dropped because the link is not open. Never raises for
        transport reasons and never changes link state.
        """
        if not self.is_open:
            logger.warning(
                "kiosk_link.not_connected",
                endpoint=self.endpoint,
                state=self.state.value,
                payload=payload,
            )
            return False

        message = payload if isinstance(payload, str) else encode_payload(payload)
        task = asyncio.get_running_loop().create_task(
            self._transmit(self._socket, message)
        )
        self._sends.add(task)
        task.add_done_callback(self._sends.discard)
        return True

    async def _transmit(self, socket, message: str) -> None:
        # Writes start in the order send() was called (FIFO task scheduling).
        try:
            await socket.send(message)
        except TRANSPORT_ERRORS as e:
            logger.error("kiosk_link.send_failed", endpoint=self.endpoint, error=str(e))
            return
        logger.info("kiosk_link.sent", endpoint=self.endpoint, size=len(message))

    # ─── Connection state machine ─────────────────────────

    def _connect(self) -> None:
        self._reconnect_handle = None
        self.state = LinkState.CONNECTING
        self.attempts += 1
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        """One connection lifetime: handshake, read until closed, then reschedule."""
        try:
            # No handshake timeout: a hung open delays the next attempt indefinitely.
            socket = await self._connector(self.endpoint, open_timeout=None)
        except TRANSPORT_ERRORS as e:
            logger.error(
                "kiosk_link.error",
                endpoint=self.endpoint,
                attempt=self.attempts,
                error=str(e),
            )
            self._handle_close()
            return

        self._socket = socket
        self.state = LinkState.OPEN
        logger.info("kiosk_link.connected", endpoint=self.endpoint, attempt=self.attempts)

        try:
            async for message in socket:
                logger.info("kiosk_link.message", endpoint=self.endpoint, message=message)
        except ConnectionClosed as e:
            logger.error("kiosk_link.error", endpoint=self.endpoint, error=str(e))
        finally:
            self._handle_close()

    def _handle_close(self) -> None:
        self._socket = None
        self.state = LinkState.CLOSED
        if self._closing:
            return
        logger.info(
            "kiosk_link.disconnected",
            endpoint=self.endpoint,
            retry_in=self.reconnect_delay,
        )
        self._reconnect_handle = asyncio.get_running_loop().call_later(
            self.reconnect_delay, self._connect
        )
