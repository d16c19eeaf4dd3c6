"""Expo Alerts CLI — run the kiosk relay, simulate kiosks, raise alerts.

Usage:
    expoalerts relay                             # Run the kiosk relay (ws://0.0.0.0:5010/ws)
    expoalerts kiosk Kiosk-7                     # Simulated kiosk display
    expoalerts kiosk Lobby ws://relay:5010/ws    # ...against another relay
    expoalerts send "Fire drill at 10:00"        # Raise an alert via the API
    expoalerts kiosks                            # Who is connected to the relay
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

import click
import httpx
import structlog
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from expoalerts import __version__
from expoalerts.config import settings

logger = structlog.get_logger()

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_RELAY_URL = f"ws://localhost:{settings.relay_port}{settings.relay_path}"


def _api_url() -> str:
    return os.environ.get("EXPOALERTS_API_URL", settings.api_url).rstrip("/")


def _relay_http_url() -> str:
    return f"http://localhost:{settings.relay_port}"


def _client(base_url: str) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at an Expo Alerts process."""
    return httpx.AsyncClient(base_url=base_url, timeout=10.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _kiosk_url(url: str, kiosk_id: str) -> str:
    """Append ?id=<kiosk_id> unless the URL already carries a query."""
    parts = urlsplit(url)
    if parts.query:
        return url
    return urlunsplit(parts._replace(query=urlencode({"id": kiosk_id})))


def render_alert(kiosk_id: str, frame: str | bytes) -> list[str]:
    """Turn an alert frame into the lines a kiosk display shows.

    Raises ValueError if the frame is not a JSON alert object.
    """
    alert = json.loads(frame)
    if not isinstance(alert, dict):
        raise ValueError("alert frame is not a JSON object")
    return [
        "=" * 30,
        f"[{kiosk_id}]",
        "New Alert Received!",
        f"Message: {alert.get('alert', '—')}",
        f"Time: {alert.get('sentAt', '—')}",
        "=" * 30,
    ]


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="expoalerts")
def main():
    """Expo Alerts — kiosk relay, kiosk simulator and alert tools."""


# ---------------------------------------------------------------------------
# expoalerts relay
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=settings.relay_host, show_default=True)
@click.option("--port", default=settings.relay_port, show_default=True, type=int)
def relay(host: str, port: int):
    """Run the kiosk relay server."""
    import uvicorn

    from expoalerts.log import configure_logging
    from expoalerts.realtime.websocket import create_relay_app

    configure_logging()
    click.secho(
        f"Kiosk relay running at ws://{host}:{port}{settings.relay_path}",
        fg="green",
    )
    uvicorn.run(create_relay_app(), host=host, port=port, log_config=None)


# ---------------------------------------------------------------------------
# expoalerts kiosk
# ---------------------------------------------------------------------------


@main.command()
@click.argument("kiosk_id", default="Kiosk-1")
@click.argument("url", default=DEFAULT_RELAY_URL)
def kiosk(kiosk_id: str, url: str):
    """Simulate a kiosk display: print every alert the relay pushes."""
    from expoalerts.log import configure_logging

    configure_logging()
    try:
        asyncio.run(_kiosk_impl(kiosk_id, url))
    except KeyboardInterrupt:
        pass


async def _kiosk_impl(kiosk_id: str, url: str):
    target = _kiosk_url(url, kiosk_id)
    try:
        ws = await connect(target)
    except (OSError, InvalidHandshake, InvalidURI) as e:
        logger.error("kiosk.connection_error", kiosk_id=kiosk_id, url=target, error=str(e))
        sys.exit(1)

    click.secho(f"[{kiosk_id}] Connected to {url}", fg="green")
    try:
        async for frame in ws:
            try:
                lines = render_alert(kiosk_id, frame)
            except ValueError as e:
                # Keep listening; one bad frame is not a reason to drop off.
                logger.error("kiosk.malformed_alert", kiosk_id=kiosk_id, error=str(e))
                continue
            click.echo()
            for line in lines:
                click.secho(line, fg="red" if line.startswith("New Alert") else None)
            click.echo()
    except ConnectionClosed as e:
        logger.error("kiosk.connection_error", kiosk_id=kiosk_id, error=str(e))
    finally:
        click.secho(f"[{kiosk_id}] Disconnected", fg="yellow")


# ---------------------------------------------------------------------------
# expoalerts send
# ---------------------------------------------------------------------------


@main.command()
@click.argument("message")
@click.option("--token", envvar="EXPOALERTS_TOKEN", required=True,
              help="Bearer token (or set EXPOALERTS_TOKEN)")
@click.option("--sent-at", help="ISO-8601 timestamp (defaults to now)")
def send(message: str, token: str, sent_at: Optional[str]):
    """Raise an alert through the alert service."""
    asyncio.run(_send_impl(message, token, sent_at))


async def _send_impl(message: str, token: str, sent_at: Optional[str]):
    body: dict = {"alert": message}
    if sent_at:
        body["sent_at"] = sent_at

    async with _client(_api_url()) as c:
        r = await c.post(
            "/api/v1/alerts",
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )
    if r.status_code != 201:
        click.secho(f"Alert rejected ({r.status_code}): {r.text}", fg="red", err=True)
        sys.exit(1)

    data = r.json()["data"]
    click.secho(f"Alert #{data['id']} created by {data['sent_by']}", fg="green")


# ---------------------------------------------------------------------------
# expoalerts kiosks
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def kiosks(as_json: bool):
    """List kiosks currently connected to the relay."""
    asyncio.run(_kiosks_impl(as_json))


async def _kiosks_impl(as_json: bool):
    async with _client(_relay_http_url()) as c:
        r = await c.get("/kiosks")
        r.raise_for_status()
        members = r.json()

    if as_json:
        click.echo(_pretty_json(members))
        return
    if not members:
        click.echo("No kiosks connected.")
        return

    click.secho(f"Kiosks ({len(members)}):", bold=True)
    for m in members:
        state = click.style("open" if m["open"] else "closing", fg="green" if m["open"] else "yellow")
        click.echo(f"  {m['kiosk_id']:20s}  {state}  since {m['connected_at']}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
