"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, the
database is reachable, and reports where the kiosk link currently is
in its connect/reconnect cycle. A closed link only degrades the status;
alerts are still accepted while kiosks are unreachable.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from expoalerts import __version__
from expoalerts.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    link = getattr(request.app.state, "kiosk_link", None)
    checks["kiosk_link"] = link.state.value if link is not None else "disabled"

    status = "healthy" if (
        checks["database"] == "ok" and checks["kiosk_link"] == "open"
    ) else "degraded"

    return {"status": status, **checks}
