"""Alerts API — organizers raise alerts, kiosks display them.

Learn: Routes:
- POST /alerts → persist + dispatch to kiosks (201 even if no kiosk is reachable)
- GET /alerts → list all alerts
- GET /alerts/:id → one alert
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from expoalerts.auth.dependencies import get_sender
from expoalerts.db.engine import get_db
from expoalerts.realtime.dispatch import AlertDispatcher
from expoalerts.schemas.alert import AlertCreate, AlertCreated, AlertRead
from expoalerts.services.alert_service import (
    AlertNotFoundError,
    AlertPersistenceError,
    AlertService,
)

router = APIRouter()


def get_dispatcher(request: Request) -> AlertDispatcher | None:
    """The process-wide dispatcher built in the app lifespan (None if not started)."""
    return getattr(request.app.state, "alert_dispatcher", None)


def _get_service(
    db: AsyncSession = Depends(get_db),
    dispatcher: AlertDispatcher | None = Depends(get_dispatcher),
) -> AlertService:
    return AlertService(db=db, dispatcher=dispatcher)


@router.post("/alerts", response_model=AlertCreated, status_code=201)
async def create_alert(
    body: AlertCreate,
    sent_by: str = Depends(get_sender),
    svc: AlertService = Depends(_get_service),
):
    """Create an alert and push it to every connected kiosk."""
    try:
        alert = await svc.create_alert(
            alert=body.alert,
            sent_by=sent_by,
            sent_at=body.sent_at,
        )
    except AlertPersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return AlertCreated(data=AlertRead.model_validate(alert))


@router.get("/alerts", response_model=list[AlertRead])
async def list_alerts(svc: AlertService = Depends(_get_service)):
    """List all alerts."""
    return await svc.list_alerts()


@router.get("/alerts/{alert_id}", response_model=AlertRead)
async def get_alert(alert_id: int, svc: AlertService = Depends(_get_service)):
    """Get a specific alert by ID."""
    try:
        return await svc.get_alert(alert_id)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found")
