"""Alert service — persist alerts, then hand them to kiosk dispatch.

Learn: The order matters: commit first, dispatch second. An alert that
failed to save is never broadcast, and a broadcast that goes nowhere
(relay down, no kiosks) never undoes a saved alert.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from expoalerts.db.models import Alert
from expoalerts.realtime.dispatch import AlertDispatcher

logger = structlog.get_logger()


class AlertNotFoundError(Exception):
    """Raised when an alert is not found."""


class AlertPersistenceError(Exception):
    """Raised when the database rejects an alert insert."""


class AlertService:
    """Create and read alerts."""

    def __init__(self, db: AsyncSession, dispatcher: Optional[AlertDispatcher] = None):
        self.db = db
        self.dispatcher = dispatcher

    async def create_alert(
        self,
        *,
        alert: str,
        sent_by: str,
        sent_at: Optional[datetime] = None,
    ) -> Alert:
        """Persist an alert and dispatch it to the kiosks."""
        row = Alert(
            alert=alert.strip(),
            sent_by=sent_by,
            sent_at=sent_at or datetime.now(timezone.utc),
        )
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("alert.insert_failed", error=str(e))
            raise AlertPersistenceError("Database error while inserting alert") from e

        logger.info("alert.created", alert_id=row.id, sent_by=row.sent_by)

        if self.dispatcher is not None:
            self.dispatcher.dispatch(row)
        return row

    async def list_alerts(self) -> list[Alert]:
        """All alerts, oldest first."""
        result = await self.db.execute(select(Alert).order_by(Alert.id))
        return list(result.scalars().all())

    async def get_alert(self, alert_id: int) -> Alert:
        alert = await self.db.get(Alert, alert_id)
        if alert is None:
            raise AlertNotFoundError(f"Alert {alert_id} not found")
        return alert
