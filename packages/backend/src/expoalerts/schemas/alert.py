"""Pydantic schemas for alerts.

Learn: These schemas define the HTTP API contract. The kiosk wire format
is deliberately separate (see expoalerts.realtime.payload). Kiosks get
camelCase keys, API clients get the snake_case column names.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ─── Create (organizer → platform) ──────────────────────


class AlertCreate(BaseModel):
    """Organizer raises an alert."""
    alert: str = Field(..., description="Alert message shown on kiosks")
    sent_at: Optional[datetime] = Field(
        None, description="When the alert was issued (defaults to now)"
    )

    @field_validator("alert")
    @classmethod
    def strip_and_require(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Alert message is required")
        return value


# ─── Read (platform → client) ───────────────────────────


class AlertRead(BaseModel):
    """A persisted alert."""
    id: int
    alert: str
    sent_by: str
    sent_at: datetime

    model_config = {"from_attributes": True}


class AlertCreated(BaseModel):
    """Response body for a successful create."""
    message: str = "Alert created successfully"
    data: AlertRead
