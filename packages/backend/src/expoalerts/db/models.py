"""SQLAlchemy ORM models.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
The alerts table keeps the column names the rest of the platform already
queries (alert_id, alert, sent_by, sent_at).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Alert(Base):
    """An alert broadcast to kiosk displays.

    Learn: Rows are never updated after insert; the broadcast subsystem
    only reads them to build the wire payload.
    """

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(
        "alert_id", Integer, primary_key=True, autoincrement=True
    )
    alert: Mapped[str] = mapped_column(Text, nullable=False)
    sent_by: Mapped[str] = mapped_column(String(100), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<Alert id={self.id} sent_by={self.sent_by!r}>"
