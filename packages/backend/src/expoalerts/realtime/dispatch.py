"""Alert dispatch — hands persisted alerts to the kiosk link.

Learn: Persisting an alert and showing it on kiosks are independent
outcomes. The HTTP handler commits first, then calls dispatch(); whatever
happens on the kiosk side is logged here and never reaches the caller.
"""

from typing import Any

import structlog

from expoalerts.realtime.link import KioskLink
from expoalerts.realtime.payload import alert_payload

logger = structlog.get_logger()


class AlertDispatcher:
    """The single integration point between the alert service and the link."""

    def __init__(self, link: KioskLink):
        self.link = link

    def dispatch(self, alert: Any) -> bool:
        """Send a persisted alert to the relay. Never raises.

        Returns True when the alert was handed to the transport.
        """
        try:
            payload = alert_payload(alert)
            return self.link.send(payload)
        except Exception:
            logger.exception("alert_dispatch.failed", alert_id=getattr(alert, "id", None))
            return False
