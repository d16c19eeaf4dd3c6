"""Real-time infrastructure — kiosk link, relay and alert dispatch.

Learn: Alerts flow through three pieces:
1. AlertDispatcher — called by the alert service after each insert
2. KioskLink — the service's single managed socket to the relay
3. KioskRelay — fans each alert out to every open kiosk display

Delivery is best effort end to end: nothing is queued or replayed.
"""

from expoalerts.realtime.dispatch import AlertDispatcher
from expoalerts.realtime.link import KioskLink, LinkState
from expoalerts.realtime.relay import KioskConnection, KioskRelay

__all__ = [
    "AlertDispatcher",
    "KioskConnection",
    "KioskLink",
    "KioskRelay",
    "LinkState",
]
