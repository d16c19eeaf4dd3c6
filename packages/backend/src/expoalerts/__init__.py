"""Expo Alerts — alert service and kiosk broadcast for the exhibition platform.

Organizers raise alerts through the HTTP API; every persisted alert is pushed
over a managed WebSocket link to the kiosk relay, which fans it out to all
connected kiosk displays.
"""

__version__ = "0.1.0"
