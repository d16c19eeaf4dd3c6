"""API route aggregation.

All routers registered here get mounted in main.py. Caller authentication
happens at the gateway; the alerts router only reads the bearer token to
attribute alerts.
"""

from fastapi import APIRouter

from expoalerts.api.alerts import router as alerts_router
from expoalerts.api.health import router as health_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(alerts_router, tags=["alerts"])
