from fastapi import APIRouter

from guardit.api.alerts import router as alerts_router
from guardit.api.events import router as events_router
from guardit.api.grafana import router as grafana_router
from guardit.api.history import router as history_router
from guardit.api.status import router as status_router

api_router = APIRouter()

# Live stream at /events
api_router.include_router(events_router, tags=["events"])

# API routes at /api/*
api_router.include_router(status_router, prefix="/api", tags=["status"])
api_router.include_router(history_router, prefix="/api", tags=["history"])
api_router.include_router(alerts_router, prefix="/api", tags=["alerts"])

# Grafana JSON datasource at /grafana/*
api_router.include_router(grafana_router, prefix="/grafana", tags=["grafana"])
