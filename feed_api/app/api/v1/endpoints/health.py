"""Liveness endpoint."""

from fastapi import APIRouter, Depends

from feed_api.app.api.deps import get_hub
from feed_api.app.realtime.hub import NotificationHub

router = APIRouter()


@router.get("/health")
async def health(hub: NotificationHub = Depends(get_hub)) -> dict:
    return {"status": "ok", "connections": hub.connection_count}
