"""
Guardian Realtime - Routes Events (Server-Sent Events)

GET /api/events         - live stream: storm alerts, intel items, customer updates
GET /api/events/status  - poller / clients introspection
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from config import SSE_HEARTBEAT_INTERVAL_SECONDS
from models.realtime import heartbeat_event
from realtime_service import realtime_service, RealtimeService
from routes.auth import get_current_user
from services.subscriber_registry import SSEChannel

router = APIRouter(prefix="/events", tags=["Events"])
logger = logging.getLogger("realtime.events")

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


async def heartbeat_loop(channel, service: RealtimeService, interval: float) -> None:
    """Per-connection keep-alive, not routed through the broadcaster"""
    while True:
        await asyncio.sleep(interval)
        try:
            channel.send(heartbeat_event(service.registry.size()).to_sse())
        except Exception as e:
            logger.info(f"Heartbeat failed, dropping client: {str(e)}")
            service.disconnect(channel)
            return


async def event_stream(
    channel: SSEChannel,
    service: RealtimeService = realtime_service,
    heartbeat_interval: float = SSE_HEARTBEAT_INTERVAL_SECONDS,
):
    """Body of the SSE response; cleanup runs when the client aborts"""
    service.connect(channel)
    heartbeat = asyncio.create_task(heartbeat_loop(channel, service, heartbeat_interval))
    try:
        async for frame in channel.frames():
            yield frame
    finally:
        heartbeat.cancel()
        channel.close()
        service.disconnect(channel)


@router.get("")
async def stream_events(user: dict = Depends(get_current_user)):
    """Live feed (text/event-stream)"""
    channel = SSEChannel()
    return StreamingResponse(
        event_stream(channel),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/status")
async def events_status(user: dict = Depends(get_current_user)):
    """Poller state and connected client count"""
    return realtime_service.status()
