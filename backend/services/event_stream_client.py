"""
Guardian Realtime - Event stream consumer

httpx client for GET /api/events:
- `data:` frames parsed into {"type", "data", "timestamp"} dicts
- heartbeats only refresh `last_heartbeat`; every other event goes to on_event
- no line for `silence_timeout` seconds = dead connection, reconnect
- reconnect with exponential backoff + jitter, give up after MAX_RECONNECT_ATTEMPTS
"""

import asyncio
import json
import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import httpx

from config import SSE_HEARTBEAT_INTERVAL_SECONDS, utcnow

logger = logging.getLogger("realtime.client")

MAX_RECONNECT_ATTEMPTS = 10
BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 30.0


class EventStreamError(Exception):
    """Raised when the client gives up reconnecting"""
    pass


def calculate_backoff(attempt: int, jitter: Optional[float] = None) -> float:
    """min(base * 2^attempt + jitter, max), jitter in [0, 1s)"""
    if jitter is None:
        jitter = random.random()
    return min(BASE_DELAY_SECONDS * (2 ** attempt) + jitter, MAX_DELAY_SECONDS)


def parse_sse_line(line: str) -> Optional[Dict[str, Any]]:
    """Returns the event of a `data:` line, None for anything else"""
    if not line.startswith("data:"):
        return None
    raw = line[len("data:"):].strip()
    try:
        event = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse event: {str(e)}")
        return None
    if not isinstance(event, dict) or "type" not in event:
        return None
    return event


class EventStreamClient:

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        on_event: Optional[Callable[[Dict[str, Any]], Any]] = None,
        silence_timeout: float = SSE_HEARTBEAT_INTERVAL_SECONDS * 2,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep=asyncio.sleep,
    ):
        self.url = url
        self.token = token
        self.on_event = on_event
        self.silence_timeout = silence_timeout
        self.max_attempts = max_attempts
        self._http = http_client
        self._sleep = sleep
        self._stopped = False

        # connecting | connected | disconnected | error
        self.status = "disconnected"
        self.last_heartbeat: Optional[datetime] = None
        self.reconnect_attempt = 0
        self.error: Optional[str] = None
        self.events_received = 0

    def stop(self) -> None:
        self._stopped = True

    async def run(self) -> None:
        """Consume the stream until stop() or until reconnection gives up"""
        self._stopped = False
        owns_client = self._http is None
        http = self._http or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))

        try:
            while not self._stopped:
                try:
                    await self._consume(http)
                except httpx.HTTPError as e:
                    self.error = str(e)
                    logger.warning(f"Connection error: {str(e)}")

                if self._stopped:
                    break

                self.reconnect_attempt += 1
                if self.reconnect_attempt > self.max_attempts:
                    self.status = "error"
                    self.error = "Max reconnection attempts reached"
                    raise EventStreamError(self.error)

                delay = calculate_backoff(self.reconnect_attempt)
                self.status = "disconnected"
                logger.warning(f"Reconnecting in {delay:.1f}s (attempt {self.reconnect_attempt})")
                await self._sleep(delay)
        finally:
            if owns_client:
                await http.aclose()
            if self.status != "error":
                self.status = "disconnected"

    async def _consume(self, http: httpx.AsyncClient) -> None:
        self.status = "connecting"
        headers = {"Accept": "text/event-stream"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        async with http.stream("GET", self.url, headers=headers) as response:
            response.raise_for_status()

            self.status = "connected"
            self.reconnect_attempt = 0
            self.error = None
            self.last_heartbeat = utcnow()
            logger.info(f"Connection opened: {self.url}")

            lines = response.aiter_lines()
            while not self._stopped:
                try:
                    line = await asyncio.wait_for(lines.__anext__(), timeout=self.silence_timeout)
                except StopAsyncIteration:
                    logger.info("Stream closed by server")
                    return
                except asyncio.TimeoutError:
                    logger.warning(f"No data for {self.silence_timeout}s, connection considered dead")
                    return

                event = parse_sse_line(line)
                if event is not None:
                    await self._dispatch(event)

    async def _dispatch(self, event: Dict[str, Any]) -> None:
        if event.get("type") == "heartbeat":
            self.last_heartbeat = utcnow()
            return

        self.events_received += 1
        if self.on_event is None:
            return
        try:
            result = self.on_event(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            # A handler bug never costs the connection
            logger.error(f"Event handler failed ({event.get('type')}): {str(e)}")
