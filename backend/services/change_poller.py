"""
Guardian Realtime - Change Poller

One tick:
  1. stop the timer if nobody listens anymore
  2. query every source concurrently for changes after the cursor
  3. one RealtimeEvent per record, stamped with the tick start time
  4. broadcast in source order
  5. cursor = tick start time (never the time after the queries)
  6. on any query failure: log, broadcast nothing, keep the cursor

Delivery is at-least-once: a failed tick retries the same window.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from config import utcnow
from models.realtime import RealtimeEvent
from services.broadcaster import Broadcaster

logger = logging.getLogger("realtime.poller")


class ChangePoller:

    def __init__(
        self,
        sources: list,
        broadcaster: Broadcaster,
        clock: Optional[Callable[[], datetime]] = None,
        should_continue: Optional[Callable[[], bool]] = None,
        on_idle: Optional[Callable[[], None]] = None,
    ):
        self.sources = list(sources)
        self.broadcaster = broadcaster
        self.clock = clock or utcnow
        self.cursor: datetime = self.clock()

        # Answered by the lifecycle controller, not read from the registry
        self.should_continue = should_continue or (lambda: True)
        self.on_idle = on_idle

        # Introspection (status endpoint)
        self.ticks = 0
        self.failed_ticks = 0
        self.last_tick_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    def catch_up_cursor(self) -> None:
        """Bring the cursor to now without ever moving it backwards"""
        self.cursor = max(self.cursor, self.clock())

    async def tick(self) -> int:
        """Timer callback. Turns the timer off instead of polling for nobody."""
        if not self.should_continue():
            logger.info("No subscriber left, poller stopping itself")
            if self.on_idle:
                self.on_idle()
            return 0
        return await self.poll_once()

    async def poll_once(self) -> int:
        """Query, broadcast, advance. Returns the number of events broadcast."""
        started_at = self.clock()
        since = self.cursor

        results = await asyncio.gather(
            *(source.fetch_changes(since) for source in self.sources),
            return_exceptions=True,
        )

        errors = [
            (source, result) for source, result in zip(self.sources, results)
            if isinstance(result, BaseException)
        ]
        if errors:
            for source, error in errors:
                logger.error(f"Poll error on {source.kind.value}: {str(error)}")
            self.failed_ticks += 1
            self.last_error = str(errors[0][1])[:200]
            return 0

        events: List[RealtimeEvent] = []
        for source, records in zip(self.sources, results):
            for record in records:
                events.append(RealtimeEvent(kind=source.kind, payload=record, timestamp=started_at))

        for event in events:
            self.broadcaster.broadcast(event)

        self.cursor = max(self.cursor, started_at)
        self.ticks += 1
        self.last_tick_at = started_at
        self.last_error = None

        if events:
            logger.info(f"Tick: {len(events)} event(s) broadcast to {self.broadcaster.registry.size()} client(s)")
        return len(events)
