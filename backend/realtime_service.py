"""
Guardian Intel realtime service (SSE)
- Registry of connected clients
- One shared poll (APScheduler), started on the first client, stopped on the last
- Changes (storm, intel, customer) broadcast to every client
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import db, SSE_POLL_INTERVAL_SECONDS, to_iso
from models.realtime import connected_event
from services.broadcaster import Broadcaster
from services.change_poller import ChangePoller
from services.change_sources import mongo_sources
from services.subscriber_registry import SubscriberRegistry

logger = logging.getLogger("realtime")

POLL_JOB_ID = "realtime_poll"


class RealtimeService:
    """
    Owns every piece of shared realtime state: registry, poll cursor and the
    poll job handle. Idle (no job) <-> Active (one job).
    """

    def __init__(
        self,
        sources: Optional[list] = None,
        poll_interval: float = SSE_POLL_INTERVAL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.poll_interval = poll_interval
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self.registry = SubscriberRegistry()
        self.broadcaster = Broadcaster(self.registry)
        self.poller = ChangePoller(
            sources if sources is not None else mongo_sources(db),
            self.broadcaster,
            clock=clock,
            should_continue=self.should_continue,
            on_idle=self.stop_polling,
        )
        # Lifecycle flag: at most one poll job per process
        self._poll_job = None

        self.registry.bind(
            on_added=self._on_subscriber_added,
            on_removed=self._on_subscriber_removed,
        )

    # ==================== CONNECTIONS ====================

    def connect(self, channel) -> None:
        """Register a client and greet it, before any tick can reach it"""
        self.registry.add(channel)
        greeting = connected_event(self.registry.size(), timestamp=self.poller.clock())
        try:
            channel.send(greeting.to_sse())
        except Exception as e:
            logger.warning(f"Client dropped during handshake: {str(e)}")
            self.registry.remove(channel)
            return
        logger.info(f"Client connected. Active clients: {self.registry.size()}")

    def disconnect(self, channel) -> None:
        """Idempotent: also reached after the broadcaster pruned the channel"""
        was_registered = channel in self.registry
        self.registry.remove(channel)
        if was_registered:
            logger.info(f"Client disconnected. Active clients: {self.registry.size()}")

    # ==================== LIFECYCLE ====================

    @property
    def is_polling(self) -> bool:
        return self._poll_job is not None

    def should_continue(self) -> bool:
        return self.registry.size() > 0

    def _on_subscriber_added(self) -> None:
        if not self.is_polling:
            self.start_polling()

    def _on_subscriber_removed(self) -> None:
        if self.is_polling and not self.should_continue():
            self.stop_polling()

    def start_polling(self) -> None:
        if self._poll_job is not None:
            return

        # An idle period is not replayed
        self.poller.catch_up_cursor()

        if not self.scheduler.running:
            self.scheduler.start()

        self._poll_job = self.scheduler.add_job(
            self.poller.tick,
            IntervalTrigger(seconds=self.poll_interval),
            id=POLL_JOB_ID,
            name="Poll realtime changes",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Poller started (every {self.poll_interval}s)")

    def stop_polling(self) -> None:
        if self._poll_job is None:
            return
        job, self._poll_job = self._poll_job, None
        try:
            job.remove()
        except JobLookupError:
            logger.debug("Poll job already removed")
        logger.info("Poller stopped (no subscriber)")

    def shutdown(self) -> None:
        """Application shutdown: stop polling and end every open stream"""
        self.stop_polling()
        for channel in self.registry:
            channel.close()
            self.registry.remove(channel)
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Realtime scheduler stopped")

    # ==================== STATUS ====================

    def status(self) -> dict:
        return {
            "active": self.is_polling,
            "client_count": self.registry.size(),
            "poll_interval_seconds": self.poll_interval,
            "poll_cursor": to_iso(self.poller.cursor),
            "ticks": self.poller.ticks,
            "failed_ticks": self.poller.failed_ticks,
            "last_tick_at": to_iso(self.poller.last_tick_at),
            "last_error": self.poller.last_error,
        }


# Global instance
realtime_service = RealtimeService()
