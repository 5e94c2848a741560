"""Periodic driver for the quota monitor."""

import asyncio
from typing import Optional

from config import MonitorConfig
from models import RefreshTrigger
from utils import create_contextual_logger, log_exception
from .quota_monitor import QuotaMonitor


class RefreshScheduler:
    """Ticks at display granularity and starts refreshes when they are due.

    Refreshes run as their own tasks, so a slow probe never holds up the
    countdown ticks.
    """

    def __init__(self, config: MonitorConfig, monitor: QuotaMonitor) -> None:
        self.config = config
        self.monitor = monitor
        self.logger = create_contextual_logger(__name__, service="refresh_scheduler")

        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._refresh_task: Optional[asyncio.Task[bool]] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the tick loop."""
        if self._running:
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._tick_loop())
        self.logger.info(
            "Refresh scheduler started",
            refresh_interval=self.config.refresh_interval,
            display_tick_interval=self.config.display_tick_interval,
        )

    async def stop(self) -> None:
        """Stop ticking and wait for an in-flight refresh to finish."""
        if not self._running:
            return

        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        # In-flight refreshes are not cancelled
        if self._refresh_task is not None and not self._refresh_task.done():
            self.logger.info("Waiting for in-flight refresh to finish")
            await asyncio.gather(self._refresh_task, return_exceptions=True)
        self._refresh_task = None

        self.logger.info("Refresh scheduler stopped")

    async def tick(self) -> bool:
        """Handle one tick; returns True when a refresh was started."""
        if self.monitor.is_due() and not self.monitor.is_refreshing:
            self._refresh_task = asyncio.create_task(self.monitor.refresh(RefreshTrigger.SCHEDULED))
            return True

        self.monitor.notify_listeners()
        return False

    async def manual_refresh(self) -> bool:
        """Refresh now regardless of the deadline; a no-op while one is in flight."""
        return await self.monitor.refresh(RefreshTrigger.MANUAL)

    async def _tick_loop(self) -> None:
        assert self._stop_event is not None
        while self._running:
            try:
                await self.tick()
            except Exception as e:
                log_exception(self.logger, e, "Scheduler tick failed", level="warning")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.config.display_tick_interval)
            except asyncio.TimeoutError:
                pass
