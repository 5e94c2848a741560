"""Quota cache and refresh state machine.

``QuotaMonitor`` owns the last good snapshot and the refresh flags. Its
``_apply_outcome`` method is the only place that state changes after a
refresh; presentation adapters read it through ``get_snapshot_view``.
"""

import asyncio
import time
from concurrent.futures import Executor
from typing import Callable, List, Optional

from config import MonitorConfig
from models import (
    QuotaSnapshot,
    RefreshOutcome,
    RefreshResult,
    RefreshStatus,
    RefreshTrigger,
    SnapshotView,
)
from utils import create_contextual_logger, log_exception, set_correlation_id
from .refresh_metrics import records_cached, refresh_attempts, refresh_duration, refresh_outcomes
from .refresh_pipeline import RefreshPipeline

Listener = Callable[[SnapshotView], None]


class QuotaMonitor:
    """Single-instance holder of the refresh state."""

    def __init__(
        self,
        config: MonitorConfig,
        pipeline: RefreshPipeline,
        executor: Optional[Executor] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.pipeline = pipeline
        self.executor = executor
        self.logger = create_contextual_logger(__name__, service="quota_monitor")
        self._clock = clock

        self._snapshot = QuotaSnapshot()
        self._last_error = False
        self._last_attempt_failed = False
        self._refreshing = False
        initial_delay = 0.0 if config.refresh_on_start else config.refresh_interval
        self._next_deadline = clock() + initial_delay
        self._listeners: List[Listener] = []

    @property
    def cached_snapshot(self) -> QuotaSnapshot:
        return self._snapshot

    @property
    def last_error_flag(self) -> bool:
        """True only when no data was ever cached and the last attempt failed."""
        return self._last_error

    @property
    def last_attempt_failed(self) -> bool:
        return self._last_attempt_failed

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    @property
    def next_deadline(self) -> float:
        return self._next_deadline

    @property
    def status(self) -> RefreshStatus:
        if self._refreshing:
            return RefreshStatus.LOADING
        if not self._snapshot.is_empty:
            return RefreshStatus.STALE if self._last_attempt_failed else RefreshStatus.POPULATED
        if self._last_error:
            return RefreshStatus.ERROR
        return RefreshStatus.EMPTY

    def is_due(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now >= self._next_deadline

    async def refresh(self, trigger: RefreshTrigger = RefreshTrigger.SCHEDULED) -> bool:
        """Run the refresh pipeline once.

        Returns False without touching any state when a refresh is already in
        flight. The next deadline moves forward when the attempt starts, so a
        slow probe never pushes the following attempt back.
        """
        if self._refreshing:
            self.logger.debug("Refresh already in flight, ignoring trigger", trigger=trigger.value)
            return False

        self._refreshing = True
        started = time.monotonic()
        try:
            self._next_deadline = self._clock() + self.config.refresh_interval
            correlation_id = set_correlation_id()
            refresh_attempts.labels(trigger=trigger.value).inc()
            self.logger.debug("Refresh started", trigger=trigger.value)
            self.notify_listeners()

            outcome = await self._execute_pipeline(correlation_id)
            self._apply_outcome(outcome)
        finally:
            self._refreshing = False
            refresh_duration.observe(time.monotonic() - started)

        self.notify_listeners()
        return True

    async def _execute_pipeline(self, correlation_id: str) -> RefreshOutcome:
        """Run the blocking pipeline on the executor so the event loop keeps ticking."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self.executor, self.pipeline.run_refresh, correlation_id)
        except Exception as e:
            log_exception(self.logger, e, "Refresh execution failed", level="warning")
            return RefreshOutcome.failed()

    def _apply_outcome(self, outcome: RefreshOutcome) -> None:
        if outcome.has_records:
            self._snapshot = QuotaSnapshot.from_records(outcome.records)
            self._last_error = False
            self._last_attempt_failed = False
            refresh_outcomes.labels(result=RefreshResult.SUCCESS.value).inc()
        else:
            # Keep whatever was cached; blank data is worse than stale data
            self._last_attempt_failed = True
            if self._snapshot.is_empty:
                self._last_error = True
            result = RefreshResult.EMPTY if outcome.succeeded else RefreshResult.FAILED
            refresh_outcomes.labels(result=result.value).inc()

        records_cached.set(len(self._snapshot))
        self.logger.debug(
            "Refresh state updated",
            status=self.status.value,
            cached_records=len(self._snapshot),
            last_error=self._last_error,
        )

    def get_snapshot_view(self, now: Optional[float] = None) -> SnapshotView:
        """Build the render view from the current state."""
        now = self._clock() if now is None else now
        snapshot = self._snapshot
        return SnapshotView(
            records=snapshot.records,
            countdown_seconds=max(0, int(self._next_deadline - now)),
            is_loading=self._refreshing,
            is_error=self._last_error,
            status=self.status,
            fetched_at=snapshot.fetched_at,
        )

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        """Tell every adapter to re-render; adapter failures are only logged."""
        if not self._listeners:
            return
        view = self.get_snapshot_view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                log_exception(self.logger, e, "Snapshot listener failed", level="warning")
