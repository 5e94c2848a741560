"""Unit tests for the quota cache and refresh state machine."""

import asyncio
import threading
from unittest.mock import Mock, patch

import pytest
from prometheus_client import REGISTRY

from models import QuotaRecord, RefreshOutcome, RefreshStatus, RefreshTrigger
from services import QuotaMonitor, RefreshPipeline

RECORD_A = QuotaRecord(label="Model A", remaining_fraction=0.15, reset_time="2024-01-01T10:00:00Z")
RECORD_B = QuotaRecord(label="Model B", remaining_fraction=0.8)


def success(*records: QuotaRecord) -> RefreshOutcome:
    return RefreshOutcome(records=records, succeeded=True)


class TestQuotaMonitor:
    """Test cases for QuotaMonitor class."""

    @pytest.fixture
    def pipeline(self) -> Mock:
        pipeline = Mock(spec=RefreshPipeline)
        pipeline.run_refresh.return_value = RefreshOutcome.failed()
        return pipeline

    @pytest.fixture
    def monitor(self, mock_config, pipeline, fake_clock) -> QuotaMonitor:
        return QuotaMonitor(mock_config, pipeline, clock=fake_clock)

    def test_initial_state(self, monitor, fake_clock) -> None:
        """Test the initial cache state."""
        view = monitor.get_snapshot_view()

        assert monitor.cached_snapshot.is_empty
        assert not monitor.last_error_flag
        assert not monitor.is_refreshing
        assert monitor.status == RefreshStatus.EMPTY
        assert view.records == ()
        assert not view.is_error
        assert not view.is_loading
        # refresh_on_start makes the first refresh due immediately
        assert monitor.is_due()
        assert view.countdown_seconds == 0

    def test_first_deadline_without_refresh_on_start(self, mock_config, pipeline, fake_clock) -> None:
        """Test the first deadline when start-up refresh is disabled."""
        config = mock_config.model_copy(update={"refresh_on_start": False})

        monitor = QuotaMonitor(config, pipeline, clock=fake_clock)

        assert not monitor.is_due()
        assert monitor.get_snapshot_view().countdown_seconds == 300

    @pytest.mark.asyncio
    async def test_success_populates_cache(self, monitor, pipeline) -> None:
        """Test a successful refresh populates the cache."""
        pipeline.run_refresh.return_value = success(RECORD_A, RECORD_B)

        ran = await monitor.refresh()

        assert ran is True
        assert monitor.cached_snapshot.records == (RECORD_A, RECORD_B)
        assert not monitor.last_error_flag
        assert monitor.status == RefreshStatus.POPULATED
        assert not monitor.is_refreshing

    @pytest.mark.asyncio
    async def test_failure_with_empty_cache_sets_error(self, monitor) -> None:
        """Test a failure with no data sets the error flag."""
        await monitor.refresh()

        view = monitor.get_snapshot_view()
        assert monitor.last_error_flag
        assert view.is_error
        assert view.records == ()
        assert monitor.status == RefreshStatus.ERROR

    @pytest.mark.asyncio
    async def test_empty_success_with_empty_cache_sets_error(self, monitor, pipeline) -> None:
        """Test an empty success with no data sets the error flag."""
        pipeline.run_refresh.return_value = success()

        await monitor.refresh()

        assert monitor.last_error_flag

    @pytest.mark.asyncio
    async def test_failure_keeps_stale_snapshot(self, monitor, pipeline) -> None:
        """Test a failure keeps the previous snapshot."""
        pipeline.run_refresh.return_value = success(RECORD_A)
        await monitor.refresh()
        snapshot = monitor.cached_snapshot

        pipeline.run_refresh.return_value = RefreshOutcome.failed()
        await monitor.refresh()

        assert monitor.cached_snapshot is snapshot
        assert not monitor.last_error_flag
        assert monitor.last_attempt_failed
        assert monitor.status == RefreshStatus.STALE
        assert not monitor.get_snapshot_view().is_error

    @pytest.mark.asyncio
    async def test_empty_success_does_not_clear_cache(self, monitor, pipeline) -> None:
        """Test an empty success keeps the previous snapshot."""
        pipeline.run_refresh.return_value = success(RECORD_A)
        await monitor.refresh()

        pipeline.run_refresh.return_value = success()
        await monitor.refresh()

        assert monitor.cached_snapshot.records == (RECORD_A,)
        assert not monitor.last_error_flag

    @pytest.mark.asyncio
    async def test_recovery_after_error_clears_flag(self, monitor, pipeline) -> None:
        """Test a success after errors clears the flag."""
        await monitor.refresh()
        assert monitor.last_error_flag

        pipeline.run_refresh.return_value = success(RECORD_B)
        await monitor.refresh()

        assert not monitor.last_error_flag
        assert not monitor.last_attempt_failed
        assert monitor.cached_snapshot.records == (RECORD_B,)

    @pytest.mark.asyncio
    async def test_new_snapshot_replaces_old_entirely(self, monitor, pipeline) -> None:
        """Test a new snapshot replaces the old one."""
        pipeline.run_refresh.return_value = success(RECORD_A, RECORD_B)
        await monitor.refresh()

        pipeline.run_refresh.return_value = success(RECORD_B)
        await monitor.refresh()

        assert monitor.cached_snapshot.records == (RECORD_B,)

    @pytest.mark.asyncio
    async def test_deadline_advances_at_start(self, monitor, pipeline, fake_clock) -> None:
        """Test the deadline moves when a refresh starts."""
        started_at = fake_clock.now

        def slow_refresh(correlation_id):
            # Time passes while the probe hangs
            fake_clock.advance(120)
            return RefreshOutcome.failed()

        pipeline.run_refresh.side_effect = slow_refresh
        await monitor.refresh()

        assert monitor.next_deadline == started_at + 300
        assert monitor.get_snapshot_view().countdown_seconds == 180

    @pytest.mark.asyncio
    async def test_concurrent_trigger_is_noop(self, monitor, pipeline) -> None:
        """Test a second trigger during a refresh does nothing."""
        release = threading.Event()
        entered = threading.Event()

        def blocking_refresh(correlation_id):
            entered.set()
            release.wait(timeout=5)
            return success(RECORD_A)

        pipeline.run_refresh.side_effect = blocking_refresh

        first = asyncio.create_task(monitor.refresh())
        await asyncio.sleep(0)
        assert monitor.is_refreshing
        assert monitor.get_snapshot_view().is_loading
        assert monitor.status == RefreshStatus.LOADING
        deadline = monitor.next_deadline

        second = await monitor.refresh(RefreshTrigger.MANUAL)

        assert second is False
        assert monitor.cached_snapshot.is_empty
        assert not monitor.last_error_flag
        assert monitor.next_deadline == deadline

        await asyncio.get_running_loop().run_in_executor(None, entered.wait, 5)
        release.set()
        assert await first is True
        assert pipeline.run_refresh.call_count == 1
        assert monitor.cached_snapshot.records == (RECORD_A,)

    @pytest.mark.asyncio
    async def test_executor_failure_is_contained(self, monitor, pipeline) -> None:
        """Test executor errors become a failed outcome."""
        pipeline.run_refresh.side_effect = RuntimeError("worker died")

        assert await monitor.refresh() is True

        assert not monitor.is_refreshing
        assert monitor.last_error_flag

    @pytest.mark.asyncio
    async def test_refreshing_flag_cleared_on_cancellation(self, monitor, pipeline) -> None:
        """Test the refreshing flag is cleared on cancellation."""
        release = threading.Event()
        pipeline.run_refresh.side_effect = lambda correlation_id: release.wait(timeout=5) and success()

        task = asyncio.create_task(monitor.refresh())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        release.set()

        assert not monitor.is_refreshing

    @pytest.mark.asyncio
    async def test_refreshing_flag_cleared_when_start_fails(self, monitor, pipeline) -> None:
        """Test the refreshing flag is cleared when refresh set-up raises."""
        with patch("services.quota_monitor.set_correlation_id", side_effect=RuntimeError("no context")):
            with pytest.raises(RuntimeError):
                await monitor.refresh()

        assert not monitor.is_refreshing
        pipeline.run_refresh.assert_not_called()

        pipeline.run_refresh.return_value = success(RECORD_A)
        assert await monitor.refresh() is True
        assert monitor.cached_snapshot.records == (RECORD_A,)

    @pytest.mark.asyncio
    async def test_view_is_idempotent(self, monitor, pipeline) -> None:
        """Test reading the view does not change state."""
        pipeline.run_refresh.return_value = success(RECORD_A, RECORD_B)
        await monitor.refresh()

        first = monitor.get_snapshot_view()
        second = monitor.get_snapshot_view()

        assert first.records == second.records
        assert first == second

    @pytest.mark.asyncio
    async def test_listeners_notified_on_start_and_completion(self, monitor, pipeline) -> None:
        """Test listeners see refresh start and completion."""
        pipeline.run_refresh.return_value = success(RECORD_A)
        views = []
        monitor.add_listener(views.append)

        await monitor.refresh()

        assert [v.is_loading for v in views] == [True, False]
        assert views[-1].records == (RECORD_A,)

    def test_listener_failure_is_contained(self, monitor) -> None:
        """Test a failing listener does not break the refresh."""
        seen = []
        monitor.add_listener(Mock(side_effect=RuntimeError("render failed")))
        monitor.add_listener(seen.append)

        monitor.notify_listeners()

        assert len(seen) == 1

    def test_remove_listener(self, monitor) -> None:
        """Test removed listeners are not notified."""
        listener = Mock()
        monitor.add_listener(listener)
        monitor.remove_listener(listener)
        monitor.remove_listener(listener)

        monitor.notify_listeners()

        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, monitor, pipeline) -> None:
        """Test refresh metrics are recorded."""
        def sample(name, labels=None):
            return REGISTRY.get_sample_value(name, labels or {}) or 0.0

        attempts_before = sample("quota_refresh_attempts_total", {"trigger": "manual"})
        success_before = sample("quota_refresh_outcomes_total", {"result": "success"})
        pipeline.run_refresh.return_value = success(RECORD_A, RECORD_B)

        await monitor.refresh(RefreshTrigger.MANUAL)

        assert sample("quota_refresh_attempts_total", {"trigger": "manual"}) == attempts_before + 1
        assert sample("quota_refresh_outcomes_total", {"result": "success"}) == success_before + 1
        assert sample("quota_records_cached") == 2
