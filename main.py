"""Main entry point for the quota monitor.

Runs the refresh scheduler until interrupted and logs the snapshot view
whenever it changes. On POSIX systems SIGUSR1 triggers a manual refresh.
"""

import asyncio
import signal
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

from config import MonitorConfig, load_config
from models import SnapshotView
from services import QuotaMonitor, RefreshPipeline, RefreshScheduler, get_metrics_text
from utils import configure_logging, get_logger

logger = get_logger(__name__)


class ConsoleReporter:
    """Log-based view adapter: reports records when the view changes."""

    def __init__(self) -> None:
        self.logger = get_logger(__name__, service="console_reporter")
        self._last_key: Optional[Tuple] = None

    def __call__(self, view: SnapshotView) -> None:
        key = (view.status, view.records)
        if key == self._last_key:
            self.logger.debug("Next check in", countdown=view.countdown_label)
            return
        self._last_key = key

        if view.is_error:
            self.logger.warning("No quota data available, is the language server running?")
        for record in view.records:
            self.logger.info(
                f"{record.label}: {record.remaining_percent}% remaining",
                resets=record.reset_time or "N/A",
                status=view.status.value,
            )


def build_monitor(config: MonitorConfig, executor: ThreadPoolExecutor) -> Tuple[QuotaMonitor, RefreshScheduler]:
    """Wire the pipeline, cache and scheduler for this platform."""
    pipeline = RefreshPipeline.from_config(config)
    monitor = QuotaMonitor(config, pipeline, executor=executor)
    scheduler = RefreshScheduler(config, monitor)
    return monitor, scheduler


async def main() -> None:
    config = load_config()
    configure_logging(config.log_level, json_output=config.log_json)

    # One worker: refreshes never run in parallel
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="quota_refresh")
    monitor, scheduler = build_monitor(config, executor)
    monitor.add_listener(ConsoleReporter())

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()
    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
        loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
        loop.add_signal_handler(
            signal.SIGUSR1, lambda: asyncio.ensure_future(scheduler.manual_refresh())
        )

    try:
        logger.info("Starting quota monitor...", version=config.app_version)
        await scheduler.start()
        await shutdown_event.wait()
    finally:
        logger.info("Shutting down quota monitor...")
        await scheduler.stop()
        executor.shutdown(wait=True)
        logger.debug("Final metrics", metrics=get_metrics_text())
        logger.info("Quota monitor stopped.")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
