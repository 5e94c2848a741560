"""Refresh pipeline: locate the language server, scan its ports, probe them.

``run_refresh`` is blocking and meant to run on a worker thread. It never
raises; every failure becomes a failed, empty ``RefreshOutcome``.
"""

import time
from typing import List, Optional

from config import MonitorConfig
from models import RefreshOutcome, QuotaRecord
from utils import create_contextual_logger, log_exception, set_correlation_id
from .exceptions import (
    NoListeningPortsError,
    PipelineFailedError,
    ProbeError,
    ProcessNotFoundError,
)
from .port_scanner import PortScanner
from .process_inspector import SystemProcessInspector, get_process_inspector
from .process_locator import ProcessLocator
from .quota_prober import QuotaProber
from .refresh_metrics import probe_attempts


class RefreshPipeline:
    """Runs Locator, Scanner and Prober in sequence."""

    def __init__(
        self,
        locator: ProcessLocator,
        scanner: PortScanner,
        prober: QuotaProber,
    ) -> None:
        self.locator = locator
        self.scanner = scanner
        self.prober = prober
        self.logger = create_contextual_logger(__name__, service="refresh_pipeline")

    @classmethod
    def from_config(
        cls,
        config: MonitorConfig,
        inspector: Optional[SystemProcessInspector] = None,
    ) -> "RefreshPipeline":
        """Wire a pipeline for the running platform."""
        inspector = inspector or get_process_inspector()
        return cls(
            locator=ProcessLocator(config, inspector),
            scanner=PortScanner(inspector),
            prober=QuotaProber(config),
        )

    def run_refresh(self, correlation_id: Optional[str] = None) -> RefreshOutcome:
        """Run one locate, scan and probe pass."""
        set_correlation_id(correlation_id)
        started = time.monotonic()
        try:
            records = self._collect_records()
        except ProcessNotFoundError as e:
            # Expected whenever the language server is not running
            self.logger.debug("Refresh skipped", reason=e.message)
            return RefreshOutcome.failed()
        except (NoListeningPortsError, PipelineFailedError) as e:
            self.logger.info("Refresh did not yield data", reason=e.message, details=e.details)
            return RefreshOutcome.failed()
        except Exception as e:
            log_exception(self.logger, e, "Refresh pipeline failed unexpectedly", level="warning")
            return RefreshOutcome.failed()

        self.logger.info(
            "Refresh completed",
            record_count=len(records),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return RefreshOutcome(records=tuple(records), succeeded=True)

    def _collect_records(self) -> List[QuotaRecord]:
        process = self.locator.locate()
        if process is None:
            raise ProcessNotFoundError("Language server process not found")

        ports = self.scanner.listening_ports(process.process_id)
        if not ports:
            raise NoListeningPortsError(
                "Language server is not listening on any TCP port",
                details={"pid": process.process_id},
            )

        for port in ports:
            try:
                records = self.prober.probe(port, process.auth_token)
            except ProbeError as e:
                probe_attempts.labels(result="failed").inc()
                self.logger.debug(
                    "Probe failed, trying next port",
                    port=e.port,
                    status_code=e.status_code,
                    error=e.message,
                )
                continue
            probe_attempts.labels(result="success").inc()
            return records

        raise PipelineFailedError(
            "No listening port answered the quota request",
            details={"pid": process.process_id, "ports": ports},
        )
