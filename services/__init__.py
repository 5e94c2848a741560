"""Service layer for the quota monitor."""

from .exceptions import (
    InspectorError,
    NoListeningPortsError,
    PipelineFailedError,
    ProbeError,
    ProcessNotFoundError,
    QuotaMonitorError,
)
from .port_scanner import PortScanner
from .process_inspector import (
    ProcessEntry,
    PsutilProcessInspector,
    SystemProcessInspector,
    get_process_inspector,
    is_valid_pid,
)
from .process_locator import ProcessLocator
from .quota_monitor import QuotaMonitor
from .quota_prober import QuotaProber
from .refresh_metrics import get_metrics_text
from .refresh_pipeline import RefreshPipeline
from .refresh_scheduler import RefreshScheduler

__all__ = [
    "InspectorError",
    "NoListeningPortsError",
    "PipelineFailedError",
    "ProbeError",
    "ProcessNotFoundError",
    "QuotaMonitorError",
    "PortScanner",
    "ProcessEntry",
    "PsutilProcessInspector",
    "SystemProcessInspector",
    "get_process_inspector",
    "is_valid_pid",
    "ProcessLocator",
    "QuotaMonitor",
    "QuotaProber",
    "get_metrics_text",
    "RefreshPipeline",
    "RefreshScheduler",
]
