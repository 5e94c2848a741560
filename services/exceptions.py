"""Exception taxonomy for the refresh pipeline.

None of these escape ``RefreshPipeline.run_refresh``; they exist so each stage
can report what went wrong and the pipeline can log it at the right level.
"""

from typing import Any, Optional


class QuotaMonitorError(Exception):
    """Base exception for all quota monitor errors."""

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ProcessNotFoundError(QuotaMonitorError):
    """No running process matches the language server signature."""
    pass


class NoListeningPortsError(QuotaMonitorError):
    """The process was found but is not listening on any TCP port yet."""
    pass


class ProbeError(QuotaMonitorError):
    """A single port did not answer the quota request successfully."""

    def __init__(
        self,
        message: str,
        port: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.port = port
        self.status_code = status_code
        super().__init__(f"[port {port}] {message} (Status: {status_code})", details=details)


class PipelineFailedError(QuotaMonitorError):
    """No stage of the refresh produced quota data."""
    pass


class InspectorError(QuotaMonitorError):
    """The OS refused or failed a process or socket query."""

    def __init__(self, message: str, operation: str, details: Any = None):
        self.operation = operation
        super().__init__(message, details=details)
