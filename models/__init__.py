"""Data models for the quota monitor.

This module contains all Pydantic models used throughout the application,
ensuring strict type safety and runtime validation."""

# Import all enums
from .enums import RefreshResult, RefreshStatus, RefreshTrigger

# Import quota models
from .quota import QuotaRecord, QuotaSnapshot

# Import process models
from .process import ProcessInfo

# Import refresh models
from .refresh import RefreshOutcome, SnapshotView

__all__ = [
    # Enums
    "RefreshResult",
    "RefreshStatus",
    "RefreshTrigger",
    # Quota models
    "QuotaRecord",
    "QuotaSnapshot",
    # Process models
    "ProcessInfo",
    # Refresh models
    "RefreshOutcome",
    "SnapshotView",
]
