"""Enumeration types for quota monitor models."""

from enum import Enum


class RefreshStatus(str, Enum):
    """Observable states of the quota cache."""

    EMPTY = "empty"
    ERROR = "error"
    LOADING = "loading"
    POPULATED = "populated"
    STALE = "stale"


class RefreshTrigger(str, Enum):
    """What caused a refresh attempt."""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


class RefreshResult(str, Enum):
    """Outcome classes recorded for each refresh attempt."""

    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"
