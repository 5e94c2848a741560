"""Refresh outcome and view models for the quota monitor."""

from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .enums import RefreshStatus
from .quota import QuotaRecord


class RefreshOutcome(BaseModel):
    """Result of one refresh pipeline run."""

    model_config = ConfigDict(frozen=True)

    records: Tuple[QuotaRecord, ...] = Field(default_factory=tuple)
    succeeded: bool = Field(default=False, description="Whether any probe answered with 2xx")

    @classmethod
    def failed(cls) -> "RefreshOutcome":
        return cls(records=(), succeeded=False)

    @property
    def has_records(self) -> bool:
        return bool(self.records)


class SnapshotView(BaseModel):
    """Read-only view handed to presentation adapters on every render."""

    model_config = ConfigDict(frozen=True)

    records: Tuple[QuotaRecord, ...] = Field(default_factory=tuple)
    countdown_seconds: int = Field(..., ge=0, description="Seconds until the next automatic refresh")
    is_loading: bool = False
    is_error: bool = False
    status: RefreshStatus = RefreshStatus.EMPTY
    fetched_at: Optional[datetime] = None

    @property
    def countdown_label(self) -> str:
        """Countdown formatted as ``m:ss``."""
        minutes, seconds = divmod(self.countdown_seconds, 60)
        return f"{minutes}:{seconds:02d}"
