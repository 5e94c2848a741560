"""Quota models for the quota monitor."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class QuotaRecord(BaseModel):
    """Remaining quota for a single AI model."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1, description="Model display name")
    remaining_fraction: float = Field(
        default=1.0, description="Remaining share of the quota, nominally 0..1"
    )
    reset_time: Optional[str] = Field(
        default=None, description="When the quota resets, as reported by the server"
    )

    @classmethod
    def from_model_config(cls, payload: Dict[str, Any]) -> Optional["QuotaRecord"]:
        """Build a record from one ``clientModelConfigs`` entry.

        Entries without a usable label are skipped (``None``). A missing
        ``remainingFraction`` means the server reports no consumption, so the
        quota is treated as full.
        """
        label = payload.get("label")
        if not isinstance(label, str) or not label.strip():
            return None

        quota_info = payload.get("quotaInfo") or {}
        if not isinstance(quota_info, dict):
            quota_info = {}

        fraction = quota_info.get("remainingFraction")
        if isinstance(fraction, bool) or not isinstance(fraction, (int, float)):
            fraction = 1.0

        reset_time = quota_info.get("resetTime")
        if not isinstance(reset_time, str) or not reset_time:
            reset_time = None

        return cls(label=label, remaining_fraction=float(fraction), reset_time=reset_time)

    @property
    def remaining_percent(self) -> int:
        """Remaining quota as a rounded percentage."""
        return int(round(self.remaining_fraction * 100))

    @property
    def reset_at(self) -> Optional[datetime]:
        """Parsed reset time, or None when absent or unparsable."""
        if not self.reset_time:
            return None
        value = self.reset_time.strip()
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


class QuotaSnapshot(BaseModel):
    """Ordered, immutable set of records from one successful refresh."""

    model_config = ConfigDict(frozen=True)

    records: Tuple[QuotaRecord, ...] = Field(default_factory=tuple)
    fetched_at: Optional[datetime] = Field(
        default=None, description="When the records were obtained"
    )

    @classmethod
    def from_records(cls, records: Iterable[QuotaRecord]) -> "QuotaSnapshot":
        return cls(records=tuple(records), fetched_at=datetime.now(timezone.utc))

    @property
    def is_empty(self) -> bool:
        return not self.records

    def __len__(self) -> int:
        return len(self.records)
