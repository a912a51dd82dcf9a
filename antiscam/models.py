"""Verdict data model."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .constants import DANGER_THRESHOLD, WARNING_THRESHOLD, Status


def clamp_score(value: float) -> float:
    """Clamp a score into [0, 1]; non-finite values become 0."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(score):
        return 0.0
    return max(0.0, min(1.0, score))


@dataclass(frozen=True)
class ThresholdPolicy:
    """Probability cut-offs for WARNING and DANGER."""

    warning: float = WARNING_THRESHOLD
    danger: float = DANGER_THRESHOLD

    def classify(self, probability: float) -> Status:
        if probability >= self.danger:
            return Status.DANGER
        if probability >= self.warning:
            return Status.WARNING
        return Status.SAFE


DEFAULT_THRESHOLDS = ThresholdPolicy()


@dataclass(frozen=True)
class VerdictFragment:
    """Status, reason and score produced by a verdict source."""

    status: Status
    reason: str
    score: float

    def __post_init__(self):
        object.__setattr__(self, "score", clamp_score(self.score))
        if not (self.reason or "").strip():
            raise ValueError("Verdict reason must not be empty")


@dataclass(frozen=True)
class Verdict:
    """Normalized risk classification of a URL."""

    status: Status
    reason: str
    score: float
    url: str
    domain: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    keyword_hits: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_fragment(
        cls,
        fragment: VerdictFragment,
        *,
        url: str,
        domain: str,
        keyword_hits: Optional[dict] = None,
        timestamp: Optional[datetime] = None,
    ) -> "Verdict":
        return cls(
            status=fragment.status,
            reason=fragment.reason,
            score=fragment.score,
            url=url,
            domain=domain,
            timestamp=timestamp or datetime.now(timezone.utc),
            keyword_hits=dict(keyword_hits or {}),
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "reason": self.reason,
            "score": self.score,
            "timestamp": self.timestamp.isoformat(),
            "url": self.url,
            "domain": self.domain,
            "keyword_hits": dict(self.keyword_hits),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Verdict":
        """Rebuild a verdict from its persisted dict form."""
        raw_ts = data.get("timestamp")
        try:
            timestamp = datetime.fromisoformat(raw_ts) if raw_ts else datetime.now(timezone.utc)
        except (TypeError, ValueError):
            timestamp = datetime.now(timezone.utc)
        return cls(
            status=Status.from_string(data.get("status")),
            reason=str(data.get("reason") or ""),
            score=clamp_score(data.get("score", 0.0)),
            url=str(data.get("url") or ""),
            domain=str(data.get("domain") or ""),
            timestamp=timestamp,
            keyword_hits=dict(data.get("keyword_hits") or {}),
        )
