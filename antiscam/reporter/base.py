"""Report result types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ReportStatus(str, Enum):
    """Status of a report submission."""

    SUBMITTED = "submitted"  # Backend accepted the report
    FAILED = "failed"  # Validation, transport or backend rejection
    RATE_LIMITED = "rate_limited"  # Backend asked us to slow down


@dataclass
class ReportResult:
    """Result of a report submission attempt."""

    status: ReportStatus
    risk_level: Optional[str] = None
    report_count: Optional[int] = None
    message: Optional[str] = None
    response_data: Optional[dict] = None
    retry_after: Optional[int] = None  # Seconds to wait before retry
    submitted_at: Optional[datetime] = None

    def __post_init__(self):
        if self.status == ReportStatus.SUBMITTED and not self.submitted_at:
            self.submitted_at = datetime.now(timezone.utc)

    @property
    def success(self) -> bool:
        return self.status == ReportStatus.SUBMITTED

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "status": self.status.value,
            "risk_level": self.risk_level,
            "report_count": self.report_count,
            "message": self.message,
            "retry_after": self.retry_after,
        }
