"""Report reporter for the classifier backend's POST /report endpoint."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..constants import DEFAULT_REQUEST_TIMEOUT
from ..storage.identity import InstallIdentity
from ..utils.domains import extract_domain
from .base import ReportResult, ReportStatus

logger = logging.getLogger(__name__)

DEFAULT_REPORT_REASON = "Reported by user"


class ClassifierReporter:
    """
    Forwards user reports to the classifier backend.

    Unlike scans, failures here are never defaulted away: the caller always
    learns whether the report was accepted.
    """

    def __init__(
        self,
        base_url: str,
        identity: InstallIdentity,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.identity = identity
        self.timeout = timeout

    def validate(self, link: str) -> tuple[bool, str]:
        """
        Validate a report target before submission.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not (link or "").strip():
            return False, "Link is required"
        if not extract_domain(link):
            return False, "Link must be an absolute URL"
        return True, ""

    async def submit(self, link: str, reason: Optional[str] = None) -> ReportResult:
        """Submit a report. Never raises for transport or backend errors."""
        is_valid, error = self.validate(link)
        if not is_valid:
            return ReportResult(status=ReportStatus.FAILED, message=error)

        payload = {
            "link": link.strip(),
            "reason": (reason or "").strip() or DEFAULT_REPORT_REASON,
            "device_id": await self.identity.device_id(),
            "user_id": await self.identity.user_id(),
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                resp = await client.post(
                    f"{self.base_url}/report",
                    json=payload,
                    headers={"Content-Type": "application/json", "Accept": "application/json"},
                )
            except httpx.HTTPError as exc:
                logger.warning(f"Report submission failed for {link}: {exc}")
                return ReportResult(status=ReportStatus.FAILED, message=f"Report failed: {exc}")

        if resp.status_code == 429:
            try:
                retry_after = int(resp.headers.get("Retry-After", 60))
            except (TypeError, ValueError):
                retry_after = 60
            return ReportResult(
                status=ReportStatus.RATE_LIMITED,
                message="Rate limited by report endpoint",
                retry_after=retry_after,
            )

        if not 200 <= resp.status_code < 300:
            logger.warning(f"Report endpoint returned {resp.status_code} for {link}")
            return ReportResult(
                status=ReportStatus.FAILED,
                message=f"Report failed: API error {resp.status_code}",
            )

        content_type = resp.headers.get("content-type", "")
        data: dict = {"success": False, "message": resp.text}
        if "application/json" in content_type:
            try:
                parsed = resp.json()
                if isinstance(parsed, dict):
                    data = parsed
            except ValueError:
                logger.debug("Report endpoint sent invalid JSON")

        report_count = data.get("report_count")
        result_kwargs = {
            "risk_level": data.get("risk_level"),
            "report_count": report_count if isinstance(report_count, int) else None,
            "response_data": data,
        }
        if data.get("success") is True:
            logger.info(f"Report accepted for {link} (risk: {data.get('risk_level')})")
            return ReportResult(
                status=ReportStatus.SUBMITTED,
                message=data.get("message") or "Report submitted",
                **result_kwargs,
            )

        message = data.get("message") or data.get("error") or "Report was not accepted"
        return ReportResult(status=ReportStatus.FAILED, message=str(message), **result_kwargs)
