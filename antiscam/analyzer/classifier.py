"""
HTTP client for the remote scam classifier.

Endpoints used:
- POST /predict: classify a page ({url, text, keywordHits})
- GET /health: model name/accuracy for the settings screen
- POST /cache/clear, /history/clear, /clear_all: operator purge actions

The scan path only ever calls predict(). Every transport failure, timeout or
non-2xx status is raised as ClassifierError so callers can decide whether to
absorb it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from ..constants import DEFAULT_REQUEST_TIMEOUT
from ..exceptions import ClassifierError

logger = logging.getLogger(__name__)


@dataclass
class HealthInfo:
    """Classifier health as reported by GET /health."""

    connected: bool = False
    model: Optional[str] = None
    accuracy: Optional[float] = None
    timestamp: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "connected": self.connected,
            "model": self.model,
            "accuracy": self.accuracy,
            "timestamp": self.timestamp,
            "error": self.error,
        }


def _decode_body(body: str, content_type: str) -> Any:
    """Parse JSON bodies; anything else is returned as text."""
    if "application/json" in (content_type or "").lower():
        try:
            return json.loads(body)
        except ValueError:
            logger.debug("Classifier sent invalid JSON; treating body as text")
    return body


class ClassifierClient:
    """Async client for one classifier base URL."""

    def __init__(self, base_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = self._url(path)
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession() as session:
                if method == "GET":
                    ctx = session.get(url, headers=headers, timeout=timeout)
                else:
                    ctx = session.post(url, headers=headers, json=payload, timeout=timeout)
                async with ctx as resp:
                    body = await resp.text(errors="replace")
                    if not 200 <= resp.status < 300:
                        raise ClassifierError(f"API error {resp.status}", status=resp.status)
                    return _decode_body(body, resp.headers.get("Content-Type", ""))
        except ClassifierError:
            raise
        except asyncio.TimeoutError as exc:
            raise ClassifierError(f"Request to {url} timed out after {self.timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise ClassifierError(f"Request to {url} failed: {exc}") from exc

    async def predict(self, url: str, text: Optional[str] = None, keyword_hits: Optional[dict] = None) -> Any:
        """Classify a page. Returns the decoded JSON payload or the raw text body."""
        payload = {"url": url, "text": text, "keywordHits": keyword_hits or {}}
        return await self._request("POST", "/predict", payload)

    async def health(self) -> HealthInfo:
        """Query GET /health. Never raises; failures are reported in the result."""
        try:
            data = await self._request("GET", "/health")
        except ClassifierError as exc:
            logger.info("Classifier health check failed: %s", exc)
            return HealthInfo(connected=False, error=str(exc))

        if not isinstance(data, dict):
            return HealthInfo(connected=True)
        accuracy = data.get("accuracy")
        return HealthInfo(
            connected=True,
            model=data.get("model"),
            accuracy=float(accuracy) if isinstance(accuracy, (int, float)) else None,
            timestamp=data.get("timestamp"),
        )

    async def _manage(self, path: str) -> dict:
        data = await self._request("POST", path)
        if isinstance(data, dict):
            return data
        return {"message": str(data)}

    async def clear_cache(self) -> dict:
        return await self._manage("/cache/clear")

    async def clear_history(self) -> dict:
        return await self._manage("/history/clear")

    async def clear_all(self) -> dict:
        return await self._manage("/clear_all")
