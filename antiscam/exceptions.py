"""Exception types for the anti-scam verdict service."""

from __future__ import annotations

from typing import Optional


class AntiScamError(Exception):
    """Base error for the service."""


class InvalidURLError(AntiScamError):
    """Raised when a scan target has no extractable host."""

    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class ClassifierError(AntiScamError):
    """Remote classifier unreachable, timed out or returned a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
