"""Centralized constants for the anti-scam verdict service.

This module contains enums and constants used across multiple modules
to ensure consistency and reduce duplication.
"""

from __future__ import annotations

from enum import Enum


class Status(str, Enum):
    """Verdict status for a scanned page."""

    SAFE = "SAFE"
    WARNING = "WARNING"
    DANGER = "DANGER"
    UNKNOWN = "UNKNOWN"  # No verdict yet; never produced by the normalizer

    @classmethod
    def from_string(cls, value: str | None) -> "Status":
        """Convert a status string to enum, defaulting to UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


# Probability thresholds. Biased toward fewer false DANGER flags.
WARNING_THRESHOLD = 0.65
DANGER_THRESHOLD = 0.85

# Scores used when the backend omits one
DEFAULT_STATUS_SCORES: dict[Status, float] = {
    Status.DANGER: 0.9,
    Status.WARNING: 0.75,
    Status.SAFE: 0.1,
}
SCAM_PROBABILITY = 0.9
NOT_SCAM_PROBABILITY = 0.1

DEFAULT_REASONS: dict[Status, str] = {
    Status.DANGER: "Potential phishing indicators detected.",
    Status.WARNING: "Some suspicious indicators were found. Please be cautious.",
    Status.SAFE: "No obvious phishing indicators found.",
}

# Fixed verdicts
WHITELIST_SCORE = 0.01
WHITELIST_REASON = "Domain is whitelisted."
DISABLED_SCORE = 0.0
DISABLED_REASON = "Protection is disabled."
FALLBACK_SCORE = 0.5
FALLBACK_REASON = "API unreachable. Defaulting to safe."
TEXT_BODY_SCORE = 0.5
TEXT_BODY_REASON = "No details provided"

# Mock mode
MOCK_FORCED_REASON = "Mock Mode: forced danger for testing."
MOCK_DANGER_REASON = "Mock Mode: heuristic matched suspicious indicators."
MOCK_SAFE_REASON = "Mock Mode: no obvious phishing indicators."
MOCK_MIN_HITS = 2
DEFAULT_SUSPICIOUS_URL_TERMS: list[str] = ["phish", "scam", "wallet", "seed", "login"]
DEFAULT_TEST_DOMAIN_PATTERNS: list[str] = [r".+\.test$"]

DEFAULT_API_BASE_URL = "http://localhost:5000"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_HISTORY_LIMIT = 200

STORAGE_KEYS = {
    "config": "antiscam_config",
    "last_scan": "antiscam_last_scan",
    "history": "antiscam_history",
    "cache_by_domain": "antiscam_cache_by_domain",
    "device_id": "antiscam_device_id",
    "user_id": "antiscam_user_id",
}

# Page text phrases counted into keyword hits
PHISHING_KEYWORDS: list[str] = [
    "verify your account",
    "urgent",
    "suspend",
    "password",
    "login",
    "confirm",
    "reset",
    "bank",
    "paypal",
    "crypto",
    "seed phrase",
    "mnemonic",
    "wallet",
    "ssn",
    "security alert",
    "limited time",
    "click here",
    "update billing",
    "invoice overdue",
    "account locked",
]
MAX_TEXT_LENGTH = 10000
