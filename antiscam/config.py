"""Configuration management for the anti-scam verdict service."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .constants import (
    DANGER_THRESHOLD,
    DEFAULT_API_BASE_URL,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SUSPICIOUS_URL_TERMS,
    DEFAULT_TEST_DOMAIN_PATTERNS,
    PHISHING_KEYWORDS,
    WARNING_THRESHOLD,
)
from .models import ThresholdPolicy
from .utils.domains import normalize_whitelist
from .utils.whitelist import read_whitelist

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def as_bool(value: Any) -> bool:
    """Interpret JSON/form flag values; strings other than true-ish words are False."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


@dataclass
class Settings:
    """Runtime settings loaded from environment."""

    # Remote classifier
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    report_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Local state
    history_limit: int = DEFAULT_HISTORY_LIMIT
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    # Local API server
    server_host: str = "127.0.0.1"
    server_port: int = 8765
    log_level: str = "INFO"

    # Heuristics (override via config/heuristics.yaml)
    warning_threshold: float = WARNING_THRESHOLD
    danger_threshold: float = DANGER_THRESHOLD
    phishing_keywords: list[str] = field(default_factory=lambda: list(PHISHING_KEYWORDS))
    suspicious_url_terms: list[str] = field(
        default_factory=lambda: list(DEFAULT_SUSPICIOUS_URL_TERMS)
    )
    test_domain_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_TEST_DOMAIN_PATTERNS)
    )

    # Seed entries for a fresh config (config/whitelist.txt)
    default_whitelist: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.config_dir = Path(self.config_dir)

    @property
    def db_path(self) -> Path:
        return self.data_dir / "antiscam.db"

    @property
    def thresholds(self) -> ThresholdPolicy:
        return ThresholdPolicy(warning=self.warning_threshold, danger=self.danger_threshold)


@dataclass
class ScanConfig:
    """User-facing settings persisted in the state store."""

    api_base_url: str = DEFAULT_API_BASE_URL
    auto_protection: bool = True
    whitelist: list[str] = field(default_factory=list)
    mock_mode: bool = False
    force_danger: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def merged(cls, defaults: "ScanConfig", *overlays: Optional[dict]) -> "ScanConfig":
        """Layer stored/patch dicts over defaults; unknown keys are ignored."""
        data = defaults.to_dict()
        known = {f.name for f in fields(cls)}
        for overlay in overlays:
            if not isinstance(overlay, dict):
                continue
            for key, value in overlay.items():
                if key in known and value is not None:
                    data[key] = value

        whitelist = data.get("whitelist")
        data["whitelist"] = normalize_whitelist(whitelist if isinstance(whitelist, list) else [])
        data["api_base_url"] = str(data.get("api_base_url") or defaults.api_base_url).strip()
        for flag in ("auto_protection", "mock_mode", "force_danger"):
            data[flag] = as_bool(data.get(flag))
        return cls(**data)


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring heuristics.yaml: expected a mapping")
        return {}

    def _coerce_float(raw: Any, default: float) -> float:
        if raw is None:
            return default
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning("Invalid threshold %r in heuristics.yaml; using %s", raw, default)
            return default

    def _coerce_strings(raw: Any, default: list[str]) -> list[str]:
        items = [str(item).strip() for item in raw or [] if str(item or "").strip()]
        return items or list(default)

    def _coerce_patterns(raw: Any, default: list[str]) -> list[str]:
        patterns: list[str] = []
        for item in _coerce_strings(raw, default):
            try:
                re.compile(item)
            except re.error as exc:
                logger.warning("Skipping invalid test domain pattern %r: %s", item, exc)
                continue
            patterns.append(item)
        return patterns or list(default)

    thresholds_cfg = data.get("thresholds", {}) if isinstance(data.get("thresholds"), dict) else {}
    mock_cfg = data.get("mock", {}) if isinstance(data.get("mock"), dict) else {}

    return {
        "warning_threshold": _coerce_float(thresholds_cfg.get("warning"), WARNING_THRESHOLD),
        "danger_threshold": _coerce_float(thresholds_cfg.get("danger"), DANGER_THRESHOLD),
        "phishing_keywords": _coerce_strings(data.get("keywords"), PHISHING_KEYWORDS),
        "suspicious_url_terms": _coerce_strings(
            mock_cfg.get("suspicious_url_terms"), DEFAULT_SUSPICIOUS_URL_TERMS
        ),
        "test_domain_patterns": _coerce_patterns(
            mock_cfg.get("test_domain_patterns"), DEFAULT_TEST_DOMAIN_PATTERNS
        ),
    }


def load_settings() -> Settings:
    """Load settings from environment variables and the config directory."""
    load_dotenv()

    config_dir = Path(os.getenv("ANTISCAM_CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    return Settings(
        api_base_url=os.getenv("ANTISCAM_API_BASE_URL", DEFAULT_API_BASE_URL),
        request_timeout=float(os.getenv("ANTISCAM_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))),
        report_timeout=float(os.getenv("ANTISCAM_REPORT_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))),
        history_limit=int(os.getenv("ANTISCAM_HISTORY_LIMIT", str(DEFAULT_HISTORY_LIMIT))),
        data_dir=Path(os.getenv("ANTISCAM_DATA_DIR", "./data")),
        config_dir=config_dir,
        server_host=os.getenv("ANTISCAM_SERVER_HOST", "127.0.0.1"),
        server_port=int(os.getenv("ANTISCAM_SERVER_PORT", "8765")),
        log_level=os.getenv("ANTISCAM_LOG_LEVEL", "INFO").upper(),
        default_whitelist=read_whitelist(config_dir / "whitelist.txt"),
        **heuristics,
    )


def validate_settings(settings: Settings) -> list[str]:
    """Validate settings and return list of error messages."""
    errors: list[str] = []
    if not re.match(r"^https?://", settings.api_base_url or ""):
        errors.append("ANTISCAM_API_BASE_URL must be an http(s) URL")
    if settings.request_timeout <= 0:
        errors.append("ANTISCAM_REQUEST_TIMEOUT must be positive")
    if settings.report_timeout <= 0:
        errors.append("ANTISCAM_REPORT_TIMEOUT must be positive")
    if settings.history_limit < 1:
        errors.append("ANTISCAM_HISTORY_LIMIT must be at least 1")
    if not 0 <= settings.warning_threshold <= settings.danger_threshold <= 1:
        errors.append("Thresholds must satisfy 0 <= warning <= danger <= 1")
    return errors
