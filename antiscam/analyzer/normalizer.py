"""
Response normalization for the remote classifier.

The classifier has shipped several response shapes over time. All of them
are folded into a single VerdictFragment here, checked in this order:

1. Probability schema: {"is_scam": bool, "probability": float, "reasons": [...]}
2. Legacy schema: {"status": "SAFE|WARNING|DANGER|PHISHING", "score": float, "reason": str}
3. Plain text body (or anything that is not a JSON object)

Probability fields win when both shapes are present, since the probability
discriminates more finely than a status label.
"""

from __future__ import annotations

import math
from typing import Any

from ..constants import (
    DEFAULT_REASONS,
    DEFAULT_STATUS_SCORES,
    NOT_SCAM_PROBABILITY,
    SCAM_PROBABILITY,
    TEXT_BODY_REASON,
    TEXT_BODY_SCORE,
    Status,
)
from ..models import DEFAULT_THRESHOLDS, ThresholdPolicy, VerdictFragment, clamp_score

_LEGACY_STATUS_MAP = {
    "DANGER": Status.DANGER,
    "PHISHING": Status.DANGER,
    "WARNING": Status.WARNING,
    "SAFE": Status.SAFE,
}


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _has_probability_schema(payload: dict) -> bool:
    return isinstance(payload.get("is_scam"), bool) or _is_number(payload.get("probability"))


def _normalize_probability(payload: dict, thresholds: ThresholdPolicy) -> VerdictFragment:
    if _is_number(payload.get("probability")):
        probability = clamp_score(payload["probability"])
    else:
        probability = SCAM_PROBABILITY if payload.get("is_scam") is True else NOT_SCAM_PROBABILITY

    # A probability that disagrees with is_scam still decides the status.
    status = thresholds.classify(probability)

    raw_reasons = payload.get("reasons")
    reasons = []
    if isinstance(raw_reasons, list):
        reasons = [str(r).strip() for r in raw_reasons if r is not None and str(r).strip()]
    reason = "; ".join(reasons) if reasons else DEFAULT_REASONS[status]

    return VerdictFragment(status=status, reason=reason, score=probability)


def _normalize_legacy(payload: dict) -> VerdictFragment:
    raw_status = str(payload.get("status") or "").strip().upper()
    status = _LEGACY_STATUS_MAP.get(raw_status, Status.SAFE)

    if _is_number(payload.get("score")):
        score = clamp_score(payload["score"])
    else:
        score = DEFAULT_STATUS_SCORES[status]

    reason = payload.get("reason")
    if not isinstance(reason, str) or not reason.strip():
        reason = DEFAULT_REASONS[status]

    return VerdictFragment(status=status, reason=reason.strip(), score=score)


def normalize_text(body: str) -> VerdictFragment:
    """Verdict for a non-JSON response body."""
    text = (body or "").strip()
    return VerdictFragment(
        status=Status.SAFE,
        reason=text or TEXT_BODY_REASON,
        score=TEXT_BODY_SCORE,
    )


def normalize(payload: Any, thresholds: ThresholdPolicy = DEFAULT_THRESHOLDS) -> VerdictFragment:
    """Map any classifier payload onto a VerdictFragment. Never raises."""
    if isinstance(payload, (str, bytes)):
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")
        return normalize_text(payload)

    if not isinstance(payload, dict):
        # JSON arrays/numbers carry no usable fields
        return _normalize_legacy({})

    if _has_probability_schema(payload):
        return _normalize_probability(payload, thresholds)
    return _normalize_legacy(payload)
