"""Phishing keyword counting over extracted page text."""

from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional

from ..constants import MAX_TEXT_LENGTH, PHISHING_KEYWORDS


def compute_keyword_hits(
    text: str,
    keywords: Optional[Iterable[str]] = None,
    max_length: int = MAX_TEXT_LENGTH,
) -> dict[str, int]:
    """Count case-insensitive occurrences of each keyword; zero counts are omitted."""
    lower = (text or "")[:max_length].lower()
    hits: dict[str, int] = {}
    for keyword in keywords if keywords is not None else PHISHING_KEYWORDS:
        kw = (keyword or "").lower()
        if not kw:
            continue
        count = len(re.findall(re.escape(kw), lower))
        if count > 0:
            hits[keyword] = count
    return hits


def total_hits(keyword_hits: Optional[Mapping[str, object]]) -> float:
    """Sum numeric hit counts, ignoring anything that is not a number."""
    total: float = 0
    for value in (keyword_hits or {}).values():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        total += value
    return total
