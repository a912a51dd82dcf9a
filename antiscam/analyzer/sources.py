"""Pluggable verdict sources: remote classifier and local synthetic heuristics."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..constants import (
    DEFAULT_SUSPICIOUS_URL_TERMS,
    DEFAULT_TEST_DOMAIN_PATTERNS,
    MOCK_DANGER_REASON,
    MOCK_FORCED_REASON,
    MOCK_MIN_HITS,
    MOCK_SAFE_REASON,
    Status,
)
from ..models import DEFAULT_THRESHOLDS, ThresholdPolicy, VerdictFragment
from ..utils.keywords import total_hits
from .classifier import ClassifierClient
from .normalizer import normalize

logger = logging.getLogger(__name__)


@dataclass
class ScanRequest:
    """A page to classify."""

    url: str
    domain: str
    text: Optional[str] = None
    keyword_hits: dict = field(default_factory=dict)


class VerdictSource(ABC):
    """Produces a verdict fragment for a scan request."""

    name: str = "unknown"
    # Whether whitelisted domains bypass this source
    honors_whitelist: bool = True

    @abstractmethod
    async def classify(self, request: ScanRequest) -> VerdictFragment:
        """
        Classify a page.

        Raises:
            ClassifierError: the source could not produce a verdict
        """


class RemoteVerdictSource(VerdictSource):
    """Verdicts from the remote classifier, normalized."""

    name = "remote"
    honors_whitelist = True

    def __init__(self, client: ClassifierClient, thresholds: ThresholdPolicy = DEFAULT_THRESHOLDS):
        self.client = client
        self.thresholds = thresholds

    async def classify(self, request: ScanRequest) -> VerdictFragment:
        payload = await self.client.predict(request.url, request.text, request.keyword_hits)
        return normalize(payload, self.thresholds)


class SyntheticVerdictSource(VerdictSource):
    """
    Local heuristic verdicts for testing without a backend (mock mode).

    A page looks phishy when danger is forced, the domain matches a test
    pattern, the URL contains a suspicious term, or the keyword hits reach
    MOCK_MIN_HITS.
    """

    name = "synthetic"
    honors_whitelist = False

    def __init__(
        self,
        *,
        force_danger: bool = False,
        suspicious_url_terms: Optional[Iterable[str]] = None,
        test_domain_patterns: Optional[Iterable[str]] = None,
    ):
        self.force_danger = force_danger
        terms = [t for t in (suspicious_url_terms or DEFAULT_SUSPICIOUS_URL_TERMS) if t]
        self._url_re = re.compile("|".join(re.escape(t) for t in terms), re.IGNORECASE) if terms else None
        self._domain_res = [
            re.compile(p, re.IGNORECASE)
            for p in (test_domain_patterns or DEFAULT_TEST_DOMAIN_PATTERNS)
        ]

    def _looks_phishy(self, request: ScanRequest, hits: float) -> bool:
        if self.force_danger:
            return True
        if any(p.search(request.domain) for p in self._domain_res):
            return True
        if self._url_re and self._url_re.search(request.url):
            return True
        return hits >= MOCK_MIN_HITS

    async def classify(self, request: ScanRequest) -> VerdictFragment:
        hits = total_hits(request.keyword_hits)
        if self._looks_phishy(request, hits):
            reason = MOCK_FORCED_REASON if self.force_danger else MOCK_DANGER_REASON
            return VerdictFragment(
                status=Status.DANGER,
                reason=reason,
                score=min(0.7 + hits * 0.1, 0.98),
            )
        return VerdictFragment(
            status=Status.SAFE,
            reason=MOCK_SAFE_REASON,
            score=max(0.1 - hits * 0.02, 0.02),
        )
