"""Scan orchestration: decide how a page gets its verdict, then record it."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..analyzer.classifier import ClassifierClient
from ..analyzer.sources import (
    RemoteVerdictSource,
    ScanRequest,
    SyntheticVerdictSource,
    VerdictSource,
)
from ..config import ScanConfig, Settings
from ..constants import (
    DISABLED_REASON,
    DISABLED_SCORE,
    FALLBACK_REASON,
    FALLBACK_SCORE,
    WHITELIST_REASON,
    WHITELIST_SCORE,
    Status,
)
from ..exceptions import ClassifierError, InvalidURLError
from ..models import Verdict, VerdictFragment
from ..storage.state import StateStore
from ..utils.domains import extract_domain, is_whitelisted

logger = logging.getLogger(__name__)

ClassifierFactory = Callable[[str], ClassifierClient]


class ScanOrchestrator:
    """
    Produces and records verdicts for scan requests.

    Branches, first match wins:
    1. protection disabled -> fixed SAFE verdict, nothing recorded
    2. selected source ignores the whitelist (mock mode) -> synthetic verdict
    3. whitelisted domain -> fixed low-risk verdict
    4. remote classifier -> normalized verdict
    5. remote failure -> fail-open SAFE fallback

    Branches 2-5 are recorded identically (cache, last scan, history).

    Scans of the same domain are not de-duplicated: two overlapping scans both
    run, and whichever finishes last overwrites the cache entry, even if it
    started first.
    """

    def __init__(
        self,
        state: StateStore,
        settings: Optional[Settings] = None,
        classifier_factory: Optional[ClassifierFactory] = None,
    ):
        self.state = state
        self.settings = settings or Settings()
        self.classifier_factory = classifier_factory or self._default_classifier

    def _default_classifier(self, base_url: str) -> ClassifierClient:
        return ClassifierClient(base_url, timeout=self.settings.request_timeout)

    def select_source(self, config: ScanConfig) -> VerdictSource:
        """Pick the verdict source for the active configuration."""
        if config.mock_mode:
            return SyntheticVerdictSource(
                force_danger=config.force_danger,
                suspicious_url_terms=self.settings.suspicious_url_terms,
                test_domain_patterns=self.settings.test_domain_patterns,
            )
        base_url = config.api_base_url or self.settings.api_base_url
        return RemoteVerdictSource(self.classifier_factory(base_url), self.settings.thresholds)

    async def scan(
        self,
        url: str,
        text: Optional[str] = None,
        keyword_hits: Optional[dict] = None,
    ) -> Verdict:
        """
        Classify a page and record the result.

        Raises:
            InvalidURLError: the URL has no host; nothing is recorded
        """
        domain = extract_domain(url)
        if not domain:
            raise InvalidURLError(url)

        timestamp = datetime.now(timezone.utc)
        hits = dict(keyword_hits or {})
        config = await self.state.get_config()

        def build(fragment: VerdictFragment) -> Verdict:
            return Verdict.from_fragment(
                fragment, url=url, domain=domain, keyword_hits=hits, timestamp=timestamp
            )

        if not config.auto_protection:
            return build(VerdictFragment(Status.SAFE, DISABLED_REASON, DISABLED_SCORE))

        source = self.select_source(config)
        request = ScanRequest(url=url, domain=domain, text=text, keyword_hits=hits)

        via = source.name
        if source.honors_whitelist and is_whitelisted(url, config.whitelist):
            via = "whitelist"
            logger.debug(f"{domain} is whitelisted; skipping classifier")
            verdict = build(VerdictFragment(Status.SAFE, WHITELIST_REASON, WHITELIST_SCORE))
        else:
            try:
                verdict = build(await source.classify(request))
            except ClassifierError as exc:
                # Fail open.
                logger.warning(f"Classifier unavailable for {domain}: {exc}")
                via = "fallback"
                verdict = build(VerdictFragment(Status.SAFE, FALLBACK_REASON, FALLBACK_SCORE))

        await self.state.record(verdict)
        logger.info(f"Scanned {domain} via {via}: {verdict.status.value} ({verdict.score:.2f})")
        return verdict

    async def get_last_scan(self, url: str) -> Optional[Verdict]:
        """Cached verdict for the URL's domain, or None."""
        domain = extract_domain(url)
        if not domain:
            return None
        return await self.state.get_cached(domain)
