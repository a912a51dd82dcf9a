"""Tests for scan orchestration and persisted scan state."""

from __future__ import annotations

import asyncio

import pytest

from antiscam.config import ScanConfig, Settings
from antiscam.constants import Status
from antiscam.exceptions import ClassifierError, InvalidURLError
from antiscam.pipeline import ScanOrchestrator
from antiscam.storage import MemoryStore, StateStore


class FakeClassifier:
    def __init__(self, payload=None, *, error: Exception | None = None, delay: float = 0.0):
        self.payload = payload if payload is not None else {"probability": 0.2}
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def predict(self, url, text=None, keyword_hits=None):
        self.calls.append({"url": url, "text": text, "keyword_hits": keyword_hits})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


def _orchestrator(classifier: FakeClassifier | None = None, **config) -> ScanOrchestrator:
    classifier = classifier or FakeClassifier()
    state = StateStore(MemoryStore(), default_config=ScanConfig(**config))
    return ScanOrchestrator(state, Settings(), classifier_factory=lambda base_url: classifier)


@pytest.mark.asyncio
async def test_remote_verdict_is_normalized_and_recorded():
    classifier = FakeClassifier({"is_scam": True, "probability": 0.92, "reasons": ["Seed phrase form"]})
    orchestrator = _orchestrator(classifier)

    verdict = await orchestrator.scan("https://wallet-restore.example/", "enter your seed", {"seed phrase": 1})

    assert verdict.status == Status.DANGER
    assert verdict.score == pytest.approx(0.92)
    assert verdict.reason == "Seed phrase form"
    assert verdict.domain == "wallet-restore.example"
    assert verdict.keyword_hits == {"seed phrase": 1}
    assert classifier.calls[0]["keyword_hits"] == {"seed phrase": 1}

    state = orchestrator.state
    assert (await state.get_cached("wallet-restore.example")).status == Status.DANGER
    assert (await state.get_last_scan()).url == "https://wallet-restore.example/"
    assert len(await state.get_history()) == 1


@pytest.mark.asyncio
async def test_remote_base_url_comes_from_config():
    seen: list[str] = []
    classifier = FakeClassifier()
    state = StateStore(MemoryStore(), default_config=ScanConfig(api_base_url="http://10.0.0.5:5000"))
    orchestrator = ScanOrchestrator(
        state, Settings(), classifier_factory=lambda base_url: seen.append(base_url) or classifier
    )

    await orchestrator.scan("https://example.com/")

    assert seen == ["http://10.0.0.5:5000"]


@pytest.mark.asyncio
async def test_unreachable_classifier_fails_open():
    classifier = FakeClassifier(error=ClassifierError("connection refused"))
    orchestrator = _orchestrator(classifier)

    verdict = await orchestrator.scan("https://example.com/account")

    assert verdict.status == Status.SAFE
    assert verdict.score == pytest.approx(0.5)
    assert verdict.reason == "API unreachable. Defaulting to safe."

    cached = await orchestrator.get_last_scan("https://example.com/other-page")
    assert cached is not None
    assert cached.reason == "API unreachable. Defaulting to safe."
    assert len(await orchestrator.state.get_history()) == 1


@pytest.mark.asyncio
async def test_whitelisted_domain_skips_classifier():
    classifier = FakeClassifier({"probability": 0.99})
    orchestrator = _orchestrator(classifier, whitelist=["HTTPS://WWW.Example.com/path"])

    verdict = await orchestrator.scan("http://example.com")

    assert verdict.status == Status.SAFE
    assert verdict.score == pytest.approx(0.01)
    assert verdict.reason == "Domain is whitelisted."
    assert classifier.calls == []
    assert len(await orchestrator.state.get_history()) == 1


@pytest.mark.asyncio
async def test_disabled_protection_records_nothing():
    classifier = FakeClassifier({"probability": 0.99})
    orchestrator = _orchestrator(classifier, auto_protection=False)

    verdict = await orchestrator.scan("https://phish.example/")

    assert verdict.status == Status.SAFE
    assert verdict.score == 0.0
    assert verdict.reason == "Protection is disabled."
    assert classifier.calls == []
    assert await orchestrator.state.get_history() == []
    assert await orchestrator.state.get_cache() == {}
    assert await orchestrator.state.get_last_scan() is None
    assert await orchestrator.get_last_scan("https://phish.example/") is None


@pytest.mark.asyncio
async def test_mock_mode_uses_keyword_hits():
    classifier = FakeClassifier()
    orchestrator = _orchestrator(classifier, mock_mode=True)

    verdict = await orchestrator.scan("https://example.com/", keyword_hits={"login": 2, "wallet": 1})

    assert verdict.status == Status.DANGER
    assert verdict.score == pytest.approx(0.98)
    assert verdict.reason.startswith("Mock Mode")
    assert classifier.calls == []


@pytest.mark.asyncio
async def test_mock_mode_safe_page():
    orchestrator = _orchestrator(mock_mode=True)

    verdict = await orchestrator.scan("https://example.com/", keyword_hits={"bank": 1})

    assert verdict.status == Status.SAFE
    assert verdict.score == pytest.approx(0.08)


@pytest.mark.asyncio
async def test_mock_mode_matches_test_domains_and_url_terms():
    orchestrator = _orchestrator(mock_mode=True)

    by_domain = await orchestrator.scan("https://anything.test/")
    by_term = await orchestrator.scan("https://example.org/restore-SEED")

    assert by_domain.status == Status.DANGER
    assert by_domain.score == pytest.approx(0.7)
    assert by_term.status == Status.DANGER


@pytest.mark.asyncio
async def test_mock_mode_ignores_whitelist():
    orchestrator = _orchestrator(mock_mode=True, force_danger=True, whitelist=["example.com"])

    verdict = await orchestrator.scan("https://example.com/")

    assert verdict.status == Status.DANGER
    assert verdict.reason == "Mock Mode: forced danger for testing."


@pytest.mark.asyncio
async def test_invalid_url_raises_and_records_nothing():
    orchestrator = _orchestrator()

    with pytest.raises(InvalidURLError):
        await orchestrator.scan("not a url")

    assert await orchestrator.state.get_history() == []


@pytest.mark.asyncio
async def test_history_is_newest_first_and_capped():
    classifier = FakeClassifier({"probability": 0.1})
    state = StateStore(MemoryStore(), history_limit=3)
    orchestrator = ScanOrchestrator(state, Settings(), classifier_factory=lambda base_url: classifier)

    for i in range(5):
        await orchestrator.scan(f"https://site{i}.example/")

    history = await state.get_history()
    assert [v.domain for v in history] == ["site4.example", "site3.example", "site2.example"]
    assert len(await state.get_cache()) == 5


@pytest.mark.asyncio
async def test_rescanning_a_domain_replaces_cache_but_appends_history():
    classifier = FakeClassifier({"probability": 0.1})
    orchestrator = _orchestrator(classifier)

    await orchestrator.scan("https://example.com/a")
    classifier.payload = {"probability": 0.9}
    await orchestrator.scan("https://example.com/b")

    cached = await orchestrator.get_last_scan("https://example.com/")
    assert cached.status == Status.DANGER
    assert cached.url == "https://example.com/b"
    assert len(await orchestrator.state.get_history()) == 2


@pytest.mark.asyncio
async def test_overlapping_scans_last_finisher_wins():
    slow = FakeClassifier({"probability": 0.9}, delay=0.05)
    fast = FakeClassifier({"probability": 0.1})
    clients = iter([slow, fast])
    state = StateStore(MemoryStore())
    orchestrator = ScanOrchestrator(state, Settings(), classifier_factory=lambda base_url: next(clients))

    await asyncio.gather(
        orchestrator.scan("https://example.com/first"),
        orchestrator.scan("https://example.com/second"),
    )

    cached = await state.get_cached("example.com")
    assert cached.url == "https://example.com/first"
    assert len(await state.get_history()) == 2
