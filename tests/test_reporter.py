"""Tests for user report submission."""

import pytest

from antiscam.reporter import ClassifierReporter, ReportStatus
from antiscam.storage import InstallIdentity, MemoryStore


class _FakeResponse:
    def __init__(self, *, status_code: int, text: str = "", json_data: object = None, headers=None):
        self.status_code = status_code
        self.text = text
        self._json_data = json_data
        self.headers = headers if headers is not None else {}
        if json_data is not None:
            self.headers.setdefault("content-type", "application/json")

    def json(self):  # noqa: ANN201
        if self._json_data is None:
            raise ValueError("No JSON configured for fake response")
        return self._json_data


class _FakeAsyncClient:
    def __init__(self, response: _FakeResponse | None = None, *, error: Exception | None = None):
        self._response = response
        self._error = error
        self.post_calls: list[tuple[str, dict]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url: str, *args, json=None, **kwargs):
        self.post_calls.append((url, json))
        if self._error is not None:
            raise self._error
        return self._response


def _install(monkeypatch, client: _FakeAsyncClient) -> _FakeAsyncClient:
    import httpx

    monkeypatch.setattr(httpx, "AsyncClient", lambda *args, **kwargs: client)
    return client


def _reporter() -> ClassifierReporter:
    return ClassifierReporter("http://classifier.local/", InstallIdentity(MemoryStore()))


@pytest.mark.asyncio
async def test_accepted_report_returns_risk_level(monkeypatch):
    client = _install(
        monkeypatch,
        _FakeAsyncClient(
            _FakeResponse(
                status_code=200,
                json_data={"success": True, "risk_level": "high", "report_count": 4},
            )
        ),
    )

    result = await _reporter().submit("https://phish.example/login", "")

    assert result.status == ReportStatus.SUBMITTED
    assert result.success is True
    assert result.risk_level == "high"
    assert result.report_count == 4
    assert result.submitted_at is not None

    url, payload = client.post_calls[0]
    assert url == "http://classifier.local/report"
    assert payload["link"] == "https://phish.example/login"
    assert payload["reason"] == "Reported by user"
    assert payload["device_id"]
    assert payload["user_id"].startswith("user_")


@pytest.mark.asyncio
async def test_identity_is_stable_across_reports(monkeypatch):
    client = _install(
        monkeypatch,
        _FakeAsyncClient(_FakeResponse(status_code=200, json_data={"success": True})),
    )
    reporter = _reporter()

    await reporter.submit("https://a.example/")
    await reporter.submit("https://b.example/", "fake bank")

    first, second = (payload for _, payload in client.post_calls)
    assert first["device_id"] == second["device_id"]
    assert first["user_id"] == second["user_id"]
    assert second["reason"] == "fake bank"


@pytest.mark.asyncio
async def test_backend_rejection_is_failure(monkeypatch):
    _install(
        monkeypatch,
        _FakeAsyncClient(
            _FakeResponse(status_code=200, json_data={"success": False, "message": "Already reported"})
        ),
    )

    result = await _reporter().submit("https://phish.example/")

    assert result.status == ReportStatus.FAILED
    assert result.message == "Already reported"


@pytest.mark.asyncio
async def test_non_json_success_body_is_not_accepted(monkeypatch):
    _install(monkeypatch, _FakeAsyncClient(_FakeResponse(status_code=200, text="thanks")))

    result = await _reporter().submit("https://phish.example/")

    assert result.success is False
    assert result.message == "thanks"


@pytest.mark.asyncio
async def test_http_error_status_is_failure(monkeypatch):
    _install(monkeypatch, _FakeAsyncClient(_FakeResponse(status_code=500, text="boom")))

    result = await _reporter().submit("https://phish.example/")

    assert result.status == ReportStatus.FAILED
    assert result.message == "Report failed: API error 500"


@pytest.mark.asyncio
async def test_rate_limit_carries_retry_after(monkeypatch):
    _install(
        monkeypatch,
        _FakeAsyncClient(_FakeResponse(status_code=429, headers={"Retry-After": "120"})),
    )

    result = await _reporter().submit("https://phish.example/")

    assert result.status == ReportStatus.RATE_LIMITED
    assert result.retry_after == 120


@pytest.mark.asyncio
async def test_transport_error_is_reported_not_raised(monkeypatch):
    import httpx

    _install(monkeypatch, _FakeAsyncClient(error=httpx.ConnectError("refused")))

    result = await _reporter().submit("https://phish.example/")

    assert result.status == ReportStatus.FAILED
    assert result.message.startswith("Report failed:")


@pytest.mark.asyncio
async def test_invalid_link_is_rejected_before_sending(monkeypatch):
    client = _install(monkeypatch, _FakeAsyncClient())

    result = await _reporter().submit("   ")
    assert result.message == "Link is required"

    result = await _reporter().submit("phish.example")
    assert result.message == "Link must be an absolute URL"
    assert client.post_calls == []
