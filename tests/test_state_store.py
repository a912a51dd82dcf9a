"""Tests for key-value stores, scan state and install identity."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from antiscam.config import ScanConfig
from antiscam.constants import STORAGE_KEYS, Status
from antiscam.models import Verdict
from antiscam.storage import InstallIdentity, MemoryStore, SqliteStore, StateStore


def _verdict(domain: str, status: Status = Status.SAFE, score: float = 0.1) -> Verdict:
    return Verdict(
        status=status,
        reason="test verdict",
        score=score,
        url=f"https://{domain}/",
        domain=domain,
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc),
        keyword_hits={"login": 1},
    )


@pytest.mark.asyncio
async def test_memory_store_copies_values():
    kv = MemoryStore()
    value = {"a": [1, 2]}
    await kv.set("k", value)
    value["a"].append(3)

    assert await kv.get("k") == {"a": [1, 2]}
    assert await kv.get("missing", "fallback") == "fallback"

    await kv.delete("k")
    assert await kv.get("k") is None


@pytest.mark.asyncio
async def test_sqlite_store_persists_across_connections(tmp_path):
    db_path = tmp_path / "nested" / "antiscam.db"
    kv = SqliteStore(db_path)
    await kv.connect()
    await kv.set("k", {"v": 1})
    await kv.set("k", {"v": 2})
    await kv.close()

    reopened = SqliteStore(db_path)
    await reopened.connect()
    assert await reopened.get("k") == {"v": 2}
    await reopened.delete("k")
    assert await reopened.get("k") is None
    await reopened.close()


@pytest.mark.asyncio
async def test_sqlite_store_discards_corrupt_values(tmp_path):
    kv = SqliteStore(tmp_path / "antiscam.db")
    await kv.connect()
    await kv._connection.execute("INSERT INTO kv (key, value) VALUES (?, ?)", ("bad", "{nope"))
    await kv._connection.commit()

    assert await kv.get("bad", default=[]) == []
    await kv.close()


@pytest.mark.asyncio
async def test_sqlite_store_requires_connect(tmp_path):
    kv = SqliteStore(tmp_path / "antiscam.db")
    with pytest.raises(RuntimeError):
        await kv.get("k")


@pytest.mark.asyncio
async def test_history_cap_evicts_oldest(tmp_path):
    kv = SqliteStore(tmp_path / "antiscam.db")
    await kv.connect()
    state = StateStore(kv)

    for i in range(201):
        length = await state.push_history(_verdict(f"site{i}.example"))

    history = await state.get_history()
    assert length == 200
    assert len(history) == 200
    assert history[0].domain == "site200.example"
    assert history[-1].domain == "site1.example"
    assert [v.domain for v in await state.get_history(limit=2)] == ["site200.example", "site199.example"]
    await kv.close()


@pytest.mark.asyncio
async def test_record_writes_cache_last_scan_and_history():
    state = StateStore(MemoryStore())
    verdict = _verdict("example.com", Status.WARNING, 0.7)

    await state.record(verdict)

    cached = await state.get_cached("example.com")
    assert cached == verdict
    assert await state.get_last_scan() == verdict
    assert await state.get_history() == [verdict]


@pytest.mark.asyncio
async def test_clear_all_resets_state():
    state = StateStore(MemoryStore())
    await state.record(_verdict("a.example"))
    await state.record(_verdict("b.example"))
    await state.record(_verdict("a.example"))

    counts = await state.clear_all()

    assert counts == {"cache_cleared": 2, "history_cleared": 3}
    assert await state.get_cache() == {}
    assert await state.get_history() == []
    assert await state.get_last_scan() is None


@pytest.mark.asyncio
async def test_clear_cache_keeps_history():
    state = StateStore(MemoryStore())
    await state.record(_verdict("a.example"))

    assert await state.clear_cache() == 1
    assert await state.get_cached("a.example") is None
    assert len(await state.get_history()) == 1


@pytest.mark.asyncio
async def test_config_defaults_and_patches():
    kv = MemoryStore()
    state = StateStore(kv, default_config=ScanConfig(api_base_url="http://classifier.local"))

    initial = await state.ensure_config()
    assert initial.api_base_url == "http://classifier.local"
    assert initial.auto_protection is True
    assert await kv.get(STORAGE_KEYS["config"]) == initial.to_dict()

    saved = await state.save_config({"mock_mode": True, "whitelist": ["https://www.Bank.example/"]})
    assert saved.mock_mode is True
    assert saved.whitelist == ["bank.example"]

    saved = await state.save_config({"auto_protection": False, "unknown": 1})
    assert saved.mock_mode is True
    assert saved.auto_protection is False
    assert saved.whitelist == ["bank.example"]
    assert "unknown" not in saved.to_dict()

    assert (await state.ensure_config()).auto_protection is False


@pytest.mark.asyncio
async def test_stored_config_missing_fields_gets_defaults():
    kv = MemoryStore()
    await kv.set(STORAGE_KEYS["config"], {"mock_mode": True})
    state = StateStore(kv)

    config = await state.get_config()

    assert config.mock_mode is True
    assert config.auto_protection is True
    assert config.whitelist == []


@pytest.mark.asyncio
async def test_install_identity_is_generated_once():
    kv = MemoryStore()
    identity = InstallIdentity(kv)

    device_id = await identity.device_id()
    user_id = await identity.user_id()

    assert len(device_id) == 64
    assert user_id.startswith("user_")
    assert await InstallIdentity(kv).device_id() == device_id
    assert await InstallIdentity(kv).user_id() == user_id
