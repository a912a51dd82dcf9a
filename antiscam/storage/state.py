"""Persisted scan state: config, per-domain cache, history and last-scan pointer."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import ScanConfig
from ..constants import DEFAULT_HISTORY_LIMIT, STORAGE_KEYS
from ..models import Verdict
from .kv import KeyValueStore

logger = logging.getLogger(__name__)


class StateStore:
    """
    Typed access to scan state held in a KeyValueStore.

    Every method is a discrete read or read-then-write of one key; there is
    no transaction across keys.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        default_config: Optional[ScanConfig] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.kv = kv
        self.default_config = default_config or ScanConfig()
        self.history_limit = history_limit

    # -- config -------------------------------------------------------------

    async def get_config(self) -> ScanConfig:
        """Stored config merged over defaults so new fields are never absent."""
        stored = await self.kv.get(STORAGE_KEYS["config"])
        return ScanConfig.merged(self.default_config, stored)

    async def ensure_config(self) -> ScanConfig:
        """Write the default config on first run."""
        stored = await self.kv.get(STORAGE_KEYS["config"])
        if stored is None:
            config = ScanConfig.merged(self.default_config)
            await self.kv.set(STORAGE_KEYS["config"], config.to_dict())
            logger.info("Initialized default configuration")
            return config
        return ScanConfig.merged(self.default_config, stored)

    async def save_config(self, patch: Optional[dict]) -> ScanConfig:
        """Apply a partial update to the current config and persist it."""
        current = await self.get_config()
        merged = ScanConfig.merged(self.default_config, current.to_dict(), patch)
        await self.kv.set(STORAGE_KEYS["config"], merged.to_dict())
        return merged

    # -- domain cache -------------------------------------------------------

    async def get_cache(self) -> dict[str, Verdict]:
        raw = await self.kv.get(STORAGE_KEYS["cache_by_domain"]) or {}
        cache: dict[str, Verdict] = {}
        for domain, data in raw.items():
            if isinstance(data, dict):
                cache[domain] = Verdict.from_dict(data)
        return cache

    async def get_cached(self, domain: str) -> Optional[Verdict]:
        raw = await self.kv.get(STORAGE_KEYS["cache_by_domain"]) or {}
        data = raw.get(domain)
        return Verdict.from_dict(data) if isinstance(data, dict) else None

    async def set_cached(self, verdict: Verdict) -> None:
        raw = await self.kv.get(STORAGE_KEYS["cache_by_domain"]) or {}
        raw[verdict.domain] = verdict.to_dict()
        await self.kv.set(STORAGE_KEYS["cache_by_domain"], raw)

    async def clear_cache(self) -> int:
        """Drop every cached verdict; returns how many were removed."""
        raw = await self.kv.get(STORAGE_KEYS["cache_by_domain"]) or {}
        await self.kv.set(STORAGE_KEYS["cache_by_domain"], {})
        return len(raw)

    # -- last scan ----------------------------------------------------------

    async def get_last_scan(self) -> Optional[Verdict]:
        data = await self.kv.get(STORAGE_KEYS["last_scan"])
        return Verdict.from_dict(data) if isinstance(data, dict) else None

    async def set_last_scan(self, verdict: Verdict) -> None:
        await self.kv.set(STORAGE_KEYS["last_scan"], verdict.to_dict())

    async def clear_last_scan(self) -> None:
        await self.kv.delete(STORAGE_KEYS["last_scan"])

    # -- history ------------------------------------------------------------

    async def get_history(self, limit: Optional[int] = None) -> list[Verdict]:
        raw = await self.kv.get(STORAGE_KEYS["history"]) or []
        if limit is not None:
            raw = raw[: max(limit, 0)]
        return [Verdict.from_dict(item) for item in raw if isinstance(item, dict)]

    async def push_history(self, verdict: Verdict) -> int:
        """Prepend a verdict, evicting the oldest beyond the cap. Returns the new length."""
        raw = await self.kv.get(STORAGE_KEYS["history"]) or []
        raw.insert(0, verdict.to_dict())
        del raw[self.history_limit:]
        await self.kv.set(STORAGE_KEYS["history"], raw)
        return len(raw)

    async def clear_history(self) -> int:
        raw = await self.kv.get(STORAGE_KEYS["history"]) or []
        await self.kv.set(STORAGE_KEYS["history"], [])
        return len(raw)

    # -- composite ----------------------------------------------------------

    async def record(self, verdict: Verdict) -> None:
        """Write a scan result: cache, then last-scan pointer, then history."""
        await self.set_cached(verdict)
        await self.set_last_scan(verdict)
        await self.push_history(verdict)

    async def clear_all(self) -> dict:
        cache_cleared = await self.clear_cache()
        history_cleared = await self.clear_history()
        await self.clear_last_scan()
        return {"cache_cleared": cache_cleared, "history_cleared": history_cleared}
