"""Stable per-install identifiers attached to user reports."""

from __future__ import annotations

import hashlib
import locale
import logging
import os
import platform
import secrets
import sys
import time

from ..constants import STORAGE_KEYS
from .kv import KeyValueStore

logger = logging.getLogger(__name__)


def generate_device_id() -> str:
    """SHA-256 over host characteristics (platform, locale, timezone, CPU count)."""
    components = [
        platform.system(),
        platform.release(),
        platform.machine(),
        platform.node(),
        platform.python_implementation(),
        sys.version.split()[0],
        locale.getlocale()[0] or "",
        ",".join(time.tzname),
        str(time.timezone),
        str(os.cpu_count() or ""),
    ]
    return hashlib.sha256("|".join(components).encode()).hexdigest()


def generate_user_id() -> str:
    return f"user_{secrets.token_hex(5)}{int(time.time() * 1000):x}"


class InstallIdentity:
    """Device and user identifiers, generated once and persisted."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def _get_or_create(self, key: str, factory) -> str:
        value = await self.kv.get(key)
        if isinstance(value, str) and value:
            return value
        value = factory()
        await self.kv.set(key, value)
        logger.info(f"Generated new {key}")
        return value

    async def device_id(self) -> str:
        return await self._get_or_create(STORAGE_KEYS["device_id"], generate_device_id)

    async def user_id(self) -> str:
        return await self._get_or_create(STORAGE_KEYS["user_id"], generate_user_id)
