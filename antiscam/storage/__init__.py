"""Storage modules for the anti-scam verdict service."""

from .identity import InstallIdentity
from .kv import KeyValueStore, MemoryStore, SqliteStore
from .state import StateStore

__all__ = ["InstallIdentity", "KeyValueStore", "MemoryStore", "SqliteStore", "StateStore"]
