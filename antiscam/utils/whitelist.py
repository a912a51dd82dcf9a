"""Whitelist file helpers."""

from __future__ import annotations

from pathlib import Path

from .domains import normalize_whitelist


def read_whitelist(path: Path) -> list[str]:
    """Read whitelist entries from disk (normalized, file order kept)."""
    if not path.exists():
        return []

    entries: list[str] = []
    for line in path.read_text().splitlines():
        value = line.strip()
        if not value or value.startswith("#"):
            continue
        entries.append(value)
    return normalize_whitelist(entries)
