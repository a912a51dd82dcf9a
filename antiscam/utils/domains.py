"""Domain extraction and whitelist matching."""

from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import urlparse

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://")


def extract_domain(url: str) -> Optional[str]:
    """
    Return the host name of an absolute URL, or None if it has none.

    The host is lowercased with any trailing dot removed; "www." and the
    port are kept because the host is the cache key.
    """
    raw = (url or "").strip()
    if not raw:
        return None
    try:
        parsed = urlparse(raw)
        host = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not host:
        return None
    host = host.strip(".")
    return host or None


def normalize_whitelist_entry(value: str) -> str:
    """
    Normalize a whitelist entry or URL to a bare comparable host.

    - Lowercase
    - Strip leading scheme
    - Ignore path/query/fragment
    - Strip port
    - Strip leading "www."
    """
    host = (value or "").strip().lower()
    host = _SCHEME_RE.sub("", host)
    host = re.split(r"[/?#]", host, maxsplit=1)[0]
    if "@" in host:
        host = host.rsplit("@", 1)[1]
    host = host.split(":", 1)[0].strip(".")
    if host.startswith("www.") and len(host) > 4:
        host = host[4:]
    return host


def normalize_whitelist(entries: Iterable[str] | None) -> list[str]:
    """Normalize and de-duplicate entries, keeping first-seen order."""
    normalized: list[str] = []
    for entry in entries or []:
        if not isinstance(entry, str):
            continue
        value = normalize_whitelist_entry(entry)
        if value and value not in normalized:
            normalized.append(value)
    return normalized


def is_whitelisted(url: str, entries: Iterable[str] | None) -> bool:
    """Check whether the URL's domain equals any whitelist entry after normalization."""
    domain = extract_domain(url) or url
    candidate = normalize_whitelist_entry(domain)
    if not candidate:
        return False
    return any(
        normalize_whitelist_entry(entry) == candidate
        for entry in entries or []
        if isinstance(entry, str)
    )
