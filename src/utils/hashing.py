"""Stable md5 keys used for cache entries, job ids and crawled page ids."""

from __future__ import annotations

import hashlib


def md5_hex(*parts: object) -> str:
    """Return the hex md5 digest of *parts* concatenated as strings."""
    joined = "".join(str(p) for p in parts)
    return hashlib.md5(joined.encode("utf-8")).hexdigest()  # noqa: S324 -- identity key, not security
