"""Resource caching for resolved verdicts."""

import gzip
import os
import re
from datetime import datetime, timezone
from typing import Any

import diskcache

from insight_mcp.utils.normalize import canonical_dumps

VERDICT_URI_PREFIX = "verdict://"
_SNAPSHOT_HASH_RE = re.compile(r"^[0-9a-f]{16}$")


def verdict_uri(snapshot_hash: str) -> str:
    """
    Build the canonical resource URI for a snapshot hash.

    Raises:
        ValueError: If snapshot_hash is not 16 lowercase hex chars
    """
    if not _SNAPSHOT_HASH_RE.match(snapshot_hash):
        raise ValueError(f"Invalid snapshot hash '{snapshot_hash}': expected 16 hex characters")
    return f"{VERDICT_URI_PREFIX}{snapshot_hash}"


class VerdictCache:
    """
    Cache stores exact JSON text for O(1) deterministic serving.

    Resources only serve cached verdicts. Never recompute.
    """

    def __init__(self, cache_dir: str | None = None):
        if cache_dir is None:
            cache_dir = os.environ.get("CACHE_DIR", ".cache/verdicts")
        self.cache: diskcache.Cache = diskcache.Cache(cache_dir)
        # 60s matches how long a market signal snapshot stays fresh
        self._default_ttl = int(os.environ.get("CACHE_TTL", "60"))

    def store(
        self,
        snapshot_hash: str,
        payload: dict[str, Any],
        ttl: int | None = None,
    ) -> str:
        """
        Store gzipped canonical JSON + metadata, return canonical URI.

        Args:
            snapshot_hash: Hash from build_verdict_snapshot (used as the key)
            payload: JSON-safe verdict payload to serve
            ttl: Cache TTL in seconds (default: CACHE_TTL)

        Returns:
            Canonical URI for the cached verdict
        """
        uri = verdict_uri(snapshot_hash)

        json_bytes = canonical_dumps(payload).encode("utf-8")
        json_gz = gzip.compress(json_bytes)

        entry: dict[str, Any] = {
            "json_gz": json_gz,
            "encoding": "gzip",
            "size_bytes": len(json_bytes),
            "compressed_bytes": len(json_gz),
            "hash": snapshot_hash,
            "stored_at": datetime.now(timezone.utc).isoformat(),
        }

        expire = ttl if ttl is not None else self._default_ttl
        self.cache.set(uri, entry, expire=expire)

        return uri

    def get(self, uri: str) -> dict[str, Any] | None:
        """Get cache entry by URI, or None if missing or expired."""
        return self.cache.get(uri)

    def get_json(self, uri: str) -> str | None:
        """
        Get decompressed JSON text by URI.

        Args:
            uri: Canonical URI

        Returns:
            JSON text or None if not found
        """
        entry = self.get(uri)
        if not entry:
            return None
        return gzip.decompress(entry["json_gz"]).decode("utf-8")

    def get_metadata(self, uri: str) -> dict[str, Any] | None:
        entry = self.get(uri)
        if not entry:
            return None
        return {
            "size_bytes": entry["size_bytes"],
            "hash": entry["hash"],
            "stored_at": entry["stored_at"],
        }

    def exists(self, uri: str) -> bool:
        """Check if URI exists in cache."""
        return uri in self.cache

    def clear(self) -> None:
        """Clear all cached data."""
        self.cache.clear()


# Global instance
verdict_cache = VerdictCache()
