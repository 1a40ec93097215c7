"""Data layer for caching resolved verdicts."""

from insight_mcp.data.cache import VERDICT_URI_PREFIX, VerdictCache, verdict_cache, verdict_uri

__all__ = [
    "VERDICT_URI_PREFIX",
    "VerdictCache",
    "verdict_cache",
    "verdict_uri",
]
