"""Verdict resource handler."""

from insight_mcp.data.cache import VerdictCache, verdict_cache


class ResourceNotFoundError(Exception):
    """Resource not found in cache."""

    pass


def read_verdict_resource(uri: str, cache: VerdictCache | None = None) -> tuple[str, str]:
    """
    Serve cached verdict JSON only. O(1), no recomputation.

    Args:
        uri: Resource URI (e.g., verdict://3f2a9c0d1e4b5a67)
        cache: Cache to read from (default: global verdict cache)

    Returns:
        Tuple of (json_text, mime_type)

    Raises:
        ResourceNotFoundError: If resource not in cache
    """
    json_text = (cache or verdict_cache).get_json(uri)

    if json_text is None:
        raise ResourceNotFoundError(
            f"Resource not cached. Call analyze_market_signals first: {uri}"
        )

    return json_text, "application/json"
