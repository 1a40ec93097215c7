"""Data provenance and metadata utilities."""

from datetime import datetime
from typing import Any

import pytz

from insight_mcp import SCHEMA_VERSION, SERVER_VERSION

# Stock Exchange of Thailand trading timezone
SET_TIMEZONE = pytz.timezone("Asia/Bangkok")


def market_now() -> datetime:
    """Current time in the SET market timezone."""
    return datetime.now(SET_TIMEZONE)


def to_market_time(value: datetime) -> datetime:
    """Convert an aware datetime to SET time. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(SET_TIMEZONE)


def build_meta(tool: str, duration_ms: float | None = None) -> dict[str, Any]:
    """
    Build standard metadata block for responses.

    Args:
        tool: Name of the tool producing this response
        duration_ms: Execution time in milliseconds (optional)

    Returns:
        Metadata dict with version info
    """
    meta: dict[str, Any] = {
        "server_version": SERVER_VERSION,
        "schema_version": SCHEMA_VERSION,
        "tool": tool,
    }
    if duration_ms is not None:
        meta["duration_ms"] = round(duration_ms, 1)
    return meta


def build_provenance(
    source: str,
    as_of: datetime | str | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """
    Build data provenance block for a single data source.

    Args:
        source: Data source name (e.g., "caller_bundle", "cache")
        as_of: Timestamp of data freshness
        **kwargs: Additional provenance fields

    Returns:
        Provenance dict for this data source
    """
    prov: dict[str, Any] = {"source": source}

    if as_of is not None:
        if isinstance(as_of, datetime):
            prov["as_of"] = to_market_time(as_of).isoformat()
        else:
            prov["as_of"] = as_of

    prov.update(kwargs)

    # Ensure warnings list exists
    if "warnings" not in prov:
        prov["warnings"] = []

    return prov


def build_error_response(
    error_type: str,
    message: str,
    resource: str | None = None,
) -> dict[str, Any]:
    """
    Build standardized error response.

    Args:
        error_type: Type of error (invalid_input, not_found, internal_error)
        message: Human-readable error message
        resource: Resource URI or hash that caused the error (if applicable)

    Returns:
        Error response dict
    """
    response: dict[str, Any] = {
        "error": True,
        "error_type": error_type,
        "message": message,
        "meta": build_meta("error"),
    }

    if resource is not None:
        response["resource"] = resource

    return response
