"""Market insight tools: conflict detection and verdict resolution."""

import logging
from datetime import datetime
from time import perf_counter
from typing import Any

from insight_mcp.conflicts import detect_conflicts
from insight_mcp.data.cache import VerdictCache, verdict_cache
from insight_mcp.models import (
    SET_THRESHOLDS,
    SignalBundle,
    ThresholdConfig,
    VerdictResult,
    parse_conflicts,
)
from insight_mcp.resolution import resolve_market_signals, resolve_signals
from insight_mcp.utils.normalize import build_verdict_snapshot, sanitize_nan_inf
from insight_mcp.utils.provenance import (
    build_error_response,
    build_meta,
    build_provenance,
    market_now,
)

logger = logging.getLogger(__name__)


def _signal_provenance(
    result: VerdictResult | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Provenance for caller-supplied signals, with a warning per defaulted input."""
    warnings: list[str] = []
    if result is not None:
        warnings = [
            f"{field} missing or not finite; scored as 0" for field in result.defaulted_inputs
        ]
    return build_provenance(
        source="caller_bundle",
        as_of=now or market_now(),
        warnings=warnings,
    )


async def detect_signal_conflicts(
    bundle: dict[str, Any],
    thresholds: ThresholdConfig | None = None,
) -> dict[str, Any]:
    """
    Detect conflicts between regime, smart-money and sector signals.

    Args:
        bundle: Signal bundle with regime, smart_money and sector sections
        thresholds: Threshold configuration (default: SET thresholds)

    Returns:
        Dict with conflicts, conflict_level and has_critical_conflict
    """
    start_time = perf_counter()

    try:
        signals = SignalBundle.from_dict(bundle)
    except ValueError as e:
        return build_error_response(error_type="invalid_input", message=str(e))

    report = detect_conflicts(signals, thresholds or SET_THRESHOLDS)

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("detect_signal_conflicts", duration_ms),
        "data_provenance": {"signals": _signal_provenance()},
        **report.to_dict(),
    }


async def resolve_verdict(
    bundle: dict[str, Any],
    conflicts: list[dict[str, Any]] | None = None,
    thresholds: ThresholdConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Resolve a signal bundle and an externally supplied conflict list.

    Args:
        bundle: Signal bundle with regime, smart_money and sector sections
        conflicts: Conflicts as returned by detect_signal_conflicts (optional)
        thresholds: Threshold configuration (default: SET thresholds)
        now: Injected clock (default: current time)

    Returns:
        Dict with the verdict and its resolution trace
    """
    start_time = perf_counter()

    try:
        signals = SignalBundle.from_dict(bundle)
        parsed_conflicts = parse_conflicts(conflicts)
    except ValueError as e:
        return build_error_response(error_type="invalid_input", message=str(e))

    result = resolve_signals(
        signals,
        parsed_conflicts,
        thresholds=thresholds or SET_THRESHOLDS,
        now=now,
    )

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("resolve_verdict", duration_ms),
        "data_provenance": {"signals": _signal_provenance(result, now)},
        "verdict": sanitize_nan_inf(result.to_dict()),
    }


async def analyze_market_signals(
    bundle: dict[str, Any],
    thresholds: ThresholdConfig | None = None,
    cache: VerdictCache | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Detect conflicts, resolve the verdict, and cache it as a resource.

    Args:
        bundle: Signal bundle with regime, smart_money and sector sections
        thresholds: Threshold configuration (default: SET thresholds)
        cache: Verdict cache (default: global cache)
        now: Injected clock (default: current time)

    Returns:
        Dict with conflicts, verdict, snapshot_hash and resource_uri
    """
    start_time = perf_counter()

    try:
        signals = SignalBundle.from_dict(bundle)
    except ValueError as e:
        return build_error_response(error_type="invalid_input", message=str(e))

    report, result = resolve_market_signals(
        signals,
        thresholds=thresholds or SET_THRESHOLDS,
        now=now,
    )

    payload = sanitize_nan_inf(
        {
            "conflicts": report.to_dict(),
            "verdict": result.to_dict(),
        }
    )
    snapshot_hash = build_verdict_snapshot(payload)["snapshot_hash"]
    uri = (cache if cache is not None else verdict_cache).store(snapshot_hash, payload)
    logger.debug(f"Cached verdict snapshot {uri}")

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("analyze_market_signals", duration_ms),
        "data_provenance": {"signals": _signal_provenance(result, now)},
        **payload,
        "snapshot_hash": snapshot_hash,
        "resource_uri": uri,
    }
