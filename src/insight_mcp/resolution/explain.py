"""Explanation, actionable takeaway, and signal snapshot composition."""

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from types import MappingProxyType

from insight_mcp.models import (
    Conflict,
    ResolutionContext,
    ScoredVerdict,
    SectorFocus,
    SignalBundle,
    SignalValue,
    Verdict,
    VerdictResult,
)
from insight_mcp.resolution.scoring import format_number
from insight_mcp.utils.validators import finite_or_none

MAX_FOCUS_SECTORS = 3
MAX_AVOID_SECTORS = 2


def epoch_millis(now: datetime | None = None) -> int:
    """Wall-clock timestamp in epoch milliseconds. The only non-deterministic output."""
    if now is None:
        now = datetime.now(timezone.utc)
    return int(now.timestamp() * 1000)


def format_conflict_alert(conflicts: Sequence[Conflict]) -> str | None:
    """Join all conflict descriptions, in detection order. None if there are none."""
    descriptions = [c.description for c in conflicts if c.description]
    if not descriptions:
        return None
    return "; ".join(descriptions)


def _foreign_flow_label(foreign_net: float | None) -> str:
    net = finite_or_none(foreign_net)
    if net is None:
        return "Unknown"
    if net > 0:
        return "Net Buy"
    if net < 0:
        return "Net Sell"
    return "Flat"


def snapshot_signals(bundle: SignalBundle) -> Mapping[str, SignalValue]:
    """
    Capture each input signal's value and strength metric verbatim.

    Foreign confidence is |net flow| / 10, capped at 100. Its value is the
    foreign investor strength label when a breakdown is supplied, else the
    flow direction.
    """
    smart_money = bundle.smart_money
    foreign_investor = smart_money.investors.get("foreign")
    foreign_net = finite_or_none(smart_money.foreign_net_flow)

    return MappingProxyType(
        {
            "regime": SignalValue(bundle.regime.type.value, bundle.regime.confidence),
            "smart_money": SignalValue(smart_money.combined_signal, smart_money.confidence),
            "sector": SignalValue(bundle.sector.pattern, bundle.sector.concentration),
            "foreign": SignalValue(
                (
                    foreign_investor.strength
                    if foreign_investor is not None
                    else _foreign_flow_label(foreign_net)
                ),
                min(100.0, abs(foreign_net) / 10) if foreign_net is not None else None,
            ),
        }
    )


def generate_explanation(
    bundle: SignalBundle,
    scored: ScoredVerdict,
    key_conflict_alert: str | None,
) -> str:
    parts = [
        f"{scored.primary_driver.value} is the primary driver.",
        f"Market regime is {bundle.regime.type.value} "
        f"with {format_number(bundle.regime.confidence)}% confidence.",
        f"Smart money score is {format_number(bundle.smart_money.score)}/100 "
        f"with signal: {bundle.smart_money.combined_signal}.",
        f"Sector pattern shows {bundle.sector.pattern}.",
    ]
    if key_conflict_alert:
        parts.append(f"Key conflict: {key_conflict_alert}")
    return " ".join(parts)


# ---------------- Takeaway templates ----------------


def _proceed_takeaway(scored: ScoredVerdict, bundle: SignalBundle) -> str:
    focus = bundle.sector.focus_sectors
    if scored.sector_focus is SectorFocus.OVERWEIGHT and focus:
        return (
            f"Consider overweight positions in {', '.join(focus[:MAX_FOCUS_SECTORS])}. "
            f"Driven by {scored.primary_driver.value}."
        )
    return (
        f"Proceed with trades. Driven by {scored.primary_driver.value}. "
        "Maintain standard position sizing."
    )


def _caution_takeaway(scored: ScoredVerdict, bundle: SignalBundle) -> str:
    avoid = bundle.sector.avoid_sectors
    if scored.sector_focus is SectorFocus.UNDERWEIGHT and avoid:
        return f"Reduce exposure to {', '.join(avoid[:MAX_AVOID_SECTORS])}. Use tighter stops."
    return "Exercise caution with new positions. Consider reducing position sizes by 25-50%."


def _wait_takeaway(scored: ScoredVerdict, bundle: SignalBundle) -> str:
    return (
        "Wait for clearer signals. Current market conditions are too ambiguous "
        "for high-conviction trades."
    )


def _neutral_takeaway(scored: ScoredVerdict, bundle: SignalBundle) -> str:
    return "Market signals are mixed. Hold existing positions and wait for directional clarity."


TAKEAWAY_TEMPLATES: dict[Verdict, Callable[[ScoredVerdict, SignalBundle], str]] = {
    Verdict.PROCEED: _proceed_takeaway,
    Verdict.CAUTION: _caution_takeaway,
    Verdict.WAIT: _wait_takeaway,
    Verdict.NEUTRAL: _neutral_takeaway,
}


def generate_actionable_takeaway(scored: ScoredVerdict, bundle: SignalBundle) -> str:
    return TAKEAWAY_TEMPLATES[scored.verdict](scored, bundle)


def build_result(
    bundle: SignalBundle,
    scored: ScoredVerdict,
    conflicts: Sequence[Conflict],
    resolution: ResolutionContext,
    *,
    now: datetime | None = None,
) -> VerdictResult:
    """
    Assemble the final VerdictResult from the scored verdict.

    Args:
        bundle: Upstream signals
        scored: Output of calculate_verdict
        conflicts: Detected conflicts (all descriptions feed the alert)
        resolution: Output of apply_resolution_rules
        now: Injected clock for the timestamp (default: current UTC time)

    Returns:
        Complete VerdictResult
    """
    key_conflict_alert = format_conflict_alert(conflicts)

    return VerdictResult(
        verdict=scored.verdict,
        conviction=scored.conviction,
        primary_driver=scored.primary_driver,
        sector_focus=scored.sector_focus,
        confidence=scored.confidence,
        reasoning=scored.reasoning,
        explanation=generate_explanation(bundle, scored, key_conflict_alert),
        actionable_takeaway=generate_actionable_takeaway(scored, bundle),
        conflicting_signals=snapshot_signals(bundle),
        timestamp=epoch_millis(now),
        key_conflict_alert=key_conflict_alert,
        resolution=resolution,
        normalized_score=scored.normalized_score,
        defaulted_inputs=scored.defaulted_inputs,
    )
