"""Critical conflict gate.

Some conflicts are severe enough that weighting the signals is pointless.
A gate returns a fixed verdict before any rule or score is evaluated.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from insight_mcp.models import (
    PROP_TRADING_NOISE,
    Conflict,
    Conviction,
    PrimaryDriver,
    SectorFocus,
    SignalBundle,
    Verdict,
    VerdictResult,
)
from insight_mcp.resolution.explain import epoch_millis, snapshot_signals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CriticalGate:
    conflict_type: str
    explanation: str
    actionable_takeaway: str
    reasoning: tuple[str, ...]
    verdict: Verdict = Verdict.WAIT
    confidence: int = 30


# Evaluated in order; the first gate whose conflict type is present wins
CRITICAL_CONFLICT_GATES: tuple[CriticalGate, ...] = (
    CriticalGate(
        conflict_type=PROP_TRADING_NOISE,
        explanation="High prop trading noise detected",
        actionable_takeaway=(
            "Wait for prop trading activity to normalize before making trading decisions"
        ),
        reasoning=(
            "Prop trading accounts for >40% of total flow",
            "This creates excessive noise in market signals",
            "Wait for prop trading to subside for clearer signals",
        ),
    ),
)


def check_critical_conflicts(
    bundle: SignalBundle,
    conflicts: Sequence[Conflict],
    *,
    gates: Sequence[CriticalGate] = CRITICAL_CONFLICT_GATES,
    now: datetime | None = None,
) -> VerdictResult | None:
    """
    Short-circuit to a fixed verdict when a critical conflict is present.

    Args:
        bundle: Upstream signals (only snapshotted, never scored)
        conflicts: Detected conflicts
        gates: Gate table
        now: Injected clock for the timestamp

    Returns:
        Fixed VerdictResult for the first matching gate, or None to continue
        with normal resolution
    """
    for gate in gates:
        conflict = next((c for c in conflicts if c.type == gate.conflict_type), None)
        if conflict is None:
            continue

        logger.info(f"Critical conflict gate triggered: {gate.conflict_type}")
        return VerdictResult(
            verdict=gate.verdict,
            conviction=Conviction.LOW,
            primary_driver=PrimaryDriver.NONE,
            sector_focus=SectorFocus.NEUTRAL,
            confidence=gate.confidence,
            reasoning=gate.reasoning,
            explanation=gate.explanation,
            actionable_takeaway=gate.actionable_takeaway,
            conflicting_signals=snapshot_signals(bundle),
            timestamp=epoch_millis(now),
            key_conflict_alert=conflict.description or None,
        )

    return None
