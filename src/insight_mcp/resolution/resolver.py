"""Verdict resolution pipeline.

Runs the critical conflict gate, the priority rules, weighted scoring and
explanation assembly in that order. Every stage is a pure function of its
inputs apart from the wall-clock timestamp, which can be injected.
"""

import logging
import math
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from insight_mcp.conflicts import detect_conflicts
from insight_mcp.models import (
    DEFAULT_WEIGHTS,
    SET_THRESHOLDS,
    Conflict,
    ConflictReport,
    SectorFocus,
    SignalBundle,
    ThresholdConfig,
    Verdict,
    VerdictResult,
    WeightVector,
)
from insight_mcp.resolution.explain import build_result
from insight_mcp.resolution.gate import (
    CRITICAL_CONFLICT_GATES,
    CriticalGate,
    check_critical_conflicts,
)
from insight_mcp.resolution.rules import RESOLUTION_RULES, ResolutionRule, apply_resolution_rules
from insight_mcp.resolution.scoring import calculate_verdict

logger = logging.getLogger(__name__)

VALID_VERDICTS = frozenset(v.value for v in Verdict)
WEIGHT_KEYS = frozenset(DEFAULT_WEIGHTS.as_dict())


def resolve_signals(
    bundle: SignalBundle,
    conflicts: Sequence[Conflict] = (),
    *,
    weights: WeightVector = DEFAULT_WEIGHTS,
    thresholds: ThresholdConfig = SET_THRESHOLDS,
    rules: Sequence[ResolutionRule] = RESOLUTION_RULES,
    gates: Sequence[CriticalGate] = CRITICAL_CONFLICT_GATES,
    now: datetime | None = None,
) -> VerdictResult:
    """
    Resolve a signal bundle and its conflicts into a single verdict.

    Args:
        bundle: Upstream regime, smart-money and sector signals
        conflicts: Conflicts detected for this bundle (may be empty)
        weights: Starting weight vector
        thresholds: Threshold configuration
        rules: Resolution rule table
        gates: Critical conflict gate table
        now: Injected clock for the timestamp (default: current UTC time)

    Returns:
        VerdictResult. A critical conflict short-circuits to a fixed WAIT.
    """
    gated = check_critical_conflicts(bundle, conflicts, gates=gates, now=now)
    if gated is not None:
        _validate_verdict_invariants(gated.to_dict())
        return gated

    resolution = apply_resolution_rules(
        bundle, conflicts, rules=rules, weights=weights, thresholds=thresholds
    )
    scored = calculate_verdict(bundle, resolution, thresholds=thresholds)
    result = build_result(bundle, scored, conflicts, resolution, now=now)

    logger.info(
        f"Verdict {result.verdict.value} ({result.conviction.value} conviction, "
        f"confidence {result.confidence}) driven by {result.primary_driver.value}"
    )
    _validate_verdict_invariants(result.to_dict())
    return result


def resolve_market_signals(
    bundle: SignalBundle,
    *,
    thresholds: ThresholdConfig = SET_THRESHOLDS,
    now: datetime | None = None,
) -> tuple[ConflictReport, VerdictResult]:
    """Detect conflicts for a bundle and resolve it in one call."""
    report = detect_conflicts(bundle, thresholds)
    result = resolve_signals(bundle, report.conflicts, thresholds=thresholds, now=now)
    return report, result


def _validate_verdict_invariants(verdict: dict[str, Any]) -> None:
    """
    Validate invariants between verdict, sector focus, resolution and defaults.

    Invariants enforced:
    1. verdict is one of PROCEED, CAUTION, NEUTRAL, WAIT
    2. confidence is an integer in [0, 100]
    3. Overweight focus only with PROCEED, Underweight only with CAUTION
    4. At most one resolution rule applied
    5. special_cases present only if a rule was applied
    6. weights cover exactly the four signals, each finite and non-negative
    7. used_defaults agrees with defaulted_inputs

    Logs warnings for violations rather than raising (production-safe).
    """
    violations: list[str] = []

    verdict_value = verdict.get("verdict")
    if verdict_value not in VALID_VERDICTS:
        violations.append(f"verdict={verdict_value!r} is not a known verdict")

    confidence = verdict.get("confidence")
    if not isinstance(confidence, int) or isinstance(confidence, bool):
        violations.append(f"confidence={confidence!r} is not an integer")
    elif not 0 <= confidence <= 100:
        violations.append(f"confidence={confidence} outside [0, 100]")

    sector_focus = verdict.get("sector_focus")
    if sector_focus == SectorFocus.OVERWEIGHT.value and verdict_value != Verdict.PROCEED.value:
        violations.append(f"sector_focus=Overweight but verdict={verdict_value}")
    if sector_focus == SectorFocus.UNDERWEIGHT.value and verdict_value != Verdict.CAUTION.value:
        violations.append(f"sector_focus=Underweight but verdict={verdict_value}")

    resolution = verdict.get("resolution") or {}
    applied_rules = resolution.get("applied_rules") or []
    special_cases = resolution.get("special_cases") or []
    if len(applied_rules) > 1:
        violations.append(f"multiple rules applied: {applied_rules}")
    if special_cases and not applied_rules:
        violations.append(f"special_cases={special_cases} but no rule applied")

    weights = resolution.get("weights")
    if weights is not None:
        if set(weights) != WEIGHT_KEYS:
            violations.append(f"weights keys {sorted(weights)} != {sorted(WEIGHT_KEYS)}")
        for name, weight in weights.items():
            if not isinstance(weight, (int, float)) or not math.isfinite(weight) or weight < 0:
                violations.append(f"weights.{name}={weight!r} is not a finite non-negative number")

    defaulted_inputs = verdict.get("defaulted_inputs") or []
    if bool(defaulted_inputs) != bool(verdict.get("used_defaults")):
        violations.append(
            f"used_defaults={verdict.get('used_defaults')} "
            f"but defaulted_inputs={defaulted_inputs}"
        )

    for violation in violations:
        logger.warning(f"Verdict invariant violation: {violation}")
