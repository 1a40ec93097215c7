"""Score aggregation and verdict classification."""

import logging
import math
import operator

from insight_mcp.models import (
    SET_THRESHOLDS,
    Conviction,
    PrimaryDriver,
    RegimeSignal,
    RegimeType,
    ResolutionContext,
    ScoredVerdict,
    SectorFocus,
    SignalBundle,
    ThresholdConfig,
    Verdict,
    WeightVector,
)
from insight_mcp.utils.validators import check_rule, finite_or_none, finite_or_zero

logger = logging.getLogger(__name__)

REGIME_BASE_SCORES = {
    RegimeType.RISK_ON: 75.0,
    RegimeType.NEUTRAL: 50.0,
    RegimeType.RISK_OFF: 25.0,
}

NO_CLEAR_PATTERN = "Mixed/No Clear Pattern"

# (minimum normalized score, verdict), checked top-down
VERDICT_BANDS: tuple[tuple[float, Verdict], ...] = (
    (65.0, Verdict.PROCEED),
    (45.0, Verdict.CAUTION),
    (30.0, Verdict.NEUTRAL),
)

# Markers in special-case tags that cap conviction at Low
LOW_CONVICTION_MARKERS = ("noise", "conflict")


def format_number(value: float | None) -> str:
    """Render 75.0 as '75' and 37.5 as '37.5' at full precision; missing values as 'n/a'."""
    number = finite_or_none(value)
    if number is None:
        return "n/a"
    text = repr(number)
    if text.endswith(".0"):
        text = text[:-2]
    return text


class _DefaultTracker:
    """Reads numeric inputs, recording which ones were defaulted to 0."""

    def __init__(self) -> None:
        self.fields: list[str] = []

    def read(self, value: float | None, field: str) -> float:
        number = finite_or_none(value)
        if number is None:
            if field not in self.fields:
                self.fields.append(field)
            return 0.0
        return number


# ============================================================================
# SUB-SCORES
# ============================================================================


def regime_score(regime_type: RegimeType, confidence: float) -> float:
    """Base score for the regime type scaled by confidence/100."""
    return REGIME_BASE_SCORES.get(regime_type, 50.0) * (confidence / 100)


def foreign_score(foreign_net: float, thresholds: ThresholdConfig = SET_THRESHOLDS) -> float:
    """
    Score foreign net flow (0-100).

    Neutral 50 inside the ±threshold band. Beyond it the score starts at
    75 (or 25) and moves one point per 100 units of excess flow, clamped.
    """
    threshold = thresholds.foreign_flow_threshold
    if foreign_net > threshold:
        return min(75 + (foreign_net - threshold) / 100, 100.0)
    if foreign_net < -threshold:
        return max(25 - (abs(foreign_net) - threshold) / 100, 0.0)
    return 50.0


def pattern_matches_regime(pattern: str, regime: RegimeSignal) -> bool:
    """True if the rotation pattern carries the regime's directional label."""
    if regime.type is RegimeType.NEUTRAL:
        return False
    return regime.type.value.lower() in pattern.lower()


def sector_score(pattern: str, concentration: float, regime: RegimeSignal) -> float:
    """70-90 when the pattern confirms the regime, 40 with no clear pattern, else 50."""
    if pattern_matches_regime(pattern, regime):
        return 70 + (concentration / 100) * 20
    if pattern == NO_CLEAR_PATTERN:
        return 40.0
    return 50.0


# ============================================================================
# CLASSIFIERS
# ============================================================================


def classify_verdict(normalized_score: float) -> Verdict:
    for floor, verdict in VERDICT_BANDS:
        if normalized_score >= floor:
            return verdict
    return Verdict.WAIT


def determine_primary_driver(contributions: dict[PrimaryDriver, float]) -> PrimaryDriver:
    """
    Pick the signal with the largest weighted contribution.

    Ties go to the first entry in insertion order (regime, smart money,
    foreign, sector). Returns NONE when nothing contributes positively.
    """
    if not contributions:
        return PrimaryDriver.NONE
    max_score = max(contributions.values())
    if max_score <= 0:
        return PrimaryDriver.NONE
    for driver, score in contributions.items():
        if score == max_score:
            return driver
    return PrimaryDriver.NONE


def determine_conviction(
    bundle: SignalBundle,
    normalized_score: float,
    resolution: ResolutionContext,
) -> Conviction:
    has_high_conflicts = any(
        marker in special_case
        for special_case in resolution.special_cases
        for marker in LOW_CONVICTION_MARKERS
    )
    if has_high_conflicts:
        return Conviction.LOW

    score = finite_or_none(bundle.smart_money.score)
    regime_type = bundle.regime.type
    signals_aligned = (
        regime_type is RegimeType.RISK_ON and check_rule(score, 60) is True
    ) or (regime_type is RegimeType.RISK_OFF and check_rule(score, 40, operator.lt) is True)

    if signals_aligned and normalized_score > 70:
        return Conviction.HIGH
    if normalized_score > 50:
        return Conviction.MEDIUM
    return Conviction.LOW


def determine_sector_focus(bundle: SignalBundle, verdict: Verdict) -> SectorFocus:
    if verdict in (Verdict.WAIT, Verdict.NEUTRAL):
        return SectorFocus.NEUTRAL

    sector = bundle.sector
    if verdict is Verdict.PROCEED:
        if bundle.regime.type is RegimeType.RISK_ON and sector.focus_sectors:
            return SectorFocus.OVERWEIGHT

    if verdict is Verdict.CAUTION:
        if sector.avoid_sectors:
            return SectorFocus.UNDERWEIGHT

    return SectorFocus.NEUTRAL


def calculate_confidence(
    regime_confidence: float,
    smart_money_confidence: float,
    concentration: float,
    normalized_score: float,
) -> int:
    """
    Average signal confidence, boosted up to 1.0x as the score moves away from 50.

    Rounded half-up and clamped to [0, 100].
    """
    avg_confidence = (regime_confidence + smart_money_confidence + concentration) / 3
    extremity = abs(normalized_score - 50) / 50
    adjusted = avg_confidence * (0.8 + extremity * 0.2)
    return max(0, min(int(math.floor(adjusted + 0.5)), 100))


# ============================================================================
# AGGREGATION
# ============================================================================


def _normalize(sub_scores: dict[str, float], weights: WeightVector) -> float:
    weight_map = weights.as_dict()
    total = sum(sub_scores[name] * weight_map[name] for name in sub_scores)
    max_possible = sum(100 * weight_map[name] for name in sub_scores)
    if max_possible == 0:
        return 50.0
    return total / max_possible * 100


def calculate_verdict(
    bundle: SignalBundle,
    resolution: ResolutionContext,
    *,
    thresholds: ThresholdConfig = SET_THRESHOLDS,
) -> ScoredVerdict:
    """
    Score every signal, apply the resolved weights, and classify.

    Missing or non-finite numeric inputs are read as 0 and listed in
    ``defaulted_inputs`` so callers can tell "scored low" from "no data".

    Args:
        bundle: Upstream signals
        resolution: Output of apply_resolution_rules
        thresholds: Threshold configuration

    Returns:
        ScoredVerdict with verdict, conviction, driver, sector focus,
        confidence, reasoning lines, and the normalized score
    """
    weights = resolution.weights
    tracker = _DefaultTracker()

    regime_confidence = tracker.read(bundle.regime.confidence, "regime.confidence")
    smart_money_value = tracker.read(bundle.smart_money.score, "smart_money.score")
    foreign_net = tracker.read(bundle.smart_money.foreign_net_flow, "smart_money.foreign_net_flow")
    concentration = tracker.read(bundle.sector.concentration, "sector.concentration")

    sub_scores = {
        "regime": finite_or_zero(regime_score(bundle.regime.type, regime_confidence)),
        "smart_money": finite_or_zero(smart_money_value),
        "foreign": finite_or_zero(foreign_score(foreign_net, thresholds)),
        "sector": finite_or_zero(sector_score(bundle.sector.pattern, concentration, bundle.regime)),
    }
    normalized_score = _normalize(sub_scores, weights)

    reasoning = (
        f"Regime score: {format_number(sub_scores['regime'])}/100 "
        f"(weight: {format_number(weights.regime)})",
        f"Smart Money score: {format_number(sub_scores['smart_money'])}/100 "
        f"(weight: {format_number(weights.smart_money)})",
        f"Foreign score: {format_number(sub_scores['foreign'])}/100 "
        f"(weight: {format_number(weights.foreign)})",
        f"Sector score: {format_number(sub_scores['sector'])}/100 "
        f"(weight: {format_number(weights.sector)})",
        f"Final score: {normalized_score:.1f}/100",
    )

    primary_driver = determine_primary_driver(
        {
            PrimaryDriver.MARKET_REGIME: sub_scores["regime"] * weights.regime,
            PrimaryDriver.SMART_MONEY: sub_scores["smart_money"] * weights.smart_money,
            PrimaryDriver.FOREIGN_FLOW: sub_scores["foreign"] * weights.foreign,
            PrimaryDriver.SECTOR_STRENGTH: sub_scores["sector"] * weights.sector,
        }
    )
    verdict = classify_verdict(normalized_score)
    smart_money_confidence = tracker.read(bundle.smart_money.confidence, "smart_money.confidence")

    if tracker.fields:
        logger.debug(f"Numeric inputs defaulted to 0: {', '.join(tracker.fields)}")
    logger.debug(f"Normalized score {normalized_score:.2f} -> {verdict.value}")

    return ScoredVerdict(
        verdict=verdict,
        conviction=determine_conviction(bundle, normalized_score, resolution),
        primary_driver=primary_driver,
        sector_focus=determine_sector_focus(bundle, verdict),
        confidence=calculate_confidence(
            regime_confidence, smart_money_confidence, concentration, normalized_score
        ),
        reasoning=reasoning,
        normalized_score=normalized_score,
        sub_scores=sub_scores,
        defaulted_inputs=tuple(tracker.fields),
    )
