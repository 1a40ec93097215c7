"""Priority-ordered resolution rules.

Each rule is a table entry of (name, priority, predicate, resolver). The
predicate and resolver are pure functions of the bundle, so every rule can
be tested without running the engine loop.

Missing numeric inputs never satisfy a rule condition (nullable comparison
via ``check_rule``): an absent smart-money score is not an "extreme" score.
"""

import logging
import operator
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from insight_mcp.models import (
    DEFAULT_WEIGHTS,
    SET_THRESHOLDS,
    Conflict,
    RegimeType,
    ResolutionContext,
    SignalBundle,
    ThresholdConfig,
    WeightVector,
)
from insight_mcp.utils.validators import check_rule, finite_or_none

logger = logging.getLogger(__name__)

BANK_DEFENSIVE_CONFIDENCE = 60.0
SECTOR_CONFIRMATION_CONCENTRATION = 60.0


@dataclass(frozen=True)
class RuleOutcome:
    """Result of a rule's resolve step. weights=None keeps the current vector."""

    weights: WeightVector | None = None
    special_case: str | None = None


@dataclass(frozen=True)
class ResolutionRule:
    name: str
    priority: int
    condition: Callable[[SignalBundle, ThresholdConfig], bool]
    resolve: Callable[[SignalBundle, WeightVector, ThresholdConfig], RuleOutcome]


# ---------------- Foreign Dominance ----------------


def foreign_dominance_applies(bundle: SignalBundle, thresholds: ThresholdConfig) -> bool:
    foreign_net = finite_or_none(bundle.smart_money.foreign_net_flow)
    large_flow = check_rule(
        abs(foreign_net) if foreign_net is not None else None,
        thresholds.foreign_flow_threshold,
    )
    weak_regime = check_rule(
        finite_or_none(bundle.regime.confidence),
        thresholds.regime_confidence_override,
        operator.lt,
    )
    return large_flow is True and weak_regime is True


def resolve_foreign_dominance(
    bundle: SignalBundle, weights: WeightVector, thresholds: ThresholdConfig
) -> RuleOutcome:
    return RuleOutcome(
        weights=weights.with_overrides(foreign=2.0, regime=0.5),
        special_case="Foreign flow dominance detected",
    )


# ---------------- Smart Money Extremes ----------------


def smart_money_extreme_applies(bundle: SignalBundle, thresholds: ThresholdConfig) -> bool:
    score = finite_or_none(bundle.smart_money.score)
    return (
        check_rule(score, thresholds.smart_money_high) is True
        or check_rule(score, thresholds.smart_money_low, operator.lt) is True
    )


def resolve_smart_money_extreme(
    bundle: SignalBundle, weights: WeightVector, thresholds: ThresholdConfig
) -> RuleOutcome:
    regime_override = check_rule(
        finite_or_none(bundle.regime.confidence),
        thresholds.regime_confidence_override,
        operator.ge,
    )
    if regime_override is True:
        return RuleOutcome(special_case="Regime high confidence overrides smart money")
    return RuleOutcome(
        weights=weights.with_overrides(smart_money=1.8, regime=0.6),
        special_case="Smart money at extreme levels",
    )


# ---------------- Bank Sector Defensive ----------------


def bank_defensive_applies(bundle: SignalBundle, thresholds: ThresholdConfig) -> bool:
    if not bundle.sector.has_bank_leadership():
        return False
    cautious_regime = check_rule(
        finite_or_none(bundle.regime.confidence), BANK_DEFENSIVE_CONFIDENCE, operator.lt
    )
    return bundle.regime.type is RegimeType.RISK_OFF or cautious_regime is True


def resolve_bank_defensive(
    bundle: SignalBundle, weights: WeightVector, thresholds: ThresholdConfig
) -> RuleOutcome:
    return RuleOutcome(special_case="Bank sector leadership is defensive, not bullish")


# ---------------- Sector Confirmation ----------------


def sector_confirmation_applies(bundle: SignalBundle, thresholds: ThresholdConfig) -> bool:
    return (
        check_rule(
            finite_or_none(bundle.sector.concentration), SECTOR_CONFIRMATION_CONCENTRATION
        )
        is True
    )


def resolve_sector_confirmation(
    bundle: SignalBundle, weights: WeightVector, thresholds: ThresholdConfig
) -> RuleOutcome:
    return RuleOutcome(
        weights=weights.with_overrides(sector=1.2),
        special_case="High sector concentration confirms trend",
    )


RESOLUTION_RULES: tuple[ResolutionRule, ...] = (
    ResolutionRule("Foreign Dominance", 100, foreign_dominance_applies, resolve_foreign_dominance),
    ResolutionRule(
        "Smart Money Extremes", 90, smart_money_extreme_applies, resolve_smart_money_extreme
    ),
    ResolutionRule("Bank Sector Defensive", 80, bank_defensive_applies, resolve_bank_defensive),
    ResolutionRule(
        "Sector Confirmation", 70, sector_confirmation_applies, resolve_sector_confirmation
    ),
)


def apply_resolution_rules(
    bundle: SignalBundle,
    conflicts: Sequence[Conflict] = (),
    *,
    rules: Sequence[ResolutionRule] = RESOLUTION_RULES,
    weights: WeightVector = DEFAULT_WEIGHTS,
    thresholds: ThresholdConfig = SET_THRESHOLDS,
) -> ResolutionContext:
    """
    Apply the highest-priority matching rule.

    Policy: winner-take-all. Rules are evaluated in descending priority
    (table order breaks ties) and evaluation stops at the first match;
    lower-priority rules are never evaluated, even when they would also
    match. Composing several matching rules is a product decision that has
    not been made.

    Args:
        bundle: Upstream signals
        conflicts: Detected conflicts (accepted for the contract; the
            current rules read only the bundle)
        rules: Rule table
        weights: Starting weight vector (never mutated)
        thresholds: Threshold configuration

    Returns:
        ResolutionContext naming the rule that fired, the resulting weights,
        and its special-case tag. Empty lists and the starting weights if no
        rule matched.
    """
    for rule in sorted(rules, key=lambda r: r.priority, reverse=True):
        if not rule.condition(bundle, thresholds):
            continue

        outcome = rule.resolve(bundle, weights, thresholds)
        new_weights = outcome.weights if outcome.weights is not None else weights
        logger.debug(f"Resolution rule fired: {rule.name} (priority {rule.priority})")
        return ResolutionContext(
            applied_rules=(rule.name,),
            weights=new_weights,
            special_cases=(outcome.special_case,) if outcome.special_case else (),
        )

    return ResolutionContext(weights=weights)
