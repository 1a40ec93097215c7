"""Conflict detection between market signals.

Detects disagreements between the regime, smart-money, investor-flow and
sector-rotation signals using SET-specific rules. The output feeds both the
critical conflict gate and the conflict alert in the final verdict.
"""

import logging
import operator
from collections.abc import Callable, Sequence

from insight_mcp.models import (
    PROP_TRADING_NOISE,
    SET_THRESHOLDS,
    Conflict,
    ConflictReport,
    InvestorFlow,
    RegimeType,
    Severity,
    SignalBundle,
    ThresholdConfig,
)
from insight_mcp.utils.validators import check_rule, finite_or_none, finite_or_zero

logger = logging.getLogger(__name__)

DEFENSIVE_SECTORS = ("Banks", "Energy", "Food", "Healthcare", "Utilities")

STRENGTH_SCORES = {
    "strong buy": 3,
    "buy": 1,
    "neutral": 0,
    "sell": -1,
    "strong sell": -3,
    "strong bullish": 3,
    "bullish": 1,
    "strong bearish": -3,
    "bearish": -1,
}

# Strength scores beyond ±2 count as a strong directional stance
STRONG_STANCE = 2


def strength_score(strength: str) -> int:
    """Map an investor strength label to -3..3. Unknown labels score 0."""
    return STRENGTH_SCORES.get(strength.strip().lower(), 0)


def _investor(bundle: SignalBundle, name: str) -> InvestorFlow:
    return bundle.smart_money.investors.get(name, InvestorFlow(net=None))


# ---------------- Detectors ----------------


def detect_regime_smart_money_conflict(
    bundle: SignalBundle, thresholds: ThresholdConfig
) -> Conflict | None:
    regime_type = bundle.regime.type
    score = finite_or_none(bundle.smart_money.score)

    if regime_type is RegimeType.RISK_ON and check_rule(score, 40, operator.lt) is True:
        return Conflict(
            type="Regime-SmartMoney Mismatch",
            severity=Severity.HIGH,
            description=(
                f"Market regime is {regime_type.value} but smart money score is low "
                f"({score:.2f}/100)"
            ),
            signals=("regime", "smartMoney"),
            impact="Regime may be lagging; smart money suggests caution",
        )

    if regime_type is RegimeType.RISK_OFF and check_rule(score, 60) is True:
        return Conflict(
            type="Regime-SmartMoney Mismatch",
            severity=Severity.MEDIUM,
            description=(
                f"Market regime is {regime_type.value} but smart money score is high "
                f"({score:.2f}/100)"
            ),
            signals=("regime", "smartMoney"),
            impact="Smart money may be detecting bottoming opportunity",
        )

    return None


def detect_regime_sector_conflict(
    bundle: SignalBundle, thresholds: ThresholdConfig
) -> Conflict | None:
    leaders = bundle.sector.leaders
    has_defensive_leaders = any(
        defensive.lower() in name.lower() for name in leaders for defensive in DEFENSIVE_SECTORS
    )
    if not has_defensive_leaders:
        return None

    if bundle.regime.type is RegimeType.RISK_OFF:
        return Conflict(
            type="Bank Sector Defensive Signal",
            severity=Severity.MEDIUM,
            description=(
                f"Risk-off regime with defensive sector leadership ({', '.join(leaders)})"
            ),
            signals=("regime", "sector"),
            impact="Defensive positioning confirmed, not a bullish signal",
        )

    if bundle.regime.type is RegimeType.RISK_ON:
        return Conflict(
            type="Regime-Sector Mismatch",
            severity=Severity.MEDIUM,
            description="Regime is Risk-On but defensive sectors are leading",
            signals=("regime", "sector"),
            impact="Sector rotation may be early or regime signal may be premature",
        )

    return None


def detect_foreign_domestic_conflict(
    bundle: SignalBundle, thresholds: ThresholdConfig
) -> Conflict | None:
    foreign = _investor(bundle, "foreign")
    retail = _investor(bundle, "retail")
    prop = _investor(bundle, "prop")

    foreign_strength = strength_score(foreign.strength)
    retail_strength = strength_score(retail.strength)
    prop_strength = strength_score(prop.strength)

    if foreign_strength > STRONG_STANCE and (
        retail_strength < -STRONG_STANCE or prop_strength < -STRONG_STANCE
    ):
        counterpart = retail if retail_strength < -STRONG_STANCE else prop
        label = "retail" if retail_strength < -STRONG_STANCE else "prop"
        return Conflict(
            type="Foreign-Domestic Divergence",
            severity=Severity.HIGH,
            description=(
                f"Foreign investors are {foreign.strength} while {label} is {counterpart.strength}"
            ),
            signals=("foreign", "domestic"),
            impact="Foreign flow typically leads market by 1-3 days",
        )

    if foreign_strength < -STRONG_STANCE and (
        retail_strength > STRONG_STANCE or prop_strength > STRONG_STANCE
    ):
        counterpart = retail if retail_strength > STRONG_STANCE else prop
        label = "retail" if retail_strength > STRONG_STANCE else "prop"
        return Conflict(
            type="Foreign-Domestic Divergence",
            severity=Severity.MEDIUM,
            description=(
                f"Foreign investors are {foreign.strength} while {label} is {counterpart.strength}"
            ),
            signals=("foreign", "domestic"),
            impact="Retail as contrarian indicator (sells at bottoms 65% of time)",
        )

    return None


def detect_prop_trading_noise(
    bundle: SignalBundle, thresholds: ThresholdConfig
) -> Conflict | None:
    """Prop share of absolute investor flow above the noise threshold."""
    flows = {
        name: abs(finite_or_zero(_investor(bundle, name).net))
        for name in ("foreign", "institution", "retail", "prop")
    }
    total_flow = sum(flows.values())
    if total_flow == 0:
        return None

    prop_percentage = flows["prop"] / total_flow * 100
    if prop_percentage > thresholds.prop_trading_noise_pct:
        return Conflict(
            type=PROP_TRADING_NOISE,
            severity=Severity.HIGH,
            description=f"Prop trading accounts for {prop_percentage:.1f}% of total flow",
            signals=("prop",),
            impact="High prop trading noise - WAIT for clearer signals",
        )

    return None


def detect_bank_sector_defensive(
    bundle: SignalBundle, thresholds: ThresholdConfig
) -> Conflict | None:
    if not bundle.sector.has_bank_leadership():
        return None

    regime = bundle.regime
    cautious = check_rule(finite_or_none(regime.confidence), 60, operator.lt)
    if regime.type is RegimeType.RISK_OFF or cautious is True:
        return Conflict(
            type="Bank Sector Defensive Signal",
            severity=Severity.MEDIUM,
            description=(
                f"Banks sector leading but regime suggests {regime.type.value} "
                f"(Banks = {thresholds.banks_sector_weight:g}% of SET)"
            ),
            signals=("sector", "regime"),
            impact="Interpret as defensive positioning, not bullish signal",
        )

    return None


def detect_smart_money_contradiction(
    bundle: SignalBundle, thresholds: ThresholdConfig
) -> Conflict | None:
    foreign = _investor(bundle, "foreign")
    institution = _investor(bundle, "institution")

    foreign_strength = strength_score(foreign.strength)
    institution_strength = strength_score(institution.strength)

    opposed = (foreign_strength > STRONG_STANCE and institution_strength < -STRONG_STANCE) or (
        foreign_strength < -STRONG_STANCE and institution_strength > STRONG_STANCE
    )
    if opposed:
        return Conflict(
            type="Smart Money Contradiction",
            severity=Severity.MEDIUM,
            description=(
                f"Foreign is {foreign.strength} but Institution is {institution.strength}"
            ),
            signals=("foreign", "institution"),
            impact="Foreign typically leads institution by 1-2 days in Thai market",
        )

    return None


DETECTORS: tuple[Callable[[SignalBundle, ThresholdConfig], Conflict | None], ...] = (
    detect_regime_smart_money_conflict,
    detect_regime_sector_conflict,
    detect_foreign_domestic_conflict,
    detect_prop_trading_noise,
    detect_bank_sector_defensive,
    detect_smart_money_contradiction,
)


# ---------------- Aggregation ----------------


def calculate_conflict_level(conflicts: Sequence[Conflict]) -> str:
    """Highest severity present, or "None"."""
    if not conflicts:
        return "None"
    severities = {c.severity for c in conflicts}
    for severity in (Severity.HIGH, Severity.MEDIUM):
        if severity in severities:
            return severity.value
    return Severity.LOW.value


def conflicts_by_severity(conflicts: Sequence[Conflict], severity: Severity) -> list[Conflict]:
    return [c for c in conflicts if c.severity is severity]


def detect_conflicts(
    bundle: SignalBundle,
    thresholds: ThresholdConfig = SET_THRESHOLDS,
) -> ConflictReport:
    """
    Run every detector in order and summarize.

    Args:
        bundle: Upstream signals
        thresholds: Threshold configuration

    Returns:
        ConflictReport with conflicts in detection order, overall level, and
        whether any High-severity conflict is present
    """
    conflicts = tuple(
        conflict
        for detector in DETECTORS
        if (conflict := detector(bundle, thresholds)) is not None
    )
    if conflicts:
        logger.debug(f"Detected conflicts: {', '.join(c.type for c in conflicts)}")

    return ConflictReport(
        conflicts=conflicts,
        conflict_level=calculate_conflict_level(conflicts),
        has_critical_conflict=any(c.severity is Severity.HIGH for c in conflicts),
    )
