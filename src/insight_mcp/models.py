"""Typed models for signal bundles, conflicts, resolution context, and verdicts.

Inputs arrive as JSON-like dicts from upstream analyzers. ``from_dict``
constructors are the validation boundary: shape errors raise ``ValueError``
here so the engine only ever sees well-formed, typed data. Numeric fields
may still be missing (None) or NaN; the engine treats those as 0 and
reports them in ``defaulted_inputs``.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from insight_mcp.utils.sanitize import sanitize_label
from insight_mcp.utils.validators import (
    coerce_number,
    coerce_percent,
    pick,
    require_mapping,
    require_string_list,
)


class RegimeType(str, Enum):
    RISK_ON = "Risk-On"
    NEUTRAL = "Neutral"
    RISK_OFF = "Risk-Off"

    @classmethod
    def parse(cls, value: Any) -> "RegimeType":
        """Accept 'Risk-On', 'risk_on', 'RiskOn', 'RISK ON', etc."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid regime.type: expected a string, got {type(value).__name__}")
        key = value.lower().replace("-", "").replace("_", "").replace(" ", "")
        for member in cls:
            if member.value.lower().replace("-", "") == key:
                return member
        raise ValueError(
            f"Invalid regime.type '{value}'. Must be one of: {[m.value for m in cls]}"
        )


class Verdict(str, Enum):
    PROCEED = "PROCEED"
    CAUTION = "CAUTION"
    NEUTRAL = "NEUTRAL"
    WAIT = "WAIT"


class Conviction(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class PrimaryDriver(str, Enum):
    MARKET_REGIME = "Market Regime"
    SMART_MONEY = "Smart Money"
    FOREIGN_FLOW = "Foreign Flow"
    SECTOR_STRENGTH = "Sector Strength"
    NONE = "None"


class SectorFocus(str, Enum):
    OVERWEIGHT = "OVERWEIGHT"
    UNDERWEIGHT = "UNDERWEIGHT"
    NEUTRAL = "NEUTRAL"


class Severity(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        raise ValueError(
            f"Invalid conflict severity '{value}'. Must be one of: {[m.value for m in cls]}"
        )


# ============================================================================
# CONFIGURATION VALUES
# ============================================================================


# env var -> ThresholdConfig field
_THRESHOLD_ENV_VARS = {
    "foreign_flow_threshold": "INSIGHT_FOREIGN_FLOW_THRESHOLD",
    "smart_money_high": "INSIGHT_SMART_MONEY_HIGH",
    "smart_money_low": "INSIGHT_SMART_MONEY_LOW",
    "regime_confidence_override": "INSIGHT_REGIME_CONFIDENCE_OVERRIDE",
    "prop_trading_noise_pct": "INSIGHT_PROP_TRADING_NOISE_PCT",
}


@dataclass(frozen=True)
class ThresholdConfig:
    """SET market thresholds. Process-wide, never mutated."""

    foreign_flow_threshold: float = 1000.0  # million THB
    smart_money_high: float = 60.0
    smart_money_low: float = 30.0
    regime_confidence_override: float = 80.0
    prop_trading_noise_pct: float = 40.0
    banks_sector_weight: float = 30.0  # % of SET market cap

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ThresholdConfig":
        """
        Build thresholds from INSIGHT_* environment overrides.

        Raises:
            ValueError: If an override is not a number
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, float] = {}
        for field_name, env_name in _THRESHOLD_ENV_VARS.items():
            raw = env.get(env_name)
            if raw is None or not raw.strip():
                continue
            try:
                overrides[field_name] = float(raw)
            except ValueError:
                raise ValueError(f"Invalid {env_name}='{raw}': must be a number") from None
        return cls(**overrides)


SET_THRESHOLDS = ThresholdConfig()


@dataclass(frozen=True)
class WeightVector:
    """Per-signal weights. Rules derive new vectors; nothing mutates one."""

    regime: float = 1.0
    smart_money: float = 1.0
    foreign: float = 1.0
    sector: float = 1.0

    def with_overrides(self, **overrides: float) -> "WeightVector":
        return replace(self, **overrides)

    def as_dict(self) -> dict[str, float]:
        return {
            "regime": self.regime,
            "smart_money": self.smart_money,
            "foreign": self.foreign,
            "sector": self.sector,
        }


DEFAULT_WEIGHTS = WeightVector()


# ============================================================================
# INPUT SIGNALS
# ============================================================================


@dataclass(frozen=True)
class RegimeSignal:
    type: RegimeType
    confidence: float | None
    focus: str = ""
    caution: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RegimeSignal":
        return cls(
            type=RegimeType.parse(pick(payload, "type", "regime")),
            confidence=coerce_percent(payload.get("confidence"), "regime.confidence"),
            focus=sanitize_label(payload.get("focus"), "regime.focus"),
            caution=sanitize_label(payload.get("caution"), "regime.caution"),
        )


@dataclass(frozen=True)
class InvestorFlow:
    net: float | None
    strength: str = "Neutral"


INVESTOR_TYPES = ("foreign", "institution", "retail", "prop")
BANK_SECTOR_KEYWORDS = ("bank", "financial")


@dataclass(frozen=True)
class SmartMoneySignal:
    score: float | None
    combined_signal: str
    confidence: float | None
    foreign_net_flow: float | None
    risk_signal: str = ""
    investors: Mapping[str, InvestorFlow] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SmartMoneySignal":
        investors: dict[str, InvestorFlow] = {}
        raw_investors = pick(payload, "investors", default=None)
        if raw_investors is not None:
            if not isinstance(raw_investors, Mapping):
                raise ValueError("Invalid smart_money.investors: expected an object")
            for name in INVESTOR_TYPES:
                entry = raw_investors.get(name)
                if entry is None:
                    continue
                if not isinstance(entry, Mapping):
                    raise ValueError(f"Invalid smart_money.investors.{name}: expected an object")
                investors[name] = InvestorFlow(
                    net=coerce_number(
                        pick(entry, "net", "today_net", "todayNet"),
                        f"smart_money.investors.{name}.net",
                    ),
                    strength=sanitize_label(
                        entry.get("strength"), f"smart_money.investors.{name}.strength"
                    )
                    or "Neutral",
                )

        foreign_net_flow = coerce_number(
            pick(payload, "foreign_net_flow", "foreignNetFlow"),
            "smart_money.foreign_net_flow",
        )
        if foreign_net_flow is None and "foreign" in investors:
            foreign_net_flow = investors["foreign"].net

        return cls(
            score=coerce_percent(payload.get("score"), "smart_money.score"),
            combined_signal=sanitize_label(
                pick(payload, "combined_signal", "combinedSignal"), "smart_money.combined_signal"
            ),
            confidence=coerce_percent(payload.get("confidence"), "smart_money.confidence"),
            foreign_net_flow=foreign_net_flow,
            risk_signal=sanitize_label(
                pick(payload, "risk_signal", "riskSignal"), "smart_money.risk_signal"
            ),
            investors=MappingProxyType(investors),
        )


def _sector_names(value: Any, field_name: str) -> tuple[str, ...]:
    """Leader/laggard lists: plain names, {"name": ...}, or {"sector": {"name": ...}}."""
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"Invalid {field_name}: expected a list")
    names: list[str] = []
    for item in value:
        if isinstance(item, Mapping):
            inner = item.get("sector", item)
            name = inner.get("name") if isinstance(inner, Mapping) else None
        else:
            name = item
        if not isinstance(name, str):
            raise ValueError(f"Invalid {field_name}: each entry needs a sector name")
        names.append(sanitize_label(name, field_name))
    return tuple(names)


@dataclass(frozen=True)
class SectorSignal:
    pattern: str
    concentration: float | None
    focus_sectors: tuple[str, ...] = ()
    avoid_sectors: tuple[str, ...] = ()
    leaders: tuple[str, ...] = ()
    laggards: tuple[str, ...] = ()

    def has_bank_leadership(self) -> bool:
        """True if any sector leader is a bank or financial sector."""
        return any(
            keyword in leader.lower() for leader in self.leaders for keyword in BANK_SECTOR_KEYWORDS
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SectorSignal":
        leadership = pick(payload, "leadership", default=None)
        if leadership is not None and not isinstance(leadership, Mapping):
            raise ValueError("Invalid sector.leadership: expected an object")
        leadership = leadership or {}
        return cls(
            pattern=sanitize_label(payload.get("pattern"), "sector.pattern"),
            concentration=coerce_percent(payload.get("concentration"), "sector.concentration"),
            focus_sectors=tuple(
                sanitize_label(s, "sector.focus_sectors")
                for s in require_string_list(
                    pick(payload, "focus_sectors", "focusSectors"), "sector.focus_sectors"
                )
            ),
            avoid_sectors=tuple(
                sanitize_label(s, "sector.avoid_sectors")
                for s in require_string_list(
                    pick(payload, "avoid_sectors", "avoidSectors"), "sector.avoid_sectors"
                )
            ),
            leaders=_sector_names(
                pick(payload, "leaders", default=leadership.get("leaders")), "sector.leaders"
            ),
            laggards=_sector_names(
                pick(payload, "laggards", default=leadership.get("laggards")), "sector.laggards"
            ),
        )


@dataclass(frozen=True)
class SignalBundle:
    """Immutable bundle of upstream signals consumed by the engine."""

    regime: RegimeSignal
    smart_money: SmartMoneySignal
    sector: SectorSignal

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SignalBundle":
        """
        Validate and build a bundle from a JSON-like payload.

        Accepts snake_case keys and the camelCase keys the upstream analyzers emit.

        Raises:
            ValueError: On missing sections or malformed fields
        """
        if not isinstance(payload, Mapping):
            raise ValueError("Signal bundle must be an object")
        return cls(
            regime=RegimeSignal.from_dict(require_mapping(payload, "regime")),
            smart_money=SmartMoneySignal.from_dict(
                require_mapping(payload, "smart_money", "smartMoney")
            ),
            sector=SectorSignal.from_dict(require_mapping(payload, "sector", "sectorRotation")),
        )


# ============================================================================
# CONFLICTS
# ============================================================================

# Conflict type that short-circuits resolution to WAIT
PROP_TRADING_NOISE = "High Prop Trading Noise"


@dataclass(frozen=True)
class Conflict:
    type: str
    description: str
    severity: Severity
    signals: tuple[str, ...] = ()
    impact: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Conflict":
        if not isinstance(payload, Mapping):
            raise ValueError("Each conflict must be an object")
        conflict_type = payload.get("type")
        if not isinstance(conflict_type, str) or not conflict_type.strip():
            raise ValueError("Invalid conflict.type: expected a non-empty string")
        return cls(
            type=conflict_type.strip(),
            description=sanitize_label(payload.get("description"), "conflict.description", 500),
            severity=Severity.parse(payload.get("severity")),
            signals=require_string_list(payload.get("signals"), "conflict.signals"),
            impact=sanitize_label(payload.get("impact"), "conflict.impact", 500),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "severity": self.severity.value,
            "signals": list(self.signals),
            "impact": self.impact,
        }


def parse_conflicts(payload: Any) -> tuple[Conflict, ...]:
    """
    Validate a conflict list payload. None means no conflicts.

    Raises:
        ValueError: If payload is not a list of conflict objects
    """
    if payload is None:
        return ()
    if isinstance(payload, Mapping) and "conflicts" in payload:
        payload = payload["conflicts"]
    if not isinstance(payload, (list, tuple)):
        raise ValueError("Conflicts must be a list")
    return tuple(Conflict.from_dict(item) for item in payload)


@dataclass(frozen=True)
class ConflictReport:
    conflicts: tuple[Conflict, ...]
    conflict_level: str  # "High" | "Medium" | "Low" | "None"
    has_critical_conflict: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "conflicts": [c.to_dict() for c in self.conflicts],
            "conflict_level": self.conflict_level,
            "has_critical_conflict": self.has_critical_conflict,
        }


# ============================================================================
# RESOLUTION AND OUTPUT
# ============================================================================


@dataclass(frozen=True)
class ResolutionContext:
    """Trace of which rule fired and the weights it produced."""

    applied_rules: tuple[str, ...] = ()
    weights: WeightVector = DEFAULT_WEIGHTS
    special_cases: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied_rules": list(self.applied_rules),
            "weights": self.weights.as_dict(),
            "special_cases": list(self.special_cases),
        }


@dataclass(frozen=True)
class SignalValue:
    value: str
    confidence: float | None

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "confidence": self.confidence}


@dataclass(frozen=True)
class ScoredVerdict:
    verdict: Verdict
    conviction: Conviction
    primary_driver: PrimaryDriver
    sector_focus: SectorFocus
    confidence: int
    reasoning: tuple[str, ...]
    normalized_score: float
    sub_scores: Mapping[str, float]
    defaulted_inputs: tuple[str, ...] = ()


@dataclass(frozen=True)
class VerdictResult:
    verdict: Verdict
    conviction: Conviction
    primary_driver: PrimaryDriver
    sector_focus: SectorFocus
    confidence: int
    reasoning: tuple[str, ...]
    explanation: str
    actionable_takeaway: str
    conflicting_signals: Mapping[str, SignalValue]
    timestamp: int
    key_conflict_alert: str | None = None
    resolution: ResolutionContext = field(default_factory=ResolutionContext)
    normalized_score: float | None = None
    defaulted_inputs: tuple[str, ...] = ()

    @property
    def used_defaults(self) -> bool:
        """True when a missing/invalid numeric input was treated as 0."""
        return bool(self.defaulted_inputs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "conviction": self.conviction.value,
            "primary_driver": self.primary_driver.value,
            "sector_focus": self.sector_focus.value,
            "confidence": self.confidence,
            "explanation": self.explanation,
            "actionable_takeaway": self.actionable_takeaway,
            "key_conflict_alert": self.key_conflict_alert,
            "reasoning": list(self.reasoning),
            "conflicting_signals": {
                name: value.to_dict() for name, value in self.conflicting_signals.items()
            },
            "resolution": self.resolution.to_dict(),
            "normalized_score": (
                round(self.normalized_score, 2) if self.normalized_score is not None else None
            ),
            "defaulted_inputs": list(self.defaulted_inputs),
            "used_defaults": self.used_defaults,
            "timestamp": self.timestamp,
        }
