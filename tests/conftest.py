"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from typing import Any

import pytest

from insight_mcp.models import SignalBundle


def _bundle_payload(
    regime_type: str = "Risk-On",
    regime_confidence: float | None = 100.0,
    smart_money_score: float | None = 50.0,
    smart_money_confidence: float | None = 60.0,
    combined_signal: str = "Neutral",
    foreign_net_flow: float | None = 0.0,
    pattern: str = "Neutral Rotation",
    concentration: float | None = 50.0,
    focus_sectors: list[str] | None = None,
    avoid_sectors: list[str] | None = None,
    leaders: list[str] | None = None,
    investors: dict[str, Any] | None = None,
) -> dict[str, Any]:
    smart_money: dict[str, Any] = {
        "score": smart_money_score,
        "combined_signal": combined_signal,
        "confidence": smart_money_confidence,
        "foreign_net_flow": foreign_net_flow,
    }
    if investors is not None:
        smart_money["investors"] = investors
    return {
        "regime": {"type": regime_type, "confidence": regime_confidence},
        "smart_money": smart_money,
        "sector": {
            "pattern": pattern,
            "concentration": concentration,
            "focus_sectors": focus_sectors or [],
            "avoid_sectors": avoid_sectors or [],
            "leaders": leaders or [],
        },
    }


@pytest.fixture
def make_payload():
    """Factory for JSON-like signal bundles (defaults normalize to 56.25)."""
    return _bundle_payload


@pytest.fixture
def make_bundle():
    """Factory for validated SignalBundle instances."""

    def _make(**kwargs: Any) -> SignalBundle:
        return SignalBundle.from_dict(_bundle_payload(**kwargs))

    return _make


@pytest.fixture
def fixed_now() -> datetime:
    """Injected clock so verdict timestamps are reproducible."""
    return datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def risk_on_bundle(make_bundle) -> SignalBundle:
    """Strong Risk-On scenario: normalized score 71.25."""
    return make_bundle(
        regime_type="Risk-On",
        regime_confidence=100.0,
        smart_money_score=80.0,
        smart_money_confidence=70.0,
        combined_signal="Buy",
        foreign_net_flow=1500.0,
        pattern="Neutral Rotation",
        concentration=50.0,
        focus_sectors=["Energy", "Technology", "Commerce", "Property"],
        avoid_sectors=["Media"],
    )


@pytest.fixture
def risk_off_bundle(make_bundle) -> SignalBundle:
    """Sign-mirror of risk_on_bundle: normalized score 28.75."""
    return make_bundle(
        regime_type="Risk-Off",
        regime_confidence=100.0,
        smart_money_score=20.0,
        smart_money_confidence=70.0,
        combined_signal="Sell",
        foreign_net_flow=-1500.0,
        pattern="Neutral Rotation",
        concentration=50.0,
        focus_sectors=["Energy", "Technology", "Commerce", "Property"],
        avoid_sectors=["Media"],
    )


@pytest.fixture
def prop_noise_conflict() -> dict[str, Any]:
    return {
        "type": "High Prop Trading Noise",
        "severity": "High",
        "description": "Prop trading accounts for 62.5% of total flow",
        "signals": ["prop"],
        "impact": "High prop trading noise - WAIT for clearer signals",
    }
