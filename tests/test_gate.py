"""Tests for the critical conflict gate."""

from insight_mcp.models import (
    Conflict,
    Conviction,
    PrimaryDriver,
    SectorFocus,
    Severity,
    Verdict,
)
from insight_mcp.resolution.gate import CriticalGate, check_critical_conflicts


def _prop_noise(prop_noise_conflict) -> Conflict:
    return Conflict.from_dict(prop_noise_conflict)


class TestCheckCriticalConflicts:
    """Tests for check_critical_conflicts."""

    def test_prop_noise_forces_wait(self, risk_on_bundle, prop_noise_conflict, fixed_now) -> None:
        """Test a strong bullish bundle is still gated to WAIT."""
        result = check_critical_conflicts(
            risk_on_bundle, [_prop_noise(prop_noise_conflict)], now=fixed_now
        )

        assert result is not None
        assert result.verdict is Verdict.WAIT
        assert result.conviction is Conviction.LOW
        assert result.confidence == 30
        assert result.primary_driver is PrimaryDriver.NONE
        assert result.sector_focus is SectorFocus.NEUTRAL
        assert result.explanation == "High prop trading noise detected"
        assert result.key_conflict_alert == "Prop trading accounts for 62.5% of total flow"
        assert len(result.reasoning) == 3

    def test_gate_skips_scoring(self, risk_on_bundle, prop_noise_conflict, fixed_now) -> None:
        result = check_critical_conflicts(
            risk_on_bundle, [_prop_noise(prop_noise_conflict)], now=fixed_now
        )

        assert result.normalized_score is None
        assert result.resolution.applied_rules == ()
        assert not result.used_defaults
        assert result.conflicting_signals["smart_money"].value == "Buy"

    def test_no_critical_conflict(self, risk_on_bundle) -> None:
        other = Conflict(type="Regime-Sector Mismatch", description="x", severity=Severity.HIGH)
        assert check_critical_conflicts(risk_on_bundle, [other]) is None
        assert check_critical_conflicts(risk_on_bundle, []) is None

    def test_idempotent(self, risk_on_bundle, prop_noise_conflict, fixed_now) -> None:
        conflicts = [_prop_noise(prop_noise_conflict)]
        first = check_critical_conflicts(risk_on_bundle, conflicts, now=fixed_now)
        second = check_critical_conflicts(risk_on_bundle, conflicts, now=fixed_now)

        assert first.to_dict() == second.to_dict()

    def test_first_matching_conflict_feeds_alert(self, make_bundle, prop_noise_conflict) -> None:
        conflicts = [
            Conflict(type="Regime-Sector Mismatch", description="other", severity=Severity.MEDIUM),
            _prop_noise(prop_noise_conflict),
        ]
        result = check_critical_conflicts(make_bundle(), conflicts)
        assert result.key_conflict_alert == "Prop trading accounts for 62.5% of total flow"

    def test_custom_gate_table(self, make_bundle) -> None:
        gate = CriticalGate(
            conflict_type="Market Halt",
            explanation="Trading halted",
            actionable_takeaway="Do nothing",
            reasoning=("Circuit breaker triggered",),
            confidence=10,
        )
        halted = Conflict(type="Market Halt", description="", severity=Severity.HIGH)

        result = check_critical_conflicts(make_bundle(), [halted], gates=(gate,))

        assert result.verdict is Verdict.WAIT
        assert result.confidence == 10
        assert result.key_conflict_alert is None

    def test_logs_trigger(self, make_bundle, prop_noise_conflict, caplog) -> None:
        with caplog.at_level("INFO", logger="insight_mcp.resolution.gate"):
            check_critical_conflicts(make_bundle(), [_prop_noise(prop_noise_conflict)])

        assert "Critical conflict gate triggered: High Prop Trading Noise" in caplog.text
