"""Tests for normalize module."""

import math

import pytest

from insight_mcp.resolution import resolve_signals
from insight_mcp.utils.normalize import (
    SNAPSHOT_VERSION,
    build_verdict_snapshot,
    canonical_dumps,
    compute_snapshot_hash,
    normalize_for_snapshot,
    sanitize_nan_inf,
)


class TestCanonicalDumps:
    """Tests for canonical_dumps function."""

    def test_sorted_keys(self):
        """Keys should be sorted at every level."""
        obj = {"z": 1, "a": 2, "m": {"z": 3, "a": 4}}
        result = canonical_dumps(obj)
        assert result == '{"a":2,"m":{"a":4,"z":3},"z":1}'

    def test_minimal_separators(self):
        """Output should use minimal separators (no spaces)."""
        result = canonical_dumps({"a": [1, 2, 3]})
        assert result == '{"a":[1,2,3]}'

    def test_unicode_preserved(self):
        """Thai sector names should not be escaped."""
        assert "ธนาคาร" in canonical_dumps({"sector": "ธนาคาร"})

    def test_rejects_nan(self):
        """Should raise ValueError for NaN (allow_nan=False)."""
        with pytest.raises(ValueError, match="Out of range float values"):
            canonical_dumps({"value": float("nan")})


class TestSanitizeNanInf:
    """Tests for sanitize_nan_inf function."""

    def test_nan_and_inf_become_none(self):
        result = sanitize_nan_inf({"a": float("nan"), "b": [float("inf"), float("-inf")]})
        assert result == {"a": None, "b": [None, None]}

    def test_negative_zero(self):
        result = sanitize_nan_inf({"score": -0.0})
        assert math.copysign(1.0, result["score"]) > 0

    def test_bools_and_tuples(self):
        """Bools are preserved; tuples are emitted as lists."""
        assert sanitize_nan_inf({"flag": True, "rules": ("a", "b")}) == {
            "flag": True,
            "rules": ["a", "b"],
        }


class TestNormalizeForSnapshot:
    """Tests for normalize_for_snapshot function."""

    def test_removes_runtime_fields(self):
        raw = {
            "meta": {"duration_ms": 12.3, "tool": "analyze_market_signals"},
            "verdict": {"verdict": "PROCEED", "timestamp": 1710408600000},
            "data_provenance": {"signals": {"source": "caller_bundle", "as_of": "x"}},
        }
        result = normalize_for_snapshot(raw)

        assert result["meta"] == {"tool": "analyze_market_signals"}
        assert "timestamp" not in result["verdict"]
        assert "as_of" not in result["data_provenance"]["signals"]

    def test_bare_verdict_is_wrapped(self):
        """A VerdictResult.to_dict() payload is normalized under 'verdict'."""
        result = normalize_for_snapshot({"verdict": "WAIT", "timestamp": 1})
        assert result == {"verdict": {"verdict": "WAIT"}}

    def test_sorts_set_like_lists(self):
        raw = {
            "verdict": {
                "defaulted_inputs": ["sector.concentration", "regime.confidence"],
                "reasoning": ["b", "a"],
                "resolution": {"special_cases": ["z", "a"]},
            }
        }
        result = normalize_for_snapshot(raw)

        assert result["verdict"]["defaulted_inputs"] == [
            "regime.confidence",
            "sector.concentration",
        ]
        assert result["verdict"]["resolution"]["special_cases"] == ["a", "z"]
        # Reasoning order is semantic
        assert result["verdict"]["reasoning"] == ["b", "a"]

    def test_does_not_mutate_input(self):
        raw = {"verdict": {"verdict": "PROCEED", "timestamp": 5}}
        normalize_for_snapshot(raw)
        assert raw["verdict"]["timestamp"] == 5


class TestBuildVerdictSnapshot:
    """Tests for build_verdict_snapshot function."""

    def test_has_version_and_hash(self, risk_on_bundle):
        snapshot = build_verdict_snapshot(resolve_signals(risk_on_bundle).to_dict())

        assert snapshot["snapshot_version"] == SNAPSHOT_VERSION
        assert len(snapshot["snapshot_hash"]) == 16
        int(snapshot["snapshot_hash"], 16)

    def test_hash_ignores_timestamp(self, risk_on_bundle, fixed_now):
        """Same signals resolved at different times hash the same."""
        first = resolve_signals(risk_on_bundle, now=fixed_now).to_dict()
        second = resolve_signals(risk_on_bundle).to_dict()

        assert first["timestamp"] != second["timestamp"]
        assert (
            build_verdict_snapshot(first)["snapshot_hash"]
            == build_verdict_snapshot(second)["snapshot_hash"]
        )

    def test_hash_changes_with_verdict(self, risk_on_bundle, risk_off_bundle):
        on = build_verdict_snapshot(resolve_signals(risk_on_bundle).to_dict())
        off = build_verdict_snapshot(resolve_signals(risk_off_bundle).to_dict())
        assert on["snapshot_hash"] != off["snapshot_hash"]

    def test_hash_matches_content(self):
        snapshot = build_verdict_snapshot({"verdict": {"verdict": "WAIT"}})
        content = {k: v for k, v in snapshot.items() if k != "snapshot_hash"}
        assert compute_snapshot_hash(content) == snapshot["snapshot_hash"]
