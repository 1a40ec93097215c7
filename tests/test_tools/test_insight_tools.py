"""Tests for the market insight tool responses."""

import asyncio
import json

import pytest

from insight_mcp.data.cache import VerdictCache, verdict_uri
from insight_mcp.resources.verdict_resource import ResourceNotFoundError, read_verdict_resource
from insight_mcp.tools.insight import (
    analyze_market_signals,
    detect_signal_conflicts,
    resolve_verdict,
)


@pytest.fixture
def cache(tmp_path) -> VerdictCache:
    verdict_cache = VerdictCache(str(tmp_path / "verdicts"))
    yield verdict_cache
    verdict_cache.clear()
    verdict_cache.cache.close()


class TestDetectSignalConflicts:
    """Tests for detect_signal_conflicts."""

    def test_response_shape(self, make_payload) -> None:
        result = asyncio.run(detect_signal_conflicts(make_payload(smart_money_score=20)))

        assert result["meta"]["tool"] == "detect_signal_conflicts"
        assert "duration_ms" in result["meta"]
        assert result["data_provenance"]["signals"]["source"] == "caller_bundle"
        assert result["conflict_level"] == "High"
        assert result["has_critical_conflict"] is True
        assert result["conflicts"][0]["type"] == "Regime-SmartMoney Mismatch"

    def test_invalid_bundle(self) -> None:
        result = asyncio.run(detect_signal_conflicts({"regime": {"type": "Risk-On"}}))

        assert result["error"] is True
        assert result["error_type"] == "invalid_input"
        assert "smart_money" in result["message"]


class TestResolveVerdict:
    """Tests for resolve_verdict."""

    def test_verdict_payload(self, make_payload, fixed_now) -> None:
        result = asyncio.run(resolve_verdict(make_payload(), now=fixed_now))

        verdict = result["verdict"]
        assert result["meta"]["tool"] == "resolve_verdict"
        assert verdict["verdict"] == "CAUTION"
        assert verdict["normalized_score"] == 56.25
        assert verdict["timestamp"] == int(fixed_now.timestamp() * 1000)
        assert result["data_provenance"]["signals"]["as_of"] == "2025-03-14T16:30:00+07:00"
        json.dumps(result)

    def test_supplied_conflicts_gate(self, make_payload, prop_noise_conflict) -> None:
        """Test a conflict list from detect_signal_conflicts is honored as-is."""
        report = {"conflicts": [prop_noise_conflict], "conflict_level": "High"}
        result = asyncio.run(resolve_verdict(make_payload(smart_money_score=95), report))

        assert result["verdict"]["verdict"] == "WAIT"
        assert result["verdict"]["confidence"] == 30

    def test_defaulted_inputs_warn(self, make_payload) -> None:
        result = asyncio.run(resolve_verdict(make_payload(concentration=None)))

        assert result["verdict"]["used_defaults"] is True
        assert result["data_provenance"]["signals"]["warnings"] == [
            "sector.concentration missing or not finite; scored as 0"
        ]

    def test_out_of_range_inputs_rejected(self, make_payload) -> None:
        """Test scores outside 0-100 are an input error, not a verdict above 100."""
        payload = make_payload(regime_confidence=400, smart_money_score=250, concentration=-80)
        result = asyncio.run(resolve_verdict(payload))

        assert result["error"] is True
        assert result["error_type"] == "invalid_input"
        assert "regime.confidence" in result["message"]
        assert "verdict" not in result

    def test_invalid_conflicts(self, make_payload) -> None:
        result = asyncio.run(resolve_verdict(make_payload(), [{"type": "X", "severity": "Huge"}]))

        assert result["error_type"] == "invalid_input"
        assert "Invalid conflict severity 'Huge'" in result["message"]


class TestAnalyzeMarketSignals:
    """Tests for analyze_market_signals and the cached resource."""

    def test_caches_verdict(self, make_payload, cache) -> None:
        result = asyncio.run(analyze_market_signals(make_payload(), cache=cache))

        assert result["meta"]["tool"] == "analyze_market_signals"
        assert result["conflicts"]["conflict_level"] == "None"
        assert result["verdict"]["verdict"] == "CAUTION"
        assert result["resource_uri"] == verdict_uri(result["snapshot_hash"])
        assert cache.exists(result["resource_uri"])

    def test_resource_serves_cached_json(self, make_payload, cache) -> None:
        result = asyncio.run(analyze_market_signals(make_payload(), cache=cache))

        text, mime_type = read_verdict_resource(result["resource_uri"], cache)
        served = json.loads(text)

        assert mime_type == "application/json"
        assert served["verdict"] == result["verdict"]
        assert served["conflicts"] == result["conflicts"]

    def test_snapshot_hash_stable_across_runs(self, make_payload, cache, fixed_now) -> None:
        first = asyncio.run(analyze_market_signals(make_payload(), cache=cache, now=fixed_now))
        second = asyncio.run(analyze_market_signals(make_payload(), cache=cache))

        assert first["snapshot_hash"] == second["snapshot_hash"]

    def test_detected_prop_noise(self, make_payload, cache) -> None:
        investors = {
            "foreign": {"net": 100},
            "institution": {"net": 100},
            "retail": {"net": 100},
            "prop": {"net": 500},
        }
        result = asyncio.run(
            analyze_market_signals(make_payload(investors=investors), cache=cache)
        )

        assert result["conflicts"]["has_critical_conflict"] is True
        assert result["verdict"]["verdict"] == "WAIT"

    def test_invalid_bundle(self, cache) -> None:
        result = asyncio.run(analyze_market_signals([], cache=cache))
        assert result["error"] is True
        assert result["message"] == "Signal bundle must be an object"

    def test_resource_not_cached(self, cache) -> None:
        with pytest.raises(ResourceNotFoundError, match="Call analyze_market_signals first"):
            read_verdict_resource("verdict://0123456789abcdef", cache)


class TestVerdictCache:
    """Tests for VerdictCache."""

    def test_store_and_metadata(self, cache) -> None:
        uri = cache.store("0123456789abcdef", {"verdict": {"verdict": "WAIT"}})

        assert uri == "verdict://0123456789abcdef"
        assert cache.get_json(uri) == '{"verdict":{"verdict":"WAIT"}}'
        assert cache.get_metadata(uri)["size_bytes"] == len('{"verdict":{"verdict":"WAIT"}}')

    def test_missing(self, cache) -> None:
        assert cache.get_json("verdict://ffffffffffffffff") is None
        assert cache.get_metadata("verdict://ffffffffffffffff") is None

    @pytest.mark.parametrize("bad", ["", "XYZ", "0123456789ABCDEF", "0123456789abcdef0"])
    def test_rejects_bad_hash(self, bad) -> None:
        with pytest.raises(ValueError, match="expected 16 hex characters"):
            verdict_uri(bad)
