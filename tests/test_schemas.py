"""Tests for response schemas."""

from datetime import datetime, timezone

from insight_mcp import SCHEMA_VERSION, SERVER_VERSION
from insight_mcp.utils.provenance import (
    build_error_response,
    build_meta,
    build_provenance,
    market_now,
    to_market_time,
)


class TestBuildMeta:
    """Tests for build_meta function."""

    def test_meta_versions(self) -> None:
        """Test meta includes correct versions."""
        meta = build_meta("resolve_verdict")

        assert meta["server_version"] == SERVER_VERSION
        assert meta["schema_version"] == SCHEMA_VERSION
        assert meta["tool"] == "resolve_verdict"

    def test_schema_version_starts_at_one(self) -> None:
        assert SCHEMA_VERSION == "1"
        assert build_meta("resolve_verdict")["schema_version"] == "1"

    def test_meta_duration(self) -> None:
        """Test meta includes duration when provided."""
        meta = build_meta("resolve_verdict", duration_ms=123.456)
        assert meta["duration_ms"] == 123.5  # Rounded to 1 decimal

    def test_meta_no_duration(self) -> None:
        """Test meta excludes duration when not provided."""
        assert "duration_ms" not in build_meta("resolve_verdict")


class TestMarketTime:
    """Tests for SET timezone helpers."""

    def test_market_now_is_bangkok(self) -> None:
        assert market_now().utcoffset().total_seconds() == 7 * 3600

    def test_naive_treated_as_utc(self) -> None:
        converted = to_market_time(datetime(2025, 3, 14, 2, 30))
        assert converted.isoformat() == "2025-03-14T09:30:00+07:00"


class TestBuildProvenance:
    """Tests for build_provenance function."""

    def test_provenance_has_source_and_warnings(self) -> None:
        """Test provenance always has a source and a warnings list."""
        prov = build_provenance(source="caller_bundle")

        assert prov["source"] == "caller_bundle"
        assert prov["warnings"] == []

    def test_provenance_datetime_as_of(self) -> None:
        """Test datetime as_of is rendered in SET time."""
        dt = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
        prov = build_provenance(source="caller_bundle", as_of=dt)
        assert prov["as_of"] == "2025-03-14T16:30:00+07:00"

    def test_provenance_string_as_of(self) -> None:
        """Test provenance handles string as_of."""
        prov = build_provenance(source="caller_bundle", as_of="2025-03-14T09:30:00Z")
        assert prov["as_of"] == "2025-03-14T09:30:00Z"

    def test_provenance_custom_warnings(self) -> None:
        """Test provenance accepts custom warnings."""
        prov = build_provenance(source="caller_bundle", warnings=["stale_signals"])
        assert prov["warnings"] == ["stale_signals"]


class TestBuildErrorResponse:
    """Tests for build_error_response function."""

    def test_error_response_fields(self) -> None:
        """Test error response has flag, type, message and meta."""
        resp = build_error_response("invalid_input", "Missing required section 'regime'")

        assert resp["error"] is True
        assert resp["error_type"] == "invalid_input"
        assert resp["message"] == "Missing required section 'regime'"
        assert resp["meta"]["tool"] == "error"

    def test_error_response_resource(self) -> None:
        """Test error response includes resource when provided."""
        resp = build_error_response("not_found", "Not cached", resource="verdict://abc")
        assert resp["resource"] == "verdict://abc"

    def test_error_response_no_resource(self) -> None:
        assert "resource" not in build_error_response("invalid_input", "Bad")

    def test_error_response_keys(self) -> None:
        """Test the envelope carries only the error fields and meta."""
        resp = build_error_response("invalid_input", "Bad")
        assert set(resp) == {"error", "error_type", "message", "meta"}
