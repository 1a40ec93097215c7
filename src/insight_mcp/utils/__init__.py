"""Utility modules."""

from insight_mcp.utils.normalize import build_verdict_snapshot, canonical_dumps
from insight_mcp.utils.provenance import build_meta, build_provenance, market_now
from insight_mcp.utils.sanitize import sanitize_label, sanitize_text
from insight_mcp.utils.validators import check_rule, coerce_number, finite_or_none, finite_or_zero

__all__ = [
    "build_verdict_snapshot",
    "canonical_dumps",
    "build_meta",
    "build_provenance",
    "market_now",
    "sanitize_label",
    "sanitize_text",
    "check_rule",
    "coerce_number",
    "finite_or_none",
    "finite_or_zero",
]
