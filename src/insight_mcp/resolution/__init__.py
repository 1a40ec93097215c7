"""Signal resolution: critical gate, priority rules, scoring and verdict assembly."""

from insight_mcp.resolution.gate import CRITICAL_CONFLICT_GATES, check_critical_conflicts
from insight_mcp.resolution.resolver import resolve_market_signals, resolve_signals
from insight_mcp.resolution.rules import RESOLUTION_RULES, apply_resolution_rules
from insight_mcp.resolution.scoring import calculate_verdict

__all__ = [
    "CRITICAL_CONFLICT_GATES",
    "RESOLUTION_RULES",
    "apply_resolution_rules",
    "calculate_verdict",
    "check_critical_conflicts",
    "resolve_market_signals",
    "resolve_signals",
]
