"""Market insight tools."""

from insight_mcp.tools.insight import (
    analyze_market_signals,
    detect_signal_conflicts,
    resolve_verdict,
)

__all__ = [
    "analyze_market_signals",
    "detect_signal_conflicts",
    "resolve_verdict",
]
