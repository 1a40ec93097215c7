"""Conflict detection between upstream market signals."""

from insight_mcp.conflicts.detector import (
    DETECTORS,
    calculate_conflict_level,
    conflicts_by_severity,
    detect_conflicts,
    strength_score,
)

__all__ = [
    "DETECTORS",
    "calculate_conflict_level",
    "conflicts_by_severity",
    "detect_conflicts",
    "strength_score",
]
