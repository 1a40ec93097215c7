"""Normalization utilities for diff-stable verdict snapshots.

A verdict carries a wall-clock timestamp and the tool response carries
runtime fields (duration, provenance timestamps). Neither changes what the
verdict says, so both are removed before hashing. Two runs over the same
signal bundle therefore produce the same snapshot hash.

The normalization contract:
1. Key ordering: sorted at every level
2. Runtime fields: timestamp, duration_ms and provenance as_of removed
3. Set-like lists sorted; ordered lists (reasoning, conflicts) kept as-is
4. NaN/inf sanitization: replaced with null for JSON safety
"""

from __future__ import annotations

import copy
import hashlib
import json
import math
from typing import Any

# Snapshot format version - bump when normalization logic changes
SNAPSHOT_VERSION = "1.0.0"


def canonical_dumps(obj: Any) -> str:
    """Produce canonical JSON string with sorted keys and minimal separators.

    Uses allow_nan=False to fail fast if NaN/inf values slip through
    sanitization. This ensures JSON validity across all parsers.
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


# Set-like lists: order is not semantic, so sort them
SET_LIKE_LIST_PATHS: list[tuple[str, ...]] = [
    ("verdict", "resolution", "special_cases"),
    ("verdict", "defaulted_inputs"),
    ("data_provenance", "signals", "warnings"),
]

# Runtime fields that change on every call
RUNTIME_FIELD_PATHS: list[tuple[str, ...]] = [
    ("meta", "duration_ms"),
    ("verdict", "timestamp"),
    ("data_provenance", "signals", "as_of"),
]


def normalize_for_snapshot(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize a verdict payload for diff-stable comparison.

    Accepts either a bare verdict dict (as produced by
    ``VerdictResult.to_dict()``) or a tool response with the verdict under
    the ``verdict`` key.

    Args:
        raw: Verdict dict or analyze_market_signals output

    Returns:
        Normalized deep copy suitable for canonical JSON serialization
    """
    data = copy.deepcopy(raw)
    if "verdict" in data and not isinstance(data["verdict"], dict):
        data = {"verdict": data}

    # Sanitize NaN/inf first (critical for JSON safety)
    data = sanitize_nan_inf(data)

    for path in RUNTIME_FIELD_PATHS:
        _delete_path(data, path)

    for path in SET_LIKE_LIST_PATHS:
        _sort_string_list(data, path)

    return data


# ---------------- Path helpers ----------------

def _delete_path(root: dict[str, Any], path: tuple[str, ...]) -> None:
    """Delete a nested key if it exists."""
    parent = root
    for k in path[:-1]:
        if not isinstance(parent, dict) or k not in parent:
            return
        parent = parent[k]
    if isinstance(parent, dict):
        parent.pop(path[-1], None)


def _get_path(root: dict[str, Any], path: tuple[str, ...]) -> Any:
    """Get value at nested path, or None if not found."""
    cur: Any = root
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return None
        cur = cur[k]
    return cur


# ---------------- Normalization helpers ----------------

def _is_nan_or_inf(x: Any) -> bool:
    try:
        return math.isnan(x) or math.isinf(x)
    except (TypeError, ValueError):
        return False


def _is_negative_zero(x: Any) -> bool:
    """Check if value is -0.0 (which creates diff noise)."""
    try:
        return x == 0.0 and math.copysign(1.0, x) < 0
    except (TypeError, ValueError):
        return False


def sanitize_nan_inf(obj: Any) -> Any:
    """Recursively replace NaN, inf, -inf with None and -0.0 with 0.0.

    Upstream analyzers can emit NaN for missing data, and JSON has
    no representation for it. Tuples are emitted as lists.
    """
    if isinstance(obj, dict):
        return {k: sanitize_nan_inf(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_nan_inf(item) for item in obj]
    elif isinstance(obj, bool):
        return obj
    elif _is_nan_or_inf(obj):
        return None
    elif _is_negative_zero(obj):
        return 0.0
    return obj


def _sort_string_list(root: dict[str, Any], path: tuple[str, ...]) -> None:
    """Sort a list of strings lexicographically in place."""
    val = _get_path(root, path)
    if not isinstance(val, list):
        return
    if all(isinstance(x, str) for x in val):
        val.sort()


def compute_snapshot_hash(snapshot_data: dict[str, Any]) -> str:
    """First 16 hex chars of the SHA-256 of the canonical JSON."""
    canonical_json = canonical_dumps(snapshot_data)
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()[:16]


def build_verdict_snapshot(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Build a verdict snapshot with version and content hash.

    The snapshot includes:
    - snapshot_version: Format version for compatibility checking
    - snapshot_hash: SHA-256 hash of canonical JSON for change detection

    Args:
        raw: Verdict dict or analyze_market_signals output

    Returns:
        Normalized dict with snapshot_version and snapshot_hash added
    """
    normalized = normalize_for_snapshot(raw)

    # Hash includes snapshot_version so version bumps change the hash
    snapshot_data = {
        "snapshot_version": SNAPSHOT_VERSION,
        **normalized,
    }
    snapshot_data.pop("snapshot_hash", None)

    return {
        **snapshot_data,
        "snapshot_hash": compute_snapshot_hash(snapshot_data),
    }
