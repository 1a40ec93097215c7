"""Validation utilities for signal payloads."""

import math
import operator
from collections.abc import Callable, Mapping
from typing import Any


def coerce_number(value: Any, field: str) -> float | None:
    """
    Parse an optional numeric payload field.

    None stays None (the field is missing upstream). NaN/inf pass through
    so the engine can flag them. Numeric strings are accepted.

    Args:
        value: Raw payload value
        field: Dotted field name used in error messages

    Returns:
        float or None

    Raises:
        ValueError: If value is not numeric (bools are rejected)
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid {field}: expected a number, got bool")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise ValueError(f"Invalid {field}: '{value}' is not a number") from None
    raise ValueError(f"Invalid {field}: expected a number, got {type(value).__name__}")


def coerce_percent(value: Any, field: str) -> float | None:
    """
    Parse an optional 0-100 field (score, confidence, concentration).

    Missing and non-finite values pass through like coerce_number so they
    reach the defaulted-to-0 path.

    Raises:
        ValueError: If value is not numeric or is finite and outside [0, 100]
    """
    number = coerce_number(value, field)
    if number is not None and math.isfinite(number) and not 0 <= number <= 100:
        raise ValueError(f"Invalid {field}: {number:g} is outside [0, 100]")
    return number


def finite_or_none(value: float | None) -> float | None:
    """Return value if it is a finite real number, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def finite_or_zero(value: float | None) -> float:
    """Missing or non-finite values count as 0 in numeric aggregation."""
    number = finite_or_none(value)
    return 0.0 if number is None else number


def require_mapping(payload: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    """
    Fetch a required nested mapping, trying each key alias in order.

    Raises:
        ValueError: If no alias is present or the value is not a mapping
    """
    for key in keys:
        if key in payload:
            value = payload[key]
            if not isinstance(value, Mapping):
                raise ValueError(f"Invalid '{key}': expected an object, got {type(value).__name__}")
            return value
    raise ValueError(f"Missing required section '{keys[0]}'")


def pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present alias (snake_case first, then camelCase)."""
    for key in keys:
        if key in payload:
            return payload[key]
    return default


def require_string_list(value: Any, field: str) -> tuple[str, ...]:
    """
    Validate a list of strings. None becomes an empty tuple.

    Raises:
        ValueError: If value is not a list of strings
    """
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"Invalid {field}: expected a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Invalid {field}: expected a list of strings")
        items.append(item)
    return tuple(items)


def check_rule(
    value: float | None,
    threshold: float,
    comparator: Callable[[float, float], bool] = operator.gt,
) -> bool | None:
    """
    Check a rule with nullable boolean semantics.

    If value is None, returns None (not False).

    Args:
        value: The value to check (may be None)
        threshold: The threshold to compare against
        comparator: Comparison function (default: operator.gt)

    Returns:
        True/False if value is not None, None otherwise
    """
    if value is None:
        return None
    return comparator(value, threshold)
