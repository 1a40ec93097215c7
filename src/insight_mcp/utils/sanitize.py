"""Text sanitization for caller-supplied labels and descriptions."""

import re
from typing import Any

# Line breaks and tabs inside a label become a single space
_LAYOUT_CHARS_RE = re.compile(r"[\t\n\r\v\f]+")
# Remaining C0/C1 control characters are dropped outright
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_SPACE_RUN_RE = re.compile(r" {2,}")


def sanitize_text(text: str | None, max_length: int = 500) -> str | None:
    """
    Clean an untrusted text field before it reaches an explanation.

    Sector names, signal labels and conflict descriptions are echoed back
    verbatim in verdict text, so control characters are removed, runs of
    whitespace collapse to one space, and long values are truncated with
    "...".

    Args:
        text: Text to sanitize (may be None)
        max_length: Maximum length before truncation

    Returns:
        Sanitized text or None if input was None
    """
    if text is None:
        return None

    cleaned = _LAYOUT_CHARS_RE.sub(" ", text)
    cleaned = _CONTROL_CHARS_RE.sub("", cleaned)
    cleaned = _SPACE_RUN_RE.sub(" ", cleaned).strip()

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "..."
    return cleaned


def sanitize_label(value: Any, field: str, max_length: int = 200) -> str:
    """
    Sanitize a required-if-present label field. None becomes "".

    Raises:
        ValueError: If value is present but not a string
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Invalid {field}: expected a string, got {type(value).__name__}")
    return sanitize_text(value, max_length=max_length) or ""
