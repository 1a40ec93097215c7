"""Market Insight MCP Server using FastMCP."""

import json
import logging
import os
from typing import Any

from fastmcp import FastMCP

from insight_mcp import SCHEMA_VERSION, SERVER_VERSION
from insight_mcp.data.cache import verdict_uri
from insight_mcp.models import ThresholdConfig
from insight_mcp.prompts.templates import get_prompt
from insight_mcp.resources.verdict_resource import ResourceNotFoundError, read_verdict_resource
from insight_mcp.tools import insight

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Read once at startup; process-wide and never mutated
thresholds = ThresholdConfig.from_env()

# Create FastMCP server instance
mcp = FastMCP(
    name="market-insight",
)


# ============================================================================
# TOOLS
# ============================================================================


@mcp.tool
async def detect_signal_conflicts(bundle: dict[str, Any]) -> str:
    """
    Detect conflicts between market regime, smart money and sector signals.

    Args:
        bundle: Signal bundle with 'regime', 'smart_money' and 'sector' sections.
                Example: {"regime": {"type": "Risk-On", "confidence": 70},
                          "smart_money": {"score": 65, "combined_signal": "Buy",
                                          "confidence": 60, "foreign_net_flow": 1500},
                          "sector": {"pattern": "Risk-On Rotation", "concentration": 55}}

    Returns:
        JSON with conflicts, conflict_level and has_critical_conflict
    """
    result = await insight.detect_signal_conflicts(bundle=bundle, thresholds=thresholds)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def resolve_verdict(
    bundle: dict[str, Any],
    conflicts: list[dict[str, Any]] | None = None,
) -> str:
    """
    Resolve signals and a conflict list into a PROCEED/CAUTION/NEUTRAL/WAIT verdict.

    Use when conflicts come from elsewhere; otherwise prefer analyze_market_signals.

    Args:
        bundle: Signal bundle (same shape as detect_signal_conflicts)
        conflicts: Conflicts as returned by detect_signal_conflicts (optional)

    Returns:
        JSON with verdict, conviction, primary driver, sector focus, confidence,
        explanation, actionable takeaway and the resolution trace
    """
    result = await insight.resolve_verdict(
        bundle=bundle,
        conflicts=conflicts,
        thresholds=thresholds,
    )
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def analyze_market_signals(bundle: dict[str, Any]) -> str:
    """
    Detect conflicts and resolve a verdict in one call.

    RENDERING INSTRUCTIONS:
    1. Verdict + conviction + confidence on one line
    2. explanation and actionable_takeaway VERBATIM
    3. key_conflict_alert as a warning if present
    4. If verdict.used_defaults is true, list verdict.defaulted_inputs:
       those signals were missing and were scored as 0

    Args:
        bundle: Signal bundle (same shape as detect_signal_conflicts)

    Returns:
        JSON with conflicts, verdict, snapshot_hash and resource_uri for the cached verdict
    """
    result = await insight.analyze_market_signals(bundle=bundle, thresholds=thresholds)
    return json.dumps(result, indent=2, default=str)


# ============================================================================
# RESOURCES
# ============================================================================


@mcp.resource("verdict://{snapshot_hash}")
def get_cached_verdict(snapshot_hash: str) -> str:
    """
    Get a cached verdict as JSON.

    Must call analyze_market_signals first to populate the cache.

    Args:
        snapshot_hash: 16-hex snapshot hash from analyze_market_signals

    Returns:
        Cached conflicts + verdict JSON
    """
    try:
        json_text, _mime_type = read_verdict_resource(verdict_uri(snapshot_hash))
    except ValueError as e:
        return f"Error: {e}"
    except ResourceNotFoundError:
        return f"Resource not cached. Call analyze_market_signals first (snapshot {snapshot_hash})."
    return json_text


# ============================================================================
# PROMPTS
# ============================================================================


@mcp.prompt
def verdict_briefing(market: str = "SET") -> str:
    """Render a market verdict as a short trading briefing."""
    result = get_prompt("verdict_briefing", {"market": market})
    if result:
        return result["messages"][0]["content"]
    return f"Summarize the {market} market verdict using analyze_market_signals."


@mcp.prompt
def conflict_review(market: str = "SET") -> str:
    """Review signal conflicts before acting on a verdict."""
    result = get_prompt("conflict_review", {"market": market})
    if result:
        return result["messages"][0]["content"]
    return f"Review {market} signal conflicts using detect_signal_conflicts."


# ============================================================================
# ENTRY POINT
# ============================================================================


def main() -> None:
    """Run the MCP server."""
    logger.info(f"Starting Market Insight MCP Server v{SERVER_VERSION} (schema v{SCHEMA_VERSION})")
    mcp.run()


if __name__ == "__main__":
    main()
