"""Prompt templates for market insight briefings."""

from typing import Any

# Prompt definitions
PROMPTS = {
    "verdict_briefing": {
        "description": "Render a market verdict as a short trading briefing",
        "arguments": [{"name": "market", "required": False}],
    },
    "conflict_review": {
        "description": "Review signal conflicts before acting on a verdict",
        "arguments": [{"name": "market", "required": False}],
    },
}


def list_prompts() -> list[dict[str, Any]]:
    """List available prompts."""
    return [
        {
            "name": name,
            "description": info["description"],
            "arguments": info["arguments"],
        }
        for name, info in PROMPTS.items()
    ]


def get_prompt(name: str, arguments: dict[str, str]) -> dict[str, Any] | None:
    """
    Get a prompt by name with arguments filled in.

    Returns dict with 'messages' key for MCP GetPromptResult.
    """
    if name not in PROMPTS:
        return None

    market = arguments.get("market") or "SET"

    if name == "verdict_briefing":
        return {
            "messages": [
                {
                    "role": "user",
                    "content": f"""Produce a trading briefing for the {market} market.

Call analyze_market_signals with the latest signal bundle, then render:

1. VERDICT: verdict + conviction + confidence (e.g. "PROCEED, High conviction, 78%")
2. PRIMARY DRIVER: primary_driver and sector_focus
3. EXPLANATION: render the explanation field VERBATIM
4. ACTION: render actionable_takeaway VERBATIM
5. CONFLICTS: if key_conflict_alert is set, show it as a warning line
6. SCORE MATH: list every reasoning line in order, ending with the final score
7. RULE APPLIED: resolution.applied_rules and resolution.special_cases (or "none")
8. DATA GAPS: if used_defaults is true, list defaulted_inputs and state that
   those signals were scored as 0, so the verdict is weaker than it looks

Rules:
- Never upgrade a WAIT or NEUTRAL verdict in your wording
- Do not recompute scores; use the values in the response
- Quote the resource_uri so the verdict can be re-read without recomputing""",
                }
            ]
        }

    if name == "conflict_review":
        return {
            "messages": [
                {
                    "role": "user",
                    "content": f"""Review signal conflicts for the {market} market.

Call detect_signal_conflicts with the latest signal bundle, then:

1. State conflict_level and whether has_critical_conflict is true
2. For each conflict: type, severity, description, impact
3. Group by severity (High first)
4. If any conflict is "High Prop Trading Noise", say that resolution will
   return WAIT regardless of the other signals

Then call resolve_verdict with the same bundle and the conflict list,
and explain how the conflicts shaped the verdict.""",
                }
            ]
        }

    return None
