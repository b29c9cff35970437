"""Canned model replies for scripted backends.

Keys are substrings of the system prompts the pipelines send, so one
:class:`~golddigger.testing.ScriptedBackend` can answer every node.
"""

from __future__ import annotations

import json

RECOMMENDATION_JSON = json.dumps(
    {
        "action": "BUY",
        "confidence": 72,
        "position_type": "LONG",
        "timeframe": "MEDIUM_TERM",
        "entry_price": 189.5,
        "stop_loss": 178.0,
        "take_profit": 212.0,
        "risk_level": "MEDIUM",
        "signal": "AAPL is holding above its 50-day average after earnings.",
        "opportunity": "Buy the pullback toward support with a tight stop.",
        "reasoning": "Services growth offsets slower hardware sales; valuation is stretched.",
        "risk_warning": "A weak iPhone cycle could break support.",
        "key_factors": ["Services margin", "Buybacks", "China demand"],
        "action_today": "Set a limit order near 189.50.",
    }
)

RESEARCH_REPLIES: dict[str, str] = {
    "market research query analyzer": json.dumps(
        {"niche": "AI coding tools", "depth": "standard", "query_understood": True}
    ),
    "market trends analyst": json.dumps(
        {
            "growth_rate": "growing",
            "seasonality": "low",
            "key_trends": ["Agentic workflows", "IDE integration", "Enterprise adoption"],
            "emerging_opportunities": ["Code review bots"],
        }
    ),
    "competitive intelligence analyst": json.dumps(
        {
            "competition_level": "high",
            "market_leaders": ["GitHub Copilot", "Cursor"],
            "barriers_to_entry": ["Model access"],
            "differentiation_opportunities": ["Vertical languages"],
        }
    ),
    "market sizing analyst": json.dumps(
        {
            "estimated_tam": "$25B",
            "estimated_sam": "$6B",
            "estimated_som": "$120M",
            "confidence_level": "medium",
            "data_sources_note": "Analyst reports",
        }
    ),
    "customer research analyst": json.dumps(
        {
            "pain_points": ["Hallucinated APIs", "Context limits", "Pricing"],
            "severity_assessment": "high",
            "target_audience": ["Startups", "Enterprise teams"],
        }
    ),
    "wealth-focused strategic recommendations": (
        "1. **Verdict**: Conditional yes.\n2. **The Money Play**: Build for niche stacks."
    ),
}


def investment_replies(route: str = "investment") -> dict[str, str]:
    """Keyed replies covering the classifier and all six investment nodes.

    The recommendation key comes first: its system prompt also carries the
    persona text.
    """
    return {
        "DAILY RADAR": RECOMMENDATION_JSON,
        "routing engine": route,
        "investment query parser": '{"symbol": "AAPL", "asset_type": "stock", "timeframe": "3m"}',
        "financial analyst": "Margins are healthy and the balance sheet is strong.",
        "technical analyst": "Price sits above both moving averages, an uptrend.",
        "market sentiment analyst": "Broad indices are rising, supportive for large caps.",
    }
