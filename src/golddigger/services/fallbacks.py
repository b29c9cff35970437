"""User-facing text for failed dispatches.

When a pipeline or general chat call fails, the orchestrator never shows a
raw exception.  Connectivity failures (every model tier exhausted, timeouts,
unreachable APIs) get a useful offline answer; any other failure gets a
short per-label apology with suggestions.
"""

from __future__ import annotations

import re

from golddigger.domain.enums import AgentLabel
from golddigger.domain.exceptions import AllTiersExhaustedError, ConfigurationError
from golddigger.infrastructure.llm import LLMError
from golddigger.services.credential_detector import sanitize

COMMON_WORDS = frozenset({
    "AM", "AN", "AS", "AT", "BE", "BY", "DO", "GO", "HE", "IF", "IN", "IS", "IT",
    "ME", "MY", "NO", "OF", "ON", "OR", "SO", "TO", "UP", "US", "WE", "THE", "AND",
    "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HER", "WAS", "ONE", "OUR",
    "OUT", "HAS", "HIS", "HOW", "ITS", "MAY", "NEW", "NOW", "OLD", "SEE", "WAY",
    "WHO", "DID", "GET", "HIM", "LET", "SAY", "SHE", "TOO", "USE",
})

_TICKER_RE = re.compile(r"\b[A-Z]{2,5}\b")

_SERVICE_DOWN_MARKERS = ("LLM tiers failed", "connect", "ECONNREFUSED", "timeout", "API", "fetch")

SERVICE_NOTICE = (
    "\n\n---\n*The AI service is currently unreachable. The advice above is general "
    "guidance. Once connectivity is restored, I'll be able to give you real-time, "
    "personalized analysis. Check that your API keys are configured in Settings and "
    "your internet connection is working.*"
)


def find_tickers(text: str) -> list[str]:
    """Ticker-like tokens (2 to 5 capitals) that are not common English words."""
    return [t for t in _TICKER_RE.findall(text) if t not in COMMON_WORDS]


def is_service_down(exc: BaseException) -> bool:
    """True for failures caused by unreachable or unconfigured model services."""
    if isinstance(exc, (AllTiersExhaustedError, ConfigurationError, LLMError)):
        return True
    message = str(exc)
    return any(marker in message for marker in _SERVICE_DOWN_MARKERS)


_PATH_RE = re.compile(
    r"(?:[A-Za-z]:\\[^\s'\"]+)"           # windows paths
    r"|(?:(?<![\w.])/(?:[\w.-]+/)+[\w.-]+)"  # unix paths with at least two segments
)


def sanitize_error_text(text: str) -> str:
    """Strip file paths and credentials from text bound for the user."""
    return _PATH_RE.sub("[internal]", sanitize(text))


# -- offline answers ------------------------------------------------------------

_INVESTMENT_TICKER_TEMPLATE = (
    "I'm unable to pull live data for **{tickers}** right now, but here's what I'd "
    "normally analyze for you:\n\n"
    "**My standard analysis framework:**\n"
    "1. **Price Action**: current price vs. the 52-week range, recent trend direction\n"
    "2. **Fundamentals**: P/E ratio, revenue growth, profit margins, debt levels\n"
    "3. **Technical Signals**: 20-day and 50-day moving averages, support/resistance\n"
    "4. **Sentiment**: what the broader market is doing (SPY, QQQ) and sector rotation\n\n"
    "**While you wait, a quick checklist:**\n"
    "- Check the earnings date; avoid buying right before earnings if you're risk-averse\n"
    "- Look at the sector trend: is the sector in favor or rotating out?\n"
    "- Never invest more than you can afford to lose in any single position\n\n"
    "Once I'm back online, ask again and I'll pull live data with a full "
    "bull/bear/base case analysis."
)

_INVESTMENT_GENERAL = (
    "While I can't pull live market data right now, here's my standing guidance for "
    "smart investing:\n\n"
    "**General principles:**\n"
    "- **Diversify**: a balanced mix of stocks, bonds and alternatives reduces risk.\n"
    "- **Dollar-cost average**: if you're unsure about timing, invest a fixed amount "
    "regularly to smooth out volatility.\n"
    "- **Watch the macro**: rate decisions, inflation data and employment numbers "
    "drive market direction.\n\n"
    "**Sectors to watch:**\n"
    "- **AI & Technology**: favor companies with real revenue, not just hype.\n"
    "- **Energy transition**: solar, EVs and storage keep strong policy tailwinds.\n"
    "- **Healthcare/Biotech**: aging populations create steady demand.\n\n"
    "**Red flags:**\n"
    "- Stocks up 500%+ with no earnings\n"
    "- \"Hot tips\" from social media without your own due diligence\n"
    "- FOMO; the best trades are the patient ones\n\n"
    "Once I'm back online I'll give you real-time analysis with live market data and "
    "specific recommendations."
)

_RESEARCH_OFFLINE = (
    "I can't access live market data right now, but here are high-opportunity areas "
    "worth researching:\n\n"
    "1. **AI Infrastructure**: the picks-and-shovels (GPU providers, data centers, "
    "AI dev tools, MLOps platforms).\n"
    "   - Opportunity: high demand, limited supply, enterprise budgets shifting fast\n"
    "   - Risk: concentration in few players, potential overcapacity\n\n"
    "2. **Climate Tech & Carbon Markets**: carbon credits, emission-tracking SaaS, "
    "grid-scale storage.\n"
    "   - Opportunity: regulatory tailwinds, massive TAM\n"
    "   - Risk: policy-dependent, long development cycles\n\n"
    "3. **Creator Economy Tools**: monetization platforms, AI content tools.\n"
    "   - Opportunity: the creator market grows 20%+ annually\n"
    "   - Risk: low switching costs, high competition\n\n"
    "**How to evaluate any niche:**\n"
    "- Market size above $1B and growing 15%+ annually\n"
    "- A clear pain point with willingness to pay\n"
    "- Fragmented competition\n"
    "- Strong regulatory, demographic or technological tailwinds\n\n"
    "Once I'm back online, tell me which area interests you and I'll run a full "
    "opportunity analysis with scoring."
)

_GENERAL_OFFLINE = (
    "**Gold Digger AGI: Offline Mode**\n\n"
    "Wealth radar is temporarily limited (AI service unreachable), but here's what "
    "you should be doing right now:\n\n"
    "1. **Don't let cash sit idle**: cash beyond six months of expenses is losing to "
    "inflation.\n"
    "2. **Asymmetric bets beat safe bets**: look for capped downside with 3-10x upside.\n"
    "3. **Convert skills to cash**: one high-value skill can generate income for "
    "decades.\n\n"
    "**Once I'm back online I'll deliver** live investment analysis with price "
    "targets, market research with 0-100 opportunity scoring, and proactive wealth "
    "scanning.\n\n"
    "---\n*Check API keys in Settings if this persists.*"
)


def offline_fallback(label: AgentLabel | str, query: str) -> str:
    """Useful guidance for when no model backend is reachable."""
    label = AgentLabel.parse(label) or AgentLabel.GENERAL
    if label is AgentLabel.INVESTMENT:
        tickers = find_tickers(query)
        if tickers:
            return _INVESTMENT_TICKER_TEMPLATE.format(tickers=", ".join(tickers)) + SERVICE_NOTICE
        return _INVESTMENT_GENERAL + SERVICE_NOTICE
    if label is AgentLabel.RESEARCH:
        return _RESEARCH_OFFLINE + SERVICE_NOTICE
    return _GENERAL_OFFLINE


_AGENT_ERRORS = {
    AgentLabel.INVESTMENT: (
        "I ran into an issue while analyzing that investment. Market data services may "
        "be temporarily unavailable.\n\n"
        "You can try:\n"
        "- Specifying a ticker symbol (e.g. \"Analyze AAPL\")\n"
        "- Asking about a specific market or sector\n"
        "- Trying again in a moment"
    ),
    AgentLabel.RESEARCH: (
        "I hit a snag while researching that market. Try a more specific query, like:\n\n"
        "- \"Research the AI coding tools market\"\n"
        "- \"What's the opportunity score for EV charging?\"\n"
        "- \"Competitive landscape in fintech\""
    ),
    AgentLabel.GENERAL: (
        "I wasn't able to process that right now due to a service issue. Please check "
        "that your API keys are configured in Settings, then try again."
    ),
}


def agent_error_message(label: AgentLabel | str) -> str:
    """Short apology for a non-connectivity failure in *label*'s handler."""
    return _AGENT_ERRORS[AgentLabel.parse(label) or AgentLabel.GENERAL]


def dispatch_failure_text(label: AgentLabel | str, query: str, exc: BaseException) -> str:
    """Text shown in place of a failed dispatch."""
    if is_service_down(exc):
        return offline_fallback(label, query)
    return agent_error_message(label)
