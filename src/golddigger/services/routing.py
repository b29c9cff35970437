"""Request classification: model-based routing plus a deterministic fallback.

The classifier asks the premium tier for a single word.  When that call
fails for any reason, :func:`keyword_route` decides from the query text
alone so a request is never left unrouted.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from golddigger.domain.enums import AgentLabel
from golddigger.domain.values import ChatTurn
from golddigger.infrastructure.llm import LLMMessage
from golddigger.infrastructure.llm.router import TieredRouter
from golddigger.services.fallbacks import find_tickers
from golddigger.services.personality import get_agent_prompt

logger = logging.getLogger(__name__)

#: Label preferred when a request could be general chat or investment advice.
ROUTING_TIE_BIAS = AgentLabel.INVESTMENT

ROUTING_HISTORY_TURNS = 4
ROUTING_TURN_CHARS = 200

ROUTING_PROMPT = f"""You are the Gold Digger routing engine. Your ONLY job is to classify the user's message into one of three categories.

CATEGORIES:
- "investment": Stock analysis, crypto analysis, portfolio recommendations, market data, price targets, financial analysis, buy/sell/hold questions, trading, comparing assets, earnings, dividends. ALSO any vague request about making money, finding opportunities, growing wealth, what to invest in, what's good/hot/trending, or any finance-adjacent question where the user wants guidance.
- "research": Market research, niche analysis, competitive landscapes, industry trends, opportunity scoring, TAM/SAM/SOM, startup ideas, business validation, finding market gaps, sector analysis.
- "general": Greetings, general conversation, questions about Gold Digger, non-finance topics, or clearly unrelated to money/markets.

RULES:
1. Look at the FULL conversation context, not just the last message
2. If the user continues a topic from earlier messages, stay in that category
3. IMPORTANT: When in doubt between "general" and "investment", prefer "{ROUTING_TIE_BIAS.value}". This is a financial intelligence platform and users come here for money advice
4. Respond with ONLY ONE WORD: investment, research, or general
5. No explanations, no punctuation, just the single word"""

GREETING_RE = re.compile(
    r"^(hi|hello|hey|greetings|good\s+(morning|afternoon|evening)|what'?s?\s+up|yo|sup)[!.?]?$",
    re.IGNORECASE,
)

_RESEARCH_RE = re.compile(
    r"\b(research|market\s+(size|opportunity|trend|report)|competitive\s+landscape|niche|"
    r"tam\b|sam\b|som\b|opportunity\s+score|industry\s+analysis|market\s+research|go.to.market)\b",
    re.IGNORECASE,
)
_INVESTMENT_RE = re.compile(
    r"\b(stocks?|shares?|invest\w*|buy\w*|sell\w*|hold\w*|portfolio|dividends?|earnings|ipo|"
    r"etfs?|crypto\w*|bitcoin|btc|eth)\b",
    re.IGNORECASE,
)
_VALUATION_RE = re.compile(r"\b(price target|bull|bear|valuation|p/e|roi)\b", re.IGNORECASE)
# stems like "opportunit" must match "opportunities", hence no trailing \b on them
_PROACTIVE_RE = re.compile(
    r"\b(opportunit\w*|money|profit\w*|revenue|income|wealth|rich|gain\w*|returns?|grow\s+my|"
    r"where\s+to\s+put|what.?s?\s+(good|hot|trending|worth)|recommend\w*|suggest\w*|ideas?)\b",
    re.IGNORECASE,
)


def is_greeting(text: str) -> bool:
    """True for a bare greeting such as ``"hey!"`` or ``"good morning"``."""
    return bool(GREETING_RE.match(text.strip()))


def keyword_route(query: str) -> AgentLabel:
    """Classify *query* without a model.

    Research vocabulary wins over investment vocabulary; tickers, valuation
    terms and proactive money intent all route to investment.
    """
    if _RESEARCH_RE.search(query):
        return AgentLabel.RESEARCH
    if _INVESTMENT_RE.search(query) or find_tickers(query) or _VALUATION_RE.search(query):
        return AgentLabel.INVESTMENT
    if _PROACTIVE_RE.search(query):
        return ROUTING_TIE_BIAS
    return AgentLabel.GENERAL


def parse_route_label(reply: str) -> AgentLabel:
    """Map a classifier reply to a label: exact word, then substring, else general."""
    cleaned = reply.strip().lower()
    exact = AgentLabel.parse(cleaned)
    if exact is not None:
        return exact
    if "investment" in cleaned:
        return AgentLabel.INVESTMENT
    if "research" in cleaned:
        return AgentLabel.RESEARCH
    return AgentLabel.GENERAL


def routing_messages(query: str, history: Sequence[Any]) -> list[LLMMessage]:
    """The last few turns (each clipped) followed by the query."""
    messages: list[LLMMessage] = []
    for turn in [ChatTurn.from_any(t) for t in history][-ROUTING_HISTORY_TURNS:]:
        content = turn.content
        if len(content) > ROUTING_TURN_CHARS:
            content = content[:ROUTING_TURN_CHARS] + "..."
        messages.append(LLMMessage(turn.role, content))
    messages.append(LLMMessage("user", query))
    return messages


def classify(
    router: TieredRouter,
    query: str,
    history: Sequence[Any] = (),
    include_identity: bool = True,
) -> AgentLabel:
    """Route *query* with the model, falling back to :func:`keyword_route`."""
    system_prompt = get_agent_prompt("supervisor", include_identity=include_identity)
    system_prompt += "\n\n" + ROUTING_PROMPT
    try:
        reply = router.invoke_task(
            "supervisor_routing", routing_messages(query, history), system_prompt
        )
    except Exception as exc:
        label = keyword_route(query)
        logger.warning("Supervisor routing failed, keyword fallback -> %s: %s", label.value, exc)
        return label
    label = parse_route_label(reply)
    logger.info("Supervisor routed to: %s (raw: %r)", label.value, reply.strip()[:30])
    return label
