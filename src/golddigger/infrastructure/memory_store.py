"""MemoryStore: flat JSON log of past conversations and decisions.

One file (``golddigger-memory.json``) holds three capped collections:

==============  =====  ======================================
key             cap    record
==============  =====  ======================================
conversations   1000   :class:`ConversationMemory`
investments      500   :class:`InvestmentMemory`
research         200   :class:`ResearchMemory`
==============  =====  ======================================

Every write is read-modify-rewrite of the whole file; caps are enforced by
dropping the oldest records.  Reads are served from an in-process cache
keyed by the file's modification time.  A ``threading.Lock`` serializes
writers inside one process; across processes the last writer wins.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, TypeVar

from golddigger.domain.values import utc_now_iso
from golddigger.infrastructure.config import MEMORY_FILENAME, resolve_data_dir

logger = logging.getLogger(__name__)

MAX_CONVERSATIONS = 1000
MAX_INVESTMENTS = 500
MAX_RESEARCH = 200

SUMMARY_LENGTH = 300


def _new_id() -> str:
    return str(uuid.uuid4())


def _parse_ts(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ===================================================================== #
#  Records                                                               #
# ===================================================================== #

_CAMEL = re.compile(r"_([a-z0-9])")


def _camel(name: str) -> str:
    return _CAMEL.sub(lambda m: m.group(1).upper(), name)


R = TypeVar("R", bound="_Record")


@dataclass(frozen=True)
class _Record:
    """Shared camelCase serialization for memory records."""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[_camel(f.name)] = list(value) if isinstance(value, tuple) else value
        return data

    @classmethod
    def from_dict(cls: type[R], data: dict[str, Any]) -> R:
        """Build a record, ignoring unknown keys and defaulting missing ones."""
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            key = _camel(f.name)
            if key in data and data[key] is not None:
                value = data[key]
                kwargs[f.name] = tuple(value) if isinstance(value, list) else value
        return cls(**kwargs)


@dataclass(frozen=True)
class ConversationMemory(_Record):
    """A user query and the reply it produced."""

    user_query: str = ""
    agent_type: str = "general"
    summary: str = ""
    full_response: str = ""
    tags: tuple[str, ...] = ()
    symbols: tuple[str, ...] | None = None
    id: str = field(default_factory=_new_id)
    timestamp: str = field(default_factory=utc_now_iso)

    @property
    def search_text(self) -> str:
        return f"{self.user_query} {self.summary} {' '.join(self.tags)}".lower()


@dataclass(frozen=True)
class InvestmentMemory(_Record):
    """An investment recommendation."""

    symbol: str = ""
    action: str = "HOLD"
    confidence: float = 0.0
    reasoning: str = ""
    price_at_time: float | None = None
    entry_price: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    id: str = field(default_factory=_new_id)
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True)
class ResearchMemory(_Record):
    """A niche research verdict."""

    niche: str = ""
    opportunity_score: float = 0.0
    key_findings: str = ""
    verdict: str = ""
    id: str = field(default_factory=_new_id)
    timestamp: str = field(default_factory=utc_now_iso)


_COLLECTIONS: dict[str, tuple[type[_Record], int]] = {
    "conversations": (ConversationMemory, MAX_CONVERSATIONS),
    "investments": (InvestmentMemory, MAX_INVESTMENTS),
    "research": (ResearchMemory, MAX_RESEARCH),
}


@dataclass
class _Snapshot:
    conversations: list[ConversationMemory] = field(default_factory=list)
    investments: list[InvestmentMemory] = field(default_factory=list)
    research: list[ResearchMemory] = field(default_factory=list)
    last_updated: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversations": [r.to_dict() for r in self.conversations],
            "investments": [r.to_dict() for r in self.investments],
            "research": [r.to_dict() for r in self.research],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> _Snapshot:
        snap = cls(last_updated=str(data.get("lastUpdated") or utc_now_iso()))
        for key, (record_cls, _cap) in _COLLECTIONS.items():
            items = data.get(key) or []
            setattr(
                snap,
                key,
                [record_cls.from_dict(item) for item in items if isinstance(item, dict)],
            )
        return snap


# ===================================================================== #
#  Store                                                                 #
# ===================================================================== #

class MemoryStore:
    """File-backed memory log.

    Parameters
    ----------
    path:
        JSON file path.  Defaults to ``<data dir>/golddigger-memory.json``.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else resolve_data_dir() / MEMORY_FILENAME
        self._lock = threading.Lock()
        self._cache: _Snapshot | None = None
        self._cache_mtime: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    # -- file I/O ---------------------------------------------------------------

    def _load(self) -> _Snapshot:
        """Return the current snapshot, re-reading only when the file changed."""
        try:
            mtime = self._path.stat().st_mtime_ns
        except FileNotFoundError:
            self._cache, self._cache_mtime = _Snapshot(), None
            return self._cache

        if self._cache is not None and self._cache_mtime == mtime:
            return self._cache
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("Top-level JSON must be an object")
            self._cache = _Snapshot.from_dict(raw)
        except (OSError, ValueError) as exc:
            logger.error("Error loading memory store %s: %s", self._path, exc)
            self._cache = _Snapshot()
        self._cache_mtime = mtime
        return self._cache

    def _save(self, snap: _Snapshot) -> None:
        snap.last_updated = utc_now_iso()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(snap.to_dict(), indent=2), encoding="utf-8")
        self._cache = snap
        self._cache_mtime = self._path.stat().st_mtime_ns

    def _append(self, key: str, record: _Record) -> str:
        _record_cls, cap = _COLLECTIONS[key]
        with self._lock:
            current = self._load()
            items = [*getattr(current, key), record]
            # the cached snapshot only changes once the write succeeds
            self._save(replace(current, **{key: items[-cap:]}))
        return record.id  # type: ignore[attr-defined]

    # -- writes -----------------------------------------------------------------

    def store_conversation(
        self,
        user_query: str,
        agent_type: str,
        full_response: str,
        summary: str | None = None,
        tags: list[str] | tuple[str, ...] | None = None,
        symbols: list[str] | tuple[str, ...] | None = None,
    ) -> str:
        """Append a conversation record and return its id.

        *summary* defaults to the first 300 characters of the response and
        *tags* to :func:`generate_tags`.
        """
        record = ConversationMemory(
            user_query=user_query,
            agent_type=agent_type,
            summary=summary if summary is not None else full_response[:SUMMARY_LENGTH],
            full_response=full_response,
            tags=tuple(tags if tags is not None else generate_tags(user_query, full_response)),
            symbols=tuple(symbols) if symbols else None,
        )
        return self._append("conversations", record)

    def store_investment_decision(self, record: InvestmentMemory | None = None, **values: Any) -> str:
        """Append an investment record (given whole or as keyword fields)."""
        record = record or InvestmentMemory(**values)
        return self._append("investments", replace(record, id=_new_id(), timestamp=utc_now_iso()))

    def store_research_finding(self, record: ResearchMemory | None = None, **values: Any) -> str:
        """Append a research record (given whole or as keyword fields)."""
        record = record or ResearchMemory(**values)
        return self._append("research", replace(record, id=_new_id(), timestamp=utc_now_iso()))

    # -- recall -----------------------------------------------------------------

    def recall_relevant(self, query: str, limit: int = 10) -> list[ConversationMemory]:
        """Conversations ranked by keyword relevance to *query*.

        Each record scores the whole-word occurrences of the query's words
        (longer than two characters) in its query, summary and tags, divided
        by that text's word count.  Ties go to the newer record.  When nothing
        matches, the *limit* most recent records are returned, newest first.
        """
        with self._lock:
            conversations = list(self._load().conversations)
        if not conversations or limit <= 0:
            return []

        words = [w for w in query.lower().split() if len(w) > 2]
        recent = conversations[-limit:][::-1]
        if not words:
            return recent

        patterns = [re.compile(rf"\b{re.escape(w)}\b") for w in words]
        scored: list[tuple[float, int, ConversationMemory]] = []
        for index, conv in enumerate(conversations):
            text = conv.search_text
            matches = sum(len(p.findall(text)) for p in patterns)
            total = len(text.split())
            score = matches / total * 100 if total else 0.0
            scored.append((score, index, conv))

        if not any(score > 0 for score, _, _ in scored):
            return recent
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [conv for _, _, conv in scored[:limit]]

    def recall_investment_history(
        self, symbol: str | None = None, limit: int = 20
    ) -> list[InvestmentMemory]:
        """Most recent investment records, optionally for one symbol."""
        with self._lock:
            items = list(self._load().investments)
        if symbol:
            items = [i for i in items if i.symbol.upper() == symbol.upper()]
        return items[-limit:][::-1] if limit > 0 else []

    def recall_research_history(
        self, niche: str | None = None, limit: int = 20
    ) -> list[ResearchMemory]:
        """Most recent research records, optionally whose niche contains *niche*."""
        with self._lock:
            items = list(self._load().research)
        if niche:
            items = [r for r in items if niche.lower() in r.niche.lower()]
        return items[-limit:][::-1] if limit > 0 else []

    def get_recent_conversations(self, limit: int = 20) -> list[ConversationMemory]:
        with self._lock:
            items = list(self._load().conversations)
        return items[-limit:][::-1] if limit > 0 else []

    # -- maintenance ------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Collection sizes and the oldest/newest timestamps across all records."""
        with self._lock:
            snap = self._load()
            records: list[Any] = [*snap.conversations, *snap.investments, *snap.research]
            stats: dict[str, Any] = {
                "totalConversations": len(snap.conversations),
                "totalInvestments": len(snap.investments),
                "totalResearch": len(snap.research),
                "oldestMemory": None,
                "newestMemory": None,
            }
        if records:
            stamps = sorted(_parse_ts(r.timestamp) for r in records)
            stats["oldestMemory"] = stamps[0].isoformat()
            stats["newestMemory"] = stamps[-1].isoformat()
        return stats

    def prune_old_memories(self, max_age_days: float) -> int:
        """Drop records older than *max_age_days*, then re-apply the caps.

        Returns
        -------
        int
            Number of records removed.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=max_age_days)
        removed = 0
        with self._lock:
            current = self._load()
            kept: dict[str, list[Any]] = {}
            for key, (_cls, cap) in _COLLECTIONS.items():
                items = getattr(current, key)
                kept[key] = [r for r in items if _parse_ts(r.timestamp) > cutoff][-cap:]
                removed += len(items) - len(kept[key])
            if removed:
                self._save(replace(current, **kept))
        if removed:
            logger.info("Pruned %d memories older than %s days", removed, max_age_days)
        return removed

    def __repr__(self) -> str:
        return f"MemoryStore(path={str(self._path)!r})"


# ===================================================================== #
#  Tagging                                                               #
# ===================================================================== #

_TICKER_RE = re.compile(r"\b([A-Z]{1,5})\b")

_ACTION_TERMS = (
    "buy", "sell", "hold", "avoid", "long", "short",
    "bullish", "bearish", "rally", "dump", "pump",
)
_ASSET_TERMS = (
    "stock", "crypto", "bitcoin", "ethereum", "etf", "fund",
    "bond", "commodity", "forex", "gold", "oil",
)
_CONCEPT_TERMS = (
    "growth", "value", "dividend", "dividend-paying", "earnings", "revenue",
    "market-cap", "volatility", "risk", "hedge", "portfolio", "diversification",
    "momentum", "trend", "support", "resistance", "breakout", "chart",
    "technical", "fundamental",
)


def generate_tags(query: str, response: str) -> list[str]:
    """Searchable tags for a conversation, in first-seen order.

    Uppercase tokens of up to five letters are kept as ticker tags; action,
    asset and concept vocabularies are matched as substrings.
    """
    tags: dict[str, None] = {}
    for match in _TICKER_RE.finditer(f"{query} {response}"):
        tags[match.group(1)] = None

    text = f"{query} {response}".lower()
    for term in (*_ACTION_TERMS, *_ASSET_TERMS):
        if term in text:
            tags[term] = None
    for concept in _CONCEPT_TERMS:
        if concept in text or concept.replace("-", " ") in text:
            tags[concept] = None

    if any(w in text for w in ("short", "week", "day")):
        tags["short-term"] = None
    if any(w in text for w in ("long", "year", "month")):
        tags["long-term"] = None
    return list(tags)
