"""Public testing utilities for Gold Digger.

Scripted model backends and a static market feed for writing
self-contained tests and examples without API keys or network access.
"""

from golddigger.testing.market import StaticMarketFeed, bullish_overview
from golddigger.testing.mock_llm import (
    BackendCall,
    FailingBackend,
    ScriptedBackend,
    ScriptedChatModel,
)

__all__ = [
    "BackendCall",
    "FailingBackend",
    "ScriptedBackend",
    "ScriptedChatModel",
    "StaticMarketFeed",
    "bullish_overview",
]
