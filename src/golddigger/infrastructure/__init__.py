"""Infrastructure layer for Gold Digger.

Re-exports the public API surface for convenience::

    from golddigger.infrastructure import (
        AppConfig, load_config, save_config,
        MemoryStore, YahooFinanceClient, MarketFeed,
        LLMMessage, LLMError,
    )
"""

from golddigger.infrastructure.config import (
    AppConfig,
    ModelOverrides,
    Preferences,
    RouterSettings,
    UserProfile,
    load_config,
    public_config,
    resolve_data_dir,
    save_config,
    update_config,
)
from golddigger.infrastructure.llm import (
    ChatBackend,
    LLMError,
    LLMMessage,
)
from golddigger.infrastructure.market_data import (
    MarketFeed,
    MarketSnapshot,
    YahooFinanceClient,
)
from golddigger.infrastructure.memory_store import (
    ConversationMemory,
    InvestmentMemory,
    MemoryStore,
    ResearchMemory,
    generate_tags,
)

__all__ = [
    "AppConfig",
    "ModelOverrides",
    "Preferences",
    "RouterSettings",
    "UserProfile",
    "load_config",
    "public_config",
    "resolve_data_dir",
    "save_config",
    "update_config",
    "ChatBackend",
    "LLMError",
    "LLMMessage",
    "MarketFeed",
    "MarketSnapshot",
    "YahooFinanceClient",
    "ConversationMemory",
    "InvestmentMemory",
    "MemoryStore",
    "ResearchMemory",
    "generate_tags",
]
