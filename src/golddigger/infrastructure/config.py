"""Configuration dataclasses and the JSON config file for Gold Digger.

Each config is a frozen ``dataclass`` with ``validate()``, ``to_dict()`` and
``from_dict()``.  The on-disk file (``golddigger-config.json`` in the data
directory) uses camelCase keys; dataclass fields are snake_case.

Resolution order for :func:`load_config`:

1. defaults,
2. the JSON file (if present and parseable),
3. environment variables, which fill blank keys and model overrides, and
   ``GOLDDIGGER_ROUTING`` / ``GOLDDIGGER_*`` preference switches which
   override the file.

Configs are **frozen** so a snapshot can be shared by every node of a
request without risking silent mutation; use :func:`dataclasses.replace`
(or :func:`update_config`) to derive a changed copy.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from golddigger.domain.enums import ModelTier, RoutingMode
from golddigger.domain.values import utc_now_iso

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "golddigger-config.json"
MEMORY_FILENAME = "golddigger-memory.json"

ANTHROPIC_MODELS: dict[ModelTier, str] = {
    ModelTier.LIGHT: "claude-haiku-4-5-20251001",
    ModelTier.STANDARD: "claude-sonnet-4-5-20250929",
    ModelTier.PREMIUM: "claude-sonnet-4-5-20250929",
}

OPENROUTER_MODELS: dict[ModelTier, str] = {
    ModelTier.LIGHT: "meta-llama/llama-3.1-8b-instruct",
    ModelTier.STANDARD: "meta-llama/llama-3.1-70b-instruct",
    ModelTier.PREMIUM: "anthropic/claude-sonnet-4.5",
}

_VALID_ROUTING = {"auto", "hybrid", "anthropic_only", "openrouter_only"}
_VALID_AGENTS = {"auto", "investment", "research", "general"}


def _env_bool(env: Mapping[str, str], key: str, fallback: bool) -> bool:
    value = env.get(key)
    if value is None:
        return fallback
    return value.strip().lower() in ("true", "1")


# ===================================================================== #
#  Sections                                                              #
# ===================================================================== #

@dataclass(frozen=True)
class ModelOverrides:
    """Per-tier model identifiers.  Empty string means "use the default"."""

    light: str = ""
    standard: str = ""
    premium: str = ""

    def for_tier(self, tier: ModelTier) -> str:
        return getattr(self, tier.value)

    def to_dict(self) -> dict[str, str]:
        return {"light": self.light, "standard": self.standard, "premium": self.premium}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ModelOverrides:
        data = data or {}
        return cls(
            light=str(data.get("light") or ""),
            standard=str(data.get("standard") or ""),
            premium=str(data.get("premium") or ""),
        )


@dataclass(frozen=True)
class Preferences:
    """User-facing behaviour switches.

    Attributes
    ----------
    default_agent:
        ``"auto"`` (classify every request) or a label to force.
    enable_disclaimers:
        Append the financial disclaimer to finance-adjacent replies.
    enable_safety_governor:
        Run the non-blocking governor checks.  Blocking rules always run.
    enable_personality:
        Prefix system prompts with the persona identity.
    """

    default_agent: str = "auto"
    enable_disclaimers: bool = True
    enable_safety_governor: bool = True
    enable_personality: bool = True

    def validate(self) -> None:
        if self.default_agent not in _VALID_AGENTS:
            raise ValueError(
                f"default_agent must be one of {sorted(_VALID_AGENTS)}, "
                f"got '{self.default_agent}'"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "defaultAgent": self.default_agent,
            "enableDisclaimers": self.enable_disclaimers,
            "enableSafetyGovernor": self.enable_safety_governor,
            "enablePersonality": self.enable_personality,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Preferences:
        data = data or {}
        defaults = cls()
        return cls(
            default_agent=str(data.get("defaultAgent", defaults.default_agent)),
            enable_disclaimers=bool(data.get("enableDisclaimers", defaults.enable_disclaimers)),
            enable_safety_governor=bool(
                data.get("enableSafetyGovernor", defaults.enable_safety_governor)
            ),
            enable_personality=bool(data.get("enablePersonality", defaults.enable_personality)),
        )


@dataclass(frozen=True)
class UserProfile:
    """Optional investor profile interpolated into system prompts."""

    risk_tolerance: str = ""
    capital_range: str = ""
    focus_areas: tuple[str, ...] = ()
    experience_level: str = ""
    investment_goal: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "riskTolerance": self.risk_tolerance,
            "capitalRange": self.capital_range,
            "focusAreas": list(self.focus_areas),
            "experienceLevel": self.experience_level,
            "investmentGoal": self.investment_goal,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> UserProfile | None:
        if not data:
            return None
        return cls(
            risk_tolerance=str(data.get("riskTolerance") or ""),
            capital_range=str(data.get("capitalRange") or ""),
            focus_areas=tuple(str(a) for a in data.get("focusAreas") or ()),
            experience_level=str(data.get("experienceLevel") or ""),
            investment_goal=str(data.get("investmentGoal") or ""),
        )


@dataclass(frozen=True)
class RouterSettings:
    """Transport limits for model backends."""

    anthropic_timeout: float = 60.0
    openrouter_timeout: float = 90.0
    max_tokens: int = 4096

    def validate(self) -> None:
        if self.anthropic_timeout <= 0 or self.openrouter_timeout <= 0:
            raise ValueError("backend timeouts must be > 0")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")


# ===================================================================== #
#  Application config                                                    #
# ===================================================================== #

@dataclass(frozen=True)
class AppConfig:
    """Complete configuration snapshot.

    Attributes
    ----------
    anthropic_api_key / openrouter_api_key:
        Backend credentials.  Empty string means "not configured".
    routing_mode:
        ``"auto"`` derives the mode from which keys exist.
    models:
        Per-tier model overrides.
    """

    anthropic_api_key: str = ""
    openrouter_api_key: str = ""
    routing_mode: str = "auto"
    models: ModelOverrides = field(default_factory=ModelOverrides)
    preferences: Preferences = field(default_factory=Preferences)
    user_profile: UserProfile | None = None
    router: RouterSettings = field(default_factory=RouterSettings)
    setup_complete: bool = False
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def validate(self) -> None:
        if self.routing_mode not in _VALID_ROUTING:
            raise ValueError(
                f"routing_mode must be one of {sorted(_VALID_ROUTING)}, "
                f"got '{self.routing_mode}'"
            )
        self.preferences.validate()
        self.router.validate()

    @property
    def has_any_key(self) -> bool:
        return bool(self.anthropic_api_key or self.openrouter_api_key)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "setupComplete": self.setup_complete,
            "anthropicApiKey": self.anthropic_api_key,
            "openrouterApiKey": self.openrouter_api_key,
            "routingMode": self.routing_mode,
            "models": self.models.to_dict(),
            "preferences": self.preferences.to_dict(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.user_profile is not None:
            data["userProfile"] = self.user_profile.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AppConfig:
        defaults = cls()
        cfg = cls(
            anthropic_api_key=str(data.get("anthropicApiKey") or ""),
            openrouter_api_key=str(data.get("openrouterApiKey") or ""),
            routing_mode=str(data.get("routingMode") or "auto"),
            models=ModelOverrides.from_dict(data.get("models")),
            preferences=Preferences.from_dict(data.get("preferences")),
            user_profile=UserProfile.from_dict(data.get("userProfile")),
            setup_complete=bool(data.get("setupComplete", False)),
            created_at=str(data.get("createdAt") or defaults.created_at),
            updated_at=str(data.get("updatedAt") or defaults.updated_at),
        )
        cfg.validate()
        return cfg


# ===================================================================== #
#  File I/O                                                              #
# ===================================================================== #

def resolve_data_dir(env: Mapping[str, str] | None = None) -> Path:
    """``$GOLDDIGGER_DATA_DIR`` or ``<cwd>/data``."""
    env = os.environ if env is None else env
    override = env.get("GOLDDIGGER_DATA_DIR")
    return Path(override) if override else Path.cwd() / "data"


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    return resolve_data_dir(env) / CONFIG_FILENAME


def _read_config_file(path: Path) -> AppConfig:
    if not path.exists():
        return AppConfig()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("Top-level JSON must be an object")
        return AppConfig.from_dict(raw)
    except (OSError, ValueError) as exc:
        logger.warning("Failed to parse config file %s, using defaults: %s", path, exc)
        return AppConfig()


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load the configuration snapshot.

    Parameters
    ----------
    path:
        Config file path.  Defaults to ``<data dir>/golddigger-config.json``.
    env:
        Environment mapping.  Defaults to ``os.environ``.

    Returns
    -------
    AppConfig
    """
    env = os.environ if env is None else env
    config_path = Path(path) if path is not None else default_config_path(env)
    cfg = _read_config_file(config_path)

    models = cfg.models
    models = ModelOverrides(
        light=models.light or env.get("GOLDDIGGER_MODEL_LIGHT", ""),
        standard=models.standard or env.get("GOLDDIGGER_MODEL_STANDARD", ""),
        premium=models.premium or env.get("GOLDDIGGER_MODEL_PREMIUM", ""),
    )

    prefs = cfg.preferences
    prefs = replace(
        prefs,
        enable_disclaimers=_env_bool(env, "GOLDDIGGER_DISCLAIMERS", prefs.enable_disclaimers),
        enable_safety_governor=_env_bool(env, "GOLDDIGGER_SAFETY", prefs.enable_safety_governor),
        enable_personality=_env_bool(env, "GOLDDIGGER_PERSONALITY", prefs.enable_personality),
    )

    routing = env.get("GOLDDIGGER_ROUTING") or cfg.routing_mode
    if routing not in _VALID_ROUTING:
        logger.warning("Ignoring unknown GOLDDIGGER_ROUTING value %r", routing)
        routing = cfg.routing_mode

    cfg = replace(
        cfg,
        anthropic_api_key=cfg.anthropic_api_key or env.get("ANTHROPIC_API_KEY", ""),
        openrouter_api_key=cfg.openrouter_api_key or env.get("OPENROUTER_API_KEY", ""),
        routing_mode=routing,
        models=models,
        preferences=prefs,
    )
    if not cfg.setup_complete and cfg.has_any_key:
        cfg = replace(cfg, setup_complete=True)
    return cfg


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    """Write *config* to disk (whole-file rewrite) and return the path.

    Raises
    ------
    OSError
        If the data directory is not writable.
    """
    config.validate()
    config_path = Path(path) if path is not None else default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    stamped = replace(config, updated_at=utc_now_iso())
    config_path.write_text(json.dumps(stamped.to_dict(), indent=2), encoding="utf-8")
    logger.info("Config saved to %s", config_path)
    return config_path


_SETTABLE = {f.name for f in fields(AppConfig)} - {"models", "preferences", "user_profile", "router"}


def update_config(path: str | Path | None = None, **changes: Any) -> AppConfig:
    """Merge *changes* into the stored config and persist it.

    Top-level fields are set directly; ``preferences``, ``models`` and
    ``user_profile`` accept dicts of snake_case field overrides.
    """
    current = _read_config_file(Path(path) if path is not None else default_config_path())
    top = {k: v for k, v in changes.items() if k in _SETTABLE}
    unknown = set(changes) - _SETTABLE - {"preferences", "models", "user_profile"}
    if unknown:
        raise ValueError(f"Unknown config fields: {sorted(unknown)}")

    merged = replace(current, **top)
    if "preferences" in changes:
        merged = replace(merged, preferences=replace(merged.preferences, **changes["preferences"]))
    if "models" in changes:
        merged = replace(merged, models=replace(merged.models, **changes["models"]))
    if "user_profile" in changes:
        base = merged.user_profile or UserProfile()
        profile_changes = dict(changes["user_profile"])
        if "focus_areas" in profile_changes:
            profile_changes["focus_areas"] = tuple(profile_changes["focus_areas"])
        merged = replace(merged, user_profile=replace(base, **profile_changes))

    save_config(merged, path)
    return merged


# ===================================================================== #
#  Derived views                                                         #
# ===================================================================== #

def mask_key(key: str) -> str:
    """Show the first 7 and last 4 characters of a key.

    Keys shorter than 12 characters are masked entirely (empty string).
    """
    if not key or len(key) < 12:
        return ""
    return f"{key[:7]}...{key[-4:]}"


def resolve_routing_mode(config: AppConfig) -> RoutingMode:
    """Effective routing mode: explicit setting, else derived from keys."""
    if config.routing_mode != "auto":
        return RoutingMode(config.routing_mode)
    has_anthropic = bool(config.anthropic_api_key)
    has_openrouter = bool(config.openrouter_api_key)
    if has_anthropic and has_openrouter:
        return RoutingMode.HYBRID
    if has_anthropic:
        return RoutingMode.ANTHROPIC_ONLY
    if has_openrouter:
        return RoutingMode.OPENROUTER_ONLY
    return RoutingMode.NONE


def resolve_models(config: AppConfig, backend_defaults: Mapping[ModelTier, str]) -> dict[ModelTier, str]:
    """Per-tier model names: configured override, else *backend_defaults*."""
    return {
        tier: config.models.for_tier(tier) or backend_defaults[tier]
        for tier in ModelTier
    }


def public_config(config: AppConfig) -> dict[str, Any]:
    """Client-safe view of *config*: keys are masked, never returned in full."""
    mode = resolve_routing_mode(config)
    preferred = {
        RoutingMode.ANTHROPIC_ONLY: ANTHROPIC_MODELS[ModelTier.PREMIUM],
        RoutingMode.OPENROUTER_ONLY: OPENROUTER_MODELS[ModelTier.PREMIUM],
        RoutingMode.HYBRID: "auto",
        RoutingMode.NONE: "none",
    }[mode]
    data: dict[str, Any] = {
        "setupComplete": config.setup_complete,
        "hasAnthropicKey": bool(config.anthropic_api_key),
        "hasOpenrouterKey": bool(config.openrouter_api_key),
        "anthropicKeyHint": mask_key(config.anthropic_api_key),
        "openrouterKeyHint": mask_key(config.openrouter_api_key),
        "routingMode": mode.value,
        "preferredModel": preferred,
        "models": config.models.to_dict(),
        "preferences": config.preferences.to_dict(),
        "createdAt": config.created_at,
        "updatedAt": config.updated_at,
    }
    if config.user_profile is not None:
        data["userProfile"] = config.user_profile.to_dict()
    return data
