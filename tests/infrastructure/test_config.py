"""Tests for the JSON config file, env overrides and derived views."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from golddigger.domain.enums import RoutingMode
from golddigger.infrastructure.config import (
    CONFIG_FILENAME,
    AppConfig,
    Preferences,
    UserProfile,
    load_config,
    mask_key,
    public_config,
    resolve_data_dir,
    resolve_routing_mode,
    save_config,
    update_config,
)

ANTHROPIC_KEY = "sk-ant-api03-" + "a" * 24 + "WXYZ"
OPENROUTER_KEY = "sk-or-v1-" + "b" * 24 + "1234"


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / CONFIG_FILENAME


class TestLoadConfig:

    def test_defaults_without_file(self, config_path: Path) -> None:
        cfg = load_config(config_path, env={})
        assert cfg.routing_mode == "auto"
        assert cfg.preferences == Preferences()
        assert not cfg.setup_complete
        assert cfg.user_profile is None

    def test_reads_camel_case_file(self, config_path: Path) -> None:
        config_path.write_text(json.dumps({
            "openrouterApiKey": OPENROUTER_KEY,
            "routingMode": "openrouter_only",
            "preferences": {"defaultAgent": "research", "enableDisclaimers": False},
            "userProfile": {"riskTolerance": "conservative", "focusAreas": ["stocks"]},
            "setupComplete": True,
        }))
        cfg = load_config(config_path, env={})
        assert cfg.openrouter_api_key == OPENROUTER_KEY
        assert cfg.routing_mode == "openrouter_only"
        assert cfg.preferences.default_agent == "research"
        assert not cfg.preferences.enable_disclaimers
        assert cfg.user_profile == UserProfile(risk_tolerance="conservative", focus_areas=("stocks",))

    def test_corrupt_file_falls_back_to_defaults(self, config_path: Path) -> None:
        config_path.write_text("{not json")
        assert load_config(config_path, env={}).routing_mode == "auto"

    def test_invalid_values_fall_back_to_defaults(self, config_path: Path) -> None:
        config_path.write_text(json.dumps({"routingMode": "round_robin", "openrouterApiKey": "x"}))
        cfg = load_config(config_path, env={})
        assert cfg.routing_mode == "auto"
        assert cfg.openrouter_api_key == ""

    def test_env_fills_keys_and_marks_setup(self, config_path: Path) -> None:
        cfg = load_config(config_path, env={"ANTHROPIC_API_KEY": ANTHROPIC_KEY})
        assert cfg.anthropic_api_key == ANTHROPIC_KEY
        assert cfg.setup_complete

    def test_file_key_wins_over_env(self, config_path: Path) -> None:
        config_path.write_text(json.dumps({"openrouterApiKey": OPENROUTER_KEY}))
        cfg = load_config(config_path, env={"OPENROUTER_API_KEY": "sk-or-from-env-000000"})
        assert cfg.openrouter_api_key == OPENROUTER_KEY

    def test_env_switches_and_models(self, config_path: Path) -> None:
        env = {
            "GOLDDIGGER_DISCLAIMERS": "false",
            "GOLDDIGGER_SAFETY": "0",
            "GOLDDIGGER_PERSONALITY": "TRUE",
            "GOLDDIGGER_MODEL_PREMIUM": "anthropic/claude-opus-4",
            "GOLDDIGGER_ROUTING": "hybrid",
        }
        cfg = load_config(config_path, env=env)
        assert not cfg.preferences.enable_disclaimers
        assert not cfg.preferences.enable_safety_governor
        assert cfg.preferences.enable_personality
        assert cfg.models.premium == "anthropic/claude-opus-4"
        assert cfg.models.light == ""
        assert cfg.routing_mode == "hybrid"

    def test_unknown_routing_env_ignored(self, config_path: Path) -> None:
        assert load_config(config_path, env={"GOLDDIGGER_ROUTING": "fastest"}).routing_mode == "auto"

    def test_default_path_from_data_dir(self, tmp_path: Path) -> None:
        env = {"GOLDDIGGER_DATA_DIR": str(tmp_path)}
        assert resolve_data_dir(env) == tmp_path
        (tmp_path / CONFIG_FILENAME).write_text(json.dumps({"routingMode": "anthropic_only"}))
        assert load_config(env=env).routing_mode == "anthropic_only"


class TestSaveAndUpdate:

    def test_round_trip(self, config_path: Path) -> None:
        cfg = AppConfig(
            openrouter_api_key=OPENROUTER_KEY,
            user_profile=UserProfile(capital_range="5k_50k"),
            setup_complete=True,
        )
        assert save_config(cfg, config_path) == config_path

        stored = json.loads(config_path.read_text())
        assert stored["openrouterApiKey"] == OPENROUTER_KEY
        assert stored["userProfile"]["capitalRange"] == "5k_50k"
        loaded = load_config(config_path, env={})
        assert loaded.user_profile == cfg.user_profile
        assert loaded.created_at == cfg.created_at

    def test_save_validates(self, config_path: Path) -> None:
        with pytest.raises(ValueError, match="default_agent"):
            save_config(AppConfig(preferences=Preferences(default_agent="oracle")), config_path)
        assert not config_path.exists()

    def test_update_merges_sections(self, config_path: Path) -> None:
        save_config(AppConfig(openrouter_api_key=OPENROUTER_KEY), config_path)
        cfg = update_config(
            config_path,
            routing_mode="openrouter_only",
            preferences={"enable_personality": False},
            models={"standard": "qwen/qwen-2.5-72b"},
            user_profile={"focus_areas": ["crypto"], "experience_level": "beginner"},
        )
        assert cfg.openrouter_api_key == OPENROUTER_KEY
        assert cfg.routing_mode == "openrouter_only"
        assert not cfg.preferences.enable_personality
        assert cfg.preferences.enable_disclaimers
        assert cfg.models.standard == "qwen/qwen-2.5-72b"
        assert cfg.user_profile == UserProfile(focus_areas=("crypto",), experience_level="beginner")
        reloaded = load_config(config_path, env={})
        assert reloaded.models == cfg.models
        assert reloaded.user_profile == cfg.user_profile

    def test_update_rejects_unknown_fields(self, config_path: Path) -> None:
        with pytest.raises(ValueError, match="Unknown config fields"):
            update_config(config_path, favourite_color="gold")


class TestDerivedViews:

    def test_mask_key(self) -> None:
        assert mask_key(ANTHROPIC_KEY) == "sk-ant-...WXYZ"
        assert mask_key("short-key") == ""
        assert mask_key("") == ""

    @pytest.mark.parametrize(
        "anthropic_key, openrouter_key, mode",
        [
            (ANTHROPIC_KEY, OPENROUTER_KEY, RoutingMode.HYBRID),
            (ANTHROPIC_KEY, "", RoutingMode.ANTHROPIC_ONLY),
            ("", OPENROUTER_KEY, RoutingMode.OPENROUTER_ONLY),
            ("", "", RoutingMode.NONE),
        ],
    )
    def test_auto_routing(self, anthropic_key: str, openrouter_key: str, mode: RoutingMode) -> None:
        cfg = AppConfig(anthropic_api_key=anthropic_key, openrouter_api_key=openrouter_key)
        assert resolve_routing_mode(cfg) is mode

    def test_explicit_routing(self) -> None:
        cfg = AppConfig(anthropic_api_key=ANTHROPIC_KEY, openrouter_api_key=OPENROUTER_KEY, routing_mode="anthropic_only")
        assert resolve_routing_mode(cfg) is RoutingMode.ANTHROPIC_ONLY

    def test_public_config_never_leaks_keys(self) -> None:
        cfg = AppConfig(anthropic_api_key=ANTHROPIC_KEY, openrouter_api_key=OPENROUTER_KEY)
        view = public_config(cfg)

        assert ANTHROPIC_KEY not in json.dumps(view)
        assert OPENROUTER_KEY not in json.dumps(view)
        assert view["hasAnthropicKey"] and view["hasOpenrouterKey"]
        assert view["anthropicKeyHint"] == "sk-ant-...WXYZ"
        assert view["openrouterKeyHint"] == "sk-or-v...1234"
        assert view["routingMode"] == "hybrid"
        assert view["preferredModel"] == "auto"
        assert "userProfile" not in view
