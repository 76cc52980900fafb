"""Tests for relay configuration loading."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from slack_relay.relay_config import RelayConfig, RelaySettings, load_settings

ENV = {
    "SLACK_BOT_TOKEN": "xoxb-test",
    "SLACK_SIGNING_SECRET": "secret",
    "SLACK_APP_TOKEN": "xapp-test",
    "ANTHROPIC_API_KEY": "sk-ant-test",
}


class TestLoadSettings:
    def test_defaults_without_file(self, tmp_path: Path):
        assert load_settings(tmp_path) == RelaySettings()

    def test_reads_relay_section(self, tmp_path: Path):
        (tmp_path / "relay-config.yaml").write_text(
            "relay:\n"
            "  model: claude-opus-4-20250514\n"
            "  flush_interval_s: 2.5\n"
            "  populate_user_cache: false\n"
            "  unknown_key: ignored\n"
        )
        settings = load_settings(tmp_path)
        assert settings.model == "claude-opus-4-20250514"
        assert settings.flush_interval_s == 2.5
        assert settings.populate_user_cache is False
        assert settings.max_response_tokens == 4096

    def test_malformed_yaml_falls_back(self, tmp_path: Path):
        (tmp_path / "relay-config.yaml").write_text("relay: [unclosed\n")
        assert load_settings(tmp_path) == RelaySettings()

    def test_missing_section_falls_back(self, tmp_path: Path):
        (tmp_path / "relay-config.yaml").write_text("other:\n  model: x\n")
        assert load_settings(tmp_path) == RelaySettings()


class TestRelayConfigFromEnv:
    def test_from_env_success(self, tmp_path: Path):
        with patch.dict("os.environ", ENV, clear=True):
            cfg = RelayConfig.from_env(tmp_path)
        assert cfg.slack_bot_token == "xoxb-test"
        assert cfg.slack_signing_secret == "secret"
        assert cfg.slack_app_token == "xapp-test"
        assert cfg.anthropic_api_key == "sk-ant-test"
        assert cfg.flush_interval_s == 1.0
        assert cfg.context_file == tmp_path / "context.csv"

    def test_missing_vars_all_reported(self, tmp_path: Path):
        env = {"SLACK_BOT_TOKEN": "xoxb-test"}
        with (
            patch.dict("os.environ", env, clear=True),
            pytest.raises(ValueError) as exc_info,
        ):
            RelayConfig.from_env(tmp_path)
        message = str(exc_info.value)
        assert "SLACK_SIGNING_SECRET" in message
        assert "SLACK_APP_TOKEN" in message
        assert "ANTHROPIC_API_KEY" in message
        assert "SLACK_BOT_TOKEN" not in message

    def test_yaml_settings_applied(self, tmp_path: Path):
        (tmp_path / "relay-config.yaml").write_text(
            "relay:\n  max_response_tokens: 512\n  context_file: prompts/ctx.csv\n"
        )
        with patch.dict("os.environ", ENV, clear=True):
            cfg = RelayConfig.from_env(tmp_path)
        assert cfg.max_response_tokens == 512
        assert cfg.context_file == tmp_path / "prompts" / "ctx.csv"

    def test_env_overrides_yaml(self, tmp_path: Path):
        (tmp_path / "relay-config.yaml").write_text("relay:\n  model: from-yaml\n")
        env = {**ENV, "RELAY_MODEL": "from-env", "RELAY_CONTEXT_FILE": "/etc/ctx.csv"}
        with patch.dict("os.environ", env, clear=True):
            cfg = RelayConfig.from_env(tmp_path)
        assert cfg.model == "from-env"
        assert cfg.context_file == Path("/etc/ctx.csv")
