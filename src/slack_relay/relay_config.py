"""Configuration for the relay process.

Credentials come from the environment. Tunables come from the ``relay:``
section of an optional ``relay-config.yaml`` next to the process, with a
few environment overrides.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from slack_relay.completion import DEFAULT_MODEL
from slack_relay.streaming import FLUSH_INTERVAL_S

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "relay-config.yaml"

REQUIRED_ENV = (
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
    "SLACK_APP_TOKEN",
    "ANTHROPIC_API_KEY",
)


@dataclass(frozen=True)
class RelaySettings:
    """Tunables read from the ``relay:`` section of relay-config.yaml."""

    model: str = DEFAULT_MODEL
    max_response_tokens: int = 4096
    flush_interval_s: float = FLUSH_INTERVAL_S
    context_file: str = "context.csv"
    populate_user_cache: bool = True


def _build_sub(cls: type, data: dict[str, Any] | None) -> Any:
    """Build a frozen dataclass from a dict, ignoring unknown keys."""
    if data is None:
        return cls()
    valid = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid}
    return cls(**filtered)


def load_settings(base_dir: Path) -> RelaySettings:
    """Load the relay section from relay-config.yaml, returning defaults on failure."""
    config_path = base_dir / CONFIG_FILENAME
    try:
        if not config_path.exists():
            return RelaySettings()
        raw = yaml.safe_load(config_path.read_text())
        if isinstance(raw, dict) and isinstance(raw.get("relay"), dict):
            return _build_sub(RelaySettings, raw["relay"])
    except (OSError, yaml.YAMLError, TypeError):
        logger.debug("Could not read relay config from %s", config_path, exc_info=True)
    return RelaySettings()


@dataclass
class RelayConfig:
    """Configuration for the relay process."""

    base_dir: Path
    slack_bot_token: str
    slack_signing_secret: str
    slack_app_token: str
    anthropic_api_key: str
    model: str = DEFAULT_MODEL
    max_response_tokens: int = 4096
    flush_interval_s: float = FLUSH_INTERVAL_S
    context_file: Path = Path("context.csv")
    populate_user_cache: bool = True

    @classmethod
    def from_env(cls, base_dir: Path) -> RelayConfig:
        """Create config from environment variables and relay-config.yaml.

        Required env vars: SLACK_BOT_TOKEN, SLACK_SIGNING_SECRET,
        SLACK_APP_TOKEN, ANTHROPIC_API_KEY.
        Optional env vars: RELAY_MODEL, RELAY_CONTEXT_FILE (take precedence
        over the YAML file).

        Raises:
            ValueError: If required environment variables are missing.
        """
        env = {name: os.environ.get(name, "") for name in REQUIRED_ENV}
        missing = [name for name, value in env.items() if not value]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        settings = load_settings(base_dir)
        context_file = Path(
            os.environ.get("RELAY_CONTEXT_FILE", "") or settings.context_file
        )
        if not context_file.is_absolute():
            context_file = base_dir / context_file

        return cls(
            base_dir=base_dir,
            slack_bot_token=env["SLACK_BOT_TOKEN"],
            slack_signing_secret=env["SLACK_SIGNING_SECRET"],
            slack_app_token=env["SLACK_APP_TOKEN"],
            anthropic_api_key=env["ANTHROPIC_API_KEY"],
            model=os.environ.get("RELAY_MODEL", "") or settings.model,
            max_response_tokens=int(settings.max_response_tokens),
            flush_interval_s=float(settings.flush_interval_s),
            context_file=context_file,
            populate_user_cache=bool(settings.populate_user_cache),
        )
