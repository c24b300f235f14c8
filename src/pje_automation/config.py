import os
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from .browser.agent.exceptions import ConfigurationError
from .state import APP_STATE
from .utils import PJE_HOME

logger = structlog.get_logger(__name__)

CONFIG_FILENAME = "config.yaml"

# Environment variables that override values read from the config file.
ENV_OVERRIDES = {
    "PJE_RETRY_INTERVAL_MS": ("retry", "interval_ms"),
    "PJE_BROWSER_TYPE": ("browser", "browser_type"),
    "PJE_HEADLESS": ("browser", "headless"),
}


class RetrySettings(BaseModel):
    """Settings shared by every top-level locate call."""

    interval_ms: int = Field(
        3000, ge=0, description="Delay between two full locate attempts."
    )


class BrowserSettings(BaseModel):
    """How the CLI launches its local browser."""

    browser_type: str = Field("chromium", description="chromium, firefox or webkit.")
    headless: bool = True
    default_timeout_ms: int = Field(30000, gt=0)


class AutomationConfig(BaseModel):
    """Process-wide configuration for the PJe automation."""

    retry: RetrySettings = Field(default_factory=RetrySettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    screenshots_dir: Optional[Path] = Field(
        None, description="Where failure screenshots go. Defaults to PJE_HOME/screenshots."
    )

    def resolved_screenshots_dir(self, pje_home: Path | None = None) -> Path:
        return self.screenshots_dir or (pje_home or PJE_HOME) / "screenshots"


def _apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None:
            continue
        raw.setdefault(section, {})[key] = value
        logger.debug("Config value overridden from environment.", env=env_name)
    return raw


def load_config(pje_home: Path | None = None) -> AutomationConfig:
    """
    Builds the configuration from `<PJE_HOME>/config.yaml` (if present) and
    environment overrides.

    Raises:
        ConfigurationError: the file is not valid YAML or a value fails validation.
    """
    home = pje_home or PJE_HOME
    config_path = home / CONFIG_FILENAME
    raw: Dict[str, Any] = {}

    if config_path.is_file():
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse '{config_path}': {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"'{config_path}' must contain a mapping at the top level."
            )
        logger.debug("Loaded configuration file.", path=str(config_path))

    try:
        config = AutomationConfig.model_validate(_apply_env_overrides(raw))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.debug(
        "Configuration ready.",
        interval_ms=config.retry.interval_ms,
        browser_type=config.browser.browser_type,
    )
    return config


def get_config() -> AutomationConfig:
    """Returns the active process-wide configuration, loading it on first use."""
    if APP_STATE.config is None:
        APP_STATE.config = load_config()
    return APP_STATE.config
