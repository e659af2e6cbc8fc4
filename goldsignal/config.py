"""Configuration for GoldSignal.

Settings live in ``~/.config/goldsignal/config.toml``. A missing or
unreadable file yields the defaults. Configuration is always passed
explicitly to the components that need it.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import toml
from pydantic import BaseModel, Field, ValidationError

from goldsignal.models import DEFAULT_INTERVAL_MS, AIModel


logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "goldsignal"
CONFIG_PATH = CONFIG_DIR / "config.toml"


class FeedConfig(BaseModel):
    """Market data source settings."""

    source: Literal["simulated", "binance", "twelvedata"] = "simulated"
    symbol: str = Field(default="XAUUSDT", min_length=1, description="Binance symbol")
    twelvedata_symbol: str = Field(default="XAU/USD", min_length=1)
    twelvedata_api_key: str = Field(default="", description="Required for the twelvedata source")
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0)
    history_limit: int = Field(default=250, gt=0, le=1000)
    poll_seconds: float = Field(default=2.0, gt=0)
    seed: Optional[int] = Field(default=None, description="RNG seed for the simulated feed")

    model_config = {"frozen": True}


class AIConfig(BaseModel):
    """AI signal collaborator settings."""

    model: AIModel = AIModel.GPT_4O_MINI
    api_key: str = Field(default="", description="Empty means use OPENAI_API_KEY")
    timeout: float = Field(default=30.0, gt=0)

    model_config = {"frozen": True}

    def resolve_api_key(self) -> Optional[str]:
        """Configured key, else the environment, else None."""
        key = self.api_key or os.environ.get("OPENAI_API_KEY", "")
        key = key.strip()
        # Guard against placeholder values leaking in from templates
        if not key or key == "undefined" or len(key) <= 5:
            return None
        return key


class EngineConfig(BaseModel):
    """Indicator engine and scanner settings."""

    capacity: int = Field(default=300, gt=0)
    scan_interval: float = Field(default=45.0, gt=0)
    price_offset: float = 0.0

    model_config = {"frozen": True}


class AppConfig(BaseModel):
    """Top-level configuration."""

    feed: FeedConfig = Field(default_factory=FeedConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    model_config = {"frozen": True}


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load configuration from a toml file.

    Args:
        config_path: Optional path override.

    Returns:
        Parsed configuration, or defaults when the file is missing or invalid.
    """
    path = config_path or CONFIG_PATH

    if not path.exists():
        return AppConfig()

    try:
        raw = toml.load(path)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return AppConfig()

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning("Invalid configuration in %s: %s", path, e)
        return AppConfig()


def create_template_config(config_path: Optional[Path] = None) -> Path:
    """Write a template configuration file.

    Returns:
        Path to the written file.
    """
    path = config_path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "feed": {
            "source": "simulated",  # simulated, binance or twelvedata
            "symbol": "XAUUSDT",
            "twelvedata_api_key": "",
            "history_limit": 250,
            "poll_seconds": 2.0,
        },
        "ai": {
            "model": "gpt-4o-mini",
            "api_key": "",  # Leave empty to use OPENAI_API_KEY env var
        },
        "engine": {
            "capacity": 300,
            "scan_interval": 45.0,
            "price_offset": 0.0,
        },
    }

    with open(path, "w") as f:
        toml.dump(template, f)

    return path
