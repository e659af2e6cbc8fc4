"""Tests for configuration loading.

**Feature: gold-signal**
"""

import pytest
from pydantic import ValidationError

from goldsignal.config import (
    AIConfig,
    AppConfig,
    create_template_config,
    load_config,
)
from goldsignal.models import AIModel


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.toml")

        assert config == AppConfig()
        assert config.feed.source == "simulated"
        assert config.feed.history_limit == 250
        assert config.engine.capacity == 300
        assert config.engine.scan_interval == 45.0
        assert config.ai.model == "gpt-4o-mini"

    def test_valid_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[feed]\nsource = "binance"\nsymbol = "PAXGUSDT"\nseed = 9\n'
            '[ai]\nmodel = "gpt-4o"\ntimeout = 10.0\n'
            "[engine]\nprice_offset = 1.75\n"
        )

        config = load_config(path)

        assert config.feed.source == "binance"
        assert config.feed.symbol == "PAXGUSDT"
        assert config.feed.seed == 9
        assert config.ai.model == "gpt-4o"
        assert config.ai.timeout == 10.0
        assert config.engine.price_offset == 1.75
        assert config.engine.capacity == 300

    @pytest.mark.parametrize(
        "content",
        [
            "this is = = not toml",
            '[feed]\nsource = "bloomberg"\n',
            "[feed]\nhistory_limit = 5000\n",
            "[engine]\ncapacity = 0\n",
        ],
    )
    def test_invalid_file_gives_defaults(self, tmp_path, content):
        path = tmp_path / "config.toml"
        path.write_text(content)
        assert load_config(path) == AppConfig()

    def test_template_round_trip(self, tmp_path):
        path = create_template_config(tmp_path / "nested" / "config.toml")

        assert path.exists()
        assert load_config(path) == AppConfig()


class TestResolveApiKey:
    def test_config_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env-key-123")
        assert AIConfig(api_key="sk-config-key").resolve_api_key() == "sk-config-key"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env-key-123")
        assert AIConfig().resolve_api_key() == "sk-env-key-123"

    @pytest.mark.parametrize("value", ["", "   ", "undefined", "sk-1"])
    def test_placeholders_rejected(self, monkeypatch, value):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert AIConfig(api_key=value).resolve_api_key() is None


class TestModelSelector:
    def test_known_model(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[ai]\nmodel = "o4-mini"\n')

        assert load_config(path).ai.model == AIModel.O4_MINI

    def test_unknown_model_rejected(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[ai]\nmodel = "gpt-2"\n')

        assert load_config(path).ai.model == AIModel.GPT_4O_MINI

    def test_model_validation(self):
        with pytest.raises(ValidationError):
            AIConfig(model="not-a-model")


class TestTwelveDataConfig:
    def test_source_and_key(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[feed]\nsource = "twelvedata"\ntwelvedata_api_key = "td-key"\n')

        feed = load_config(path).feed

        assert feed.source == "twelvedata"
        assert feed.twelvedata_api_key == "td-key"
        assert feed.twelvedata_symbol == "XAU/USD"
