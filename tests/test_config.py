"""Tests for settings loading."""

import pytest

from gse_terminal import config
from gse_terminal.config import Settings, get_config
from gse_terminal.errors import ConfigError


def test_defaults(monkeypatch):
    for var in ("ANTHROPIC_MODEL", "MAX_TOKENS", "WEB_SEARCH_MAX_USES", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None)
    assert settings.anthropic_model == "claude-sonnet-4-20250514"
    assert settings.max_tokens == 8000
    assert settings.web_search_max_uses == 5
    assert settings.port == 8877
    assert settings.log_level == "info"


def test_env_vars_override(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", '  "sk-test"  ')
    monkeypatch.setenv("PORT", "9000")
    settings = Settings(_env_file=None)
    assert settings.anthropic_api_key == "sk-test"
    assert settings.port == 9000


def test_require_api_key():
    assert Settings(_env_file=None, anthropic_api_key="k").require_api_key() == "k"
    with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
        Settings(_env_file=None, anthropic_api_key="  ").require_api_key()


def test_config_error_is_a_value_error():
    assert issubclass(ConfigError, ValueError)


def test_get_config_is_shared(monkeypatch):
    monkeypatch.setattr(config, "_config", None)
    assert get_config() is get_config()
