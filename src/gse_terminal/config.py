"""Configuration management via environment variables.

Reads from .env file (via pydantic-settings) with sensible defaults.
All values can be overridden via environment variables.

Required:
    ANTHROPIC_API_KEY  — Credential for the Claude web-search research calls

Optional:
    ANTHROPIC_MODEL      — Model used for research (default Claude Sonnet 4)
    MAX_TOKENS           — Response token cap; the JSON tables are long
    WEB_SEARCH_MAX_USES  — Web searches Claude may run per request
    PORT                 — Server port
    LOG_LEVEL            — uvicorn / logging level
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings

from gse_terminal.errors import ConfigError


class Settings(BaseSettings):
    # Claude API credential (required at startup)
    anthropic_api_key: str = ""

    anthropic_model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 8000
    web_search_max_uses: int = 5

    # Server
    port: int = 8877
    log_level: str = "info"

    # Strip whitespace from string fields — the .env file often has
    # trailing spaces and stray quotes around keys
    @field_validator("anthropic_api_key", "anthropic_model", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().strip('"').strip("'").strip()
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def require_api_key(self) -> str:
        """Return the API key, raising ConfigError when it is not configured."""
        if not self.anthropic_api_key:
            raise ConfigError(
                "ANTHROPIC_API_KEY is not set. "
                "Add it to your .env file or environment to run the terminal."
            )
        return self.anthropic_api_key


_config: Settings | None = None


def get_config() -> Settings:
    """Get or create the shared Settings singleton."""
    global _config
    if _config is None:
        _config = Settings()
    return _config
