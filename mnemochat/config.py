"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """mnemochat configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    chat_model: str = Field(default="claude-sonnet-4-5-20250929")
    chat_max_tokens: int = Field(default=4096)

    # Mem0
    mem0_api_key: str = Field(default="")

    # Context window
    context_max_tokens: int = Field(default=4000)
    context_reserve_tokens: int = Field(default=1000)
    context_summary_tokens: int = Field(default=500)

    # Memory retrieval
    memory_enhance_context: bool = Field(default=True)
    memory_max_context_memories: int = Field(default=10)
    memory_min_relevance: float = Field(default=0.7)
    memory_context_weight: float = Field(default=0.3)
    memory_retry_seconds: float = Field(default=60.0)
    memory_timeout_seconds: float = Field(default=10.0)

    # Memory extraction
    memory_extraction_enabled: bool = Field(default=True)
    memory_min_message_length: int = Field(default=20)
    memory_auto_cleanup: bool = Field(default=True)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
