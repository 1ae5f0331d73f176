"""Настройки приложения (env + `.env`)."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic-настройки (всё, что обычно лежит в `.env`)."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(default="WARNING", validation_alias="LOG_LEVEL")

    database_url: str = Field(
        default="sqlite:///~/.agentforge/agentforge.db",
        validation_alias="AGENTFORGE_DATABASE_URL",
    )
    history_file: str = Field(
        default="~/.agentforge_history",
        validation_alias="AGENTFORGE_HISTORY_FILE",
    )

    # Пусто -> автоопределение по переменным окружения (см. providers.factory).
    llm_provider: str = Field(default="", validation_alias="AGENTFORGE_LLM_PROVIDER")

    claude_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "AGENTFORGE_LLM_CLAUDE_API_KEY",
            "ANTHROPIC_AUTH_TOKEN",
            "ANTHROPIC_API_KEY",
        ),
    )
    claude_base_url: str = Field(
        default="https://api.anthropic.com",
        validation_alias=AliasChoices("AGENTFORGE_LLM_CLAUDE_BASE_URL", "ANTHROPIC_BASE_URL"),
    )
    claude_messages_path: str = Field(
        default="/v1/messages",
        validation_alias="AGENTFORGE_LLM_CLAUDE_MESSAGES_PATH",
    )
    claude_default_model: str = Field(
        default="claude-sonnet-4-20250514",
        validation_alias="AGENTFORGE_LLM_CLAUDE_DEFAULT_MODEL",
    )
    claude_default_max_tokens: int = Field(
        default=1024,
        validation_alias="AGENTFORGE_LLM_CLAUDE_DEFAULT_MAX_TOKENS",
    )

    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AGENTFORGE_LLM_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    openai_base_url: str = Field(
        default="https://api.openai.com",
        validation_alias=AliasChoices("AGENTFORGE_LLM_OPENAI_BASE_URL", "OPENAI_BASE_URL"),
    )
    openai_chat_path: str = Field(
        default="/v1/chat/completions",
        validation_alias="AGENTFORGE_LLM_OPENAI_CHAT_PATH",
    )
    openai_default_model: str = Field(
        default="gpt-4o",
        validation_alias="AGENTFORGE_LLM_OPENAI_DEFAULT_MODEL",
    )
    openai_default_max_tokens: int = Field(
        default=1024,
        validation_alias="AGENTFORGE_LLM_OPENAI_DEFAULT_MAX_TOKENS",
    )

    http_connect_timeout_seconds: float = Field(
        default=10.0,
        validation_alias="AGENTFORGE_HTTP_CONNECT_TIMEOUT_SECONDS",
    )
    http_read_timeout_seconds: float = Field(
        default=120.0,
        validation_alias="AGENTFORGE_HTTP_READ_TIMEOUT_SECONDS",
    )
    http_max_workers: int = Field(default=4, validation_alias="AGENTFORGE_HTTP_MAX_WORKERS")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Ленивая загрузка настроек (один раз на процесс)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
