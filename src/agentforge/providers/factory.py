"""Фабрика провайдеров и выбор основного провайдера при старте."""

from __future__ import annotations

import os
from collections.abc import Mapping

import structlog

from agentforge.providers.anthropic import AnthropicProvider
from agentforge.providers.base import LLMProvider
from agentforge.providers.errors import InvalidRequestError
from agentforge.providers.openai_compat import OpenAICompatibleProvider
from agentforge.providers.transport import HttpTransport
from agentforge.settings import Settings

log = structlog.get_logger()

DEFAULT_PROVIDER = "claude"


def _has_env(env: Mapping[str, str], name: str) -> bool:
    value = env.get(name)
    return value is not None and bool(value.strip())


def resolve_provider_name(configured: str | None, env: Mapping[str, str] | None = None) -> str:
    """Явная настройка важнее всего, иначе угадываем по ключам в окружении."""
    if configured is not None and configured.strip():
        return configured.strip()
    env = os.environ if env is None else env
    if _has_env(env, "ANTHROPIC_AUTH_TOKEN") or _has_env(env, "ANTHROPIC_API_KEY"):
        return "claude"
    if _has_env(env, "OPENAI_API_KEY"):
        return "openai"
    return DEFAULT_PROVIDER


def get_provider(name: str, settings: Settings, transport: HttpTransport) -> LLMProvider:
    """Возвращает провайдера по имени (`claude`, `openai`)."""
    if name == "claude":
        return AnthropicProvider(settings, transport)
    if name == "openai":
        return OpenAICompatibleProvider(settings, transport)
    raise InvalidRequestError(f"Unknown provider: {name}")


def _settings_env(settings: Settings) -> dict[str, str]:
    # Ключи берём из настроек: там уже учтены и окружение, и `.env`.
    return {
        "ANTHROPIC_API_KEY": settings.claude_api_key or "",
        "OPENAI_API_KEY": settings.openai_api_key or "",
    }


def select_provider(
    settings: Settings,
    transport: HttpTransport,
    env: Mapping[str, str] | None = None,
) -> LLMProvider:
    """Основной провайдер процесса: `openai` -> OpenAI, всё остальное -> Claude.

    Без явного `env` наличие ключей смотрим в `settings`.
    """
    if env is None:
        env = _settings_env(settings)
    selected = resolve_provider_name(settings.llm_provider, env)
    log.info("llm_provider_selected", provider=selected)
    if selected == "openai":
        return get_provider("openai", settings, transport)
    return get_provider(DEFAULT_PROVIDER, settings, transport)
