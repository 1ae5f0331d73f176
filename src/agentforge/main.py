"""Сборка приложения: настройки, логирование, БД, транспорт, провайдер."""

from __future__ import annotations

from functools import cached_property

from sqlalchemy.engine import Engine

from agentforge.infrastructure.db import create_db_engine, create_session_factory, init_db
from agentforge.infrastructure.logging import configure_logging
from agentforge.providers.base import LLMProvider
from agentforge.providers.factory import select_provider
from agentforge.providers.transport import HttpTransport
from agentforge.services.history import ChatHistoryService
from agentforge.services.prompts import PromptRenderer
from agentforge.services.summary import DailySummarizer
from agentforge.settings import Settings, get_settings


class App:
    """Контейнер сервисов процесса.

    Провайдер выбирается один раз, при первом обращении: команды, которым LLM
    не нужен (просмотр истории), работают и без API-ключей.
    """

    def __init__(
        self,
        settings: Settings,
        engine: Engine,
        transport: HttpTransport,
        provider: LLMProvider | None = None,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.transport = transport
        self.history = ChatHistoryService(create_session_factory(engine))
        self.prompts = PromptRenderer()
        if provider is not None:
            self.__dict__["provider"] = provider

    @cached_property
    def provider(self) -> LLMProvider:
        return select_provider(self.settings, self.transport)

    @cached_property
    def summarizer(self) -> DailySummarizer:
        return DailySummarizer(self.provider, self.history)

    def close(self) -> None:
        self.transport.close()
        self.engine.dispose()


def create_app(settings: Settings | None = None) -> App:
    """Собирает приложение из настроек (env + `.env`)."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = create_db_engine(settings.database_url)
    init_db(engine)
    return App(settings, engine, HttpTransport(settings))
