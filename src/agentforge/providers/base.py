"""Интерфейс провайдера: blocking / deferred / streaming."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import structlog

from agentforge.providers.transport import Deferred
from agentforge.providers.types import ChatRequest, ChatResponse
from agentforge.services.redaction import redact_chat_payload

log = structlog.get_logger()


class LLMProvider:
    """Базовый интерфейс провайдера.

    Реализации не хранят состояния запроса и делятся между потоками.
    """

    name: str

    def chat(self, request: ChatRequest) -> ChatResponse:
        """Блокирует вызывающий поток до полного ответа."""
        raise NotImplementedError

    def chat_async(self, request: ChatRequest) -> Deferred[ChatResponse]:
        """Возвращается сразу; ответ приходит через I/O-цикл транспорта."""
        raise NotImplementedError

    def chat_stream(self, request: ChatRequest) -> Iterator[str]:
        """Холодный генератор текстовых фрагментов в порядке получения."""
        raise NotImplementedError

    def _log_request(self, body: dict, **kw: object) -> None:
        # Хэширование текстов не бесплатное: только при включённом DEBUG.
        if logging.getLogger().isEnabledFor(logging.DEBUG):
            log.debug("llm_request", provider=self.name, payload=redact_chat_payload(body), **kw)
