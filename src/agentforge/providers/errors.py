"""Ошибки слоя провайдеров.

Сетевые ошибки (`httpx.TransportError`, `httpx.TimeoutException`) сюда не
заворачиваются и пробрасываются как есть.
"""

from __future__ import annotations


class ProviderError(Exception):
    """Базовая ошибка вызова LLM-провайдера."""


class HttpStatusError(ProviderError):
    """Upstream ответил не-2xx. Хранит код и тело ответа без изменений."""

    def __init__(self, status_code: int, body: str, vendor: str = "HTTP") -> None:
        self.status_code = status_code
        self.body = body
        self.vendor = vendor
        super().__init__(f"{vendor} API error {status_code}: {body}")


class ResponseDecodeError(ProviderError, ValueError):
    """Тело не-стримингового ответа не разобралось как JSON нужной формы."""


class StreamError(ProviderError):
    """Провайдер прислал событие ошибки посреди SSE-потока."""


class InvalidRequestError(ValueError):
    """Некорректный запрос от внутреннего вызывающего (пустые messages, неизвестный провайдер)."""


class ProviderNotConfiguredError(RuntimeError):
    """У выбранного провайдера нет API-ключа."""
