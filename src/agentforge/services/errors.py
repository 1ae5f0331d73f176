"""Нормализация ошибок провайдера (стабильные code/message для CLI)."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from agentforge.providers.errors import (
    HttpStatusError,
    InvalidRequestError,
    ProviderNotConfiguredError,
    ResponseDecodeError,
    StreamError,
)


@dataclass(frozen=True)
class PublicError:
    """Ошибка для показа пользователю (подробности уходят в лог)."""

    code: str
    message: str
    status_code: int | None = None


def map_provider_exception(exc: Exception) -> PublicError:
    """Преобразует исключение в стабильный публичный формат."""
    if isinstance(exc, InvalidRequestError):
        if str(exc).startswith("Unknown provider:"):
            return PublicError(code="unknown_provider", message="Неизвестный провайдер")
        return PublicError(code="invalid_request", message=f"Некорректный запрос: {exc}")

    if isinstance(exc, ProviderNotConfiguredError):
        return PublicError(code="provider_not_configured", message=str(exc))

    if isinstance(exc, HttpStatusError):
        sc = exc.status_code
        if 400 <= sc < 500:
            group = "upstream_4xx"
        elif sc >= 500:
            group = "upstream_5xx"
        else:
            group = "upstream_error"
        return PublicError(code=group, message=str(exc), status_code=sc)

    if isinstance(exc, StreamError):
        return PublicError(code="upstream_stream_error", message=str(exc))

    if isinstance(exc, ResponseDecodeError):
        return PublicError(code="bad_upstream_response", message="Upstream вернул непонятный ответ")

    if isinstance(exc, httpx.TimeoutException):
        return PublicError(code="upstream_timeout", message="Upstream не ответил вовремя")

    if isinstance(exc, httpx.TransportError):
        return PublicError(code="upstream_unreachable", message="Не удалось подключиться к upstream")

    return PublicError(code="provider_error", message="Ошибка провайдера")
