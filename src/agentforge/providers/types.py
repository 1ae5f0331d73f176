"""Нейтральная модель запроса/ответа (не зависит от конкретного провайдера)."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from agentforge.providers.errors import InvalidRequestError

ROLES = ("user", "assistant", "system")

R = TypeVar("R")


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise InvalidRequestError(f"Unknown message role: {self.role!r}")
        if not isinstance(self.content, str) or not self.content:
            raise InvalidRequestError("Message content must be non-empty text")

    @classmethod
    def user(cls, text: str) -> ChatMessage:
        return cls("user", text)

    @classmethod
    def assistant(cls, text: str) -> ChatMessage:
        return cls("assistant", text)

    @classmethod
    def system(cls, text: str) -> ChatMessage:
        return cls("system", text)


@dataclass(frozen=True, kw_only=True)
class ChatRequest:
    """Запрос к LLM.

    `messages` копируются в кортеж, так что собранный запрос неизменяем.
    `model` и `max_tokens` по умолчанию берутся из настроек адаптера.
    `temperature` передаётся как есть (обычный диапазон 0..2, но не проверяем).
    """

    messages: tuple[ChatMessage, ...]
    system: str | None = None
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None

    def __post_init__(self) -> None:
        messages = tuple(self.messages or ())
        if not messages:
            raise InvalidRequestError("ChatRequest.messages must not be empty")
        object.__setattr__(self, "messages", messages)
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise InvalidRequestError("max_tokens must be a positive integer")

    def with_messages(self, messages: Iterable[ChatMessage]) -> ChatRequest:
        """Копия запроса с другим списком сообщений."""
        return dataclasses.replace(self, messages=tuple(messages))


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @classmethod
    def of(cls, input_tokens: int | None, output_tokens: int | None) -> TokenUsage:
        return cls(int(input_tokens or 0), int(output_tokens or 0))


@dataclass(frozen=True)
class ChatResponse(Generic[R]):
    """Ответ провайдера + сырой payload (`raw_response`) для тех, кому нужна точность."""

    id: str | None
    content: str
    model: str | None
    stop_reason: str | None
    usage: TokenUsage | None
    raw_response: R


@dataclass(frozen=True)
class SimpleChatResponse(ChatResponse[None]):
    """Синтезированный ответ без сырого payload."""

    raw_response: None = field(default=None)
