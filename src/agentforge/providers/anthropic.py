"""Anthropic провайдер (`/v1/messages` + SSE с типизированными событиями)."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator

import structlog
from pydantic import BaseModel, Field, ValidationError

from agentforge.providers.base import LLMProvider
from agentforge.providers.errors import (
    ProviderNotConfiguredError,
    ResponseDecodeError,
    StreamError,
)
from agentforge.providers.transport import Deferred, HttpTransport
from agentforge.providers.types import ChatRequest, ChatResponse, TokenUsage
from agentforge.settings import Settings, get_settings

log = structlog.get_logger()

ANTHROPIC_VERSION = "2023-06-01"
VENDOR = "Claude"


class MessageParam(BaseModel):
    role: str
    content: str


class MessagesRequest(BaseModel):
    model: str
    max_tokens: int
    messages: list[MessageParam]
    system: str | None = None
    temperature: float | None = None
    # Только True на стриминге; в остальных случаях поле не отправляем.
    stream: bool | None = None


class ContentBlock(BaseModel):
    type: str
    text: str | None = None


class MessagesUsage(BaseModel):
    input_tokens: int | None = None
    output_tokens: int | None = None


class MessagesResponse(BaseModel):
    id: str | None = None
    model: str | None = None
    stop_reason: str | None = None
    content: list[ContentBlock] | None = Field(default_factory=list)
    usage: MessagesUsage | None = None


class TextDelta(BaseModel):
    type: str | None = None
    text: str | None = None


class ContentBlockDeltaEvent(BaseModel):
    type: str | None = None
    delta: TextDelta | None = None


ClaudeChatResponse = ChatResponse[MessagesResponse]


class AnthropicProvider(LLMProvider):
    name = "claude"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        if not settings.claude_api_key:
            raise ProviderNotConfiguredError(
                "Нужен AGENTFORGE_LLM_CLAUDE_API_KEY (или ANTHROPIC_API_KEY) для provider=claude"
            )
        self._url = settings.claude_base_url.rstrip("/") + settings.claude_messages_path
        self._headers = {
            "x-api-key": settings.claude_api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        self._default_model = settings.claude_default_model
        self._default_max_tokens = settings.claude_default_max_tokens
        self._transport = transport or HttpTransport(settings)

    def chat(self, request: ChatRequest) -> ClaudeChatResponse:
        body = self._build_body(request, stream=False)
        self._log_request(body)
        return self._decode(self._transport.post_json(self._url, self._headers, body, vendor=VENDOR))

    def chat_async(self, request: ChatRequest) -> Deferred[ClaudeChatResponse]:
        return self._transport.submit(self._complete_async, self._build_body(request, stream=False))

    def chat_stream(self, request: ChatRequest) -> Iterator[str]:
        return self._stream(self._build_body(request, stream=True))

    def _build_body(self, request: ChatRequest, stream: bool) -> dict:
        body = MessagesRequest(
            model=request.model or self._default_model,
            max_tokens=request.max_tokens or self._default_max_tokens,
            messages=[MessageParam(role=m.role, content=m.content) for m in request.messages],
            system=request.system,
            temperature=request.temperature,
            stream=True if stream else None,
        )
        return body.model_dump(exclude_none=True)

    async def _complete_async(self, body: dict) -> ClaudeChatResponse:
        self._log_request(body)
        raw = await self._transport.apost_json(self._url, self._headers, body, vendor=VENDOR)
        return self._decode(raw)

    def _decode(self, raw: bytes) -> ClaudeChatResponse:
        try:
            resp = MessagesResponse.model_validate_json(raw)
        except ValidationError as e:
            raise ResponseDecodeError(f"{VENDOR} API returned an unparseable body: {e}") from e

        content = "".join(b.text or "" for b in resp.content or [] if b.type == "text")
        usage = None
        if resp.usage is not None:
            usage = TokenUsage.of(resp.usage.input_tokens, resp.usage.output_tokens)
        log.debug(
            "llm_response",
            provider=self.name,
            model=resp.model,
            stop_reason=resp.stop_reason,
            total_tokens=usage.total_tokens if usage else None,
        )
        return ChatResponse(
            id=resp.id,
            content=content,
            model=resp.model,
            stop_reason=resp.stop_reason,
            usage=usage,
            raw_response=resp,
        )

    def _stream(self, body: dict) -> Iterator[str]:
        self._log_request(body, stream=True)
        frames = self._transport.post_json_stream(self._url, self._headers, body, vendor=VENDOR)
        with contextlib.closing(frames):
            for frame in frames:
                if frame.event == "error":
                    raise StreamError(f"{VENDOR} API stream error: {frame.data}")
                # message_start, ping, content_block_start/stop, message_delta/stop
                if frame.event != "content_block_delta" or frame.data is None:
                    continue
                try:
                    event = ContentBlockDeltaEvent.model_validate_json(frame.data)
                except ValidationError as e:
                    log.warning(
                        "stream_event_decode_failed",
                        provider=self.name,
                        data=frame.data,
                        err=str(e),
                    )
                    continue
                if event.delta is not None and event.delta.text is not None:
                    yield event.delta.text
