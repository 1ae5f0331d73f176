"""OpenAI-compatible провайдер (`/v1/chat/completions` + SSE `data:` с `[DONE]`)."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator

import structlog
from pydantic import BaseModel, ValidationError

from agentforge.providers.base import LLMProvider
from agentforge.providers.errors import ProviderNotConfiguredError, ResponseDecodeError
from agentforge.providers.transport import Deferred, HttpTransport
from agentforge.providers.types import ChatRequest, ChatResponse, TokenUsage
from agentforge.settings import Settings, get_settings

log = structlog.get_logger()

VENDOR = "OpenAI"
DONE_SENTINEL = "[DONE]"


class ChatMessageParam(BaseModel):
    role: str
    content: str


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessageParam]
    max_tokens: int | None = None
    temperature: float | None = None
    stream: bool | None = None


class AssistantMessage(BaseModel):
    role: str | None = None
    content: str | None = None


class Choice(BaseModel):
    index: int | None = None
    message: AssistantMessage | None = None
    finish_reason: str | None = None


class CompletionUsage(BaseModel):
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class ChatCompletion(BaseModel):
    id: str | None = None
    model: str | None = None
    choices: list[Choice] | None = None
    usage: CompletionUsage | None = None


class ChunkDelta(BaseModel):
    role: str | None = None
    content: str | None = None


class ChunkChoice(BaseModel):
    index: int | None = None
    delta: ChunkDelta | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    choices: list[ChunkChoice] | None = None


OpenAIChatResponse = ChatResponse[ChatCompletion]


class OpenAICompatibleProvider(LLMProvider):
    name = "openai"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        if not settings.openai_api_key:
            raise ProviderNotConfiguredError(
                "Нужен AGENTFORGE_LLM_OPENAI_API_KEY (или OPENAI_API_KEY) для provider=openai"
            )
        base = settings.openai_base_url.rstrip("/")
        # Разрешаем как "https://api.openai.com", так и "https://api.openai.com/v1".
        if base.endswith("/v1") and settings.openai_chat_path.startswith("/v1/"):
            base = base[: -len("/v1")]
        self._url = base + settings.openai_chat_path
        self._headers = {
            "Authorization": f"Bearer {settings.openai_api_key}",
            "Content-Type": "application/json",
        }
        self._default_model = settings.openai_default_model
        self._default_max_tokens = settings.openai_default_max_tokens
        self._transport = transport or HttpTransport(settings)

    def chat(self, request: ChatRequest) -> OpenAIChatResponse:
        body = self._build_body(request, stream=False)
        self._log_request(body)
        return self._decode(self._transport.post_json(self._url, self._headers, body, vendor=VENDOR))

    def chat_async(self, request: ChatRequest) -> Deferred[OpenAIChatResponse]:
        return self._transport.submit(self._complete_async, self._build_body(request, stream=False))

    def chat_stream(self, request: ChatRequest) -> Iterator[str]:
        return self._stream(self._build_body(request, stream=True))

    def _build_body(self, request: ChatRequest, stream: bool) -> dict:
        messages: list[ChatMessageParam] = []
        # У OpenAI нет top-level system: кладём его первым сообщением.
        if request.system is not None:
            messages.append(ChatMessageParam(role="system", content=request.system))
        messages.extend(ChatMessageParam(role=m.role, content=m.content) for m in request.messages)

        body = ChatCompletionRequest(
            model=request.model or self._default_model,
            messages=messages,
            max_tokens=request.max_tokens or self._default_max_tokens,
            temperature=request.temperature,
            stream=True if stream else None,
        )
        return body.model_dump(exclude_none=True)

    async def _complete_async(self, body: dict) -> OpenAIChatResponse:
        self._log_request(body)
        raw = await self._transport.apost_json(self._url, self._headers, body, vendor=VENDOR)
        return self._decode(raw)

    def _decode(self, raw: bytes) -> OpenAIChatResponse:
        try:
            data = ChatCompletion.model_validate_json(raw)
        except ValidationError as e:
            raise ResponseDecodeError(f"{VENDOR} API returned an unparseable body: {e}") from e

        content = ""
        finish_reason = None
        if data.choices:
            choice = data.choices[0]
            if choice.message is not None:
                content = choice.message.content or ""
            finish_reason = choice.finish_reason

        usage = None
        if data.usage is not None:
            usage = TokenUsage.of(data.usage.prompt_tokens, data.usage.completion_tokens)
        log.debug(
            "llm_response",
            provider=self.name,
            model=data.model,
            stop_reason=finish_reason,
            total_tokens=usage.total_tokens if usage else None,
        )
        return ChatResponse(
            id=data.id,
            content=content,
            model=data.model,
            stop_reason=finish_reason,
            usage=usage,
            raw_response=data,
        )

    def _stream(self, body: dict) -> Iterator[str]:
        self._log_request(body, stream=True)
        frames = self._transport.post_json_stream(self._url, self._headers, body, vendor=VENDOR)
        with contextlib.closing(frames):
            for frame in frames:
                if frame.data is None:
                    continue
                if frame.data.strip() == DONE_SENTINEL:
                    return
                try:
                    chunk = ChatCompletionChunk.model_validate_json(frame.data)
                except ValidationError as e:
                    log.warning(
                        "stream_event_decode_failed",
                        provider=self.name,
                        data=frame.data,
                        err=str(e),
                    )
                    continue
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is not None and delta.content is not None:
                    yield delta.content
