import json
from collections.abc import Callable, Iterator

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from agentforge.infrastructure.db import init_db
from agentforge.providers.base import LLMProvider
from agentforge.providers.types import ChatRequest
from agentforge.providers.transport import HttpTransport
from agentforge.settings import Settings

Handler = Callable[[httpx.Request], httpx.Response]


def make_settings(**overrides) -> Settings:
    values = {
        "llm_provider": "",
        "claude_api_key": "test-api-key",
        "claude_base_url": "https://api.anthropic.com",
        "claude_default_model": "claude-test",
        "claude_default_max_tokens": 512,
        "openai_api_key": "test-api-key",
        "openai_base_url": "https://api.openai.com",
        "openai_default_model": "gpt-test",
        "openai_default_max_tokens": 512,
        "database_url": "sqlite://",
        "http_max_workers": 2,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sse_body(*frames: tuple[str | None, str]) -> bytes:
    """Собирает `text/event-stream` из пар (event, data)."""
    out = []
    for event, data in frames:
        if event is not None:
            out.append(f"event: {event}\n")
        for line in data.split("\n"):
            out.append(f"data: {line}\n")
        out.append("\n")
    return "".join(out).encode("utf-8")


def sse_response(body: bytes) -> httpx.Response:
    return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body)


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content.decode("utf-8"))


class FakeProvider(LLMProvider):
    """Провайдер без сети: отдаёт заранее заданные фрагменты и запоминает запросы."""

    name = "fake"

    def __init__(self, chunks: list[str] | None = None, error: Exception | None = None) -> None:
        self.chunks = chunks if chunks is not None else ["ok"]
        self.error = error
        self.requests: list[ChatRequest] = []

    def chat_stream(self, request: ChatRequest) -> Iterator[str]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return iter(list(self.chunks))


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def make_transport(settings: Settings):
    created: list[HttpTransport] = []

    def _make(handler: Handler, s: Settings | None = None) -> HttpTransport:
        mock = httpx.MockTransport(handler)
        transport = HttpTransport(
            s or settings,
            client=httpx.Client(transport=mock),
            async_client=httpx.AsyncClient(transport=mock),
        )
        created.append(transport)
        return transport

    yield _make
    for t in created:
        t.close()


@pytest.fixture
def engine() -> Iterator[Engine]:
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()
