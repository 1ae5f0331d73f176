"""HTTP-транспорт провайдеров: общие httpx-клиенты, фоновый I/O-цикл, SSE-стрим."""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Awaitable, Callable, Iterator
from concurrent.futures import Future
from typing import Any, Generic, TypeVar

import httpx

from agentforge.providers.errors import HttpStatusError
from agentforge.providers.sse import SseFrame, iter_sse_frames
from agentforge.settings import Settings, get_settings

T = TypeVar("T")

SHUTDOWN_TIMEOUT_SECONDS = 5.0


def _encode_json(body: dict) -> bytes:
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class Deferred(Generic[T]):
    """Результат, который появится позже (один раз): ответ либо ошибка.

    `cancel()` отменяет задачу в I/O-цикле: идущий HTTP-обмен обрывается на
    любой стадии (включая ожидание заголовков), соединение закрывается, а
    `result()` сразу поднимает `CancelledError`.
    """

    def __init__(self, future: Future) -> None:
        self._future = future

    def result(self, timeout: float | None = None) -> T:
        return self._future.result(timeout)

    def exception(self, timeout: float | None = None) -> BaseException | None:
        return self._future.exception(timeout)

    def cancel(self) -> bool:
        return self._future.cancel()

    def cancelled(self) -> bool:
        return self._future.cancelled()

    def done(self) -> bool:
        return self._future.done()

    def add_done_callback(self, fn: Callable[[Deferred[T]], Any]) -> None:
        self._future.add_done_callback(lambda _f: fn(self))


class HttpTransport:
    """Общий HTTP-транспорт процесса.

    Блокирующие вызовы и стримы идут через `httpx.Client` на потоке вызывающего.
    Отложенные вызовы идут через `httpx.AsyncClient` в отдельном потоке с
    event loop (поднимается при первом `submit`), не больше `http_max_workers`
    обменов одновременно. Сам транспорт payload не интерпретирует: только
    JSON-кодирование запроса и SSE-кадрирование ответа.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or get_settings()
        timeout = httpx.Timeout(
            settings.http_read_timeout_seconds,
            connect=settings.http_connect_timeout_seconds,
        )
        self._client = client or httpx.Client(timeout=timeout)
        self._async_client = async_client or httpx.AsyncClient(timeout=timeout)
        self._slots = asyncio.Semaphore(settings.http_max_workers)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def post_json(self, url: str, headers: dict[str, str], body: dict, *, vendor: str) -> bytes:
        """POST JSON и чтение всего тела. Не-2xx -> `HttpStatusError`."""
        r = self._client.post(url, headers=headers, content=_encode_json(body))
        if not r.is_success:
            raise HttpStatusError(r.status_code, r.text, vendor)
        return r.content

    async def apost_json(self, url: str, headers: dict[str, str], body: dict, *, vendor: str) -> bytes:
        """То же, что `post_json`, для отложенных вызовов (см. `submit`)."""
        async with self._slots:
            r = await self._async_client.post(url, headers=headers, content=_encode_json(body))
        if not r.is_success:
            raise HttpStatusError(r.status_code, r.text, vendor)
        return r.content

    def post_json_stream(
        self,
        url: str,
        headers: dict[str, str],
        body: dict,
        *,
        vendor: str,
    ) -> Iterator[SseFrame]:
        """POST JSON и ленивое чтение SSE-кадров.

        Генератор холодный: запрос уходит только на первом `next()`. Закрытие
        генератора закрывает ответ и возвращает соединение в пул.
        """
        with self._client.stream("POST", url, headers=headers, content=_encode_json(body)) as r:
            if not r.is_success:
                r.read()
                raise HttpStatusError(r.status_code, r.text, vendor)
            yield from iter_sse_frames(r.iter_lines())

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name="agentforge-io", daemon=True)
                thread.start()
                self._loop, self._loop_thread = loop, thread
            return self._loop

    def submit(self, fn: Callable[..., Awaitable[T]], *args: Any) -> Deferred[T]:
        """Запускает корутину `fn(*args)` в I/O-цикле транспорта."""
        loop = self._ensure_loop()
        return Deferred(asyncio.run_coroutine_threadsafe(fn(*args), loop))

    async def _shutdown(self) -> None:
        pending = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self._async_client.aclose()

    def close(self) -> None:
        self._client.close()
        with self._lock:
            loop, thread = self._loop, self._loop_thread
            self._loop = self._loop_thread = None
        if loop is None:
            return
        asyncio.run_coroutine_threadsafe(self._shutdown(), loop).result(SHUTDOWN_TIMEOUT_SECONDS)
        loop.call_soon_threadsafe(loop.stop)
        thread.join(SHUTDOWN_TIMEOUT_SECONDS)
        loop.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
