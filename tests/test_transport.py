import asyncio
import threading
import time
from concurrent.futures import CancelledError
from functools import partial

import httpx
import pytest

from agentforge.providers.errors import HttpStatusError
from agentforge.providers.sse import SseFrame
from conftest import make_settings

URL = "https://api.example.test/v1/x"


def test_post_json_encodes_body_compact_utf8(make_transport) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b'{"ok":true}')

    transport = make_transport(handler)
    raw = transport.post_json(URL, {"Content-Type": "application/json"}, {"text": "你好", "n": 1}, vendor="X")

    assert raw == b'{"ok":true}'
    assert seen[0].method == "POST"
    assert seen[0].content == '{"text":"你好","n":1}'.encode("utf-8")


def test_post_json_non_2xx_keeps_status_and_body(make_transport) -> None:
    transport = make_transport(lambda r: httpx.Response(503, text="upstream down"))

    with pytest.raises(HttpStatusError) as excinfo:
        transport.post_json(URL, {}, {}, vendor="Claude")

    assert excinfo.value.status_code == 503
    assert excinfo.value.body == "upstream down"
    assert str(excinfo.value) == "Claude API error 503: upstream down"


def test_network_errors_propagate_unchanged(make_transport) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    transport = make_transport(handler)
    with pytest.raises(httpx.ConnectError):
        transport.post_json(URL, {}, {}, vendor="X")


def test_post_json_stream_yields_frames(make_transport) -> None:
    body = b"event: a\ndata: 1\n\ndata: 2\ndata: 3\n\n"
    transport = make_transport(lambda r: httpx.Response(200, content=body))

    frames = list(transport.post_json_stream(URL, {}, {}, vendor="X"))
    assert frames == [SseFrame(event="a", data="1"), SseFrame(data="2\n3")]


def test_post_json_stream_is_cold(make_transport) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=b"data: 1\n\n")

    transport = make_transport(handler)
    frames = transport.post_json_stream(URL, {}, {}, vendor="X")
    assert calls == []
    next(frames)
    assert len(calls) == 1
    frames.close()


def test_submitted_post_resolves_and_carries_errors(make_transport) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/fail"):
            return httpx.Response(500, text="boom")
        return httpx.Response(200, content=b"ok")

    transport = make_transport(handler)
    ok = transport.submit(partial(transport.apost_json, URL, {}, {}, vendor="X"))
    failed = transport.submit(partial(transport.apost_json, URL + "/fail", {}, {}, vendor="X"))

    assert ok.result(timeout=5) == b"ok"
    with pytest.raises(HttpStatusError, match="X API error 500: boom"):
        failed.result(timeout=5)
    assert not ok.cancelled()


def test_cancel_aborts_call_waiting_for_headers(make_transport) -> None:
    started = threading.Event()
    aborted = threading.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            aborted.set()
            raise
        return httpx.Response(200, content=b"late")

    transport = make_transport(handler)
    deferred = transport.submit(partial(transport.apost_json, URL, {}, {}, vendor="X"))
    assert started.wait(5)

    t0 = time.monotonic()
    assert deferred.cancel() is True
    with pytest.raises(CancelledError):
        deferred.result(timeout=5)
    assert time.monotonic() - t0 < 0.5
    assert deferred.cancelled()
    assert aborted.wait(1)


def test_cancel_pending_call_never_reaches_server(make_transport) -> None:
    seen: list[httpx.Request] = []
    release = threading.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        while not release.is_set():
            await asyncio.sleep(0.01)
        return httpx.Response(200, content=b"done")

    transport = make_transport(handler, make_settings(http_max_workers=1))
    first = transport.submit(partial(transport.apost_json, URL, {}, {}, vendor="X"))
    second = transport.submit(partial(transport.apost_json, URL, {}, {}, vendor="X"))

    assert second.cancel() is True
    release.set()

    assert first.result(timeout=5) == b"done"
    with pytest.raises(CancelledError):
        second.result(timeout=5)
    assert len(seen) == 1


def test_cancel_after_completion_keeps_result(make_transport) -> None:
    transport = make_transport(lambda r: httpx.Response(200, content=b"ok"))
    deferred = transport.submit(partial(transport.apost_json, URL, {}, {}, vendor="X"))

    assert deferred.result(timeout=5) == b"ok"
    assert deferred.cancel() is False
    assert not deferred.cancelled()
    assert deferred.result() == b"ok"
