"""Разбор `text/event-stream` на кадры (event/data/id)."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class SseFrame:
    event: str | None = None
    data: str | None = None
    id: str | None = None


def iter_sse_frames(lines: Iterable[str]) -> Iterator[SseFrame]:
    """Собирает кадры из уже декодированных строк потока.

    Пустая строка завершает кадр; несколько `data:` склеиваются через `\\n`;
    строки с `:` в начале (комментарии, keep-alive) пропускаются.
    Хвостовой кадр без завершающей пустой строки тоже отдаётся.
    """
    event: str | None = None
    event_id: str | None = None
    data: list[str] = []

    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if event is not None or data:
                yield SseFrame(event=event, data="\n".join(data) if data else None, id=event_id)
            event = None
            event_id = None
            data = []
            continue
        if line.startswith(":"):
            continue

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
        elif name == "id":
            event_id = value
        # retry и неизвестные поля игнорируем

    if event is not None or data:
        yield SseFrame(event=event, data="\n".join(data) if data else None, id=event_id)
