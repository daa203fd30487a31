"""Incremental parser for ``text/event-stream`` bodies."""

from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass


@dataclass(frozen=True)
class SseFrame:
    """One dispatched server-sent event. ``event`` is ``"message"`` unless named."""

    event: str = "message"
    data: str = ""
    id: str | None = None


async def iter_frames(lines: AsyncIterable[str]) -> AsyncIterator[SseFrame]:
    """Group stream lines into frames.

    Comment lines (``: keepalive``) and unknown fields are ignored. A frame is
    dispatched at each blank line, and only if it carried at least one
    ``data`` field; a partial frame at end of stream is discarded.
    """
    event = ""
    data: list[str] = []
    last_id: str | None = None

    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                yield SseFrame(event=event or "message", data="\n".join(data), id=last_id)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if field == "data":
            data.append(value)
        elif field == "event":
            event = value
        elif field == "id":
            last_id = value

