"""Unit tests for the client-side SSE frame parser."""

import pytest

from prefuel.client.sse import SseFrame, iter_frames


async def _lines(*lines: str):
    for line in lines:
        yield line


async def _collect(*lines: str) -> list[SseFrame]:
    return [frame async for frame in iter_frames(_lines(*lines))]


@pytest.mark.asyncio
async def test_named_and_default_frames():
    frames = await _collect(
        "event: ready", 'data: {"subscription": "abc"}', "",
        'data: {"type": "delete"}', "",
    )
    assert frames == [
        SseFrame(event="ready", data='{"subscription": "abc"}'),
        SseFrame(event="message", data='{"type": "delete"}'),
    ]


@pytest.mark.asyncio
async def test_comments_are_skipped():
    frames = await _collect(": keepalive", "", "data: x", "")
    assert [f.data for f in frames] == ["x"]


@pytest.mark.asyncio
async def test_multiline_data_is_joined():
    frames = await _collect("data: a", "data: b", "")
    assert frames[0].data == "a\nb"


@pytest.mark.asyncio
async def test_partial_frame_at_end_is_dropped():
    assert await _collect("data: unfinished") == []
