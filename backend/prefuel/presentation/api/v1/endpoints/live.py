"""Server-sent-event stream of change events."""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from prefuel.application.services import LiveChannel
from prefuel.infrastructure.dependencies import get_live_channel

router = APIRouter(tags=["Live"])


@router.get("/stream")
async def change_stream(
    channel: LiveChannel = Depends(get_live_channel),
) -> StreamingResponse:
    """SSE endpoint pushing every committed change to connected clients.

    Clients connect via EventSource, receive one ``ready`` event, then a
    default-type message per change. Idle connections get a comment
    heartbeat so intermediaries keep them open.
    """
    return StreamingResponse(
        channel.stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
