"""Live channel — one server-sent-event stream per connected client."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from prefuel.application.services.change_bus import ChangeBus
from prefuel.domain.entities import ChangeEvent

logger = logging.getLogger(__name__)

# SSE comment line; clients ignore it, proxies see traffic.
HEARTBEAT_FRAME = ": keepalive\n\n"


def format_ready_frame(subscription_id: str) -> str:
    return f"event: ready\ndata: {json.dumps({'subscription': subscription_id})}\n\n"


def format_event_frame(event: ChangeEvent) -> str:
    return f"data: {json.dumps(event.to_dict(), ensure_ascii=False)}\n\n"


class LiveChannel:
    """Forwards change events from the bus to one client as SSE text frames.

    The first frame is a ``ready`` acknowledgement so the client can tell
    "connected, nothing happened yet" from "still connecting". While idle, a
    heartbeat comment is sent every ``heartbeat_interval`` seconds. The bus
    subscription is released however the stream ends.
    """

    def __init__(self, bus: ChangeBus, heartbeat_interval: float = 25.0) -> None:
        self._bus = bus
        self._heartbeat_interval = heartbeat_interval

    async def stream(self) -> AsyncGenerator[str, None]:
        subscription = self._bus.subscribe()
        logger.info("Live channel %s opened", subscription.id)
        try:
            yield format_ready_frame(subscription.id)
            while True:
                try:
                    event = await asyncio.wait_for(
                        subscription.get(), timeout=self._heartbeat_interval
                    )
                except asyncio.TimeoutError:
                    yield HEARTBEAT_FRAME
                    continue
                if event is None:
                    break
                yield format_event_frame(event)
        finally:
            self._bus.unsubscribe(subscription)
            logger.info("Live channel %s closed", subscription.id)
