"""Server-sent events endpoint."""
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Optional

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from ..core.engine import PositionEngine

router = APIRouter(tags=["stream"])


async def position_events(
    engine: PositionEngine,
    *,
    retry_ms: int,
    max_queue_size: Optional[int] = None,
) -> AsyncIterator[dict[str, Any]]:
    """Yield SSE fields for one subscriber until it is detached.

    The latest position, if any, is queued by the hub on attach and so comes
    out first, right after the reconnect hint.
    """

    with engine.subscribe(max_queue_size) as channel:
        yield {"retry": retry_ms}
        async for message in channel:
            yield {"event": message.event, "data": message.data}


@router.get("/stream")
async def stream_positions(request: Request) -> EventSourceResponse:
    """Subscribe to live positions."""

    settings = request.app.state.settings
    return EventSourceResponse(
        position_events(
            request.app.state.engine,
            retry_ms=settings.retry_ms,
            max_queue_size=settings.subscriber_queue_size,
        ),
        ping=settings.ping_seconds,
    )
