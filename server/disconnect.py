"""Tie a pipeline run's cancel event to the lifetime of the HTTP connection."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Request

from utils.logger import get_logger

logger = get_logger(__name__)


async def watch_disconnect(request: Request, cancel_event: asyncio.Event, poll_interval: float = 0.5) -> None:
    """Set ``cancel_event`` once the client goes away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info(
                "Client disconnected, canceling run",
                extra={"extra_fields": {"path": request.url.path}},
            )
            cancel_event.set()
            return
        await asyncio.sleep(poll_interval)


@asynccontextmanager
async def cancel_on_disconnect(request: Request, poll_interval: float = 0.5) -> AsyncIterator[asyncio.Event]:
    """
    Yield a cancel event for one pipeline run that fires if the client disconnects.

    Usage:
        async with cancel_on_disconnect(request) as cancel_event:
            result = await pipeline.discover(titles, cancel_event=cancel_event)
    """
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event, poll_interval))
    try:
        yield cancel_event
    finally:
        watcher.cancel()
