from __future__ import annotations

import asyncio

from .errors import ChannelClosedError
from .models import RequestOutcome

_CLOSED = object()


class EventChannel:
    """Unbounded multi-producer / single-consumer outcome queue.

    Producers never block. ``close()`` enqueues an end marker behind every
    event already published, so the consumer drains them all before its
    ``async for`` loop ends.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.published = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, outcome: RequestOutcome) -> None:
        if self._closed:
            raise ChannelClosedError("event channel is closed")
        self._queue.put_nowait(outcome)
        self.published += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> RequestOutcome:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item
