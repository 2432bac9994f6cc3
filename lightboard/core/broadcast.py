"""
In-process publish/subscribe for a single logical resource.

Usage:
    async with traffic_light_channel.subscribe() as sub:
        async for state in sub:
            await ws.send_json({"state": state})

Each subscription buffers only the newest undelivered value, so a slow
reader skips stale states and converges on the latest one. Subscriptions
hold a weak reference to their channel and remove themselves on exit.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator
from typing import Any

from lightboard.core.logging import get_logger

logger = get_logger(__name__)


class Subscription:
    def __init__(self, channel: "Channel") -> None:
        self._channel_ref = weakref.ref(channel)
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self.closed = False

    def offer(self, value: Any) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(value)

    async def get(self) -> Any:
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        channel = self._channel_ref()
        if channel is not None:
            channel.unsubscribe(self)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    def __aiter__(self) -> AsyncIterator[Any]:
        return self

    async def __anext__(self) -> Any:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()


class Channel:
    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: set[Subscription] = set()
        self.latest: Any = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self)
        self._subscribers.add(sub)
        logger.debug("broadcast.subscribed", channel=self.name, subscribers=len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        self._subscribers.discard(sub)
        logger.debug("broadcast.unsubscribed", channel=self.name, subscribers=len(self._subscribers))

    def publish(self, value: Any) -> int:
        """Deliver ``value`` to every subscriber; returns how many were reached."""
        self.latest = value
        for sub in list(self._subscribers):
            sub.offer(value)
        logger.info("broadcast.published", channel=self.name, subscribers=len(self._subscribers))
        return len(self._subscribers)


traffic_light_channel = Channel("traffic_light")
