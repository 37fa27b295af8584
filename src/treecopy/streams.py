"""
Asynchronous event streams connecting the copy task to its consumers.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

# Max events buffered per stream before the producer blocks
QUEUE_SIZE = 1024

_CLOSED = object()


class EventStream:
    """
    Bounded, closable stream of events.

    Items come out in the order they were put. Iterating ends once the stream
    is closed and every earlier item has been consumed; several consumers may
    iterate the same stream, each item is delivered to exactly one of them.

    Parameters
    ----------
    maxsize : int, default=QUEUE_SIZE
        Number of pending events before ``put`` blocks
    """

    def __init__(self, maxsize: int = QUEUE_SIZE):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, item: Any) -> None:
        """
        Push one event, waiting while the stream is full.

        Raises
        ------
        RuntimeError
            If the stream has already been closed
        """
        if self._closed:
            raise RuntimeError("put on closed stream")
        await self._queue.put(item)

    async def close(self) -> None:
        """Mark end of stream. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                # Leave the marker for any other consumer
                self._queue.put_nowait(_CLOSED)
                return
            yield item

    async def drain(self) -> list:
        """
        Consume the stream until it is closed.

        Returns
        -------
        list
            Every event received, in order
        """
        return [item async for item in self]


@dataclass
class CopyJob:
    """
    Handle to a running tree copy.

    Attributes
    ----------
    progress : EventStream
        Byte counts (int) for every entry accounted for
    errors : EventStream
        TreeCopyError instances, one per failed entry
    task : asyncio.Task
        Background task performing the copy
    """

    progress: EventStream
    errors: EventStream
    task: asyncio.Task

    async def wait(self) -> None:
        """Wait for the background task to finish."""
        await self.task

    async def collect(self) -> tuple[list[int], list]:
        """
        Drain both streams concurrently until the copy completes.

        Returns
        -------
        tuple[list[int], list]
            (progress events, error events)
        """
        progress, errors = await asyncio.gather(
            self.progress.drain(), self.errors.drain()
        )
        await self.task
        return progress, errors
