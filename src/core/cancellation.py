"""Cooperative cancellation for a run.

Every suspension point (inference call, retrieval call, stream item) goes
through the run's token so a cancelled run stops at the next await instead
of after the current stream item.
"""
from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterable, AsyncIterator, Awaitable, TypeVar

from src.core.exceptions import RunCancelled

T = TypeVar("T")

_EXHAUSTED = object()


class CancelToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first; then cancel it and raise RunCancelled."""
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task.done():
            return task.result()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise RunCancelled(self.reason or "cancelled")

    async def iterate(self, source: AsyncIterable[T]) -> AsyncIterator[T]:
        """Yield from ``source`` checking the token before and after each item.

        The underlying iterator is closed on exit, whether by exhaustion,
        cancellation or the consumer breaking out.
        """
        iterator = source.__aiter__()

        async def _next():
            try:
                return await iterator.__anext__()
            except StopAsyncIteration:
                return _EXHAUSTED

        try:
            while True:
                self.raise_if_cancelled()
                item = await self.guard(_next())
                if item is _EXHAUSTED:
                    return
                self.raise_if_cancelled()
                yield item
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                with contextlib.suppress(RuntimeError):
                    await aclose()
