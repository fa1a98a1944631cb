"""Collapse concurrent identical calls into one shared in-flight task."""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Per-key de-duplication of in-flight coroutines.

    The first caller for a key starts the work; callers arriving while it runs
    await the same task and share its result or exception. The key is forgotten
    as soon as the task settles, so nothing is cached beyond the flight itself.
    A caller that gives up (timeout, cancellation) does not cancel the shared task.
    """

    def __init__(self) -> None:
        self._calls: dict[Hashable, asyncio.Task[T]] = {}

    def __len__(self) -> int:
        return len(self._calls)

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._calls.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._calls[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task[T]) -> None:
        if self._calls.get(key) is task:
            del self._calls[key]
        # Mark the outcome retrieved even if every waiter went away.
        if not task.cancelled():
            task.exception()
