"""BaseViewModel: pure Python, no GUI toolkit dependency.

Provides subscription lifecycle management so that concrete ViewModels can
subscribe to ``EventBus`` events and own background tasks, and have both
cleaned up automatically via ``dispose()``.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Set, Type

from edumatch.events.bus import EventBus, Subscription


class BaseViewModel:
    """ViewModel base class, pure Python."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._tasks: Set[asyncio.Task] = set()

    def subscribe_event(
        self,
        event_bus: EventBus,
        event_type: Type,
        handler: Callable,
    ) -> Subscription:
        """Subscribe to an event type and track the subscription."""
        sub = event_bus.subscribe(event_type, handler)
        self._subscriptions.append(sub)
        return sub

    def spawn(self, coro: Awaitable) -> asyncio.Task:
        """Run *coro* in the background and keep a reference until it ends."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every background task spawned by this ViewModel."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispose(self) -> None:
        """Cancel all tracked event subscriptions and background tasks."""
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
