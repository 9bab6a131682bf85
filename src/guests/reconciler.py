"""Coarse invalidation: any change on the guests table triggers a full reload.

Rebuilding the whole store avoids reassembling multi-row aggregates from
partial deltas. A reload can land between an optimistic local change and its
remote commit and briefly show the old state; the commit's own change event
triggers another reload that restores it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from src.guests.repository.change_feed import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)


class RealtimeReconciler:
    def __init__(self, change_feed: ChangeFeed, reload: Callable[[], Awaitable[bool]]) -> None:
        self._change_feed = change_feed
        self._reload = reload
        self._pending: set[asyncio.Task] = set()
        self._subscribed = False
        self.events_seen = 0

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    async def start(self) -> None:
        if self._subscribed:
            return
        await self._change_feed.subscribe(self._on_change)
        self._subscribed = True

    def _on_change(self, event: ChangeEvent) -> None:
        self.events_seen += 1
        logger.debug(f"{event.type.value} on {event.table} row={event.row_id}, reloading guests")
        task = asyncio.get_running_loop().create_task(self._reload())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_idle(self) -> None:
        """Wait for the reloads scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        if self._subscribed:
            await self._change_feed.unsubscribe(self._on_change)
            self._subscribed = False
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
