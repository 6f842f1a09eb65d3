"""Delayed job queue drained by a single loop, with session-scoped cancellation."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from core.models import ContentType


logger = logging.getLogger(__name__)


class CancellationToken:
    """One-shot cancellation flag that coroutines can also await."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(order=True, slots=True)
class ScheduledJob:
    not_before: float
    seq: int
    content_type: ContentType = field(compare=False)
    token: CancellationToken = field(compare=False)
    force: bool = field(default=False, compare=False)


class StaggerQueue:
    """Holds (content_type, not_before) entries ordered by start time.

    `drain` is the only consumer: it sleeps until the earliest entry is due,
    hands it to the handler without awaiting the resulting work, and stops once
    the queue is empty. Entries whose token was cancelled are dropped.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._heap: list[ScheduledJob] = []
        self._seq = itertools.count()
        self._clock = clock
        self._wakeup = asyncio.Event()

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def __len__(self) -> int:
        return len(self._heap)

    def pending(self) -> list[ContentType]:
        return [job.content_type for job in sorted(self._heap) if not job.token.cancelled]

    def push(
        self,
        content_type: ContentType,
        delay: float,
        token: CancellationToken,
        *,
        force: bool = False,
    ) -> ScheduledJob:
        job = ScheduledJob(
            not_before=self._now() + max(0.0, delay),
            seq=next(self._seq),
            content_type=content_type,
            token=token,
            force=force,
        )
        heapq.heappush(self._heap, job)
        self._wakeup.set()
        return job

    def clear(self) -> None:
        self._heap.clear()
        self._wakeup.set()

    async def _wait(self, delay: float, token: CancellationToken) -> None:
        """Sleep for delay, returning early on cancellation or a new push."""
        self._wakeup.clear()
        waiters = [
            asyncio.ensure_future(asyncio.sleep(delay)),
            asyncio.ensure_future(token.wait()),
            asyncio.ensure_future(self._wakeup.wait()),
        ]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

    async def drain(self, handler: Callable[[ScheduledJob], object]) -> None:
        while self._heap:
            head = self._heap[0]
            if head.token.cancelled:
                heapq.heappop(self._heap)
                continue
            delay = head.not_before - self._now()
            if delay > 0:
                await self._wait(delay, head.token)
                continue
            heapq.heappop(self._heap)
            logger.info("scheduler.dispatch ct=%s", head.content_type.value)
            handler(head)
