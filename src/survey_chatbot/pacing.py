"""Simulated typing delays for bot messages.

Bot replies are queued and shown one at a time by a single asyncio task, so
the order the state machine produced them in is the order they appear. While
anything is still queued the pacer reports ``composing`` and shells keep
input disabled.
"""

from __future__ import annotations

import asyncio
import logging
import random
from contextlib import suppress
from typing import Awaitable, Callable, Iterable, Optional, Union

from .config import PacingSettings

logger = logging.getLogger(__name__)

Display = Callable[[str], Union[None, Awaitable[None]]]


def compute_delay(settings: PacingSettings, rng: random.Random) -> float:
    """Seconds to wait before the next bot message appears."""

    return settings.typing_delay + rng.random() * settings.typing_jitter


class BotMessagePacer:
    """Drains pending bot messages with a typing delay between each."""

    def __init__(
        self,
        display: Display,
        settings: Optional[PacingSettings] = None,
        *,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._display = display
        self._settings = settings or PacingSettings()
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._queue: Optional[asyncio.Queue[str]] = None
        self._worker: Optional[asyncio.Task[None]] = None
        self._pending = 0

    @property
    def composing(self) -> bool:
        return self._pending > 0

    def delay_for(self) -> float:
        return compute_delay(self._settings, self._rng)

    def enqueue(self, messages: Iterable[str]) -> None:
        queue = self._ensure_worker()
        for message in messages:
            self._pending += 1
            queue.put_nowait(message)

    async def drain(self) -> None:
        """Wait until every queued message has been displayed."""

        if self._queue is None:
            return
        await self._queue.join()

    async def say(self, messages: Iterable[str]) -> None:
        self.enqueue(messages)
        await self.drain()

    async def close(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        with suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        self._queue = None
        self._pending = 0

    def _ensure_worker(self) -> asyncio.Queue[str]:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(self._queue))
        return self._queue

    async def _run(self, queue: asyncio.Queue[str]) -> None:
        while True:
            message = await queue.get()
            try:
                await self._sleep(self.delay_for())
                outcome = self._display(message)
                if asyncio.iscoroutine(outcome):
                    await outcome
                await self._sleep(self._settings.settle_delay)
            except Exception:
                logger.exception("Failed to display bot message")
            finally:
                self._pending -= 1
                queue.task_done()
