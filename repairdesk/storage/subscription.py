"""Cancellable delivery of an owner's entry list to one subscriber."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[list], "Awaitable[None] | None"]


class Subscription:
    """Pushes the full list to `callback` on every change or poll tick.

    Owns at most one background task. cancel() (or calling the object)
    stops delivery for good and may be called any number of times.
    """

    def __init__(
        self,
        user_id: str,
        fetch: Callable[[str], Awaitable[list]],
        callback: Callback,
        interval: float,
        watch: Callable[[str], AsyncIterator[None]] | None = None,
    ):
        self.user_id = user_id
        self.interval = interval
        self._fetch = fetch
        self._callback = callback
        self._watch = watch
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def mode(self) -> str:
        return "push" if self._watch is not None else "poll"

    async def start(self, follow: bool = True) -> None:
        """Deliver the current list now, then keep following changes."""
        await self._deliver()
        if follow and not self._cancelled and self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"entries-subscription:{self.user_id}")
        elif not follow:
            self._cancelled = True

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()

    __call__ = cancel

    async def _deliver(self) -> None:
        entries = await self._fetch(self.user_id)
        if self._cancelled:
            return
        result = self._callback(entries)
        if inspect.isawaitable(result):
            await result

    async def _safe_deliver(self) -> None:
        try:
            await self._deliver()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Entry delivery failed for user %s", self.user_id)

    async def _run(self) -> None:
        if self._watch is not None:
            try:
                async for _ in self._watch(self.user_id):
                    await self._safe_deliver()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Change stream unavailable for %s, polling instead: %s", self.user_id, e)
            self._watch = None
        while not self._cancelled:
            await asyncio.sleep(self.interval)
            await self._safe_deliver()
