"""
Per-document debounce for edit events.

A newer change for the same uri cancels the pending analysis; open/save
events bypass this and run immediately.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict

logger = logging.getLogger("solsentry.debounce")


class DocumentDebouncer:
    """Runs the latest scheduled callback per key after `delay_ms` of quiet."""

    def __init__(self, delay_ms: int) -> None:
        self.delay = max(0, delay_ms) / 1000
        self._pending: Dict[str, asyncio.Task] = {}

    def schedule(self, key: str, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        self.cancel(key)

        async def _fire() -> None:
            try:
                await asyncio.sleep(self.delay)
                await callback()
            finally:
                if self._pending.get(key) is task:
                    del self._pending[key]

        task = asyncio.create_task(_fire())
        self._pending[key] = task
        return task

    def cancel(self, key: str) -> bool:
        task = self._pending.pop(key, None)
        if task is None:
            return False
        task.cancel()
        logger.debug(f"[Debounce] superseded pending analysis for {key}")
        return True

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self.cancel(key)

    @property
    def pending(self) -> int:
        return len(self._pending)
