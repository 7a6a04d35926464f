# src/mcp_mermaid_renderer/engine/debounce.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, TypeVar

log = logging.getLogger("mcp.mermaid.engine.debounce")

T = TypeVar("T")

DEFAULT_DELAY_MS = 300


class RenderDebouncer:
    """
    Coalesces bursts of render requests per mount id.

    A request waits `delay_ms` before running. A newer request for the same
    mount cancels the wait of the pending one, whose caller gets `superseded`
    (None unless given). Once the wait is over the action runs to completion
    and is never cancelled.
    """

    def __init__(self, delay_ms: int = DEFAULT_DELAY_MS) -> None:
        self.delay = max(delay_ms, 0) / 1000.0
        self._pending: Dict[str, asyncio.Task] = {}

    def pending(self, key: str) -> bool:
        task = self._pending.get(key)
        return task is not None and not task.done()

    async def submit(
        self,
        key: str,
        action: Callable[[], Awaitable[T]],
        *,
        superseded: Any = None,
    ) -> Any:
        previous = self._pending.get(key)
        if previous is not None and not previous.done():
            previous.cancel()
            log.debug("debounce.superseded", extra={"key": key})

        waiter = asyncio.ensure_future(asyncio.sleep(self.delay))
        self._pending[key] = waiter
        try:
            await waiter
        except asyncio.CancelledError:
            # superseded by a newer request, as opposed to our caller being cancelled
            if self._pending.get(key) is not waiter:
                return superseded
            raise
        finally:
            if self._pending.get(key) is waiter:
                del self._pending[key]

        return await action()
