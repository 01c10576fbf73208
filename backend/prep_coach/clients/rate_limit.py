from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable


class RequestSpacer:
    """Enforces a minimum interval between consecutive outbound requests.

    Callers await :meth:`wait` right before sending. Concurrent callers are
    serialised on a lock so the spacing holds across the whole process.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def wait(self) -> None:
        async with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                remaining = self._min_interval - elapsed
                if remaining > 0:
                    await self._sleep(remaining)
            self._last_request = self._clock()


_shared_spacer: RequestSpacer | None = None


def shared_spacer(min_interval: float = 1.0) -> RequestSpacer:
    global _shared_spacer
    if _shared_spacer is None or _shared_spacer.min_interval != min_interval:
        _shared_spacer = RequestSpacer(min_interval)
    return _shared_spacer
