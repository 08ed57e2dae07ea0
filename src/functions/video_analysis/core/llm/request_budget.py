"""Per-minute request budget shared by every Gemini call of one client.

One video costs one extraction call plus one call per formatting module. A
slot is only spent when Gemini answers; calls that raise, time out or are
cancelled give their slot back.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from src.shared.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BudgetExhausted(RuntimeError):
    """No request slot became free before the caller's deadline."""


class RequestBudget:
    """Token bucket refilled continuously at ``requests_per_minute / 60`` per second."""

    def __init__(
        self,
        requests_per_minute: int = 60,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self.requests_per_minute = requests_per_minute
        self._clock = clock
        self._per_second = requests_per_minute / 60.0
        self._available = float(requests_per_minute)
        self._stamp = clock()
        # Created on first use so the budget can be built outside a running loop.
        self._guard: Optional[asyncio.Lock] = None

    @property
    def available(self) -> float:
        self._top_up()
        return self._available

    @asynccontextmanager
    async def reserve(self, timeout: Optional[float] = None) -> AsyncIterator[None]:
        """Hold one request slot for the duration of the block.

        The slot is refunded when the block raises.

        Raises:
            BudgetExhausted: If no slot frees up within ``timeout`` seconds.
        """

        await self._take(timeout)
        try:
            yield
        except BaseException:
            self.refund()
            raise

    def refund(self) -> None:
        self._top_up()
        self._available = min(float(self.requests_per_minute), self._available + 1.0)

    async def _take(self, timeout: Optional[float]) -> None:
        if self._guard is None:
            self._guard = asyncio.Lock()
        deadline = None if timeout is None else self._clock() + timeout

        while True:
            async with self._guard:
                self._top_up()
                if self._available >= 1.0:
                    self._available -= 1.0
                    return
                # Exactly how long until the next whole slot accrues.
                pause = (1.0 - self._available) / self._per_second

            if deadline is not None and self._clock() + pause > deadline:
                raise BudgetExhausted(
                    f"No Gemini request slot free within {timeout:.1f}s "
                    f"({self.requests_per_minute} requests/minute)"
                )
            LOGGER.debug("Request budget empty; next slot in %.2fs", pause)
            await asyncio.sleep(pause)

    def _top_up(self) -> None:
        now = self._clock()
        elapsed = now - self._stamp
        if elapsed > 0:
            self._available = min(
                float(self.requests_per_minute),
                self._available + elapsed * self._per_second,
            )
            self._stamp = now
