"""
Human-scale randomized delays between browser actions.

The delays keep request cadence close to a person browsing the site. Tests
use Pacing.disabled() or inject their own sleep coroutine.
"""
import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class Pacing:
    """Delay ranges in seconds for each kind of pause."""
    before_extract: Tuple[float, float] = (1.5, 2.5)
    between_pages: Tuple[float, float] = (2.0, 3.5)
    after_detail: Tuple[float, float] = (0.4, 0.8)
    enabled: bool = True
    sleep: SleepFn = field(default=asyncio.sleep, repr=False)

    @classmethod
    def disabled(cls) -> "Pacing":
        return cls(enabled=False)

    async def pause(self, bounds: Tuple[float, float]) -> float:
        """Sleep a random duration within bounds; returns the duration used."""
        if not self.enabled:
            return 0.0
        delay = random.uniform(*bounds)
        await self.sleep(delay)
        return delay

    async def pause_before_extract(self) -> float:
        return await self.pause(self.before_extract)

    async def pause_between_pages(self) -> float:
        return await self.pause(self.between_pages)

    async def pause_after_detail(self) -> float:
        return await self.pause(self.after_detail)
