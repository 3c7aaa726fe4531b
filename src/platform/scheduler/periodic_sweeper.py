"""
Periodic Sweeper

Background loop that runs the expiry sweeps (lease expiry, session retention) every
`interval_seconds`. Each job handles one entity at a time under that entity's lock,
so a sweep never holds up foreground requests for longer than one transition.
"""

from collections.abc import Awaitable, Callable, Sequence

import anyio

from src.platform.logging.loguru_io import Logger


SweepJob = tuple[str, Callable[[], Awaitable[int]]]


class PeriodicSweeper:
    def __init__(self, *, interval_seconds: float, jobs: Sequence[SweepJob]) -> None:
        self._interval_seconds = interval_seconds
        self._jobs = list(jobs)

    async def run_once(self) -> dict[str, int]:
        results: dict[str, int] = {}
        for name, job in self._jobs:
            try:
                results[name] = await job()
            except Exception as e:
                # A failing job must not stop the loop, the next tick retries it
                Logger.base.exception(f'❌ [SWEEPER] {name} failed: {e}')
                results[name] = 0

        if any(results.values()):
            Logger.base.info(f'🧹 [SWEEPER] Swept {results}')
        return results

    async def run_forever(self) -> None:
        Logger.base.info(f'🧹 [SWEEPER] Started, interval={self._interval_seconds}s')
        while True:
            await self.run_once()
            await anyio.sleep(self._interval_seconds)
