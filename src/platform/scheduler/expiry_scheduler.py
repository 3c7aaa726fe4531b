"""
Expiry Scheduler

One-shot timers keyed by entity id, hosted in the app lifespan task group.

Timers are an optimisation only: the periodic sweeper and the lazy on-read check
reach the same transition, so a timer that never fires (process restart, no task
group attached in tests) only delays the transition until the next sweep.
"""

from collections.abc import Awaitable, Callable, Hashable
from datetime import datetime
from typing import Optional

import anyio
from anyio.abc import TaskGroup

from src.platform.exception.exceptions import TransientError
from src.platform.logging.loguru_io import Logger
from src.service.shared_kernel.app.interface.i_clock import IClock


class ExpiryScheduler:
    def __init__(self, *, clock: IClock) -> None:
        self._clock = clock
        self._task_group: Optional[TaskGroup] = None
        self._scopes: dict[Hashable, anyio.CancelScope] = {}

    def attach(self, task_group: TaskGroup) -> None:
        self._task_group = task_group
        Logger.base.info('⏰ [SCHEDULER] Attached to lifespan task group')

    def detach(self) -> None:
        for scope in self._scopes.values():
            scope.cancel()
        self._scopes.clear()
        self._task_group = None

    @property
    def pending(self) -> int:
        return len(self._scopes)

    def schedule(
        self, *, key: Hashable, run_at: datetime, callback: Callable[[], Awaitable[object]]
    ) -> bool:
        """
        Run `callback` once at `run_at`, replacing any timer already registered for `key`

        Returns:
            False when no task group is attached (the sweeper will pick the entity up)
        """
        if self._task_group is None:
            Logger.base.debug(f'⏰ [SCHEDULER] No task group, leaving {key} to the sweeper')
            return False

        self.cancel(key=key)
        scope = anyio.CancelScope()
        self._scopes[key] = scope
        self._task_group.start_soon(self._run, key, scope, run_at, callback, name=f'expiry:{key}')
        return True

    def cancel(self, *, key: Hashable) -> bool:
        scope = self._scopes.pop(key, None)
        if scope is None:
            return False
        scope.cancel()
        return True

    async def _run(
        self,
        key: Hashable,
        scope: anyio.CancelScope,
        run_at: datetime,
        callback: Callable[[], Awaitable[object]],
    ) -> None:
        with scope:
            delay = max(0.0, (run_at - self._clock.now()).total_seconds())
            await anyio.sleep(delay)

            # Deregister before firing so the callback may cancel timers freely
            if self._scopes.get(key) is scope:
                del self._scopes[key]

            try:
                await callback()
            except TransientError as e:
                Logger.base.warning(f'⏰ [SCHEDULER] {key} busy ({e.message}), sweeper will retry')
            except Exception as e:
                Logger.base.exception(f'❌ [SCHEDULER] Timer {key} failed: {e}')
