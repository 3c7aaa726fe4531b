"""
Entity Lock Registry

Per-key mutual exclusion for the in-process stores. Every lease/session operation
holds the lock of exactly one key, so operations on different entities never
contend while operations on the same entity serialize.

Lock entries are reference counted and dropped when nobody holds or waits on them,
so the registry does not grow with the number of entities ever touched.
"""

from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

import anyio
import attrs

from src.platform.exception.exceptions import TransientError
from src.platform.logging.loguru_io import Logger


@attrs.define
class _LockEntry:
    lock: anyio.Lock = attrs.field(factory=anyio.Lock)
    holders: int = 0


class EntityLockRegistry:
    def __init__(self, *, name: str, timeout_seconds: float) -> None:
        self._name = name
        self._timeout_seconds = timeout_seconds
        self._entries: dict[Hashable, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """
        Acquire the lock for `key`

        Raises:
            TransientError: lock not acquired within the store timeout
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.holders += 1

        try:
            try:
                with anyio.fail_after(self._timeout_seconds):
                    await entry.lock.acquire()
            except TimeoutError:
                Logger.base.warning(
                    f'⏳ [LOCK:{self._name}] Timed out after {self._timeout_seconds}s on {key}'
                )
                raise TransientError(f'{self._name} is busy, please retry') from None

            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
