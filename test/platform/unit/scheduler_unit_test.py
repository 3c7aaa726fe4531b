from datetime import timedelta

import anyio
import pytest

from src.platform.exception.exceptions import TransientError
from src.platform.scheduler.expiry_scheduler import ExpiryScheduler
from src.platform.scheduler.periodic_sweeper import PeriodicSweeper


pytestmark = pytest.mark.unit


class TestExpiryScheduler:
    async def test_without_task_group_nothing_is_scheduled(self, fake_clock):
        scheduler = ExpiryScheduler(clock=fake_clock)

        async def callback() -> None:
            raise AssertionError('must not run')

        assert scheduler.schedule(key='lease-1', run_at=fake_clock.now(), callback=callback) is False
        assert scheduler.pending == 0

    async def test_due_timer_fires_once(self, fake_clock):
        scheduler = ExpiryScheduler(clock=fake_clock)
        fired = anyio.Event()
        calls: list[str] = []

        async def callback() -> None:
            calls.append('lease-1')
            fired.set()

        async with anyio.create_task_group() as tg:
            scheduler.attach(tg)
            assert scheduler.schedule(key='lease-1', run_at=fake_clock.now(), callback=callback)
            with anyio.fail_after(1.0):
                await fired.wait()
            scheduler.detach()

        assert calls == ['lease-1']
        assert scheduler.pending == 0

    async def test_cancelled_timer_never_fires(self, fake_clock):
        scheduler = ExpiryScheduler(clock=fake_clock)
        calls: list[str] = []

        async def callback() -> None:
            calls.append('fired')

        async with anyio.create_task_group() as tg:
            scheduler.attach(tg)
            scheduler.schedule(
                key='lease-1', run_at=fake_clock.now() + timedelta(seconds=0.05), callback=callback
            )
            assert scheduler.cancel(key='lease-1') is True
            await anyio.sleep(0.1)
            scheduler.detach()

        assert calls == []
        assert scheduler.cancel(key='lease-1') is False

    async def test_rescheduling_replaces_existing_timer(self, fake_clock):
        scheduler = ExpiryScheduler(clock=fake_clock)
        calls: list[str] = []

        async def first() -> None:
            calls.append('first')

        async def second() -> None:
            calls.append('second')

        async with anyio.create_task_group() as tg:
            scheduler.attach(tg)
            scheduler.schedule(
                key='lease-1', run_at=fake_clock.now() + timedelta(seconds=0.05), callback=first
            )
            scheduler.schedule(key='lease-1', run_at=fake_clock.now(), callback=second)
            await anyio.sleep(0.1)
            scheduler.detach()

        assert calls == ['second']

    async def test_failing_callback_does_not_break_the_task_group(self, fake_clock):
        scheduler = ExpiryScheduler(clock=fake_clock)

        async def busy() -> None:
            raise TransientError('store busy')

        async def broken() -> None:
            raise RuntimeError('boom')

        async with anyio.create_task_group() as tg:
            scheduler.attach(tg)
            scheduler.schedule(key='lease-1', run_at=fake_clock.now(), callback=busy)
            scheduler.schedule(key='lease-2', run_at=fake_clock.now(), callback=broken)
            await anyio.sleep(0.05)
            scheduler.detach()

        assert scheduler.pending == 0


class TestPeriodicSweeper:
    async def test_run_once_collects_counts_per_job(self):
        async def expire_leases() -> int:
            return 2

        async def expire_sessions() -> int:
            return 0

        sweeper = PeriodicSweeper(
            interval_seconds=30,
            jobs=[('leases', expire_leases), ('sessions', expire_sessions)],
        )

        assert await sweeper.run_once() == {'leases': 2, 'sessions': 0}

    async def test_failing_job_does_not_stop_the_others(self):
        async def broken() -> int:
            raise RuntimeError('boom')

        async def expire_sessions() -> int:
            return 1

        sweeper = PeriodicSweeper(
            interval_seconds=30, jobs=[('leases', broken), ('sessions', expire_sessions)]
        )

        assert await sweeper.run_once() == {'leases': 0, 'sessions': 1}
