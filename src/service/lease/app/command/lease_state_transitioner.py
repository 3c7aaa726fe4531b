"""
Lease State Transitioner

The single path through which a lease changes state. Each transition:
1. compare-and-sets the status in the store (first writer wins)
2. publishes the matching live event
3. keeps the expiry timer and metrics in step

Foreground cancels, the expiry timer, the periodic sweep and lazy on-read expiry
all go through here, so the store and the event stream cannot disagree.
"""

from uuid_utils import UUID

from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.hold_chat_metrics import metrics
from src.platform.scheduler.expiry_scheduler import ExpiryScheduler
from src.service.lease.app.interface.i_lease_event_publisher import ILeaseEventPublisher
from src.service.lease.app.interface.i_lease_store import ILeaseStore
from src.service.lease.domain.domain_event.lease_domain_event import LeaseChangedEvent
from src.service.lease.domain.entity.lease_entity import Lease
from src.service.lease.domain.enum.lease_event_type import LeaseEventType
from src.service.lease.domain.enum.lease_status import LeaseStatus
from src.service.shared_kernel.app.interface.i_clock import IClock


class LeaseStateTransitioner:
    def __init__(
        self,
        *,
        lease_store: ILeaseStore,
        event_publisher: ILeaseEventPublisher,
        expiry_scheduler: ExpiryScheduler,
        clock: IClock,
    ) -> None:
        self.lease_store = lease_store
        self.event_publisher = event_publisher
        self.expiry_scheduler = expiry_scheduler
        self.clock = clock

    async def activated(self, *, lease: Lease) -> None:
        """Announce a freshly inserted lease and arm its expiry timer"""
        await self._emit(lease=lease, event_type=LeaseEventType.LEASE_CREATED)
        self.expiry_scheduler.schedule(
            key=lease.id,
            run_at=lease.expires_at,
            callback=lambda: self.expire_if_due(lease_id=lease.id, source='timer'),
        )

    @Logger.io
    async def cancel(self, *, lease_id: UUID, requester_id: str) -> Lease:
        lease = await self.lease_store.get(lease_id=lease_id)
        if lease is None:
            raise NotFoundError('Lease not found')
        lease.ensure_holder(requester_id)

        now = self.clock.now()
        if lease.is_due(now=now):
            # Already past expiry: the expiry wins, the holder sees the terminal state
            await self.expire(lease_id=lease_id, source='holder')
            raise ConflictError(
                'Lease is already expired',
                lease_id=str(lease_id),
                status=LeaseStatus.EXPIRED.value,
            )

        cancelled = await self.lease_store.compare_and_set(
            lease_id=lease_id,
            expected_status=LeaseStatus.ACTIVE,
            transition=lambda current: current.cancel(now=now),
        )
        await self._finish(lease=cancelled, event_type=LeaseEventType.LEASE_CANCELLED, source='holder')
        return cancelled

    @Logger.io
    async def expire(self, *, lease_id: UUID, source: str) -> Lease:
        """
        Raises:
            ConflictError: lease already terminal, or not yet due
        """
        now = self.clock.now()
        expired = await self.lease_store.compare_and_set(
            lease_id=lease_id,
            expected_status=LeaseStatus.ACTIVE,
            transition=lambda current: current.expire(now=now),
        )
        await self._finish(lease=expired, event_type=LeaseEventType.LEASE_EXPIRED, source=source)
        return expired

    async def expire_if_due(self, *, lease_id: UUID, source: str) -> Lease | None:
        """
        Expire the lease when it is ACTIVE and past expiry; losing the race to
        another writer is not an error here.

        Returns:
            The EXPIRED lease, or None when nothing was transitioned
        """
        lease = await self.lease_store.get(lease_id=lease_id)
        if lease is None or not lease.is_due(now=self.clock.now()):
            return None
        try:
            return await self.expire(lease_id=lease_id, source=source)
        except ConflictError as e:
            Logger.base.debug(f'⏱️ [LEASE] Expiry of {lease_id} lost the race: {e.message}')
            return None

    async def refreshed(self, *, lease: Lease) -> Lease:
        """Lazy on-read expiry: return the lease as it stands after applying a due expiry"""
        if not lease.is_due(now=self.clock.now()):
            return lease
        await self.expire_if_due(lease_id=lease.id, source='read')
        current = await self.lease_store.get(lease_id=lease.id)
        return current or lease

    async def _finish(self, *, lease: Lease, event_type: LeaseEventType, source: str) -> None:
        self.expiry_scheduler.cancel(key=lease.id)
        metrics.record_lease_transition(to_status=lease.status.value, source=source)
        Logger.base.info(
            f'🔒 [LEASE] {lease.id} -> {lease.status.value} (product={lease.product_id}, by={source})'
        )
        await self._emit(lease=lease, event_type=event_type)

    async def _emit(self, *, lease: Lease, event_type: LeaseEventType) -> None:
        event = LeaseChangedEvent.from_lease(
            lease=lease, event_type=event_type, occurred_at=self.clock.now()
        )
        try:
            await self.event_publisher.publish(event=event)
        except Exception as e:
            # The store is authoritative, subscribers converge by re-reading
            Logger.base.warning(f'⚠️ [LEASE] Failed to publish {event_type} for {lease.id}: {e}')
