"""
In-process Lease Store

State:
- leases:            lease_id -> Lease (every status, history is kept)
- active_by_product: product_id -> lease_id of its single ACTIVE lease
- by_holder:         holder_id -> lease ids, insertion order

Concurrency:
- Writes hold the product's lock, so at most one ACTIVE lease per product holds
  under concurrent creates, and create/cancel/expire on the same product serialize
- Reads take no lock: each read completes without suspending, so it always sees a
  committed state
"""

from collections.abc import Callable
from datetime import datetime
import time

from uuid_utils import UUID

from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.metrics.hold_chat_metrics import metrics
from src.platform.state.entity_lock import EntityLockRegistry
from src.service.lease.app.interface.i_lease_store import ILeaseStore
from src.service.lease.domain.entity.lease_entity import Lease
from src.service.lease.domain.enum.lease_status import LeaseStatus


class LeaseStoreImpl(ILeaseStore):
    def __init__(self, *, op_timeout_seconds: float = 2.0) -> None:
        self._locks = EntityLockRegistry(name='lease store', timeout_seconds=op_timeout_seconds)
        self._leases: dict[UUID, Lease] = {}
        self._active_by_product: dict[str, UUID] = {}
        self._by_holder: dict[str, list[UUID]] = {}

    async def insert_active(self, *, lease: Lease) -> Lease | None:
        start = time.perf_counter()
        async with self._locks.hold(lease.product_id):
            blocking = self._active_lease(lease.product_id)
            if blocking is not None:
                return blocking

            self._leases[lease.id] = lease
            self._active_by_product[lease.product_id] = lease.id
            self._by_holder.setdefault(lease.holder_id, []).append(lease.id)

        metrics.record_store_operation(
            store='lease', operation='insert_active', duration=time.perf_counter() - start
        )
        return None

    async def get(self, *, lease_id: UUID) -> Lease | None:
        return self._leases.get(lease_id)

    async def get_active_for_product(self, *, product_id: str) -> Lease | None:
        return self._active_lease(product_id)

    async def compare_and_set(
        self,
        *,
        lease_id: UUID,
        expected_status: LeaseStatus,
        transition: Callable[[Lease], Lease],
    ) -> Lease:
        lease = self._leases.get(lease_id)
        if lease is None:
            raise NotFoundError('Lease not found')

        start = time.perf_counter()
        async with self._locks.hold(lease.product_id):
            current = self._leases[lease_id]
            if current.status is not expected_status:
                raise ConflictError(
                    f'Lease is already {current.status.value.lower()}',
                    lease_id=str(lease_id),
                    status=current.status.value,
                )

            updated = transition(current)
            self._leases[lease_id] = updated
            if not updated.is_active and self._active_by_product.get(current.product_id) == lease_id:
                del self._active_by_product[current.product_id]

        metrics.record_store_operation(
            store='lease', operation='compare_and_set', duration=time.perf_counter() - start
        )
        return updated

    async def list_by_holder(self, *, holder_id: str) -> list[Lease]:
        lease_ids = self._by_holder.get(holder_id, [])
        return [self._leases[lease_id] for lease_id in reversed(lease_ids)]

    async def list_due(self, *, now: datetime) -> list[Lease]:
        due = []
        for lease_id in list(self._active_by_product.values()):
            lease = self._leases[lease_id]
            if lease.is_due(now=now):
                due.append(lease)
        return due

    def _active_lease(self, product_id: str) -> Lease | None:
        lease_id = self._active_by_product.get(product_id)
        return self._leases[lease_id] if lease_id is not None else None
