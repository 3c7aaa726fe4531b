"""
Lease Store Interface

The store is the only mutable lease state. Status only changes through
`compare_and_set`, which the lease transitioner is the sole caller of.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from uuid_utils import UUID

from src.service.lease.domain.entity.lease_entity import Lease
from src.service.lease.domain.enum.lease_status import LeaseStatus


class ILeaseStore(ABC):
    @abstractmethod
    async def insert_active(self, *, lease: Lease) -> Lease | None:
        """
        Insert `lease` as the product's ACTIVE lease

        Returns:
            None on success, otherwise the ACTIVE lease already holding the product
            (nothing is written in that case)

        Raises:
            TransientError: product lock not acquired within the store timeout
        """
        pass

    @abstractmethod
    async def get(self, *, lease_id: UUID) -> Lease | None:
        pass

    @abstractmethod
    async def get_active_for_product(self, *, product_id: str) -> Lease | None:
        pass

    @abstractmethod
    async def compare_and_set(
        self,
        *,
        lease_id: UUID,
        expected_status: LeaseStatus,
        transition: Callable[[Lease], Lease],
    ) -> Lease:
        """
        Apply `transition` to the stored lease if its status is still `expected_status`

        The first writer wins; a later writer observes ConflictError.

        Raises:
            NotFoundError: unknown lease id
            ConflictError: status no longer matches `expected_status`
            TransientError: lock not acquired within the store timeout
        """
        pass

    @abstractmethod
    async def list_by_holder(self, *, holder_id: str) -> list[Lease]:
        """All leases of the holder, newest first"""
        pass

    @abstractmethod
    async def list_due(self, *, now: datetime) -> list[Lease]:
        """Snapshot of ACTIVE leases whose expiry has passed"""
        pass
