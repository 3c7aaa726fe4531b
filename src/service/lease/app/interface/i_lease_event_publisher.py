from abc import ABC, abstractmethod

from src.service.lease.domain.domain_event.lease_domain_event import LeaseChangedEvent


class ILeaseEventPublisher(ABC):
    """
    Port for pushing lease transitions to live subscribers of the product.

    Delivery is best-effort: a failed or dropped publish never undoes the
    transition, clients converge by re-reading the lease.
    """

    @abstractmethod
    async def publish(self, *, event: LeaseChangedEvent) -> None:
        pass
