from src.platform.event.i_in_memory_broadcaster import IInMemoryEventBroadcaster
from src.platform.logging.loguru_io import Logger
from src.service.lease.app.interface.i_lease_event_publisher import ILeaseEventPublisher
from src.service.lease.domain.domain_event.lease_domain_event import LeaseChangedEvent


def product_topic(product_id: str) -> str:
    return f'product:{product_id}'


class LeaseEventPublisherImpl(ILeaseEventPublisher):
    """Fans lease transitions out to SSE subscribers of the product (same process)"""

    def __init__(self, *, broadcaster: IInMemoryEventBroadcaster) -> None:
        self._broadcaster = broadcaster

    @Logger.io
    async def publish(self, *, event: LeaseChangedEvent) -> None:
        await self._broadcaster.broadcast(
            topic=product_topic(event.product_id), event_data=event.to_payload()
        )
