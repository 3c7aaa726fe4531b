from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import uuid_utils

from src.platform.config.di import Container
from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.hold_chat_metrics import metrics
from src.platform.types import normalize_object_id
from src.service.lease.app.command.lease_state_transitioner import LeaseStateTransitioner
from src.service.lease.app.interface.i_lease_store import ILeaseStore
from src.service.lease.domain.entity.lease_entity import Lease
from src.service.shared_kernel.app.interface.i_catalog_query_handler import (
    ICatalogQueryHandler,
)
from src.service.shared_kernel.app.interface.i_clock import IClock


class CreateLeaseUseCase:
    """
    Grant a time-bounded hold on a product.

    Flow:
    1. Validate the duration (before touching any collaborator)
    2. Confirm the product exists in the catalog
    3. Insert as the product's ACTIVE lease under the product lock
       - a blocking lease that is already past expiry is expired on the spot and
         the insert retried once
       - a live blocking lease surfaces as Conflict carrying its id
    4. Publish lease_created and arm the expiry timer
    """

    def __init__(
        self,
        *,
        lease_store: ILeaseStore,
        transitioner: LeaseStateTransitioner,
        catalog_query_handler: ICatalogQueryHandler,
        clock: IClock,
    ) -> None:
        self.lease_store = lease_store
        self.transitioner = transitioner
        self.catalog_query_handler = catalog_query_handler
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        lease_store: ILeaseStore = Depends(Provide[Container.lease_store]),
        transitioner: LeaseStateTransitioner = Depends(Provide[Container.lease_transitioner]),
        catalog_query_handler: ICatalogQueryHandler = Depends(
            Provide[Container.catalog_query_handler]
        ),
        clock: IClock = Depends(Provide[Container.clock]),
    ) -> Self:
        return cls(
            lease_store=lease_store,
            transitioner=transitioner,
            catalog_query_handler=catalog_query_handler,
            clock=clock,
        )

    @Logger.io
    async def execute(
        self, *, product_id: str, holder_id: str, duration_minutes: int, holder_name: str = ''
    ) -> Lease:
        product_id = normalize_object_id(product_id)
        holder_id = normalize_object_id(holder_id)
        with self.tracer.start_as_current_span(
            'use_case.create_lease',
            attributes={'product.id': product_id, 'lease.duration_minutes': duration_minutes},
        ):
            Lease.validate_duration(duration_minutes)

            if not await self.catalog_query_handler.product_exists(product_id=product_id):
                raise NotFoundError('Product not found')

            lease = Lease.create(
                id=uuid_utils.uuid7(),
                product_id=product_id,
                holder_id=holder_id,
                holder_name=holder_name,
                duration_minutes=duration_minutes,
                now=self.clock.now(),
            )

            blocking = await self.lease_store.insert_active(lease=lease)
            if blocking is not None and blocking.is_due(now=self.clock.now()):
                await self.transitioner.expire_if_due(lease_id=blocking.id, source='read')
                blocking = await self.lease_store.insert_active(lease=lease)

            if blocking is not None:
                metrics.record_lease_request(duration_minutes=duration_minutes, result='conflict')
                raise ConflictError(
                    'Product is already reserved', existing_lease_id=str(blocking.id)
                )

            metrics.record_lease_request(duration_minutes=duration_minutes, result='created')
            await self.transitioner.activated(lease=lease)
            return lease
