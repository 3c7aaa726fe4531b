from collections.abc import AsyncIterator
from typing import Annotated, List, Optional

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream
from fastapi import APIRouter, Depends, Path, status
from opentelemetry import trace
import orjson
from sse_starlette.sse import EventSourceResponse

from src.platform.config.di import container
from src.platform.event.i_in_memory_broadcaster import IInMemoryEventBroadcaster
from src.platform.exception.transient_retry import retry_transient
from src.platform.logging.loguru_io import Logger
from src.platform.types import ObjectIdStr, UtilsUUID7
from src.service.lease.app.command.cancel_lease_use_case import CancelLeaseUseCase
from src.service.lease.app.command.create_lease_use_case import CreateLeaseUseCase
from src.service.lease.app.query.get_lease_for_product_use_case import (
    GetLeaseForProductUseCase,
)
from src.service.lease.app.query.get_lease_use_case import GetLeaseUseCase
from src.service.lease.app.query.list_my_leases_use_case import ListMyLeasesUseCase
from src.service.lease.domain.enum.lease_event_type import LeaseEventType
from src.service.lease.domain.enum.lease_status import LeaseStatus
from src.service.lease.driven_adapter.event.lease_event_publisher_impl import product_topic
from src.service.lease.driving_adapter.schema.lease_schema import (
    LeaseCancelledResponse,
    LeaseCreatedResponse,
    LeaseCreateRequest,
    LeaseResponse,
)
from src.service.shared_kernel.domain.entity.principal_entity import Principal
from src.service.shared_kernel.driving_adapter.auth.principal_dependency import (
    get_current_principal,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
@retry_transient
async def create_lease(
    request: LeaseCreateRequest,
    current_principal: Principal = Depends(get_current_principal),
    use_case: CreateLeaseUseCase = Depends(CreateLeaseUseCase.depends),
) -> LeaseCreatedResponse:
    with tracer.start_as_current_span('controller.create_lease') as span:
        span.set_attribute('product_id', request.product_id)
        span.set_attribute('holder_id', current_principal.id)

        lease = await use_case.execute(
            product_id=request.product_id,
            holder_id=current_principal.id,
            holder_name=current_principal.name,
            duration_minutes=request.duration_minutes,
        )
        span.set_attribute('lease.id', str(lease.id))

        return LeaseCreatedResponse(
            lease=LeaseResponse.from_lease(lease, now=lease.created_at),
            message=(
                f'Product reserved for {lease.duration.label} '
                f'until {lease.expires_at:%Y-%m-%d %H:%M} UTC'
            ),
        )


@router.get('/my')
@Logger.io
@retry_transient
async def list_my_leases(
    lease_status: Optional[LeaseStatus] = None,
    current_principal: Principal = Depends(get_current_principal),
    use_case: ListMyLeasesUseCase = Depends(ListMyLeasesUseCase.depends),
) -> List[LeaseResponse]:
    leases = await use_case.execute(holder_id=current_principal.id, status=lease_status)
    now = container.clock().now()
    return [LeaseResponse.from_lease(lease, now=now) for lease in leases]


@router.get('/product/{product_id}')
@Logger.io
@retry_transient
async def get_lease_for_product(
    product_id: Annotated[ObjectIdStr, Path()],
    current_principal: Principal = Depends(get_current_principal),
    use_case: GetLeaseForProductUseCase = Depends(GetLeaseForProductUseCase.depends),
) -> Optional[LeaseResponse]:
    lease = await use_case.execute(product_id=product_id)
    if lease is None:
        return None
    return LeaseResponse.from_lease(lease, now=container.clock().now())


@router.get('/{lease_id}')
@Logger.io
@retry_transient
async def get_lease(
    lease_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
    use_case: GetLeaseUseCase = Depends(GetLeaseUseCase.depends),
) -> LeaseResponse:
    lease = await use_case.execute(lease_id=lease_id, requester_id=current_principal.id)
    return LeaseResponse.from_lease(lease, now=container.clock().now())


@router.delete('/{lease_id}', status_code=status.HTTP_200_OK)
@Logger.io
@retry_transient
async def cancel_lease(
    lease_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
    use_case: CancelLeaseUseCase = Depends(CancelLeaseUseCase.depends),
) -> LeaseCancelledResponse:
    lease = await use_case.execute(lease_id=lease_id, requester_id=current_principal.id)
    return LeaseCancelledResponse(
        lease=LeaseResponse.from_lease(lease, now=container.clock().now()),
        message='Reservation cancelled',
    )


# ============================ SSE Endpoint ============================


async def lease_event_stream(
    *,
    broadcaster: IInMemoryEventBroadcaster,
    product_id: str,
    stream: MemoryObjectReceiveStream[dict],
    snapshot: Optional[dict],
) -> AsyncIterator[dict[str, str]]:
    """
    Yield the current lease (or null) first, then every lease transition of the product.

    The snapshot lets a client that reconnects converge without a separate fetch.
    """
    try:
        yield {
            'event': LeaseEventType.CONNECTED.value,
            'data': orjson.dumps({'product_id': product_id, 'lease': snapshot}).decode(),
        }
        async for event_data in stream:
            yield {'event': event_data['event_type'], 'data': orjson.dumps(event_data).decode()}
    except anyio.get_cancelled_exc_class():
        Logger.base.info(f'🔌 [SSE] Lease stream client disconnected: product={product_id}')
        raise
    finally:
        await broadcaster.unsubscribe(topic=product_topic(product_id), stream=stream)


@router.get('/product/{product_id}/sse', status_code=status.HTTP_200_OK)
@Logger.io
async def stream_product_lease(
    product_id: Annotated[ObjectIdStr, Path()],
    current_principal: Principal = Depends(get_current_principal),
    use_case: GetLeaseForProductUseCase = Depends(GetLeaseForProductUseCase.depends),
) -> EventSourceResponse:
    """
    SSE push of lease_created / lease_cancelled / lease_expired for a product

    Architecture: LeaseStateTransitioner -> InMemoryEventBroadcaster -> SSE Endpoint -> Client
    """
    broadcaster = container.event_broadcaster()
    # Subscribe before reading so no transition falls between snapshot and stream
    stream = await broadcaster.subscribe(
        topic=product_topic(product_id), subscriber_id=current_principal.id
    )
    try:
        lease = await use_case.execute(product_id=product_id)
    except Exception:
        await broadcaster.unsubscribe(topic=product_topic(product_id), stream=stream)
        raise
    snapshot = (
        LeaseResponse.from_lease(lease, now=container.clock().now()).model_dump(mode='json')
        if lease
        else None
    )
    Logger.base.info(f'📡 [SSE] {current_principal.id} watching leases of product={product_id}')

    return EventSourceResponse(
        lease_event_stream(
            broadcaster=broadcaster, product_id=product_id, stream=stream, snapshot=snapshot
        )
    )
