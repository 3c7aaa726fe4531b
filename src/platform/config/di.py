"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi.html
"""

from dependency_injector import containers, providers

from src.platform.clock.system_clock import SystemClock
from src.platform.config.core_setting import settings
from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl
from src.platform.scheduler.expiry_scheduler import ExpiryScheduler
from src.platform.state.entity_lock import EntityLockRegistry
from src.service.conversation.app.command.expire_sessions_use_case import (
    ExpireSessionsUseCase,
)
from src.service.conversation.driven_adapter.hub.presence_hub_impl import PresenceHubImpl
from src.service.conversation.driven_adapter.state.session_store_impl import SessionStoreImpl
from src.service.lease.app.command.expire_leases_use_case import ExpireLeasesUseCase
from src.service.lease.app.command.lease_state_transitioner import LeaseStateTransitioner
from src.service.lease.driven_adapter.event.lease_event_publisher_impl import (
    LeaseEventPublisherImpl,
)
from src.service.lease.driven_adapter.state.lease_store_impl import LeaseStoreImpl
from src.service.shared_kernel.driven_adapter.catalog.catalog_query_handler_impl import (
    CatalogQueryHandlerImpl,
)
from src.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Infrastructure
    clock = providers.Singleton(SystemClock)
    event_broadcaster = providers.Singleton(
        InMemoryEventBroadcasterImpl, buffer_size=settings.LIVE_STREAM_BUFFER_SIZE
    )
    # Task group is attached by main.py lifespan
    expiry_scheduler = providers.Singleton(ExpiryScheduler, clock=clock)

    # Catalog collaborator (product existence)
    catalog_query_handler = providers.Singleton(
        CatalogQueryHandlerImpl,
        base_url=settings.CATALOG_BASE_URL,
        timeout_seconds=settings.CATALOG_TIMEOUT_SECONDS,
        max_attempts=settings.CATALOG_MAX_ATTEMPTS,
    )

    # Auth service
    jwt_auth = providers.Singleton(JwtAuth)

    # Lease Service
    lease_store = providers.Singleton(
        LeaseStoreImpl, op_timeout_seconds=settings.STORE_OP_TIMEOUT_SECONDS
    )
    lease_event_publisher = providers.Singleton(
        LeaseEventPublisherImpl, broadcaster=event_broadcaster
    )
    lease_transitioner = providers.Singleton(
        LeaseStateTransitioner,
        lease_store=lease_store,
        event_publisher=lease_event_publisher,
        expiry_scheduler=expiry_scheduler,
        clock=clock,
    )
    expire_leases_use_case = providers.Factory(
        ExpireLeasesUseCase,
        lease_store=lease_store,
        transitioner=lease_transitioner,
        clock=clock,
    )

    # Conversation Service
    session_store = providers.Singleton(
        SessionStoreImpl, op_timeout_seconds=settings.STORE_OP_TIMEOUT_SECONDS
    )
    # Serialises append -> fan-out per session so delivery order matches storage order
    delivery_locks = providers.Singleton(
        EntityLockRegistry,
        name='session delivery',
        timeout_seconds=settings.STORE_OP_TIMEOUT_SECONDS,
    )
    presence_hub = providers.Singleton(
        PresenceHubImpl,
        broadcaster=event_broadcaster,
        session_store=session_store,
        clock=clock,
        typing_timeout_seconds=settings.TYPING_TIMEOUT_SECONDS,
    )
    expire_sessions_use_case = providers.Factory(
        ExpireSessionsUseCase,
        session_store=session_store,
        presence_hub=presence_hub,
        clock=clock,
    )


container = Container()
