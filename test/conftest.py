"""
Test Configuration and Fixtures

This module provides:
- Environment setup before any application module reads settings
- A controllable clock shared by the container and the tests
- A TestClient bound to a fresh container per test (in-process stores start empty)
- Principals and auth headers minted the way the identity service does

Architecture:
- Unit tests (test/**/unit/): build their collaborators directly from the fixtures here
- Integration tests: drive the FastAPI app through `client`
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read once at import time (src.platform.config.core_setting)
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    # Timers and reads drive expiry in tests, a background sweep would race the assertions
    os.environ['SWEEP_ENABLED'] = 'false'
    os.environ['CATALOG_BASE_URL'] = ''
    os.environ.setdefault('STORE_OP_TIMEOUT_SECONDS', '1')
    os.environ.setdefault('TRANSIENT_RETRY_BASE_DELAY_SECONDS', '0.001')

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)


# Call immediately to set env vars before any imports
_early_setup_test_environment()

import asyncio  # noqa: E402
from collections.abc import Callable, Generator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any  # noqa: E402

from dependency_injector import providers  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from src.platform.config.di import container  # noqa: E402
from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl  # noqa: E402
from src.platform.scheduler.expiry_scheduler import ExpiryScheduler  # noqa: E402
from src.service.conversation.driven_adapter.hub.presence_hub_impl import (  # noqa: E402
    PresenceHubImpl,
)
from src.service.conversation.driven_adapter.state.session_store_impl import (  # noqa: E402
    SessionStoreImpl,
)
from src.service.lease.app.command.lease_state_transitioner import (  # noqa: E402
    LeaseStateTransitioner,
)
from src.service.lease.driven_adapter.event.lease_event_publisher_impl import (  # noqa: E402
    LeaseEventPublisherImpl,
)
from src.service.lease.driven_adapter.state.lease_store_impl import LeaseStoreImpl  # noqa: E402
from src.service.shared_kernel.domain.entity.principal_entity import Principal  # noqa: E402
from src.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth  # noqa: E402


# =============================================================================
# Test identities (object-id shaped, as issued by the identity service)
# =============================================================================
BUYER_ID = '65f1c2a9e4b0a1b2c3d4e501'
SELLER_ID = '65f1c2a9e4b0a1b2c3d4e502'
OTHER_BUYER_ID = '65f1c2a9e4b0a1b2c3d4e503'
PRODUCT_ID = '65f1c2a9e4b0a1b2c3d4f001'
OTHER_PRODUCT_ID = '65f1c2a9e4b0a1b2c3d4f002'

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock; `monotonic` moves with `now`"""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self._now = start
        self._monotonic = 1_000.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, delta: timedelta) -> None:
        self._now += delta
        self._monotonic += delta.total_seconds()

    def set(self, moment: datetime) -> None:
        self.advance(moment - self._now)


# =============================================================================
# Building blocks
# =============================================================================
@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def broadcaster() -> InMemoryEventBroadcasterImpl:
    return InMemoryEventBroadcasterImpl(buffer_size=16)


@pytest.fixture
def expiry_scheduler(fake_clock: FakeClock) -> ExpiryScheduler:
    # No task group attached: timers are skipped, expiry runs through sweeps and reads
    return ExpiryScheduler(clock=fake_clock)


@pytest.fixture
def lease_store() -> LeaseStoreImpl:
    return LeaseStoreImpl(op_timeout_seconds=1.0)


@pytest.fixture
def lease_transitioner(
    lease_store: LeaseStoreImpl,
    broadcaster: InMemoryEventBroadcasterImpl,
    expiry_scheduler: ExpiryScheduler,
    fake_clock: FakeClock,
) -> LeaseStateTransitioner:
    return LeaseStateTransitioner(
        lease_store=lease_store,
        event_publisher=LeaseEventPublisherImpl(broadcaster=broadcaster),
        expiry_scheduler=expiry_scheduler,
        clock=fake_clock,
    )


@pytest.fixture
def session_store() -> SessionStoreImpl:
    return SessionStoreImpl(op_timeout_seconds=1.0)


@pytest.fixture
def presence_hub(
    broadcaster: InMemoryEventBroadcasterImpl,
    session_store: SessionStoreImpl,
    fake_clock: FakeClock,
) -> PresenceHubImpl:
    return PresenceHubImpl(
        broadcaster=broadcaster,
        session_store=session_store,
        clock=fake_clock,
        typing_timeout_seconds=0.05,
    )


class AlwaysExistsCatalog:
    def __init__(self, missing: set[str] | None = None) -> None:
        self.missing = missing or set()
        self.calls: list[str] = []

    async def product_exists(self, *, product_id: str) -> bool:
        self.calls.append(product_id)
        return product_id not in self.missing


@pytest.fixture
def catalog() -> AlwaysExistsCatalog:
    return AlwaysExistsCatalog()


# =============================================================================
# Auth
# =============================================================================
@pytest.fixture
def principals() -> dict[str, Principal]:
    return {
        'buyer': Principal(id=BUYER_ID, email='buyer@test.com', name='Test Buyer'),
        'seller': Principal(id=SELLER_ID, email='seller@test.com', name='Test Seller'),
        'other_buyer': Principal(id=OTHER_BUYER_ID, email='other@test.com', name='Other Buyer'),
    }


@pytest.fixture
def auth_headers(principals: dict[str, Principal]) -> Callable[[str], dict[str, str]]:
    jwt_auth = JwtAuth()

    def _headers(role: str) -> dict[str, str]:
        return {'Authorization': f'Bearer {jwt_auth.create_jwt_token(principals[role])}'}

    return _headers


# =============================================================================
# App
# =============================================================================
@pytest.fixture
def client(fake_clock: FakeClock) -> Generator[TestClient, None, None]:
    from src.main import app

    container.reset_singletons()
    container.clock.override(providers.Object(fake_clock))
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        container.clock.reset_override()
        container.reset_singletons()


@pytest.fixture
def context() -> dict[str, Any]:
    """Shared state between BDD steps of one scenario"""
    return {}


@pytest.fixture
def run_async() -> Generator[Callable[..., Any], None, None]:
    """pytest-bdd steps are synchronous: run their coroutines on one loop per scenario"""
    loop = asyncio.new_event_loop()
    try:
        yield loop.run_until_complete
    finally:
        loop.close()
