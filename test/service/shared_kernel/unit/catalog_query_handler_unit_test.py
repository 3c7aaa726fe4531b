import httpx
import pytest

from src.platform.exception.exceptions import TransientError
from src.service.shared_kernel.driven_adapter.catalog.catalog_query_handler_impl import (
    CatalogQueryHandlerImpl,
)


pytestmark = pytest.mark.unit

PRODUCT_ID = '65f1c2a9e4b0a1b2c3d4f001'


def _handler(responder, *, max_attempts: int = 3) -> CatalogQueryHandlerImpl:
    return CatalogQueryHandlerImpl(
        base_url='http://catalog.test',
        max_attempts=max_attempts,
        base_backoff=0.001,
        transport=httpx.MockTransport(responder),
    )


class TestCatalogQueryHandler:
    async def test_disabled_catalog_trusts_caller(self):
        handler = CatalogQueryHandlerImpl(base_url='')

        assert handler.enabled is False
        assert await handler.product_exists(product_id=PRODUCT_ID) is True
        await handler.aclose()

    async def test_existing_product(self):
        seen: list[str] = []

        def responder(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={'id': PRODUCT_ID})

        handler = _handler(responder)

        assert await handler.product_exists(product_id=PRODUCT_ID) is True
        assert seen == [f'/products/{PRODUCT_ID}']
        await handler.aclose()

    async def test_missing_product(self):
        handler = _handler(lambda request: httpx.Response(404))

        assert await handler.product_exists(product_id=PRODUCT_ID) is False
        await handler.aclose()

    async def test_retryable_status_is_retried(self):
        statuses = iter([503, 502, 200])

        def responder(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses))

        handler = _handler(responder)

        assert await handler.product_exists(product_id=PRODUCT_ID) is True
        await handler.aclose()

    async def test_exhausted_retries_raise_transient_error(self):
        calls = 0

        def responder(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError('connection refused', request=request)

        handler = _handler(responder, max_attempts=2)

        with pytest.raises(TransientError):
            await handler.product_exists(product_id=PRODUCT_ID)
        assert calls == 2
        await handler.aclose()

    async def test_unexpected_status_is_transient(self):
        handler = _handler(lambda request: httpx.Response(401))

        with pytest.raises(TransientError):
            await handler.product_exists(product_id=PRODUCT_ID)
        await handler.aclose()
