"""
Catalog Query Handler (HTTP)

Asks the catalog service whether a product exists. Timeouts, network errors and
retryable statuses are retried with exponential backoff; once attempts run out the
caller receives a TransientError so the API boundary can decide whether to retry.
"""

from typing import Optional

import anyio
import httpx

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import TransientError
from src.platform.exception.transient_retry import backoff_delay
from src.platform.logging.loguru_io import Logger


RETRY_STATUSES = {429, 500, 502, 503, 504}


class CatalogQueryHandlerImpl:
    def __init__(
        self,
        *,
        base_url: str = '',
        timeout_seconds: float = 3.0,
        max_attempts: int = 3,
        base_backoff: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = (base_url or settings.CATALOG_BASE_URL).rstrip('/')
        self._max_attempts = max_attempts
        self._base_backoff = base_backoff
        self._client = httpx.AsyncClient(
            base_url=self._base_url or 'http://catalog.invalid',
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._base_url)

    @Logger.io
    async def product_exists(self, *, product_id: str) -> bool:
        if not self.enabled:
            # No catalog configured (local dev / tests): trust the caller
            return True

        response = await self._request_with_retry(f'/products/{product_id}')
        if response.status_code == 404:
            return False
        if response.is_success:
            return True

        Logger.base.warning(
            f'⚠️ [CATALOG] Unexpected status {response.status_code} for product={product_id}'
        )
        raise TransientError('Catalog lookup failed')

    async def _request_with_retry(self, path: str) -> httpx.Response:
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._client.get(path)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if attempt >= self._max_attempts:
                    Logger.base.error(f'❌ [CATALOG] {path} unreachable after {attempt} attempts')
                    raise TransientError('Catalog unavailable') from e
                reason = type(e).__name__
            else:
                if response.status_code not in RETRY_STATUSES:
                    return response
                if attempt >= self._max_attempts:
                    Logger.base.error(
                        f'❌ [CATALOG] {path} returned {response.status_code} '
                        f'after {attempt} attempts'
                    )
                    raise TransientError('Catalog unavailable')
                reason = f'status {response.status_code}'

            delay = backoff_delay(attempt=attempt, base_delay=self._base_backoff)
            Logger.base.warning(
                f'🔁 [CATALOG] Retrying {path} due to {reason} (attempt={attempt}, delay={delay:.2f}s)'
            )
            await anyio.sleep(delay)

    async def aclose(self) -> None:
        await self._client.aclose()
