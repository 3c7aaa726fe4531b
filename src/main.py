"""
Production FastAPI Application

Lease and conversation services with the expiry scheduler and background sweeper.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.platform.scheduler.periodic_sweeper import PeriodicSweeper


def build_sweeper() -> PeriodicSweeper:
    async def expire_leases() -> int:
        return await container.expire_leases_use_case().execute()

    async def expire_sessions() -> int:
        return await container.expire_sessions_use_case().execute()

    return PeriodicSweeper(
        interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
        jobs=[('leases', expire_leases), ('sessions', expire_sessions)],
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Hold & Chat] Starting up...')

    tracing = TracingConfig(service_name='hold-chat-service')
    tracing.setup()
    Logger.base.info('📊 [Hold & Chat] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Hold & Chat] Dependency injection wired')

    scheduler = container.expiry_scheduler()
    presence_hub = container.presence_hub()
    async with anyio.create_task_group() as tg:
        scheduler.attach(tg)
        presence_hub.attach(tg)

        if settings.SWEEP_ENABLED:
            tg.start_soon(build_sweeper().run_forever, name='periodic-sweeper')
        else:
            Logger.base.warning('🧹 [Hold & Chat] Sweeper disabled, relying on timers and reads')

        Logger.base.info('✅ [Hold & Chat] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Hold & Chat] Shutting down...')
        presence_hub.detach()
        scheduler.detach()
        tg.cancel_scope.cancel()

    try:
        await container.catalog_query_handler().aclose()
        Logger.base.info('🌐 [Hold & Chat] Catalog client closed')
    except Exception as e:
        Logger.base.error(f'❌ [Hold & Chat] Failed to close catalog client: {e}')

    tracing.shutdown()
    Logger.base.info('📊 [Hold & Chat] Tracing shutdown complete')

    container.unwire()
    Logger.base.info('👋 [Hold & Chat] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
