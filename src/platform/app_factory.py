"""
FastAPI App Factory

Builds the HTTP facade of the hold & chat service: lease and conversation routers,
the error envelope, tracing, and the operational endpoints (/health, /metrics).
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.constant.route_constant import CONVERSATION_BASE, LEASE_BASE
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.observability.tracing import TracingConfig
from src.service.conversation.driving_adapter.http_controller.conversation_controller import (
    router as conversation_router,
)
from src.service.lease.driving_adapter.http_controller.lease_controller import (
    router as lease_router,
)


# (router, prefix, tag)
SERVICE_ROUTERS: list[tuple[APIRouter, str, str]] = [
    (lease_router, LEASE_BASE, 'lease'),
    (conversation_router, CONVERSATION_BASE, 'conversation'),
]


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
    description: str = 'Marketplace reservations and buyer-seller conversations',
    service_name: str = 'hold-chat-service',
) -> FastAPI:
    """
    Create the configured FastAPI application.

    Args:
        lifespan: Owns the expiry scheduler, the sweeper and DI wiring
        title_suffix: Optional suffix for the OpenAPI title (e.g., " (Test)")
        service_name: Service name reported to the tracer
    """
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description=description,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Instrument before routes are mounted
    TracingConfig(service_name=service_name).instrument_fastapi(app=app)

    # Browser clients hold the SSE channels, cookies carry the token
    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
        allow_headers=['Authorization', 'Content-Type', 'Last-Event-ID'],
    )

    register_exception_handlers(app)

    for router, prefix, tag in SERVICE_ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    _register_operational_endpoints(app)
    return app


def _register_operational_endpoints(app: FastAPI) -> None:
    @app.get('/health')
    async def health_check() -> dict[str, Any]:
        """Liveness plus the knobs an operator checks first when expiry looks stuck"""
        return {
            'status': 'healthy',
            'service': settings.PROJECT_NAME,
            'version': settings.VERSION,
            'server_time': container.clock().now().isoformat(),
            'sweeper': 'enabled' if settings.SWEEP_ENABLED else 'disabled',
        }

    @app.get('/metrics')
    async def get_metrics() -> PlainTextResponse:
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
