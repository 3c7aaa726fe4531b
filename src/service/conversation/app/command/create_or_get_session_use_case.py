from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
import uuid_utils

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.hold_chat_metrics import metrics
from src.platform.types import normalize_object_id
from src.service.conversation.app.dto.session_view import SessionView
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.conversation.domain.entity.session_entity import ConversationSession
from src.service.conversation.domain.value_object.session_key import SessionKey
from src.service.shared_kernel.app.interface.i_catalog_query_handler import (
    ICatalogQueryHandler,
)
from src.service.shared_kernel.app.interface.i_clock import IClock


class CreateOrGetSessionUseCase:
    """
    Open the conversation between two principals (optionally about a product), or
    return the existing one. Swapped participants resolve to the same session and
    only the inserting call reports created=True.
    """

    def __init__(
        self,
        *,
        session_store: ISessionStore,
        presence_hub: IPresenceHub,
        catalog_query_handler: ICatalogQueryHandler,
        clock: IClock,
    ) -> None:
        self.session_store = session_store
        self.presence_hub = presence_hub
        self.catalog_query_handler = catalog_query_handler
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        session_store: ISessionStore = Depends(Provide[Container.session_store]),
        presence_hub: IPresenceHub = Depends(Provide[Container.presence_hub]),
        catalog_query_handler: ICatalogQueryHandler = Depends(
            Provide[Container.catalog_query_handler]
        ),
        clock: IClock = Depends(Provide[Container.clock]),
    ) -> Self:
        return cls(
            session_store=session_store,
            presence_hub=presence_hub,
            catalog_query_handler=catalog_query_handler,
            clock=clock,
        )

    @Logger.io
    async def execute(
        self,
        *,
        initiator_id: str,
        counterparty_id: str,
        product_id: str | None = None,
        product_title: str = '',
        initiator_name: str = '',
    ) -> tuple[SessionView, bool]:
        initiator_id = normalize_object_id(initiator_id)
        counterparty_id = normalize_object_id(counterparty_id)
        product_id = normalize_object_id(product_id) if product_id else None
        with self.tracer.start_as_current_span(
            'use_case.create_or_get_session',
            attributes={'product.id': product_id or '', 'initiator.id': initiator_id},
        ):
            key = SessionKey.of(initiator_id, counterparty_id, product_id)

            if key.product_id and not await self.catalog_query_handler.product_exists(
                product_id=key.product_id
            ):
                raise NotFoundError('Product not found')

            def new_session() -> ConversationSession:
                return ConversationSession.create(
                    id=uuid_utils.uuid7(),
                    key=key,
                    initiator_id=initiator_id,
                    now=self.clock.now(),
                    retention_days=settings.SESSION_RETENTION_DAYS,
                    title=product_title,
                    participant_names={initiator_id: initiator_name} if initiator_name else {},
                )

            session, created = await self.session_store.get_or_create(
                key=key, factory=new_session, caller_id=initiator_id, caller_name=initiator_name
            )
            if created:
                metrics.sessions_created.inc()
                Logger.base.info(
                    f'💬 [CONVERSATION] Opened {session.id} between {initiator_id} and {counterparty_id}'
                )

            view = SessionView.build(
                session=session,
                viewer_id=initiator_id,
                now=self.clock.now(),
                is_online=self.presence_hub.is_online,
            )
            return view, created
