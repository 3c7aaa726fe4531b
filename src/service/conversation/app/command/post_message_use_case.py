from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
from uuid_utils import UUID
import uuid_utils

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.hold_chat_metrics import metrics
from src.platform.state.entity_lock import EntityLockRegistry
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.conversation.domain.entity.message_entity import Message
from src.service.shared_kernel.app.interface.i_clock import IClock


class PostMessageUseCase:
    """
    Append a message and fan it out.

    Persistence comes first and never depends on anyone being joined. The
    append -> publish -> mark-delivered sequence runs under the session's delivery
    lock, so live members receive messages in the order the store accepted them.
    Fan-out failure is logged, the message stays stored and reachable via history.
    """

    def __init__(
        self,
        *,
        session_store: ISessionStore,
        presence_hub: IPresenceHub,
        delivery_locks: EntityLockRegistry,
        clock: IClock,
    ) -> None:
        self.session_store = session_store
        self.presence_hub = presence_hub
        self.delivery_locks = delivery_locks
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        session_store: ISessionStore = Depends(Provide[Container.session_store]),
        presence_hub: IPresenceHub = Depends(Provide[Container.presence_hub]),
        delivery_locks: EntityLockRegistry = Depends(Provide[Container.delivery_locks]),
        clock: IClock = Depends(Provide[Container.clock]),
    ) -> Self:
        return cls(
            session_store=session_store,
            presence_hub=presence_hub,
            delivery_locks=delivery_locks,
            clock=clock,
        )

    @Logger.io
    async def execute(
        self, *, session_id: UUID, sender_id: str, body: str, sender_name: str = ''
    ) -> Message:
        with self.tracer.start_as_current_span(
            'use_case.post_message', attributes={'session.id': str(session_id)}
        ):
            text = Message.validate_body(body)

            session = await self.session_store.get(session_id=session_id)
            if session is None:
                raise NotFoundError('Conversation not found')
            session.ensure_participant(sender_id)

            async with self.delivery_locks.hold(session_id):
                now = self.clock.now()
                message = Message(
                    id=uuid_utils.uuid7(),
                    session_id=session_id,
                    sender_id=sender_id,
                    sender_name=sender_name,
                    receiver_id=session.other_participant(sender_id),
                    body=text,
                    created_at=now,
                )
                await self.session_store.append_message(
                    session_id=session_id, message=message, now=now
                )
                message = await self._fan_out(message=message)

            metrics.record_message_posted(delivered=message.delivered)
            return message

    async def _fan_out(self, *, message: Message) -> Message:
        try:
            delivered = await self.presence_hub.publish_message(
                session_id=message.session_id, message=message
            )
            if delivered:
                return (
                    await self.session_store.mark_delivered(
                        session_id=message.session_id, message_id=message.id
                    )
                    or message
                )
        except Exception as e:
            Logger.base.warning(
                f'⚠️ [CONVERSATION] Fan-out of {message.id} failed, history will serve it: {e}'
            )
        return message
