from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.conversation.domain.entity.session_entity import ConversationSession
from src.service.shared_kernel.app.interface.i_clock import IClock


class TypingUseCase:
    """Ephemeral typing signals; nothing is stored"""

    def __init__(
        self, *, session_store: ISessionStore, presence_hub: IPresenceHub, clock: IClock
    ) -> None:
        self.session_store = session_store
        self.presence_hub = presence_hub
        self.clock = clock

    @classmethod
    @inject
    def depends(
        cls,
        session_store: ISessionStore = Depends(Provide[Container.session_store]),
        presence_hub: IPresenceHub = Depends(Provide[Container.presence_hub]),
        clock: IClock = Depends(Provide[Container.clock]),
    ) -> Self:
        return cls(session_store=session_store, presence_hub=presence_hub, clock=clock)

    async def start(self, *, session_id: UUID, user_id: str) -> None:
        session = await self._participant_session(session_id=session_id, user_id=user_id)
        session.ensure_writable(now=self.clock.now())
        await self.presence_hub.publish_typing(session_id=session_id, user_id=user_id)

    async def stop(self, *, session_id: UUID, user_id: str) -> None:
        await self._participant_session(session_id=session_id, user_id=user_id)
        await self.presence_hub.publish_stop_typing(session_id=session_id, user_id=user_id)

    async def _participant_session(self, *, session_id: UUID, user_id: str) -> ConversationSession:
        session = await self.session_store.get(session_id=session_id)
        if session is None:
            raise NotFoundError('Conversation not found')
        session.ensure_participant(user_id)
        return session
