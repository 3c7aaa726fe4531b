from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.exception.exceptions import GoneError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.conversation.app.dto.session_view import SessionView
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.shared_kernel.app.interface.i_clock import IClock


class GetSessionUseCase:
    """
    NotFound for unknown ids, Forbidden for non-participants, Gone once retention has
    elapsed (the history endpoint still serves the messages).
    """

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

    @Logger.io
    async def execute(self, *, session_id: UUID, requester_id: str) -> SessionView:
        session = await self.session_store.get(session_id=session_id)
        if session is None:
            raise NotFoundError('Conversation not found')
        session.ensure_participant(requester_id)

        now = self.clock.now()
        if session.is_expired(now=now):
            raise GoneError('Conversation has expired')

        return SessionView.build(
            session=session, viewer_id=requester_id, now=now, is_online=self.presence_hub.is_online
        )
