from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.conversation.app.dto.session_view import SessionView
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.shared_kernel.app.interface.i_clock import IClock


class ListSessionsUseCase:
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

    @Logger.io(truncate_content=True)
    async def execute(self, *, user_id: str) -> list[SessionView]:
        """Every session of the user (expired ones included) with the caller's unread counter"""
        now = self.clock.now()
        return [
            SessionView.build(
                session=session, viewer_id=user_id, now=now, is_online=self.presence_hub.is_online
            )
            for session in await self.session_store.list_by_participant(user_id=user_id)
        ]
