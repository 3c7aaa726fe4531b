from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.shared_kernel.app.interface.i_clock import IClock


class MarkReadUseCase:
    """
    Reset the reader's unread counter and flag their messages read (idempotent)

    Past retention the session is frozen: marking read raises GoneError.
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
    async def execute(self, *, session_id: UUID, reader_id: str) -> list[UUID]:
        session = await self.session_store.get(session_id=session_id)
        if session is None:
            raise NotFoundError('Conversation not found')
        session.ensure_participant(reader_id)

        _, read_ids = await self.session_store.mark_read(
            session_id=session_id, reader_id=reader_id, now=self.clock.now()
        )
        if read_ids:
            try:
                await self.presence_hub.publish_read_receipt(
                    session_id=session_id,
                    reader_id=reader_id,
                    message_ids=read_ids,
                    read_at=self.clock.now(),
                )
            except Exception as e:
                Logger.base.warning(f'⚠️ [CONVERSATION] Read receipt for {session_id} not sent: {e}')
        return read_ids
