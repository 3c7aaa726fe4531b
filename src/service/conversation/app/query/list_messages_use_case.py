from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.conversation.domain.entity.message_entity import Message


class ListMessagesUseCase:
    """History in acceptance order; stays available after the session turns read-only"""

    def __init__(self, *, session_store: ISessionStore) -> None:
        self.session_store = session_store

    @classmethod
    @inject
    def depends(
        cls,
        session_store: ISessionStore = Depends(Provide[Container.session_store]),
    ) -> Self:
        return cls(session_store=session_store)

    @Logger.io(truncate_content=True)
    async def execute(self, *, session_id: UUID, requester_id: str) -> list[Message]:
        session = await self.session_store.get(session_id=session_id)
        if session is None:
            raise NotFoundError('Conversation not found')
        session.ensure_participant(requester_id)
        return await self.session_store.list_messages(session_id=session_id)
