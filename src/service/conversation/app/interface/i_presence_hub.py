"""
Presence & Delivery Hub Interface

Rooms (one per session) of live connections. Fan-out is best-effort and
at-most-once with no replay: a member who was not connected catches up from the
session history, never from the hub.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from anyio.streams.memory import MemoryObjectReceiveStream
from uuid_utils import UUID

from src.service.conversation.domain.entity.message_entity import Message


class IPresenceHub(ABC):
    @abstractmethod
    async def join(self, *, session_id: UUID, user_id: str) -> MemoryObjectReceiveStream[dict]:
        """
        Attach a live connection of `user_id` to the session's room

        Raises:
            NotFoundError: unknown session
            ForbiddenError: user is not a participant
        """
        pass

    @abstractmethod
    async def leave(
        self,
        *,
        session_id: UUID,
        user_id: str,
        stream: MemoryObjectReceiveStream[dict] | None = None,
    ) -> None:
        """
        Detach one connection (or all of the user's connections to the room when
        `stream` is None). Safe to call any number of times.
        """
        pass

    @abstractmethod
    async def publish_message(self, *, session_id: UUID, message: Message) -> bool:
        """
        Fan the message out to every joined member except the sender

        Returns:
            True if at least one live connection of the receiver accepted it
        """
        pass

    @abstractmethod
    async def publish_typing(self, *, session_id: UUID, user_id: str) -> None:
        pass

    @abstractmethod
    async def publish_stop_typing(self, *, session_id: UUID, user_id: str) -> None:
        pass

    @abstractmethod
    async def publish_presence(self, *, user_id: str, is_online: bool) -> None:
        """Broadcast to every room the user currently belongs to"""
        pass

    @abstractmethod
    async def publish_read_receipt(
        self, *, session_id: UUID, reader_id: str, message_ids: list[UUID], read_at: datetime
    ) -> None:
        pass

    @abstractmethod
    async def publish_session_expired(self, *, session_id: UUID) -> None:
        pass

    @abstractmethod
    def is_online(self, user_id: str) -> bool:
        pass

    @abstractmethod
    def room_members(self, session_id: UUID) -> set[str]:
        pass
