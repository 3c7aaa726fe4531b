"""
Session Store Interface

Sessions and their message logs. Status and counters only change through the
store's per-session operations, each of which runs under that session's lock.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from uuid_utils import UUID

from src.service.conversation.domain.entity.message_entity import Message
from src.service.conversation.domain.entity.session_entity import ConversationSession
from src.service.conversation.domain.value_object.session_key import SessionKey


class ISessionStore(ABC):
    @abstractmethod
    async def get_or_create(
        self,
        *,
        key: SessionKey,
        factory: Callable[[], ConversationSession],
        caller_id: str,
        caller_name: str = '',
    ) -> tuple[ConversationSession, bool]:
        """
        Return the session for `key`, creating it with `factory` if none exists

        Returns:
            (session, created) where created is True only for the call that inserted it
        """
        pass

    @abstractmethod
    async def get(self, *, session_id: UUID) -> ConversationSession | None:
        pass

    @abstractmethod
    async def list_by_participant(self, *, user_id: str) -> list[ConversationSession]:
        """Sessions of the user, most recent activity first"""
        pass

    @abstractmethod
    async def append_message(
        self, *, session_id: UUID, message: Message, now: datetime
    ) -> ConversationSession:
        """
        Atomically append the message, update the last-message fields and bump the
        receiver's unread counter

        Raises:
            NotFoundError: unknown session
            GoneError: session past retention at `now`
            TransientError: session lock not acquired within the store timeout
        """
        pass

    @abstractmethod
    async def list_messages(self, *, session_id: UUID) -> list[Message]:
        """Messages in acceptance order"""
        pass

    @abstractmethod
    async def mark_delivered(self, *, session_id: UUID, message_id: UUID) -> Message | None:
        pass

    @abstractmethod
    async def mark_read(
        self, *, session_id: UUID, reader_id: str, now: datetime
    ) -> tuple[ConversationSession, list[UUID]]:
        """
        Reset the reader's unread counter and flag every message addressed to them read

        Returns:
            (session, ids of messages that flipped to read); repeating is a no-op

        Raises:
            NotFoundError: unknown session
            GoneError: session past retention at `now`, read state is frozen with it
        """
        pass

    @abstractmethod
    async def mark_read_only(self, *, session_id: UUID, now: datetime) -> ConversationSession | None:
        """
        Returns:
            The READ_ONLY session, or None if it was already read-only or is still within retention
        """
        pass

    @abstractmethod
    async def list_due_for_retention(self, *, now: datetime) -> list[ConversationSession]:
        """Snapshot of OPEN sessions whose retention window has elapsed"""
        pass
