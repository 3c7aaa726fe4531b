"""
In-process Session Store

State:
- sessions:    session_id -> ConversationSession
- by_key:      SessionKey -> session_id (uniqueness of pair + product)
- by_user:     user_id -> session ids
- messages:    session_id -> message log in acceptance order
- message_idx: session_id -> {message_id: position in the log}

Concurrency: get_or_create locks the SessionKey; every other write locks the
session id. Reads take no lock, each one completes without suspending.
"""

from collections.abc import Callable
from datetime import datetime
import time

from uuid_utils import UUID

from src.platform.exception.exceptions import NotFoundError
from src.platform.metrics.hold_chat_metrics import metrics
from src.platform.state.entity_lock import EntityLockRegistry
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.conversation.domain.entity.message_entity import Message
from src.service.conversation.domain.entity.session_entity import ConversationSession
from src.service.conversation.domain.enum.session_state import SessionState
from src.service.conversation.domain.value_object.session_key import SessionKey


class SessionStoreImpl(ISessionStore):
    def __init__(self, *, op_timeout_seconds: float = 2.0) -> None:
        self._locks = EntityLockRegistry(name='session store', timeout_seconds=op_timeout_seconds)
        self._sessions: dict[UUID, ConversationSession] = {}
        self._by_key: dict[SessionKey, UUID] = {}
        self._by_user: dict[str, list[UUID]] = {}
        self._messages: dict[UUID, list[Message]] = {}
        self._message_idx: dict[UUID, dict[UUID, int]] = {}

    async def get_or_create(
        self,
        *,
        key: SessionKey,
        factory: Callable[[], ConversationSession],
        caller_id: str,
        caller_name: str = '',
    ) -> tuple[ConversationSession, bool]:
        start = time.perf_counter()
        async with self._locks.hold(key):
            session_id = self._by_key.get(key)
            if session_id is not None:
                session = self._sessions[session_id]
                created = False
            else:
                session = factory()
                self._sessions[session.id] = session
                self._by_key[key] = session.id
                self._messages[session.id] = []
                self._message_idx[session.id] = {}
                for user_id in session.participants:
                    self._by_user.setdefault(user_id, []).append(session.id)
                created = True

        if not created:
            # The counterparty's name is only known once they call in themselves
            async with self._locks.hold(session.id):
                current = self._sessions[session.id]
                session = current.remember_name(user_id=caller_id, name=caller_name)
                self._sessions[session.id] = session

        metrics.record_store_operation(
            store='session', operation='get_or_create', duration=time.perf_counter() - start
        )
        return session, created

    async def get(self, *, session_id: UUID) -> ConversationSession | None:
        return self._sessions.get(session_id)

    async def list_by_participant(self, *, user_id: str) -> list[ConversationSession]:
        sessions = [self._sessions[sid] for sid in self._by_user.get(user_id, [])]
        return sorted(sessions, key=lambda s: s.last_message_at or s.created_at, reverse=True)

    async def append_message(
        self, *, session_id: UUID, message: Message, now: datetime
    ) -> ConversationSession:
        self._require(session_id)
        start = time.perf_counter()
        async with self._locks.hold(session_id):
            session = self._sessions[session_id]
            session.ensure_writable(now=now)

            log = self._messages[session_id]
            self._message_idx[session_id][message.id] = len(log)
            log.append(message)
            session = session.record_message(message=message)
            self._sessions[session_id] = session

        metrics.record_store_operation(
            store='session', operation='append_message', duration=time.perf_counter() - start
        )
        return session

    async def list_messages(self, *, session_id: UUID) -> list[Message]:
        self._require(session_id)
        return list(self._messages[session_id])

    async def mark_delivered(self, *, session_id: UUID, message_id: UUID) -> Message | None:
        self._require(session_id)
        async with self._locks.hold(session_id):
            position = self._message_idx[session_id].get(message_id)
            if position is None:
                return None
            log = self._messages[session_id]
            log[position] = log[position].mark_delivered()
            return log[position]

    async def mark_read(
        self, *, session_id: UUID, reader_id: str, now: datetime
    ) -> tuple[ConversationSession, list[UUID]]:
        self._require(session_id)
        start = time.perf_counter()
        async with self._locks.hold(session_id):
            self._sessions[session_id].ensure_writable(now=now)
            log = self._messages[session_id]
            flipped: list[UUID] = []
            for position, message in enumerate(log):
                if message.receiver_id == reader_id and not message.read:
                    log[position] = message.mark_read()
                    flipped.append(message.id)

            session = self._sessions[session_id].reset_unread(reader_id=reader_id)
            self._sessions[session_id] = session

        metrics.record_store_operation(
            store='session', operation='mark_read', duration=time.perf_counter() - start
        )
        return session, flipped

    async def mark_read_only(self, *, session_id: UUID, now: datetime) -> ConversationSession | None:
        self._require(session_id)
        async with self._locks.hold(session_id):
            session = self._sessions[session_id]
            if session.state is SessionState.READ_ONLY or now < session.expires_at:
                return None
            session = session.to_read_only()
            self._sessions[session_id] = session
            return session

    async def list_due_for_retention(self, *, now: datetime) -> list[ConversationSession]:
        return [
            session
            for session in self._sessions.values()
            if session.state is SessionState.OPEN and now >= session.expires_at
        ]

    def _require(self, session_id: UUID) -> None:
        if session_id not in self._sessions:
            raise NotFoundError('Conversation not found')
