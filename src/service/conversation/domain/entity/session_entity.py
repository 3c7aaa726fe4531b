from datetime import datetime, timedelta
import math

import attrs
from uuid_utils import UUID

from src.platform.exception.exceptions import ForbiddenError, GoneError
from src.platform.logging.loguru_io import Logger
from src.service.conversation.domain.entity.message_entity import Message
from src.service.conversation.domain.enum.session_state import SessionState
from src.service.conversation.domain.value_object.session_key import SessionKey


_ONE_DAY = timedelta(days=1)


@attrs.define(frozen=True)
class ConversationSession:
    """
    Two-party conversation with a fixed retention window.

    Writable while now < expires_at; afterwards the session is read-only and its
    history stays retrievable. The retention sweep records that as state READ_ONLY,
    but every write also checks the clock, so a sweep that has not run yet never
    lets a late message through.
    """

    id: UUID
    initiator_id: str
    counterparty_id: str
    created_at: datetime
    expires_at: datetime
    product_id: str | None = None
    title: str = ''
    state: SessionState = SessionState.OPEN
    last_message: str | None = None
    last_message_at: datetime | None = None
    unread_counts: dict[str, int] = attrs.field(factory=dict)
    participant_names: dict[str, str] = attrs.field(factory=dict)

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: UUID,
        key: SessionKey,
        initiator_id: str,
        now: datetime,
        retention_days: int,
        title: str = '',
        participant_names: dict[str, str] | None = None,
    ) -> 'ConversationSession':
        (counterparty_id,) = key.participants - {initiator_id}
        return cls(
            id=id,
            initiator_id=initiator_id,
            counterparty_id=counterparty_id,
            product_id=key.product_id,
            title=title,
            created_at=now,
            expires_at=now + timedelta(days=retention_days),
            unread_counts={initiator_id: 0, counterparty_id: 0},
            participant_names=dict(participant_names or {}),
        )

    @property
    def key(self) -> SessionKey:
        return SessionKey.of(self.initiator_id, self.counterparty_id, self.product_id)

    @property
    def participants(self) -> tuple[str, str]:
        return (self.initiator_id, self.counterparty_id)

    def is_participant(self, user_id: str) -> bool:
        return user_id in self.participants

    def ensure_participant(self, user_id: str) -> None:
        if not self.is_participant(user_id):
            raise ForbiddenError('Not a participant of this conversation')

    def other_participant(self, user_id: str) -> str:
        return self.counterparty_id if user_id == self.initiator_id else self.initiator_id

    def is_expired(self, *, now: datetime) -> bool:
        return self.state is SessionState.READ_ONLY or now >= self.expires_at

    def ensure_writable(self, *, now: datetime) -> None:
        if self.is_expired(now=now):
            raise GoneError('Conversation has expired and is read-only')

    def days_remaining(self, *, now: datetime) -> int:
        remaining = self.expires_at - now
        if remaining <= timedelta(0):
            return 0
        return math.ceil(remaining / _ONE_DAY)

    def unread_for(self, user_id: str) -> int:
        return self.unread_counts.get(user_id, 0)

    def record_message(self, *, message: Message) -> 'ConversationSession':
        unread = dict(self.unread_counts)
        unread[message.receiver_id] = unread.get(message.receiver_id, 0) + 1
        return attrs.evolve(
            self,
            last_message=message.preview(),
            last_message_at=message.created_at,
            unread_counts=unread,
        )

    def reset_unread(self, *, reader_id: str) -> 'ConversationSession':
        if self.unread_for(reader_id) == 0:
            return self
        return attrs.evolve(self, unread_counts={**self.unread_counts, reader_id: 0})

    def remember_name(self, *, user_id: str, name: str) -> 'ConversationSession':
        if not name or self.participant_names.get(user_id) == name:
            return self
        return attrs.evolve(self, participant_names={**self.participant_names, user_id: name})

    @Logger.io
    def to_read_only(self) -> 'ConversationSession':
        return attrs.evolve(self, state=SessionState.READ_ONLY)
