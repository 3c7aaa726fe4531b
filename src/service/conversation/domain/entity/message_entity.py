from datetime import datetime

import attrs
from uuid_utils import UUID

from src.platform.exception.exceptions import InvalidArgumentError


MAX_BODY_LENGTH = 4000


@attrs.define(frozen=True)
class Message:
    """Owned by exactly one session. delivered/read only ever go from False to True."""

    id: UUID
    session_id: UUID
    sender_id: str
    receiver_id: str
    body: str
    created_at: datetime
    sender_name: str = ''
    delivered: bool = False
    read: bool = False

    @staticmethod
    def validate_body(body: str) -> str:
        stripped = body.strip() if body else ''
        if not stripped:
            raise InvalidArgumentError('Message body must not be empty')
        if len(stripped) > MAX_BODY_LENGTH:
            raise InvalidArgumentError(f'Message body must be at most {MAX_BODY_LENGTH} characters')
        return stripped

    def mark_delivered(self) -> 'Message':
        return self if self.delivered else attrs.evolve(self, delivered=True)

    def mark_read(self) -> 'Message':
        if self.read:
            return self
        return attrs.evolve(self, delivered=True, read=True)

    def preview(self, length: int = 100) -> str:
        return self.body if len(self.body) <= length else f'{self.body[: length - 3]}...'
