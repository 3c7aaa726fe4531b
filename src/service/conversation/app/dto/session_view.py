from collections.abc import Callable
from datetime import datetime

import attrs

from src.service.conversation.domain.entity.session_entity import ConversationSession


@attrs.define(frozen=True)
class ParticipantView:
    id: str
    name: str
    is_online: bool


@attrs.define(frozen=True)
class SessionView:
    """A session as seen by one participant at one instant"""

    session: ConversationSession
    unread_count: int
    days_remaining: int
    is_expired: bool
    participants: list[ParticipantView]

    @classmethod
    def build(
        cls,
        *,
        session: ConversationSession,
        viewer_id: str,
        now: datetime,
        is_online: Callable[[str], bool],
    ) -> 'SessionView':
        return cls(
            session=session,
            unread_count=session.unread_for(viewer_id),
            days_remaining=session.days_remaining(now=now),
            is_expired=session.is_expired(now=now),
            participants=[
                ParticipantView(
                    id=user_id,
                    name=session.participant_names.get(user_id, ''),
                    is_online=is_online(user_id),
                )
                for user_id in session.participants
            ],
        )
