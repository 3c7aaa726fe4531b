from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.platform.types import ObjectIdStr, UtilsUUID7
from src.service.conversation.app.dto.session_view import SessionView
from src.service.conversation.domain.entity.message_entity import Message


class SessionCreateRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {
                'counterparty_id': '65f1c2a9e4b0a1b2c3d4e5f7',
                'product_id': '65f1c2a9e4b0a1b2c3d4e5f6',
                'product_title': 'Vintage road bike',
            }
        }
    )

    counterparty_id: ObjectIdStr
    product_id: Optional[ObjectIdStr] = None
    product_title: str = Field(default='', max_length=200)


class ParticipantResponse(BaseModel):
    id: str
    name: str
    is_online: bool


class SessionResponse(BaseModel):
    id: UtilsUUID7
    initiator_id: str
    counterparty_id: str
    product_id: Optional[str] = None
    title: str
    state: str
    participants: List[ParticipantResponse]
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int
    created_at: datetime
    expires_at: datetime
    days_remaining: int
    is_expired: bool

    @classmethod
    def from_view(cls, view: SessionView) -> 'SessionResponse':
        session = view.session
        return cls(
            id=session.id,  # type: ignore[arg-type]
            initiator_id=session.initiator_id,
            counterparty_id=session.counterparty_id,
            product_id=session.product_id,
            title=session.title,
            state=session.state.value,
            participants=[
                ParticipantResponse(id=p.id, name=p.name, is_online=p.is_online)
                for p in view.participants
            ],
            last_message=session.last_message,
            last_message_at=session.last_message_at,
            unread_count=view.unread_count,
            created_at=session.created_at,
            expires_at=session.expires_at,
            days_remaining=view.days_remaining,
            is_expired=view.is_expired,
        )


class SessionCreatedResponse(BaseModel):
    session: SessionResponse
    created: bool


class MessageCreateRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={'example': {'body': 'Is this still available?'}})

    body: str


class MessageResponse(BaseModel):
    id: UtilsUUID7
    session_id: UtilsUUID7
    sender_id: str
    sender_name: str
    receiver_id: str
    body: str
    created_at: datetime
    delivered: bool
    read: bool

    @classmethod
    def from_message(cls, message: Message) -> 'MessageResponse':
        return cls(
            id=message.id,  # type: ignore[arg-type]
            session_id=message.session_id,  # type: ignore[arg-type]
            sender_id=message.sender_id,
            sender_name=message.sender_name,
            receiver_id=message.receiver_id,
            body=message.body,
            created_at=message.created_at,
            delivered=message.delivered,
            read=message.read,
        )


class MarkReadResponse(BaseModel):
    read_count: int
    message_ids: List[UtilsUUID7]


class TypingResponse(BaseModel):
    typing: bool
