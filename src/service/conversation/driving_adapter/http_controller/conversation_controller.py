from collections.abc import AsyncIterator
from typing import List

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream
from fastapi import APIRouter, Depends, Response, status
from opentelemetry import trace
import orjson
from sse_starlette.sse import EventSourceResponse
from uuid_utils import UUID

from src.platform.config.di import container
from src.platform.exception.transient_retry import retry_transient
from src.platform.logging.loguru_io import Logger
from src.platform.types import UtilsUUID7
from src.service.conversation.app.command.create_or_get_session_use_case import (
    CreateOrGetSessionUseCase,
)
from src.service.conversation.app.command.mark_read_use_case import MarkReadUseCase
from src.service.conversation.app.command.post_message_use_case import PostMessageUseCase
from src.service.conversation.app.command.typing_use_case import TypingUseCase
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.query.get_session_use_case import GetSessionUseCase
from src.service.conversation.app.query.list_messages_use_case import ListMessagesUseCase
from src.service.conversation.app.query.list_sessions_use_case import ListSessionsUseCase
from src.service.conversation.driving_adapter.schema.conversation_schema import (
    MarkReadResponse,
    MessageCreateRequest,
    MessageResponse,
    SessionCreatedResponse,
    SessionCreateRequest,
    SessionResponse,
    TypingResponse,
)
from src.service.shared_kernel.domain.entity.principal_entity import Principal
from src.service.shared_kernel.driving_adapter.auth.principal_dependency import (
    get_current_principal,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
@retry_transient
async def create_or_get_session(
    request: SessionCreateRequest,
    response: Response,
    current_principal: Principal = Depends(get_current_principal),
    use_case: CreateOrGetSessionUseCase = Depends(CreateOrGetSessionUseCase.depends),
) -> SessionCreatedResponse:
    with tracer.start_as_current_span('controller.create_or_get_session') as span:
        span.set_attribute('initiator_id', current_principal.id)
        span.set_attribute('counterparty_id', request.counterparty_id)

        view, created = await use_case.execute(
            initiator_id=current_principal.id,
            initiator_name=current_principal.name,
            counterparty_id=request.counterparty_id,
            product_id=request.product_id,
            product_title=request.product_title,
        )
        if not created:
            response.status_code = status.HTTP_200_OK
        return SessionCreatedResponse(session=SessionResponse.from_view(view), created=created)


@router.get('')
@Logger.io
@retry_transient
async def list_sessions(
    current_principal: Principal = Depends(get_current_principal),
    use_case: ListSessionsUseCase = Depends(ListSessionsUseCase.depends),
) -> List[SessionResponse]:
    views = await use_case.execute(user_id=current_principal.id)
    return [SessionResponse.from_view(view) for view in views]


@router.get('/{session_id}')
@Logger.io
@retry_transient
async def get_session(
    session_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
    use_case: GetSessionUseCase = Depends(GetSessionUseCase.depends),
) -> SessionResponse:
    view = await use_case.execute(session_id=session_id, requester_id=current_principal.id)
    return SessionResponse.from_view(view)


@router.get('/{session_id}/messages')
@Logger.io
@retry_transient
async def list_messages(
    session_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
    use_case: ListMessagesUseCase = Depends(ListMessagesUseCase.depends),
) -> List[MessageResponse]:
    messages = await use_case.execute(session_id=session_id, requester_id=current_principal.id)
    return [MessageResponse.from_message(message) for message in messages]


@router.post('/{session_id}/messages', status_code=status.HTTP_201_CREATED)
@Logger.io(truncate_content=True)
@retry_transient
async def post_message(
    session_id: UtilsUUID7,
    request: MessageCreateRequest,
    current_principal: Principal = Depends(get_current_principal),
    use_case: PostMessageUseCase = Depends(PostMessageUseCase.depends),
) -> MessageResponse:
    with tracer.start_as_current_span('controller.post_message') as span:
        span.set_attribute('session_id', str(session_id))
        span.set_attribute('sender_id', current_principal.id)

        message = await use_case.execute(
            session_id=session_id,
            sender_id=current_principal.id,
            sender_name=current_principal.name,
            body=request.body,
        )
        span.set_attribute('message.delivered', message.delivered)
        return MessageResponse.from_message(message)


@router.post('/{session_id}/read')
@Logger.io
@retry_transient
async def mark_read(
    session_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
    use_case: MarkReadUseCase = Depends(MarkReadUseCase.depends),
) -> MarkReadResponse:
    message_ids = await use_case.execute(session_id=session_id, reader_id=current_principal.id)
    return MarkReadResponse(read_count=len(message_ids), message_ids=message_ids)  # type: ignore[arg-type]


@router.post('/{session_id}/typing')
@Logger.io
async def start_typing(
    session_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
    use_case: TypingUseCase = Depends(TypingUseCase.depends),
) -> TypingResponse:
    await use_case.start(session_id=session_id, user_id=current_principal.id)
    return TypingResponse(typing=True)


@router.post('/{session_id}/stop_typing')
@Logger.io
async def stop_typing(
    session_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
    use_case: TypingUseCase = Depends(TypingUseCase.depends),
) -> TypingResponse:
    await use_case.stop(session_id=session_id, user_id=current_principal.id)
    return TypingResponse(typing=False)


# ============================ SSE Endpoint ============================


async def session_event_stream(
    *,
    hub: IPresenceHub,
    session_id: UUID,
    user_id: str,
    stream: MemoryObjectReceiveStream[dict],
) -> AsyncIterator[dict[str, str]]:
    """
    Yield a `connected` frame with the room roster, then every live event of the session.

    Leaving the hub in `finally` covers both client disconnects and server shutdown.
    """
    try:
        members = sorted(hub.room_members(session_id))
        yield {
            'event': 'connected',
            'data': orjson.dumps(
                {
                    'session_id': str(session_id),
                    'user_id': user_id,
                    'online': {member: hub.is_online(member) for member in members},
                }
            ).decode(),
        }
        async for event_data in stream:
            yield {'event': event_data['event_type'], 'data': orjson.dumps(event_data).decode()}
    except anyio.get_cancelled_exc_class():
        Logger.base.info(f'🔌 [SSE] {user_id} disconnected from session={session_id}')
        raise
    finally:
        with anyio.CancelScope(shield=True):
            await hub.leave(session_id=session_id, user_id=user_id, stream=stream)


@router.get('/{session_id}/sse', status_code=status.HTTP_200_OK)
@Logger.io
async def stream_session(
    session_id: UtilsUUID7,
    current_principal: Principal = Depends(get_current_principal),
) -> EventSourceResponse:
    """
    SSE live channel of one conversation

    Architecture: PresenceHub -> InMemoryEventBroadcaster -> SSE Endpoint -> Client
    Events: message_received, typing_start, typing_stop, presence_changed,
    read_receipt, session_expired
    """
    hub = container.presence_hub()
    stream = await hub.join(session_id=session_id, user_id=current_principal.id)
    Logger.base.info(f'📡 [SSE] {current_principal.id} joined session={session_id}')

    return EventSourceResponse(
        session_event_stream(
            hub=hub, session_id=session_id, user_id=current_principal.id, stream=stream
        )
    )
