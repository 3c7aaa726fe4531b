"""
Presence & Delivery Hub (in-process)

Rooms are broadcaster topics `session:{id}`; each live connection is one
subscription tagged with its user id, so a user may hold several connections
(tabs/devices) to the same room.

Presence is per user: online while at least one connection exists anywhere.
Typing is debounced per (session, user): the first signal broadcasts typing_start
and arms a timer; further signals re-arm it; the timer firing, an explicit stop,
or a message from that user ends it. Timers run in the lifespan task group; with
no group attached typing still starts and stops, it just never auto-stops.
"""

from datetime import datetime
from typing import Any, Optional

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream
from uuid_utils import UUID

from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.hold_chat_metrics import metrics
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.conversation.domain.entity.message_entity import Message
from src.service.conversation.domain.enum.live_event_type import LiveEventType
from src.service.shared_kernel.app.interface.i_clock import IClock


def session_topic(session_id: UUID) -> str:
    return f'session:{session_id}'


def message_payload(message: Message) -> dict[str, Any]:
    return {
        'id': str(message.id),
        'session_id': str(message.session_id),
        'sender_id': message.sender_id,
        'sender_name': message.sender_name,
        'receiver_id': message.receiver_id,
        'body': message.body,
        'created_at': message.created_at.isoformat(),
        'delivered': message.delivered,
        'read': message.read,
    }


class PresenceHubImpl(IPresenceHub):
    def __init__(
        self,
        *,
        broadcaster: InMemoryEventBroadcasterImpl,
        session_store: ISessionStore,
        clock: IClock,
        typing_timeout_seconds: float = 5.0,
    ) -> None:
        self._broadcaster = broadcaster
        self._session_store = session_store
        self._clock = clock
        self._typing_timeout_seconds = typing_timeout_seconds
        # user_id -> {session_id: open connections}
        self._connections: dict[str, dict[UUID, list[MemoryObjectReceiveStream[dict]]]] = {}
        self._task_group: Optional[TaskGroup] = None
        self._typing_timers: dict[tuple[UUID, str], anyio.CancelScope] = {}

    def attach(self, task_group: TaskGroup) -> None:
        self._task_group = task_group
        Logger.base.info('⌨️ [HUB] Typing timers attached to lifespan task group')

    def detach(self) -> None:
        for scope in self._typing_timers.values():
            scope.cancel()
        self._typing_timers.clear()
        self._task_group = None

    # ============================ Membership ============================

    @Logger.io
    async def join(self, *, session_id: UUID, user_id: str) -> MemoryObjectReceiveStream[dict]:
        session = await self._session_store.get(session_id=session_id)
        if session is None:
            raise NotFoundError('Conversation not found')
        session.ensure_participant(user_id)

        came_online = not self.is_online(user_id)
        stream = await self._broadcaster.subscribe(
            topic=session_topic(session_id), subscriber_id=user_id
        )
        self._connections.setdefault(user_id, {}).setdefault(session_id, []).append(stream)
        metrics.live_connections.inc()

        Logger.base.info(f'🚪 [HUB] {user_id} joined {session_id} (online_before={not came_online})')
        if came_online:
            await self.publish_presence(user_id=user_id, is_online=True)
        else:
            # Already online elsewhere: only this room is missing the news
            await self._broadcast(
                session_id=session_id,
                event_type=LiveEventType.PRESENCE_CHANGED,
                data={'user_id': user_id, 'is_online': True},
                exclude={user_id},
            )
        return stream

    async def leave(
        self,
        *,
        session_id: UUID,
        user_id: str,
        stream: MemoryObjectReceiveStream[dict] | None = None,
    ) -> None:
        rooms = self._connections.get(user_id)
        if not rooms or session_id not in rooms:
            return

        streams = rooms[session_id]
        targets = [s for s in streams if s is stream] if stream is not None else list(streams)
        if not targets:
            return

        for target in targets:
            streams.remove(target)
            await self._broadcaster.unsubscribe(topic=session_topic(session_id), stream=target)
            metrics.live_connections.dec()

        if streams:
            return

        # Last connection of this user to the room
        del rooms[session_id]
        await self._stop_typing_timer(session_id=session_id, user_id=user_id, announce=True)
        Logger.base.info(f'🚪 [HUB] {user_id} left {session_id}')

        if not rooms:
            del self._connections[user_id]
            # Tell the room just left too, the user is no longer in any room
            await self._broadcast(
                session_id=session_id,
                event_type=LiveEventType.PRESENCE_CHANGED,
                data={'user_id': user_id, 'is_online': False},
                exclude={user_id},
            )

    def is_online(self, user_id: str) -> bool:
        return bool(self._connections.get(user_id))

    def room_members(self, session_id: UUID) -> set[str]:
        return self._broadcaster.subscriber_ids(topic=session_topic(session_id))

    # ============================ Fan-out ============================

    @Logger.io
    async def publish_message(self, *, session_id: UUID, message: Message) -> bool:
        # A message supersedes the sender's typing indicator
        await self._stop_typing_timer(session_id=session_id, user_id=message.sender_id, announce=False)

        delivered_to = await self._broadcast(
            session_id=session_id,
            event_type=LiveEventType.MESSAGE_RECEIVED,
            data=message_payload(message),
            exclude={message.sender_id},
        )
        return message.receiver_id in delivered_to

    async def publish_typing(self, *, session_id: UUID, user_id: str) -> None:
        key = (session_id, user_id)
        timer = self._typing_timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        else:
            await self._broadcast(
                session_id=session_id,
                event_type=LiveEventType.TYPING_START,
                data={'user_id': user_id},
                exclude={user_id},
            )

        scope = anyio.CancelScope()
        self._typing_timers[key] = scope
        if self._task_group is not None:
            self._task_group.start_soon(self._expire_typing, key, scope, name=f'typing:{user_id}')

    async def publish_stop_typing(self, *, session_id: UUID, user_id: str) -> None:
        await self._stop_typing_timer(session_id=session_id, user_id=user_id, announce=True)

    async def publish_presence(self, *, user_id: str, is_online: bool) -> None:
        for session_id in list(self._connections.get(user_id, {})):
            await self._broadcast(
                session_id=session_id,
                event_type=LiveEventType.PRESENCE_CHANGED,
                data={'user_id': user_id, 'is_online': is_online},
                exclude={user_id},
            )

    async def publish_read_receipt(
        self, *, session_id: UUID, reader_id: str, message_ids: list[UUID], read_at: datetime
    ) -> None:
        await self._broadcast(
            session_id=session_id,
            event_type=LiveEventType.READ_RECEIPT,
            data={
                'reader_id': reader_id,
                'message_ids': [str(message_id) for message_id in message_ids],
                'read_at': read_at.isoformat(),
            },
            exclude={reader_id},
        )

    async def publish_session_expired(self, *, session_id: UUID) -> None:
        await self._broadcast(
            session_id=session_id,
            event_type=LiveEventType.SESSION_EXPIRED,
            data={'read_only': True},
        )

    # ============================ Internals ============================

    async def _broadcast(
        self,
        *,
        session_id: UUID,
        event_type: LiveEventType,
        data: dict[str, Any],
        exclude: set[str] | None = None,
    ) -> set[str]:
        envelope = {
            'event_type': event_type.value,
            'session_id': str(session_id),
            'data': data,
            'emitted_at': self._clock.now().isoformat(),
        }
        return await self._broadcaster.broadcast(
            topic=session_topic(session_id), event_data=envelope, exclude=exclude or ()
        )

    async def _expire_typing(self, key: tuple[UUID, str], scope: anyio.CancelScope) -> None:
        session_id, user_id = key
        with scope:
            await anyio.sleep(self._typing_timeout_seconds)
            if self._typing_timers.get(key) is scope:
                del self._typing_timers[key]
            try:
                await self._broadcast(
                    session_id=session_id,
                    event_type=LiveEventType.TYPING_STOP,
                    data={'user_id': user_id},
                    exclude={user_id},
                )
            except Exception as e:
                Logger.base.warning(f'⚠️ [HUB] typing_stop for {user_id} in {session_id} failed: {e}')

    async def _stop_typing_timer(self, *, session_id: UUID, user_id: str, announce: bool) -> None:
        timer = self._typing_timers.pop((session_id, user_id), None)
        if timer is None:
            return
        timer.cancel()
        if announce:
            await self._broadcast(
                session_id=session_id,
                event_type=LiveEventType.TYPING_STOP,
                data={'user_id': user_id},
                exclude={user_id},
            )
