"""
In-memory Event Broadcaster Implementation

Singleton broadcaster for distributing live events from use cases to SSE endpoints.
"""

from collections.abc import Collection
from typing import Dict, List

from anyio import BrokenResourceError, ClosedResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
import attrs

from src.platform.logging.loguru_io import Logger
from src.platform.metrics.hold_chat_metrics import metrics


@attrs.define
class _Subscription:
    subscriber_id: str
    send_stream: MemoryObjectSendStream[dict]
    receive_stream: MemoryObjectReceiveStream[dict]


class InMemoryEventBroadcasterImpl:
    """
    In-memory pub/sub keyed by topic

    Architecture:
    - Use Case -> broadcast() -> subscriber streams -> SSE endpoint
    - Each topic has a list of subscriptions, each tagged with the subscriber identity
    - Auto-cleanup of empty topics

    Memory Management:
    - Per-subscription buffer: `buffer_size` events
    - Drop policy: drop for that subscriber if its stream is full (send_nowait raises WouldBlock)
    - Cleanup: remove empty topics on unsubscribe and close streams
    """

    def __init__(self, *, buffer_size: int = 100) -> None:
        self._buffer_size = buffer_size
        self._subscribers: Dict[str, List[_Subscription]] = {}

    async def subscribe(
        self, *, topic: str, subscriber_id: str = ''
    ) -> MemoryObjectReceiveStream[dict]:
        send_stream, receive_stream = create_memory_object_stream[dict](
            max_buffer_size=self._buffer_size
        )
        self._subscribers.setdefault(topic, []).append(
            _Subscription(
                subscriber_id=subscriber_id,
                send_stream=send_stream,
                receive_stream=receive_stream,
            )
        )

        Logger.base.debug(
            f'📡 [BROADCASTER] {subscriber_id or "anonymous"} subscribed to {topic} '
            f'(total subscribers: {len(self._subscribers[topic])})'
        )
        return receive_stream

    async def broadcast(
        self, *, topic: str, event_data: dict, exclude: Collection[str] = ()
    ) -> set[str]:
        subscriptions = self._subscribers.get(topic)
        if not subscriptions:
            Logger.base.debug(f'📡 [BROADCASTER] No subscribers for {topic}')
            return set()

        event_type = str(event_data.get('event_type', 'unknown'))
        delivered_to: set[str] = set()
        dropped = 0

        for subscription in list(subscriptions):
            if subscription.subscriber_id and subscription.subscriber_id in exclude:
                continue
            try:
                subscription.send_stream.send_nowait(event_data)
                delivered_to.add(subscription.subscriber_id)
            except WouldBlock:
                # Slow consumer, it will catch up from history
                dropped += 1
                Logger.base.warning(
                    f'⚠️ [BROADCASTER] Stream full on {topic} for '
                    f'{subscription.subscriber_id or "anonymous"}, dropping {event_type}'
                )
            except (BrokenResourceError, ClosedResourceError):
                dropped += 1

        metrics.record_live_event(event_type=event_type, delivered=len(delivered_to), dropped=dropped)
        Logger.base.info(
            f'📡 [BROADCASTER] {event_type} on {topic}: '
            f'delivered={len(delivered_to)}, dropped={dropped}'
        )
        return delivered_to

    async def unsubscribe(self, *, topic: str, stream: MemoryObjectReceiveStream[dict]) -> bool:
        subscriptions = self._subscribers.get(topic)
        if not subscriptions:
            return False

        removed = False
        for i, subscription in enumerate(subscriptions):
            if subscription.receive_stream is stream:
                await subscription.send_stream.aclose()
                await subscription.receive_stream.aclose()
                subscriptions.pop(i)
                removed = True
                Logger.base.debug(
                    f'📡 [BROADCASTER] Unsubscribed from {topic} (remaining: {len(subscriptions)})'
                )
                break

        if not subscriptions:
            del self._subscribers[topic]
            Logger.base.debug(f'📡 [BROADCASTER] Cleaned up empty topic {topic}')
        return removed

    def subscriber_ids(self, *, topic: str) -> set[str]:
        return {s.subscriber_id for s in self._subscribers.get(topic, []) if s.subscriber_id}
