"""
In-memory Event Broadcaster Interface

Topic-based pub/sub used to push live events (lease transitions, chat room events)
to SSE endpoints within the same process.
"""

from collections.abc import Collection
from typing import Protocol

from anyio.streams.memory import MemoryObjectReceiveStream


class IInMemoryEventBroadcaster(Protocol):
    async def subscribe(
        self, *, topic: str, subscriber_id: str = ''
    ) -> MemoryObjectReceiveStream[dict]:
        """
        Register a new subscription on `topic`

        Args:
            topic: Topic name, e.g. 'product:<id>' or 'session:<id>'
            subscriber_id: Identity of the subscriber (used for exclusion on broadcast)

        Returns:
            MemoryObjectReceiveStream that will receive event dictionaries
        """
        ...

    async def broadcast(
        self, *, topic: str, event_data: dict, exclude: Collection[str] = ()
    ) -> set[str]:
        """
        Broadcast event to all subscribers of `topic`

        Returns:
            Subscriber ids that accepted the event

        Note:
            - Silently ignores topics without subscribers
            - Drops the event for a subscriber whose stream is full (never blocks)
        """
        ...

    async def unsubscribe(self, *, topic: str, stream: MemoryObjectReceiveStream[dict]) -> bool:
        """
        Remove the subscription owning `stream` and close it

        Returns:
            True if a subscription was removed; calling again is a no-op returning False
        """
        ...

    def subscriber_ids(self, *, topic: str) -> set[str]: ...
