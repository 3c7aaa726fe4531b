"""
Unit tests for the SSE generators behind the live channels

Each generator opens with a `connected` frame and releases its subscription when
the client goes away.
"""

import orjson
import pytest
import uuid_utils

from src.service.conversation.domain.entity.session_entity import ConversationSession
from src.service.conversation.domain.value_object.session_key import SessionKey
from src.service.conversation.driving_adapter.http_controller.conversation_controller import (
    session_event_stream,
)
from src.service.lease.driven_adapter.event.lease_event_publisher_impl import product_topic
from src.service.lease.driving_adapter.http_controller.lease_controller import lease_event_stream


pytestmark = pytest.mark.unit

BUYER_ID = '65f1c2a9e4b0a1b2c3d4e501'
SELLER_ID = '65f1c2a9e4b0a1b2c3d4e502'
PRODUCT_ID = '65f1c2a9e4b0a1b2c3d4f001'


class TestSessionEventStream:
    async def test_connected_frame_then_live_events_then_leave(
        self, presence_hub, session_store, fake_clock
    ):
        key = SessionKey.of(BUYER_ID, SELLER_ID)
        session, _ = await session_store.get_or_create(
            key=key,
            factory=lambda: ConversationSession.create(
                id=uuid_utils.uuid7(),
                key=key,
                initiator_id=BUYER_ID,
                now=fake_clock.now(),
                retention_days=7,
            ),
            caller_id=BUYER_ID,
        )
        stream = await presence_hub.join(session_id=session.id, user_id=SELLER_ID)
        frames = session_event_stream(
            hub=presence_hub, session_id=session.id, user_id=SELLER_ID, stream=stream
        )

        connected = await frames.__anext__()
        assert connected['event'] == 'connected'
        assert orjson.loads(connected['data'])['online'] == {SELLER_ID: True}

        await presence_hub.publish_typing(session_id=session.id, user_id=BUYER_ID)
        frame = await frames.__anext__()
        assert frame['event'] == 'typing_start'
        assert orjson.loads(frame['data'])['data'] == {'user_id': BUYER_ID}

        await frames.aclose()
        assert presence_hub.room_members(session.id) == set()
        assert not presence_hub.is_online(SELLER_ID)


class TestLeaseEventStream:
    async def test_snapshot_then_transitions_then_unsubscribe(self, broadcaster):
        topic = product_topic(PRODUCT_ID)
        stream = await broadcaster.subscribe(topic=topic, subscriber_id=BUYER_ID)
        frames = lease_event_stream(
            broadcaster=broadcaster, product_id=PRODUCT_ID, stream=stream, snapshot=None
        )

        connected = await frames.__anext__()
        assert connected['event'] == 'connected'
        assert orjson.loads(connected['data']) == {'product_id': PRODUCT_ID, 'lease': None}

        await broadcaster.broadcast(
            topic=topic, event_data={'event_type': 'lease_created', 'product_id': PRODUCT_ID}
        )
        frame = await frames.__anext__()
        assert frame['event'] == 'lease_created'

        await frames.aclose()
        assert broadcaster.subscriber_ids(topic=topic) == set()
