from datetime import timedelta
from unittest.mock import AsyncMock

import anyio
import pytest
import uuid_utils

from src.platform.exception.exceptions import (
    ForbiddenError,
    GoneError,
    InvalidArgumentError,
    NotFoundError,
)
from src.platform.state.entity_lock import EntityLockRegistry
from src.service.conversation.app.command.create_or_get_session_use_case import (
    CreateOrGetSessionUseCase,
)
from src.service.conversation.app.command.expire_sessions_use_case import ExpireSessionsUseCase
from src.service.conversation.app.command.mark_read_use_case import MarkReadUseCase
from src.service.conversation.app.command.post_message_use_case import PostMessageUseCase
from src.service.conversation.app.command.typing_use_case import TypingUseCase
from src.service.conversation.app.query.get_session_use_case import GetSessionUseCase
from src.service.conversation.app.query.list_messages_use_case import ListMessagesUseCase
from src.service.conversation.app.query.list_sessions_use_case import ListSessionsUseCase
from src.service.conversation.domain.enum.session_state import SessionState


pytestmark = pytest.mark.unit

BUYER_ID = '65f1c2a9e4b0a1b2c3d4e501'
SELLER_ID = '65f1c2a9e4b0a1b2c3d4e502'
OUTSIDER_ID = '65f1c2a9e4b0a1b2c3d4e599'
PRODUCT_ID = '65f1c2a9e4b0a1b2c3d4f001'


@pytest.fixture
def create_session(session_store, presence_hub, catalog, fake_clock) -> CreateOrGetSessionUseCase:
    return CreateOrGetSessionUseCase(
        session_store=session_store,
        presence_hub=presence_hub,
        catalog_query_handler=catalog,
        clock=fake_clock,
    )


@pytest.fixture
def post_message(session_store, presence_hub, fake_clock) -> PostMessageUseCase:
    return PostMessageUseCase(
        session_store=session_store,
        presence_hub=presence_hub,
        delivery_locks=EntityLockRegistry(name='session delivery', timeout_seconds=1.0),
        clock=fake_clock,
    )


@pytest.fixture
async def session_id(create_session):
    view, _ = await create_session.execute(
        initiator_id=BUYER_ID,
        counterparty_id=SELLER_ID,
        product_id=PRODUCT_ID,
        product_title='Vintage road bike',
        initiator_name='Test Buyer',
    )
    return view.session.id


def _drain(stream) -> list[dict]:
    events = []
    while stream.statistics().current_buffer_used:
        events.append(stream.receive_nowait())
    return events


class TestCreateOrGetSession:
    async def test_create_then_get_is_idempotent(self, create_session):
        first, created = await create_session.execute(
            initiator_id=BUYER_ID, counterparty_id=SELLER_ID, product_id=PRODUCT_ID
        )
        second, created_again = await create_session.execute(
            initiator_id=SELLER_ID,
            counterparty_id=BUYER_ID,
            product_id=PRODUCT_ID,
            initiator_name='Test Seller',
        )

        assert (created, created_again) == (True, False)
        assert second.session.id == first.session.id
        assert {p.id: p.name for p in second.participants}[SELLER_ID] == 'Test Seller'

    async def test_view_of_new_session(self, create_session):
        view, _ = await create_session.execute(
            initiator_id=BUYER_ID, counterparty_id=SELLER_ID, product_title='Bike'
        )

        assert view.days_remaining == 7
        assert view.is_expired is False
        assert view.unread_count == 0
        assert view.session.title == 'Bike'
        assert view.session.product_id is None

    async def test_self_conversation_is_rejected(self, create_session):
        with pytest.raises(InvalidArgumentError):
            await create_session.execute(initiator_id=BUYER_ID, counterparty_id=BUYER_ID)

    async def test_unknown_product(self, create_session, catalog):
        catalog.missing.add(PRODUCT_ID)

        with pytest.raises(NotFoundError):
            await create_session.execute(
                initiator_id=BUYER_ID, counterparty_id=SELLER_ID, product_id=PRODUCT_ID
            )


class TestPostMessage:
    async def test_offline_receiver_gets_it_from_history(
        self, post_message, session_store, session_id
    ):
        message = await post_message.execute(
            session_id=session_id, sender_id=BUYER_ID, body='  Is this still available?  '
        )

        assert message.body == 'Is this still available?'
        assert message.receiver_id == SELLER_ID
        assert message.delivered is False
        assert await session_store.list_messages(session_id=session_id) == [message]

    async def test_connected_receiver_marks_delivered(
        self, post_message, presence_hub, session_store, session_id
    ):
        seller_stream = await presence_hub.join(session_id=session_id, user_id=SELLER_ID)
        _drain(seller_stream)

        message = await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='hi')

        assert message.delivered is True
        (event,) = _drain(seller_stream)
        assert event['event_type'] == 'message_received'
        assert event['data']['id'] == str(message.id)
        stored = await session_store.list_messages(session_id=session_id)
        assert stored[0].delivered is True

    async def test_live_order_matches_history_order(
        self, post_message, presence_hub, session_store, session_id
    ):
        seller_stream = await presence_hub.join(session_id=session_id, user_id=SELLER_ID)
        _drain(seller_stream)

        async with anyio.create_task_group() as tg:
            for i in range(10):
                tg.start_soon(
                    lambda n=i: post_message.execute(
                        session_id=session_id, sender_id=BUYER_ID, body=f'message {n}'
                    )
                )

        history = [m.body for m in await session_store.list_messages(session_id=session_id)]
        live = [e['data']['body'] for e in _drain(seller_stream)]
        assert live == history
        assert len(history) == 10

    async def test_empty_body(self, post_message, session_id):
        with pytest.raises(InvalidArgumentError):
            await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='   ')

    async def test_outsider_cannot_post(self, post_message, session_id):
        with pytest.raises(ForbiddenError):
            await post_message.execute(session_id=session_id, sender_id=OUTSIDER_ID, body='hi')

    async def test_unknown_session(self, post_message):
        with pytest.raises(NotFoundError):
            await post_message.execute(session_id=uuid_utils.uuid7(), sender_id=BUYER_ID, body='hi')

    async def test_retention_boundary(self, post_message, fake_clock, session_id):
        fake_clock.advance(timedelta(days=7) - timedelta(seconds=1))
        await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='just in time')

        fake_clock.advance(timedelta(seconds=1))
        with pytest.raises(GoneError):
            await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='too late')

    async def test_fan_out_failure_keeps_the_message(
        self, session_store, fake_clock, session_id
    ):
        broken_hub = AsyncMock()
        broken_hub.publish_message.side_effect = RuntimeError('broadcaster down')
        use_case = PostMessageUseCase(
            session_store=session_store,
            presence_hub=broken_hub,
            delivery_locks=EntityLockRegistry(name='session delivery', timeout_seconds=1.0),
            clock=fake_clock,
        )

        message = await use_case.execute(session_id=session_id, sender_id=BUYER_ID, body='hi')

        assert message.delivered is False
        broken_hub.publish_message.assert_awaited_once()
        assert await session_store.list_messages(session_id=session_id) == [message]


class TestMarkRead:
    async def test_read_receipt_reaches_sender(
        self, post_message, presence_hub, session_store, fake_clock, session_id
    ):
        await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='one')
        await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='two')
        buyer_stream = await presence_hub.join(session_id=session_id, user_id=BUYER_ID)
        _drain(buyer_stream)
        use_case = MarkReadUseCase(
            session_store=session_store, presence_hub=presence_hub, clock=fake_clock
        )

        read_ids = await use_case.execute(session_id=session_id, reader_id=SELLER_ID)

        assert len(read_ids) == 2
        (event,) = _drain(buyer_stream)
        assert event['event_type'] == 'read_receipt'
        assert event['data']['reader_id'] == SELLER_ID
        # Nothing left unread, nothing announced
        assert await use_case.execute(session_id=session_id, reader_id=SELLER_ID) == []
        assert _drain(buyer_stream) == []

    async def test_expired_session_cannot_be_marked_read(
        self, post_message, presence_hub, session_store, fake_clock, session_id
    ):
        await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='hi')
        use_case = MarkReadUseCase(
            session_store=session_store, presence_hub=presence_hub, clock=fake_clock
        )
        fake_clock.advance(timedelta(days=7))

        with pytest.raises(GoneError):
            await use_case.execute(session_id=session_id, reader_id=SELLER_ID)

        session = await session_store.get(session_id=session_id)
        assert session.unread_for(SELLER_ID) == 1
        (message,) = await session_store.list_messages(session_id=session_id)
        assert message.read is False


class TestTypingUseCase:
    async def test_typing_requires_writable_session(
        self, session_store, presence_hub, fake_clock, session_id
    ):
        use_case = TypingUseCase(
            session_store=session_store, presence_hub=presence_hub, clock=fake_clock
        )
        fake_clock.advance(timedelta(days=7))

        with pytest.raises(GoneError):
            await use_case.start(session_id=session_id, user_id=BUYER_ID)
        # Stopping is always allowed
        await use_case.stop(session_id=session_id, user_id=BUYER_ID)

    async def test_outsider_cannot_type(self, session_store, presence_hub, fake_clock, session_id):
        use_case = TypingUseCase(
            session_store=session_store, presence_hub=presence_hub, clock=fake_clock
        )

        with pytest.raises(ForbiddenError):
            await use_case.start(session_id=session_id, user_id=OUTSIDER_ID)


class TestRetentionAndQueries:
    async def test_sweep_makes_session_read_only_and_announces_it(
        self, post_message, session_store, presence_hub, fake_clock, session_id
    ):
        await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='hello')
        seller_stream = await presence_hub.join(session_id=session_id, user_id=SELLER_ID)
        _drain(seller_stream)
        sweep = ExpireSessionsUseCase(
            session_store=session_store, presence_hub=presence_hub, clock=fake_clock
        )

        assert await sweep.execute() == 0
        fake_clock.advance(timedelta(days=7))
        assert await sweep.execute() == 1
        assert await sweep.execute() == 0

        assert (await session_store.get(session_id=session_id)).state is SessionState.READ_ONLY
        assert [e['event_type'] for e in _drain(seller_stream)] == ['session_expired']

        # History stays readable after expiry, the session itself is gone
        messages = await ListMessagesUseCase(session_store=session_store).execute(
            session_id=session_id, requester_id=SELLER_ID
        )
        assert [m.body for m in messages] == ['hello']
        with pytest.raises(GoneError):
            await GetSessionUseCase(
                session_store=session_store, presence_hub=presence_hub, clock=fake_clock
            ).execute(session_id=session_id, requester_id=SELLER_ID)

    async def test_list_sessions_carries_per_viewer_unread(
        self, post_message, session_store, presence_hub, fake_clock, session_id
    ):
        await post_message.execute(session_id=session_id, sender_id=BUYER_ID, body='hello')
        use_case = ListSessionsUseCase(
            session_store=session_store, presence_hub=presence_hub, clock=fake_clock
        )

        (seller_view,) = await use_case.execute(user_id=SELLER_ID)
        (buyer_view,) = await use_case.execute(user_id=BUYER_ID)

        assert seller_view.unread_count == 1
        assert buyer_view.unread_count == 0
        assert seller_view.session.last_message == 'hello'
        assert await use_case.execute(user_id=OUTSIDER_ID) == []

    async def test_outsider_cannot_read_history(self, session_store, session_id):
        with pytest.raises(ForbiddenError):
            await ListMessagesUseCase(session_store=session_store).execute(
                session_id=session_id, requester_id=OUTSIDER_ID
            )
