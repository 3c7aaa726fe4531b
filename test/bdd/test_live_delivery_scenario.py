"""
BDD steps for live delivery and catch-up

Live channels are hub connections (what the SSE endpoint holds open); history is the
session store read the REST endpoint serves.
"""

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from src.platform.state.entity_lock import EntityLockRegistry
from src.service.conversation.app.command.create_or_get_session_use_case import (
    CreateOrGetSessionUseCase,
)
from src.service.conversation.app.command.post_message_use_case import PostMessageUseCase
from src.service.conversation.app.query.list_messages_use_case import ListMessagesUseCase


pytestmark = [pytest.mark.integration, pytest.mark.smoke]

scenarios('live_delivery.feature')

BUYER_ID = '65f1c2a9e4b0a1b2c3d4e501'
SELLER_ID = '65f1c2a9e4b0a1b2c3d4e502'


def _drain(stream) -> list[dict]:
    events = []
    while stream.statistics().current_buffer_used:
        events.append(stream.receive_nowait())
    return events


def _bodies(events: list[dict]) -> list[str]:
    return [e['data']['body'] for e in events if e['event_type'] == 'message_received']


@pytest.fixture
def post_message(session_store, presence_hub, fake_clock) -> PostMessageUseCase:
    return PostMessageUseCase(
        session_store=session_store,
        presence_hub=presence_hub,
        delivery_locks=EntityLockRegistry(name='session delivery', timeout_seconds=1.0),
        clock=fake_clock,
    )


# =============================================================================
# Given
# =============================================================================
@given('a conversation between the buyer and the seller')
def conversation(session_store, presence_hub, catalog, fake_clock, run_async, context):
    use_case = CreateOrGetSessionUseCase(
        session_store=session_store,
        presence_hub=presence_hub,
        catalog_query_handler=catalog,
        clock=fake_clock,
    )
    view, _ = run_async(use_case.execute(initiator_id=BUYER_ID, counterparty_id=SELLER_ID))
    context['session_id'] = view.session.id


@given('the seller is connected to the live channel')
def seller_connects(presence_hub, run_async, context):
    context['seller_stream'] = run_async(
        presence_hub.join(session_id=context['session_id'], user_id=SELLER_ID)
    )


# =============================================================================
# When
# =============================================================================
@when(parsers.parse('the buyer sends "{body}"'))
def buyer_sends(post_message, run_async, context, body):
    run_async(post_message.execute(session_id=context['session_id'], sender_id=BUYER_ID, body=body))


@when('the seller disconnects')
def seller_disconnects(presence_hub, run_async, context):
    run_async(
        presence_hub.leave(
            session_id=context['session_id'], user_id=SELLER_ID, stream=context['seller_stream']
        )
    )


@when('the seller reconnects and fetches the history')
def seller_reconnects(presence_hub, session_store, run_async, context):
    context['seller_stream'] = run_async(
        presence_hub.join(session_id=context['session_id'], user_id=SELLER_ID)
    )
    context['history'] = run_async(
        ListMessagesUseCase(session_store=session_store).execute(
            session_id=context['session_id'], requester_id=SELLER_ID
        )
    )


# =============================================================================
# Then
# =============================================================================
@then(parsers.parse('the seller\'s live channel receives "{body}"'))
def seller_receives(context, body):
    assert _bodies(_drain(context['seller_stream'])) == [body]


@then(parsers.parse('the history shows "{first}" then "{second}"'))
def history_in_order(context, first, second):
    assert [m.body for m in context['history']] == [first, second]


@then("the seller's new live channel has received no messages")
def nothing_duplicated(context):
    assert _bodies(_drain(context['seller_stream'])) == []
