from __future__ import annotations

import pytest

from chat_client.application.exceptions import NotConnected
from chat_client.domain.value_objects.enums import MessageKind, MessageType
from chat_client.services.message_feed import should_auto_scroll
from tests.conftest import enter_room, make_entity, make_message


@pytest.mark.parametrize(
    "users_typing, appended, expected",
    [
        ((), False, True),
        ((), True, True),
        (("Bob",), True, True),
        (("Bob",), False, False),
    ],
)
def test_auto_scroll_policy(users_typing, appended, expected):
    assert should_auto_scroll(users_typing, appended) is expected


def test_append_preserves_call_order(chat):
    bodies = ["first", "second", "third", "fourth"]
    for i, body in enumerate(bodies):
        # Timestamps deliberately out of order: arrival order wins.
        chat.feed.append_incoming(make_entity(body=body, timestamp=1000 - i))

    assert [m.body for m in chat.feed.messages] == bodies


@pytest.mark.asyncio
async def test_own_message_scenario(chat, factory, scrolls):
    await enter_room(chat, factory, nickname="Alice", room_id="R1")

    factory.current.deliver(
        MessageType.SEND_MESSAGE,
        make_message(nickname="Alice", body="hi", timestamp=1000),
    )

    view = chat.view()
    assert len(view.messages) == 1
    assert view.messages[0].kind == MessageKind.OWN
    assert view.messages[0].body == "hi"
    assert scrolls == [1]


@pytest.mark.asyncio
async def test_classification_other_and_system(chat, factory):
    await enter_room(chat, factory, nickname="Alice")

    factory.current.deliver(MessageType.SEND_MESSAGE, make_message(nickname="Bob"))
    factory.current.deliver(
        MessageType.SEND_MESSAGE,
        make_message(nickname="Alice", body="Alice joined the party", system=True),
    )

    assert [m.kind for m in chat.view().messages] == [MessageKind.OTHER, MessageKind.SYSTEM]


@pytest.mark.asyncio
async def test_typing_only_change_does_not_scroll_while_someone_types(chat, factory, scrolls):
    await enter_room(chat, factory)

    factory.current.deliver(MessageType.SET_TYPING_PRESENCE, {"usersTyping": ["Bob"]})
    assert scrolls == []

    factory.current.deliver(MessageType.SEND_MESSAGE, make_message(nickname="Bob"))
    assert scrolls == [1]

    factory.current.deliver(MessageType.SET_TYPING_PRESENCE, {"usersTyping": []})
    assert scrolls == [1, 1]


@pytest.mark.asyncio
async def test_send_outgoing_transmits_message_then_typing_false(chat, factory):
    await enter_room(chat, factory)
    chat.input_changed("hello there")

    assert chat.send() is True

    assert factory.current.sent[-2:] == [
        (MessageType.SEND_MESSAGE, {"body": "hello there"}),
        (MessageType.SET_TYPING_PRESENCE, {"typing": False}),
    ]
    assert chat.session.draft == ""
    # The echo comes back from the server; nothing is appended locally.
    assert chat.feed.messages == []


@pytest.mark.asyncio
async def test_send_whitespace_body_is_a_noop(chat, factory):
    await enter_room(chat, factory)
    factory.current.deliver(MessageType.SET_TYPING_PRESENCE, {"usersTyping": ["Bob"]})
    before = list(factory.current.sent)

    assert chat.feed.send_outgoing("   \n\t") is False

    assert factory.current.sent == before
    assert chat.feed.messages == []
    assert chat.typing.users_typing == ("Bob",)


@pytest.mark.asyncio
async def test_send_after_transport_closed_is_rejected(chat, factory):
    await enter_room(chat, factory)
    factory.current.deliver(MessageType.SEND_MESSAGE, make_message())
    sent_before = list(factory.current.sent)

    factory.current.close()

    with pytest.raises(NotConnected):
        chat.feed.send_outgoing("are you there?")
    assert len(chat.feed.messages) == 1
    assert factory.current.sent == sent_before


def test_send_outside_room_is_rejected(chat, factory):
    factory.current.ready()

    with pytest.raises(NotConnected):
        chat.feed.send_outgoing("hello")
    assert factory.current.sent == []
