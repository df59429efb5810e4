from __future__ import annotations

import json

import pytest

from chat_sync.domain.events.transport import ConversationAdded, MessageReceived, TypingChanged
from chat_sync.domain.value_objects.enums import ConversationType, MediaKind
from chat_sync.infrastructure.ws import protocol


def _frame(event_type: str, data: dict) -> str:
    return json.dumps({"type": event_type, "data": data})


MESSAGE_PAYLOAD = {
    "messageId": 42,
    "conversationId": 5,
    "senderId": 999,
    "content": "hi",
    "createdAt": "2024-05-01T12:00:00Z",
    "sender": {"userId": 999, "firstName": "Ada", "lastName": "L"},
    "media": [
        {"messageMediaId": 1, "mediaUrl": "https://cdn.test/a.png", "mediaTypeId": 1},
        {"url": "https://cdn.test/b.pdf", "mediaTypeId": 7},
    ],
}


def test_encode_wraps_payload_in_envelope():
    raw = protocol.encode("join-room", {"conversationId": 5})

    assert json.loads(raw) == {"type": "join-room", "data": {"conversationId": 5}}


def test_decode_new_message():
    event = protocol.decode(_frame("newMessage", MESSAGE_PAYLOAD))

    assert isinstance(event, MessageReceived)
    msg = event.message
    assert (msg.id, msg.conversation_id, msg.sender_id, msg.content) == (42, 5, 999, "hi")
    assert msg.created_at.tzinfo is not None
    assert msg.sender.first_name == "Ada"
    assert [m.url for m in msg.media] == ["https://cdn.test/a.png", "https://cdn.test/b.pdf"]
    assert [m.kind for m in msg.media] == [MediaKind.IMAGE, MediaKind.FILE]
    assert msg.has_attachments


def test_decode_naive_timestamp_is_treated_as_utc():
    payload = dict(MESSAGE_PAYLOAD, createdAt="2024-05-01T12:00:00", media=None)

    event = protocol.decode(_frame("newMessage", payload))

    assert event.message.created_at.utcoffset().total_seconds() == 0
    assert event.message.media == ()


def test_decode_typing():
    event = protocol.decode(
        _frame("typing", {"conversationId": 5, "userId": 7, "userName": "Bo", "isTyping": True})
    )

    assert event == TypingChanged(conversation_id=5, user_id=7, user_name="Bo", is_typing=True)


def test_decode_new_conversation_nested_or_bare():
    conv = {
        "conversationId": 9,
        "type": "group",
        "name": "Volunteers",
        "members": [{"user": {"userId": 1}}, {"user": {"userId": 2}}],
        "updatedAt": "2024-05-01T12:00:00Z",
    }

    nested = protocol.decode(_frame("newConversation", {"conversation": conv}))
    bare = protocol.decode(_frame("newConversation", conv))

    assert isinstance(nested, ConversationAdded)
    assert nested == bare
    assert nested.conversation.type == ConversationType.GROUP
    assert nested.conversation.member_ids == {1, 2}


@pytest.mark.parametrize("event_type", ["pong", "error", "somethingElse"])
def test_frames_without_subscriber_event_return_none(event_type):
    assert protocol.decode(_frame(event_type, {"message": "x"})) is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"data": {}}),
        _frame("typing", {"conversationId": 5}),
        _frame("newMessage", {"messageId": "abc"}),
    ],
)
def test_malformed_frames_raise(raw):
    with pytest.raises(protocol.MalformedFrame):
        protocol.decode(raw)
