"""Tests for the Socket.io chat relay."""

from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, cast

import pytest
import socketio
from jose import jwt

import propertyxchange.realtime.chat_handler as handler_module
from propertyxchange.config import get_settings
from propertyxchange.errors import BadRequestError
from propertyxchange.realtime.chat_handler import ChatRelay
from propertyxchange.services.chat_service import DeliveredMessage
from tests.factories import AGENT_ID, CONVERSATION_ID, USER_ID, make_user

SID = "sid-1"
CONVERSATION_ROOM = f"conversation_{CONVERSATION_ID}"


class FakeServer:
    """Records what the relay asks Socket.io to do."""

    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}
        self.emitted: list[dict[str, Any]] = []
        self.sessions: dict[str, dict[str, Any]] = {}
        self.joined: dict[str, set[str]] = defaultdict(set)

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def emit(
        self,
        event: str,
        data: Any = None,
        to: str | None = None,
        room: str | None = None,
        skip_sid: str | None = None,
    ) -> None:
        self.emitted.append(
            {"event": event, "data": data, "target": to or room, "skip_sid": skip_sid}
        )

    async def enter_room(self, sid: str, room: str) -> None:
        self.joined[sid].add(room)

    async def save_session(self, sid: str, session: dict[str, Any]) -> None:
        self.sessions[sid] = session

    async def get_session(self, sid: str) -> dict[str, Any]:
        return self.sessions[sid]

    def rooms(self, sid: str) -> list[str]:
        return [sid, *self.joined[sid]]

    def events(self, name: str) -> list[dict[str, Any]]:
        return [item for item in self.emitted if item["event"] == name]


@asynccontextmanager
async def _fake_session() -> AsyncIterator[object]:
    yield object()


def _relay(server: FakeServer) -> ChatRelay:
    return ChatRelay(cast(socketio.AsyncServer, server), session_factory=_fake_session)


def _token(user_id: str = USER_ID) -> str:
    settings = get_settings()
    return jwt.encode(
        {"id": user_id, "role": "USER"},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def _connected_server() -> FakeServer:
    server = FakeServer()
    server.sessions[SID] = {"id": USER_ID, "username": "ada", "role": "USER"}
    return server


def test_register_binds_every_chat_event() -> None:
    server = FakeServer()

    _relay(server).register()

    assert set(server.handlers) == {
        "connect",
        "join_conversation",
        "send_message",
        "start_conversation",
        "mark_messages_read",
        "typing_start",
        "typing_stop",
        "disconnect",
    }


@pytest.mark.anyio
async def test_connect_without_token_is_refused() -> None:
    with pytest.raises(handler_module.HandshakeRefused):
        await _relay(FakeServer()).connect(SID, {}, None)


@pytest.mark.anyio
async def test_connect_with_bad_token_is_refused() -> None:
    with pytest.raises(handler_module.HandshakeRefused):
        await _relay(FakeServer()).connect(SID, {}, {"token": "not-a-jwt"})


@pytest.mark.anyio
async def test_connect_for_suspended_user_is_refused(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_user(_session: object, _user_id: str) -> object:
        return make_user(status="SUSPENDED")

    monkeypatch.setattr(handler_module, "fetch_user_by_id", fake_user)

    with pytest.raises(handler_module.HandshakeRefused):
        await _relay(FakeServer()).connect(SID, {}, {"token": _token()})


@pytest.mark.anyio
async def test_connect_joins_personal_room(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_user(_session: object, user_id: str) -> object:
        assert user_id == USER_ID
        return make_user()

    monkeypatch.setattr(handler_module, "fetch_user_by_id", fake_user)
    server = FakeServer()

    await _relay(server).connect(
        SID, {"HTTP_AUTHORIZATION": f"Bearer {_token()}"}, None
    )

    assert server.sessions[SID]["username"] == "ada"
    assert server.sessions[SID]["role"] == "USER"
    assert f"user_{USER_ID}" in server.joined[SID]


@pytest.mark.anyio
async def test_join_conversation_checks_participation(monkeypatch: pytest.MonkeyPatch) -> None:
    allowed = {"value": False}

    async def fake_is_participant(_self: object, conversation_id: str, user_id: str) -> bool:
        assert (conversation_id, user_id) == (CONVERSATION_ID, USER_ID)
        return allowed["value"]

    monkeypatch.setattr(handler_module.ChatService, "is_participant", fake_is_participant)
    server = _connected_server()
    relay = _relay(server)

    await relay.join_conversation(SID, CONVERSATION_ID)
    assert server.events("error")[0]["data"] == "Unauthorized to join this conversation"
    assert CONVERSATION_ROOM not in server.joined[SID]

    allowed["value"] = True
    await relay.join_conversation(SID, {"conversationId": CONVERSATION_ID})
    assert CONVERSATION_ROOM in server.joined[SID]
    assert server.events("joined_conversation")[0]["data"] == CONVERSATION_ID


@pytest.mark.anyio
async def test_send_message_fans_out_to_room_and_recipients(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    message = {"id": "m1", "content": "Hello", "sender": {"id": USER_ID}}

    async def fake_send(_self: object, **kwargs: Any) -> DeliveredMessage:
        assert kwargs["conversation_id"] == CONVERSATION_ID
        assert kwargs["content"] == "Hello"
        assert kwargs["message_type"] == "TEXT"
        return DeliveredMessage(message=message, recipients=[AGENT_ID])

    monkeypatch.setattr(handler_module.ChatService, "send_message", fake_send)
    server = _connected_server()

    await _relay(server).send_message(
        SID, {"conversationId": CONVERSATION_ID, "content": "Hello"}
    )

    assert server.events("new_message") == [
        {"event": "new_message", "data": message, "target": CONVERSATION_ROOM, "skip_sid": None}
    ]
    alert = server.events("message_notification")[0]
    assert alert["target"] == f"user_{AGENT_ID}"
    assert alert["data"]["conversationId"] == CONVERSATION_ID
    assert alert["data"]["sender"]["username"] == "ada"


@pytest.mark.anyio
async def test_send_message_outside_conversation_emits_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_send(_self: object, **_kwargs: Any) -> None:
        return None

    monkeypatch.setattr(handler_module.ChatService, "send_message", fake_send)
    server = _connected_server()
    relay = _relay(server)

    await relay.send_message(SID, {"conversationId": CONVERSATION_ID, "content": "Hi"})
    await relay.send_message(SID, {"content": "no conversation"})

    assert [item["data"] for item in server.events("error")] == [
        "Conversation not found or unauthorized",
        "Conversation not found or unauthorized",
    ]
    assert server.events("new_message") == []


@pytest.mark.anyio
async def test_send_message_reports_validation_and_unexpected_errors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    failures: list[Exception] = [
        BadRequestError("Message content is required"),
        RuntimeError("boom"),
    ]

    async def fake_send(_self: object, **_kwargs: Any) -> None:
        raise failures.pop(0)

    monkeypatch.setattr(handler_module.ChatService, "send_message", fake_send)
    server = _connected_server()
    relay = _relay(server)

    await relay.send_message(SID, {"conversationId": CONVERSATION_ID, "content": ""})
    await relay.send_message(SID, {"conversationId": CONVERSATION_ID, "content": "x"})

    assert [item["data"] for item in server.events("error")] == [
        "Message content is required",
        "Failed to send message",
    ]


@pytest.mark.anyio
async def test_start_conversation_joins_room_and_acknowledges(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_start(_self: object, user_id: str, recipient_id: str | None) -> dict[str, object]:
        assert (user_id, recipient_id) == (USER_ID, AGENT_ID)
        return {"id": CONVERSATION_ID, "participants": [USER_ID, AGENT_ID]}

    monkeypatch.setattr(handler_module.ChatService, "start_conversation", fake_start)
    server = _connected_server()

    await _relay(server).start_conversation(SID, {"recipientId": AGENT_ID})

    assert CONVERSATION_ROOM in server.joined[SID]
    assert server.events("conversation_started")[0]["data"]["id"] == CONVERSATION_ID


@pytest.mark.anyio
async def test_mark_messages_read_notifies_room_except_reader(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def fake_mark(_self: object, _conversation_id: str, _reader_id: str) -> int:
        return 2

    monkeypatch.setattr(handler_module.ChatService, "mark_read", fake_mark)
    server = _connected_server()

    await _relay(server).mark_messages_read(SID, CONVERSATION_ID)

    assert server.events("messages_read") == [
        {
            "event": "messages_read",
            "data": {"conversationId": CONVERSATION_ID, "readBy": USER_ID},
            "target": CONVERSATION_ROOM,
            "skip_sid": SID,
        }
    ]


@pytest.mark.anyio
async def test_typing_events_only_relay_for_joined_rooms() -> None:
    server = _connected_server()
    relay = _relay(server)

    await relay.typing_start(SID, CONVERSATION_ID)
    assert server.emitted == []

    server.joined[SID].add(CONVERSATION_ROOM)
    await relay.typing_start(SID, CONVERSATION_ID)
    await relay.typing_stop(SID, {"conversationId": CONVERSATION_ID})

    assert server.events("user_typing")[0]["data"] == {"userId": USER_ID, "username": "ada"}
    assert server.events("user_typing")[0]["skip_sid"] == SID
    assert server.events("user_stopped_typing")[0]["data"] == {"userId": USER_ID}
