"""Socket.io event handlers for one-to-one chat."""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

import socketio
from socketio.exceptions import ConnectionRefusedError as HandshakeRefused
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.auth import decode_token, extract_bearer
from propertyxchange.constants import USER_STATUS_ACTIVE
from propertyxchange.db.repositories import fetch_user_by_id
from propertyxchange.db.session import session_context
from propertyxchange.errors import AuthenticationError, PropertyXchangeError
from propertyxchange.services.chat_service import ChatService, sender_summary

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


def conversation_room(conversation_id: str) -> str:
    return f"conversation_{conversation_id}"


def _conversation_id(data: Any) -> str | None:
    """Clients send either the bare id or ``{"conversationId": ...}``."""

    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        value = data.get("conversationId")
        return str(value) if value else None
    return None


def _handshake_token(environ: dict[str, Any], auth: Any) -> str | None:
    if isinstance(auth, dict) and auth.get("token"):
        return str(auth["token"])
    return extract_bearer(environ.get("HTTP_AUTHORIZATION"))


class ChatRelay:
    """Relays chat events between connected participants and persists them."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        session_factory: SessionFactory = session_context,
    ) -> None:
        self._sio = sio
        self._session_factory = session_factory

    def register(self) -> None:
        for event, handler in (
            ("connect", self.connect),
            ("join_conversation", self.join_conversation),
            ("send_message", self.send_message),
            ("start_conversation", self.start_conversation),
            ("mark_messages_read", self.mark_messages_read),
            ("typing_start", self.typing_start),
            ("typing_stop", self.typing_stop),
            ("disconnect", self.disconnect),
        ):
            self._sio.on(event, handler)

    async def _error(self, sid: str, message: str) -> None:
        await self._sio.emit("error", message, to=sid)

    async def connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        """Authenticate the handshake and join the user's personal room."""

        token = _handshake_token(environ, auth)
        if not token:
            raise HandshakeRefused("Authentication error: No token provided")

        try:
            identity = decode_token(token)
        except AuthenticationError as exc:
            raise HandshakeRefused("Authentication error: Invalid token") from exc

        async with self._session_factory() as session:
            user = await fetch_user_by_id(session, identity.id)

        if user is None or user.status != USER_STATUS_ACTIVE:
            raise HandshakeRefused(
                "Authentication error: User not found or inactive"
            )

        await self._sio.save_session(sid, {**sender_summary(user), "role": user.role})
        await self._sio.enter_room(sid, user_room(user.id))
        logger.info("User %s connected (%s)", user.username, sid)

    async def join_conversation(self, sid: str, data: Any) -> None:
        user = await self._sio.get_session(sid)
        conversation_id = _conversation_id(data)
        try:
            allowed = bool(conversation_id) and await self._with_chat(
                lambda chat: chat.is_participant(conversation_id, user["id"])
            )
        except Exception:
            logger.exception("Join conversation failed for %s", user["id"])
            await self._error(sid, "Failed to join conversation")
            return

        if not allowed:
            await self._error(sid, "Unauthorized to join this conversation")
            return

        await self._sio.enter_room(sid, conversation_room(conversation_id))
        await self._sio.emit("joined_conversation", conversation_id, to=sid)

    async def send_message(self, sid: str, data: Any) -> None:
        """Persist a message, fan it out to the room and alert other participants."""

        user = await self._sio.get_session(sid)
        payload = data if isinstance(data, dict) else {}
        conversation_id = _conversation_id(payload)
        if not conversation_id:
            await self._error(sid, "Conversation not found or unauthorized")
            return

        try:
            delivered = await self._with_chat(
                lambda chat: chat.send_message(
                    conversation_id=conversation_id,
                    sender=user,
                    content=str(payload.get("content") or ""),
                    message_type=str(payload.get("messageType") or "TEXT"),
                )
            )
        except PropertyXchangeError as exc:
            await self._error(sid, exc.message)
            return
        except Exception:
            logger.exception("Send message failed in conversation %s", conversation_id)
            await self._error(sid, "Failed to send message")
            return

        if delivered is None:
            await self._error(sid, "Conversation not found or unauthorized")
            return

        await self._sio.emit(
            "new_message", delivered.message, room=conversation_room(conversation_id)
        )
        for participant_id in delivered.recipients:
            await self._sio.emit(
                "message_notification",
                {
                    "conversationId": conversation_id,
                    "message": delivered.message,
                    "sender": user,
                },
                room=user_room(participant_id),
            )

    async def start_conversation(self, sid: str, data: Any) -> None:
        user = await self._sio.get_session(sid)
        recipient_id = data.get("recipientId") if isinstance(data, dict) else None

        try:
            conversation = await self._with_chat(
                lambda chat: chat.start_conversation(user["id"], recipient_id)
            )
        except PropertyXchangeError as exc:
            await self._error(sid, exc.message)
            return
        except Exception:
            logger.exception("Start conversation failed for %s", user["id"])
            await self._error(sid, "Failed to start conversation")
            return

        await self._sio.enter_room(sid, conversation_room(str(conversation["id"])))
        await self._sio.emit("conversation_started", conversation, to=sid)

    async def mark_messages_read(self, sid: str, data: Any) -> None:
        user = await self._sio.get_session(sid)
        conversation_id = _conversation_id(data)

        try:
            updated = (
                await self._with_chat(lambda chat: chat.mark_read(conversation_id, user["id"]))
                if conversation_id
                else None
            )
        except Exception:
            logger.exception("Mark messages read failed for %s", user["id"])
            await self._error(sid, "Failed to mark messages as read")
            return

        if updated is None:
            await self._error(sid, "Conversation not found or unauthorized")
            return

        await self._sio.emit(
            "messages_read",
            {"conversationId": conversation_id, "readBy": user["id"]},
            room=conversation_room(conversation_id),
            skip_sid=sid,
        )

    async def _typing(self, sid: str, data: Any, event: str, with_name: bool) -> None:
        conversation_id = _conversation_id(data)
        if not conversation_id:
            return

        room = conversation_room(conversation_id)
        if room not in self._sio.rooms(sid):
            return

        user = await self._sio.get_session(sid)
        payload = {"userId": user["id"]}
        if with_name:
            payload["username"] = user["username"]
        await self._sio.emit(event, payload, room=room, skip_sid=sid)

    async def typing_start(self, sid: str, data: Any) -> None:
        await self._typing(sid, data, "user_typing", with_name=True)

    async def typing_stop(self, sid: str, data: Any) -> None:
        await self._typing(sid, data, "user_stopped_typing", with_name=False)

    async def disconnect(self, sid: str, reason: Any = None) -> None:
        try:
            user = await self._sio.get_session(sid)
        except KeyError:
            user = {}
        logger.info("User %s disconnected (%s)", user.get("username", sid), reason or "closed")

    async def _with_chat(self, operation: Callable[[ChatService], Any]) -> Any:
        async with self._session_factory() as session:
            return await operation(ChatService(session))
