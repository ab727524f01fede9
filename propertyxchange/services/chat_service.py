"""Conversation and message persistence for the chat relay and its REST reads."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.constants import MESSAGE_TYPES, NOTIFY_NEW_MESSAGE
from propertyxchange.db.repositories import (
    count_unread_messages,
    fetch_conversation_between,
    fetch_conversation_for_participant,
    fetch_messages,
    fetch_user_by_id,
    fetch_user_conversations,
    fetch_users_by_ids,
    insert_conversation,
    insert_message,
    mark_conversation_read,
)
from propertyxchange.errors import BadRequestError, NotFoundError, PermissionDeniedError
from propertyxchange.models import User
from propertyxchange.services.notification_service import NotificationService
from propertyxchange.services.pagination import build_pagination, page_offset
from propertyxchange.services.serializers import (
    serialize_conversation,
    serialize_message,
    serialize_user_summary,
)

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80


@dataclass(slots=True)
class DeliveredMessage:
    """A stored message and the participants who should be alerted."""

    message: dict[str, object]
    recipients: list[str]


def sender_summary(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "profile_photo": user.profile_photo,
    }


class ChatService:
    """Service layer for chat persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._notifications = NotificationService(session)

    async def is_participant(self, conversation_id: str, user_id: str) -> bool:
        conversation = await fetch_conversation_for_participant(
            self._session, conversation_id, user_id
        )
        return conversation is not None

    async def send_message(
        self,
        *,
        conversation_id: str,
        sender: dict[str, object],
        content: str,
        message_type: str = "TEXT",
    ) -> DeliveredMessage | None:
        """Store a message from a participant.

        Returns None when the sender is not part of the conversation.
        """

        sender_id = str(sender["id"])
        conversation = await fetch_conversation_for_participant(
            self._session, conversation_id, sender_id
        )
        if conversation is None:
            return None

        if not content or not content.strip():
            raise BadRequestError("Message content is required")

        kind = (message_type or "TEXT").upper()
        if kind not in MESSAGE_TYPES:
            raise BadRequestError(f"Unsupported message type: {message_type}")

        message = await insert_message(
            self._session,
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=kind,
        )
        recipients = [pid for pid in conversation.participants if pid != sender_id]
        payload = {**serialize_message(message), "sender": sender}

        preview = content if len(content) <= PREVIEW_LENGTH else f"{content[:PREVIEW_LENGTH]}..."
        await self._notifications.notify(
            recipients,
            title=f"New message from {sender.get('username') or 'a user'}",
            message=preview if kind == "TEXT" else f"Sent a {kind.lower()}",
            type=NOTIFY_NEW_MESSAGE,
            entity_type="conversation",
            entity_id=conversation_id,
        )

        return DeliveredMessage(message=payload, recipients=recipients)

    async def start_conversation(
        self, user_id: str, recipient_id: str | None
    ) -> dict[str, object]:
        """Reuse the conversation between two users or open a new one."""

        if not recipient_id:
            raise BadRequestError("Recipient is required")

        if recipient_id == user_id:
            raise BadRequestError("Cannot start a conversation with yourself")

        if await fetch_user_by_id(self._session, recipient_id) is None:
            raise NotFoundError("Recipient not found")

        conversation = await fetch_conversation_between(
            self._session, user_id, recipient_id
        )
        if conversation is None:
            conversation = await insert_conversation(
                self._session, [user_id, recipient_id]
            )
            logger.info("Conversation %s opened by %s", conversation.id, user_id)

        return serialize_conversation(conversation)

    async def mark_read(self, conversation_id: str, reader_id: str) -> int | None:
        """Mark others' messages read; None when the reader is not a participant."""

        if not await self.is_participant(conversation_id, reader_id):
            return None
        return await mark_conversation_read(self._session, conversation_id, reader_id)

    async def list_conversations(self, user_id: str) -> list[dict[str, object]]:
        conversations = await fetch_user_conversations(self._session, user_id)
        if not conversations:
            return []

        other_ids = {
            pid
            for conversation in conversations
            for pid in conversation.participants
            if pid != user_id
        }
        users = await fetch_users_by_ids(self._session, sorted(other_ids))
        unread = await count_unread_messages(
            self._session, user_id, [c.id for c in conversations]
        )

        return [
            {
                **serialize_conversation(conversation),
                "participants_info": [
                    serialize_user_summary(users[pid])
                    for pid in conversation.participants
                    if pid != user_id and pid in users
                ],
                "unread_count": unread.get(conversation.id, 0),
            }
            for conversation in conversations
        ]

    async def conversation_messages(
        self,
        user_id: str,
        conversation_id: str,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> dict[str, object]:
        if not await self.is_participant(conversation_id, user_id):
            raise PermissionDeniedError("Unauthorized to view this conversation")

        messages, total = await fetch_messages(
            self._session,
            conversation_id,
            skip=page_offset(page, limit),
            limit=limit,
        )
        return {
            "messages": [serialize_message(message) for message in messages],
            "pagination": build_pagination(page, limit, total),
        }
