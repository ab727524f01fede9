"""Conversation history reads backing the chat client."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.auth import Identity, get_current_identity
from propertyxchange.db.session import get_db_session
from propertyxchange.services.chat_service import ChatService

router = APIRouter(prefix="/api/conversation", tags=["conversations"])


@router.get("")
async def list_conversations(
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
) -> list[dict[str, object]]:
    """Caller's conversations, most recently active first."""

    return await ChatService(session).list_conversations(identity.id)


@router.get("/{conversation_id}/messages")
async def conversation_messages(
    conversation_id: str,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(get_current_identity),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> dict[str, object]:
    return await ChatService(session).conversation_messages(
        identity.id, conversation_id, page=page, limit=limit
    )
