"""Business logic for the public agent directory."""

from sqlalchemy.ext.asyncio import AsyncSession

from propertyxchange.db.repositories import (
    fetch_agents,
    fetch_approved_user_listings,
    fetch_user_by_slug_or_id,
)
from propertyxchange.errors import NotFoundError
from propertyxchange.services.pagination import build_pagination, page_offset
from propertyxchange.services.serializers import (
    is_record_id,
    serialize_agent,
    serialize_listing,
)


class AgentService:
    """Service layer for agent directory routes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_agents(
        self,
        *,
        page: int = 1,
        limit: int = 12,
        verified: bool | None = None,
        account_type: str | None = None,
        state: str | None = None,
        lga: str | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> dict[str, object]:
        """List agents page by page; accounts with the USER role are excluded."""

        rows, total = await fetch_agents(
            self._session,
            verified=verified,
            account_type=account_type,
            state=state,
            lga=lga,
            search=search.strip() if search else None,
            sort_by=sort_by,
            order=order,
            skip=page_offset(page, limit),
            limit=limit,
        )

        return {
            "agents": [serialize_agent(user, count) for user, count in rows],
            "pagination": build_pagination(page, limit, total),
        }

    async def get_agent(self, slug_or_id: str) -> dict[str, object]:
        """Fetch an agent profile by id or slug with approved listings."""

        agent = None
        if is_record_id(slug_or_id):
            agent = await fetch_user_by_slug_or_id(
                self._session, slug_or_id, by_slug=False
            )
        if agent is None:
            agent = await fetch_user_by_slug_or_id(
                self._session, slug_or_id, by_slug=True
            )
        if agent is None:
            raise NotFoundError("Agent not found!")

        listings = await fetch_approved_user_listings(self._session, agent.id)
        return {
            **serialize_agent(agent, len(listings)),
            "email": agent.email,
            "phone_number": agent.phone_number,
            "whats_app_num": agent.whats_app_num,
            "listings": [serialize_listing(listing) for listing in listings],
        }
