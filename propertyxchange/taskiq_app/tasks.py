"""Taskiq tasks for request alerts and maintenance jobs."""

import logging
from typing import Any, cast

from propertyxchange.db.session import session_context
from propertyxchange.services.request_service import RequestService
from propertyxchange.services.user_service import UserService
from propertyxchange.taskiq_app.broker import broker
from propertyxchange.taskiq_app.dedup import job_lock

logger = logging.getLogger(__name__)


@broker.task(
    task_name="notify_agents_of_request",
    retry_on_error=True,
    max_retries=3,
)
async def notify_agents_of_request(request_id: str) -> dict[str, object]:
    async with session_context() as session:
        notified = await RequestService(session).notify_agents(request_id)

    logger.info("Request %s alerted %d accounts", request_id, notified)
    return {"request_id": request_id, "notified": notified, "status": "ok"}


async def enqueue_notify_agents(request_id: str) -> dict[str, object]:
    """Queue the agent alert fan-out for a new property request."""

    task_kicker = cast(Any, notify_agents_of_request)
    task = await task_kicker.kiq(request_id)
    return {"enqueued": True, "task_id": task.task_id}


@broker.task(
    task_name="expire_property_requests",
    schedule=[{"cron": "0 * * * *"}],
    retry_on_error=True,
    max_retries=3,
)
async def expire_property_requests() -> dict[str, object]:
    async with job_lock("expire_property_requests") as acquired:
        if not acquired:
            logger.info("expire_property_requests skipped due to dedup lock")
            return {"expired": 0, "status": "skipped_duplicate_execution"}

        async with session_context() as session:
            expired = await RequestService(session).expire_requests()

    return {"expired": expired, "status": "ok"}


@broker.task(task_name="backfill_user_slugs")
async def backfill_user_slugs() -> dict[str, object]:
    async with job_lock("backfill_user_slugs") as acquired:
        if not acquired:
            logger.info("backfill_user_slugs skipped due to dedup lock")
            return {"updated": 0, "errors": 0, "total": 0, "status": "skipped_duplicate_execution"}

        async with session_context() as session:
            result = await UserService(session).backfill_slugs()

    return {**result, "status": "ok"}
