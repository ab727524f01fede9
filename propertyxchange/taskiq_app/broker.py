"""Taskiq broker and scheduler configuration."""

import importlib

import taskiq_fastapi
from taskiq import AsyncBroker, InMemoryBroker, TaskiqScheduler
from taskiq.schedule_sources import LabelScheduleSource
from taskiq_redis import RedisAsyncResultBackend, RedisStreamBroker

from propertyxchange.config import Settings, get_settings


def _build_broker(settings: Settings) -> AsyncBroker:
    """In-memory broker under test, Redis streams with stored results otherwise."""

    if settings.taskiq_testing:
        return InMemoryBroker()

    result_backend = RedisAsyncResultBackend(
        redis_url=settings.redis_url,
        result_ex_time=settings.task_result_ttl_seconds,
    )
    return RedisStreamBroker(url=settings.redis_url).with_result_backend(
        result_backend
    )


broker = _build_broker(get_settings())

taskiq_fastapi.init(broker, "propertyxchange.main:app")

scheduler = TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])

importlib.import_module("propertyxchange.taskiq_app.tasks")

__all__ = ["broker", "scheduler"]
