"""Worker entrypoint; importing tasks registers them on the broker."""

from propertyxchange.taskiq_app.broker import broker, scheduler
from propertyxchange.taskiq_app import tasks as _tasks  # noqa: F401

__all__ = ["broker", "scheduler"]
