"""Declarative base and shared column helpers."""

from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    """Return a new string primary key."""

    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""
