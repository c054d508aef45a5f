"""
Declarative base and shared columns.

Primary keys are UUID strings so that ids can be validated and exposed as-is
(``/professionals/{id}`` rejects anything that is not a UUID). Timestamps
are naive UTC, written by the application rather than the database, so that
SQLite in tests and PostgreSQL in production behave the same.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from trudify.backend.core.utils import utc_now


def new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    pass


class UUIDMixin:
    id: Mapped[str] = mapped_column(primary_key=True, default=new_id)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)


class TimestampMixin(CreatedAtMixin):
    # Bumped by the ORM on every UPDATE, including conditional transitions
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
