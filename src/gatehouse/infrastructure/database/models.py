"""Event-store tables.

``user_events`` holds one row per domain event; the unique
``(aggregate_id, version)`` constraint is the optimistic-concurrency guard.
``user_lookup`` is a projection used to find a stream by email or Google
subject and carries the current stream version.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import JSON, Column, DateTime, String, UniqueConstraint
from sqlmodel import Field, SQLModel


class UserEventRecord(SQLModel, table=True):
    """A persisted user event."""

    __tablename__ = "user_events"
    __table_args__ = (UniqueConstraint("aggregate_id", "version", name="uq_user_events_aggregate_version"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    aggregate_id: UUID = Field(index=True, nullable=False)
    version: int = Field(nullable=False, ge=1)
    event_type: str = Field(max_length=64, nullable=False)
    payload: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    occurred_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class UserLookup(SQLModel, table=True):
    """Lookup projection: one row per user."""

    __tablename__ = "user_lookup"

    user_id: UUID = Field(primary_key=True)
    email: str = Field(sa_column=Column(String(256), unique=True, index=True, nullable=False))
    google_id: Optional[str] = Field(default=None, sa_column=Column(String(255), unique=True, nullable=True))
    version: int = Field(default=0, nullable=False)
