"""Minimal identity rows referenced by relationships and messages."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from sugarpot.db.session import Base
from sugarpot.db.time import utcnow


class User(Base):
    """User identity owned by the external identity service.

    Profile data lives elsewhere; this service only needs the id and a
    last-seen stamp.
    """

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
