"""
Notes Summarizer - User SQLAlchemy Model
==========================================

What:  ORM model for the `users` table: one row per signed-in identity.
Who:   Upserted by UserStore after a Google or Facebook token is verified.

A user is unique per (provider, provider_id). The email is indexed so a user
who signs in with a second provider is matched to the same row.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notes_summarizer.database import Base
from notes_summarizer.models.summary import utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    picture: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # "google" or "facebook"
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_login: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, provider='{self.provider}', email={self.email!r})>"
