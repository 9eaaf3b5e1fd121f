"""
Notes Summarizer - SummaryRecord SQLAlchemy Model
===================================================

What:  ORM model for the `summaries` table.
Who:   Written and read by HistoryStore; Alembic migration 001 creates it.

Table Design:
    - UUID primary key assigned in Python (portable across PostgreSQL and SQLite)
    - owner_id NULL means a global record created by a guest/anonymous caller
    - key_points is a JSON array of strings; order is significant
    - word_count / summary_word_count / key_points_count are derived on every
      write so stats never need to re-tokenize stored text
    - schema_version tags the record layout ("2.0"); legacy field names are
      derived at serialization time, not stored

    Index on (owner_id, created_at) serves the history list, which always
    filters by owner and orders by creation time.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notes_summarizer.database import Base

SCHEMA_VERSION = "2.0"

SOURCE_TEXT_INPUT = "text_input"
SOURCE_FILE_UPLOAD = "file_upload"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SummaryRecord(Base):
    """
    A summarized piece of text and where it came from.

    Lifecycle:
        1. Created after extraction and summarization both succeeded
        2. Optionally edited (original / summary / key points only)
        3. Deleted by its owner, or in bulk
    """

    __tablename__ = "summaries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # User id from the users table for signed-in callers; NULL for the global scope.
    owner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # ── Content ───────────────────────────────────────────────────────────
    original_text: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    key_points: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Source Metadata ───────────────────────────────────────────────────
    source: Mapped[str] = mapped_column(String(32), nullable=False, default=SOURCE_TEXT_INPUT)
    filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ── Derived Counters ──────────────────────────────────────────────────
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    summary_word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    key_points_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    schema_version: Mapped[str] = mapped_column(String(16), nullable=False, default=SCHEMA_VERSION)

    # ── Timestamps (UTC) ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_summaries_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<SummaryRecord(id={self.id}, owner_id={self.owner_id!r}, "
            f"source='{self.source}', created_at='{self.created_at}')>"
        )


def as_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes; every stored timestamp is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
