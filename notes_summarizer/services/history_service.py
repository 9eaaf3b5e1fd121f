"""
Notes Summarizer - History Store
==================================

What:  Owner-scoped persistence for SummaryRecord: save, list, get, update,
       delete, bulk delete and statistics.
How:   One short-lived session per operation from the shared Database.
       SQLAlchemy failures are wrapped in DatabaseError; missing and
       cross-owner records both raise NotFoundError.
Who:   SummaryService (saving new summaries) and the history routes.

Owner scoping:
    owner_id="<user id>"  → only that user's records
    owner_id=None         → only global records (owner_id IS NULL)
    A record is never visible from the other scope.

Concurrency:
    delete() is a single conditional DELETE, so when two requests delete the
    same id at once exactly one sees a removed row and the other gets
    NotFoundError. delete_all() issues one delete per record concurrently
    and, once all of them have finished, fails if any of them failed.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple, Union

from sqlalchemy import asc, delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notes_summarizer.database import Database
from notes_summarizer.exceptions import DatabaseError, NotFoundError, ValidationError
from notes_summarizer.models.summary import (
    SCHEMA_VERSION,
    SOURCE_TEXT_INPUT,
    SummaryRecord,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 100

SORT_COLUMNS = {
    "createdAt": SummaryRecord.created_at,
    "updatedAt": SummaryRecord.updated_at,
    "wordCount": SummaryRecord.word_count,
    "filename": SummaryRecord.filename,
}

UPDATABLE_FIELDS = ("original", "summary", "key_points")


def count_words(text: str) -> int:
    return len(text.split())


@dataclass
class NewSummary:
    """Everything needed to create a SummaryRecord, minus store-assigned fields."""

    original_text: str
    summary: str
    key_points: List[str] = field(default_factory=list)
    source: str = SOURCE_TEXT_INPUT
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


@dataclass
class SaveOutcome:
    """Result of a best-effort save: either the stored record or the error."""

    record: Optional[SummaryRecord] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def _owner_clause(owner_id: Optional[str]):
    if owner_id is None:
        return SummaryRecord.owner_id.is_(None)
    return SummaryRecord.owner_id == owner_id


def _parse_id(record_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(record_id, uuid.UUID):
        return record_id
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        # A malformed id cannot match any row.
        raise NotFoundError(resource="summary", resource_id=str(record_id))


def _apply_counters(record: SummaryRecord) -> None:
    record.word_count = count_words(record.original_text)
    record.summary_word_count = count_words(record.summary)
    record.key_points_count = len(record.key_points or [])


class HistoryStore:
    """
    CRUD and statistics over summary history.

    Args:
        database: Shared Database; a session is opened per operation.
    """

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def _session(self, operation: str, **context: Any) -> AsyncIterator[AsyncSession]:
        try:
            async with self.database.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("History %s failed: %s", operation, e)
            raise DatabaseError(context={"operation": operation, **context}) from e

    # ── Create ────────────────────────────────────────────────────────────

    async def save(self, data: NewSummary, owner_id: Optional[str] = None) -> SummaryRecord:
        """Persist a new summary; the store assigns id, timestamps and counters."""
        now = utcnow()
        record = SummaryRecord(
            id=uuid.uuid4(),
            owner_id=owner_id,
            original_text=data.original_text,
            summary=data.summary,
            key_points=list(data.key_points),
            source=data.source,
            filename=data.filename,
            mime_type=data.mime_type,
            file_size=data.file_size,
            schema_version=SCHEMA_VERSION,
            created_at=now,
            updated_at=now,
        )
        _apply_counters(record)

        async with self._session("save") as session:
            session.add(record)

        logger.info(
            "Saved summary %s (owner=%s, source=%s, %d key points)",
            record.id, owner_id or "global", record.source, record.key_points_count,
        )
        return record

    async def try_save(self, data: NewSummary, owner_id: Optional[str] = None) -> SaveOutcome:
        """
        Best-effort save used after a successful summarization.

        Never raises; the failure is logged and returned in the outcome so the
        caller can still answer the request.
        """
        try:
            record = await self.save(data, owner_id)
        except Exception as e:
            logger.error("Best-effort history save failed: %s", e, exc_info=True)
            return SaveOutcome(error=e)
        return SaveOutcome(record=record)

    # ── Read ──────────────────────────────────────────────────────────────

    async def list(
        self,
        owner_id: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[SummaryRecord], int]:
        """
        One page of records and the total count for the owner's scope.

        Default order is newest first. Ties are broken by id so pages are stable.
        """
        column = SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError(
                f"Invalid sortBy '{sort_by}'. Must be one of: {', '.join(SORT_COLUMNS)}",
                field="sortBy",
            )
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sortOrder must be 'asc' or 'desc'", field="sortOrder")

        limit = max(1, min(limit, MAX_LIMIT))
        offset = max(0, offset)
        direction = desc if sort_order == "desc" else asc

        async with self._session("list", owner_id=owner_id) as session:
            total = await session.scalar(
                select(func.count()).select_from(SummaryRecord).where(_owner_clause(owner_id))
            )
            result = await session.execute(
                select(SummaryRecord)
                .where(_owner_clause(owner_id))
                .order_by(direction(column), direction(SummaryRecord.id))
                .limit(limit)
                .offset(offset)
            )
            records = list(result.scalars().all())

        return records, int(total or 0)

    async def get(self, record_id: Union[str, uuid.UUID], owner_id: Optional[str] = None) -> SummaryRecord:
        rid = _parse_id(record_id)
        async with self._session("get", record_id=str(rid)) as session:
            record = await session.scalar(
                select(SummaryRecord).where(SummaryRecord.id == rid, _owner_clause(owner_id))
            )
        if record is None:
            raise NotFoundError(resource="summary", resource_id=str(rid))
        return record

    # ── Update ────────────────────────────────────────────────────────────

    async def update(
        self,
        record_id: Union[str, uuid.UUID],
        changes: Dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> SummaryRecord:
        """
        Merge new text fields into a record and bump updated_at.

        Accepted keys: original, summary, key_points. Counters are recomputed.
        """
        rid = _parse_id(record_id)
        fields = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        if not fields:
            raise ValidationError(
                "No updatable fields provided. Allowed: original, summary, keyPoints",
                context={"received": sorted(changes)},
            )
        for name in ("original", "summary"):
            if name in fields and not str(fields[name]).strip():
                raise ValidationError(f"{name} cannot be empty", field=name)

        async with self._session("update", record_id=str(rid)) as session:
            record = await session.scalar(
                select(SummaryRecord).where(SummaryRecord.id == rid, _owner_clause(owner_id))
            )
            if record is None:
                raise NotFoundError(resource="summary", resource_id=str(rid))

            if "original" in fields:
                record.original_text = fields["original"]
            if "summary" in fields:
                record.summary = fields["summary"]
            if "key_points" in fields:
                record.key_points = [str(point) for point in fields["key_points"]]
            _apply_counters(record)
            record.updated_at = utcnow()

        logger.info("Updated summary %s (%s)", rid, ", ".join(sorted(fields)))
        return record

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete(self, record_id: Union[str, uuid.UUID], owner_id: Optional[str] = None) -> None:
        rid = _parse_id(record_id)
        async with self._session("delete", record_id=str(rid)) as session:
            result = await session.execute(
                delete(SummaryRecord).where(SummaryRecord.id == rid, _owner_clause(owner_id))
            )
            if result.rowcount == 0:
                raise NotFoundError(resource="summary", resource_id=str(rid))
        logger.info("Deleted summary %s", rid)

    async def delete_all(self, owner_id: Optional[str] = None) -> int:
        """Delete every record in the owner's scope; returns how many were deleted."""
        async with self._session("delete_all", owner_id=owner_id) as session:
            result = await session.execute(
                select(SummaryRecord.id).where(_owner_clause(owner_id))
            )
            ids = list(result.scalars().all())

        # Every delete settles before the aggregate reports success or failure.
        results = await asyncio.gather(
            *(self.delete(rid, owner_id) for rid in ids),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(
                "Bulk delete failed for %d of %d summaries (owner=%s)",
                len(failures), len(ids), owner_id or "global",
            )
            raise failures[0]
        logger.info("Deleted %d summaries (owner=%s)", len(ids), owner_id or "global")
        return len(ids)

    # ── Statistics ────────────────────────────────────────────────────────

    async def stats(self, owner_id: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Aggregate figures for the owner's scope.

        Computed by scanning the matching rows; the history of one user is
        small enough that this stays cheap.
        """
        now = now or datetime.now(timezone.utc)
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)

        async with self._session("stats", owner_id=owner_id) as session:
            result = await session.execute(
                select(
                    SummaryRecord.word_count,
                    SummaryRecord.key_points_count,
                    SummaryRecord.mime_type,
                    SummaryRecord.created_at,
                ).where(_owner_clause(owner_id))
            )
            rows = result.all()

        total = len(rows)
        total_words = sum(row.word_count for row in rows)
        file_types: Dict[str, int] = {}
        last_7 = last_30 = 0
        for row in rows:
            kind = row.mime_type or "text"
            file_types[kind] = file_types.get(kind, 0) + 1
            created = as_utc(row.created_at)
            if created >= week_ago:
                last_7 += 1
            if created >= month_ago:
                last_30 += 1

        return {
            "total_summaries": total,
            "total_words": total_words,
            "total_key_points": sum(row.key_points_count for row in rows),
            "average_words_per_summary": int(total_words / total + 0.5) if total else 0,
            "file_types": file_types,
            "recent_activity": {"last_7_days": last_7, "last_30_days": last_30},
        }
