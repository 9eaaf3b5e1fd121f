"""
Notes Summarizer - History Store Integration Tests
====================================================

What:  HistoryStore against a real (SQLite) database.

What we test:
    ✅ Save assigns id, counters and schema version; key point order survives
    ✅ Owner scoping: other owners and the global scope see 404
    ✅ Malformed ids behave like missing ones
    ✅ List pagination, sorting and totals
    ✅ Update recomputes counters and bumps updated_at
    ✅ Delete is exactly-once, also under concurrent requests
    ✅ delete_all and stats
    ✅ try_save reports failures instead of raising
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from notes_summarizer.exceptions import DatabaseError, NotFoundError, ValidationError
from notes_summarizer.models.summary import SCHEMA_VERSION, SOURCE_FILE_UPLOAD, as_utc
from notes_summarizer.services.history_service import NewSummary, count_words


def text_summary(original="one two three four five", key_points=None):
    return NewSummary(
        original_text=original,
        summary="a short summary",
        key_points=key_points if key_points is not None else ["1. First", "1.1 Detail", "2. Second"],
    )


class TestSave:

    @pytest.mark.asyncio
    async def test_save_and_get(self, history_store):
        points = ["1. Zeta", "1.1 Alpha", "2. Mid", "2.1 Beta", "2.2 Aardvark"]
        saved = await history_store.save(text_summary(key_points=points), owner_id="user-1")

        fetched = await history_store.get(str(saved.id), owner_id="user-1")
        assert fetched.id == saved.id
        assert fetched.key_points == points
        assert fetched.word_count == 5
        assert fetched.summary_word_count == 3
        assert fetched.key_points_count == 5
        assert fetched.schema_version == SCHEMA_VERSION

    @pytest.mark.asyncio
    async def test_save_upload_metadata(self, history_store):
        saved = await history_store.save(
            NewSummary(
                original_text="extracted words",
                summary="summary",
                source=SOURCE_FILE_UPLOAD,
                filename="lecture.pdf",
                mime_type="application/pdf",
                file_size=2048,
            )
        )
        fetched = await history_store.get(saved.id)
        assert fetched.owner_id is None
        assert fetched.filename == "lecture.pdf"
        assert fetched.mime_type == "application/pdf"
        assert fetched.file_size == 2048

    @pytest.mark.asyncio
    async def test_try_save_failure_is_reported(self, history_store):
        history_store.save = AsyncMock(side_effect=DatabaseError(context={"operation": "save"}))

        outcome = await history_store.try_save(text_summary(), owner_id="user-1")

        assert outcome.ok is False
        assert isinstance(outcome.error, DatabaseError)


class TestScoping:

    @pytest.mark.asyncio
    async def test_other_owner_sees_not_found(self, history_store):
        saved = await history_store.save(text_summary(), owner_id="user-1")

        with pytest.raises(NotFoundError):
            await history_store.get(saved.id, owner_id="user-2")
        with pytest.raises(NotFoundError):
            await history_store.update(saved.id, {"summary": "hijacked"}, owner_id="user-2")
        with pytest.raises(NotFoundError):
            await history_store.delete(saved.id, owner_id="user-2")

        # Still intact for the owner
        assert (await history_store.get(saved.id, owner_id="user-1")).summary == "a short summary"

    @pytest.mark.asyncio
    async def test_global_and_user_scopes_are_disjoint(self, history_store):
        await history_store.save(text_summary(), owner_id=None)
        await history_store.save(text_summary(), owner_id="user-1")
        await history_store.save(text_summary(), owner_id="user-1")

        _, global_total = await history_store.list(owner_id=None)
        _, user_total = await history_store.list(owner_id="user-1")
        assert global_total == 1
        assert user_total == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["not-a-uuid", "123", ""])
    async def test_malformed_id_is_not_found(self, history_store, bad_id):
        with pytest.raises(NotFoundError):
            await history_store.get(bad_id)


class TestList:

    @pytest.mark.asyncio
    async def test_pagination_and_total(self, history_store):
        for i in range(5):
            await history_store.save(text_summary(original=" ".join(["w"] * (i + 1))), owner_id="u")

        page, total = await history_store.list(owner_id="u", limit=2, offset=0, sort_by="wordCount", sort_order="asc")
        assert total == 5
        assert [r.word_count for r in page] == [1, 2]

        page, _ = await history_store.list(owner_id="u", limit=2, offset=4, sort_by="wordCount", sort_order="asc")
        assert [r.word_count for r in page] == [5]

    @pytest.mark.asyncio
    async def test_default_order_is_newest_first(self, history_store):
        first = await history_store.save(text_summary(), owner_id="u")
        second = await history_store.save(text_summary(), owner_id="u")

        page, _ = await history_store.list(owner_id="u")
        assert [r.id for r in page] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, history_store):
        await history_store.save(text_summary(), owner_id="u")
        page, total = await history_store.list(owner_id="u", limit=10_000)
        assert len(page) == total == 1

    @pytest.mark.asyncio
    async def test_invalid_sort_column(self, history_store):
        with pytest.raises(ValidationError):
            await history_store.list(sort_by="summary")


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update_recomputes_counters(self, history_store):
        saved = await history_store.save(text_summary(), owner_id="u")

        updated = await history_store.update(
            saved.id,
            {"original": "just two", "key_points": ["1. Only point"]},
            owner_id="u",
        )

        assert updated.original_text == "just two"
        assert updated.summary == "a short summary"
        assert updated.word_count == 2
        assert updated.key_points_count == 1
        assert as_utc(updated.updated_at) >= as_utc(updated.created_at)

        fetched = await history_store.get(saved.id, owner_id="u")
        assert fetched.key_points == ["1. Only point"]

    @pytest.mark.asyncio
    async def test_update_without_fields(self, history_store):
        saved = await history_store.save(text_summary())
        with pytest.raises(ValidationError):
            await history_store.update(saved.id, {"owner_id": "someone-else"})

    @pytest.mark.asyncio
    async def test_update_rejects_blank_summary(self, history_store):
        saved = await history_store.save(text_summary())
        with pytest.raises(ValidationError):
            await history_store.update(saved.id, {"summary": "   "})


class TestDelete:

    @pytest.mark.asyncio
    async def test_second_delete_is_not_found(self, history_store):
        saved = await history_store.save(text_summary())

        await history_store.delete(saved.id)
        with pytest.raises(NotFoundError):
            await history_store.delete(saved.id)
        with pytest.raises(NotFoundError):
            await history_store.get(saved.id)

    @pytest.mark.asyncio
    async def test_concurrent_deletes_succeed_once(self, history_store):
        saved = await history_store.save(text_summary(), owner_id="u")

        results = await asyncio.gather(
            history_store.delete(saved.id, owner_id="u"),
            history_store.delete(saved.id, owner_id="u"),
            return_exceptions=True,
        )

        assert sum(1 for r in results if r is None) == 1
        assert sum(1 for r in results if isinstance(r, NotFoundError)) == 1

    @pytest.mark.asyncio
    async def test_delete_all_only_touches_scope(self, history_store):
        for _ in range(3):
            await history_store.save(text_summary(), owner_id="u")
        kept = await history_store.save(text_summary(), owner_id="other")

        deleted = await history_store.delete_all(owner_id="u")

        assert deleted == 3
        _, remaining = await history_store.list(owner_id="u")
        assert remaining == 0
        assert (await history_store.get(kept.id, owner_id="other")).id == kept.id

    @pytest.mark.asyncio
    async def test_delete_all_settles_every_delete_before_failing(self, history_store):
        records = [await history_store.save(text_summary(), owner_id="u") for _ in range(3)]
        failing_id = records[1].id
        real_delete = history_store.delete
        finished = []

        async def flaky_delete(record_id, owner_id=None):
            if record_id == failing_id:
                raise DatabaseError(context={"operation": "delete"})
            await asyncio.sleep(0.05)
            await real_delete(record_id, owner_id)
            finished.append(record_id)

        history_store.delete = flaky_delete
        with pytest.raises(DatabaseError):
            await history_store.delete_all(owner_id="u")

        # The slower deletes completed before the failure surfaced
        assert sorted(finished) == sorted([records[0].id, records[2].id])
        _, remaining = await history_store.list(owner_id="u")
        assert remaining == 1

    @pytest.mark.asyncio
    async def test_delete_random_id(self, history_store):
        with pytest.raises(NotFoundError):
            await history_store.delete(uuid.uuid4())


class TestStats:

    @pytest.mark.asyncio
    async def test_stats(self, history_store):
        await history_store.save(text_summary(original="a b c"), owner_id="u")
        await history_store.save(
            NewSummary(
                original_text="d e f g",
                summary="s",
                key_points=["1. x"],
                mime_type="application/pdf",
            ),
            owner_id="u",
        )

        stats = await history_store.stats(owner_id="u")

        assert stats["total_summaries"] == 2
        assert stats["total_words"] == 7
        assert stats["total_key_points"] == 4
        assert stats["average_words_per_summary"] == 4
        assert stats["file_types"] == {"text": 1, "application/pdf": 1}
        assert stats["recent_activity"] == {"last_7_days": 2, "last_30_days": 2}

    @pytest.mark.asyncio
    async def test_recent_activity_windows(self, history_store):
        await history_store.save(text_summary(), owner_id="u")
        later = datetime.now(timezone.utc) + timedelta(days=10)

        stats = await history_store.stats(owner_id="u", now=later)

        assert stats["recent_activity"] == {"last_7_days": 0, "last_30_days": 1}

    @pytest.mark.asyncio
    async def test_empty_stats(self, history_store):
        stats = await history_store.stats(owner_id="nobody")
        assert stats["total_summaries"] == 0
        assert stats["average_words_per_summary"] == 0


def test_count_words():
    assert count_words("  several   words\nacross lines ") == 4
    assert count_words("") == 0
