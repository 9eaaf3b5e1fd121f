"""
Notes Summarizer - History Routes
===================================

Read, edit and delete saved summaries. Every operation is scoped to the
caller: signed-in users see their own records, everyone else sees the
global (ownerless) records. Records outside the caller's scope behave
exactly like missing ones (404).

Pagination is offset-based: `limit` (1-100, default 50) and `offset`.
The total count is returned in the body and in the X-Total-Count header.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query

from notes_summarizer.dependencies import get_history_store, get_identity
from notes_summarizer.responses import success_response
from notes_summarizer.schemas.envelope import ErrorEnvelope, SuccessEnvelope
from notes_summarizer.schemas.summary import (
    HistoryPage,
    HistoryStats,
    HistoryUpdateRequest,
    Pagination,
    SummaryRecordOut,
)
from notes_summarizer.services.auth_service import Identity
from notes_summarizer.services.history_service import DEFAULT_LIMIT, MAX_LIMIT, HistoryStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/history", tags=["History"])

NOT_FOUND = {404: {"description": "Record not found in the caller's scope", "model": ErrorEnvelope}}


@router.get(
    "",
    response_model=SuccessEnvelope,
    summary="List saved summaries",
)
async def list_history(
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page"),
    offset: int = Query(default=0, ge=0, description="Items to skip"),
    sort_by: Literal["createdAt", "updatedAt", "wordCount", "filename"] = Query(
        default="createdAt", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    identity: Identity = Depends(get_identity),
    store: HistoryStore = Depends(get_history_store),
):
    records, total = await store.list(
        owner_id=identity.owner_id,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    page = HistoryPage(
        items=[SummaryRecordOut.from_record(r) for r in records],
        pagination=Pagination(
            limit=limit,
            offset=offset,
            total=total,
            has_more=offset + len(records) < total,
        ),
    )
    return success_response(page, headers={"X-Total-Count": str(total)})


@router.get(
    "/stats",
    response_model=SuccessEnvelope,
    summary="History statistics",
)
async def history_stats(
    identity: Identity = Depends(get_identity),
    store: HistoryStore = Depends(get_history_store),
):
    stats = await store.stats(owner_id=identity.owner_id)
    return success_response(HistoryStats(**stats))


@router.get(
    "/{record_id}",
    response_model=SuccessEnvelope,
    responses=NOT_FOUND,
    summary="Get one saved summary",
)
async def get_history_item(
    record_id: str,
    identity: Identity = Depends(get_identity),
    store: HistoryStore = Depends(get_history_store),
):
    record = await store.get(record_id, owner_id=identity.owner_id)
    return success_response(SummaryRecordOut.from_record(record))


@router.put(
    "/{record_id}",
    response_model=SuccessEnvelope,
    responses={**NOT_FOUND, 400: {"description": "No editable fields", "model": ErrorEnvelope}},
    summary="Edit a saved summary",
)
async def update_history_item(
    record_id: str,
    body: HistoryUpdateRequest,
    identity: Identity = Depends(get_identity),
    store: HistoryStore = Depends(get_history_store),
):
    record = await store.update(record_id, body.changes(), owner_id=identity.owner_id)
    return success_response(SummaryRecordOut.from_record(record))


@router.delete(
    "/{record_id}",
    response_model=SuccessEnvelope,
    responses=NOT_FOUND,
    summary="Delete a saved summary",
)
async def delete_history_item(
    record_id: str,
    identity: Identity = Depends(get_identity),
    store: HistoryStore = Depends(get_history_store),
):
    await store.delete(record_id, owner_id=identity.owner_id)
    return success_response({"id": record_id, "deleted": True})


@router.delete(
    "",
    response_model=SuccessEnvelope,
    summary="Delete all saved summaries in the caller's scope",
)
async def clear_history(
    identity: Identity = Depends(get_identity),
    store: HistoryStore = Depends(get_history_store),
):
    deleted = await store.delete_all(owner_id=identity.owner_id)
    return success_response({"deletedCount": deleted})
