"""
Notes Summarizer - Summarize Route
====================================

POST /api/summarize: summarize pasted text.

Request Flow:
    1. Resolve the caller (never fails; anonymous callers are allowed)
    2. SummaryService validates, summarizes and saves
    3. Return the summary, key points and size metadata

The response carries the new history id, or null when the best-effort save
failed; the summary is returned either way.
"""

import logging

from fastapi import APIRouter, Depends

from notes_summarizer.dependencies import get_identity, get_summary_service
from notes_summarizer.responses import success_response
from notes_summarizer.schemas.envelope import ErrorEnvelope, SuccessEnvelope
from notes_summarizer.schemas.summary import SummarizeRequest
from notes_summarizer.services.auth_service import Identity
from notes_summarizer.services.summary_service import SummaryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Summarize"])


@router.post(
    "/summarize",
    response_model=SuccessEnvelope,
    responses={
        400: {"description": "Text missing, too short or too long", "model": ErrorEnvelope},
        500: {"description": "AI service failed", "model": ErrorEnvelope},
    },
    summary="Summarize pasted text",
    description=(
        "Summarize 10 to 50,000 characters of text into a short paragraph and "
        "hierarchical key points. The result is saved to history: to the caller's own "
        "history when signed in, otherwise to the shared global history."
    ),
)
async def summarize_text(
    body: SummarizeRequest,
    identity: Identity = Depends(get_identity),
    service: SummaryService = Depends(get_summary_service),
):
    result = await service.summarize_text(body.text, identity)
    if result.id is None:
        logger.warning("Summary returned without being saved to history")
    return success_response(result)
