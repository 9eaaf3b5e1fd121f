"""
Notes Summarizer - Document Upload Routes
===========================================

POST /api/notes/upload         extract text from a document and summarize it
GET  /api/notes/capabilities   supported formats and limits

Upload Flow:
    1. Read at most max_file_size + 1 bytes of the multipart `file` field
    2. SummaryService validates, extracts and summarizes
    3. Respond, then save to history as a background task

Status codes:
    400  no file, empty file, too large, unsupported type, bad filename
    422  the file could not be turned into text
    500  the AI service failed
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, UploadFile

from notes_summarizer.dependencies import get_identity, get_summary_service
from notes_summarizer.responses import success_response
from notes_summarizer.schemas.envelope import ErrorEnvelope, SuccessEnvelope
from notes_summarizer.services.auth_service import Identity
from notes_summarizer.services.summary_service import SummaryService
from notes_summarizer.services.validation import UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])


@router.post(
    "/upload",
    response_model=SuccessEnvelope,
    responses={
        400: {"description": "Invalid file", "model": ErrorEnvelope},
        422: {"description": "Text could not be extracted", "model": ErrorEnvelope},
        500: {"description": "AI service failed", "model": ErrorEnvelope},
    },
    summary="Upload a document and summarize it",
    description=(
        "Upload a PDF, Word document (.docx) or image (max 10MB). Text is extracted "
        "(OCR for images) and summarized. The result is saved to history after the "
        "response is sent."
    ),
)
async def upload_document(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(default=None, description="PDF, DOCX or image file"),
    identity: Identity = Depends(get_identity),
    service: SummaryService = Depends(get_summary_service),
):
    upload = None
    if file is not None:
        try:
            # One byte past the limit is enough to reject an oversized upload.
            content = await file.read(service.validator.max_file_size + 1)
        finally:
            await file.close()
        upload = UploadedFile(
            content=content,
            mime_type=file.content_type or "",
            filename=file.filename or "",
        )
        logger.info(
            "Received upload: filename=%s, type=%s, size=%d bytes",
            upload.filename or "unknown", upload.mime_type or "unknown", upload.size,
        )

    response, pending = await service.process_upload(upload)
    background_tasks.add_task(service.history.try_save, pending, identity.owner_id)
    return success_response(response)


@router.get(
    "/capabilities",
    response_model=SuccessEnvelope,
    summary="Supported upload formats",
)
async def capabilities(request: Request):
    return success_response(request.app.state.extractor.capabilities())
