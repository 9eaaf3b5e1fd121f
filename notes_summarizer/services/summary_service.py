"""
Notes Summarizer - Summary Pipeline
=====================================

What:  Orchestrates validate → (extract) → summarize → save for both entry points.
Who:   Called by the summarize and upload routes.

Orchestration Flow:
    ┌──────────┐   ┌──────────┐   ┌───────────┐   ┌────────────┐   ┌──────────┐
    │  Route   │──▶│ Validate │──▶│  Extract  │──▶│ Summarize  │──▶│  Save    │
    └──────────┘   └──────────┘   │ (upload)  │   │  (Gemini)  │   │ (best-   │
                                  └───────────┘   └────────────┘   │  effort) │
                                                                   └──────────┘

    Validation, extraction and summarization failures abort the request.
    A failed save is logged and never changes the response:
        summarize_text awaits the save so it can return the new id (or null);
        process_upload hands the save back to the route, which runs it as a
        background task after the response is sent.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Tuple

from notes_summarizer.models.summary import SOURCE_FILE_UPLOAD, SOURCE_TEXT_INPUT
from notes_summarizer.schemas.summary import (
    SummarizeResponse,
    SummaryMetadata,
    UploadMetadata,
    UploadResponse,
)
from notes_summarizer.services.auth_service import Identity
from notes_summarizer.services.history_service import HistoryStore, NewSummary, count_words
from notes_summarizer.services.llm_base import Summarizer
from notes_summarizer.services.text_extractor import TextExtractor
from notes_summarizer.services.validation import InputValidator, UploadedFile, describe_file_type

logger = logging.getLogger(__name__)


def compression_ratio(original: str, summary: str) -> int:
    """Percent by which the summary is shorter than the original."""
    if not original:
        return 0
    return round((1 - len(summary) / len(original)) * 100)


class SummaryService:
    """
    Business logic behind POST /api/summarize and POST /api/notes/upload.

    Stateless; every collaborator is injected by create_app().
    """

    def __init__(
        self,
        validator: InputValidator,
        extractor: TextExtractor,
        summarizer: Summarizer,
        history: HistoryStore,
    ):
        self.validator = validator
        self.extractor = extractor
        self.summarizer = summarizer
        self.history = history

    async def summarize_text(self, text: Optional[str], identity: Identity) -> SummarizeResponse:
        """
        Summarize pasted text and save it to the caller's history.

        Raises:
            ValidationError: text missing, empty, too short or too long
            SummarizerError: the LLM call failed
        """
        cleaned = self.validator.validate_text(text)
        result = await self.summarizer.summarize(cleaned)

        outcome = await self.history.try_save(
            NewSummary(
                original_text=cleaned,
                summary=result.summary,
                key_points=result.key_points,
                source=SOURCE_TEXT_INPUT,
            ),
            owner_id=identity.owner_id,
        )

        return SummarizeResponse(
            id=outcome.record.id if outcome.ok else None,
            original=cleaned,
            summary=result.summary,
            key_points=result.key_points,
            metadata=SummaryMetadata(
                original_length=len(cleaned),
                summary_length=len(result.summary),
                key_points_count=len(result.key_points),
                word_count=count_words(cleaned),
                compression_ratio=compression_ratio(cleaned, result.summary),
                persisted=outcome.ok,
            ),
        )

    async def process_upload(
        self, upload: Optional[UploadedFile]
    ) -> Tuple[UploadResponse, NewSummary]:
        """
        Extract and summarize an uploaded document.

        Returns:
            The response body and the record data the caller should save.
        Raises:
            ValidationError, ExtractionError, SummarizerError
        """
        started = time.perf_counter()
        upload = self.validator.validate_file(upload)

        text = await self.extractor.extract(upload.content, upload.mime_type, upload.filename)
        result = await self.summarizer.summarize(text)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Processed upload %s (%s, %d bytes) in %dms",
            upload.filename, upload.mime_type, upload.size, elapsed_ms,
        )

        response = UploadResponse(
            filename=upload.filename,
            extracted_text=text,
            summary=result.summary,
            key_points=result.key_points,
            timestamp=datetime.now(timezone.utc),
            metadata=UploadMetadata(
                file_type=upload.mime_type,
                file_type_description=describe_file_type(upload.mime_type),
                file_size=upload.size,
                processing_time_ms=elapsed_ms,
                extracted_length=len(text),
                summary_length=len(result.summary),
                key_points_count=len(result.key_points),
            ),
        )
        pending = NewSummary(
            original_text=text,
            summary=result.summary,
            key_points=result.key_points,
            source=SOURCE_FILE_UPLOAD,
            filename=upload.filename,
            mime_type=upload.mime_type,
            file_size=upload.size,
        )
        return response, pending
