"""
Notes Summarizer - Pydantic Request/Response Schemas
======================================================

What:  The API contract for summaries, history and service metadata.
How:   Field names are snake_case in Python and camelCase on the wire
       (alias_generator=to_camel). Routes dump models with by_alias=True
       before wrapping them in the response envelope.

Legacy field names:
    Older clients read `originalContent`, `summarizedContent` and `timestamp`.
    They are computed fields on SummaryRecordOut, derived from the canonical
    columns, so the database stores each value once.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from notes_summarizer.models.summary import SummaryRecord, as_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SummarizeRequest(CamelModel):
    """Body of POST /api/summarize. Length rules are applied by the Input Validator."""

    text: Optional[str] = Field(default=None, description="Text to summarize")


class HistoryUpdateRequest(CamelModel):
    """
    Body of PUT /api/history/{id}.

    Only text fields are editable; metadata such as filename or owner is not.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    original: Optional[str] = Field(default=None, description="Replacement original text")
    summary: Optional[str] = Field(default=None, description="Replacement summary")
    key_points: Optional[List[str]] = Field(default=None, description="Replacement key points")

    def changes(self) -> Dict[str, Any]:
        """Fields the client actually sent, keyed by snake_case name."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SummaryMetadata(CamelModel):
    """Size figures returned alongside a fresh summary."""

    original_length: int
    summary_length: int
    key_points_count: int
    word_count: int
    compression_ratio: int = Field(description="Percent reduction from original to summary length")
    persisted: bool = Field(description="Whether the result was saved to history")


class SummarizeResponse(CamelModel):
    id: Optional[uuid.UUID] = Field(default=None, description="History id, null if saving failed")
    original: str
    summary: str
    key_points: List[str]
    metadata: SummaryMetadata


class UploadMetadata(CamelModel):
    file_type: str
    file_type_description: str
    file_size: int
    processing_time_ms: int
    extracted_length: int
    summary_length: int
    key_points_count: int


class UploadResponse(CamelModel):
    filename: str
    extracted_text: str
    summary: str
    key_points: List[str]
    timestamp: datetime
    metadata: UploadMetadata


class SummaryRecordOut(CamelModel):
    """
    One history entry as returned by the history endpoints.

    Canonical fields: original, summary, keyPoints, createdAt.
    Legacy aliases:   originalContent, summarizedContent, timestamp.
    """

    id: uuid.UUID
    original: str
    summary: str
    key_points: List[str]
    source: str
    filename: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    word_count: int
    summary_word_count: int
    key_points_count: int
    schema_version: str
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="originalContent")
    @property
    def original_content(self) -> str:
        return self.original

    @computed_field(alias="summarizedContent")
    @property
    def summarized_content(self) -> str:
        return self.summary

    @computed_field(alias="timestamp")
    @property
    def timestamp(self) -> datetime:
        return self.created_at

    @classmethod
    def from_record(cls, record: SummaryRecord) -> "SummaryRecordOut":
        return cls(
            id=record.id,
            original=record.original_text,
            summary=record.summary,
            key_points=list(record.key_points or []),
            source=record.source,
            filename=record.filename,
            file_type=record.mime_type,
            file_size=record.file_size,
            word_count=record.word_count,
            summary_word_count=record.summary_word_count,
            key_points_count=record.key_points_count,
            schema_version=record.schema_version,
            created_at=as_utc(record.created_at),
            updated_at=as_utc(record.updated_at),
        )


class Pagination(CamelModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class HistoryPage(CamelModel):
    items: List[SummaryRecordOut]
    pagination: Pagination


class RecentActivity(CamelModel):
    last_7_days: int = Field(alias="last7Days")
    last_30_days: int = Field(alias="last30Days")


class HistoryStats(CamelModel):
    total_summaries: int
    total_words: int
    total_key_points: int
    average_words_per_summary: int
    file_types: Dict[str, int]
    recent_activity: RecentActivity


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    gemini: str = Field(description="Gemini API status: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
