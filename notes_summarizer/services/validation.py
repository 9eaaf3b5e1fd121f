"""
Notes Summarizer - Input Validator
====================================

What:  Checks pasted text and uploaded files against static policy.
How:   Pure checks with no I/O; every failure raises ValidationError (HTTP 400).
Who:   Called by SummaryService before anything expensive happens.
When:  First step of both the summarize and upload pipelines, so rejected
       input never reaches the extractor or the LLM.

Policy (defaults, all configurable through Settings):
    Pasted text:  10 to 50,000 characters after trimming
    Files:        at most 10MB, non-empty, MIME type in ALLOWED_MIME_TYPES,
                  filename present, at most 255 characters, no unsafe characters
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from notes_summarizer.config import Settings
from notes_summarizer.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/bmp",
        "image/tiff",
        "image/webp",
    }
)

ALLOWED_MIME_TYPES = frozenset({PDF_MIME, DOCX_MIME}) | IMAGE_MIME_TYPES

FILE_TYPE_DESCRIPTIONS = {
    PDF_MIME: "PDF Document",
    DOCX_MIME: "Word Document",
    "image/jpeg": "JPEG Image",
    "image/jpg": "JPEG Image",
    "image/png": "PNG Image",
    "image/gif": "GIF Image",
    "image/bmp": "BMP Image",
    "image/tiff": "TIFF Image",
    "image/webp": "WebP Image",
}

# Path separators, shell/Windows reserved characters and ASCII control characters.
UNSAFE_FILENAME_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def describe_file_type(mime_type: Optional[str]) -> str:
    """Human-readable name for a MIME type ("Unknown File Type" if not recognised)."""
    return FILE_TYPE_DESCRIPTIONS.get(mime_type or "", "Unknown File Type")


def format_size(num_bytes: int) -> str:
    return f"{num_bytes / (1024 * 1024):.1f}MB"


@dataclass(frozen=True)
class UploadedFile:
    """
    An uploaded file held in memory for the duration of one request.

    Never written to disk; the buffer is dropped when the request ends.
    """

    content: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


class InputValidator:
    """
    Validates user input before it enters the pipeline.

    Stateless apart from the limits read from Settings at construction time.
    """

    def __init__(self, settings: Settings):
        self.min_text_length = settings.min_text_length
        self.max_text_length = settings.max_text_length
        self.max_file_size = settings.max_file_size
        self.max_filename_length = settings.max_filename_length

    def validate_text(self, text: Optional[str]) -> str:
        """
        Validate pasted text.

        Returns:
            The trimmed text that should be summarized.
        Raises:
            ValidationError if the text is missing, empty, too short or too long.
        """
        if text is None or not isinstance(text, str):
            raise ValidationError("Text is required", field="text")

        trimmed = text.strip()
        if not trimmed:
            raise ValidationError("Text cannot be empty", field="text")

        if len(trimmed) < self.min_text_length:
            raise ValidationError(
                f"Text must be at least {self.min_text_length} characters long",
                field="text",
                context={"length": len(trimmed), "min_length": self.min_text_length},
            )

        if len(trimmed) > self.max_text_length:
            raise ValidationError(
                f"Text is too long. Maximum {self.max_text_length:,} characters allowed.",
                field="text",
                context={"length": len(trimmed), "max_length": self.max_text_length},
            )

        return trimmed

    def validate_file(self, upload: Optional[UploadedFile]) -> UploadedFile:
        """
        Validate an uploaded file's presence, size, MIME type and filename.

        Order matters only for which message the client sees first; all checks
        are cheap and none reads the file content beyond its length.
        """
        if upload is None:
            raise ValidationError("No file uploaded", field="file")

        if upload.size == 0:
            raise ValidationError(
                "Empty file provided",
                field="file",
                context={"filename": upload.filename},
            )

        if upload.size > self.max_file_size:
            raise ValidationError(
                f"File too large. Maximum size is {format_size(self.max_file_size)}",
                field="file",
                context={
                    "filename": upload.filename,
                    "size": upload.size,
                    "max_size": self.max_file_size,
                },
            )

        if upload.mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                f"Unsupported file type: {upload.mime_type or 'unknown'}. "
                "Supported: PDF, DOCX, JPEG, PNG, GIF, BMP, TIFF, WebP",
                field="file",
                context={
                    "mime_type": upload.mime_type,
                    "allowed_types": sorted(ALLOWED_MIME_TYPES),
                },
            )

        self.validate_filename(upload.filename)
        return upload

    def validate_filename(self, filename: Optional[str]) -> str:
        if not filename or not filename.strip():
            raise ValidationError("Filename is required", field="file")

        if len(filename) > self.max_filename_length:
            raise ValidationError(
                f"Filename too long. Maximum {self.max_filename_length} characters allowed",
                field="file",
                context={"length": len(filename)},
            )

        if UNSAFE_FILENAME_PATTERN.search(filename):
            raise ValidationError(
                "Filename contains invalid characters",
                field="file",
                context={"filename": filename},
            )

        return filename
