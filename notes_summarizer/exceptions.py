"""
Notes Summarizer - Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every failure the pipeline can hit.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers (registered in main.py) translate them into the
       uniform error envelope with the right HTTP status code.
Who:   Raised by services at the point of failure; caught by global handlers.

Exception Hierarchy:
    NotesSummarizerError (base)
    ├── ValidationError            → 400 Bad Request
    ├── AuthError                  → 401 Unauthorized
    ├── NotFoundError              → 404 Not Found
    ├── ExtractionError            → 422 Unprocessable Entity
    │   ├── UnsupportedTypeError
    │   └── EmptyResultError
    ├── SummarizerError            → 500 Internal Server Error
    │   └── InvalidAIResponseError
    └── DatabaseError              → 500 Internal Server Error

Extraction and summarizer failures carry a machine-readable classification
(`reason` / `cause`) decided where the failure happens, so handlers never
inspect message text.
"""

from typing import Any, Dict, Optional


class NotesSummarizerError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only selected keys are returned)
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotesSummarizerError):
    """
    Raised when client input fails validation.

    When:    Text out of bounds, no file, disallowed MIME type, oversized upload,
             unsafe filename, malformed update body.
    HTTP:    400 Bad Request
    """

    status_code = 400
    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(NotesSummarizerError):
    """
    Raised when an endpoint requires a signed-in user, or a provider token
    could not be verified during sign-in.

    HTTP:    401 Unauthorized
    """

    status_code = 401
    code = "authentication_required"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NotesSummarizerError):
    """
    Raised when a requested record does not exist or belongs to another owner.

    HTTP:    404 Not Found

    Cross-owner access produces exactly the same error as a missing record,
    so callers cannot probe for other users' ids.
    """

    status_code = 404
    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


# ── Extraction ────────────────────────────────────────────────────────────

class ExtractionError(NotesSummarizerError):
    """
    Raised when text could not be extracted from an uploaded file.

    Reasons:
        unsupported_type    - no converter for the declared MIME type
        corrupted           - the file could not be parsed
        password_protected  - encrypted PDF
        no_readable_text    - extraction succeeded but produced too little text
        engine_failure      - the OCR engine or a parser library itself failed

    HTTP:    422 Unprocessable Entity
    """

    status_code = 422
    code = "extraction_error"

    REASONS = frozenset(
        {"unsupported_type", "corrupted", "password_protected", "no_readable_text", "engine_failure"}
    )

    def __init__(
        self,
        message: str = "Failed to extract text from the file",
        reason: str = "engine_failure",
        filename: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if reason not in self.REASONS:
            raise ValueError(f"Unknown extraction reason: {reason}")
        ctx = context or {}
        ctx["reason"] = reason
        if filename:
            ctx["filename"] = filename
        super().__init__(message=message, context=ctx)
        self.reason = reason
        self.filename = filename


class UnsupportedTypeError(ExtractionError):
    """No converter handles the declared MIME type."""

    def __init__(
        self,
        mime_type: str,
        filename: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["mime_type"] = mime_type
        super().__init__(
            message=(
                f'Unsupported file type "{mime_type}". '
                "Please upload a PDF, Word document (.docx) or image file."
            ),
            reason="unsupported_type",
            filename=filename,
            context=ctx,
        )
        self.mime_type = mime_type


class EmptyResultError(ExtractionError):
    """Extraction ran but produced (almost) no text."""

    def __init__(
        self,
        message: str = "No readable text found in the file",
        filename: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            reason="no_readable_text",
            filename=filename,
            context=context,
        )


# ── Summarization ─────────────────────────────────────────────────────────

class SummarizerError(NotesSummarizerError):
    """
    Raised when the LLM call fails or its reply is unusable.

    Causes:
        configuration   - missing or rejected API key
        quota_exceeded  - provider quota or rate limit hit
        input_too_long  - provider rejected the input size
        generic         - anything else

    HTTP:    500 Internal Server Error
    """

    status_code = 500
    code = "summarization_error"

    CAUSES = frozenset({"configuration", "quota_exceeded", "input_too_long", "generic"})

    MESSAGES = {
        "configuration": "AI service configuration error. Please contact support.",
        "quota_exceeded": "AI service quota exceeded. Please try again later.",
        "input_too_long": "Text is too long for AI processing. Please shorten your text.",
        "generic": "Failed to generate summary. Please try again.",
    }

    def __init__(
        self,
        cause: str = "generic",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if cause not in self.CAUSES:
            raise ValueError(f"Unknown summarizer cause: {cause}")
        ctx = context or {}
        ctx["cause"] = cause
        super().__init__(message=message or self.MESSAGES[cause], context=ctx)
        self.cause = cause


class InvalidAIResponseError(SummarizerError):
    """The model replied, but the reply has no usable summary section."""

    code = "invalid_ai_response"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            cause="generic",
            message="AI service returned an unusable response. Please try again.",
            context=context,
        )


# ── Persistence ───────────────────────────────────────────────────────────

class DatabaseError(NotesSummarizerError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the underlying
    driver error is kept in `context` and logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
