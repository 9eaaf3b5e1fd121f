"""
Notes Summarizer - Google Gemini Summarizer
=============================================

What:  Summarizer implementation backed by the Google Gemini API.
How:   One `generate_content_async` call per request with the shared prompt;
       the reply goes through `parse_summary_reply`.
Who:   Constructed once by create_app() and injected into SummaryService.

Error classification:
    Provider errors are classified here, from the google.api_core exception
    type, into SummarizerError.cause:

        PermissionDenied, Unauthenticated      → configuration
        InvalidArgument mentioning the API key → configuration
        ResourceExhausted, TooManyRequests     → quota_exceeded
        InvalidArgument about input size       → input_too_long
        anything else                          → generic

    A missing API key is reported as `configuration` without calling out.
"""

import asyncio
import logging
import time

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from notes_summarizer.config import Settings
from notes_summarizer.exceptions import InvalidAIResponseError, SummarizerError
from notes_summarizer.services.llm_base import (
    Summarizer,
    SummaryResult,
    build_prompt,
    parse_summary_reply,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "your_gemini_api_key_here"

_INPUT_SIZE_HINTS = ("token", "too long", "too large", "exceeds", "payload size")


def classify_provider_error(error: Exception) -> str:
    """Map a Gemini SDK exception to a SummarizerError cause."""
    if isinstance(error, (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated)):
        return "configuration"
    if isinstance(error, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
        return "quota_exceeded"
    if isinstance(error, google_exceptions.InvalidArgument):
        detail = str(error).lower()
        if "api key" in detail or "api_key" in detail:
            return "configuration"
        if any(hint in detail for hint in _INPUT_SIZE_HINTS):
            return "input_too_long"
    return "generic"


class GeminiSummarizer(Summarizer):
    """
    Summarizes text with a Gemini model.

    Args:
        settings:  Source of the API key and model name.
        timeout:   Per-call request timeout passed to the SDK, in seconds.
    """

    def __init__(self, settings: Settings, timeout: float = 60.0):
        self.api_key = settings.gemini_api_key
        self.model_name = settings.gemini_model
        self.timeout = timeout
        if self.configured:
            genai.configure(api_key=self.api_key)
        self.model = genai.GenerativeModel(self.model_name)
        logger.info("GeminiSummarizer initialized with model=%s", self.model_name)

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_KEY

    async def summarize(self, text: str) -> SummaryResult:
        if not self.configured:
            raise SummarizerError(
                cause="configuration",
                context={"detail": "GEMINI_API_KEY is not set"},
            )

        start_time = time.perf_counter()
        try:
            response = await self.model.generate_content_async(
                build_prompt(text),
                request_options={"timeout": self.timeout},
            )
            # .text raises ValueError when the candidate was blocked or empty.
            raw = response.text
        except ValueError as e:
            logger.warning("Gemini returned no usable text: %s", e)
            raise InvalidAIResponseError(context={"detail": str(e)}) from e
        except Exception as e:
            cause = classify_provider_error(e)
            logger.error(
                "Gemini call failed after %.0fms (cause=%s): %s",
                (time.perf_counter() - start_time) * 1000,
                cause,
                e,
            )
            raise SummarizerError(
                cause=cause,
                context={"error_type": type(e).__name__},
            ) from e

        result = parse_summary_reply(raw)
        logger.info(
            "Gemini summary completed in %.0fms: %d chars in, %d chars summary, %d key points",
            (time.perf_counter() - start_time) * 1000,
            len(text),
            len(result.summary),
            len(result.key_points),
        )
        return result

    async def health_check(self) -> bool:
        """Lists models to verify the key and connectivity; consumes no tokens."""
        if not self.configured:
            return False
        try:
            models = await asyncio.to_thread(lambda: [m.name for m in genai.list_models()])
        except Exception as e:
            logger.warning("Gemini health check failed: %s", e)
            return False
        target = f"models/{self.model_name}"
        if target not in models:
            logger.warning("Configured model %s not found in available models", target)
        return True
