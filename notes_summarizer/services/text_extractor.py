"""
Notes Summarizer - Text Extractor
===================================

What:  Turns an uploaded document's bytes into plain text.
How:   Routes on the exact declared MIME type to one of three converters:
           application/pdf      → pypdf, page by page
           DOCX                 → python-docx, paragraphs then table rows
           image/*              → pytesseract OCR on a Pillow image
       All three libraries are synchronous, so each conversion runs in a
       worker thread via asyncio.to_thread and the event loop stays free.
Who:   Called by SummaryService for the upload pipeline only.

Failure classification:
    Every failure leaves this module as an ExtractionError whose `reason`
    is decided here, where the library exception is still in hand:
        unsupported_type, corrupted, password_protected,
        no_readable_text, engine_failure
    The message names the file and suggests what to try instead.

OCR worker lifecycle:
    Recognition uses a TesseractWorker acquired through `ocr_worker()`.
    The worker is terminated exactly once on every exit path, including
    when recognition raises. Tests inject a fake via `worker_factory`.
"""

import asyncio
import io
import logging
import re
import zipfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional

import pytesseract
from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader
from pypdf.errors import DependencyError, FileNotDecryptedError, PdfReadError

from notes_summarizer.config import Settings
from notes_summarizer.exceptions import (
    EmptyResultError,
    ExtractionError,
    UnsupportedTypeError,
)
from notes_summarizer.services.validation import (
    DOCX_MIME,
    IMAGE_MIME_TYPES,
    PDF_MIME,
    describe_file_type,
    format_size,
)

logger = logging.getLogger(__name__)

# Page segmentation mode 1: automatic layout analysis with orientation detection.
TESSERACT_CONFIG = "--psm 1 -c preserve_interword_spaces=1"

# Below this mean word confidence the OCR text is still returned, with a warning.
LOW_CONFIDENCE_THRESHOLD = 30.0


# ══════════════════════════════════════════════════════════════════════════
# Whitespace normalization
# ══════════════════════════════════════════════════════════════════════════

_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def normalize_whitespace(text: str) -> str:
    """
    Normalize extracted text.

    CRLF and CR become LF, runs of horizontal whitespace collapse to a single
    space, each line is stripped, three or more newlines are capped at two,
    and the whole text is trimmed.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


# ══════════════════════════════════════════════════════════════════════════
# OCR worker
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class OcrResult:
    text: str
    confidence: Optional[float] = None


class TesseractWorker:
    """
    Thin wrapper around pytesseract that owns the images it opens.

    `terminate()` closes every image the worker opened. It is idempotent so a
    second call is harmless, but callers are expected to call it once.
    """

    def __init__(self, language: str = "eng"):
        self.language = language
        self._images: List[Image.Image] = []
        self.terminated = False

    def recognize(self, content: bytes) -> OcrResult:
        image = Image.open(io.BytesIO(content))
        self._images.append(image)
        # Palette and CMYK images confuse tesseract's binarization.
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
            self._images.append(image)

        text = pytesseract.image_to_string(image, lang=self.language, config=TESSERACT_CONFIG)
        data = pytesseract.image_to_data(
            image,
            lang=self.language,
            config=TESSERACT_CONFIG,
            output_type=pytesseract.Output.DICT,
        )
        scores = [float(c) for c in data.get("conf", []) if float(c) >= 0]
        confidence = sum(scores) / len(scores) if scores else None
        return OcrResult(text=text, confidence=confidence)

    def terminate(self) -> None:
        for image in self._images:
            image.close()
        self._images.clear()
        self.terminated = True


# ══════════════════════════════════════════════════════════════════════════
# Extractor
# ══════════════════════════════════════════════════════════════════════════


class TextExtractor:
    """
    Converts PDF, DOCX and image uploads into normalized plain text.

    Args:
        settings:        Source of the OCR language, tesseract path and the
                         minimum useful text length.
        worker_factory:  Builds an OCR worker; defaults to TesseractWorker.
    """

    def __init__(
        self,
        settings: Settings,
        worker_factory: Optional[Callable[[], TesseractWorker]] = None,
    ):
        self.settings = settings
        self.min_length = settings.min_extracted_length
        if settings.tesseract_cmd:
            # Process-wide pytesseract setting; configured once per extractor.
            pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd
        self._worker_factory = worker_factory or (
            lambda: TesseractWorker(settings.ocr_language)
        )

    async def extract(self, content: bytes, mime_type: str, filename: str) -> str:
        """
        Extract normalized text from a file.

        Raises:
            UnsupportedTypeError  before any parsing when no converter matches
            EmptyResultError      when fewer than min_extracted_length characters remain
            ExtractionError       for every other failure, with a classified reason
        """
        if mime_type == PDF_MIME:
            converter = self._extract_pdf
        elif mime_type == DOCX_MIME:
            converter = self._extract_docx
        elif mime_type in IMAGE_MIME_TYPES:
            converter = self._extract_image
        else:
            raise UnsupportedTypeError(mime_type, filename=filename)

        logger.info(
            "Extracting text from %s (%s, %d bytes)",
            filename, mime_type, len(content),
        )
        try:
            raw = await converter(content, filename)
        except ExtractionError:
            raise
        except Exception as e:
            logger.error("Extraction of %s failed unexpectedly: %s", filename, e, exc_info=True)
            raise ExtractionError(
                message=(
                    f'Failed to process "{filename}". Please try again, '
                    "or copy the text and paste it instead."
                ),
                reason="engine_failure",
                filename=filename,
                context={"error_type": type(e).__name__},
            ) from e

        text = normalize_whitespace(raw)
        if len(text) < self.min_length:
            raise EmptyResultError(
                message=self._empty_message(mime_type, filename),
                filename=filename,
                context={"extracted_length": len(text)},
            )

        logger.info("Extracted %d characters from %s", len(text), filename)
        return text

    # ── PDF ───────────────────────────────────────────────────────────────

    async def _extract_pdf(self, content: bytes, filename: str) -> str:
        return await asyncio.to_thread(self._read_pdf, content, filename)

    def _read_pdf(self, content: bytes, filename: str) -> str:
        try:
            reader = PdfReader(io.BytesIO(content))
            if reader.is_encrypted and not reader.decrypt(""):
                raise self._password_protected(filename)
            pages = list(reader.pages)
        except FileNotDecryptedError as e:
            raise self._password_protected(filename) from e
        except DependencyError as e:
            # AES decryption needs the cryptography backend (pypdf[crypto]).
            logger.error("Cannot decrypt %s, PDF crypto backend missing: %s", filename, e)
            raise ExtractionError(
                message=(
                    f'Encrypted PDFs such as "{filename}" cannot be processed right now. '
                    "Please try again later, or copy the text and paste it instead."
                ),
                reason="engine_failure",
                filename=filename,
                context={"detail": str(e)},
            ) from e
        except PdfReadError as e:
            raise ExtractionError(
                message=(
                    f'The PDF "{filename}" appears to be corrupted or unreadable. '
                    "Try re-exporting it as PDF, or upload the pages as images."
                ),
                reason="corrupted",
                filename=filename,
                context={"detail": str(e)},
            ) from e

        texts = []
        for number, page in enumerate(pages, start=1):
            # One damaged page should not lose the rest of the document.
            try:
                texts.append(page.extract_text() or "")
            except Exception as e:
                logger.warning("Skipping page %d of %s: %s", number, filename, e)
        logger.debug("Read %d/%d pages from %s", len(texts), len(pages), filename)
        return "\n\n".join(texts)

    @staticmethod
    def _password_protected(filename: str) -> ExtractionError:
        return ExtractionError(
            message=(
                f'"{filename}" is password-protected. Password-protected PDFs are not '
                "supported; remove the password and upload it again."
            ),
            reason="password_protected",
            filename=filename,
        )

    # ── DOCX ──────────────────────────────────────────────────────────────

    async def _extract_docx(self, content: bytes, filename: str) -> str:
        return await asyncio.to_thread(self._read_docx, content, filename)

    def _read_docx(self, content: bytes, filename: str) -> str:
        try:
            document = Document(io.BytesIO(content))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
            raise ExtractionError(
                message=(
                    f'The Word document "{filename}" could not be read. '
                    "Save it again as .docx, or copy the text and paste it instead."
                ),
                reason="corrupted",
                filename=filename,
                context={"detail": str(e)},
            ) from e

        parts = [p.text for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells: List[str] = []
                for cell in row.cells:
                    value = cell.text.strip()
                    # Merged cells are reported once per grid column.
                    if value and (not cells or cells[-1] != value):
                        cells.append(value)
                if cells:
                    parts.append(" | ".join(cells))
        return "\n".join(parts)

    # ── Images (OCR) ──────────────────────────────────────────────────────

    @asynccontextmanager
    async def ocr_worker(self) -> AsyncIterator[TesseractWorker]:
        """Acquire an OCR worker; it is terminated once when the block exits."""
        worker = self._worker_factory()
        try:
            yield worker
        finally:
            try:
                await asyncio.to_thread(worker.terminate)
            except Exception as e:
                # Raising here would hide the recognition error, if any.
                logger.warning("OCR worker did not terminate cleanly: %s", e)

    async def _extract_image(self, content: bytes, filename: str) -> str:
        async with self.ocr_worker() as worker:
            try:
                result = await asyncio.to_thread(worker.recognize, content)
            except UnidentifiedImageError as e:
                raise ExtractionError(
                    message=(
                        f'The image "{filename}" could not be opened. It may be corrupted; '
                        "try saving it again as PNG or JPEG."
                    ),
                    reason="corrupted",
                    filename=filename,
                ) from e
            except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as e:
                logger.error("Tesseract failed on %s: %s", filename, e)
                raise ExtractionError(
                    message=(
                        f'Text recognition is unavailable for "{filename}" right now. '
                        "Please try again later, or paste the text directly."
                    ),
                    reason="engine_failure",
                    filename=filename,
                ) from e

        if result.confidence is not None and result.confidence < LOW_CONFIDENCE_THRESHOLD:
            logger.warning(
                "Low OCR confidence for %s: %.1f%% (text may be inaccurate)",
                filename, result.confidence,
            )
        return result.text

    # ── Messages & capabilities ───────────────────────────────────────────

    @staticmethod
    def _empty_message(mime_type: str, filename: str) -> str:
        if mime_type == PDF_MIME:
            return (
                f'No readable text found in "{filename}". It may be a scanned document; '
                "try uploading the pages as images so they can be read with OCR."
            )
        if mime_type in IMAGE_MIME_TYPES:
            return (
                f'No readable text found in the image "{filename}". Try a clearer, '
                "higher-resolution photo with good contrast."
            )
        return (
            f'No readable text found in "{filename}". Make sure the document '
            "contains text, or paste the text directly."
        )

    def capabilities(self) -> dict:
        """Supported formats and limits, as shown to clients."""
        formats = [
            {"mimeType": PDF_MIME, "description": describe_file_type(PDF_MIME), "method": "text_layer"},
            {"mimeType": DOCX_MIME, "description": describe_file_type(DOCX_MIME), "method": "document_text"},
        ]
        formats.extend(
            {"mimeType": mime, "description": describe_file_type(mime), "method": "ocr"}
            for mime in sorted(IMAGE_MIME_TYPES)
        )
        return {
            "supportedFormats": formats,
            "maxFileSize": self.settings.max_file_size,
            "maxFileSizeLabel": format_size(self.settings.max_file_size),
            "minExtractedLength": self.min_length,
            "ocrLanguage": self.settings.ocr_language,
            "passwordProtectedPdf": False,
        }
