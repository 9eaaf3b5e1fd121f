"""
Notes Summarizer - Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before any application import so the
       module-level Settings never point at a real database or API key.

Fixture Hierarchy (all function-scoped):
    ├── test_settings:     Settings built from the test environment
    ├── database:          File-backed SQLite (aiosqlite) with tables created
    ├── history_store:     HistoryStore over `database`
    ├── fake_summarizer:   Summarizer returning a canned result, recording calls
    ├── ocr_workers:       Factory for FakeOcrWorker, remembers every worker it built
    ├── extractor:         TextExtractor wired to `ocr_workers`
    ├── app / test_client: create_app() with the fakes, plus an httpx AsyncClient
    └── auth_headers:      Bearer header for a signed-in test user
"""

import io
import os

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["JWT_SECRET"] = "test-secret-that-is-long-enough-for-hs256"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import List, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from notes_summarizer.config import Settings  # noqa: E402
from notes_summarizer.database import Database  # noqa: E402
from notes_summarizer.services.auth_service import TokenService  # noqa: E402
from notes_summarizer.services.history_service import HistoryStore  # noqa: E402
from notes_summarizer.services.llm_base import Summarizer, SummaryResult  # noqa: E402
from notes_summarizer.services.text_extractor import OcrResult, TextExtractor  # noqa: E402

CANNED_SUMMARY = SummaryResult(
    summary="Photosynthesis converts light into chemical energy in plants.",
    key_points=[
        "1. Light reactions occur in the thylakoids",
        "1.1 Water is split and oxygen released",
        "2. The Calvin cycle fixes carbon dioxide",
    ],
)

SAMPLE_TEXT = (
    "Photosynthesis is the process by which green plants use sunlight to "
    "synthesize foods from carbon dioxide and water."
)


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════


class FakeSummarizer(Summarizer):
    """Returns `result` (or raises `error`) and records every input."""

    def __init__(self, result: SummaryResult = CANNED_SUMMARY, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[str] = []
        self.healthy = True

    async def summarize(self, text: str) -> SummaryResult:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.result

    async def health_check(self) -> bool:
        return self.healthy


class FakeOcrWorker:
    """Stands in for TesseractWorker; counts terminate() calls."""

    def __init__(self, text: str = "", error: Optional[Exception] = None, confidence: float = 90.0):
        self.text = text
        self.error = error
        self.confidence = confidence
        self.recognized: List[bytes] = []
        self.terminate_calls = 0

    def recognize(self, content: bytes) -> OcrResult:
        self.recognized.append(content)
        if self.error is not None:
            raise self.error
        return OcrResult(text=self.text, confidence=self.confidence)

    def terminate(self) -> None:
        self.terminate_calls += 1


class OcrWorkerFactory:
    """Callable worker factory; configure `text`/`error` before extraction runs."""

    def __init__(self):
        self.text = "Handwritten lecture notes about cell biology."
        self.error: Optional[Exception] = None
        self.workers: List[FakeOcrWorker] = []

    def __call__(self) -> FakeOcrWorker:
        worker = FakeOcrWorker(text=self.text, error=self.error)
        self.workers.append(worker)
        return worker


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def test_settings() -> Settings:
    return Settings()


@pytest_asyncio.fixture
async def database(tmp_path, test_settings):
    """
    A fresh file-backed SQLite database per test.

    File-backed rather than :memory: so concurrent sessions each get their
    own connection, as they would against PostgreSQL.
    """
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", test_settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def history_store(database) -> HistoryStore:
    return HistoryStore(database)


@pytest.fixture
def fake_summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def ocr_workers() -> OcrWorkerFactory:
    return OcrWorkerFactory()


@pytest.fixture
def extractor(test_settings, ocr_workers) -> TextExtractor:
    return TextExtractor(test_settings, worker_factory=ocr_workers)


@pytest.fixture
def token_service(test_settings) -> TokenService:
    return TokenService(test_settings)


@pytest.fixture
def app(test_settings, database, fake_summarizer, extractor):
    from notes_summarizer.main import create_app

    return create_app(
        test_settings,
        database=database,
        summarizer=fake_summarizer,
        extractor=extractor,
    )


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Background tasks finish before the client returns the response.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(token_service):
    token = token_service.issue_user_token("user-1", "ada@example.com", "Ada")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_user_headers(token_service):
    token = token_service.issue_user_token("user-2", "grace@example.com", "Grace")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def docx_bytes() -> bytes:
    """A small .docx with a paragraph and a two-column table."""
    from docx import Document

    document = Document()
    document.add_paragraph("Meeting notes for the quarterly planning session.")
    document.add_paragraph("")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Owner"
    table.rows[0].cells[1].text = "Budget review"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (32, 32), color="white").save(buffer, format="PNG")
    return buffer.getvalue()
