"""
Notes Summarizer - FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds every collaborator explicitly (database, stores,
       extractor, summarizer, token service, identity providers), stores them
       on app.state, then registers middleware, routes and exception handlers.
Who:   uvicorn loads `notes_summarizer.main:app`; tests call create_app()
       with fakes injected.

Application Architecture:
    ┌────────────────────────────────────────────────────────────┐
    │                       FastAPI App                          │
    │                                                            │
    │  Middleware:  Request ID → Logging → GZip → CORS           │
    │                                                            │
    │  Routes:                                                   │
    │    POST /api/summarize       POST /api/notes/upload        │
    │    /api/history[...]         /api/auth/[verify|guest|...]  │
    │    GET /health                                             │
    │                                                            │
    │  Exception Handlers (all produce the error envelope):      │
    │    Validation→400  Auth→401  NotFound→404  Extraction→422  │
    │    Summarizer→500  Database→500  anything else→500         │
    └────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate configuration (logged, not fatal)
    Shutdown: dispose the database engine
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from notes_summarizer import __version__
from notes_summarizer.config import Settings, settings as default_settings
from notes_summarizer.database import Database
from notes_summarizer.exceptions import (
    AuthError,
    DatabaseError,
    ExtractionError,
    NotesSummarizerError,
    NotFoundError,
    SummarizerError,
    ValidationError,
)
from notes_summarizer.middleware.logging import RequestLoggingMiddleware
from notes_summarizer.middleware.request_id import RequestIDMiddleware, current_request_id
from notes_summarizer.responses import error_response
from notes_summarizer.routes import auth, health, history, notes, summarize
from notes_summarizer.services.auth_service import FacebookVerifier, GoogleVerifier, TokenService
from notes_summarizer.services.gemini_service import GeminiSummarizer
from notes_summarizer.services.history_service import HistoryStore
from notes_summarizer.services.llm_base import Summarizer
from notes_summarizer.services.summary_service import SummaryService
from notes_summarizer.services.text_extractor import TextExtractor
from notes_summarizer.services.user_service import UserStore
from notes_summarizer.services.validation import InputValidator

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("pypdf").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Notes Summarizer %s starting up (environment=%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and history still work without Gemini.
        logger.error("Configuration error: %s", e)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Notes Summarizer shutting down...")
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the error envelope.

    Handler hierarchy:
        ValidationError, RequestValidationError → 400
        AuthError                               → 401
        NotFoundError                           → 404
        ExtractionError (and subclasses)        → 422
        SummarizerError (and subclasses)        → 500
        DatabaseError                           → 500, generic message
        HTTPException (unknown route, method)   → its own status
        Exception (fallback)                    → 500

    Stack traces appear in the response only outside production.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = current_request_id(request)
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return error_response(exc.code, exc.message, 400, exc.context, rid)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = current_request_id(request)
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", rid, errors)
        return error_response("validation_error", "Invalid request", 400, {"errors": errors}, rid)

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        rid = current_request_id(request)
        logger.info("[%s] Authentication error: %s", rid, exc.message)
        return error_response(
            exc.code, exc.message, 401, None, rid,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = current_request_id(request)
        return error_response(exc.code, exc.message, 404, None, rid)

    @app.exception_handler(ExtractionError)
    async def handle_extraction_error(request: Request, exc: ExtractionError):
        rid = current_request_id(request)
        logger.warning("[%s] Extraction failed (%s): %s", rid, exc.reason, exc.message)
        details = {"reason": exc.reason}
        if exc.filename:
            details["filename"] = exc.filename
        return error_response(exc.code, exc.message, 422, details, rid)

    @app.exception_handler(SummarizerError)
    async def handle_summarizer_error(request: Request, exc: SummarizerError):
        rid = current_request_id(request)
        logger.error("[%s] Summarizer error (%s): %s | Context: %s", rid, exc.cause, exc.message, exc.context)
        return error_response(exc.code, exc.message, 500, {"cause": exc.cause}, rid)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = current_request_id(request)
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(
            "server_error",
            "An internal error occurred. Please try again later.",
            500,
            None,
            rid,
        )

    @app.exception_handler(NotesSummarizerError)
    async def handle_app_error(request: Request, exc: NotesSummarizerError):
        rid = current_request_id(request)
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return error_response(exc.code, exc.message, exc.status_code, None, rid)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        rid = current_request_id(request)
        codes = {404: "not_found", 405: "method_not_allowed"}
        return error_response(
            codes.get(exc.status_code, "http_error"),
            str(exc.detail),
            exc.status_code,
            None,
            rid,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = current_request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        details = None
        if not app.state.settings.is_production:
            details = {
                "type": type(exc).__name__,
                "trace": traceback.format_exception(type(exc), exc, exc.__traceback__),
            }
        return error_response(
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
            500,
            details,
            rid,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    summarizer: Optional[Summarizer] = None,
    extractor: Optional[TextExtractor] = None,
    verifiers: Optional[Dict[str, object]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Every argument is optional; anything not supplied is built from settings.
    Tests pass fakes for the summarizer, extractor and identity providers.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Notes Summarizer API",
        description=(
            "Summarize pasted text or uploaded documents (PDF, DOCX, images) into a short "
            "summary and hierarchical key points with Google Gemini, and keep a history."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Collaborators ─────────────────────────────────────────────────────
    database = database or Database.from_settings(settings)
    summarizer = summarizer or GeminiSummarizer(settings)
    extractor = extractor or TextExtractor(settings)
    history_store = HistoryStore(database)

    app.state.settings = settings
    app.state.database = database
    app.state.summarizer = summarizer
    app.state.extractor = extractor
    app.state.history_store = history_store
    app.state.user_store = UserStore(database)
    app.state.token_service = TokenService(settings)
    app.state.verifiers = verifiers if verifiers is not None else {
        "google": GoogleVerifier(settings.google_client_id),
        "facebook": FacebookVerifier(
            settings.facebook_app_id,
            settings.facebook_app_secret,
            settings.facebook_graph_url,
        ),
    }
    app.state.summary_service = SummaryService(
        validator=InputValidator(settings),
        extractor=extractor,
        summarizer=summarizer,
        history=history_store,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(summarize.router)
    app.include_router(notes.router)
    app.include_router(history.router)
    app.include_router(auth.router)
    app.include_router(health.router)

    register_exception_handlers(app)

    return app


app = create_app()
