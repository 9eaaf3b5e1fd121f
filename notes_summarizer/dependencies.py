"""
Notes Summarizer - FastAPI Dependencies
=========================================

Collaborators live on app.state (built once by create_app); these
dependencies hand them to route handlers, which keeps handlers free of
globals and lets tests build an app around fakes.
"""

from fastapi import Depends, Request

from notes_summarizer.config import Settings
from notes_summarizer.exceptions import AuthError
from notes_summarizer.services.auth_service import (
    AuthenticatedUser,
    Identity,
    TokenService,
    credential_from_request,
    resolve_identity,
)
from notes_summarizer.services.history_service import HistoryStore
from notes_summarizer.services.summary_service import SummaryService
from notes_summarizer.services.user_service import UserStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_history_store(request: Request) -> HistoryStore:
    return request.app.state.history_store


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_summary_service(request: Request) -> SummaryService:
    return request.app.state.summary_service


def get_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Resolve the caller; degrades to Anonymous instead of failing."""
    credential = credential_from_request(request, settings.auth_cookie_name)
    return resolve_identity(credential, tokens)


def require_user(identity: Identity = Depends(get_identity)) -> AuthenticatedUser:
    if not isinstance(identity, AuthenticatedUser):
        raise AuthError("Sign in to access this resource")
    return identity
