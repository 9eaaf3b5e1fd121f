"""
Notes Summarizer - Auth Routes
================================

POST /api/auth/verify   exchange a Google ID token or Facebook access token
                        for a 7-day session token
POST /api/auth/guest    start a 1-hour guest session
POST /api/auth/logout   clear the session cookie
GET  /api/auth/me       the signed-in user (401 otherwise)

Tokens are returned in the body and also set as an httpOnly cookie, so
browser clients can rely on the cookie and API clients on the
Authorization header.
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from notes_summarizer.config import Settings
from notes_summarizer.dependencies import get_settings, get_token_service, get_user_store, require_user
from notes_summarizer.exceptions import ValidationError
from notes_summarizer.responses import success_response
from notes_summarizer.schemas.auth import (
    AuthResult,
    CurrentUser,
    GuestResult,
    GuestUserOut,
    UserOut,
    VerifyRequest,
)
from notes_summarizer.schemas.envelope import ErrorEnvelope, SuccessEnvelope
from notes_summarizer.services.auth_service import AuthenticatedUser, TokenService
from notes_summarizer.services.user_service import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _set_auth_cookie(response: Response, settings: Settings, token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )


@router.post(
    "/verify",
    response_model=SuccessEnvelope,
    responses={
        400: {"description": "Missing or unsupported provider/token", "model": ErrorEnvelope},
        401: {"description": "Provider rejected the token", "model": ErrorEnvelope},
    },
    summary="Sign in with Google or Facebook",
)
async def verify(
    body: VerifyRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
    users: UserStore = Depends(get_user_store),
):
    if not body.provider or not body.token:
        raise ValidationError("Provider and token are required")

    verifier = request.app.state.verifiers.get(body.provider.lower())
    if verifier is None:
        raise ValidationError(
            f"Unsupported provider '{body.provider}'",
            field="provider",
            context={"supported": sorted(request.app.state.verifiers)},
        )

    profile = await verifier.verify(body.token)
    user = await users.upsert(profile)
    token = tokens.issue_user_token(str(user.id), user.email, user.name)
    logger.info("User %s signed in with %s", user.id, profile.provider)

    result = AuthResult(
        token=token,
        user=UserOut(
            id=str(user.id),
            email=user.email,
            name=user.name,
            picture=user.picture,
            provider=user.provider,
        ),
    )
    response = success_response(result)
    _set_auth_cookie(response, settings, token, settings.user_token_ttl_seconds)
    return response


@router.post(
    "/guest",
    response_model=SuccessEnvelope,
    summary="Start a guest session",
)
async def guest(
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
):
    token, session = tokens.issue_guest_token()
    result = GuestResult(
        token=token,
        user=GuestUserOut(session_id=session.session_id, expires_at=session.expires_at),
    )
    response = success_response(result)
    _set_auth_cookie(response, settings, token, settings.guest_token_ttl_seconds)
    return response


@router.post(
    "/logout",
    response_model=SuccessEnvelope,
    summary="Clear the session cookie",
)
async def logout(settings: Settings = Depends(get_settings)):
    response = success_response({"loggedOut": True})
    response.delete_cookie(settings.auth_cookie_name, path="/")
    return response


@router.get(
    "/me",
    response_model=SuccessEnvelope,
    responses={401: {"description": "Not signed in", "model": ErrorEnvelope}},
    summary="Current user",
)
async def me(user: AuthenticatedUser = Depends(require_user)):
    return success_response(CurrentUser(id=user.id, email=user.email, name=user.display_name))
