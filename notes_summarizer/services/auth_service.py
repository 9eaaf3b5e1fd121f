"""
Notes Summarizer - Authentication
===================================

What:  Self-issued JWTs, Google/Facebook token verification and the Auth
       Resolver that turns a request credential into an Identity.
How:   PyJWT (HS256) for our own tokens; google-auth for Google ID tokens;
       the Facebook Graph API (via httpx) for Facebook access tokens.
Who:   The auth routes issue tokens; every other route calls resolve_identity
       through a FastAPI dependency.

Identity variants:
    AuthenticatedUser  valid user token; history is scoped to the user
    GuestSession       valid guest token; sees the global scope
    Anonymous          no token, or an invalid/expired one

Resolution never fails a request. An invalid token is logged and treated as
Anonymous; endpoints that need a user call `require_user` instead.

Token payloads:
    user:   {userId, email, name, role: "user"}       lifetime 7 days
    guest:  {sessionId, createdAt, role: "guest"}     lifetime 1 hour
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple, Union

import httpx
import jwt
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from starlette.requests import Request

from notes_summarizer.config import Settings
from notes_summarizer.exceptions import AuthError, NotesSummarizerError

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_GUEST = "guest"

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


# ══════════════════════════════════════════════════════════════════════════
# Identity
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def owner_id(self) -> Optional[str]:
        return self.id


@dataclass(frozen=True)
class GuestSession:
    session_id: str
    expires_at: datetime

    @property
    def owner_id(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class Anonymous:
    @property
    def owner_id(self) -> Optional[str]:
        return None


Identity = Union[AuthenticatedUser, GuestSession, Anonymous]

ANONYMOUS = Anonymous()


# ══════════════════════════════════════════════════════════════════════════
# Self-issued tokens
# ══════════════════════════════════════════════════════════════════════════


class TokenService:
    """Issues and decodes the service's own JWTs."""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.guest_ttl = timedelta(seconds=settings.guest_token_ttl_seconds)
        self.user_ttl = timedelta(seconds=settings.user_token_ttl_seconds)

    def _encode(self, claims: Dict[str, Any], ttl: timedelta, now: datetime) -> str:
        if not self.secret:
            raise NotesSummarizerError(
                message="Authentication is not configured on this server.",
                context={"detail": "JWT_SECRET is not set"},
            )
        payload = dict(claims, iat=now, exp=now + ttl)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def issue_user_token(self, user_id: str, email: Optional[str], name: Optional[str]) -> str:
        now = datetime.now(timezone.utc)
        return self._encode(
            {"userId": user_id, "email": email, "name": name, "role": ROLE_USER},
            self.user_ttl,
            now,
        )

    def issue_guest_token(self) -> Tuple[str, GuestSession]:
        now = datetime.now(timezone.utc)
        session_id = f"guest_{int(time.time() * 1000)}_{secrets.token_hex(5)}"
        token = self._encode(
            {"role": ROLE_GUEST, "sessionId": session_id, "createdAt": now.isoformat()},
            self.guest_ttl,
            now,
        )
        # JWT exp has whole-second precision.
        expires_at = (now + self.guest_ttl).replace(microsecond=0)
        return token, GuestSession(session_id=session_id, expires_at=expires_at)

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry.

        Raises:
            jwt.InvalidTokenError (or a subclass such as ExpiredSignatureError)
        """
        if not self.secret:
            raise jwt.InvalidTokenError("JWT_SECRET is not set")
        return jwt.decode(token, self.secret, algorithms=[self.algorithm])


def resolve_identity(credential: Optional[str], tokens: TokenService) -> Identity:
    """Map a bearer credential to an Identity. Never raises."""
    if not credential:
        return ANONYMOUS

    try:
        claims = tokens.decode(credential)
    except jwt.ExpiredSignatureError:
        logger.info("Expired token presented; continuing as anonymous")
        return ANONYMOUS
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token presented; continuing as anonymous: %s", e)
        return ANONYMOUS

    role = claims.get("role")
    if role == ROLE_USER and claims.get("userId"):
        return AuthenticatedUser(
            id=str(claims["userId"]),
            email=claims.get("email"),
            display_name=claims.get("name"),
        )
    if role == ROLE_GUEST and claims.get("sessionId"):
        return GuestSession(
            session_id=str(claims["sessionId"]),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )

    logger.warning("Token with unexpected claims (role=%r); continuing as anonymous", role)
    return ANONYMOUS


def credential_from_request(request: Request, cookie_name: str) -> Optional[str]:
    """Bearer token from the Authorization header, else the auth cookie."""
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(cookie_name) or None


# ══════════════════════════════════════════════════════════════════════════
# Identity providers
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ProviderProfile:
    provider: str
    provider_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class GoogleVerifier:
    """Verifies Google ID tokens against the configured OAuth client id."""

    provider = "google"

    def __init__(self, client_id: str):
        self.client_id = client_id

    async def verify(self, token: str) -> ProviderProfile:
        if not self.client_id:
            raise AuthError("Google sign-in is not configured", context={"provider": "google"})
        try:
            # google-auth fetches Google's certificates with a blocking HTTP call.
            claims = await asyncio.to_thread(
                google_id_token.verify_oauth2_token,
                token,
                google_requests.Request(),
                self.client_id,
            )
        except ValueError as e:
            logger.warning("Google token rejected: %s", e)
            raise AuthError("Invalid Google token", context={"provider": "google"}) from e

        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise AuthError("Invalid Google token issuer", context={"provider": "google"})

        return ProviderProfile(
            provider=self.provider,
            provider_id=str(claims["sub"]),
            email=claims.get("email"),
            name=claims.get("name"),
            picture=claims.get("picture"),
        )


class FacebookVerifier:
    """
    Verifies Facebook user access tokens.

    1. GET /debug_token with an app access token confirms the user token is
       valid and was issued for this app.
    2. GET /me fetches the profile fields.
    """

    provider = "facebook"

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        graph_url: str = "https://graph.facebook.com",
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        timeout: float = 10.0,
    ):
        self.app_id = app_id
        self.app_secret = app_secret
        self.graph_url = graph_url.rstrip("/")
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=timeout))

    async def verify(self, token: str) -> ProviderProfile:
        if not (self.app_id and self.app_secret):
            raise AuthError("Facebook sign-in is not configured", context={"provider": "facebook"})

        async with self._client_factory() as client:
            try:
                debug = await client.get(
                    f"{self.graph_url}/debug_token",
                    params={
                        "input_token": token,
                        "access_token": f"{self.app_id}|{self.app_secret}",
                    },
                )
                debug.raise_for_status()
                data = debug.json().get("data") or {}
                if not data.get("is_valid") or str(data.get("app_id")) != str(self.app_id):
                    raise AuthError("Invalid Facebook token", context={"provider": "facebook"})

                me = await client.get(
                    f"{self.graph_url}/me",
                    params={"fields": "id,name,email,picture", "access_token": token},
                )
                me.raise_for_status()
                profile = me.json()
                provider_id = str(profile["id"])
            except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
                # Transport errors, non-JSON bodies and profiles without an id.
                logger.warning("Facebook verification failed: %s", e)
                raise AuthError("Invalid Facebook token", context={"provider": "facebook"}) from e

        picture = ((profile.get("picture") or {}).get("data") or {}).get("url")
        return ProviderProfile(
            provider=self.provider,
            provider_id=provider_id,
            email=profile.get("email"),
            name=profile.get("name"),
            picture=picture,
        )
