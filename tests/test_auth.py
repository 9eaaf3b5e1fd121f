"""
Notes Summarizer - Authentication Unit Tests
==============================================

What we test:
    ✅ Guest and user tokens carry the right claims and lifetimes
    ✅ resolve_identity degrades to Anonymous for missing/invalid/expired tokens
    ✅ Bearer header takes precedence over the auth cookie
    ✅ Google and Facebook verification (provider calls mocked)
    ✅ UserStore upsert matches on provider identity, then email
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import jwt
import pytest
from starlette.requests import Request

from notes_summarizer.config import Settings
from notes_summarizer.exceptions import AuthError, NotesSummarizerError
from notes_summarizer.services.auth_service import (
    ANONYMOUS,
    AuthenticatedUser,
    FacebookVerifier,
    GoogleVerifier,
    GuestSession,
    ProviderProfile,
    TokenService,
    credential_from_request,
    google_id_token,
    resolve_identity,
)
from notes_summarizer.services.user_service import UserStore


def make_request(headers=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestTokenService:

    def test_guest_token_claims(self, token_service, test_settings):
        before = datetime.now(timezone.utc)
        token, session = token_service.issue_guest_token()

        claims = jwt.decode(token, test_settings.jwt_secret, algorithms=["HS256"])
        assert claims["role"] == "guest"
        assert claims["sessionId"] == session.session_id
        assert session.session_id.startswith("guest_")
        assert claims["exp"] == int(session.expires_at.timestamp())
        lifetime = session.expires_at - before
        assert timedelta(minutes=59) < lifetime <= timedelta(hours=1, seconds=1)

    def test_guest_sessions_are_unique(self, token_service):
        _, a = token_service.issue_guest_token()
        _, b = token_service.issue_guest_token()
        assert a.session_id != b.session_id

    def test_user_token_claims(self, token_service):
        token = token_service.issue_user_token("u-42", "ada@example.com", "Ada")
        claims = token_service.decode(token)
        assert claims["userId"] == "u-42"
        assert claims["role"] == "user"
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600

    def test_missing_secret_cannot_issue(self, test_settings):
        tokens = TokenService(test_settings.model_copy(update={"jwt_secret": ""}))
        with pytest.raises(NotesSummarizerError):
            tokens.issue_guest_token()


class TestResolveIdentity:

    def test_no_credential(self, token_service):
        assert resolve_identity(None, token_service) is ANONYMOUS
        assert resolve_identity("", token_service) is ANONYMOUS

    def test_user_token(self, token_service):
        identity = resolve_identity(token_service.issue_user_token("u-1", "a@b.c", "A"), token_service)
        assert identity == AuthenticatedUser(id="u-1", email="a@b.c", display_name="A")
        assert identity.owner_id == "u-1"

    def test_guest_token_uses_global_scope(self, token_service):
        token, session = token_service.issue_guest_token()
        identity = resolve_identity(token, token_service)
        assert isinstance(identity, GuestSession)
        assert identity.session_id == session.session_id
        assert identity.owner_id is None

    def test_garbage_token(self, token_service):
        assert resolve_identity("not.a.jwt", token_service) is ANONYMOUS

    def test_wrong_signature(self, token_service):
        forged = jwt.encode({"userId": "u-1", "role": "user"}, "another-secret-of-sufficient-length", algorithm="HS256")
        assert resolve_identity(forged, token_service) is ANONYMOUS

    def test_expired_token(self, token_service, test_settings):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        expired = jwt.encode(
            {"userId": "u-1", "role": "user", "iat": past, "exp": past + timedelta(hours=1)},
            test_settings.jwt_secret,
            algorithm="HS256",
        )
        assert resolve_identity(expired, token_service) is ANONYMOUS

    def test_unknown_role(self, token_service, test_settings):
        token = jwt.encode({"role": "admin"}, test_settings.jwt_secret, algorithm="HS256")
        assert resolve_identity(token, token_service) is ANONYMOUS


class TestCredentialFromRequest:

    def test_bearer_header(self):
        request = make_request({"Authorization": "Bearer abc.def"})
        assert credential_from_request(request, "auth_token") == "abc.def"

    def test_cookie_fallback(self):
        request = make_request({"Cookie": "auth_token=from-cookie"})
        assert credential_from_request(request, "auth_token") == "from-cookie"

    def test_header_wins_over_cookie(self):
        request = make_request({"Authorization": "Bearer from-header", "Cookie": "auth_token=from-cookie"})
        assert credential_from_request(request, "auth_token") == "from-header"

    def test_non_bearer_scheme_ignored(self):
        request = make_request({"Authorization": "Basic dXNlcjpwYXNz"})
        assert credential_from_request(request, "auth_token") is None


class TestGoogleVerifier:

    @pytest.mark.asyncio
    async def test_valid_token(self):
        claims = {
            "iss": "https://accounts.google.com",
            "sub": "1234567890",
            "email": "ada@example.com",
            "name": "Ada Lovelace",
            "picture": "https://example.com/ada.png",
        }
        with patch.object(google_id_token, "verify_oauth2_token", return_value=claims) as verify:
            profile = await GoogleVerifier("client-id").verify("id-token")

        assert profile == ProviderProfile(
            provider="google",
            provider_id="1234567890",
            email="ada@example.com",
            name="Ada Lovelace",
            picture="https://example.com/ada.png",
        )
        assert verify.call_args.args[0] == "id-token"
        assert verify.call_args.args[2] == "client-id"

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        with patch.object(google_id_token, "verify_oauth2_token", side_effect=ValueError("Token expired")):
            with pytest.raises(AuthError):
                await GoogleVerifier("client-id").verify("id-token")

    @pytest.mark.asyncio
    async def test_wrong_issuer(self):
        with patch.object(google_id_token, "verify_oauth2_token", return_value={"iss": "evil.com", "sub": "1"}):
            with pytest.raises(AuthError):
                await GoogleVerifier("client-id").verify("id-token")

    @pytest.mark.asyncio
    async def test_not_configured(self):
        with pytest.raises(AuthError):
            await GoogleVerifier("").verify("id-token")


def facebook_verifier(handler):
    return FacebookVerifier(
        "app-1",
        "app-secret",
        client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestFacebookVerifier:

    @pytest.mark.asyncio
    async def test_valid_token(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            if request.url.path == "/debug_token":
                assert request.url.params["access_token"] == "app-1|app-secret"
                return httpx.Response(200, json={"data": {"is_valid": True, "app_id": "app-1"}})
            return httpx.Response(200, json={
                "id": "fb-77",
                "name": "Grace Hopper",
                "email": "grace@example.com",
                "picture": {"data": {"url": "https://example.com/grace.jpg"}},
            })

        profile = await facebook_verifier(handler).verify("user-access-token")

        assert seen == ["/debug_token", "/me"]
        assert profile.provider == "facebook"
        assert profile.provider_id == "fb-77"
        assert profile.picture == "https://example.com/grace.jpg"

    @pytest.mark.asyncio
    async def test_token_for_another_app(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"is_valid": True, "app_id": "someone-else"}})

        with pytest.raises(AuthError):
            await facebook_verifier(handler).verify("user-access-token")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "me_response",
        [
            httpx.Response(200, text="<html>maintenance</html>"),
            httpx.Response(200, json={"name": "No Id"}),
        ],
    )
    async def test_malformed_profile_is_auth_error(self, me_response):
        def handler(request):
            if request.url.path == "/debug_token":
                return httpx.Response(200, json={"data": {"is_valid": True, "app_id": "app-1"}})
            return me_response

        with pytest.raises(AuthError):
            await facebook_verifier(handler).verify("user-access-token")

    @pytest.mark.asyncio
    async def test_non_json_debug_token_is_auth_error(self):
        def handler(request):
            return httpx.Response(200, text="not json")

        with pytest.raises(AuthError):
            await facebook_verifier(handler).verify("user-access-token")

    @pytest.mark.asyncio
    async def test_graph_api_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "Invalid OAuth access token."}})

        with pytest.raises(AuthError):
            await facebook_verifier(handler).verify("user-access-token")


class TestUserStore:

    @pytest.mark.asyncio
    async def test_creates_then_reuses(self, database):
        users = UserStore(database)
        profile = ProviderProfile(provider="google", provider_id="g-1", email="ada@example.com", name="Ada")

        first = await users.upsert(profile)
        second = await users.upsert(ProviderProfile(provider="google", provider_id="g-1", name="Ada L."))

        assert first.id == second.id
        assert second.name == "Ada L."
        assert second.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_matches_by_email_across_providers(self, database):
        users = UserStore(database)
        google = await users.upsert(ProviderProfile(provider="google", provider_id="g-1", email="ada@example.com"))
        facebook = await users.upsert(ProviderProfile(provider="facebook", provider_id="fb-1", email="ada@example.com"))

        assert facebook.id == google.id
        assert facebook.provider == "facebook"

    @pytest.mark.asyncio
    async def test_distinct_people(self, database):
        users = UserStore(database)
        a = await users.upsert(ProviderProfile(provider="google", provider_id="g-1", email="a@example.com"))
        b = await users.upsert(ProviderProfile(provider="google", provider_id="g-2", email="b@example.com"))
        assert a.id != b.id


def test_settings_reject_unknown_algorithm():
    with pytest.raises(ValueError):
        Settings(jwt_algorithm="none")
