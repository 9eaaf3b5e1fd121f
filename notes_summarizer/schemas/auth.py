"""Request/response schemas for the auth endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from notes_summarizer.schemas.summary import CamelModel


class VerifyRequest(CamelModel):
    provider: Optional[str] = Field(default=None, description="google or facebook")
    token: Optional[str] = Field(default=None, description="Provider ID token or access token")


class UserOut(CamelModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    provider: Optional[str] = None


class AuthResult(CamelModel):
    token: str
    user: UserOut


class GuestUserOut(CamelModel):
    role: str = "guest"
    session_id: str
    expires_at: datetime


class GuestResult(CamelModel):
    token: str
    user: GuestUserOut


class CurrentUser(CamelModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = "user"
