"""
Session-related Pydantic models.
"""
from pydantic import BaseModel, ConfigDict
from typing import Optional

SESSION_VERSION = 1


class SessionUser(BaseModel):
    """Identity snapshot taken from Google at sign-in."""
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    picture: Optional[str] = None


class Session(BaseModel):
    """
    Encrypted session record stored in the session cookie.

    access_token and access_token_expires_at are only ever replaced
    together, through model_copy(update=...).
    """
    model_config = ConfigDict(frozen=True)

    version: int = SESSION_VERSION
    user: SessionUser
    scope: str = ""
    access_token: str
    refresh_token: str
    access_token_expires_at: int = 0  # epoch milliseconds


class OAuthTokenPair(BaseModel):
    """Token endpoint response, folded into a Session by the caller."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600
    scope: Optional[str] = None


class SessionInfoResponse(BaseModel):
    """Public view of the current session."""
    user: SessionUser
    scope: str
