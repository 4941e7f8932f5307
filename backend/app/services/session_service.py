"""
Session management service.

This module handles:
1. Deriving the session encryption key from the server secret
2. Encoding sessions into encrypted cookie values and decoding them back
3. The FastAPI dependency that resolves a fresh session for a request

Sessions live entirely in the client's cookie. The cookie value is
base64url(IV[12] || tag[16] || ciphertext) produced by AES-256-GCM under
SHA-256(secret). Nothing is stored server-side.
"""
import base64
import binascii
import hashlib
import os
from functools import lru_cache
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from fastapi import Depends, Request, Response
from pydantic import ValidationError

from app.config import get_settings
from app.models.session import Session
from app.services.token_service import TokenLifecycleManager, get_token_manager
from app.utils.cookies import SESSION_COOKIE, set_session_cookie
from app.utils.errors import AuthRequiredError
from app.utils.logger import get_logger

logger = get_logger(__name__)

IV_LENGTH = 12
TAG_LENGTH = 16


class SessionDecodeError(Exception):
    """Raised internally when a cookie value is not a valid session."""


class SessionCrypto:
    """
    AES-256-GCM key material derived from the server-side secret.

    Build once at startup and share; it holds no mutable state.
    """

    def __init__(self, key: bytes):
        if len(key) != 32:
            raise ValueError("Session key must be 32 bytes")
        self._aead = AESGCM(key)

    @classmethod
    def from_secret(cls, secret: str) -> "SessionCrypto":
        return cls(hashlib.sha256(secret.encode("utf-8")).digest())

    def seal(self, plaintext: bytes) -> bytes:
        iv = os.urandom(IV_LENGTH)
        # AESGCM appends the tag to the ciphertext
        sealed = self._aead.encrypt(iv, plaintext, None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return iv + tag + ciphertext

    def open(self, blob: bytes) -> bytes:
        if len(blob) < IV_LENGTH + TAG_LENGTH:
            raise SessionDecodeError("token too short")
        iv = blob[:IV_LENGTH]
        tag = blob[IV_LENGTH:IV_LENGTH + TAG_LENGTH]
        ciphertext = blob[IV_LENGTH + TAG_LENGTH:]
        try:
            return self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as e:
            raise SessionDecodeError("authentication failed") from e


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    try:
        padded = value + "=" * (-len(value) % 4)
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise SessionDecodeError("malformed base64") from e


class SessionCodec:
    """
    Encode/decode sessions as cookie values.

    Usage:
        codec = SessionCodec(SessionCrypto.from_secret(secret))
        token = codec.encode(session)
        session = codec.decode(token)  # None when invalid
    """

    def __init__(self, crypto: SessionCrypto):
        self.crypto = crypto

    def encode(self, session: Session) -> str:
        payload = session.model_dump_json().encode("utf-8")
        return _b64url_encode(self.crypto.seal(payload))

    def decode(self, token: Optional[str]) -> Optional[Session]:
        """
        Decode a cookie value.

        Any failure (bad encoding, wrong length, failed authentication,
        invalid JSON or schema) is logged and reported as None. This
        method never raises.
        """
        if not token:
            return None
        try:
            plaintext = self.crypto.open(_b64url_decode(token))
            return Session.model_validate_json(plaintext)
        except SessionDecodeError as e:
            logger.warning(f"Rejected session cookie: {e}")
        except ValidationError as e:
            logger.warning(f"Rejected session cookie: invalid payload ({e.error_count()} errors)")
        except Exception as e:
            logger.warning(f"Rejected session cookie: {type(e).__name__}")
        return None


@lru_cache()
def get_session_codec() -> SessionCodec:
    """Process-wide codec built from SESSION_SECRET."""
    return SessionCodec(SessionCrypto.from_secret(get_settings().session_secret))


def read_session(request: Request, codec: SessionCodec) -> Optional[Session]:
    """Decode the session cookie on a request, or None."""
    return codec.decode(request.cookies.get(SESSION_COOKIE))


def require_session(request: Request, codec: SessionCodec) -> Session:
    """
    Resolve the request's session or raise AuthRequiredError.

    A session without a refresh token can never be refreshed, so it is
    treated as incomplete.
    """
    session = read_session(request, codec)
    if session is None:
        raise AuthRequiredError()
    if not session.refresh_token:
        raise AuthRequiredError("Google session is incomplete. Please sign in again.")
    return session


# Dependency for protected routes
async def get_current_session(
    request: Request,
    response: Response,
    codec: SessionCodec = Depends(get_session_codec),
    token_manager: TokenLifecycleManager = Depends(get_token_manager),
) -> Session:
    """
    FastAPI dependency returning a session with a fresh access token.

    Use this as a dependency in protected routes:

        @router.get("/protected")
        async def protected_route(session: Session = Depends(get_current_session)):
            ...

    When the access token is refreshed the new cookie is set on the
    response and remembered on request.state, so error responses raised
    later in the same request still carry it.

    Raises:
        AuthRequiredError: No valid session cookie
        AuthExpiredError: Refresh failed
    """
    session = require_session(request, codec)
    result = await token_manager.ensure_fresh(session)

    if result.refreshed:
        cookie_value = codec.encode(result.session)
        set_session_cookie(response, cookie_value)
        request.state.refreshed_session_cookie = cookie_value

    return result.session
