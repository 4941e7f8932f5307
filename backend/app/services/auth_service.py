"""
Authentication service.

This module orchestrates the OAuth flow:
1. Generate OAuth URL with an anti-forgery state -> google_auth
2. Handle callback -> exchange code -> get user -> build session
"""
import secrets

from app.integrations.google_auth import (
    get_oauth_url as _get_oauth_url,
    exchange_code_for_tokens,
    get_user_info,
)
from app.models.session import SESSION_VERSION, Session, SessionUser
from app.services.token_service import now_ms
from app.utils.errors import OAuthError
from app.utils.logger import get_logger

logger = get_logger(__name__)

MISSING_REFRESH_TOKEN_MESSAGE = (
    "Google did not return a refresh token. Try removing SwipeMail from your "
    "Google account and signing in again."
)


class AuthService:
    """
    Authentication service handling OAuth flow.

    Usage:
        auth_service = AuthService()
        state = auth_service.create_state()
        url = auth_service.get_oauth_url(state)
        session = await auth_service.handle_oauth_callback(code)
    """

    @staticmethod
    def create_state() -> str:
        """Random nonce stored in the state cookie and echoed back by Google."""
        return secrets.token_hex(16)

    @staticmethod
    def states_match(stored_state: str, returned_state: str) -> bool:
        if not stored_state or not returned_state:
            return False
        return secrets.compare_digest(stored_state.encode("utf-8"), returned_state.encode("utf-8"))

    def get_oauth_url(self, state: str) -> str:
        """
        Get the Google OAuth authorization URL.

        Frontend is redirected to this URL by the login endpoint.
        """
        return _get_oauth_url(state)

    async def handle_oauth_callback(self, code: str) -> Session:
        """
        Handle OAuth callback after user grants permission.

        Flow:
        1. Exchange authorization code for tokens
        2. Fetch user profile from Google
        3. Build the session record

        Args:
            code: Authorization code from Google callback

        Returns:
            New Session, ready to be encoded into the session cookie

        Raises:
            OAuthError: If any step fails or no refresh token was granted
        """
        # Step 1: Exchange code for tokens
        tokens = await exchange_code_for_tokens(code)
        if not tokens.refresh_token:
            raise OAuthError(MISSING_REFRESH_TOKEN_MESSAGE)

        # Step 2: Get user info
        user_info = await get_user_info(tokens.access_token)

        # Step 3: Build session
        session = Session(
            version=SESSION_VERSION,
            user=SessionUser(**user_info),
            scope=tokens.scope or "",
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            access_token_expires_at=now_ms() + tokens.expires_in * 1000,
        )
        logger.info(f"Signed in: {session.user.email}")
        return session
