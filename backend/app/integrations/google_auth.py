"""
Google OAuth client integration.

This module handles:
1. Generating OAuth authorization URLs
2. Exchanging authorization codes for tokens
3. Refreshing expired access tokens
4. Fetching user profile information
"""
import httpx
from typing import Optional
from urllib.parse import urlencode

from app.config import get_settings
from app.models.session import OAuthTokenPair
from app.utils.logger import get_logger
from app.utils.errors import OAuthError

logger = get_logger(__name__)


def get_oauth_url(state: str) -> str:
    """
    Generate Google OAuth authorization URL.

    The user will be redirected to this URL to grant permissions.
    After granting, Google redirects back to our callback with a code
    and the same state value.

    Args:
        state: Anti-forgery nonce, also stored in the state cookie

    Returns:
        OAuth authorization URL string
    """
    settings = get_settings()
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.redirect_uri,
        "response_type": "code",
        "access_type": "offline",  # Request refresh token
        "prompt": "consent",  # Force consent to get refresh token
        "include_granted_scopes": "true",
        "scope": " ".join(settings.google_scopes),
        "state": state,
    }

    return f"{settings.google_auth_url}?{urlencode(params)}"


def _parse_token_response(response: httpx.Response, failure: str) -> OAuthTokenPair:
    try:
        data = response.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if response.status_code != 200:
        message = data.get("error_description") or data.get("error") or failure
        logger.error(f"{failure}: {response.status_code} {data.get('error', '')}")
        raise OAuthError(message)

    try:
        expires_in = int(data.get("expires_in") or 3600)
    except (TypeError, ValueError):
        expires_in = 3600

    if not data.get("access_token"):
        raise OAuthError(f"{failure}: no access token in response")

    return OAuthTokenPair(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),  # May not be present on refresh
        expires_in=expires_in,
        scope=data.get("scope"),
    )


async def exchange_code_for_tokens(code: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> OAuthTokenPair:
    """
    Exchange authorization code for access and refresh tokens.

    Args:
        code: Authorization code from Google callback

    Returns:
        OAuthTokenPair with access_token, refresh_token, expires_in, scope

    Raises:
        OAuthError: If token exchange fails
    """
    settings = get_settings()
    data = {
        "code": code,
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
        "redirect_uri": settings.redirect_uri,
        "grant_type": "authorization_code",
    }

    async with httpx.AsyncClient(transport=transport, timeout=settings.http_timeout_seconds) as client:
        try:
            response = await client.post(settings.google_token_url, data=data)
        except httpx.RequestError as e:
            logger.error(f"Token exchange request failed: {e}")
            raise OAuthError("Failed to connect to Google for authentication")

    tokens = _parse_token_response(response, "Google token exchange failed")
    logger.info("Successfully exchanged code for tokens")
    return tokens


async def refresh_access_token(refresh_token: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> OAuthTokenPair:
    """
    Refresh an expired access token using the refresh token.

    Args:
        refresh_token: The refresh token from initial auth

    Returns:
        OAuthTokenPair; refresh_token is set only when Google rotates it

    Raises:
        OAuthError: If the refresh token is missing, revoked or Google is unreachable
    """
    if not refresh_token:
        raise OAuthError("Missing refresh token")

    settings = get_settings()
    data = {
        "refresh_token": refresh_token,
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
        "grant_type": "refresh_token",
    }

    async with httpx.AsyncClient(transport=transport, timeout=settings.http_timeout_seconds) as client:
        try:
            response = await client.post(settings.google_token_url, data=data)
        except httpx.RequestError as e:
            logger.error(f"Token refresh request failed: {e}")
            raise OAuthError("Failed to connect to Google for token refresh")

    return _parse_token_response(response, "Google token refresh failed")


async def get_user_info(access_token: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> dict:
    """
    Fetch user profile information from Google (OpenID userinfo).

    Args:
        access_token: Valid Google access token

    Returns:
        Dict with id, email, name, picture

    Raises:
        OAuthError: If request fails or token is invalid
    """
    settings = get_settings()
    headers = {"Authorization": f"Bearer {access_token}"}

    async with httpx.AsyncClient(transport=transport, timeout=settings.http_timeout_seconds) as client:
        try:
            response = await client.get(settings.google_userinfo_url, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"User info request failed: {e}")
            raise OAuthError("Failed to connect to Google for user information")

    if response.status_code != 200:
        logger.error(f"Failed to get user info: {response.status_code}")
        raise OAuthError("Failed to fetch Google profile")

    user_data = response.json()
    if not user_data.get("sub") or not user_data.get("email"):
        raise OAuthError("Google profile is missing id or email")

    logger.info(f"Fetched user info for: {user_data['email']}")
    return {
        "id": user_data["sub"],
        "email": user_data["email"],
        "name": user_data.get("name") or user_data.get("given_name") or user_data["email"],
        "picture": user_data.get("picture"),
    }
