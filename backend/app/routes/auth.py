"""
Authentication routes for Google OAuth.

OAuth Flow:
1. Browser navigates to GET /api/auth/login -> state cookie + redirect to Google
2. User grants permissions on Google
3. Google redirects to GET /api/auth/callback with code and state
4. Backend checks state, exchanges code for tokens, builds the session
5. Backend redirects to the frontend with the encrypted session cookie

Security:
- Session cookie is HTTP-only, SameSite=Lax, Secure outside development
- Tokens live only inside the AES-GCM encrypted cookie value
- Failures redirect with an authError code, never with error details
"""
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse

from app.config import get_settings
from app.models.session import SessionInfoResponse
from app.services.auth_service import AuthService
from app.services.session_service import SessionCodec, get_session_codec, read_session
from app.utils.cookies import (
    STATE_COOKIE,
    clear_session_cookie,
    clear_state_cookie,
    set_session_cookie,
    set_state_cookie,
)
from app.utils.errors import AuthRequiredError, OAuthError
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)
auth_service = AuthService()


def _error_redirect(reason: str) -> RedirectResponse:
    target = f"{get_settings().frontend_url}/?{urlencode({'authError': reason})}"
    response = RedirectResponse(url=target, status_code=302)
    clear_state_cookie(response)
    return response


@router.get("/login")
async def login():
    """
    Start the Google sign-in.

    Sets the anti-forgery state cookie and redirects to Google's consent
    screen.
    """
    state = auth_service.create_state()
    response = RedirectResponse(url=auth_service.get_oauth_url(state), status_code=302)
    set_state_cookie(response, state)
    logger.info("Redirecting to Google consent screen")
    return response


@router.get("/callback")
async def oauth_callback(
    request: Request,
    code: str = None,
    state: str = None,
    codec: SessionCodec = Depends(get_session_codec),
):
    """
    Handle Google OAuth callback.

    On success:
    - Exchange code for tokens and fetch the profile
    - Set the session cookie, clear the state cookie
    - Redirect to the frontend

    On error, redirect to the frontend with authError set to one of
    missing_code, state_mismatch, oauth_error or callback_failed.
    """
    if not code:
        logger.warning("OAuth callback missing code")
        return _error_redirect("missing_code")

    stored_state = request.cookies.get(STATE_COOKIE)
    if not auth_service.states_match(stored_state, state):
        logger.warning("OAuth callback state mismatch")
        return _error_redirect("state_mismatch")

    try:
        session = await auth_service.handle_oauth_callback(code)
    except OAuthError as e:
        logger.error(f"OAuth callback rejected: {e.message}")
        return _error_redirect("oauth_error")
    except Exception:
        logger.exception("OAuth callback failed")
        return _error_redirect("callback_failed")

    response = RedirectResponse(url=get_settings().frontend_url, status_code=302)
    set_session_cookie(response, codec.encode(session))
    clear_state_cookie(response)
    return response


@router.post("/logout")
async def logout(response: Response):
    """
    Logout user by clearing the session cookie.

    Returns:
        { success: true }
    """
    clear_session_cookie(response)
    logger.info("User logged out")
    return {"success": True}


@router.get("/session", response_model=SessionInfoResponse)
async def get_session_info(
    request: Request,
    codec: SessionCodec = Depends(get_session_codec),
):
    """
    Current user and granted scopes.

    Raises:
        AuthRequiredError: 401 when there is no valid session cookie
    """
    session = read_session(request, codec)
    if session is None:
        raise AuthRequiredError("Not signed in")
    return SessionInfoResponse(user=session.user, scope=session.scope)
