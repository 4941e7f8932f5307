"""
Session and OAuth state cookies.

Both cookies are HTTP-only, SameSite=Lax and scoped to "/". The Secure flag
is only set outside local development, where the API runs over plain HTTP.
"""
from fastapi import Response

from app.config import get_settings

SESSION_COOKIE = "swipemail_session"
STATE_COOKIE = "swipemail_oauth_state"

SESSION_TTL_SECONDS = 60 * 60 * 24 * 30  # 30 days
STATE_TTL_SECONDS = 10 * 60  # 10 minutes


def _set(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=get_settings().secure_cookies,
        samesite="lax",
    )


def set_session_cookie(response: Response, token: str) -> None:
    _set(response, SESSION_COOKIE, token, SESSION_TTL_SECONDS)


def clear_session_cookie(response: Response) -> None:
    _set(response, SESSION_COOKIE, "", 0)


def set_state_cookie(response: Response, state: str) -> None:
    _set(response, STATE_COOKIE, state, STATE_TTL_SECONDS)


def clear_state_cookie(response: Response) -> None:
    _set(response, STATE_COOKIE, "", 0)
