"""
Access token lifecycle.

Google access tokens live about an hour. Before any Gmail call the
session's token is checked and, when it is within a minute of expiry,
exchanged for a new one using the refresh token. Concurrent requests of
the same user share a single in-flight refresh.
"""
import asyncio
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Awaitable, Callable, Dict, Tuple

from app.config import get_settings
from app.integrations.google_auth import refresh_access_token
from app.models.session import OAuthTokenPair, Session
from app.utils.errors import AuthExpiredError
from app.utils.logger import get_logger

logger = get_logger(__name__)

REFRESH_MARGIN_MS = 60_000
DEFAULT_EXPIRES_IN = 3600

Refresher = Callable[[str], Awaitable[OAuthTokenPair]]


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of ensure_fresh. When refreshed, the caller rewrites the cookie."""
    session: Session
    refreshed: bool


class TokenLifecycleManager:
    """
    Keeps the session's access token usable.

    Usage:
        manager = TokenLifecycleManager(refresh_access_token)
        result = await manager.ensure_fresh(session)
        if result.refreshed:
            set_session_cookie(response, codec.encode(result.session))
    """

    def __init__(
        self,
        refresher: Refresher,
        clock: Callable[[], int] = now_ms,
        dedupe: bool = True,
    ):
        self.refresher = refresher
        self.clock = clock
        self.dedupe = dedupe
        self._in_flight: Dict[Tuple[str, str], asyncio.Future] = {}

    @staticmethod
    def should_refresh(session: Session, now: int) -> bool:
        """True when the token is unknown, expired or expires within a minute."""
        expires_at = session.access_token_expires_at
        if not expires_at:
            return True
        return now >= expires_at - REFRESH_MARGIN_MS

    async def ensure_fresh(self, session: Session) -> RefreshResult:
        """
        Return the session, refreshing its access token when needed.

        Raises:
            AuthExpiredError: Refresh token missing, revoked or Google unreachable.
                The input session is left unchanged.
        """
        if not self.should_refresh(session, self.clock()):
            return RefreshResult(session=session, refreshed=False)

        if not self.dedupe:
            return RefreshResult(session=await self._refresh(session), refreshed=True)

        key = (session.user.id, session.refresh_token)
        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh(session))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda fut: self._forget(key, fut))
        else:
            logger.debug(f"Joining in-flight token refresh for: {session.user.email}")

        # A cancelled caller must not cancel the refresh other callers wait on
        updated = await asyncio.shield(pending)
        return RefreshResult(session=updated, refreshed=True)

    def _forget(self, key: Tuple[str, str], fut: asyncio.Future) -> None:
        if self._in_flight.get(key) is fut:
            del self._in_flight[key]

    async def _refresh(self, session: Session) -> Session:
        if not session.refresh_token:
            logger.warning(f"No refresh token in session for: {session.user.email}")
            raise AuthExpiredError()

        try:
            tokens = await self.refresher(session.refresh_token)
        except Exception as e:
            logger.error(f"Token refresh failed for {session.user.email}: {e}")
            raise AuthExpiredError() from e

        expires_in = tokens.expires_in or DEFAULT_EXPIRES_IN
        updates: Dict[str, object] = {
            "access_token": tokens.access_token,
            "access_token_expires_at": self.clock() + expires_in * 1000,
        }
        if tokens.scope:
            updates["scope"] = tokens.scope
        if tokens.refresh_token:
            updates["refresh_token"] = tokens.refresh_token

        logger.info(f"Refreshed access token for: {session.user.email}")
        return session.model_copy(update=updates)


@lru_cache()
def get_token_manager() -> TokenLifecycleManager:
    """Process-wide token manager."""
    return TokenLifecycleManager(
        refresh_access_token,
        dedupe=get_settings().token_refresh_dedupe,
    )
