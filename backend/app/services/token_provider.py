"""Session cookie and crumb management for the upstream chart API.

The chart endpoint only answers requests that carry a session cookie together
with the matching anti-forgery token ("crumb"). Both are obtained with a
two-step handshake and kept until upstream rejects them with 401/403.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .upstream import TransportError, UpstreamTransport

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when a session token cannot be acquired."""


class CrumbRequestFailed(AuthError):
    """Raised when the crumb endpoint answers with a non-success status."""

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"Crumb request failed: {status}")


@dataclass(frozen=True)
class SessionToken:
    """Cookie header and crumb that authorize chart requests."""
    cookie_header: str
    crumb: str


def build_cookie_header(set_cookies) -> str:
    """Join the name=value part of each Set-Cookie value with '; '."""
    pairs = [value.split(";", 1)[0].strip() for value in set_cookies]
    return "; ".join(pair for pair in pairs if pair)


class TokenProvider:
    """Owns the process-wide session token."""

    def __init__(
        self,
        transport: UpstreamTransport,
        cookie_url: str,
        crumb_url: str,
        user_agent: str = "Mozilla/5.0",
    ):
        self.transport = transport
        self.cookie_url = cookie_url
        self.crumb_url = crumb_url
        self.user_agent = user_agent
        self._token: Optional[SessionToken] = None
        self._pending: Optional[asyncio.Future] = None
        self.acquired_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.acquisitions = 0

    def get(self) -> Optional[SessionToken]:
        """Return the current token, or None if none was acquired yet."""
        return self._token

    async def acquire(self) -> SessionToken:
        """Run the cookie/crumb handshake and store the resulting token.

        Returns:
            The newly stored session token.

        Raises:
            AuthError: If either step of the handshake fails.
        """
        try:
            consent = await self.transport.get(
                self.cookie_url,
                headers={"User-Agent": self.user_agent},
                allow_redirects=False,
            )
            cookie_header = build_cookie_header(consent.set_cookies)

            crumb_resp = await self.transport.get(
                self.crumb_url,
                headers={"Cookie": cookie_header, "User-Agent": self.user_agent},
            )
        except TransportError as e:
            raise AuthError(f"Token handshake failed: {e}") from e

        if not crumb_resp.ok:
            raise CrumbRequestFailed(crumb_resp.status)

        crumb = crumb_resp.text.strip()
        if not crumb:
            raise AuthError("Crumb endpoint returned an empty crumb")

        self._token = SessionToken(cookie_header=cookie_header, crumb=crumb)
        self.acquired_at = datetime.now(timezone.utc)
        self.last_error = None
        self.acquisitions += 1
        return self._token

    async def _acquire_and_log(self) -> bool:
        try:
            await self.acquire()
        except AuthError as e:
            self.last_error = str(e)
            logger.error(f"Failed to get crumb: {e}")
            return False
        finally:
            # The slot only ever holds a handshake that is still running
            self._pending = None
        logger.info("Upstream crumb acquired successfully")
        return True

    async def refresh(self) -> bool:
        """Acquire a fresh token, sharing one handshake between concurrent callers.

        Returns:
            True if a new token was stored, False otherwise.
        """
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._acquire_and_log())
        return await asyncio.shield(self._pending)

    async def ensure(self) -> Optional[SessionToken]:
        """Return the current token, acquiring one first if none exists."""
        if self._token is None:
            await self.refresh()
        return self._token
