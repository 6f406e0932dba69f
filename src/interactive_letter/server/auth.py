"""
Admin authentication for the content HTTP API.

Issues opaque bearer tokens on a successful admin login and validates them
on later requests. Tokens live in memory and expire after a fixed lifetime.
"""

import hmac
import logging
import secrets
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("interactive-letter.server")


class TokenInfo(BaseModel):
    """Identity attached to an issued token."""

    username: str = Field(description="Authenticated user name")
    role: str = Field(default="admin", description="Role granted by the token")
    expires_at: datetime = Field(description="Expiry timestamp")


class TokenManager:
    """
    Manages admin bearer tokens.

    Attributes:
        _tokens: Dict mapping token -> TokenInfo
    """

    def __init__(
        self,
        admin_username: str,
        admin_password: str,
        token_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._admin_username = admin_username
        self._admin_password = admin_password
        self.token_ttl = token_ttl
        self._clock = clock
        self._tokens: dict[str, TokenInfo] = {}
        self._lock = threading.Lock()

    def check_credentials(self, username: str, password: str) -> bool:
        """Compare credentials in constant time."""
        user_ok = hmac.compare_digest(username.encode(), self._admin_username.encode())
        password_ok = hmac.compare_digest(password.encode(), self._admin_password.encode())
        return user_ok and password_ok

    def login(self, username: str, password: str) -> Optional[str]:
        """
        Issue a token for valid admin credentials.

        Returns:
            A URL-safe token string, or None if the credentials are wrong
        """
        if not self.check_credentials(username or "", password or ""):
            logger.warning(f"Rejected login for username={username!r}")
            return None
        return self.generate_token(username)

    def generate_token(self, username: str, role: str = "admin") -> str:
        token = secrets.token_urlsafe(24)
        info = TokenInfo(username=username, role=role, expires_at=self._clock() + self.token_ttl)
        with self._lock:
            self._tokens[token] = info
        logger.info(f"Generated token for username={username}")
        return token

    def validate_token(self, token: str) -> Optional[TokenInfo]:
        """
        Validate a token and return its identity.

        Expired tokens are dropped on validation.

        Returns:
            TokenInfo if the token is known and not expired, None otherwise
        """
        with self._lock:
            info = self._tokens.get(token)
            if info is not None and info.expires_at <= self._clock():
                del self._tokens[token]
                info = None
        if info is None:
            logger.warning(f"Invalid or expired token presented: {token[:4]}...")
        return info

    def revoke_token(self, token: str) -> bool:
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def clear(self) -> None:
        """Clear all tokens."""
        with self._lock:
            count = len(self._tokens)
            self._tokens.clear()
        logger.info(f"Cleared {count} tokens")


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


__all__ = [
    "TokenManager",
    "TokenInfo",
    "bearer_token",
]
