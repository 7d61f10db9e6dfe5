"""Static-credential access gate.

A single admin account is configured; logging in with it returns a fixed
opaque token, and any request carrying that token as a bearer credential is
treated as admin.  Everyone else is anonymous.  This is a gate, not an
authentication system.
"""

from __future__ import annotations

import hmac
import logging

from curator.core.errors import InvalidArgument, Unauthorized

logger = logging.getLogger(__name__)


def _equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class AccessGate:
    """Classify callers as admin or anonymous.

    Args:
        username: Admin username.
        password: Admin password.
        token: Token handed out on login and expected on admin requests.
    """

    def __init__(self, username: str, password: str, token: str):
        self.username = username
        self.password = password
        self.token = token

    def authenticate(self, username: str | None, password: str | None) -> str:
        """Check admin credentials and return the admin token.

        Raises:
            InvalidArgument: If either credential is missing.
            Unauthorized: If the credentials do not match.
        """
        if not username or not password:
            raise InvalidArgument("Username and password are required")

        user_ok = _equal(username, self.username)
        password_ok = _equal(password, self.password)
        if not (user_ok and password_ok):
            logger.warning(f"Failed admin login for {username!r}")
            raise Unauthorized("Invalid credentials")

        logger.info(f"Admin login for {username!r}")
        return self.token

    def is_admin(self, token: str | None) -> bool:
        return bool(token) and _equal(token, self.token)

    def require_admin(self, token: str | None) -> None:
        """Raise :class:`Unauthorized` unless *token* is the admin token."""
        if not self.is_admin(token):
            raise Unauthorized("Unauthorized")
