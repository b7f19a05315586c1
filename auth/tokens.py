"""Signed session tokens (JWT, HS256 by default)."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from jose import JWTError, jwt

from .errors import InvalidToken
from .models import SessionClaims, User, utcnow

logger = logging.getLogger(__name__)


class SessionTokenIssuer:
    """Mints and verifies self-contained session tokens.

    Verification only looks at the token and the clock, so there is no
    server-side revocation: a token stays valid until it expires.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        expires_minutes: int = 24 * 60,
        clock: Callable = utcnow,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = timedelta(minutes=expires_minutes)
        self._clock = clock

    def issue(self, user: User) -> tuple[str, datetime]:
        """Return the signed token and its expiry."""
        issued_at = self._clock()
        expires_at = issued_at + self._lifetime
        claims = {
            "sub": user.id,
            "userId": user.id,
            "email": user.email,
            "name": user.name,
            "iat": issued_at,
            "exp": expires_at,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm), expires_at

    def verify(self, token: str) -> SessionClaims:
        """Return the token's claims or raise ``InvalidToken``."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            logger.debug(f"Session token rejected: {e}")
            raise InvalidToken()

        try:
            return SessionClaims(
                user_id=payload["userId"],
                email=payload["email"],
                name=payload["name"],
                issued_at=_from_timestamp(payload["iat"]),
                expires_at=_from_timestamp(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidToken()


def _from_timestamp(value) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)
