"""
Session tokens: signed, self-contained JWTs valid for a fixed two hours.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt

from .errors import ExpiredToken, InvalidToken, MissingToken
from .models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(hours=2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class SessionClaims:
    """Verified contents of a session token."""
    user_id: int
    username: str
    issued_at: datetime
    expires_at: datetime


# PUBLIC_INTERFACE
class SessionIssuer:
    """
    Mints and verifies session tokens.

    The signing key must be supplied by the caller; there is no fallback.
    """

    def __init__(self, secret_key: str, clock: Callable[[], datetime] = utcnow):
        if not secret_key:
            raise ValueError("A signing key is required to issue session tokens.")
        self._secret_key = secret_key
        self._clock = clock

    def mint(self, user: User) -> str:
        """Generates a JWT for user expiring two hours from now."""
        issued_at = self._clock()
        to_encode = {
            "sub": str(user.id),
            "username": user.username,
            "iat": issued_at,
            "exp": issued_at + ACCESS_TOKEN_EXPIRE,
        }
        return jwt.encode(to_encode, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: Optional[str]) -> SessionClaims:
        """
        Decodes and checks token.
        Raises MissingToken, InvalidToken or ExpiredToken.
        Expiry is judged against this issuer's clock, not the wall clock.
        """
        if not token:
            raise MissingToken()
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM],
                                 options={"verify_exp": False})
        except JWTError as exc:
            logger.debug("Rejected session token: %s", exc)
            raise InvalidToken()
        try:
            claims = SessionClaims(
                user_id=int(payload["sub"]),
                username=str(payload["username"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError, OverflowError):
            raise InvalidToken()
        if self._clock() > claims.expires_at:
            raise ExpiredToken()
        return claims

