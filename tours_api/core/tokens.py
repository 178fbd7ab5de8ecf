# tours_api/core/tokens.py
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from tours_api.core.config import get_settings
from tours_api.core.errors import AuthenticationError

settings = get_settings()


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    issued_at: int
    expires_at: int


class TokenIssuer:
    """
    Signs and verifies stateless session tokens (JWT).

    The caller passes the current time in, so both operations are pure
    functions of their input and the signing secret.
    """

    def __init__(self, secret: str, algorithm: str, ttl: timedelta):
        if not secret:
            raise RuntimeError("JWT_SECRET is not configured. Please set it in .env.")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl

    def sign(self, subject_id: uuid.UUID | str, now: datetime) -> str:
        issued_at = int(now.timestamp())
        claims = {
            "sub": str(subject_id),
            "iat": issued_at,
            "exp": issued_at + int(self.ttl.total_seconds()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str, now: datetime) -> TokenClaims:
        """
        Decode and verify a session token.

        Verification:
          - signature (HS256 with JWT_SECRET)
          - shape of the sub/iat/exp claims
          - expiration against `now` (not the wall clock)

        Raises:
            AuthenticationError(InvalidToken): bad signature or malformed token.
            AuthenticationError(ExpiredToken): `now` is at or past `exp`.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise AuthenticationError(
                "InvalidToken", "Invalid token. Please log in again!"
            )

        sub = payload.get("sub")
        iat = payload.get("iat")
        exp = payload.get("exp")
        if not isinstance(sub, str) or not sub or not isinstance(iat, int) or not isinstance(exp, int):
            raise AuthenticationError(
                "InvalidToken", "Invalid token. Please log in again!"
            )

        if int(now.timestamp()) >= exp:
            raise AuthenticationError(
                "ExpiredToken", "Your token has expired! Please log in again."
            )

        return TokenClaims(
            subject_id=sub,
            issued_at=iat,
            expires_at=exp,
        )


token_issuer = TokenIssuer(
    secret=settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    ttl=timedelta(days=settings.JWT_EXPIRES_IN_DAYS),
)
