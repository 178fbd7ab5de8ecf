# tours_api/core/reset_tokens.py
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from tours_api.core.config import get_settings

settings = get_settings()

# 32 random bytes -> 256 bits of entropy
RESET_TOKEN_BYTES = 32


@dataclass(frozen=True)
class ResetToken:
    plaintext: str
    digest: str
    expires_at: datetime


class ResetTokenManager:
    """
    Issues single-use, time-boxed password reset tokens.

    Only the SHA-256 digest is persisted. The plaintext leaves the process
    exactly once, inside the reset email.
    """

    def __init__(self, ttl: timedelta):
        self.ttl = ttl

    @staticmethod
    def digest(plaintext: str) -> str:
        return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()

    def issue(self, now: datetime) -> ResetToken:
        plaintext = secrets.token_hex(RESET_TOKEN_BYTES)
        return ResetToken(
            plaintext=plaintext,
            digest=self.digest(plaintext),
            expires_at=now + self.ttl,
        )


reset_token_manager = ResetTokenManager(
    ttl=timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES)
)
