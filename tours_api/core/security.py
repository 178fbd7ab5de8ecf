# tours_api/core/security.py
from passlib.context import CryptContext

from tours_api.core.config import get_settings

settings = get_settings()

# bcrypt only reads this many bytes of its input
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    One-way adaptive hashing of user passwords (bcrypt).

    The cost factor is deliberately high (12 rounds by default), so a
    single hash takes tens to hundreds of milliseconds. Route handlers are
    plain `def` functions, which FastAPI runs on its threadpool, so this
    never blocks the event loop.
    """

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, plain: str) -> str:
        if not plain:
            raise ValueError("Password must not be empty")
        if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
        return self._context.hash(plain)

    def verify(self, plain: str, hashed: str | None) -> bool:
        """Constant-time check of `plain` against a stored bcrypt hash."""
        if not plain or not hashed:
            return False
        if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
            # Would be truncated and match a hash of its first 72 bytes
            return False
        try:
            return self._context.verify(plain, hashed)
        except ValueError:
            # Not a bcrypt hash we can parse
            return False

    def dummy_verify(self) -> None:
        """Spend the time of a real verify when there is no hash to check."""
        self._context.dummy_verify()


password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
