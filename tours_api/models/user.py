# tours_api/models/user.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field

from tours_api.core.clock import as_utc


class User(SQLModel, table=True):
    """
    Persistent user account for the tours marketplace.

    Role:
      - "user" | "guide" | "lead-guide" | "admin"
      - anonymous visitors have no row / no token.

    Credential fields:
      - password_hash is deferred: repository reads leave it unloaded
        unless the caller explicitly asks for it.
      - password_reset_token / password_reset_expires are both set or
        both null.
      - active=False is a soft delete; every repository read skips it.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=50,
        description="Display name",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Lower-cased login email",
    )

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | guide | lead-guide | admin",
    )

    password_hash: str = Field(description="bcrypt hash of the password")

    password_changed_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
        description="Set (1s in the past) whenever the password changes",
    )

    # SHA-256 hex digest of the outstanding reset token; raw token is never stored
    password_reset_token: str | None = Field(
        default=None,
        max_length=64,
        index=True,
    )

    password_reset_expires: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )

    active: bool = Field(
        default=True,
        index=True,
        description="Soft-delete flag",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="Creation timestamp (UTC)",
    )

    def changed_password_after(self, issued_at: int) -> bool:
        """
        True if the password changed after a token issued at `issued_at`
        (epoch seconds). Compared at whole-second resolution, like JWT iat.
        """
        if self.password_changed_at is None:
            return False
        changed_timestamp = int(as_utc(self.password_changed_at).timestamp())
        return issued_at < changed_timestamp
