"""Session entities: roles, credentials and credential events."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Role claim carried by the credential."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    CLERK = "Clerk"


def parse_role(value: Any) -> Role | None:
    """Return the Role for ``value``, or None when it is not a known role."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except (ValueError, TypeError):
        return None


class Credential(BaseModel):
    """
    Bearer credential with its already-decoded claims.

    Decoding the token is the auth collaborator's job; the client only
    consumes the token and the role.
    """

    token: str
    role: str
    user_id: str | None = None
    email: str | None = None
    company: dict[str, Any] | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


class CredentialEventType(str, Enum):
    """Signals raised by whatever refreshes the credential."""

    REFRESHED = "refreshed"
    REFRESH_FAILED = "refresh_failed"


@dataclass
class CredentialEvent:
    """Inbound credential signal; ``token`` is set for REFRESHED."""

    type: CredentialEventType
    token: str | None = None
    refresh_token: str | None = None
