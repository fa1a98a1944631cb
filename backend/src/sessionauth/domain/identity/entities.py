"""Domain entities for the Identity bounded context."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any
from uuid import UUID

from .value_objects import DelegatedIdentity, Email, PasswordHash


class AccountStatus(StrEnum):
    ACTIVE = "active"
    DISABLED = "disabled"
    DELETED = "deleted"


@dataclass
class Account:
    id: UUID
    email: Email
    password_hash: PasswordHash | None = None
    delegated_identity: DelegatedIdentity | None = None
    status: AccountStatus = AccountStatus.ACTIVE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: datetime | None = None
    display_name: str | None = None
    profile_picture_url: str | None = None
    preferences: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.password_hash is None and self.delegated_identity is None:
            raise ValueError("Account needs a password hash or a delegated identity")

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.status == AccountStatus.DELETED


@dataclass
class Session:
    id: str
    account_id: UUID
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    user_agent: str | None = None
    ip_address: str | None = None

    @property
    def revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_live(self, now: datetime) -> bool:
        """Unrevoked and unexpired at ``now``. Account state is the validator's concern."""
        return not self.revoked and not self.is_expired(now)

    def revoke(self, now: datetime) -> bool:
        """Mark the session revoked. Returns False when it already was."""
        if self.revoked_at is not None:
            return False
        self.revoked_at = now
        return True
