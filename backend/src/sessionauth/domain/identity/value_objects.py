"""Immutable value objects for the Identity bounded context."""
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID
import re

_EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}$")
MAX_EMAIL_LENGTH = 254


def normalize_identifier(identifier: str) -> str:
    """Login identifiers compare case-insensitively and ignore surrounding whitespace."""
    return identifier.strip().lower()


@dataclass(frozen=True)
class Email:
    value: str

    def __post_init__(self) -> None:
        normalized = normalize_identifier(self.value)
        if len(normalized) > MAX_EMAIL_LENGTH or not _EMAIL_PATTERN.match(normalized):
            raise ValueError(f"Invalid email address: {self.value}")
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PasswordHash:
    """Opaque wrapper for the hashed password string — never the raw password."""
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DelegatedIdentity:
    """Subject asserted by an external identity provider (e.g. google, apple)."""
    provider: str
    subject: str

    def __post_init__(self) -> None:
        if not self.provider or not self.subject:
            raise ValueError("Delegated identity needs both provider and subject")
        if ":" in self.provider:
            raise ValueError("Provider name may not contain ':'")

    @property
    def ref(self) -> str:
        return f"{self.provider}:{self.subject}"

    @classmethod
    def from_ref(cls, ref: str) -> "DelegatedIdentity":
        provider, _, subject = ref.partition(":")
        return cls(provider=provider, subject=subject)

    def __str__(self) -> str:
        return self.ref


@dataclass(frozen=True)
class SessionClaims:
    """Public content of a bearer artifact, as decoded from its signed payload."""
    session_id: str
    account_id: UUID
    issued_at: datetime
    expires_at: datetime
