"""Identity use-case commands: register, provision, change password, update profile, disable, delete."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit
from uuid import UUID, uuid4

import structlog

from sessionauth.application.identity.errors import (
    AccountAlreadyExistsError,
    AccountInactiveError,
    InvalidCredentialError,
    SessionNotFoundError,
)
from sessionauth.application.identity.revoker import SessionRevoker
from sessionauth.application.identity.verifier import IPasswordHasher
from sessionauth.domain.clock import Clock
from sessionauth.domain.identity.entities import Account, AccountStatus
from sessionauth.domain.identity.repositories import IAccountRepository
from sessionauth.domain.identity.value_objects import DelegatedIdentity, Email

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 8
MAX_DISPLAY_NAME_LENGTH = 100
MAX_PICTURE_URL_LENGTH = 2048
PROFILE_FIELDS = ("display_name", "profile_picture_url", "preferences")


def _check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


async def register_account(
    *,
    email: str,
    password: str,
    account_repo: IAccountRepository,
    hasher: IPasswordHasher,
    clock: Clock,
) -> Account:
    """Create a password-based account. Emails are unique among non-deleted accounts."""
    normalized = Email(email)
    _check_password_strength(password)
    if await account_repo.get_by_email(str(normalized)):
        raise AccountAlreadyExistsError()

    now = clock.now()
    account = Account(
        id=uuid4(),
        email=normalized,
        password_hash=hasher.hash(password),
        created_at=now,
        updated_at=now,
    )
    account = await account_repo.add(account)
    logger.info("account_registered", account_id=str(account.id), method="password")
    return account


async def provision_delegated_account(
    *,
    email: str,
    identity: DelegatedIdentity,
    account_repo: IAccountRepository,
    clock: Clock,
) -> Account:
    """Return the account linked to a delegated identity, creating it on first sight."""
    existing = await account_repo.get_by_delegated_identity(identity)
    if existing is not None:
        return existing

    normalized = Email(email)
    if await account_repo.get_by_email(str(normalized)):
        # Linking an identity to a password account needs proof of that password first.
        raise AccountAlreadyExistsError()

    now = clock.now()
    account = Account(
        id=uuid4(),
        email=normalized,
        delegated_identity=identity,
        created_at=now,
        updated_at=now,
    )
    account = await account_repo.add(account)
    logger.info("account_registered", account_id=str(account.id), method=identity.provider)
    return account


async def change_password(
    *,
    account_id: UUID,
    current_password: str,
    new_password: str,
    account_repo: IAccountRepository,
    hasher: IPasswordHasher,
    revoker: SessionRevoker,
    clock: Clock,
) -> int:
    """Replace the password and sign out every session. Returns the revoked count."""
    account = await account_repo.get_by_id(account_id)
    if account is None:
        raise SessionNotFoundError("Account not found")
    if not account.is_active:
        raise AccountInactiveError()
    if not hasher.verify(current_password, account.password_hash):
        raise InvalidCredentialError()
    _check_password_strength(new_password)

    await account_repo.update_password_hash(account_id, hasher.hash(new_password), clock.now())
    return await revoker.revoke_all(account_id)


async def _transition(
    account_id: UUID,
    status: AccountStatus,
    account_repo: IAccountRepository,
    revoker: SessionRevoker,
    clock: Clock,
) -> int:
    updated = await account_repo.update_status(account_id, status, clock.now())
    if updated is None:
        raise SessionNotFoundError("Account not found")
    logger.info("account_status_changed", account_id=str(account_id), status=str(status))
    return await revoker.revoke_all(account_id)


async def disable_account(
    *,
    account_id: UUID,
    account_repo: IAccountRepository,
    revoker: SessionRevoker,
    clock: Clock,
) -> int:
    return await _transition(account_id, AccountStatus.DISABLED, account_repo, revoker, clock)


async def delete_account(
    *,
    account_id: UUID,
    account_repo: IAccountRepository,
    revoker: SessionRevoker,
    clock: Clock,
) -> int:
    """Soft delete: the row stays for audit, the email becomes available again."""
    return await _transition(account_id, AccountStatus.DELETED, account_repo, revoker, clock)


def _clean_display_name(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Invalid display name")
    value = value.strip()
    if len(value) > MAX_DISPLAY_NAME_LENGTH:
        raise ValueError(f"Display name must be at most {MAX_DISPLAY_NAME_LENGTH} characters")
    return value or None


def _clean_picture_url(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or len(value) > MAX_PICTURE_URL_LENGTH:
        raise ValueError("Invalid profile picture URL")
    parts = urlsplit(value.strip())
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError("Invalid profile picture URL")
    return parts.geturl()


def _clean_preferences(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError("Invalid preferences format")
    return dict(value)


_PROFILE_CLEANERS = {
    "display_name": _clean_display_name,
    "profile_picture_url": _clean_picture_url,
    "preferences": _clean_preferences,
}


async def update_profile(
    *,
    account_id: UUID,
    changes: Mapping[str, Any],
    account_repo: IAccountRepository,
    clock: Clock,
) -> Account:
    """Partial update of the profile fields present in ``changes``.

    A field set to None is cleared. ``preferences`` replaces the stored
    mapping as a whole rather than merging into it.
    """
    unknown = sorted(set(changes) - set(PROFILE_FIELDS))
    if unknown:
        raise ValueError(f"Unknown profile fields: {', '.join(unknown)}")
    if not changes:
        raise ValueError("No valid fields to update")
    cleaned = {name: _PROFILE_CLEANERS[name](value) for name, value in changes.items()}

    account = await account_repo.get_by_id(account_id)
    if account is None:
        raise SessionNotFoundError("Account not found")
    if not account.is_active:
        raise AccountInactiveError()

    updated = await account_repo.update_profile(account_id, cleaned, clock.now())
    if updated is None:
        raise SessionNotFoundError("Account not found")
    logger.info("profile_updated", account_id=str(account_id), fields=sorted(cleaned))
    return updated
