"""Credential verification: resolve an identity claim to exactly one account."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Protocol

import structlog

from sessionauth.application.identity.errors import (
    AccountInactiveError,
    AccountNotProvisionedError,
    InvalidCredentialError,
    StoreUnavailableError,
)
from sessionauth.domain.clock import Clock
from sessionauth.domain.identity.entities import Account
from sessionauth.domain.identity.repositories import IAccountRepository
from sessionauth.domain.identity.value_objects import (
    DelegatedIdentity,
    PasswordHash,
    normalize_identifier,
)

logger = structlog.get_logger(__name__)


class IPasswordHasher(Protocol):
    def hash(self, raw_password: str) -> PasswordHash: ...

    def verify(self, raw_password: str, password_hash: PasswordHash | None) -> bool: ...

    def needs_rehash(self, password_hash: PasswordHash) -> bool: ...


@dataclass(frozen=True)
class PasswordProof:
    password: str

    def fingerprint(self) -> str:
        return hashlib.sha256(b"password\x00" + self.password.encode()).hexdigest()


@dataclass(frozen=True)
class DelegatedProof:
    """A third-party assertion the caller has already validated."""
    identity: DelegatedIdentity

    def fingerprint(self) -> str:
        return hashlib.sha256(b"delegated\x00" + self.identity.ref.encode()).hexdigest()


Proof = PasswordProof | DelegatedProof


class CredentialVerifier:
    def __init__(self, account_repo: IAccountRepository, clock: Clock, hasher: IPasswordHasher) -> None:
        self._account_repo = account_repo
        self._clock = clock
        self._hasher = hasher

    async def verify(self, identifier: str, proof: Proof) -> Account:
        if isinstance(proof, PasswordProof):
            account = await self._verify_password(normalize_identifier(identifier), proof)
        elif isinstance(proof, DelegatedProof):
            account = await self._verify_delegated(proof)
        else:
            raise TypeError(f"Unsupported proof type: {type(proof).__name__}")

        await self._account_repo.touch_last_login(account.id, self._clock.now())
        return account

    async def _verify_password(self, email: str, proof: PasswordProof) -> Account:
        account = await self._account_repo.get_by_email(email)
        # Hash even when there is nothing to compare against: same cost on every path.
        matched = self._hasher.verify(proof.password, account.password_hash if account else None)

        if account is None:
            logger.info("credential_rejected", reason="unknown_identifier")
            raise InvalidCredentialError()
        if not account.is_active:
            logger.info("credential_rejected", reason="account_inactive", account_id=str(account.id))
            raise InvalidCredentialError()
        if account.password_hash is None:
            logger.info("credential_rejected", reason="no_password_set", account_id=str(account.id))
            raise InvalidCredentialError()
        if not matched:
            logger.info("credential_rejected", reason="password_mismatch", account_id=str(account.id))
            raise InvalidCredentialError()

        if self._hasher.needs_rehash(account.password_hash):
            await self._upgrade_hash(account, proof)
        return account

    async def _upgrade_hash(self, account: Account, proof: PasswordProof) -> None:
        """Re-hash with current parameters while the raw password is at hand."""
        try:
            await self._account_repo.update_password_hash(
                account.id, self._hasher.hash(proof.password), self._clock.now()
            )
        except StoreUnavailableError:
            # The old hash still verifies; the upgrade is retried on the next login.
            logger.warning("password_rehash_deferred", account_id=str(account.id))
            return
        logger.info("password_rehashed", account_id=str(account.id))

    async def _verify_delegated(self, proof: DelegatedProof) -> Account:
        account = await self._account_repo.get_by_delegated_identity(proof.identity)
        if account is None or account.is_deleted:
            logger.info("delegated_identity_unlinked", provider=proof.identity.provider)
            raise AccountNotProvisionedError()
        if not account.is_active:
            logger.info("credential_rejected", reason="account_inactive", account_id=str(account.id))
            raise AccountInactiveError()
        return account
