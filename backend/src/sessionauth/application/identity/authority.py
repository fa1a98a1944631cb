"""SessionAuthority: the four session facets wired over one set of stores.

Nothing here is a process-wide singleton: stores, clock, codec and policy are
all constructor arguments. Every public operation is a coroutine and accepts an
optional ``timeout``; running out of time is reported as StoreUnavailableError
so a slow store never looks like a revoked or expired session to the client.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar
from uuid import UUID

import structlog

from sessionauth.application.identity.errors import MalformedTokenError, StoreUnavailableError
from sessionauth.application.identity.issuer import ITokenCodec, IssuedSession, SessionIssuer
from sessionauth.application.identity.revoker import SessionRevoker
from sessionauth.application.identity.singleflight import SingleFlight
from sessionauth.application.identity.validator import SessionValidator, ValidatedSession
from sessionauth.application.identity.verifier import CredentialVerifier, IPasswordHasher, Proof
from sessionauth.domain.clock import Clock
from sessionauth.domain.identity.entities import Account, Session
from sessionauth.domain.identity.policy import SessionPolicy
from sessionauth.domain.identity.repositories import IAccountRepository, ISessionRepository
from sessionauth.domain.identity.value_objects import normalize_identifier

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_DEFAULT = object()


class SessionAuthority:
    def __init__(
        self,
        *,
        account_repo: IAccountRepository,
        session_repo: ISessionRepository,
        codec: ITokenCodec,
        clock: Clock,
        hasher: IPasswordHasher,
        policy: SessionPolicy | None = None,
    ) -> None:
        self.policy = policy or SessionPolicy()
        self.clock = clock
        self._session_repo = session_repo
        self._codec = codec
        self.verifier = CredentialVerifier(account_repo, clock, hasher)
        self.issuer = SessionIssuer(session_repo, codec, clock, self.policy)
        self.validator = SessionValidator(account_repo, session_repo, codec, clock)
        self.revoker = SessionRevoker(session_repo, clock)
        self._logins: SingleFlight[IssuedSession] = SingleFlight()

    # ── Facets ────────────────────────────────────────────────────────────────

    async def verify(self, identifier: str, proof: Proof, *, timeout=_DEFAULT) -> Account:
        return await self._bounded(self.verifier.verify(identifier, proof), timeout, "verify")

    async def issue(
        self,
        account: Account,
        *,
        user_agent: str | None = None,
        ip_address: str | None = None,
        timeout=_DEFAULT,
    ) -> IssuedSession:
        return await self._bounded(
            self.issuer.issue(account, user_agent=user_agent, ip_address=ip_address),
            timeout,
            "issue",
        )

    async def validate(self, token: str, *, timeout=_DEFAULT) -> ValidatedSession:
        return await self._bounded(self.validator.validate(token), timeout, "validate")

    async def revoke_one(self, session_id: str, *, timeout=_DEFAULT) -> None:
        await self._bounded(self.revoker.revoke_one(session_id), timeout, "revoke_one")

    async def revoke_all(self, account_id: UUID, *, timeout=_DEFAULT) -> int:
        return await self._bounded(self.revoker.revoke_all(account_id), timeout, "revoke_all")

    # ── Compound operations ──────────────────────────────────────────────────

    async def login(
        self,
        identifier: str,
        proof: Proof,
        *,
        user_agent: str | None = None,
        ip_address: str | None = None,
        timeout=_DEFAULT,
    ) -> IssuedSession:
        """Verify then issue. Identical concurrent logins share one outcome."""
        key = (normalize_identifier(identifier), proof.fingerprint())

        async def _login() -> IssuedSession:
            account = await self.verifier.verify(identifier, proof)
            return await self.issuer.issue(account, user_agent=user_agent, ip_address=ip_address)

        return await self._bounded(self._logins.do(key, _login), timeout, "login")

    async def refresh(
        self,
        token: str,
        *,
        user_agent: str | None = None,
        ip_address: str | None = None,
        timeout=_DEFAULT,
    ) -> IssuedSession:
        """Exchange a live artifact for a fresh session; the presented one is revoked."""

        async def _refresh() -> IssuedSession:
            current = await self.validator.validate(token)
            issued = await self.issuer.issue(current.account, user_agent=user_agent, ip_address=ip_address)
            await self.revoker.revoke_one(current.session.id)
            return issued

        return await self._bounded(_refresh(), timeout, "refresh")

    async def logout(self, token: str, *, timeout=_DEFAULT) -> None:
        """Revoke the session named by an artifact. Unreadable artifacts are ignored."""
        try:
            claims = self._codec.decode(token)
        except MalformedTokenError:
            return
        await self.revoke_one(claims.session_id, timeout=timeout)

    async def list_sessions(self, account_id: UUID, *, timeout=_DEFAULT) -> list[Session]:
        sessions = await self._bounded(
            self._session_repo.list_by_account(account_id, live_at=self.clock.now()),
            timeout,
            "list_sessions",
        )
        return sorted(sessions, key=lambda s: s.issued_at, reverse=True)

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _bounded(self, aw: Awaitable[T], timeout, operation: str) -> T:
        limit = self.policy.operation_timeout if timeout is _DEFAULT else timeout
        if limit is None:
            return await aw
        try:
            return await asyncio.wait_for(aw, limit)
        except asyncio.TimeoutError as exc:
            logger.warning("operation_timed_out", operation=operation, timeout=limit)
            raise StoreUnavailableError(f"{operation} timed out") from exc
