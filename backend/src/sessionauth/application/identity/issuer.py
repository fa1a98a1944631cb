"""Session issuance: mint a session for a verified account and sign its artifact."""
from __future__ import annotations

import secrets
from datetime import datetime
from dataclasses import dataclass
from typing import Protocol

import structlog

from sessionauth.application.identity.errors import AccountInactiveError
from sessionauth.domain.clock import Clock
from sessionauth.domain.identity.entities import Account, Session
from sessionauth.domain.identity.policy import SessionPolicy
from sessionauth.domain.identity.repositories import ISessionRepository
from sessionauth.domain.identity.value_objects import SessionClaims

logger = structlog.get_logger(__name__)

SESSION_ID_BYTES = 32


class ITokenCodec(Protocol):
    def encode(self, claims: SessionClaims) -> str: ...

    def decode(self, token: str) -> SessionClaims: ...


@dataclass
class IssuedSession:
    session: Session
    token: str

    @property
    def expires_at(self) -> datetime:
        return self.session.expires_at


class SessionIssuer:
    def __init__(
        self,
        session_repo: ISessionRepository,
        codec: ITokenCodec,
        clock: Clock,
        policy: SessionPolicy,
    ) -> None:
        self._session_repo = session_repo
        self._codec = codec
        self._clock = clock
        self._policy = policy

    async def issue(
        self,
        account: Account,
        *,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> IssuedSession:
        if not account.is_active:
            raise AccountInactiveError()

        # Whole seconds, so the artifact's exp claim and the stored expiry agree exactly.
        now = self._clock.now().replace(microsecond=0)

        if self._policy.max_concurrent_sessions is not None:
            await self._make_room(account, now)

        session = Session(
            id=secrets.token_urlsafe(SESSION_ID_BYTES),
            account_id=account.id,
            issued_at=now,
            expires_at=now + self._policy.session_ttl,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        # Durable before the artifact exists: no replica may see an artifact without its row.
        await self._session_repo.add(session)

        token = self._codec.encode(
            SessionClaims(
                session_id=session.id,
                account_id=session.account_id,
                issued_at=session.issued_at,
                expires_at=session.expires_at,
            )
        )
        logger.info("session_issued", account_id=str(account.id), expires_at=session.expires_at.isoformat())
        return IssuedSession(session=session, token=token)

    async def _make_room(self, account: Account, now: datetime) -> None:
        cap = self._policy.max_concurrent_sessions
        live = await self._session_repo.list_by_account(account.id, live_at=now)
        overflow = len(live) - cap + 1
        if overflow <= 0:
            return
        oldest_first = sorted(live, key=lambda s: s.issued_at)
        for session in oldest_first[:overflow]:
            await self._session_repo.revoke(session.id, now)
        logger.info("sessions_evicted", account_id=str(account.id), count=overflow, cap=cap)
