"""Session revocation. Revocation is one-way and idempotent."""
from __future__ import annotations

from uuid import UUID

import structlog

from sessionauth.domain.clock import Clock
from sessionauth.domain.identity.repositories import ISessionRepository

logger = structlog.get_logger(__name__)


class SessionRevoker:
    def __init__(self, session_repo: ISessionRepository, clock: Clock) -> None:
        self._session_repo = session_repo
        self._clock = clock

    async def revoke_one(self, session_id: str) -> None:
        """Unknown and already revoked sessions are not errors."""
        if await self._session_repo.revoke(session_id, self._clock.now()):
            logger.info("session_revoked", session_id_prefix=session_id[:6])

    async def revoke_all(self, account_id: UUID) -> int:
        """Revoke every session of an account. Returns how many were live."""
        now = self._clock.now()
        transitioned = await self._session_repo.revoke_all_for_account(account_id, now)
        live = sum(1 for session in transitioned if not session.is_expired(now))
        logger.info("sessions_revoked", account_id=str(account_id), count=live)
        return live
