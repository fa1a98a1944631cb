"""Session validation: map a presented bearer artifact to a live session.

Two tiers. The first needs no I/O and rejects forged, corrupted or
self-declared-expired artifacts. The second reads the session and its account
and is authoritative: whenever the store disagrees with the artifact's claims,
the store wins.
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog

from sessionauth.application.identity.errors import (
    AccountInactiveError,
    ExpiredTokenError,
    MalformedTokenError,
    RevokedTokenError,
    SessionNotFoundError,
)
from sessionauth.application.identity.issuer import ITokenCodec
from sessionauth.domain.clock import Clock
from sessionauth.domain.identity.entities import Account, Session
from sessionauth.domain.identity.repositories import IAccountRepository, ISessionRepository

logger = structlog.get_logger(__name__)


@dataclass
class ValidatedSession:
    account: Account
    session: Session


class SessionValidator:
    def __init__(
        self,
        account_repo: IAccountRepository,
        session_repo: ISessionRepository,
        codec: ITokenCodec,
        clock: Clock,
    ) -> None:
        self._account_repo = account_repo
        self._session_repo = session_repo
        self._codec = codec
        self._clock = clock

    async def validate(self, token: str) -> ValidatedSession:
        # Tier 1: signature, shape and claimed expiry.
        claims = self._codec.decode(token)
        if self._clock.now() >= claims.expires_at:
            raise ExpiredTokenError()

        # Tier 2: stored state.
        session = await self._session_repo.get(claims.session_id)
        if session is None:
            raise SessionNotFoundError()
        if session.account_id != claims.account_id:
            logger.warning("token_account_mismatch", session_id_prefix=session.id[:6])
            raise MalformedTokenError()
        if session.revoked:
            raise RevokedTokenError()

        account = await self._account_repo.get_by_id(session.account_id)
        if account is None:
            raise SessionNotFoundError()
        if not account.is_active:
            raise AccountInactiveError()

        if session.is_expired(self._clock.now()):
            raise ExpiredTokenError()

        return ValidatedSession(account=account, session=session)
