"""Dict-backed repository implementations for development and tests.

Records are copied on the way in and out so callers never share mutable
state with the store, the same as a round trip through a real database.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sessionauth.application.identity.errors import AccountAlreadyExistsError
from sessionauth.domain.identity.entities import Account, AccountStatus, Session
from sessionauth.domain.identity.value_objects import DelegatedIdentity, PasswordHash


class MemoryAccountRepository:
    def __init__(self) -> None:
        self._accounts: dict[UUID, Account] = {}

    async def get_by_id(self, account_id: UUID) -> Account | None:
        account = self._accounts.get(account_id)
        return replace(account) if account else None

    async def get_by_email(self, email: str) -> Account | None:
        account = self._find(lambda a: str(a.email) == email)
        return replace(account) if account else None

    async def get_by_delegated_identity(self, identity: DelegatedIdentity) -> Account | None:
        account = self._find(lambda a: a.delegated_identity == identity)
        return replace(account) if account else None

    async def add(self, account: Account) -> Account:
        if account.id in self._accounts:
            raise AccountAlreadyExistsError("Account id already exists")
        if self._find(lambda a: a.email == account.email):
            raise AccountAlreadyExistsError()
        if account.delegated_identity and self._find(lambda a: a.delegated_identity == account.delegated_identity):
            raise AccountAlreadyExistsError("Identity already linked")
        self._accounts[account.id] = replace(account)
        return account

    async def update_status(self, account_id: UUID, status: AccountStatus, at: datetime) -> Account | None:
        return self._update(account_id, at, status=status)

    async def update_password_hash(
        self, account_id: UUID, password_hash: PasswordHash, at: datetime
    ) -> Account | None:
        return self._update(account_id, at, password_hash=password_hash)

    async def touch_last_login(self, account_id: UUID, at: datetime) -> None:
        account = self._accounts.get(account_id)
        if account:
            account.last_login_at = at

    async def update_profile(self, account_id: UUID, changes: Mapping[str, Any], at: datetime) -> Account | None:
        return self._update(account_id, at, **changes)

    def _find(self, predicate) -> Account | None:
        for account in self._accounts.values():
            if not account.is_deleted and predicate(account):
                return account
        return None

    def _update(self, account_id: UUID, at: datetime, **changes) -> Account | None:
        account = self._accounts.get(account_id)
        if account is None:
            return None
        for name, value in changes.items():
            setattr(account, name, value)
        account.updated_at = at
        return replace(account)


class MemorySessionRepository:
    """Sessions indexed by id and by account.

    Rows expired for longer than ``retention`` are dropped on write, standing
    in for the TTL attribute of a managed store.
    """

    def __init__(self, retention: timedelta = timedelta(days=30)) -> None:
        self._sessions: dict[str, Session] = {}
        self._by_account: dict[UUID, set[str]] = {}
        self._retention = retention

    async def add(self, session: Session) -> Session:
        self._purge(session.issued_at)
        self._sessions[session.id] = replace(session)
        self._by_account.setdefault(session.account_id, set()).add(session.id)
        return session

    async def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        return replace(session) if session else None

    async def revoke(self, session_id: str, at: datetime) -> bool:
        session = self._sessions.get(session_id)
        return session.revoke(at) if session else False

    async def list_by_account(self, account_id: UUID, *, live_at: datetime | None = None) -> list[Session]:
        sessions = [self._sessions[sid] for sid in self._by_account.get(account_id, ())]
        if live_at is not None:
            sessions = [s for s in sessions if s.is_live(live_at)]
        return [replace(s) for s in sessions]

    async def revoke_all_for_account(self, account_id: UUID, at: datetime) -> list[Session]:
        transitioned = []
        for sid in self._by_account.get(account_id, ()):
            session = self._sessions[sid]
            if session.revoke(at):
                transitioned.append(replace(session))
        return transitioned

    def _purge(self, now: datetime) -> None:
        cutoff = now - self._retention
        stale = [sid for sid, s in self._sessions.items() if s.expires_at < cutoff]
        for sid in stale:
            session = self._sessions.pop(sid)
            ids = self._by_account.get(session.account_id)
            if ids is not None:
                ids.discard(sid)
                if not ids:
                    del self._by_account[session.account_id]
