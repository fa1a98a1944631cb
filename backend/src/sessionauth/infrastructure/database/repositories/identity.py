"""Concrete SQLAlchemy repository implementations for the identity context.

Each call runs in its own short transaction, committed before the call
returns, so a write is visible to every replica as soon as the caller sees it.
"""
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sessionauth.application.identity.errors import AccountAlreadyExistsError, StoreUnavailableError
from sessionauth.domain.identity.entities import Account, AccountStatus, Session
from sessionauth.domain.identity.value_objects import DelegatedIdentity, Email, PasswordHash
from sessionauth.infrastructure.database.models.identity import AccountModel, SessionModel


@asynccontextmanager
async def _transaction(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    try:
        async with factory.begin() as db:
            yield db
    except (SQLAlchemyError, OSError) as exc:
        raise StoreUnavailableError() from exc


class AccountRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = session_factory

    async def get_by_id(self, account_id: UUID) -> Account | None:
        async with _transaction(self._factory) as db:
            result = await db.get(AccountModel, account_id)
            return _to_account(result) if result else None

    async def get_by_email(self, email: str) -> Account | None:
        stmt = select(AccountModel).where(
            AccountModel.email == email, AccountModel.status != AccountStatus.DELETED.value
        )
        async with _transaction(self._factory) as db:
            row = (await db.execute(stmt)).scalar_one_or_none()
            return _to_account(row) if row else None

    async def get_by_delegated_identity(self, identity: DelegatedIdentity) -> Account | None:
        stmt = select(AccountModel).where(
            AccountModel.delegated_identity_ref == identity.ref,
            AccountModel.status != AccountStatus.DELETED.value,
        )
        async with _transaction(self._factory) as db:
            row = (await db.execute(stmt)).scalar_one_or_none()
            return _to_account(row) if row else None

    async def add(self, account: Account) -> Account:
        model = AccountModel(
            id=account.id,
            email=str(account.email),
            password_hash=str(account.password_hash) if account.password_hash else None,
            delegated_identity_ref=account.delegated_identity.ref if account.delegated_identity else None,
            status=account.status.value,
            created_at=account.created_at,
            updated_at=account.updated_at,
            last_login_at=account.last_login_at,
            display_name=account.display_name,
            profile_picture_url=account.profile_picture_url,
            preferences=dict(account.preferences),
        )
        async with _transaction(self._factory) as db:
            db.add(model)
            try:
                await db.flush()
            except IntegrityError as exc:
                raise AccountAlreadyExistsError() from exc
        return account

    async def update_status(self, account_id: UUID, status: AccountStatus, at: datetime) -> Account | None:
        async with _transaction(self._factory) as db:
            model = await db.get(AccountModel, account_id)
            if model is None:
                return None
            model.status = status.value
            model.updated_at = at
            await db.flush()
            return _to_account(model)

    async def update_password_hash(
        self, account_id: UUID, password_hash: PasswordHash, at: datetime
    ) -> Account | None:
        async with _transaction(self._factory) as db:
            model = await db.get(AccountModel, account_id)
            if model is None:
                return None
            model.password_hash = str(password_hash)
            model.updated_at = at
            await db.flush()
            return _to_account(model)

    async def touch_last_login(self, account_id: UUID, at: datetime) -> None:
        stmt = update(AccountModel).where(AccountModel.id == account_id).values(last_login_at=at)
        async with _transaction(self._factory) as db:
            await db.execute(stmt)


    async def update_profile(self, account_id: UUID, changes: Mapping[str, Any], at: datetime) -> Account | None:
        async with _transaction(self._factory) as db:
            model = await db.get(AccountModel, account_id)
            if model is None:
                return None
            for name, value in changes.items():
                setattr(model, name, value)
            model.updated_at = at
            await db.flush()
            return _to_account(model)

_SESSION_COLUMNS = (
    SessionModel.id,
    SessionModel.account_id,
    SessionModel.issued_at,
    SessionModel.expires_at,
    SessionModel.revoked_at,
    SessionModel.user_agent,
    SessionModel.ip_address,
)


class SessionRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = session_factory

    async def add(self, session: Session) -> Session:
        model = SessionModel(
            id=session.id,
            account_id=session.account_id,
            issued_at=session.issued_at,
            expires_at=session.expires_at,
            revoked_at=session.revoked_at,
            user_agent=session.user_agent,
            ip_address=session.ip_address,
        )
        async with _transaction(self._factory) as db:
            db.add(model)
        return session

    async def get(self, session_id: str) -> Session | None:
        async with _transaction(self._factory) as db:
            model = await db.get(SessionModel, session_id)
            return _to_session(model) if model else None

    async def revoke(self, session_id: str, at: datetime) -> bool:
        stmt = (
            update(SessionModel)
            .where(SessionModel.id == session_id, SessionModel.revoked_at.is_(None))
            .values(revoked_at=at)
        )
        async with _transaction(self._factory) as db:
            result = await db.execute(stmt)
            return result.rowcount > 0

    async def list_by_account(self, account_id: UUID, *, live_at: datetime | None = None) -> list[Session]:
        stmt = select(SessionModel).where(SessionModel.account_id == account_id)
        if live_at is not None:
            stmt = stmt.where(SessionModel.revoked_at.is_(None), SessionModel.expires_at > live_at)
        async with _transaction(self._factory) as db:
            result = await db.execute(stmt)
            return [_to_session(m) for m in result.scalars()]

    async def revoke_all_for_account(self, account_id: UUID, at: datetime) -> list[Session]:
        stmt = (
            update(SessionModel)
            .where(SessionModel.account_id == account_id, SessionModel.revoked_at.is_(None))
            .values(revoked_at=at)
            .returning(*_SESSION_COLUMNS)
        )
        async with _transaction(self._factory) as db:
            result = await db.execute(stmt)
            return [_row_to_session(row) for row in result]


# ── Mappers ───────────────────────────────────────────────────────────────────

def _to_account(m: AccountModel) -> Account:
    return Account(
        id=m.id,
        email=Email(m.email),
        password_hash=PasswordHash(m.password_hash) if m.password_hash else None,
        delegated_identity=DelegatedIdentity.from_ref(m.delegated_identity_ref) if m.delegated_identity_ref else None,
        status=AccountStatus(m.status),
        created_at=m.created_at,
        updated_at=m.updated_at,
        last_login_at=m.last_login_at,
        display_name=m.display_name,
        profile_picture_url=m.profile_picture_url,
        preferences=dict(m.preferences or {}),
    )


def _to_session(m: SessionModel) -> Session:
    return Session(
        id=m.id,
        account_id=m.account_id,
        issued_at=m.issued_at,
        expires_at=m.expires_at,
        revoked_at=m.revoked_at,
        user_agent=m.user_agent,
        ip_address=m.ip_address,
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        account_id=row.account_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        revoked_at=row.revoked_at,
        user_agent=row.user_agent,
        ip_address=row.ip_address,
    )
