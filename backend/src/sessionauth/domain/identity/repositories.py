"""Repository ports for the Identity bounded context.

Every implementation is async and reports infrastructure failures as
``StoreUnavailableError`` so callers can tell them apart from auth failures.
"""
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from .entities import Account, AccountStatus, Session
from .value_objects import DelegatedIdentity, PasswordHash


class IAccountRepository(Protocol):
    async def get_by_id(self, account_id: UUID) -> Account | None: ...

    async def get_by_email(self, email: str) -> Account | None:
        """Lookup by normalized email among non-deleted accounts."""
        ...

    async def get_by_delegated_identity(self, identity: DelegatedIdentity) -> Account | None: ...

    async def add(self, account: Account) -> Account:
        """Insert a new account. Raises AccountAlreadyExistsError on conflict."""
        ...

    async def update_status(self, account_id: UUID, status: AccountStatus, at: datetime) -> Account | None: ...

    async def update_password_hash(
        self, account_id: UUID, password_hash: PasswordHash, at: datetime
    ) -> Account | None: ...

    async def touch_last_login(self, account_id: UUID, at: datetime) -> None: ...

    async def update_profile(self, account_id: UUID, changes: Mapping[str, Any], at: datetime) -> Account | None:
        """Apply already-validated profile field changes; None when the account is unknown."""
        ...


class ISessionRepository(Protocol):
    async def add(self, session: Session) -> Session:
        """Durably persist a session; it must be readable by any replica on return."""
        ...

    async def get(self, session_id: str) -> Session | None: ...

    async def revoke(self, session_id: str, at: datetime) -> bool:
        """Set revoked_at if unset. Returns True when this call revoked it."""
        ...

    async def list_by_account(self, account_id: UUID, *, live_at: datetime | None = None) -> list[Session]:
        """Sessions of an account, restricted to unrevoked/unexpired ones when live_at is given."""
        ...

    async def revoke_all_for_account(self, account_id: UUID, at: datetime) -> list[Session]:
        """Revoke every unrevoked session of the account; returns the ones transitioned."""
        ...
