"""AuthFacade — the single entry point to the application layer.

All routers go through this facade instead of calling application functions directly.
This enforces the Facade pattern and keeps the API layer thin.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sessionauth.application.identity import commands as id_commands
from sessionauth.application.identity import queries as id_queries
from sessionauth.application.identity.authority import SessionAuthority
from sessionauth.application.identity.issuer import IssuedSession
from sessionauth.application.identity.validator import ValidatedSession
from sessionauth.application.identity.verifier import DelegatedProof, IPasswordHasher, PasswordProof
from sessionauth.domain.identity.entities import Account, Session
from sessionauth.domain.identity.repositories import IAccountRepository
from sessionauth.domain.identity.value_objects import DelegatedIdentity
from sessionauth.infrastructure.rate_limit import SlidingWindowRateLimiter


@dataclass
class RegisterResult:
    account: Account
    issued: IssuedSession


class AuthFacade:
    """Aggregates identity use cases over one SessionAuthority."""

    def __init__(
        self,
        authority: SessionAuthority,
        account_repo: IAccountRepository,
        hasher: IPasswordHasher,
        register_limiter: SlidingWindowRateLimiter | None = None,
        login_limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        self.authority = authority
        self._account_repo = account_repo
        self._hasher = hasher
        self._register_limiter = register_limiter
        self._login_limiter = login_limiter

    # ── Sign-up / sign-in ────────────────────────────────────────────────────

    async def register(
        self, email: str, password: str,
        ip_address: str | None = None, user_agent: str | None = None,
    ) -> RegisterResult:
        if self._register_limiter is not None:
            self._register_limiter.hit(f"register:{ip_address or 'unknown'}")
        account = await id_commands.register_account(
            email=email, password=password,
            account_repo=self._account_repo, hasher=self._hasher, clock=self.authority.clock,
        )
        issued = await self.authority.issue(account, user_agent=user_agent, ip_address=ip_address)
        return RegisterResult(account=account, issued=issued)

    async def login(
        self, email: str, password: str,
        ip_address: str | None = None, user_agent: str | None = None,
    ) -> IssuedSession:
        if self._login_limiter is not None:
            self._login_limiter.hit(f"login:{ip_address or 'unknown'}")
        return await self.authority.login(
            email, PasswordProof(password), user_agent=user_agent, ip_address=ip_address,
        )

    async def login_delegated(
        self, email: str, identity: DelegatedIdentity,
        ip_address: str | None = None, user_agent: str | None = None,
    ) -> IssuedSession:
        """Sign in with an identity whose assertion the caller has already verified."""
        await id_commands.provision_delegated_account(
            email=email, identity=identity,
            account_repo=self._account_repo, clock=self.authority.clock,
        )
        return await self.authority.login(
            email, DelegatedProof(identity), user_agent=user_agent, ip_address=ip_address,
        )

    # ── Sessions ─────────────────────────────────────────────────────────────

    async def authenticate(self, token: str) -> ValidatedSession:
        return await self.authority.validate(token)

    async def refresh(
        self, token: str, ip_address: str | None = None, user_agent: str | None = None,
    ) -> IssuedSession:
        return await self.authority.refresh(token, user_agent=user_agent, ip_address=ip_address)

    async def logout(self, token: str) -> None:
        await self.authority.logout(token)

    async def logout_all(self, account_id: UUID) -> int:
        return await self.authority.revoke_all(account_id)

    async def list_sessions(self, account_id: UUID) -> list[Session]:
        return await self.authority.list_sessions(account_id)

    # ── Account lifecycle ────────────────────────────────────────────────────

    async def get_current_account(self, account_id: UUID) -> Account | None:
        return await id_queries.get_account_by_id(account_id, self._account_repo)

    async def change_password(self, account_id: UUID, current_password: str, new_password: str) -> int:
        return await id_commands.change_password(
            account_id=account_id, current_password=current_password, new_password=new_password,
            account_repo=self._account_repo, hasher=self._hasher,
            revoker=self.authority.revoker, clock=self.authority.clock,
        )

    async def update_profile(self, account_id: UUID, changes: dict) -> Account:
        return await id_commands.update_profile(
            account_id=account_id, changes=changes,
            account_repo=self._account_repo, clock=self.authority.clock,
        )

    async def disable_account(self, account_id: UUID) -> int:
        return await id_commands.disable_account(
            account_id=account_id, account_repo=self._account_repo,
            revoker=self.authority.revoker, clock=self.authority.clock,
        )

    async def delete_account(self, account_id: UUID) -> int:
        return await id_commands.delete_account(
            account_id=account_id, account_repo=self._account_repo,
            revoker=self.authority.revoker, clock=self.authority.clock,
        )
