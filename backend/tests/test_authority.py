"""Tests for the composed SessionAuthority: login, refresh, logout, timeouts."""
import asyncio

import pytest

from conftest import ALICE_EMAIL, ALICE_PASSWORD
from sessionauth.application.identity.authority import SessionAuthority
from sessionauth.application.identity.errors import (
    InvalidCredentialError,
    RevokedTokenError,
    StoreUnavailableError,
)
from sessionauth.application.identity.verifier import PasswordProof
from sessionauth.domain.identity.policy import SessionPolicy
from sessionauth.infrastructure.memory.repositories import (
    MemoryAccountRepository,
    MemorySessionRepository,
)


class CountingAccountRepository(MemoryAccountRepository):
    def __init__(self) -> None:
        super().__init__()
        self.email_lookups = 0

    async def get_by_email(self, email):
        self.email_lookups += 1
        await asyncio.sleep(0.01)
        return await super().get_by_email(email)


class SlowSessionRepository(MemorySessionRepository):
    def __init__(self) -> None:
        super().__init__()
        self.delay = 0.0

    async def get(self, session_id):
        await asyncio.sleep(self.delay)
        return await super().get(session_id)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_returns_validatable_artifact(self, authority, alice):
        issued = await authority.login(ALICE_EMAIL, PasswordProof(ALICE_PASSWORD))

        result = await authority.validate(issued.token)

        assert result.account.id == alice.id

    @pytest.mark.asyncio
    async def test_bad_password_issues_nothing(self, authority, alice, session_repo):
        with pytest.raises(InvalidCredentialError):
            await authority.login(ALICE_EMAIL, PasswordProof("wrong-password"))

        assert await session_repo.list_by_account(alice.id) == []

    @pytest.mark.asyncio
    async def test_sequential_logins_create_distinct_sessions(self, authority, alice):
        first = await authority.login(ALICE_EMAIL, PasswordProof(ALICE_PASSWORD))
        second = await authority.login(ALICE_EMAIL, PasswordProof(ALICE_PASSWORD))

        assert first.session.id != second.session.id


class TestSingleFlightLogin:
    @pytest.fixture
    def account_repo(self):
        return CountingAccountRepository()

    @pytest.mark.asyncio
    async def test_identical_concurrent_logins_share_one_session(self, authority, alice, account_repo):
        account_repo.email_lookups = 0
        results = await asyncio.gather(
            authority.login(ALICE_EMAIL, PasswordProof(ALICE_PASSWORD)),
            authority.login(" alice@EXAMPLE.com", PasswordProof(ALICE_PASSWORD)),
        )

        assert results[0].token == results[1].token
        assert account_repo.email_lookups == 1

    @pytest.mark.asyncio
    async def test_different_proofs_are_not_merged(self, authority, alice, account_repo):
        account_repo.email_lookups = 0
        good, bad = await asyncio.gather(
            authority.login(ALICE_EMAIL, PasswordProof(ALICE_PASSWORD)),
            authority.login(ALICE_EMAIL, PasswordProof("wrong-password")),
            return_exceptions=True,
        )

        assert (await authority.validate(good.token)).account.id == alice.id
        assert isinstance(bad, InvalidCredentialError)
        assert account_repo.email_lookups == 2

    @pytest.mark.asyncio
    async def test_shared_failure_reaches_every_caller(self, authority, alice):
        results = await asyncio.gather(
            authority.login(ALICE_EMAIL, PasswordProof("wrong-password")),
            authority.login(ALICE_EMAIL, PasswordProof("wrong-password")),
            return_exceptions=True,
        )

        assert all(isinstance(r, InvalidCredentialError) for r in results)


class TestTimeouts:
    @pytest.fixture
    def session_repo(self):
        return SlowSessionRepository()

    @pytest.mark.asyncio
    async def test_slow_store_reports_unavailable(self, authority, alice, session_repo):
        issued = await authority.issue(alice)
        session_repo.delay = 1.0

        with pytest.raises(StoreUnavailableError) as exc:
            await authority.validate(issued.token, timeout=0.01)

        assert exc.value.retryable

    @pytest.mark.asyncio
    async def test_policy_timeout_applies_by_default(self, account_repo, session_repo, codec, clock, hasher, alice):
        authority = SessionAuthority(
            account_repo=account_repo,
            session_repo=session_repo,
            codec=codec,
            clock=clock,
            hasher=hasher,
            policy=SessionPolicy(operation_timeout=0.01),
        )
        issued = await authority.issue(alice)
        session_repo.delay = 1.0

        with pytest.raises(StoreUnavailableError):
            await authority.validate(issued.token)

    @pytest.mark.asyncio
    async def test_none_disables_the_bound(self, authority, alice, session_repo):
        issued = await authority.issue(alice)
        session_repo.delay = 0.02

        result = await authority.validate(issued.token, timeout=None)

        assert result.session.id == issued.session.id


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_rotates_the_session(self, authority, alice):
        old = await authority.issue(alice)

        new = await authority.refresh(old.token)

        assert new.session.id != old.session.id
        assert (await authority.validate(new.token)).account.id == alice.id
        with pytest.raises(RevokedTokenError):
            await authority.validate(old.token)

    @pytest.mark.asyncio
    async def test_revoked_artifact_cannot_be_refreshed(self, authority, alice, session_repo):
        old = await authority.issue(alice)
        await authority.revoke_one(old.session.id)

        with pytest.raises(RevokedTokenError):
            await authority.refresh(old.token)

        assert len(await session_repo.list_by_account(alice.id)) == 1


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_revokes_the_named_session(self, authority, alice):
        issued = await authority.issue(alice)

        await authority.logout(issued.token)

        with pytest.raises(RevokedTokenError):
            await authority.validate(issued.token)

    @pytest.mark.asyncio
    async def test_logout_ignores_unreadable_artifacts(self, authority):
        await authority.logout("garbage")

    @pytest.mark.asyncio
    async def test_logout_twice_is_harmless(self, authority, alice):
        issued = await authority.issue(alice)

        await authority.logout(issued.token)
        await authority.logout(issued.token)


class TestListSessions:
    @pytest.mark.asyncio
    async def test_only_live_sessions_newest_first(self, authority, alice, clock):
        expired = await authority.issue(alice)
        clock.advance(hours=25)
        revoked = await authority.issue(alice)
        await authority.revoke_one(revoked.session.id)
        older = await authority.issue(alice)
        clock.advance(minutes=1)
        newer = await authority.issue(alice)

        sessions = await authority.list_sessions(alice.id)

        assert [s.id for s in sessions] == [newer.session.id, older.session.id]
        assert expired.session.id not in {s.id for s in sessions}
