"""Shared pytest fixtures."""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from sessionauth.application.identity import commands
from sessionauth.application.identity.authority import SessionAuthority
from sessionauth.domain.identity.policy import SessionPolicy
from sessionauth.infrastructure.auth.jwt import SessionTokenCodec
from sessionauth.infrastructure.auth.password import Argon2PasswordHasher
from sessionauth.infrastructure.memory.repositories import (
    MemoryAccountRepository,
    MemorySessionRepository,
)

SECRET = "test-secret-key-for-testing-only"
ALICE_EMAIL = "alice@example.com"
ALICE_PASSWORD = "Str0ng!Pass"


class FrozenClock:
    """Clock that only moves when a test says so."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture(scope="session")
def hasher():
    """Argon2 with minimal cost parameters to keep the suite fast."""
    return Argon2PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def account_repo():
    return MemoryAccountRepository()


@pytest.fixture
def session_repo():
    return MemorySessionRepository()


@pytest.fixture
def codec():
    return SessionTokenCodec(SECRET)


@pytest.fixture
def policy():
    return SessionPolicy()


@pytest.fixture
def authority(account_repo, session_repo, codec, clock, hasher, policy):
    return SessionAuthority(
        account_repo=account_repo,
        session_repo=session_repo,
        codec=codec,
        clock=clock,
        hasher=hasher,
        policy=policy,
    )


@pytest_asyncio.fixture
async def alice(account_repo, hasher, clock):
    return await commands.register_account(
        email=ALICE_EMAIL,
        password=ALICE_PASSWORD,
        account_repo=account_repo,
        hasher=hasher,
        clock=clock,
    )
