"""FastAPI dependency injection: AuthFacade wiring, bearer extraction, current session."""
from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sessionauth.application.identity.authority import SessionAuthority
from sessionauth.application.identity.errors import MalformedTokenError
from sessionauth.application.identity.validator import ValidatedSession
from sessionauth.config import Settings
from sessionauth.domain.clock import Clock, SystemClock
from sessionauth.infrastructure.auth.jwt import SessionTokenCodec
from sessionauth.infrastructure.auth.password import get_password_hasher
from sessionauth.infrastructure.rate_limit import SlidingWindowRateLimiter
from sessionauth.interfaces.facade import AuthFacade

# ── Wiring ────────────────────────────────────────────────────────────────────

_bearer = HTTPBearer(auto_error=False)


def _build_repositories(settings: Settings):
    if settings.store_backend == "database":
        # Lazy import: the memory backend must not need a database driver.
        from sessionauth.infrastructure.database.connection import get_session_factory
        from sessionauth.infrastructure.database.repositories.identity import (
            AccountRepository,
            SessionRepository,
        )

        factory = get_session_factory(settings)
        return AccountRepository(factory), SessionRepository(factory)

    from sessionauth.infrastructure.memory.repositories import (
        MemoryAccountRepository,
        MemorySessionRepository,
    )

    return MemoryAccountRepository(), MemorySessionRepository()


def build_facade(settings: Settings, *, clock: Clock | None = None, hasher=None) -> AuthFacade:
    clock = clock or SystemClock()
    hasher = hasher or get_password_hasher()
    account_repo, session_repo = _build_repositories(settings)
    codec = SessionTokenCodec(
        settings.secret_key,
        previous_secret_keys=settings.previous_secret_keys,
        algorithm=settings.jwt_algorithm,
    )
    authority = SessionAuthority(
        account_repo=account_repo,
        session_repo=session_repo,
        codec=codec,
        clock=clock,
        hasher=hasher,
        policy=settings.session_policy(),
    )
    window = timedelta(seconds=settings.rate_limit_window_seconds)
    return AuthFacade(
        authority=authority,
        account_repo=account_repo,
        hasher=hasher,
        register_limiter=SlidingWindowRateLimiter(limit=settings.register_rate_limit, window=window, clock=clock),
        login_limiter=SlidingWindowRateLimiter(limit=settings.login_rate_limit, window=window, clock=clock),
    )


def get_facade(request: Request) -> AuthFacade:
    return request.app.state.facade


# ── Auth ──────────────────────────────────────────────────────────────────────

def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> str:
    if credentials is None:
        raise MalformedTokenError("Missing bearer token")
    return credentials.credentials


async def get_current_session(
    token: Annotated[str, Depends(get_bearer_token)],
    facade: Annotated[AuthFacade, Depends(get_facade)],
) -> ValidatedSession:
    return await facade.authenticate(token)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


# Type aliases for cleaner signatures
Facade = Annotated[AuthFacade, Depends(get_facade)]
BearerToken = Annotated[str, Depends(get_bearer_token)]
CurrentSession = Annotated[ValidatedSession, Depends(get_current_session)]
