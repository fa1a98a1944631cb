"""Error taxonomy of the session authority.

Only ``StoreUnavailableError`` (and ``RateLimitedError`` after its delay) is
worth retrying; every other kind is terminal for the request that raised it.
"""
from __future__ import annotations


class AuthError(Exception):
    code: str = "auth_error"
    retryable: bool = False
    default_message: str = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidCredentialError(AuthError):
    """Wrong password or unknown identifier. Deliberately indistinguishable."""
    code = "invalid_credential"
    default_message = "Invalid credentials"


class AccountNotProvisionedError(AuthError):
    code = "account_not_provisioned"
    default_message = "No account is linked to this identity"


class AccountInactiveError(AuthError):
    code = "account_inactive"
    default_message = "Account is not active"


class MalformedTokenError(AuthError):
    code = "malformed"
    default_message = "Malformed bearer token"


class ExpiredTokenError(AuthError):
    code = "expired"
    default_message = "Session expired"


class RevokedTokenError(AuthError):
    code = "revoked"
    default_message = "Session revoked"


class SessionNotFoundError(AuthError):
    code = "not_found"
    default_message = "Session not found"


class StoreUnavailableError(AuthError):
    code = "store_unavailable"
    retryable = True
    default_message = "Session store unavailable"


class AccountAlreadyExistsError(AuthError):
    code = "account_exists"
    default_message = "Email already registered"


class RateLimitedError(AuthError):
    code = "rate_limited"
    retryable = True
    default_message = "Too many attempts"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


def is_sign_in_required(exc: BaseException) -> bool:
    """True when a client must drop its cached artifact and sign in again."""
    return isinstance(exc, AuthError) and not exc.retryable
