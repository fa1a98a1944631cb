"""Argon2id password hashing using argon2-cffi."""
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from sessionauth.domain.identity.value_objects import PasswordHash


class Argon2PasswordHasher:
    """Salted Argon2id hashing. Verification is constant-time in the digest."""

    def __init__(
        self,
        *,
        time_cost: int = 2,
        memory_cost: int = 65536,  # 64 MiB
        parallelism: int = 2,
    ) -> None:
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
        )
        # Verified against when the account is unknown, so both failure paths cost the same.
        self._dummy_hash = PasswordHash(self._hasher.hash("sessionauth-dummy-password"))

    def hash(self, raw_password: str) -> PasswordHash:
        """Hash a raw password. Returns an opaque PasswordHash."""
        return PasswordHash(self._hasher.hash(raw_password))

    def verify(self, raw_password: str, password_hash: PasswordHash | None) -> bool:
        """Verify a raw password against a stored hash; never raises on mismatch."""
        target = password_hash if password_hash is not None else self._dummy_hash
        try:
            matched = self._hasher.verify(str(target), raw_password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False
        return matched and password_hash is not None

    def needs_rehash(self, password_hash: PasswordHash) -> bool:
        """True if the hash was created with outdated parameters and should be updated."""
        return self._hasher.check_needs_rehash(str(password_hash))


_default_hasher: Argon2PasswordHasher | None = None


def get_password_hasher() -> Argon2PasswordHasher:
    global _default_hasher
    if _default_hasher is None:
        _default_hasher = Argon2PasswordHasher()
    return _default_hasher
