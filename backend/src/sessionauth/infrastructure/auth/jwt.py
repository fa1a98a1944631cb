"""Bearer artifact creation and verification using python-jose.

An artifact is a compact HS256 JWS carrying the session id, the owning
account id and the issue/expiry instants. The codec only proves the artifact
was signed by one of our keys and is well formed: expiry and liveness are
judged by the validator against the injected clock and the session store.
"""
import hashlib
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode

from sessionauth.application.identity.errors import MalformedTokenError
from sessionauth.domain.identity.value_objects import SessionClaims

TOKEN_TYPE = "session"


def key_id(secret: str) -> str:
    """Short, non-reversible identifier of a signing secret."""
    return hashlib.sha256(secret.encode()).hexdigest()[:8]


def _timestamp(value: datetime) -> int:
    return int(value.timestamp())


class SessionTokenCodec:
    def __init__(
        self,
        secret_key: str,
        *,
        previous_secret_keys: list[str] | tuple[str, ...] = (),
        algorithm: str = "HS256",
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        # Current key first; older keys keep verifying until they are dropped from config.
        self._verification_keys: dict[str, str] = {key_id(secret_key): secret_key}
        for old in previous_secret_keys:
            if old:
                self._verification_keys.setdefault(key_id(old), old)

    def encode(self, claims: SessionClaims) -> str:
        payload: dict[str, Any] = {
            "sid": claims.session_id,
            "sub": str(claims.account_id),
            "iat": _timestamp(claims.issued_at),
            "exp": _timestamp(claims.expires_at),
            "typ": TOKEN_TYPE,
        }
        return jwt.encode(
            payload,
            self._secret_key,
            algorithm=self._algorithm,
            headers={"kid": key_id(self._secret_key)},
        )

    def decode(self, token: str) -> SessionClaims:
        """Verify signature and shape. Raises MalformedTokenError on any failure."""
        if not token or token.count(".") != 2:
            raise MalformedTokenError()
        if not _is_canonical_segment(token.rsplit(".", 1)[1]):
            raise MalformedTokenError()
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise MalformedTokenError() from exc

        payload = self._verify_signature(token, header.get("kid"))
        return _claims_from_payload(payload)

    def _verify_signature(self, token: str, kid: Any) -> dict[str, Any]:
        if isinstance(kid, str) and kid in self._verification_keys:
            candidates = [self._verification_keys[kid]]
        else:
            candidates = list(self._verification_keys.values())

        for secret in candidates:
            try:
                return jwt.decode(
                    token,
                    secret,
                    algorithms=[self._algorithm],
                    options={"verify_exp": False, "verify_aud": False},
                )
            except JWTError:
                continue
        raise MalformedTokenError()


def _is_canonical_segment(segment: str) -> bool:
    """True when the segment is the one encoding of the bytes it decodes to.

    The last base64url character of a digest carries spare low bits that a
    decoder ignores, so several spellings map to one signature. Only the
    spelling we emit is accepted.
    """
    try:
        raw = segment.encode("ascii")
        return base64url_encode(base64url_decode(raw)) == raw
    except (UnicodeEncodeError, ValueError, TypeError):
        return False


def _claims_from_payload(payload: dict[str, Any]) -> SessionClaims:
    try:
        if payload.get("typ") != TOKEN_TYPE:
            raise ValueError("unexpected token type")
        session_id = payload["sid"]
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("missing session id")
        issued_at = payload["iat"]
        expires_at = payload["exp"]
        if not isinstance(issued_at, int) or not isinstance(expires_at, int) or expires_at <= issued_at:
            raise ValueError("bad validity window")
        return SessionClaims(
            session_id=session_id,
            account_id=UUID(payload["sub"]),
            issued_at=datetime.fromtimestamp(issued_at, timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedTokenError() from exc
