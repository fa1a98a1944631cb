from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class SessionPolicy:
    session_ttl: timedelta = timedelta(hours=24)
    # None means unlimited; otherwise the oldest live sessions are evicted.
    max_concurrent_sessions: int | None = None
    # Seconds; None disables the per-operation timeout.
    operation_timeout: float | None = 5.0

    def __post_init__(self) -> None:
        if self.session_ttl <= timedelta(0):
            raise ValueError("session_ttl must be positive")
        if self.max_concurrent_sessions is not None and self.max_concurrent_sessions < 1:
            raise ValueError("max_concurrent_sessions must be at least 1")
