"""
Round-robin rotation over a pool of API credentials.

Several free-tier Twitter tokens are pooled to multiply the monthly quota.
The rotator hands out the next eligible credential after the one used last,
so load spreads evenly across the pool.

All mutation happens under a single lock so concurrent requests cannot
double-count or skip a credential.
"""

import threading
from typing import Iterable, List, Optional

from src.models.credential import Credential


class KeyRotator:
    """
    Pool of interchangeable credentials with per-credential quotas.

    Usage:
        rotator = KeyRotator.from_tokens(["t1", "t2"], max_per_period=100)
        key = rotator.acquire()
        try:
            call_upstream(key.token)
        except RateLimited:
            rotator.release(key)
            rotator.mark_exhausted(key)
    """

    def __init__(self, credentials: Iterable[Credential] = ()):
        self._credentials: List[Credential] = list(credentials)
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_tokens(cls, tokens: Iterable[str], max_per_period: int = 100) -> "KeyRotator":
        """Build a pool named key_1..key_N from raw tokens."""
        return cls(
            Credential(name=f"key_{i}", token=token, max_per_period=max_per_period)
            for i, token in enumerate(tokens, start=1)
        )

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def credentials(self) -> List[Credential]:
        return list(self._credentials)

    def _next_locked(self) -> Optional[Credential]:
        count = len(self._credentials)
        for offset in range(count):
            idx = (self._cursor + offset) % count
            credential = self._credentials[idx]
            if credential.is_eligible:
                self._cursor = (idx + 1) % count
                return credential
        return None

    @property
    def has_eligible(self) -> bool:
        """True if next() would return a credential. Does not move the cursor."""
        with self._lock:
            return any(c.is_eligible for c in self._credentials)

    def next(self) -> Optional[Credential]:
        """
        Return the next eligible credential, or None when the pool is spent.

        Scans from the cursor, wrapping around, for the first credential that is
        not exhausted and still under quota. The cursor moves past the returned
        credential.
        """
        with self._lock:
            return self._next_locked()

    def acquire(self) -> Optional[Credential]:
        """
        Select the next eligible credential and reserve one use of it.

        Selection and increment happen atomically. Call release() if the
        upstream call did not succeed.
        """
        with self._lock:
            credential = self._next_locked()
            if credential is not None:
                credential.usage_count += 1
            return credential

    def release(self, credential: Credential) -> None:
        """Return a reservation taken by acquire() for a call that failed."""
        with self._lock:
            if credential.usage_count > 0:
                credential.usage_count -= 1

    def record_use(self, credential: Credential) -> None:
        """Count one successful upstream call made with this credential."""
        with self._lock:
            credential.usage_count += 1

    def mark_exhausted(self, credential: Credential) -> None:
        """Take a credential out of rotation for the rest of the process lifetime."""
        with self._lock:
            credential.exhausted = True

    def usage_snapshot(self) -> List[dict]:
        """Read-only usage stats for every credential in the pool."""
        with self._lock:
            return [c.to_dict() for c in self._credentials]

    @property
    def total_remaining(self) -> int:
        with self._lock:
            return sum(c.remaining for c in self._credentials)

    @property
    def total_max(self) -> int:
        with self._lock:
            return sum(c.max_per_period for c in self._credentials)

    def __repr__(self) -> str:
        return f"<KeyRotator credentials={len(self._credentials)} cursor={self._cursor}>"
