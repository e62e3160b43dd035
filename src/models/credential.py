"""
API credential model used by the key rotator.
"""

from dataclasses import dataclass


@dataclass
class Credential:
    """
    One interchangeable API credential with a per-period usage quota.

    Created at process start from configuration. Counters live in memory only
    and reset on restart; nothing resets them within a running process.

    Attributes:
        name: Identifier shown in usage stats (e.g. "key_1").
        token: Opaque bearer token.
        usage_count: Successful upstream calls made with this credential.
        max_per_period: Quota for the period (monthly by default).
        exhausted: Set when the upstream signalled a rate limit; sticky.
    """

    name: str
    token: str
    usage_count: int = 0
    max_per_period: int = 100
    exhausted: bool = False

    @property
    def remaining(self) -> int:
        return max(self.max_per_period - self.usage_count, 0)

    @property
    def is_eligible(self) -> bool:
        """True if this credential may still be handed out."""
        return not self.exhausted and self.usage_count < self.max_per_period

    def to_dict(self) -> dict:
        """Usage snapshot without the token."""
        return {
            "name": self.name,
            "used": self.usage_count,
            "max": self.max_per_period,
            "remaining": self.remaining,
            "exhausted": self.exhausted,
        }

    def __repr__(self) -> str:
        return (
            f"Credential(name={self.name!r}, used={self.usage_count}, "
            f"max={self.max_per_period}, exhausted={self.exhausted})"
        )
