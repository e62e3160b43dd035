"""
Error taxonomy for Social Feed API.

Only ValidationError, MethodNotAllowed and AllSourcesExhausted ever become
HTTP errors. UpstreamUnavailable is raised by a single source and absorbed
by the source selector, which moves on to the next source.
"""

from typing import List, Optional


class FeedError(Exception):
    """Base class for all errors raised by this package."""

    status_code: int = 500

    def to_dict(self) -> dict:
        return {"error": str(self), "status": "error"}


class ValidationError(FeedError):
    """A required query parameter is missing or malformed."""

    status_code = 400


class MethodNotAllowed(FeedError):
    """The endpoint only supports GET and OPTIONS."""

    status_code = 405

    def __init__(self, message: str = "Method not allowed"):
        super().__init__(message)


class UpstreamUnavailable(FeedError):
    """
    One upstream source failed (network, auth, not found, rate limit).

    Attributes:
        source: Name of the source that failed.
        upstream_status: HTTP status returned by the upstream, if any.
    """

    def __init__(self, source: str, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.upstream_status = upstream_status

    @property
    def is_rate_limited(self) -> bool:
        """True when the upstream signalled quota exhaustion (HTTP 429)."""
        return self.upstream_status == 429


class AllSourcesExhausted(FeedError):
    """
    Every configured source for a platform failed.

    The message concatenates each source's failure reason so clients can
    see why every alternative was rejected.
    """

    def __init__(self, platform: str, attempts: list):
        self.platform = platform
        self.attempts = attempts
        reasons = "; ".join(
            f"{a.source_name}: {a.error}" for a in attempts if a.error
        )
        super().__init__(f"All {platform} sources failed: {reasons or 'no sources configured'}")

    @property
    def sources_tried(self) -> List[str]:
        return [a.source_name for a in self.attempts]

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "status": "error",
            "source": "all_failed",
            "sources_tried": self.sources_tried,
        }
