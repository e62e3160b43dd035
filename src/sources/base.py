"""
Base source abstraction for Social Feed API.

Defines the abstract interface that every upstream data source must implement.
"""

from abc import ABC, abstractmethod
from typing import Optional

import requests

from src.errors import UpstreamUnavailable
from src.models.feed import RawFeed


# Browser user agent for page scraping; several platforms reject obvious bots
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def normalize_handle(handle: Optional[str]) -> str:
    """Strip surrounding whitespace and a leading '@' from a handle."""
    if not handle:
        return ""
    handle = handle.strip()
    if handle.startswith("@"):
        handle = handle[1:]
    return handle.strip()


class Source(ABC):
    """
    Abstract base class for all feed sources.

    Each way of acquiring a platform's feed (official API, scraping proxy,
    direct page scrape) implements this interface so the source selector can
    walk them in priority order.

    Attributes:
        name: Unique identifier for this source (e.g., "twitter_api", "nitter").
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the unique name identifier for this source.

        Used in failure reasons, usage stats and for logging.
        Should be lowercase, no spaces (e.g., "parsebot", "youtube_web").
        """
        pass

    @abstractmethod
    def fetch(self, handle: str, count: int) -> RawFeed:
        """
        Fetch up to count items for a handle.

        Implementations should:
        - Raise UpstreamUnavailable when the upstream cannot be used
          (network, auth, not found, rate limit, unparseable page)
        - Return a RawFeed with an empty item list when the upstream answered
          but had nothing to deliver, setting RawFeed.error when the emptiness
          is itself a problem (e.g. missing session cookie)

        Args:
            handle: Normalized handle (no '@', trimmed).
            count: Maximum number of items to fetch.

        Returns:
            RawFeed tagged with this source's provenance and schema.
        """
        pass

    @property
    def is_available(self) -> bool:
        """Check if this source is configured and can be tried."""
        return True

    @property
    def unavailable_reason(self) -> str:
        """Failure reason recorded when the source is skipped as unavailable."""
        return "not configured"

    def upstream_error(self, exc: requests.RequestException, action: str) -> UpstreamUnavailable:
        """Wrap a requests failure, keeping the upstream HTTP status if there was one."""
        status = None
        if exc.response is not None:
            status = exc.response.status_code
        return UpstreamUnavailable(self.name, f"{action}: {exc}", upstream_status=status)

    def __str__(self) -> str:
        return f"Source({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
