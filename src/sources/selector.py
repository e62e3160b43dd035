"""
Source selector - ordered fallback across a platform's sources.

For one request, tries each configured source in priority order (official or
paid API first, cheaper scraping last) until one yields items:

    source 1 --fail--> source 2 --fail--> ... --all failed--> AllSourcesExhausted

Design principles:
- Error isolation: a failing source is logged and recorded, never raised,
  unless it was the last option
- Provenance: the winning source is reported; earlier failures are not
- No retries or backoff beyond the one pass over the chain
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Sequence

from src.errors import AllSourcesExhausted
from src.log import get_logger
from src.models.feed import RawFeed
from src.sources.base import Source

logger = get_logger("selector")


# =============================================================================
# Resolution Data Structures
# =============================================================================

@dataclass
class SourceAttempt:
    """Result of trying a single source."""
    source_name: str
    success: bool
    items_fetched: int = 0
    error: Optional[str] = None
    duration_ms: float = 0.0


@dataclass
class Resolution:
    """Outcome of walking a platform's source chain."""
    feed: RawFeed
    source_name: str
    attempts: List[SourceAttempt] = field(default_factory=list)

    @property
    def sources_failed(self) -> int:
        return sum(1 for a in self.attempts if not a.success)

    @property
    def sources_tried(self) -> List[str]:
        return [a.source_name for a in self.attempts]


# =============================================================================
# Selector
# =============================================================================

class SourceSelector:
    """
    Walks an ordered list of sources until one returns a non-empty feed.

    Usage:
        selector = SourceSelector("tiktok", [ParseBotSource(), TikTokPageSource()])
        resolution = selector.resolve("someuser", 50)
        resolution.feed, resolution.source_name

    When every source fails:
    - if at least one source answered with an empty feed, the last such feed
      is returned; when it carried an error marker, that marker is replaced with
      every source's failure reason (a partial result)
    - otherwise AllSourcesExhausted is raised with every reason concatenated
    """

    def __init__(self, platform: str, sources: Sequence[Source]):
        self.platform = platform
        self.sources = list(sources)

    def _try_source(self, source: Source, handle: str, count: int) -> tuple[Optional[RawFeed], SourceAttempt]:
        """
        Fetch from a single source with error isolation.

        Returns:
            Tuple of (feed or None if the source raised, attempt record).
        """
        start_time = datetime.now()

        try:
            feed = source.fetch(handle, count)
        except Exception as e:
            duration_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.warning(f"[{self.platform}] {source.name} failed: {e}")
            return None, SourceAttempt(
                source_name=source.name,
                success=False,
                error=str(e) or type(e).__name__,
                duration_ms=duration_ms,
            )

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000

        if feed.is_empty:
            reason = feed.error or "no items returned"
            logger.warning(f"[{self.platform}] {source.name} returned no items: {reason}")
            return feed, SourceAttempt(
                source_name=source.name,
                success=False,
                error=reason,
                duration_ms=duration_ms,
            )

        return feed, SourceAttempt(
            source_name=source.name,
            success=True,
            items_fetched=len(feed.items),
            duration_ms=duration_ms,
        )

    def resolve(self, handle: str, count: int) -> Resolution:
        """
        Resolve a handle to the first non-empty feed.

        Args:
            handle: Normalized handle.
            count: Maximum number of items to fetch (already capped).

        Returns:
            Resolution naming the source that produced the feed.

        Raises:
            AllSourcesExhausted: If no source produced a feed at all.
        """
        attempts: List[SourceAttempt] = []
        empty_feed: Optional[RawFeed] = None
        empty_source: Optional[str] = None

        for source in self.sources:
            if not source.is_available:
                logger.info(f"[{self.platform}] Skipping {source.name}: {source.unavailable_reason}")
                attempts.append(SourceAttempt(
                    source_name=source.name,
                    success=False,
                    error=source.unavailable_reason,
                ))
                continue

            logger.debug(f"[{self.platform}] Trying {source.name} for @{handle} (count {count})")
            feed, attempt = self._try_source(source, handle, count)
            attempts.append(attempt)

            if attempt.success:
                logger.info(
                    f"[{self.platform}] {source.name} returned {attempt.items_fetched} items "
                    f"for @{handle} ({attempt.duration_ms:.0f}ms)"
                )
                return Resolution(feed=feed, source_name=source.name, attempts=attempts)

            # An error-marked empty feed is never displaced by an unmarked one
            if feed is not None and (empty_feed is None or feed.error or not empty_feed.error):
                empty_feed, empty_source = feed, source.name

        if empty_feed is not None:
            if empty_feed.error:
                reasons = "; ".join(f"{a.source_name}: {a.error}" for a in attempts if a.error)
                empty_feed = replace(empty_feed, error=reasons)
            return Resolution(feed=empty_feed, source_name=empty_source, attempts=attempts)

        error = AllSourcesExhausted(self.platform, attempts)
        logger.error(f"[{self.platform}] {error}")
        raise error

    def __repr__(self) -> str:
        return f"<SourceSelector platform={self.platform!r} sources={[s.name for s in self.sources]}>"
