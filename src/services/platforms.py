"""
Platform registry and feed service.

Ties the pieces together for one request:

    handle -> SourceSelector (platform chain) -> RawFeed -> normalize -> PagedResponse

Per-platform settings (count defaults and caps, Cache-Control TTLs) live here,
and so does the single KeyRotator instance shared by every Twitter request.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from src.config import TWITTER_BEARER_TOKENS, TWITTER_MAX_PER_MONTH
from src.errors import UpstreamUnavailable, ValidationError
from src.log import get_logger
from src.models.feed import PagedResponse
from src.normalizer.normalizer import normalize
from src.services.batch import fetch_in_batches
from src.services.key_rotator import KeyRotator
from src.sources.base import Source, normalize_handle
from src.sources.instagram import InstagramGraphSource, InstagramWebSource
from src.sources.selector import Resolution, SourceSelector
from src.sources.tiktok import ParseBotSource, TikTokPageSource
from src.sources.twitter import NitterSource, TwitterApiSource
from src.sources.youtube import YouTubeDataApiSource, YouTubePageSource

logger = get_logger("platforms")


# =============================================================================
# Platform Settings
# =============================================================================

@dataclass(frozen=True)
class PlatformSettings:
    """Request defaults and limits for one platform."""
    name: str
    default_count: int
    max_count: int
    cache_ttl: int
    max_per_page: int = 100
    default_per_page: int = 10

    def cap_count(self, count: int) -> int:
        return min(count, self.max_count)

    def cap_per_page(self, per_page: int) -> int:
        return min(per_page, self.max_per_page)


PLATFORMS: Dict[str, PlatformSettings] = {
    "twitter": PlatformSettings("twitter", default_count=10, max_count=100, cache_ttl=300),
    "tiktok": PlatformSettings("tiktok", default_count=50, max_count=100, cache_ttl=120),
    "youtube": PlatformSettings("youtube", default_count=30, max_count=50, cache_ttl=600),
    "instagram": PlatformSettings("instagram", default_count=30, max_count=100, cache_ttl=120),
}

# Source names per chain, highest priority first. Instagram own-account
# requests only make sense against the Graph API token owner.
CHAINS: Dict[str, Sequence[str]] = {
    "twitter": ("twitter_api", "nitter"),
    "tiktok": ("parsebot", "tiktok_web"),
    "youtube": ("youtube_api", "youtube_web"),
    "instagram": ("instagram_web",),
    "instagram_own": ("instagram_graph",),
}


def get_platform(name: str) -> PlatformSettings:
    try:
        return PLATFORMS[name]
    except KeyError:
        raise ValidationError(f"Unknown platform: {name}") from None


def build_default_sources(rotator: KeyRotator) -> Dict[str, Source]:
    """Instantiate every source from environment configuration."""
    sources = [
        TwitterApiSource(rotator),
        NitterSource(),
        ParseBotSource(),
        TikTokPageSource(),
        YouTubeDataApiSource(),
        YouTubePageSource(),
        InstagramGraphSource(),
        InstagramWebSource(),
    ]
    return {source.name: source for source in sources}


# =============================================================================
# Feed Service
# =============================================================================

class FeedService:
    """
    Entry point for every platform request.

    Usage:
        service = FeedService()
        response = service.fetch_feed("tiktok", "@someuser", page=2, per_page=10)
        response.to_dict()

    Sources can be replaced by name (e.g. {"nitter": FakeSource(...)}) to run
    the service without network access.
    """

    def __init__(
        self,
        rotator: Optional[KeyRotator] = None,
        sources: Optional[Dict[str, Source]] = None,
    ):
        if rotator is None:
            rotator = KeyRotator.from_tokens(TWITTER_BEARER_TOKENS, TWITTER_MAX_PER_MONTH)
        self.rotator = rotator
        self.sources = build_default_sources(rotator)
        if sources:
            self.sources.update(sources)

        logger.debug(
            f"Initialized feed service: {len(self.rotator)} Twitter keys, "
            f"sources {sorted(self.sources)}"
        )

    def selector(self, platform: str, own: bool = False) -> SourceSelector:
        """Build the fallback chain for a platform."""
        get_platform(platform)
        key = "instagram_own" if platform == "instagram" and own else platform
        return SourceSelector(platform, [self.sources[name] for name in CHAINS[key]])

    def resolve(self, platform: str, username: str, count: int, own: bool = False) -> Resolution:
        handle = normalize_handle(username)
        if not handle:
            raise ValidationError("Missing required parameter: username")
        count = get_platform(platform).cap_count(count)
        return self.selector(platform, own).resolve(handle, count)

    def fetch_feed(
        self,
        platform: str,
        username: str,
        page: int = 1,
        per_page: Optional[int] = None,
        count: Optional[int] = None,
        own: bool = False,
    ) -> PagedResponse:
        """
        Fetch and normalize one page of a user's feed.

        Args:
            platform: twitter, tiktok, youtube or instagram.
            username: Handle as the client sent it ('@' allowed).
            page: 1-based page number.
            per_page: Items per page (capped at 100).
            count: Items to fetch upstream (capped per platform).
            own: Instagram only: read the access token owner's media.

        Returns:
            PagedResponse; status "partial" when the winning feed was empty
            with an error marker.

        Raises:
            ValidationError: Unknown platform or blank handle.
            AllSourcesExhausted: Every source in the chain raised.
        """
        settings = get_platform(platform)
        if count is None:
            count = settings.default_count
        if per_page is None:
            per_page = settings.default_per_page
        per_page = settings.cap_per_page(per_page)

        logger.info(f"[{platform}] Fetching for @{normalize_handle(username)} (page {page})")
        resolution = self.resolve(platform, username, count, own=own)

        return normalize(
            resolution.feed,
            normalize_handle(username),
            page=page,
            per_page=per_page,
        )

    def fetch_tiktok_videos(self, links: List[str]) -> List[dict]:
        """Look up TikTok videos by URL, batched; links that fail are dropped."""
        page_source = self.sources["tiktok_web"]
        logger.info(f"[tiktok] Fetching {len(links)} videos")
        return fetch_in_batches(links, page_source.fetch_video)

    def fetch_youtube_videos(self, video_ids: List[str]) -> List[dict]:
        """
        Look up YouTube videos by id.

        Uses the Data API (one call per 50 ids) when a key is configured and
        falls back to batched watch-page scraping.
        """
        api_source = self.sources["youtube_api"]
        if api_source.is_available:
            try:
                return api_source.fetch_videos_by_ids(video_ids)
            except UpstreamUnavailable as e:
                logger.warning(f"[youtube] Data API lookup failed, scraping instead: {e}")

        page_source = self.sources["youtube_web"]
        return fetch_in_batches(video_ids, page_source.fetch_video)

    def usage_stats(self) -> dict:
        """Usage snapshot for /api/stats."""
        keys = self.rotator.usage_snapshot()

        youtube = {"method": "page_scraping", "quota": "unlimited",
                   "note": "Using ytInitialData parsing - no API limits"}
        if self.sources["youtube_api"].is_available:
            youtube = {"method": "data_api + page_scraping", "quota": "10000 units/day",
                       "note": "Data API first, ytInitialData parsing as fallback"}

        tiktok = {"method": "page_scraping", "note": "parse.bot not configured"}
        if self.sources["parsebot"].is_available:
            tiktok = {"method": "parse.bot + page_scraping", "quota": "unlimited",
                      "note": "Using parse.bot API, page scraping as fallback"}

        instagram_methods = ["scraping"]
        if self.sources["instagram_graph"].is_available:
            instagram_methods.insert(0, "graph_api")

        return {
            "twitter": {
                "keys": keys,
                "totalRemaining": sum(k["remaining"] for k in keys),
                "totalMax": sum(k["max"] for k in keys),
            },
            "youtube": youtube,
            "instagram": {
                "method": " + ".join(instagram_methods),
                "note": "Graph API for own account, scraping for public profiles",
            },
            "tiktok": tiktok,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def __repr__(self) -> str:
        return f"<FeedService rotator={self.rotator!r} sources={sorted(self.sources)}>"
