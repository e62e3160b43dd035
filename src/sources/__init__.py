"""
Data sources module.

Fetchers for external platforms (Twitter, TikTok, YouTube, Instagram) and the
selector that walks them in priority order.
"""

from src.sources.base import Source, normalize_handle
from src.sources.instagram import InstagramGraphSource, InstagramWebSource
from src.sources.selector import Resolution, SourceAttempt, SourceSelector
from src.sources.tiktok import ParseBotSource, TikTokPageSource, normalize_tiktok_url
from src.sources.twitter import NitterSource, TwitterApiSource
from src.sources.youtube import YouTubeDataApiSource, YouTubePageSource, extract_youtube_id

__all__ = [
    "Source",
    "normalize_handle",
    "SourceSelector",
    "SourceAttempt",
    "Resolution",
    "TwitterApiSource",
    "NitterSource",
    "ParseBotSource",
    "TikTokPageSource",
    "normalize_tiktok_url",
    "YouTubeDataApiSource",
    "YouTubePageSource",
    "extract_youtube_id",
    "InstagramGraphSource",
    "InstagramWebSource",
]
