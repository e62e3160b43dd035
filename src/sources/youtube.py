"""
YouTube sources.

1. YouTubeDataApiSource - YouTube Data API v3 (needs YOUTUBE_API_KEY).
   Free tier is 10,000 units/day; one search costs 100 units, list calls 1.
2. YouTubePageSource - parses the ytInitialData blob embedded in the
   channel's /videos page. No key, no quota, but no likes or comments.

API Documentation: https://developers.google.com/youtube/v3/docs
"""

import json
import re
from typing import Iterable, List, Optional

import requests

from src.config import REQUEST_TIMEOUT, YOUTUBE_API_KEY
from src.errors import UpstreamUnavailable
from src.log import get_logger
from src.models.feed import RawFeed
from src.normalizer.coerce import parse_count
from src.normalizer.normalizer import normalize_item
from src.normalizer.schemas import YOUTUBE_API, YOUTUBE_WEB
from src.sources.base import BROWSER_USER_AGENT, Source

logger = get_logger("sources.youtube")

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
YOUTUBE_CHANNEL_VIDEOS_URL = "https://www.youtube.com/@{handle}/videos"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
YOUTUBE_THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"

# playlistItems and videos accept at most 50 results/ids per call
YOUTUBE_MAX_RESULTS = 50

PAGE_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
}

_INITIAL_DATA = re.compile(r"var ytInitialData = (.+?);</script>", re.DOTALL)
_VIDEO_ID_FROM_URL = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")
_VIDEO_ID_FROM_SHORTS = re.compile(r"/shorts/([a-zA-Z0-9_-]{11})")
_BARE_VIDEO_ID = re.compile(r"^[a-zA-Z0-9_-]{11}$")


def extract_youtube_id(link: Optional[str]) -> Optional[str]:
    """
    Pull an 11-character video id out of a YouTube link.

    Accepts watch?v=, youtu.be/, embed/, v/ and /shorts/ URLs as well as a
    bare id. Returns None when nothing matches.
    """
    if not link:
        return None
    link = link.strip()

    match = _VIDEO_ID_FROM_URL.match(link)
    if match and len(match.group(2)) == 11:
        return match.group(2)

    match = _VIDEO_ID_FROM_SHORTS.search(link)
    if match:
        return match.group(1)

    if _BARE_VIDEO_ID.match(link):
        return link

    return None


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class YouTubeDataApiSource(Source):
    """
    Fetches a channel's latest uploads from the YouTube Data API.

    Four calls per feed: search (handle -> channel id), channels (uploads
    playlist + subscriber count), playlistItems (video ids), videos (stats).
    """

    def __init__(self, api_key: Optional[str] = None, timeout: int = REQUEST_TIMEOUT):
        self.api_key = YOUTUBE_API_KEY if api_key is None else api_key
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "youtube_api"

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def unavailable_reason(self) -> str:
        return "No YouTube API key configured. Set YOUTUBE_API_KEY environment variable."

    def _get(self, endpoint: str, **params) -> dict:
        params["key"] = self.api_key
        try:
            response = requests.get(
                f"{YOUTUBE_API_BASE}/{endpoint}",
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise self.upstream_error(e, f"YouTube API {endpoint} failed") from e
        except ValueError as e:
            raise UpstreamUnavailable(self.name, f"Invalid YouTube API response: {e}") from e

    def fetch(self, handle: str, count: int) -> RawFeed:
        logger.info(f"[{self.name}] Fetching videos for @{handle}")

        # Step 1: Search for channel by handle
        search = self._get("search", q=handle, type="channel", part="snippet", maxResults=1)
        items = search.get("items") or []
        channel_id = ((items[0] if items else {}).get("id") or {}).get("channelId")
        if not channel_id:
            raise UpstreamUnavailable(self.name, f"Channel not found: @{handle}")

        # Step 2: Channel details
        channels = self._get("channels", id=channel_id, part="snippet,statistics,contentDetails")
        channel = (channels.get("items") or [{}])[0]
        uploads = ((channel.get("contentDetails") or {}).get("relatedPlaylists") or {}).get("uploads")
        if not uploads:
            raise UpstreamUnavailable(self.name, f"No uploads playlist for channel {channel_id}")

        # Step 3: Latest uploads
        playlist = self._get(
            "playlistItems",
            playlistId=uploads,
            part="snippet,contentDetails",
            maxResults=min(count, YOUTUBE_MAX_RESULTS),
        )
        playlist_items = playlist.get("items") or []

        # Step 4: Statistics for those uploads
        video_ids = [item["contentDetails"]["videoId"] for item in playlist_items]
        stats = {}
        if video_ids:
            response = self._get("videos", id=",".join(video_ids), part="statistics,contentDetails")
            stats = {video["id"]: video for video in response.get("items") or []}

        videos = []
        for item in playlist_items:
            video_id = item["contentDetails"]["videoId"]
            snippet = item.get("snippet") or {}
            videos.append(_api_video(video_id, snippet, stats.get(video_id) or {}))

        logger.info(f"[{self.name}] Retrieved {len(videos)} videos")

        snippet = channel.get("snippet") or {}
        statistics = channel.get("statistics") or {}
        return RawFeed(
            items=videos[:count],
            source="official_api",
            schema="youtube_api",
            author={"username": snippet.get("title") or handle},
            extra={"subscribers": parse_count(statistics.get("subscriberCount"))},
        )

    def fetch_videos_by_ids(self, video_ids: List[str]) -> List[dict]:
        """
        Look up videos by id, 50 ids per call.

        Returns:
            Normalized video dicts in the order the API returned them.
        """
        videos = []
        for chunk in _chunks(list(video_ids), YOUTUBE_MAX_RESULTS):
            response = self._get("videos", id=",".join(chunk), part="snippet,statistics,contentDetails")
            for video in response.get("items") or []:
                raw = _api_video(video["id"], video.get("snippet") or {}, video)
                videos.append(normalize_item(raw, YOUTUBE_API, "").to_dict(YOUTUBE_API.id_key))
        return videos


def _api_video(video_id: str, snippet: dict, details: dict) -> dict:
    """Flatten playlist snippet + videos statistics into one raw record."""
    thumbnails = snippet.get("thumbnails") or {}
    thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url", "")
    statistics = details.get("statistics") or {}
    return {
        "video_id": video_id,
        "title": snippet.get("title", ""),
        "description": snippet.get("description", ""),
        "url": YOUTUBE_WATCH_URL.format(video_id=video_id),
        "thumbnail": thumbnail,
        "published": snippet.get("publishedAt", ""),
        "views": statistics.get("viewCount"),
        "likes": statistics.get("likeCount"),
        "comments": statistics.get("commentCount"),
        "duration": (details.get("contentDetails") or {}).get("duration", ""),
    }


class YouTubePageSource(Source):
    """
    Scrapes a channel's /videos page for the ytInitialData blob.

    The videos tab holds richGridRenderer.contents, one richItemRenderer per
    video. View counts arrive as text ("1.2M views").
    """

    def __init__(self, timeout: int = REQUEST_TIMEOUT):
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "youtube_web"

    def _fetch_initial_data(self, url: str) -> Optional[dict]:
        try:
            response = requests.get(url, headers=PAGE_HEADERS, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise self.upstream_error(e, f"Error fetching {url}") from e

        match = _INITIAL_DATA.search(response.text)
        if not match:
            return None
        try:
            return json.loads(match.group(1))
        except ValueError as e:
            raise UpstreamUnavailable(self.name, f"Failed to parse ytInitialData: {e}") from e

    def fetch(self, handle: str, count: int) -> RawFeed:
        logger.info(f"[{self.name}] Fetching videos for @{handle}")

        data = self._fetch_initial_data(YOUTUBE_CHANNEL_VIDEOS_URL.format(handle=handle))
        if data is None:
            raise UpstreamUnavailable(self.name, "No ytInitialData found")

        videos = parse_channel_videos(data)[:count]
        logger.info(f"[{self.name}] Found {len(videos)} videos")

        channel = (data.get("metadata") or {}).get("channelMetadataRenderer") or {}
        header = (data.get("header") or {}).get("c4TabbedHeaderRenderer") or {}
        subscribers = (header.get("subscriberCountText") or {}).get("simpleText", "")

        extra = {"subscribers": subscribers} if subscribers else {}
        return RawFeed(
            items=videos,
            source="page_scraping",
            schema="youtube_web",
            author={"username": channel.get("title") or handle},
            extra=extra,
        )

    def fetch_video(self, video_id: str) -> Optional[dict]:
        """
        Fetch one video's details from its watch page.

        Likes are not reliably present in the page data and stay 0.

        Returns:
            Normalized video dict, or None when the page had no video info.
        """
        logger.info(f"[{self.name}] Fetching video ID: {video_id}")
        url = YOUTUBE_WATCH_URL.format(video_id=video_id)
        try:
            data = self._fetch_initial_data(url)
        except UpstreamUnavailable as e:
            logger.warning(f"[{self.name}] {e}")
            return None
        if data is None:
            logger.warning(f"[{self.name}] No ytInitialData found for video {video_id}")
            return None

        raw = parse_watch_page(data, video_id)
        if raw is None:
            logger.warning(f"[{self.name}] Video primary info not found for {video_id}")
            return None

        item = normalize_item(raw, YOUTUBE_WEB, "").to_dict(YOUTUBE_WEB.id_key)
        item["channel"] = raw["channel"]
        return item


def _text(node: Optional[dict]) -> str:
    """Read a YouTube text node: {"simpleText": ...} or {"runs": [{"text": ...}]}."""
    if not node:
        return ""
    if "simpleText" in node:
        return node["simpleText"]
    return "".join(run.get("text", "") for run in node.get("runs") or [])


def parse_channel_videos(data: dict) -> List[dict]:
    """Extract raw video records from a channel page's ytInitialData."""
    tabs = (
        ((data.get("contents") or {}).get("twoColumnBrowseResultsRenderer") or {}).get("tabs")
        or []
    )
    videos_tab = None
    for tab in tabs:
        renderer = tab.get("tabRenderer") or {}
        url = (
            ((renderer.get("endpoint") or {}).get("commandMetadata") or {})
            .get("webCommandMetadata", {})
            .get("url", "")
        )
        if renderer.get("title") == "Videos" or "/videos" in url:
            videos_tab = renderer
            break
    if videos_tab is None:
        return []

    contents = ((videos_tab.get("content") or {}).get("richGridRenderer") or {}).get("contents") or []

    videos = []
    for entry in contents:
        video = ((entry.get("richItemRenderer") or {}).get("content") or {}).get("videoRenderer")
        if not video:
            continue
        video_id = video.get("videoId", "")
        thumbnails = (video.get("thumbnail") or {}).get("thumbnails") or []
        videos.append({
            "video_id": video_id,
            "title": _text(video.get("title")),
            "description": _text(video.get("descriptionSnippet")),
            "url": YOUTUBE_WATCH_URL.format(video_id=video_id),
            "views": parse_count(_text(video.get("viewCountText"))),
            "duration": _text(video.get("lengthText")),
            "published": _text(video.get("publishedTimeText")),
            "thumbnail": thumbnails[-1].get("url", "") if thumbnails else "",
        })
    return videos


def parse_watch_page(data: dict, video_id: str) -> Optional[dict]:
    """Extract a raw video record from a watch page's ytInitialData, or None."""
    contents = (
        (((data.get("contents") or {}).get("twoColumnWatchNextResults") or {})
         .get("results") or {}).get("results", {}).get("contents")
        or []
    )
    primary = next((c["videoPrimaryInfoRenderer"] for c in contents if "videoPrimaryInfoRenderer" in c), None)
    secondary = next(
        (c["videoSecondaryInfoRenderer"] for c in contents if "videoSecondaryInfoRenderer" in c),
        {},
    )
    if primary is None:
        return None

    view_count = ((primary.get("viewCount") or {}).get("videoViewCountRenderer") or {}).get("viewCount")
    owner = (secondary.get("owner") or {}).get("videoOwnerRenderer") or {}
    browse = ((owner.get("navigationEndpoint") or {}).get("browseEndpoint") or {})

    return {
        "video_id": video_id,
        "url": YOUTUBE_WATCH_URL.format(video_id=video_id),
        "title": _text(primary.get("title")),
        "description": (secondary.get("attributedDescription") or {}).get("content", ""),
        "views": parse_count(_text(view_count)),
        "published": _text(primary.get("dateText")),
        "thumbnail": YOUTUBE_THUMBNAIL_URL.format(video_id=video_id),
        "channel": {
            "name": _text(owner.get("title")),
            "id": browse.get("browseId", ""),
        },
    }
