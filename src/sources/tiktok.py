"""
TikTok sources.

1. ParseBotSource - parse.bot scraping proxy (needs PARSEBOT_API_KEY)
2. TikTokPageSource - direct profile page scrape of the JSON state TikTok
   embeds in <script> tags (SIGI_STATE or __UNIVERSAL_DATA_FOR_REHYDRATION__)

The page source also resolves single video links for /api/tiktok/video.
"""

import json
import re
from typing import Any, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from src.config import PARSEBOT_API_KEY, PARSEBOT_SCRAPER_ID, PARSEBOT_TIMEOUT, REQUEST_TIMEOUT
from src.errors import UpstreamUnavailable
from src.log import get_logger
from src.models.feed import RawFeed
from src.normalizer.normalizer import normalize_item
from src.normalizer.schemas import TIKTOK_WEB
from src.sources.base import BROWSER_USER_AGENT, Source

logger = get_logger("sources.tiktok")

PARSEBOT_BASE_URL = "https://api.parse.bot/scraper"
PARSEBOT_USER_VIDEOS_URL = f"{PARSEBOT_BASE_URL}/{{scraper_id}}/get_user_videos"

TIKTOK_PROFILE_URL = "https://www.tiktok.com/@{handle}"
TIKTOK_VIDEO_URL = "https://www.tiktok.com/@/video/{video_id}"

PAGE_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "en-US,en;q=0.9",
}

_AUTHOR_FROM_URL = re.compile(r"tiktok\.com/@([^/?#]+)/video/")


def normalize_tiktok_url(link: Optional[str]) -> Optional[str]:
    """
    Turn a user-supplied link or id into a fetchable TikTok URL.

    A bare numeric id becomes https://www.tiktok.com/@/video/<id>; a link
    without a scheme gets https:// prepended. Blank input gives None.
    """
    if not link:
        return None
    link = link.strip()
    if not link:
        return None
    if link.isdigit():
        return TIKTOK_VIDEO_URL.format(video_id=link)
    if link.startswith("http"):
        return link
    return f"https://{link}"


class ParseBotSource(Source):
    """
    Fetches a user's videos through the parse.bot scraping proxy.

    parse.bot runs a hosted scraper per call, so responses are slow (the
    timeout defaults to two minutes) but do not trip TikTok's bot protection.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        scraper_id: str = PARSEBOT_SCRAPER_ID,
        timeout: int = PARSEBOT_TIMEOUT,
    ):
        self.api_key = PARSEBOT_API_KEY if api_key is None else api_key
        self.scraper_id = scraper_id
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "parsebot"

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def unavailable_reason(self) -> str:
        return "No parse.bot API key configured. Set PARSEBOT_API_KEY environment variable."

    def fetch(self, handle: str, count: int) -> RawFeed:
        logger.info(f"[{self.name}] Fetching {count} videos for @{handle}")

        try:
            response = requests.post(
                PARSEBOT_USER_VIDEOS_URL.format(scraper_id=self.scraper_id),
                json={"count": str(count), "username": handle},
                headers={"Content-Type": "application/json", "X-API-Key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailable(
                self.name,
                self._error_message(e),
                upstream_status=e.response.status_code if e.response is not None else None,
            ) from e
        except ValueError as e:
            raise UpstreamUnavailable(self.name, f"Invalid parse.bot response: {e}") from e

        videos = data.get("videos") or data.get("items") or []
        videos.sort(key=lambda video: _as_int(video.get("create_time", video.get("createTime"))), reverse=True)
        logger.info(f"[{self.name}] Retrieved {len(videos)} videos")

        author = {"username": data["username"]} if data.get("username") else None
        return RawFeed(
            items=videos[:count],
            source="parsebot",
            schema="parsebot",
            author=author,
        )

    @staticmethod
    def _error_message(exc: requests.RequestException) -> str:
        """Prefer the proxy's own error message over the HTTP status line."""
        if exc.response is not None:
            try:
                message = exc.response.json().get("message")
            except ValueError:
                message = None
            if message:
                return message
        return str(exc)


class TikTokPageSource(Source):
    """
    Scrapes a TikTok profile page for the embedded state JSON.

    TikTok has shipped two layouts:
    - <script id="SIGI_STATE"> with ItemModule (videos) and UserModule (users)
    - <script id="__UNIVERSAL_DATA_FOR_REHYDRATION__"> with
      __DEFAULT_SCOPE__["webapp.user-detail"]

    Anti-scraping often serves a page with neither; that counts as a failure.
    """

    def __init__(self, timeout: int = REQUEST_TIMEOUT):
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "tiktok_web"

    def fetch(self, handle: str, count: int) -> RawFeed:
        logger.info(f"[{self.name}] Fetching posts for @{handle}")
        html = self._fetch_page(TIKTOK_PROFILE_URL.format(handle=handle))
        posts, user = parse_profile_state(html)

        if not posts:
            raise UpstreamUnavailable(
                self.name, "No videos found (Anti-scraping protection likely active)"
            )

        posts.sort(key=lambda post: _as_int(post.get("createTime")), reverse=True)
        logger.info(f"[{self.name}] Found {len(posts)} videos")

        author = {"username": user.get("uniqueId") or handle} if user else None
        return RawFeed(
            items=posts[:count],
            source="page_scraping",
            schema="tiktok_web",
            author=author,
        )

    def fetch_video(self, url: str) -> Optional[dict]:
        """
        Fetch one video's details from its page.

        Returns:
            Normalized video dict, or None if the page could not be fetched
            or carried no video data.
        """
        logger.info(f"[{self.name}] Fetching video {url}")
        try:
            html = self._fetch_page(url)
        except UpstreamUnavailable as e:
            logger.warning(f"[{self.name}] {e}")
            return None

        video = parse_video_state(html)
        if video is None:
            logger.warning(f"[{self.name}] No video data found at {url}")
            return None

        handle = (video.get("author") or {}).get("uniqueId") or ""
        if not handle:
            match = _AUTHOR_FROM_URL.search(url)
            handle = match.group(1) if match else ""

        item = normalize_item(video, TIKTOK_WEB, handle)
        return item.to_dict(TIKTOK_WEB.id_key)

    def _fetch_page(self, url: str) -> str:
        try:
            response = requests.get(url, headers=PAGE_HEADERS, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise self.upstream_error(e, f"Error fetching {url}") from e
        return response.text


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _script_json(soup: BeautifulSoup, script_id: str) -> Optional[dict]:
    script = soup.find("script", id=script_id)
    if script is None or not script.string:
        return None
    try:
        return json.loads(script.string)
    except ValueError:
        logger.warning(f"[tiktok_web] Failed to parse {script_id}")
        return None


def parse_profile_state(html: str) -> Tuple[List[dict], Optional[dict]]:
    """
    Extract (posts, user) from a profile page.

    Returns:
        Tuple of (list of raw video dicts, user dict or None).
    """
    soup = BeautifulSoup(html, "html.parser")

    sigi = _script_json(soup, "SIGI_STATE")
    if sigi is not None:
        posts = list((sigi.get("ItemModule") or {}).values())
        users = list(((sigi.get("UserModule") or {}).get("users") or {}).values())
        return posts, (users[0] if users else None)

    universal = _script_json(soup, "__UNIVERSAL_DATA_FOR_REHYDRATION__")
    if universal is not None:
        detail = (universal.get("__DEFAULT_SCOPE__") or {}).get("webapp.user-detail") or {}
        posts = detail.get("itemStruct") or detail.get("itemList") or []
        if isinstance(posts, dict):
            posts = [posts]
        user = (detail.get("userInfo") or {}).get("user")
        return list(posts), user

    return [], None


def parse_video_state(html: str) -> Optional[dict]:
    """Extract the raw video dict from a single video page, or None."""
    soup = BeautifulSoup(html, "html.parser")

    universal = _script_json(soup, "__UNIVERSAL_DATA_FOR_REHYDRATION__")
    if universal is not None:
        detail = (universal.get("__DEFAULT_SCOPE__") or {}).get("webapp.video-detail") or {}
        video = (detail.get("itemInfo") or {}).get("itemStruct")
        if video:
            return video

    sigi = _script_json(soup, "SIGI_STATE")
    if sigi is not None:
        items = list((sigi.get("ItemModule") or {}).values())
        if items:
            return items[0]

    return None
