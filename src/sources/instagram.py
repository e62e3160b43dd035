"""
Instagram sources.

1. InstagramGraphSource - Instagram Graph API. Only reads the media of the
   account that owns INSTAGRAM_ACCESS_TOKEN, so it serves own=true requests.
2. InstagramWebSource - public profiles through the web_profile_info JSON
   endpoint, falling back to the timeline blob embedded in the profile page.
   Instagram increasingly requires a logged-in session (IG_SESSION_ID).
"""

import json
import re
from typing import Any, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from src.config import IG_SESSION_ID, INSTAGRAM_ACCESS_TOKEN, REQUEST_TIMEOUT
from src.errors import UpstreamUnavailable
from src.log import get_logger
from src.models.feed import RawFeed
from src.sources.base import BROWSER_USER_AGENT, Source

logger = get_logger("sources.instagram")

GRAPH_API_BASE = "https://graph.instagram.com"
GRAPH_MEDIA_FIELDS = (
    "id,caption,media_type,media_url,thumbnail_url,permalink,"
    "timestamp,like_count,comments_count,username"
)
GRAPH_PROFILE_FIELDS = "id,username,account_type,media_count"
GRAPH_MAX_LIMIT = 100

WEB_PROFILE_INFO_URL = "https://i.instagram.com/api/v1/users/web_profile_info/"
WEB_PROFILE_URL = "https://www.instagram.com/{handle}/"

# App id the instagram.com web client sends; web_profile_info rejects requests without it
WEB_APP_ID = "936619743392459"

TIMELINE_KEY = "edge_owner_to_timeline_media"

_JSON_OBJECT = re.compile(r"({.*})", re.DOTALL)


class InstagramGraphSource(Source):
    """Fetches the token owner's media from the Instagram Graph API."""

    def __init__(self, access_token: Optional[str] = None, timeout: int = REQUEST_TIMEOUT):
        self.access_token = INSTAGRAM_ACCESS_TOKEN if access_token is None else access_token
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "instagram_graph"

    @property
    def is_available(self) -> bool:
        return bool(self.access_token)

    @property
    def unavailable_reason(self) -> str:
        return "No Instagram access token configured. Set INSTAGRAM_ACCESS_TOKEN environment variable."

    def _get(self, path: str, **params) -> dict:
        params["access_token"] = self.access_token
        try:
            response = requests.get(f"{GRAPH_API_BASE}/{path}", params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailable(
                self.name,
                _graph_error_message(e),
                upstream_status=e.response.status_code if e.response is not None else None,
            ) from e
        except ValueError as e:
            raise UpstreamUnavailable(self.name, f"Invalid Graph API response: {e}") from e

    def fetch(self, handle: str, count: int) -> RawFeed:
        logger.info(f"[{self.name}] Fetching media for @{handle}")

        media = self._get("me/media", fields=GRAPH_MEDIA_FIELDS, limit=min(count, GRAPH_MAX_LIMIT))
        profile = self._get("me", fields=GRAPH_PROFILE_FIELDS)
        posts = media.get("data") or []

        logger.info(f"[{self.name}] Retrieved {len(posts)} media items")
        return RawFeed(
            items=posts[:count],
            source="graph_api",
            schema="instagram_graph",
            author={"username": profile.get("username") or handle},
        )


def _graph_error_message(exc: requests.RequestException) -> str:
    """The Graph API explains failures in error.message; prefer it."""
    if exc.response is not None:
        try:
            message = (exc.response.json().get("error") or {}).get("message")
        except ValueError:
            message = None
        if message:
            return message
    return str(exc)


class InstagramWebSource(Source):
    """
    Fetches a public profile's recent posts without an API token.

    Order of attempts:
    1. web_profile_info JSON endpoint
    2. profile page HTML, searching <script> blobs for the timeline

    An empty result without a session cookie is reported as a partial result
    (login wall); with a session cookie it is a failure.
    """

    def __init__(self, session_id: Optional[str] = None, timeout: int = REQUEST_TIMEOUT):
        self.session_id = IG_SESSION_ID if session_id is None else session_id
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "instagram_web"

    def _session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            "User-Agent": BROWSER_USER_AGENT,
            "Accept-Language": "en-US,en;q=0.9",
            "X-IG-App-ID": WEB_APP_ID,
        })
        if self.session_id:
            session.cookies.set("sessionid", self.session_id, domain=".instagram.com", path="/")
        return session

    def fetch(self, handle: str, count: int) -> RawFeed:
        logger.info(f"[{self.name}] Fetching posts for @{handle}")

        with self._session() as session:
            posts, user = self._fetch_profile_info(session, handle)
            if not posts:
                logger.info(f"[{self.name}] Profile info empty, trying page scripts...")
                posts = self._fetch_page_timeline(session, handle)

        logger.info(f"[{self.name}] Total posts found: {len(posts)}")
        author = {"username": (user or {}).get("username") or handle}

        if not posts:
            if self.session_id:
                raise UpstreamUnavailable(self.name, f"No posts found for @{handle}")
            return RawFeed(
                items=[],
                source="page_scraping",
                schema="instagram_web",
                author=author,
                error="Instagram requires login to view this profile. Set IG_SESSION_ID.",
            )

        return RawFeed(
            items=posts[:count],
            source="page_scraping",
            schema="instagram_web",
            author=author,
        )

    def _fetch_profile_info(self, session: requests.Session, handle: str) -> Tuple[List[dict], Optional[dict]]:
        try:
            response = session.get(WEB_PROFILE_INFO_URL, params={"username": handle}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            if e.response is not None and e.response.status_code == 404:
                raise self.upstream_error(e, f"User not found: @{handle}") from e
            logger.warning(f"[{self.name}] web_profile_info failed: {e}")
            return [], None
        except ValueError:
            logger.warning(f"[{self.name}] web_profile_info returned non-JSON (login wall?)")
            return [], None

        user = (data.get("data") or {}).get("user")
        if not user:
            return [], None
        return timeline_nodes(user.get(TIMELINE_KEY)), user

    def _fetch_page_timeline(self, session: requests.Session, handle: str) -> List[dict]:
        try:
            response = session.get(WEB_PROFILE_URL.format(handle=handle), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise self.upstream_error(e, f"Error fetching profile @{handle}") from e
        return parse_profile_page(response.text)


def timeline_nodes(timeline: Optional[dict]) -> List[dict]:
    """Unwrap {"edges": [{"node": {...}}]} into the list of nodes."""
    if not isinstance(timeline, dict):
        return []
    edges = timeline.get("edges")
    if not isinstance(edges, list):
        return []
    return [edge["node"] for edge in edges if isinstance(edge, dict) and isinstance(edge.get("node"), dict)]


def find_key(obj: Any, key: str) -> Any:
    """Depth-first search for the first truthy value stored under key."""
    if isinstance(obj, dict):
        if obj.get(key):
            return obj[key]
        values = obj.values()
    elif isinstance(obj, list):
        values = obj
    else:
        return None

    for value in values:
        found = find_key(value, key)
        if found:
            return found
    return None


def parse_profile_page(html: str) -> List[dict]:
    """
    Search a profile page's scripts for an embedded timeline.

    The timeline sits at varying depths inside whichever script carries it,
    so the first script mentioning the timeline key is parsed and searched.
    """
    soup = BeautifulSoup(html, "html.parser")

    for script in soup.find_all("script"):
        text = script.string or ""
        if TIMELINE_KEY not in text:
            continue

        match = _JSON_OBJECT.search(text)
        if not match:
            continue
        try:
            data = json.loads(match.group(1))
        except ValueError as e:
            logger.warning(f"[instagram_web] Failed to parse script data: {e}")
            continue

        nodes = timeline_nodes(find_key(data, TIMELINE_KEY))
        if nodes:
            logger.info("[instagram_web] Found data in scripts")
            return nodes

    return []
