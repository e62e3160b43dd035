"""
Twitter/X sources.

Two ways to get a user's tweets, tried in this order:

1. TwitterApiSource - official API v2 with a rotating pool of bearer tokens
   (each free-tier token reads 100 posts per month)
2. NitterSource - public Nitter mirrors, parsed with BeautifulSoup

API Documentation: https://developer.x.com/en/docs/x-api/tweets/timelines
"""

from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import unquote

import requests
from bs4 import BeautifulSoup

from src.config import NITTER_INSTANCES, REQUEST_TIMEOUT, SCRAPE_TIMEOUT
from src.errors import UpstreamUnavailable
from src.log import get_logger
from src.models.feed import RawFeed
from src.normalizer.coerce import parse_count
from src.services.key_rotator import KeyRotator
from src.sources.base import Source

logger = get_logger("sources.twitter")

# Twitter API v2 endpoints
TWITTER_API_BASE = "https://api.twitter.com/2"
TWITTER_USER_BY_NAME_URL = f"{TWITTER_API_BASE}/users/by/username/{{username}}"
TWITTER_USER_TWEETS_URL = f"{TWITTER_API_BASE}/users/{{user_id}}/tweets"

# The timeline endpoint accepts max_results between 5 and 100
TWITTER_MIN_RESULTS = 5
TWITTER_MAX_RESULTS = 100

NITTER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# Nitter renders dates as e.g. "Jan 5, 2024 · 3:04 PM UTC"
NITTER_DATE_FORMAT = "%b %d, %Y · %I:%M %p %Z"


class TwitterApiSource(Source):
    """
    Fetches tweets from the official Twitter API v2.

    Every request takes one credential from the key rotator. The credential's
    usage counter is charged once per successful fetch, whatever the number of
    tweets returned. An HTTP 429 takes the credential out of rotation for
    good.
    """

    def __init__(self, rotator: KeyRotator, timeout: int = REQUEST_TIMEOUT):
        self.rotator = rotator
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "twitter_api"

    @property
    def is_available(self) -> bool:
        return self.rotator.has_eligible

    @property
    def unavailable_reason(self) -> str:
        if len(self.rotator) == 0:
            return "No Twitter API keys configured. Set TWITTER_BEARER_TOKEN_1, etc."
        return "All Twitter API keys exhausted"

    def fetch(self, handle: str, count: int) -> RawFeed:
        credential = self.rotator.acquire()
        if credential is None:
            raise UpstreamUnavailable(self.name, self.unavailable_reason)

        logger.info(
            f"[{self.name}] Using key {credential.name} "
            f"({credential.usage_count}/{credential.max_per_period})"
        )
        headers = {"Authorization": f"Bearer {unquote(credential.token)}"}

        try:
            user_id = self._fetch_user_id(handle, headers)
            tweets = self._fetch_tweets(user_id, count, headers)
        except requests.RequestException as e:
            self.rotator.release(credential)
            error = self.upstream_error(e, "Twitter API request failed")
            if error.is_rate_limited:
                logger.warning(f"[{self.name}] Key {credential.name} rate limited, marking exhausted")
                self.rotator.mark_exhausted(credential)
            raise error from e
        except ValueError as e:
            self.rotator.release(credential)
            raise UpstreamUnavailable(self.name, f"Invalid Twitter API response: {e}") from e
        except UpstreamUnavailable:
            self.rotator.release(credential)
            raise

        return RawFeed(
            items=tweets[:count],
            source="official_api",
            schema="twitter_api",
            extra={"api_quota_remaining": credential.remaining},
        )

    def _fetch_user_id(self, handle: str, headers: dict) -> str:
        response = requests.get(
            TWITTER_USER_BY_NAME_URL.format(username=handle),
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        user_id = (response.json().get("data") or {}).get("id")
        if not user_id:
            raise UpstreamUnavailable(self.name, f"User not found: @{handle}")
        return user_id

    def _fetch_tweets(self, user_id: str, count: int, headers: dict) -> List[dict]:
        max_results = max(TWITTER_MIN_RESULTS, min(count, TWITTER_MAX_RESULTS))
        response = requests.get(
            TWITTER_USER_TWEETS_URL.format(user_id=user_id),
            headers=headers,
            params={
                "max_results": max_results,
                "tweet.fields": "created_at,public_metrics",
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json().get("data") or []


class NitterSource(Source):
    """
    Fetches tweets by scraping public Nitter mirrors.

    Instances are tried in order; the first one that renders at least one
    tweet wins. Nitter exposes likes, retweets and replies but not views.
    """

    def __init__(self, instances: Optional[List[str]] = None, timeout: int = SCRAPE_TIMEOUT):
        self.instances = list(NITTER_INSTANCES if instances is None else instances)
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "nitter"

    @property
    def is_available(self) -> bool:
        return bool(self.instances)

    @property
    def unavailable_reason(self) -> str:
        return "No Nitter instances configured. Set NITTER_INSTANCES."

    def fetch(self, handle: str, count: int) -> RawFeed:
        failures = []

        for instance in self.instances:
            logger.info(f"[{self.name}] Trying {instance} for @{handle}")
            try:
                response = requests.get(
                    f"{instance.rstrip('/')}/{handle}",
                    headers={"User-Agent": NITTER_USER_AGENT},
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except requests.RequestException as e:
                logger.warning(f"[{self.name}] {instance} failed: {e}")
                failures.append(f"{instance}: {e}")
                continue

            tweets = parse_nitter_timeline(response.text, handle)
            if tweets:
                logger.info(f"[{self.name}] Found {len(tweets)} tweets via {instance}")
                return RawFeed(
                    items=tweets[:count],
                    source="nitter",
                    schema="nitter",
                    extra={"nitter_instance": instance},
                )

            failures.append(f"{instance}: no tweets found")

        raise UpstreamUnavailable(self.name, "; ".join(failures) or "no instances answered")


def _parse_nitter_date(title: str) -> int:
    try:
        parsed = datetime.strptime(title.strip(), NITTER_DATE_FORMAT)
    except ValueError:
        return 0
    return int(parsed.replace(tzinfo=timezone.utc).timestamp())


def parse_nitter_timeline(html: str, handle: str) -> List[dict]:
    """
    Parse tweets out of a Nitter profile page.

    Nitter timeline structure:
        <div class="timeline-item">
          <a class="tweet-link" href="/user/status/123#m"></a>
          <span class="tweet-date"><a title="Jan 5, 2024 · 3:04 PM UTC">5h</a></span>
          <div class="tweet-content">text</div>
          <span class="tweet-stat"><span class="icon-comment"></span> 12</span>
          ...
        </div>

    Returns:
        List of tweet dicts (tweet_id, text, likes, retweets, replies, date,
        timestamp, url). Items without text are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    tweets = []

    for node in soup.select("div.timeline-item"):
        content = node.select_one("div.tweet-content")
        text = content.get_text(" ", strip=True) if content else ""
        if not text:
            continue

        stats = {"comment": 0, "retweet": 0, "heart": 0}
        for stat in node.select("span.tweet-stat"):
            icon = stat.select_one("span[class^='icon-']")
            if icon is None:
                continue
            kind = icon["class"][0].replace("icon-", "")
            if kind in stats:
                stats[kind] = parse_count(stat.get_text(strip=True))

        date_link = node.select_one("span.tweet-date a")
        date = date_link.get("title", "") if date_link else ""

        tweet_link = node.select_one("a.tweet-link")
        tweet_id = ""
        if tweet_link and tweet_link.get("href"):
            tweet_id = tweet_link["href"].split("/")[-1].split("#")[0]

        tweets.append({
            "tweet_id": tweet_id,
            "text": text,
            "likes": stats["heart"],
            "retweets": stats["retweet"],
            "replies": stats["comment"],
            "date": date,
            "timestamp": _parse_nitter_date(date) if date else 0,
            "url": f"https://twitter.com/{handle}/status/{tweet_id}" if tweet_id else "",
        })

    return tweets
