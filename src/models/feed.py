"""
Core feed data models for Social Feed API.

Defines the three shapes a request passes through:

    RawFeed (upstream-specific) -> CanonicalItem (per item) -> PagedResponse

RawFeed is produced by a source and consumed immediately by the normalizer.
CanonicalItem and PagedResponse are built fresh per request and never cached.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RawFeed:
    """
    The unnormalized result of one upstream call.

    Attributes:
        items: Upstream item records, in upstream order.
        source: Provenance tag reported to clients (e.g. "official_api", "nitter").
        schema: Which mapping table normalizes these items (e.g. "twitter_api").
        author: Optional author/channel metadata from the upstream.
        error: Partial-failure marker; set when the upstream answered but
               could not deliver items (e.g. missing session cookie).
        extra: Upstream meta copied into the response meta block
               (e.g. api_quota_remaining, subscribers).
    """

    items: List[Dict[str, Any]]
    source: str
    schema: str
    author: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __repr__(self) -> str:
        return (
            f"RawFeed(source={self.source!r}, schema={self.schema!r}, "
            f"items={len(self.items)}, error={self.error!r})"
        )


@dataclass(frozen=True)
class CanonicalItem:
    """
    Platform-agnostic content item.

    Engagement counts are always integers (0 when the upstream does not expose
    the metric) and strings are always strings, so the output schema stays stable
    for clients regardless of which source produced the item.

    Attributes:
        id: Upstream identifier of the post/video/tweet.
        url: Canonical public URL.
        description: Text body or caption.
        views: View/impression/play count.
        likes: Like/heart/digg count.
        comments: Comment/reply count.
        shares: Share/retweet count.
        cover_image: Thumbnail URL.
        timestamp: Publication time as Unix seconds (0 when unknown).
        is_video: Whether the item is a video.
        extra: Platform-specific fields (title, duration, author, music, ...).
    """

    id: str
    url: str
    description: str = ""
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    cover_image: str = ""
    timestamp: int = 0
    is_video: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, id_key: Optional[str] = None) -> dict:
        """
        Convert to a JSON-serializable dict.

        Args:
            id_key: Platform-specific alias for the id (e.g. "tweet_id"),
                    emitted alongside "id" for existing clients.
        """
        data = {}
        if id_key:
            data[id_key] = self.id
        data.update({
            "id": self.id,
            "url": self.url,
            "description": self.description,
            "views": self.views,
            "likes": self.likes,
            "comments": self.comments,
            "shares": self.shares,
            "cover_image": self.cover_image,
            "timestamp": self.timestamp,
            "is_video": self.is_video,
        })
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


@dataclass
class PagedResponse:
    """One page of normalized items plus the meta block describing the full set."""

    meta: Dict[str, Any]
    data: List[dict]
    status: str = "success"

    @property
    def is_partial(self) -> bool:
        return self.status == "partial"

    def to_dict(self) -> dict:
        return {
            "meta": dict(self.meta),
            "data": list(self.data),
            "status": self.status,
        }
