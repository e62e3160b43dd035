"""
Field-mapping tables for every upstream item schema.

Each upstream names the same concepts differently (play_count vs playCount vs
stats.playCount). Instead of ad hoc fallback chains, every schema declares, per
canonical field, the key paths to read in priority order. Paths are dotted;
numeric segments index into lists ("edges.0.node.text").

A RawFeed carries the schema tag of the table that normalizes it.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

Paths = Tuple[str, ...]

# Canonical fields every schema may map
CANONICAL_FIELDS = (
    "id",
    "url",
    "description",
    "views",
    "likes",
    "comments",
    "shares",
    "cover_image",
    "timestamp",
    "is_video",
)


@dataclass(frozen=True)
class FeedSchema:
    """
    Mapping table for one upstream schema.

    Attributes:
        name: Schema tag carried by RawFeed.schema.
        platform: Platform the schema belongs to.
        id_key: Platform alias emitted next to "id" (tweet_id, video_id, post_id).
        fields: Canonical field -> candidate key paths, highest priority first.
        extra_fields: Additional output fields -> candidate key paths.
        url_template: Used when no URL path yields a value; formatted with
                      handle and id.
        video_default: is_video when the schema has no is_video mapping.
        description_limit: Truncate descriptions to this many characters.
        newest_first: Sort items by timestamp descending before paginating.
        extra_builder: Builds nested extra fields (author, music) from an item.
    """

    name: str
    platform: str
    id_key: str
    fields: Dict[str, Paths]
    extra_fields: Dict[str, Paths] = field(default_factory=dict)
    url_template: Optional[str] = None
    video_default: bool = False
    description_limit: Optional[int] = None
    newest_first: bool = False
    extra_builder: Optional[Callable[[dict, str], Dict[str, Any]]] = None


def _lookup(item: Any, path: str) -> Any:
    """Resolve a dotted path against nested dicts/lists; None when absent."""
    current = item
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def first_value(item: dict, paths: Paths) -> Any:
    """Return the first value found along paths, skipping None and empty strings."""
    for path in paths:
        value = _lookup(item, path)
        if value is None or value == "":
            continue
        return value
    return None


# =============================================================================
# Nested extra builders
# =============================================================================

def _parsebot_extras(video: dict, handle: str) -> Dict[str, Any]:
    return {
        "author": {
            "id": first_value(video, ("author.id", "author_id")) or "",
            "username": first_value(video, ("author.unique_id", "author.username")) or handle,
            "nickname": first_value(video, ("author.nickname",)) or "",
            "avatar": first_value(video, ("author.avatar",)) or "",
        },
        "music": {
            "id": first_value(video, ("music.id",)) or "",
            "name": first_value(video, ("music.title", "music.name")) or "",
            "author": first_value(video, ("music.author",)) or "",
        },
        "hashtags": video.get("hashtags") or [],
    }


def _tiktok_web_extras(video: dict, handle: str) -> Dict[str, Any]:
    return {
        "author": {
            "id": first_value(video, ("author.id",)) or "",
            "username": first_value(video, ("author.uniqueId",)) or handle,
            "nickname": first_value(video, ("author.nickname",)) or "",
            "avatar": first_value(video, ("author.avatarThumb",)) or "",
        },
        "music": {
            "id": first_value(video, ("music.id",)) or "",
            "name": first_value(video, ("music.title",)) or "",
            "author": first_value(video, ("music.authorName",)) or "",
        },
    }


# =============================================================================
# Twitter
# =============================================================================

TWITTER_API = FeedSchema(
    name="twitter_api",
    platform="twitter",
    id_key="tweet_id",
    fields={
        "id": ("id",),
        "description": ("text",),
        "timestamp": ("created_at",),
        "views": ("public_metrics.impression_count",),
        "likes": ("public_metrics.like_count",),
        "comments": ("public_metrics.reply_count",),
        "shares": ("public_metrics.retweet_count",),
    },
    extra_fields={"created_at": ("created_at",)},
    url_template="https://twitter.com/{handle}/status/{id}",
)

NITTER = FeedSchema(
    name="nitter",
    platform="twitter",
    id_key="tweet_id",
    fields={
        "id": ("tweet_id",),
        "url": ("url",),
        "description": ("text",),
        "timestamp": ("timestamp",),
        "likes": ("likes",),
        "comments": ("replies",),
        "shares": ("retweets",),
    },
    extra_fields={"created_at": ("date",)},
    url_template="https://twitter.com/{handle}/status/{id}",
)


# =============================================================================
# TikTok
# =============================================================================

PARSEBOT = FeedSchema(
    name="parsebot",
    platform="tiktok",
    id_key="video_id",
    fields={
        "id": ("id", "video_id"),
        "url": ("url", "video_url", "link"),
        "description": ("description", "desc", "text", "caption"),
        "timestamp": ("create_time", "createTime", "timestamp"),
        "views": ("play_count", "playCount", "views"),
        "likes": ("digg_count", "diggCount", "likes"),
        "comments": ("comment_count", "commentCount", "comments"),
        "shares": ("share_count", "shareCount", "shares"),
        "cover_image": ("cover", "cover_image", "thumbnail"),
    },
    extra_fields={"video_url": ("download_url", "video_url")},
    url_template="https://www.tiktok.com/@{handle}/video/{id}",
    video_default=True,
    newest_first=True,
    extra_builder=_parsebot_extras,
)

TIKTOK_WEB = FeedSchema(
    name="tiktok_web",
    platform="tiktok",
    id_key="video_id",
    fields={
        "id": ("id",),
        "description": ("desc",),
        "timestamp": ("createTime",),
        "views": ("stats.playCount",),
        "likes": ("stats.diggCount",),
        "comments": ("stats.commentCount",),
        "shares": ("stats.shareCount",),
        "cover_image": ("video.cover",),
    },
    extra_fields={"video_url": ("video.playAddr",)},
    url_template="https://www.tiktok.com/@{handle}/video/{id}",
    video_default=True,
    newest_first=True,
    extra_builder=_tiktok_web_extras,
)


# =============================================================================
# YouTube
# =============================================================================

YOUTUBE_API = FeedSchema(
    name="youtube_api",
    platform="youtube",
    id_key="video_id",
    fields={
        "id": ("video_id",),
        "url": ("url",),
        "description": ("description", "title"),
        "timestamp": ("published",),
        "views": ("views",),
        "likes": ("likes",),
        "comments": ("comments",),
        "cover_image": ("thumbnail",),
    },
    extra_fields={
        "title": ("title",),
        "duration": ("duration",),
        "published_at": ("published",),
    },
    url_template="https://www.youtube.com/watch?v={id}",
    video_default=True,
    description_limit=200,
)

YOUTUBE_WEB = FeedSchema(
    name="youtube_web",
    platform="youtube",
    id_key="video_id",
    fields={
        "id": ("video_id",),
        "url": ("url",),
        "description": ("description", "title"),
        "views": ("views",),
        "cover_image": ("thumbnail",),
    },
    extra_fields={
        "title": ("title",),
        "duration": ("duration",),
        "published_at": ("published",),
    },
    url_template="https://www.youtube.com/watch?v={id}",
    video_default=True,
)


# =============================================================================
# Instagram
# =============================================================================

INSTAGRAM_GRAPH = FeedSchema(
    name="instagram_graph",
    platform="instagram",
    id_key="post_id",
    fields={
        "id": ("id",),
        "url": ("permalink",),
        "description": ("caption",),
        "timestamp": ("timestamp",),
        "likes": ("like_count",),
        "comments": ("comments_count",),
        "cover_image": ("thumbnail_url", "media_url"),
        "is_video": ("media_type",),
    },
    extra_fields={"media_type": ("media_type",)},
)

INSTAGRAM_WEB = FeedSchema(
    name="instagram_web",
    platform="instagram",
    id_key="post_id",
    fields={
        "id": ("shortcode", "id"),
        "description": ("edge_media_to_caption.edges.0.node.text", "accessibility_caption"),
        "timestamp": ("taken_at_timestamp",),
        "views": ("video_view_count",),
        "likes": ("edge_liked_by.count", "edge_media_preview_like.count"),
        "comments": ("edge_media_to_comment.count",),
        "cover_image": ("display_url", "thumbnail_src"),
        "is_video": ("is_video",),
    },
    url_template="https://www.instagram.com/p/{id}/",
)


SCHEMAS: Dict[str, FeedSchema] = {
    schema.name: schema
    for schema in (
        TWITTER_API,
        NITTER,
        PARSEBOT,
        TIKTOK_WEB,
        YOUTUBE_API,
        YOUTUBE_WEB,
        INSTAGRAM_GRAPH,
        INSTAGRAM_WEB,
    )
}


def get_schema(name: str) -> FeedSchema:
    """Look up a mapping table by schema tag."""
    try:
        return SCHEMAS[name]
    except KeyError:
        raise KeyError(f"Unknown feed schema: {name!r}") from None
