"""
Feed normalizer.

Maps a RawFeed into a PagedResponse:

    RawFeed -> mapping table (by schema tag) -> CanonicalItems
            -> optional newest-first ordering -> page slice -> meta block

Pure function of its inputs except request_time, which reads the clock
unless a fixed value is passed in.
"""

import math
import time
from typing import List, Optional

from src.models.feed import CanonicalItem, PagedResponse, RawFeed
from src.normalizer.coerce import parse_count, to_bool, to_epoch, to_text
from src.normalizer.schemas import FeedSchema, first_value, get_schema

_COUNT_FIELDS = ("views", "likes", "comments", "shares")


def normalize_item(raw: dict, schema: FeedSchema, handle: str) -> CanonicalItem:
    """
    Convert one upstream record into a CanonicalItem using its mapping table.

    Missing numbers become 0 and missing strings become "", never None.
    """
    fields = schema.fields

    def pick(name: str):
        paths = fields.get(name)
        return first_value(raw, paths) if paths else None

    item_id = to_text(pick("id"))

    url = to_text(pick("url"))
    if not url and schema.url_template and item_id:
        url = schema.url_template.format(handle=handle, id=item_id)

    description = to_text(pick("description"))
    if schema.description_limit is not None:
        description = description[:schema.description_limit]

    counts = {name: parse_count(pick(name)) for name in _COUNT_FIELDS}

    if "is_video" in fields:
        is_video = to_bool(pick("is_video"))
    else:
        is_video = schema.video_default

    extra = {}
    for name, paths in schema.extra_fields.items():
        extra[name] = to_text(first_value(raw, paths))
    if schema.extra_builder is not None:
        extra.update(schema.extra_builder(raw, handle))

    return CanonicalItem(
        id=item_id,
        url=url,
        description=description,
        cover_image=to_text(pick("cover_image")),
        timestamp=to_epoch(pick("timestamp")),
        is_video=is_video,
        extra=extra,
        **counts,
    )


def normalize_items(raw_feed: RawFeed, handle: str) -> List[CanonicalItem]:
    """Normalize every item of a feed, applying the schema's ordering contract."""
    schema = get_schema(raw_feed.schema)
    items = [
        normalize_item(raw, schema, handle)
        for raw in raw_feed.items
        if isinstance(raw, dict)
    ]
    if schema.newest_first:
        # Stable sort keeps upstream order among equal timestamps
        items.sort(key=lambda item: item.timestamp, reverse=True)
    return items


def paginate(items: list, page: int, per_page: int) -> list:
    """Slice [(page-1)*per_page, page*per_page); out-of-range pages give []."""
    if page < 1 or per_page < 1:
        return []
    start = (page - 1) * per_page
    return items[start:start + per_page]


def total_pages(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page > 0 else 0


def normalize(
    raw_feed: RawFeed,
    handle: str,
    page: int = 1,
    per_page: int = 10,
    request_time: Optional[int] = None,
) -> PagedResponse:
    """
    Build one page of the unified response from a RawFeed.

    Pagination runs over the full normalized set. An empty set yields
    total_pages 0 and status "success", or status "partial" with meta.error when
    the feed carried an error marker.

    Args:
        raw_feed: Result of the source that won the fallback chain.
        handle: Normalized handle the client asked for.
        page: 1-based page number.
        per_page: Items per page.
        request_time: Fixed Unix time for meta.request_time (defaults to now).

    Returns:
        PagedResponse for the requested page.
    """
    schema = get_schema(raw_feed.schema)
    items = normalize_items(raw_feed, handle)

    username = handle
    if raw_feed.author:
        username = raw_feed.author.get("username") or handle

    meta = {
        "username": username,
        "page": page,
        "posts_per_page": per_page,
        "total_pages": total_pages(len(items), per_page),
        "total_posts": len(items),
        "request_time": int(time.time()) if request_time is None else request_time,
        "source": raw_feed.source,
    }
    for key, value in raw_feed.extra.items():
        meta.setdefault(key, value)

    status = "success"
    if not items and raw_feed.error:
        status = "partial"
        meta["error"] = raw_feed.error

    data = [item.to_dict(schema.id_key) for item in paginate(items, page, per_page)]

    return PagedResponse(meta=meta, data=data, status=status)
