"""
Feed normalization module.

Maps upstream-specific item records into the canonical item schema and
builds paginated responses.
"""

from src.normalizer.coerce import parse_count, to_epoch
from src.normalizer.normalizer import (
    normalize,
    normalize_item,
    normalize_items,
    paginate,
    total_pages,
)
from src.normalizer.schemas import SCHEMAS, FeedSchema, get_schema

__all__ = [
    "FeedSchema",
    "SCHEMAS",
    "get_schema",
    "normalize",
    "normalize_item",
    "normalize_items",
    "paginate",
    "parse_count",
    "to_epoch",
    "total_pages",
]
