"""
Data models module.

Defines data structures for raw upstream feeds, normalized items,
paged responses and API credentials.
"""

from src.models.credential import Credential
from src.models.feed import CanonicalItem, PagedResponse, RawFeed

__all__ = [
    "CanonicalItem",
    "Credential",
    "PagedResponse",
    "RawFeed",
]
