from .item import (
    Item,
    ItemCreate,
    ItemUpdate,
    SearchQuery,
    SearchResult,
    Statistics,
    TagMode,
)
from .settings import CaptureSettings
from .tag import Tag, TagGroup, TagSearchQuery, TagStatistics, TagWithStats

__all__ = [
    "Item",
    "ItemCreate",
    "ItemUpdate",
    "SearchQuery",
    "SearchResult",
    "Statistics",
    "TagMode",
    "CaptureSettings",
    "Tag",
    "TagGroup",
    "TagSearchQuery",
    "TagStatistics",
    "TagWithStats",
]
