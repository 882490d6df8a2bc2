from .item import Item, item_tags
from .tag import Tag, TagGroup

__all__ = [
    "Item",
    "item_tags",
    "Tag",
    "TagGroup",
]
