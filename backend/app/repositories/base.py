"""
Storage capabilities the services depend on.

The SQLAlchemy repositories in this package implement them; services and
tests can accept any object with the same shape.
"""

from typing import List, Optional, Protocol

from app.models.item import Item
from app.models.tag import Tag, TagGroup


class ItemStore(Protocol):
    def create(self, item: Item) -> Item: ...

    def get_by_id(self, item_id: str) -> Item: ...

    def list(self, limit: Optional[int] = None, offset: int = 0) -> List[Item]: ...

    def get_trash(self, limit: Optional[int] = None, offset: int = 0) -> List[Item]: ...

    def update(self, item_id: str, **changes) -> Item: ...

    def soft_delete(self, item_id: str) -> Item: ...

    def restore(self, item_id: str) -> Item: ...

    def permanent_delete(self, item_id: str) -> None: ...

    def batch_permanent_delete(self, item_ids: List[str]) -> int: ...

    def empty_trash(self) -> int: ...

    def use_item(self, item_id: str) -> Item: ...

    def is_duplicate_content(self, content: str) -> bool: ...

    def get_all_categories(self) -> List[str]: ...

    def get_all_tag_names(self) -> List[str]: ...


class TagStore(Protocol):
    def create_tag_group(self, group: TagGroup) -> TagGroup: ...

    def get_tag_group(self, group_id: str) -> TagGroup: ...

    def get_tag_groups(self) -> List[TagGroup]: ...

    def update_tag_group(self, group_id: str, **changes) -> TagGroup: ...

    def delete_tag_group(self, group_id: str) -> None: ...

    def create_tag(self, tag: Tag) -> Tag: ...

    def get_tag_by_id(self, tag_id: str) -> Tag: ...

    def get_tag_by_name(self, name: str) -> Optional[Tag]: ...

    def get_tags(self) -> List[Tag]: ...

    def get_tags_by_group(self, group_id: Optional[str]) -> List[Tag]: ...

    def update_tag(self, tag_id: str, **changes) -> Tag: ...

    def delete_tag(self, tag_id: str) -> None: ...

    def get_or_create_tag(self, name: str, source: Optional[str] = None) -> Tag: ...

    def add_tag_to_item(self, item_id: str, tag_id: str) -> None: ...

    def remove_tag_from_item(self, item_id: str, tag_id: str) -> None: ...

    def get_tags_for_item(self, item_id: str) -> List[Tag]: ...

    def get_items_for_tag(self, tag_id: str) -> List[Item]: ...

    def batch_update_item_tags(self, item_id: str, tag_ids: List[str]) -> None: ...

    def increment_tag_usage(self, tag_id: str) -> None: ...

    def get_most_used_tags(self, limit: int = 10) -> List[Tag]: ...

    def get_recent_tags(self, limit: int = 10) -> List[Tag]: ...

    def get_unused_tags(self) -> List[Tag]: ...

    def count_tags(self) -> int: ...

    def cleanup_unused_tags(self) -> int: ...

    def merge_tags(self, source_tag_id: str, target_tag_id: str) -> None: ...
