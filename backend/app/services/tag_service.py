from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.core.database import now_utc
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.logging_config import log_event
from app.models.tag import DEFAULT_TAG_COLOR, USER_GROUP_ID, Tag, TagGroup
from app.repositories.base import TagStore
from app.repositories.tag_repository import TagRepository, validate_tag_name
from app.schemas.tag import (
    SortOrder,
    Tag as TagSchema,
    TagCreate,
    TagGroup as TagGroupSchema,
    TagGroupCreate,
    TagGroupUpdate,
    TagSearchQuery,
    TagSortField,
    TagStatistics,
    TagUpdate,
)
from app.services.search import SearchService, with_stats

logger = logging.getLogger(__name__)

STATISTICS_LIMIT = 10
MIN_SHARED_SUBSTRING = 2


def shares_substring(first: str, second: str, length: int = MIN_SHARED_SUBSTRING) -> bool:
    """True when both strings contain a common substring of at least `length` chars."""
    if len(first) < length or len(second) < length:
        return False
    return any(first[i : i + length] in second for i in range(len(first) - length + 1))


class TagService:
    """Tag operations addressed by name, as the API and the AI tagger use them."""

    def __init__(self, db: Session):
        self.db = db
        self.repo: TagStore = TagRepository(db)

    # Groups

    def create_tag_group(self, data: TagGroupCreate) -> TagGroup:
        name = data.name.strip()
        if not name:
            raise ValidationError("Tag group name cannot be empty")
        now = now_utc()
        group = TagGroup(
            name=name,
            description=data.description,
            color=data.color or DEFAULT_TAG_COLOR,
            sort_order=data.sort_order,
            is_system=False,
            created_at=now,
            updated_at=now,
        )
        return self.repo.create_tag_group(group)

    def get_tag_groups(self) -> List[TagGroup]:
        return self.repo.get_tag_groups()

    def update_tag_group(self, group_id: str, data: TagGroupUpdate) -> TagGroup:
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValidationError("Tag group name cannot be empty")
        return self.repo.update_tag_group(group_id, **changes)

    def delete_tag_group(self, group_id: str) -> None:
        group = self.repo.get_tag_group(group_id)
        if group.is_system:
            raise ValidationError(f"System tag group {group.name!r} cannot be deleted")
        self.repo.delete_tag_group(group_id)

    # Tags

    def create_tag(self, data: TagCreate) -> Tag:
        name = validate_tag_name(data.name)
        if self.repo.get_tag_by_name(name):
            raise ConflictError(f"Tag {name!r} already exists")
        if data.group_id:
            self.repo.get_tag_group(data.group_id)

        now = now_utc()
        tag = Tag(
            name=name,
            description=data.description,
            color=data.color or DEFAULT_TAG_COLOR,
            group_id=data.group_id or None,
            use_count=0,
            created_at=now,
            updated_at=now,
            last_used_at=now,
        )
        return self.repo.create_tag(tag)

    def get_tags(self) -> List[Tag]:
        return self.repo.get_tags()

    def get_tags_by_group(self, group_id: Optional[str]) -> List[Tag]:
        return self.repo.get_tags_by_group(group_id)

    def update_tag(self, tag_id: str, data: TagUpdate) -> Tag:
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            name = validate_tag_name(changes["name"])
            existing = self.repo.get_tag_by_name(name)
            if existing and existing.id != tag_id:
                raise ConflictError(f"Tag {name!r} already exists")
            changes["name"] = name
        return self.repo.update_tag(tag_id, **changes)

    def delete_tag(self, tag_id: str) -> None:
        self.repo.delete_tag(tag_id)

    def _get_by_name(self, name: str) -> Tag:
        tag = self.repo.get_tag_by_name(name)
        if not tag:
            raise NotFoundError(f"Tag {name!r} not found")
        return tag

    # Item tags

    def get_tags_for_item(self, item_id: str) -> List[Tag]:
        return self.repo.get_tags_for_item(item_id)

    def add_tags_to_item(self, item_id: str, names: List[str]) -> List[Tag]:
        for name in names:
            tag = self.repo.get_or_create_tag(name, USER_GROUP_ID)
            self.repo.add_tag_to_item(item_id, tag.id)
            self.repo.increment_tag_usage(tag.id)
        return self.repo.get_tags_for_item(item_id)

    def remove_tags_from_item(self, item_id: str, names: List[str]) -> List[Tag]:
        for name in names:
            tag = self.repo.get_tag_by_name(name)
            if tag is None:
                continue
            self.repo.remove_tag_from_item(item_id, tag.id)
        return self.repo.get_tags_for_item(item_id)

    def update_item_tags(
        self, item_id: str, names: List[str], source: str = USER_GROUP_ID
    ) -> List[Tag]:
        """Replace the item's tag set; each named tag counts one use."""
        tag_ids = []
        for name in dict.fromkeys(name.strip() for name in names):
            if not name:
                continue
            tag = self.repo.get_or_create_tag(name, source)
            tag_ids.append(tag.id)

        self.repo.batch_update_item_tags(item_id, tag_ids)
        for tag_id in tag_ids:
            self.repo.increment_tag_usage(tag_id)
        return self.repo.get_tags_for_item(item_id)

    # Maintenance

    def merge_tags_by_name(self, source_name: str, target_name: str) -> Tag:
        source = self._get_by_name(source_name)
        target = self._get_by_name(target_name)
        target_id = target.id
        self.repo.merge_tags(source.id, target_id)
        log_event(
            "tags.merged",
            f"Merged tag {source_name!r} into {target_name!r}",
            event_category="tags",
            source_tag=source_name,
            target_tag=target_name,
        )
        return self.repo.get_tag_by_id(target_id)

    def cleanup_unused_tags(self) -> int:
        removed = self.repo.cleanup_unused_tags()
        log_event(
            "tags.cleaned",
            f"Removed {removed} unused tags",
            event_category="tags",
            removed=removed,
        )
        return removed

    def get_tag_statistics(self) -> TagStatistics:
        return TagStatistics(
            total_tags=self.repo.count_tags(),
            most_used_tags=with_stats(self.db, self.repo.get_most_used_tags(STATISTICS_LIMIT)),
            recent_tags=with_stats(self.db, self.repo.get_recent_tags(STATISTICS_LIMIT)),
            tag_groups=[TagGroupSchema.model_validate(g) for g in self.repo.get_tag_groups()],
            unused_tags=[TagSchema.model_validate(t) for t in self.repo.get_unused_tags()],
        )

    def suggest_tags(self, content: str, limit: int = 5) -> List[str]:
        """Popular tags mentioned in the content first, then the most used overall."""
        candidates = [tag.name for tag in self.repo.get_most_used_tags(limit * 2)]
        suggestions = [
            name for name in candidates if name in content or content in name
        ][:limit]
        for name in candidates:
            if len(suggestions) >= limit:
                break
            if name not in suggestions:
                suggestions.append(name)
        return suggestions

    def get_similar_tags(self, name: str, limit: int = 5) -> List[Tag]:
        candidates = SearchService(self.db).search_tags(
            TagSearchQuery(
                query=name,
                sort_by=TagSortField.USE_COUNT,
                sort_order=SortOrder.DESC,
                limit=limit * 2,
            )
        )
        similar = []
        for candidate in candidates:
            if len(similar) >= limit:
                break
            if candidate.name != name and shares_substring(candidate.name, name):
                similar.append(self.repo.get_tag_by_id(candidate.id))
        return similar
