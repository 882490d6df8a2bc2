from sqlalchemy import delete, exists, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.core.database import now_utc
from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.models.item import Item, item_tags
from app.models.tag import DEFAULT_TAG_COLOR, USER_GROUP_ID, Tag, TagGroup

logger = logging.getLogger(__name__)

MAX_TAG_NAME_LENGTH = 50
FORBIDDEN_TAG_CHARS = set('/\\?%*:|"<>')

TAG_FIELDS = {"name", "description", "color", "group_id"}
GROUP_FIELDS = {"name", "description", "color", "sort_order"}


def validate_tag_name(name: str) -> str:
    """Return the stripped name or raise ValidationError."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Tag name cannot be empty")
    if len(name) > MAX_TAG_NAME_LENGTH:
        raise ValidationError(
            f"Tag name cannot be longer than {MAX_TAG_NAME_LENGTH} characters"
        )
    bad = sorted(FORBIDDEN_TAG_CHARS.intersection(name))
    if bad:
        raise ValidationError(f"Tag name contains invalid characters: {''.join(bad)}")
    return name


class TagRepository:
    """SQLAlchemy-backed tag, tag group and item-tag association store."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(f"Failed to {action}: {str(e.orig)}")
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to {action}: {str(e)}")

    # Tag groups

    def create_tag_group(self, group: TagGroup) -> TagGroup:
        self.db.add(group)
        self._commit(f"create tag group {group.name!r}")
        self.db.refresh(group)
        return group

    def get_tag_group(self, group_id: str) -> TagGroup:
        group = self.db.get(TagGroup, group_id)
        if not group:
            raise NotFoundError(f"Tag group {group_id} not found")
        return group

    def get_tag_groups(self) -> List[TagGroup]:
        return (
            self.db.query(TagGroup)
            .order_by(TagGroup.sort_order, TagGroup.name)
            .all()
        )

    def update_tag_group(self, group_id: str, **changes) -> TagGroup:
        unknown = set(changes) - GROUP_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        group = self.get_tag_group(group_id)
        for field, value in changes.items():
            setattr(group, field, value)
        group.updated_at = now_utc()
        self._commit("update tag group")
        self.db.refresh(group)
        return group

    def delete_tag_group(self, group_id: str) -> None:
        group = self.get_tag_group(group_id)
        # Member tags survive and become ungrouped
        self.db.execute(
            update(Tag)
            .where(Tag.group_id == group_id)
            .values(group_id=None)
            .execution_options(synchronize_session=False)
        )
        self.db.delete(group)
        self._commit("delete tag group")
        self.db.expire_all()

    # Tags

    def create_tag(self, tag: Tag) -> Tag:
        tag.name = validate_tag_name(tag.name)
        self.db.add(tag)
        self._commit(f"create tag {tag.name!r}")
        self.db.refresh(tag)
        return tag

    def get_tag_by_id(self, tag_id: str) -> Tag:
        tag = self.db.get(Tag, tag_id)
        if not tag:
            raise NotFoundError(f"Tag {tag_id} not found")
        return tag

    def get_tag_by_name(self, name: str) -> Optional[Tag]:
        return self.db.query(Tag).filter(Tag.name == name).first()

    def get_tags(self) -> List[Tag]:
        return self.db.query(Tag).order_by(Tag.name).all()

    def get_tags_by_group(self, group_id: Optional[str]) -> List[Tag]:
        query = self.db.query(Tag)
        if group_id is None:
            query = query.filter(Tag.group_id.is_(None))
        else:
            query = query.filter(Tag.group_id == group_id)
        return query.order_by(Tag.name).all()

    def update_tag(self, tag_id: str, **changes) -> Tag:
        unknown = set(changes) - TAG_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        tag = self.get_tag_by_id(tag_id)
        if "name" in changes:
            changes["name"] = validate_tag_name(changes["name"])
        if changes.get("group_id"):
            self.get_tag_group(changes["group_id"])
        elif "group_id" in changes:
            changes["group_id"] = None

        for field, value in changes.items():
            setattr(tag, field, value)
        tag.updated_at = now_utc()
        self._commit("update tag")
        self.db.refresh(tag)
        return tag

    def delete_tag(self, tag_id: str) -> None:
        self.get_tag_by_id(tag_id)
        self.db.execute(delete(item_tags).where(item_tags.c.tag_id == tag_id))
        self.db.execute(
            delete(Tag)
            .where(Tag.id == tag_id)
            .execution_options(synchronize_session=False)
        )
        self._commit("delete tag")
        self.db.expire_all()

    def _resolve_group(self, source: Optional[str]) -> str:
        """Missing or unknown sources land in the user group."""
        if source and self.db.get(TagGroup, source) is not None:
            return source
        return USER_GROUP_ID

    def _insert_tag(self, name: str, group_id: Optional[str]) -> Tag:
        now = now_utc()
        tag = Tag(
            name=name,
            description="",
            color=DEFAULT_TAG_COLOR,
            group_id=group_id,
            use_count=0,
            created_at=now,
            updated_at=now,
            last_used_at=now,
        )
        try:
            with self.db.begin_nested():
                self.db.add(tag)
        except IntegrityError:
            raise ConflictError(f"Tag {name!r} already exists")
        return tag

    def get_or_create_tag(self, name: str, source: Optional[str] = None) -> Tag:
        """
        Look a tag up by exact name, creating it in the source group if missing.

        Concurrent creators race on the unique name; the loser re-reads the
        winner's row instead of failing.
        """
        name = validate_tag_name(name)
        tag = self.get_tag_by_name(name)
        if tag:
            return tag

        try:
            tag = self._insert_tag(name, self._resolve_group(source))
        except ConflictError:
            tag = self.get_tag_by_name(name)
            if tag is None:
                raise PersistenceError(f"Tag {name!r} vanished after a conflicting insert")
            return tag

        self._commit(f"create tag {name!r}")
        logger.debug(f"Created tag {name!r} in group {tag.group_id}")
        return tag

    # Item associations

    def _require_item(self, item_id: str) -> None:
        if self.db.get(Item, item_id) is None:
            raise NotFoundError(f"Item {item_id} not found")

    def _has_association(self, item_id: str, tag_id: str) -> bool:
        return self.db.scalar(
            select(
                exists().where(
                    item_tags.c.item_id == item_id, item_tags.c.tag_id == tag_id
                )
            )
        )

    def add_tag_to_item(self, item_id: str, tag_id: str) -> None:
        self._require_item(item_id)
        self.get_tag_by_id(tag_id)
        if self._has_association(item_id, tag_id):
            return
        self.db.execute(
            insert(item_tags).values(item_id=item_id, tag_id=tag_id, created_at=now_utc())
        )
        self._commit("tag item")
        self.db.expire_all()

    def remove_tag_from_item(self, item_id: str, tag_id: str) -> None:
        self.db.execute(
            delete(item_tags).where(
                item_tags.c.item_id == item_id, item_tags.c.tag_id == tag_id
            )
        )
        self._commit("untag item")
        self.db.expire_all()

    def get_tags_for_item(self, item_id: str) -> List[Tag]:
        return (
            self.db.query(Tag)
            .join(item_tags, Tag.id == item_tags.c.tag_id)
            .filter(item_tags.c.item_id == item_id)
            .order_by(Tag.name)
            .all()
        )

    def get_items_for_tag(self, tag_id: str) -> List[Item]:
        return (
            self.db.query(Item)
            .join(item_tags, Item.id == item_tags.c.item_id)
            .filter(item_tags.c.tag_id == tag_id, Item.is_deleted == False)
            .order_by(Item.created_at.desc())
            .all()
        )

    def batch_update_item_tags(self, item_id: str, tag_ids: List[str]) -> None:
        """Replace the item's whole tag set in one transaction."""
        self._require_item(item_id)
        unique_ids = list(dict.fromkeys(tag_ids))
        if unique_ids:
            found = set(self.db.scalars(select(Tag.id).where(Tag.id.in_(unique_ids))).all())
            missing = [tag_id for tag_id in unique_ids if tag_id not in found]
            if missing:
                raise NotFoundError(f"Tags not found: {', '.join(missing)}")

        try:
            self.db.execute(delete(item_tags).where(item_tags.c.item_id == item_id))
            if unique_ids:
                now = now_utc()
                self.db.execute(
                    insert(item_tags),
                    [
                        {"item_id": item_id, "tag_id": tag_id, "created_at": now}
                        for tag_id in unique_ids
                    ],
                )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to update tags of item {item_id}: {str(e)}")
        self._commit("update item tags")
        self.db.expire_all()

    # Usage and maintenance

    def increment_tag_usage(self, tag_id: str) -> None:
        result = self.db.execute(
            update(Tag)
            .where(Tag.id == tag_id)
            .values(use_count=Tag.use_count + 1, last_used_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError(f"Tag {tag_id} not found")
        self._commit("record tag usage")

    def get_most_used_tags(self, limit: int = 10) -> List[Tag]:
        return (
            self.db.query(Tag)
            .order_by(Tag.use_count.desc(), Tag.name)
            .limit(limit)
            .all()
        )

    def get_recent_tags(self, limit: int = 10) -> List[Tag]:
        return (
            self.db.query(Tag)
            .order_by(Tag.last_used_at.desc(), Tag.name)
            .limit(limit)
            .all()
        )

    def _unused_clause(self):
        return ~exists().where(item_tags.c.tag_id == Tag.id)

    def get_unused_tags(self) -> List[Tag]:
        return (
            self.db.query(Tag)
            .filter(self._unused_clause())
            .order_by(Tag.created_at, Tag.name)
            .all()
        )

    def count_tags(self) -> int:
        return self.db.scalar(select(func.count(Tag.id)))

    def cleanup_unused_tags(self) -> int:
        result = self.db.execute(
            delete(Tag)
            .where(self._unused_clause())
            .execution_options(synchronize_session=False)
        )
        self._commit("clean up unused tags")
        self.db.expire_all()
        return result.rowcount

    def merge_tags(self, source_tag_id: str, target_tag_id: str) -> None:
        """
        Move every association of the source tag onto the target, then delete
        the source. Items that already carry the target keep a single row.
        """
        if source_tag_id == target_tag_id:
            raise ValidationError("Cannot merge a tag into itself")
        source = self.get_tag_by_id(source_tag_id)
        self.get_tag_by_id(target_tag_id)

        already_tagged = select(item_tags.c.item_id).where(
            item_tags.c.tag_id == target_tag_id
        )
        try:
            moved = self.db.execute(
                update(item_tags)
                .where(
                    item_tags.c.tag_id == source_tag_id,
                    item_tags.c.item_id.not_in(already_tagged),
                )
                .values(tag_id=target_tag_id)
            ).rowcount
            self.db.execute(delete(item_tags).where(item_tags.c.tag_id == source_tag_id))
            self.db.execute(
                delete(Tag)
                .where(Tag.id == source.id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to merge tags: {str(e)}")
        self._commit("merge tags")
        self.db.expire_all()
        logger.info(f"Merged tag {source_tag_id} into {target_tag_id} ({moved} items moved)")
