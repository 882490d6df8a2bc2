from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
import logging

from app.core.database import now_utc
from app.core.exceptions import NotFoundError, PersistenceError, ValidationError
from app.models.item import Item, item_tags
from app.models.tag import Tag
from app.services.classifier import all_categories

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = {"content", "content_type", "title", "category", "is_favorite", "is_deleted"}


class ItemRepository:
    """SQLAlchemy-backed item store."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to {action}: {str(e)}")

    def _query(self):
        return self.db.query(Item).options(selectinload(Item.tags))

    def create(self, item: Item) -> Item:
        self.db.add(item)
        self._commit("create item")
        self.db.refresh(item)
        logger.debug(f"Created item {item.id} ({item.category})")
        return item

    def get_by_id(self, item_id: str) -> Item:
        item = self._query().filter(Item.id == item_id).first()
        if not item:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    def list(self, limit: Optional[int] = None, offset: int = 0) -> List[Item]:
        query = (
            self._query()
            .filter(Item.is_deleted == False)
            .order_by(Item.created_at.desc())
            .offset(offset)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_trash(self, limit: Optional[int] = None, offset: int = 0) -> List[Item]:
        query = (
            self._query()
            .filter(Item.is_deleted == True)
            .order_by(Item.deleted_at.desc())
            .offset(offset)
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def update(self, item_id: str, **changes) -> Item:
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        item = self.get_by_id(item_id)
        for field, value in changes.items():
            setattr(item, field, value)

        if "is_deleted" in changes:
            if item.is_deleted and item.deleted_at is None:
                item.deleted_at = now_utc()
            elif not item.is_deleted:
                item.deleted_at = None

        item.updated_at = now_utc()
        self._commit("update item")
        self.db.refresh(item)
        return item

    def soft_delete(self, item_id: str) -> Item:
        item = self.get_by_id(item_id)
        if item.is_deleted:
            return item

        now = now_utc()
        item.is_deleted = True
        item.deleted_at = now
        item.updated_at = now
        self._commit("move item to trash")
        self.db.refresh(item)
        return item

    def restore(self, item_id: str) -> Item:
        item = self.get_by_id(item_id)
        if not item.is_deleted:
            return item

        item.is_deleted = False
        item.deleted_at = None
        item.updated_at = now_utc()
        self._commit("restore item")
        self.db.refresh(item)
        return item

    def _delete_ids(self, item_ids: List[str]) -> int:
        # Association rows go first; the FK cascade covers anything missed
        self.db.execute(delete(item_tags).where(item_tags.c.item_id.in_(item_ids)))
        result = self.db.execute(
            delete(Item)
            .where(Item.id.in_(item_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def permanent_delete(self, item_id: str) -> None:
        self.get_by_id(item_id)
        try:
            self._delete_ids([item_id])
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to delete item {item_id}: {str(e)}")
        self._commit("delete item")
        self.db.expire_all()

    def batch_permanent_delete(self, item_ids: List[str]) -> int:
        if not item_ids:
            return 0
        try:
            deleted = self._delete_ids(list(set(item_ids)))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to delete items: {str(e)}")
        self._commit("delete items")
        self.db.expire_all()
        logger.info(f"Permanently deleted {deleted} items")
        return deleted

    def empty_trash(self) -> int:
        trashed_ids = self.db.scalars(select(Item.id).where(Item.is_deleted == True)).all()
        if not trashed_ids:
            return 0
        try:
            deleted = self._delete_ids(list(trashed_ids))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to empty trash: {str(e)}")
        self._commit("empty trash")
        self.db.expire_all()
        return deleted

    def use_item(self, item_id: str) -> Item:
        result = self.db.execute(
            update(Item)
            .where(Item.id == item_id)
            .values(use_count=Item.use_count + 1, last_used_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError(f"Item {item_id} not found")
        self._commit("record item use")
        return self.get_by_id(item_id)

    def is_duplicate_content(self, content: str) -> bool:
        return self.db.scalar(
            select(
                exists().where(Item.content == content, Item.is_deleted == False)
            )
        )

    def get_all_categories(self) -> List[str]:
        used = self.db.scalars(
            select(Item.category).where(Item.is_deleted == False).distinct()
        ).all()
        return sorted(set(all_categories()) | set(used))

    def get_all_tag_names(self) -> List[str]:
        return list(
            self.db.scalars(
                select(Tag.name)
                .join(item_tags, Tag.id == item_tags.c.tag_id)
                .join(Item, Item.id == item_tags.c.item_id)
                .where(Item.is_deleted == False)
                .distinct()
                .order_by(Tag.name)
            ).all()
        )
