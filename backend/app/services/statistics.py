from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload
from datetime import datetime, timedelta
from typing import Optional
import logging

from app.core.database import now_utc
from app.models.item import Item
from app.repositories.item_repository import ItemRepository
from app.repositories.tag_repository import TagRepository
from app.schemas.item import CategoryTagsResponse, Item as ItemSchema, Statistics
from app.services.search import with_stats

logger = logging.getLogger(__name__)


class StatisticsService:
    """Read-only aggregates over active items and tags."""

    def __init__(self, db: Session, now: Optional[datetime] = None):
        self.db = db
        self.now = now

    def _count_since(self, since: Optional[datetime] = None) -> int:
        query = select(func.count(Item.id)).where(Item.is_deleted == False)
        if since is not None:
            query = query.where(Item.created_at >= since)
        return self.db.scalar(query)

    def get_statistics(self, recent_limit: int = 5, tag_limit: int = 10) -> Statistics:
        now = self.now or now_utc()
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        category_rows = self.db.execute(
            select(Item.category, func.count(Item.id))
            .where(Item.is_deleted == False)
            .group_by(Item.category)
        ).all()

        recent_items = (
            self.db.query(Item)
            .options(selectinload(Item.tags))
            .filter(Item.is_deleted == False)
            .order_by(Item.created_at.desc())
            .limit(recent_limit)
            .all()
        )

        tags = TagRepository(self.db)
        return Statistics(
            total_items=self._count_since(),
            today_items=self._count_since(start_of_today),
            week_items=self._count_since(now - timedelta(days=7)),
            month_items=self._count_since(now - timedelta(days=30)),
            category_stats={category: count for category, count in category_rows},
            recent_items=[ItemSchema.model_validate(item) for item in recent_items],
            top_tags=with_stats(self.db, tags.get_most_used_tags(tag_limit)),
            recent_tags=with_stats(self.db, tags.get_recent_tags(tag_limit)),
        )

    def get_categories_and_tags(self) -> CategoryTagsResponse:
        items = ItemRepository(self.db)
        return CategoryTagsResponse(
            categories=items.get_all_categories(),
            tags=items.get_all_tag_names(),
        )
