from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.orm import Session, selectinload
from typing import Dict, List, Sequence
import logging
import math

from app.models.item import Item, item_tags
from app.models.tag import Tag
from app.schemas.item import Item as ItemSchema, SearchQuery, SearchResult, TagMode
from app.schemas.tag import SortOrder, TagSearchQuery, TagSortField, TagWithStats

logger = logging.getLogger(__name__)

DEFAULT_ITEM_LIMIT = 20
DEFAULT_TAG_LIMIT = 50

TAG_SORT_COLUMNS = {
    TagSortField.NAME: Tag.name,
    TagSortField.USE_COUNT: Tag.use_count,
    TagSortField.CREATED_AT: Tag.created_at,
    TagSortField.LAST_USED_AT: Tag.last_used_at,
}


def text_filter(query: str):
    return or_(
        Item.content.contains(query, autoescape=True),
        Item.title.contains(query, autoescape=True),
    )


def _item_has_tag(*conditions):
    return exists(
        select(1)
        .select_from(item_tags)
        .join(Tag, Tag.id == item_tags.c.tag_id)
        .where(and_(item_tags.c.item_id == Item.id, *conditions))
    )


def tag_filters(names: Sequence[str], mode: TagMode) -> list:
    """Clauses restricting items by tag names under the given mode."""
    if mode == TagMode.ALL:
        return [_item_has_tag(Tag.name == name) for name in names]
    if mode == TagMode.NONE:
        return [~_item_has_tag(Tag.name.in_(names))]
    return [_item_has_tag(Tag.name.in_(names))]


def item_counts(db: Session, tag_ids: Sequence[str]) -> Dict[str, int]:
    """Number of active items per tag id."""
    if not tag_ids:
        return {}
    rows = db.execute(
        select(item_tags.c.tag_id, func.count(func.distinct(Item.id)))
        .join(Item, Item.id == item_tags.c.item_id)
        .where(item_tags.c.tag_id.in_(tag_ids), Item.is_deleted == False)
        .group_by(item_tags.c.tag_id)
    ).all()
    return {tag_id: count for tag_id, count in rows}


def with_stats(db: Session, tags: Sequence[Tag]) -> List[TagWithStats]:
    counts = item_counts(db, [tag.id for tag in tags])
    return [
        TagWithStats.model_validate(tag).model_copy(
            update={"item_count": counts.get(tag.id, 0)}
        )
        for tag in tags
    ]


class SearchService:
    def __init__(self, db: Session):
        self.db = db

    def _item_filters(self, query: SearchQuery) -> list:
        filters = [Item.is_deleted == False]
        if query.query:
            filters.append(text_filter(query.query))
        if query.category:
            filters.append(Item.category == query.category)

        names = [name for name in dict.fromkeys(query.tags) if name]
        if names:
            filters.extend(tag_filters(names, query.tag_mode or TagMode.ANY))
        return filters

    def search_items(self, query: SearchQuery) -> SearchResult:
        limit = query.limit if query.limit > 0 else DEFAULT_ITEM_LIMIT
        offset = query.offset
        condition = and_(*self._item_filters(query))

        total = self.db.scalar(select(func.count(Item.id)).where(condition))
        items = (
            self.db.query(Item)
            .options(selectinload(Item.tags))
            .filter(condition)
            .order_by(Item.created_at.desc(), Item.id)
            .offset(offset)
            .limit(limit)
            .all()
        )

        logger.debug(f"Item search matched {total} items")
        return SearchResult(
            items=[ItemSchema.model_validate(item) for item in items],
            total=total,
            page=offset // limit + 1,
            page_size=limit,
            total_pages=math.ceil(total / limit),
        )

    def search_tags(self, query: TagSearchQuery) -> List[TagWithStats]:
        limit = query.limit if query.limit > 0 else DEFAULT_TAG_LIMIT
        tag_query = self.db.query(Tag)

        if query.query:
            tag_query = tag_query.filter(
                or_(
                    Tag.name.contains(query.query, autoescape=True),
                    Tag.description.contains(query.query, autoescape=True),
                )
            )
        if query.group_id:
            tag_query = tag_query.filter(Tag.group_id == query.group_id)

        if query.sort_by is None:
            ordering = [Tag.use_count.desc(), Tag.name.asc()]
        else:
            column = TAG_SORT_COLUMNS[query.sort_by]
            direction = column.desc() if query.sort_order == SortOrder.DESC else column.asc()
            ordering = [direction]
            if query.sort_by != TagSortField.NAME:
                ordering.append(Tag.name.asc())

        tags = tag_query.order_by(*ordering).offset(query.offset).limit(limit).all()
        return with_stats(self.db, tags)
