from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship, Session
from datetime import datetime
import logging
from app.core.database import Base, now_utc
from app.models.item import item_tags, new_id

logger = logging.getLogger(__name__)

AI_GROUP_ID = "ai-generated"
USER_GROUP_ID = "user-custom"
DEFAULT_TAG_COLOR = "#1890ff"

# Seeded on startup; ids are stable so callers can pass them as a tag "source"
SYSTEM_GROUPS = [
    {
        "id": AI_GROUP_ID,
        "name": "AI Generated",
        "description": "Tags suggested by the language model",
        "color": "#52c41a",
        "sort_order": 0,
    },
    {
        "id": USER_GROUP_ID,
        "name": "User Custom",
        "description": "Tags created by hand",
        "color": DEFAULT_TAG_COLOR,
        "sort_order": 1,
    },
]


class TagGroup(Base):
    __tablename__ = "tag_groups"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=False, default="")
    color = Column(String, nullable=False, default=DEFAULT_TAG_COLOR)
    sort_order = Column(Integer, nullable=False, default=0, index=True)
    is_system = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=now_utc)
    updated_at = Column(DateTime, nullable=False, default=now_utc, onupdate=now_utc)

    # Deleting a group only ungroups its tags
    tags = relationship("Tag", back_populates="group", passive_deletes=True)


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(50), nullable=False, unique=True)  # case-sensitive exact match
    description = Column(String, nullable=False, default="")
    color = Column(String, nullable=False, default=DEFAULT_TAG_COLOR)
    group_id = Column(
        String(36), ForeignKey("tag_groups.id", ondelete="SET NULL"), nullable=True, index=True
    )
    use_count = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime, nullable=False, default=now_utc)
    updated_at = Column(DateTime, nullable=False, default=now_utc, onupdate=now_utc)
    last_used_at = Column(DateTime, nullable=False, default=now_utc, index=True)

    # Relationships
    group = relationship("TagGroup", back_populates="tags")
    items = relationship(
        "Item", secondary=item_tags, back_populates="tags", passive_deletes=True
    )

    def __repr__(self):
        return f"<Tag {self.name!r}>"


def seed_system_groups(db: Session) -> None:
    """Insert the built-in tag groups if they are missing."""
    created = 0
    for group in SYSTEM_GROUPS:
        if db.get(TagGroup, group["id"]) is None:
            timestamp = datetime(2024, 1, 1)
            db.add(
                TagGroup(is_system=True, created_at=timestamp, updated_at=timestamp, **group)
            )
            created += 1
    if created:
        db.commit()
        logger.info(f"Seeded {created} system tag groups")
