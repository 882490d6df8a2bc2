from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    Boolean,
    ForeignKey,
    Table,
    Index,
)
from sqlalchemy.orm import relationship
import uuid
from app.core.database import Base, now_utc


def new_id() -> str:
    return str(uuid.uuid4())


# Many-to-many association table for items and tags
item_tags = Table(
    "item_tags",
    Base.metadata,
    Column(
        "item_id",
        String(36),
        ForeignKey("items.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        String(36),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    Column("created_at", DateTime, default=now_utc),
)


class Item(Base):
    __tablename__ = "items"

    id = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)
    content_type = Column(String, nullable=False, default="text")
    title = Column(String, nullable=False, default="")
    category = Column(String, nullable=False, default="text", index=True)
    is_favorite = Column(Boolean, nullable=False, default=False, index=True)
    use_count = Column(Integer, nullable=False, default=0)

    # Soft delete pair: is_deleted == False <=> deleted_at IS NULL
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=now_utc, index=True)
    updated_at = Column(DateTime, nullable=False, default=now_utc, onupdate=now_utc)
    last_used_at = Column(DateTime, nullable=False, default=now_utc)

    # Relationships
    tags = relationship(
        "Tag",
        secondary=item_tags,
        back_populates="items",
        order_by="Tag.name",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_items_deleted_created", "is_deleted", "created_at"),)

    def __repr__(self):
        return f"<Item {self.id} {self.title!r}>"
