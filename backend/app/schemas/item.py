from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from .tag import Tag, TagWithStats


class ItemBase(BaseModel):
    content: str
    content_type: str = "text"
    title: str
    category: str
    is_favorite: bool = False


class ItemCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Content cannot be empty")
        return v


class ItemUpdate(BaseModel):
    content: Optional[str] = None
    title: Optional[str] = None
    category: Optional[str] = None
    is_favorite: Optional[bool] = None


class Item(ItemBase):
    id: str
    use_count: int
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    last_used_at: datetime
    tags: List[Tag] = []

    class Config:
        from_attributes = True


class BatchDeleteRequest(BaseModel):
    ids: List[str]


class TagMode(str, Enum):
    ALL = "all"
    ANY = "any"
    NONE = "none"


class SearchQuery(BaseModel):
    query: str = ""
    category: str = ""
    tags: List[str] = []
    tag_mode: Optional[TagMode] = None  # any when tags are given
    limit: int = 20
    offset: int = Field(default=0, ge=0)


class SearchResult(BaseModel):
    items: List[Item]
    total: int
    page: int
    page_size: int
    total_pages: int


class Statistics(BaseModel):
    total_items: int
    today_items: int
    week_items: int
    month_items: int
    category_stats: Dict[str, int]
    recent_items: List[Item]
    top_tags: List[TagWithStats]
    recent_tags: List[TagWithStats]


class CategoryTagsResponse(BaseModel):
    categories: List[str]
    tags: List[str]
