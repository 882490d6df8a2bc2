from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class TagGroupBase(BaseModel):
    name: str
    description: str = ""
    color: str = "#1890ff"
    sort_order: int = 0


class TagGroupCreate(TagGroupBase):
    pass


class TagGroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    sort_order: Optional[int] = None


class TagGroup(TagGroupBase):
    id: str
    is_system: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TagBase(BaseModel):
    name: str
    description: str = ""
    color: str = "#1890ff"
    group_id: Optional[str] = None


class TagCreate(TagBase):
    pass


class TagUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    # Pass an empty string to move the tag out of its group
    group_id: Optional[str] = None


class Tag(TagBase):
    id: str
    use_count: int
    created_at: datetime
    updated_at: datetime
    last_used_at: datetime

    class Config:
        from_attributes = True


class TagWithStats(Tag):
    item_count: int = 0


class TagSortField(str, Enum):
    NAME = "name"
    USE_COUNT = "use_count"
    CREATED_AT = "created_at"
    LAST_USED_AT = "last_used_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TagSearchQuery(BaseModel):
    query: str = ""
    group_id: Optional[str] = None
    sort_by: Optional[TagSortField] = None
    sort_order: Optional[SortOrder] = None
    limit: int = 50
    offset: int = Field(default=0, ge=0)


class TagStatistics(BaseModel):
    total_tags: int
    most_used_tags: List[TagWithStats]
    recent_tags: List[TagWithStats]
    tag_groups: List[TagGroup]
    unused_tags: List[Tag]


class TagNames(BaseModel):
    tag_names: List[str]


class ItemTagsUpdate(TagNames):
    source: str = "user-custom"


class MergeTagsRequest(BaseModel):
    source_tag_name: str
    target_tag_name: str
