from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.core.database import get_db
from app.schemas.item import SearchQuery, SearchResult
from app.schemas.tag import TagSearchQuery, TagWithStats
from app.services.search import SearchService

router = APIRouter()


@router.post("/items", response_model=SearchResult)
def search_items(query: SearchQuery, db: Session = Depends(get_db)):
    """
    Search active items.

    - `query` matches content or title substrings
    - `tags` with `tag_mode` all / any / none (any by default)
    - Ordered newest first, paginated by limit/offset
    """
    return SearchService(db).search_items(query)


@router.post("/tags", response_model=List[TagWithStats])
def search_tags(query: TagSearchQuery, db: Session = Depends(get_db)):
    """Search tags by name or description; each result carries its active item count."""
    return SearchService(db).search_tags(query)
