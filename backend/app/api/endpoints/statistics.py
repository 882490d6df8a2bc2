from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.item import CategoryTagsResponse, Statistics
from app.services.statistics import StatisticsService

router = APIRouter()


@router.get("/", response_model=Statistics)
def get_statistics(
    recent_limit: int = Query(5, ge=1, le=100),
    tag_limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return StatisticsService(db).get_statistics(recent_limit=recent_limit, tag_limit=tag_limit)


@router.get("/categories-and-tags", response_model=CategoryTagsResponse)
def get_categories_and_tags(db: Session = Depends(get_db)):
    """Known categories plus the names of tags attached to active items."""
    return StatisticsService(db).get_categories_and_tags()
