from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.core.database import get_db
from app.repositories.tag_repository import TagRepository
from app.schemas.item import Item as ItemSchema
from app.schemas.tag import (
    MergeTagsRequest,
    Tag as TagSchema,
    TagCreate,
    TagGroup as TagGroupSchema,
    TagGroupCreate,
    TagGroupUpdate,
    TagStatistics,
    TagUpdate,
)
from app.services.tag_service import TagService

logger = logging.getLogger(__name__)
router = APIRouter()

UNGROUPED = "ungrouped"


@router.get("/", response_model=List[TagSchema])
def get_tags(
    group_id: Optional[str] = Query(
        None, description=f"Only tags in this group; '{UNGROUPED}' for tags without one"
    ),
    db: Session = Depends(get_db),
):
    service = TagService(db)
    if group_id is None:
        return service.get_tags()
    return service.get_tags_by_group(None if group_id == UNGROUPED else group_id)


@router.post("/", response_model=TagSchema, status_code=201)
def create_tag(tag: TagCreate, db: Session = Depends(get_db)):
    return TagService(db).create_tag(tag)


@router.get("/statistics", response_model=TagStatistics)
def get_tag_statistics(db: Session = Depends(get_db)):
    return TagService(db).get_tag_statistics()


@router.post("/merge", response_model=TagSchema)
def merge_tags(request: MergeTagsRequest, db: Session = Depends(get_db)):
    """Move every item of the source tag onto the target and delete the source."""
    return TagService(db).merge_tags_by_name(
        request.source_tag_name, request.target_tag_name
    )


@router.post("/cleanup")
def cleanup_unused_tags(db: Session = Depends(get_db)):
    """Delete tags that are attached to no item."""
    return {"deleted": TagService(db).cleanup_unused_tags()}


@router.get("/suggest", response_model=List[str])
def suggest_tags(
    content: str = Query(..., min_length=1),
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
):
    return TagService(db).suggest_tags(content, limit)


@router.get("/similar", response_model=List[TagSchema])
def get_similar_tags(
    name: str = Query(..., min_length=1),
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
):
    return TagService(db).get_similar_tags(name, limit)


@router.get("/groups", response_model=List[TagGroupSchema])
def get_tag_groups(db: Session = Depends(get_db)):
    return TagService(db).get_tag_groups()


@router.post("/groups", response_model=TagGroupSchema, status_code=201)
def create_tag_group(group: TagGroupCreate, db: Session = Depends(get_db)):
    return TagService(db).create_tag_group(group)


@router.put("/groups/{group_id}", response_model=TagGroupSchema)
def update_tag_group(group_id: str, group: TagGroupUpdate, db: Session = Depends(get_db)):
    return TagService(db).update_tag_group(group_id, group)


@router.delete("/groups/{group_id}", status_code=204)
def delete_tag_group(group_id: str, db: Session = Depends(get_db)):
    """Delete a group; its tags are kept and become ungrouped."""
    TagService(db).delete_tag_group(group_id)


@router.get("/{tag_id}", response_model=TagSchema)
def get_tag(tag_id: str, db: Session = Depends(get_db)):
    return TagRepository(db).get_tag_by_id(tag_id)


@router.get("/{tag_id}/items", response_model=List[ItemSchema])
def get_tag_items(tag_id: str, db: Session = Depends(get_db)):
    repo = TagRepository(db)
    repo.get_tag_by_id(tag_id)
    return repo.get_items_for_tag(tag_id)


@router.put("/{tag_id}", response_model=TagSchema)
def update_tag(tag_id: str, tag: TagUpdate, db: Session = Depends(get_db)):
    return TagService(db).update_tag(tag_id, tag)


@router.delete("/{tag_id}", status_code=204)
def delete_tag(tag_id: str, db: Session = Depends(get_db)):
    TagService(db).delete_tag(tag_id)
