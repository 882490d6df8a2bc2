from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from app.api.dependencies import get_clipboard_service
from app.core.database import get_db
from app.repositories.item_repository import ItemRepository
from app.schemas.item import BatchDeleteRequest, Item as ItemSchema, ItemCreate, ItemUpdate
from app.schemas.tag import ItemTagsUpdate, Tag as TagSchema, TagNames
from app.services.clipboard_service import ClipboardService
from app.services.tag_service import TagService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[ItemSchema])
def list_items(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Active items, newest first."""
    return ItemRepository(db).list(limit=limit, offset=offset)


@router.get("/trash", response_model=List[ItemSchema])
def list_trash(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Soft-deleted items, most recently deleted first."""
    return ItemRepository(db).get_trash(limit=limit, offset=offset)


@router.delete("/trash")
def empty_trash(service: ClipboardService = Depends(get_clipboard_service)):
    """Permanently delete every item in the trash."""
    return {"deleted": service.empty_trash()}


@router.post("/batch-delete")
def batch_delete(request: BatchDeleteRequest, db: Session = Depends(get_db)):
    """Permanently delete the given items; unknown ids are ignored."""
    return {"deleted": ItemRepository(db).batch_permanent_delete(request.ids)}


@router.post("/", response_model=ItemSchema, status_code=201)
def create_item(
    item: ItemCreate, service: ClipboardService = Depends(get_clipboard_service)
):
    """
    Save content manually.

    Unlike capture, manual creation does not suppress duplicates.
    """
    return service.create_item(item)


@router.get("/{item_id}", response_model=ItemSchema)
def get_item(item_id: str, db: Session = Depends(get_db)):
    return ItemRepository(db).get_by_id(item_id)


@router.put("/{item_id}", response_model=ItemSchema)
def update_item(
    item_id: str,
    item: ItemUpdate,
    service: ClipboardService = Depends(get_clipboard_service),
):
    return service.update_item(item_id, item)


@router.delete("/{item_id}", response_model=ItemSchema)
def delete_item(item_id: str, db: Session = Depends(get_db)):
    """Move an item to the trash."""
    return ItemRepository(db).soft_delete(item_id)


@router.post("/{item_id}/restore", response_model=ItemSchema)
def restore_item(item_id: str, db: Session = Depends(get_db)):
    return ItemRepository(db).restore(item_id)


@router.delete("/{item_id}/permanent", status_code=204)
def permanently_delete_item(item_id: str, db: Session = Depends(get_db)):
    ItemRepository(db).permanent_delete(item_id)


@router.post("/{item_id}/use", response_model=ItemSchema)
def use_item(item_id: str, service: ClipboardService = Depends(get_clipboard_service)):
    """Copy the item back to the clipboard and bump its use count."""
    return service.use_item(item_id)


@router.get("/{item_id}/tags", response_model=List[TagSchema])
def get_item_tags(item_id: str, db: Session = Depends(get_db)):
    ItemRepository(db).get_by_id(item_id)
    return TagService(db).get_tags_for_item(item_id)


@router.put("/{item_id}/tags", response_model=List[TagSchema])
def replace_item_tags(item_id: str, request: ItemTagsUpdate, db: Session = Depends(get_db)):
    """Replace the item's tags; missing tags are created in the source group."""
    return TagService(db).update_item_tags(item_id, request.tag_names, request.source)


@router.post("/{item_id}/tags", response_model=List[TagSchema])
def add_item_tags(item_id: str, request: TagNames, db: Session = Depends(get_db)):
    ItemRepository(db).get_by_id(item_id)
    return TagService(db).add_tags_to_item(item_id, request.tag_names)


@router.post("/{item_id}/tags/remove", response_model=List[TagSchema])
def remove_item_tags(item_id: str, request: TagNames, db: Session = Depends(get_db)):
    ItemRepository(db).get_by_id(item_id)
    return TagService(db).remove_tags_from_item(item_id, request.tag_names)


@router.post("/{item_id}/tags/generate")
async def generate_item_tags(
    item_id: str, service: ClipboardService = Depends(get_clipboard_service)
):
    """Ask the language model for tags; returns only the newly attached names."""
    tags = await service.generate_tags_for_item(item_id)
    return {"tags": tags}


@router.post("/{item_id}/title/generate", response_model=ItemSchema)
async def generate_item_title(
    item_id: str, service: ClipboardService = Depends(get_clipboard_service)
):
    """Ask the language model for a short title; the old title stays if it is unavailable."""
    return await service.generate_title_for_item(item_id)
