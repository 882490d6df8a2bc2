from sqlalchemy.orm import Session, sessionmaker
from typing import Callable, List, Optional
import logging

from app.core.exceptions import ExternalCollaboratorError, ValidationError
from app.core.logging_config import log_event
from app.models.item import Item
from app.models.tag import AI_GROUP_ID
from app.repositories.base import ItemStore
from app.repositories.item_repository import ItemRepository
from app.repositories.tag_repository import validate_tag_name
from app.schemas.item import ItemCreate, ItemUpdate
from app.schemas.settings import CaptureSettings
from app.services.classifier import ItemBuilder, generate_title
from app.services.clipboard_io import write_clipboard
from app.services.llm_tagger import LLMTagger
from app.services.tag_service import TagService

logger = logging.getLogger(__name__)


def repair_text(content: str) -> str:
    """Replace code points that cannot be stored as UTF-8 (lone surrogates)."""
    try:
        content.encode("utf-8")
        return content
    except UnicodeEncodeError:
        return content.encode("utf-8", errors="replace").decode("utf-8")


class ClipboardService:
    def __init__(
        self,
        db: Session,
        capture_settings: CaptureSettings,
        tagger_factory: Callable[[], LLMTagger] = LLMTagger,
        writer: Callable[[str], None] = write_clipboard,
    ):
        self.db = db
        self.settings = capture_settings
        self.items: ItemStore = ItemRepository(db)
        self.tags = TagService(db)
        self.tagger_factory = tagger_factory
        self.writer = writer

    def process_content(self, content: str) -> Optional[Item]:
        """Persist a captured value unless an active item already holds it."""
        content = repair_text(content)
        if not content:
            return None

        if self.items.is_duplicate_content(content):
            log_event("capture.skipped", "Skipped duplicate content", reason="duplicate")
            return None

        item = self.items.create(ItemBuilder(self.settings).build(content))
        log_event(
            "capture.accepted",
            f"Captured clipboard item {item.id}",
            item_id=item.id,
            category=item.category,
            length=len(content),
        )
        return item

    def create_item(self, data: ItemCreate) -> Item:
        content = repair_text(data.content)
        if not content.strip():
            raise ValidationError("Content cannot be empty")
        return self.items.create(ItemBuilder(self.settings).build(content))

    def update_item(self, item_id: str, data: ItemUpdate) -> Item:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "content" in changes:
            changes["content"] = repair_text(changes["content"])
            if not changes["content"].strip():
                raise ValidationError("Content cannot be empty")
            if "title" not in changes:
                changes["title"] = generate_title(changes["content"])
        return self.items.update(item_id, **changes)

    def use_item(self, item_id: str) -> Item:
        """Put the item back on the clipboard and count the use."""
        item = self.items.get_by_id(item_id)
        try:
            self.writer(item.content)
        except ExternalCollaboratorError as e:
            logger.warning(f"Clipboard write failed for item {item_id}: {e.message}")
        return self.items.use_item(item_id)

    def empty_trash(self) -> int:
        removed = self.items.empty_trash()
        log_event("trash.emptied", f"Emptied trash ({removed} items)", removed=removed)
        return removed

    async def generate_tags_for_item(self, item_id: str) -> List[str]:
        """Ask the model for tags and attach the new ones. Returns the new names."""
        item = self.items.get_by_id(item_id)
        existing = [tag.name for tag in item.tags]
        content = item.content

        try:
            suggested = await self.tagger_factory().generate_tags(content)
        except ExternalCollaboratorError as e:
            logger.warning(f"AI tag generation failed for item {item_id}: {e.message}")
            return []

        new_names = []
        for name in suggested:
            try:
                name = validate_tag_name(name)
            except ValidationError:
                continue
            if name not in existing and name not in new_names:
                new_names.append(name)

        if new_names:
            self.tags.update_item_tags(item_id, existing + new_names, AI_GROUP_ID)
        logger.info(f"Generated {len(new_names)} new tags for item {item_id}")
        return new_names

    async def generate_title_for_item(self, item_id: str) -> Item:
        """Replace the item's title with a model-written one; keeps the old title on failure."""
        item = self.items.get_by_id(item_id)
        content = item.content

        try:
            title = await self.tagger_factory().generate_title(content)
        except ExternalCollaboratorError as e:
            logger.warning(f"AI title generation failed for item {item_id}: {e.message}")
            return item

        return self.items.update(item_id, title=title)


class CaptureProcessor:
    """Content processor for the capture loop; one session per captured value."""

    def __init__(self, session_factory: sessionmaker, settings_provider: Callable[[], CaptureSettings]):
        self.session_factory = session_factory
        self.settings_provider = settings_provider

    def process_content(self, content: str) -> None:
        db = self.session_factory()
        try:
            ClipboardService(db, self.settings_provider()).process_content(content)
        finally:
            db.close()
