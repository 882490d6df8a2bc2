"""Tests for the clipboard service: manual items, use, trash and AI tags."""

import pytest
from unittest.mock import AsyncMock, Mock

from app.core.exceptions import ExternalCollaboratorError, NotFoundError, ValidationError
from app.models.tag import AI_GROUP_ID
from app.repositories.item_repository import ItemRepository
from app.schemas.item import ItemCreate, ItemUpdate
from app.services.clipboard_service import ClipboardService, repair_text
from app.services.tag_service import TagService


def make_tagger(tags=None, error=None):
    tagger = Mock()
    if error is not None:
        tagger.generate_tags = AsyncMock(side_effect=error)
    else:
        tagger.generate_tags = AsyncMock(return_value=tags or [])
    return lambda: tagger


@pytest.mark.unit
class TestRepairText:
    def test_valid_text_untouched(self):
        assert repair_text("héllo wörld") == "héllo wörld"

    def test_lone_surrogate_replaced(self):
        assert repair_text("a\ud800b") == "a?b"


@pytest.mark.unit
class TestManualItems:
    """Test create/update through the service."""

    def test_create_classifies(self, db_session, capture_settings):
        item = ClipboardService(db_session, capture_settings).create_item(
            ItemCreate(content="someone@example.com")
        )

        assert item.category == "email"
        assert item.title == "someone@example.com"
        assert item.use_count == 0

    def test_create_rejects_blank(self, db_session, capture_settings):
        # Skip schema validation to reach the service check
        with pytest.raises(ValidationError):
            ClipboardService(db_session, capture_settings).create_item(
                ItemCreate.model_construct(content="   ")
            )

    def test_create_with_auto_categorize_off(self, db_session, capture_settings):
        capture_settings.auto_categorize = False
        capture_settings.default_category = "snippets"

        item = ClipboardService(db_session, capture_settings).create_item(
            ItemCreate(content="https://example.com")
        )

        assert item.category == "snippets"

    def test_content_update_regenerates_title(self, db_session, capture_settings, test_item):
        updated = ClipboardService(db_session, capture_settings).update_item(
            test_item.id, ItemUpdate(content="brand new content")
        )

        assert updated.content == "brand new content"
        assert updated.title == "brand new content"

    def test_explicit_title_kept(self, db_session, capture_settings, test_item):
        updated = ClipboardService(db_session, capture_settings).update_item(
            test_item.id, ItemUpdate(content="brand new content", title="Mine")
        )

        assert updated.title == "Mine"

    def test_update_rejects_blank_content(self, db_session, capture_settings, test_item):
        with pytest.raises(ValidationError):
            ClipboardService(db_session, capture_settings).update_item(
                test_item.id, ItemUpdate(content="")
            )

    def test_update_unknown_item(self, db_session, capture_settings):
        with pytest.raises(NotFoundError):
            ClipboardService(db_session, capture_settings).update_item(
                "missing", ItemUpdate(title="x")
            )


@pytest.mark.unit
class TestUseItem:
    """Test copying an item back to the clipboard."""

    def test_writes_clipboard_and_counts(self, db_session, capture_settings, test_item):
        writer = Mock()
        service = ClipboardService(db_session, capture_settings, writer=writer)

        service.use_item(test_item.id)
        used = service.use_item(test_item.id)

        writer.assert_called_with("https://example.com/docs")
        assert used.use_count == 2

    def test_writer_failure_still_counts(self, db_session, capture_settings, test_item):
        writer = Mock(side_effect=ExternalCollaboratorError("no clipboard"))
        service = ClipboardService(db_session, capture_settings, writer=writer)

        used = service.use_item(test_item.id)

        assert used.use_count == 1

    def test_unknown_item(self, db_session, capture_settings):
        writer = Mock()
        with pytest.raises(NotFoundError):
            ClipboardService(db_session, capture_settings, writer=writer).use_item("missing")
        writer.assert_not_called()


@pytest.mark.unit
class TestEmptyTrash:
    def test_returns_removed_count(self, db_session, capture_settings, item_factory):
        repo = ItemRepository(db_session)
        for content in ["one", "two"]:
            repo.soft_delete(item_factory(content).id)
        item_factory("kept")

        removed = ClipboardService(db_session, capture_settings).empty_trash()

        assert removed == 2
        assert repo.get_trash() == []
        assert [i.content for i in repo.list()] == ["kept"]


@pytest.mark.unit
class TestGenerateTags:
    """Test AI tag generation with a stubbed tagger."""

    @pytest.mark.asyncio
    async def test_attaches_new_tags_in_ai_group(self, db_session, capture_settings, test_item):
        service = ClipboardService(
            db_session, capture_settings, tagger_factory=make_tagger(["docs", "web", "reference"])
        )

        new_names = await service.generate_tags_for_item(test_item.id)

        assert new_names == ["docs", "web", "reference"]
        tags = TagService(db_session).get_tags_for_item(test_item.id)
        assert [t.name for t in tags] == ["docs", "reference", "web"]
        assert all(t.group_id == AI_GROUP_ID for t in tags)

    @pytest.mark.asyncio
    async def test_returns_only_new_names(self, db_session, capture_settings, test_item):
        TagService(db_session).add_tags_to_item(test_item.id, ["docs"])
        service = ClipboardService(
            db_session, capture_settings, tagger_factory=make_tagger(["docs", "web"])
        )

        new_names = await service.generate_tags_for_item(test_item.id)

        assert new_names == ["web"]
        names = [t.name for t in TagService(db_session).get_tags_for_item(test_item.id)]
        assert names == ["docs", "web"]

    @pytest.mark.asyncio
    async def test_invalid_suggestions_dropped(self, db_session, capture_settings, test_item):
        service = ClipboardService(
            db_session, capture_settings, tagger_factory=make_tagger(["ok", "not/ok", "x" * 60])
        )

        assert await service.generate_tags_for_item(test_item.id) == ["ok"]

    @pytest.mark.asyncio
    async def test_model_failure_degrades_to_empty(self, db_session, capture_settings, test_item):
        service = ClipboardService(
            db_session,
            capture_settings,
            tagger_factory=make_tagger(error=ExternalCollaboratorError("timeout")),
        )

        assert await service.generate_tags_for_item(test_item.id) == []
        assert TagService(db_session).get_tags_for_item(test_item.id) == []

    @pytest.mark.asyncio
    async def test_unconfigured_model_degrades_to_empty(
        self, db_session, capture_settings, test_item
    ):
        def unconfigured():
            raise ExternalCollaboratorError("No API key configured")

        service = ClipboardService(db_session, capture_settings, tagger_factory=unconfigured)

        assert await service.generate_tags_for_item(test_item.id) == []

    @pytest.mark.asyncio
    async def test_unknown_item(self, db_session, capture_settings):
        service = ClipboardService(db_session, capture_settings, tagger_factory=make_tagger())

        with pytest.raises(NotFoundError):
            await service.generate_tags_for_item("missing")


@pytest.mark.unit
class TestGenerateTitle:
    """Test AI titles with a stubbed tagger."""

    @pytest.mark.asyncio
    async def test_title_replaced(self, db_session, capture_settings, test_item):
        tagger = Mock()
        tagger.generate_title = AsyncMock(return_value="Example docs")
        service = ClipboardService(db_session, capture_settings, tagger_factory=lambda: tagger)

        item = await service.generate_title_for_item(test_item.id)

        assert item.title == "Example docs"
        tagger.generate_title.assert_awaited_once_with("https://example.com/docs")

    @pytest.mark.asyncio
    async def test_failure_keeps_title(self, db_session, capture_settings, test_item):
        tagger = Mock()
        tagger.generate_title = AsyncMock(side_effect=ExternalCollaboratorError("timeout"))
        service = ClipboardService(db_session, capture_settings, tagger_factory=lambda: tagger)

        item = await service.generate_title_for_item(test_item.id)

        assert item.title == "https://example.com/docs"
