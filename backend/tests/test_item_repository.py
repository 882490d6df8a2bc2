"""Tests for the item store."""

import pytest
from sqlalchemy import func, select

from app.core.exceptions import NotFoundError, ValidationError
from app.models.item import Item, item_tags
from app.repositories.item_repository import ItemRepository
from app.schemas.settings import CaptureSettings
from app.services.classifier import ItemBuilder
from app.services.tag_service import TagService


def association_count(db_session, item_id=None) -> int:
    query = select(func.count()).select_from(item_tags)
    if item_id is not None:
        query = query.where(item_tags.c.item_id == item_id)
    return db_session.scalar(query)


@pytest.mark.unit
class TestItemCrud:
    """Test create, read and update."""

    def test_create_and_get(self, db_session):
        repo = ItemRepository(db_session)
        built = ItemBuilder(CaptureSettings()).build("hello world")

        created = repo.create(built)
        fetched = repo.get_by_id(created.id)

        assert fetched.content == "hello world"
        assert fetched.category == "text"
        assert fetched.tags == []
        assert fetched.use_count == 0

    def test_get_unknown_raises(self, db_session):
        with pytest.raises(NotFoundError):
            ItemRepository(db_session).get_by_id("missing")

    def test_list_excludes_deleted_and_orders_newest_first(self, db_session, item_factory):
        old = item_factory("old", minutes_ago=10)
        new = item_factory("new", minutes_ago=1)
        gone = item_factory("gone", minutes_ago=5)
        repo = ItemRepository(db_session)
        repo.soft_delete(gone.id)

        ids = [item.id for item in repo.list()]

        assert ids == [new.id, old.id]

    def test_list_paginates(self, db_session, item_factory):
        for i in range(5):
            item_factory(f"item {i}", minutes_ago=i)

        page = ItemRepository(db_session).list(limit=2, offset=2)

        assert [item.content for item in page] == ["item 2", "item 3"]

    def test_update_fields(self, db_session, test_item):
        repo = ItemRepository(db_session)
        before = test_item.updated_at

        updated = repo.update(test_item.id, title="Docs", is_favorite=True)

        assert updated.title == "Docs"
        assert updated.is_favorite is True
        assert updated.updated_at >= before

    def test_update_rejects_unknown_fields(self, db_session, test_item):
        with pytest.raises(ValidationError):
            ItemRepository(db_session).update(test_item.id, use_count=99)

    def test_update_is_deleted_keeps_pair_consistent(self, db_session, test_item):
        repo = ItemRepository(db_session)

        deleted = repo.update(test_item.id, is_deleted=True)
        assert deleted.deleted_at is not None

        restored = repo.update(test_item.id, is_deleted=False)
        assert restored.deleted_at is None


@pytest.mark.unit
class TestSoftDelete:
    """Test trash semantics."""

    def test_soft_delete_moves_to_trash(self, db_session, test_item):
        repo = ItemRepository(db_session)

        repo.soft_delete(test_item.id)

        assert repo.list() == []
        trash = repo.get_trash()
        assert [item.id for item in trash] == [test_item.id]
        assert trash[0].is_deleted is True
        assert trash[0].deleted_at is not None

    def test_soft_delete_is_idempotent(self, db_session, test_item):
        repo = ItemRepository(db_session)

        first = repo.soft_delete(test_item.id).deleted_at
        second = repo.soft_delete(test_item.id).deleted_at

        assert first == second

    def test_restore_round_trip(self, db_session, test_item):
        repo = ItemRepository(db_session)
        repo.soft_delete(test_item.id)

        restored = repo.restore(test_item.id)

        assert restored.is_deleted is False
        assert restored.deleted_at is None
        assert [item.id for item in repo.list()] == [test_item.id]

    def test_restore_active_item_is_noop(self, db_session, test_item):
        repo = ItemRepository(db_session)
        before = test_item.updated_at

        restored = repo.restore(test_item.id)

        assert restored.is_deleted is False
        assert restored.updated_at == before

    def test_unknown_ids_raise(self, db_session):
        repo = ItemRepository(db_session)
        with pytest.raises(NotFoundError):
            repo.soft_delete("missing")
        with pytest.raises(NotFoundError):
            repo.restore("missing")

    def test_trash_orders_by_deleted_at(self, db_session, item_factory):
        repo = ItemRepository(db_session)
        first = item_factory("first", minutes_ago=1)
        second = item_factory("second", minutes_ago=5)
        repo.soft_delete(first.id)
        repo.soft_delete(second.id)

        assert [item.id for item in repo.get_trash()] == [second.id, first.id]


@pytest.mark.unit
class TestPermanentDelete:
    """Test permanent deletion and association cleanup."""

    def test_permanent_delete_removes_associations(self, db_session, test_item):
        TagService(db_session).update_item_tags(test_item.id, ["a", "b"])
        assert association_count(db_session, test_item.id) == 2
        item_id = test_item.id

        ItemRepository(db_session).permanent_delete(item_id)

        assert db_session.get(Item, item_id) is None
        assert association_count(db_session, item_id) == 0

    def test_permanent_delete_keeps_tags(self, db_session, test_item):
        service = TagService(db_session)
        service.update_item_tags(test_item.id, ["keep"])

        ItemRepository(db_session).permanent_delete(test_item.id)

        assert service.repo.get_tag_by_name("keep") is not None

    def test_permanent_delete_unknown_raises(self, db_session):
        with pytest.raises(NotFoundError):
            ItemRepository(db_session).permanent_delete("missing")

    def test_batch_permanent_delete(self, db_session, item_factory):
        first = item_factory("first")
        second = item_factory("second")
        third = item_factory("third")
        TagService(db_session).update_item_tags(first.id, ["x"])
        keep_id = third.id

        deleted = ItemRepository(db_session).batch_permanent_delete(
            [first.id, second.id, "missing"]
        )

        assert deleted == 2
        assert association_count(db_session) == 0
        assert [item.id for item in ItemRepository(db_session).list()] == [keep_id]

    def test_batch_delete_empty_list(self, db_session):
        assert ItemRepository(db_session).batch_permanent_delete([]) == 0

    def test_empty_trash_only_removes_deleted(self, db_session, item_factory):
        repo = ItemRepository(db_session)
        active = item_factory("active")
        trashed = item_factory("trashed")
        TagService(db_session).update_item_tags(trashed.id, ["t"])
        active_id = active.id
        repo.soft_delete(trashed.id)

        assert repo.empty_trash() == 1
        assert repo.get_trash() == []
        assert [item.id for item in repo.list()] == [active_id]
        assert association_count(db_session) == 0

    def test_foreign_key_cascade(self, db_session, test_item):
        """Deleting the item row alone also drops its association rows."""
        TagService(db_session).update_item_tags(test_item.id, ["cascade"])
        item_id = test_item.id

        db_session.execute(Item.__table__.delete().where(Item.id == item_id))
        db_session.commit()

        assert association_count(db_session, item_id) == 0


@pytest.mark.unit
class TestUsageAndLookups:
    """Test use counting, duplicates and name listings."""

    def test_use_item_increments(self, db_session, test_item):
        repo = ItemRepository(db_session)
        before = test_item.last_used_at

        repo.use_item(test_item.id)
        used = repo.use_item(test_item.id)

        assert used.use_count == 2
        assert used.last_used_at >= before

    def test_use_unknown_item_raises(self, db_session):
        with pytest.raises(NotFoundError):
            ItemRepository(db_session).use_item("missing")

    def test_duplicate_only_counts_active_items(self, db_session, test_item):
        repo = ItemRepository(db_session)

        assert repo.is_duplicate_content(test_item.content)
        assert not repo.is_duplicate_content("something else")

        repo.soft_delete(test_item.id)
        assert not repo.is_duplicate_content(test_item.content)

    def test_categories_include_predefined_and_used(self, db_session, item_factory):
        item_factory("custom", category="snippets")
        deleted = item_factory("deleted", category="gone")
        ItemRepository(db_session).soft_delete(deleted.id)

        categories = ItemRepository(db_session).get_all_categories()

        assert "snippets" in categories
        assert "url" in categories
        assert "gone" not in categories
        assert categories == sorted(categories)

    def test_tag_names_only_from_active_items(self, db_session, item_factory):
        service = TagService(db_session)
        active = item_factory("active")
        trashed = item_factory("trashed")
        service.update_item_tags(active.id, ["zeta", "alpha"])
        service.update_item_tags(trashed.id, ["hidden"])
        ItemRepository(db_session).soft_delete(trashed.id)

        assert ItemRepository(db_session).get_all_tag_names() == ["alpha", "zeta"]
