"""
Pytest configuration and fixtures for ClipDeck tests.
"""

import pytest
from datetime import timedelta
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core.database import Base, get_db, init_db, now_utc
from app.core.exceptions import register_exception_handlers
from app.models.item import Item
from app.models.tag import Tag
from app.schemas.settings import CaptureSettings
from app.services.classifier import ItemBuilder


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with tables and system groups."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def capture_settings() -> CaptureSettings:
    return CaptureSettings(
        ignore_passwords=True,
        auto_capture=False,
        auto_categorize=True,
        default_category="text",
    )


@pytest.fixture(scope="function")
def test_app(db_session, capture_settings):
    """Create a FastAPI test app without lifespan events."""
    from fastapi import FastAPI
    from app.api.endpoints import capture, items, search, statistics, tags

    # Create app without lifespan so no real clipboard polling starts
    test_app = FastAPI(title="ClipDeck - Test", version="1.0.0")
    register_exception_handlers(test_app)

    test_app.include_router(items.router, prefix="/api/items", tags=["items"])
    test_app.include_router(search.router, prefix="/api/search", tags=["search"])
    test_app.include_router(tags.router, prefix="/api/tags", tags=["tags"])
    test_app.include_router(
        statistics.router, prefix="/api/statistics", tags=["statistics"]
    )
    test_app.include_router(capture.router, prefix="/api/capture", tags=["capture"])

    @test_app.get("/health")
    def health():
        return {"status": "ok"}

    test_app.state.capture_settings = capture_settings

    # Override database dependency
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture(scope="function")
def client(test_app) -> TestClient:
    """Create a test client without entering context manager."""
    return TestClient(test_app, raise_server_exceptions=False)


def make_item(db_session, content: str, minutes_ago: int = 0, **fields) -> Item:
    """Persist an item built the way capture builds it, with a fixed age."""
    item = ItemBuilder(CaptureSettings()).build(content)
    created = now_utc() - timedelta(minutes=minutes_ago)
    item.created_at = created
    item.updated_at = created
    item.last_used_at = created
    for field, value in fields.items():
        setattr(item, field, value)
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def item_factory(db_session):
    def factory(content: str, minutes_ago: int = 0, **fields) -> Item:
        return make_item(db_session, content, minutes_ago, **fields)

    return factory


@pytest.fixture
def test_item(item_factory) -> Item:
    return item_factory("https://example.com/docs")


@pytest.fixture
def test_tag(db_session) -> Tag:
    tag = Tag(name="work", description="Work related", color="#ff0000")
    db_session.add(tag)
    db_session.commit()
    db_session.refresh(tag)
    return tag


@pytest.fixture
def tagged_items(db_session, item_factory):
    """
    Three items with known tag sets:

    - first: {A, B}
    - second: {A}
    - third: {C}
    """
    from app.services.tag_service import TagService

    service = TagService(db_session)
    first = item_factory("first item", minutes_ago=3)
    second = item_factory("second item", minutes_ago=2)
    third = item_factory("third item", minutes_ago=1)
    service.update_item_tags(first.id, ["A", "B"])
    service.update_item_tags(second.id, ["A"])
    service.update_item_tags(third.id, ["C"])
    return first, second, third
