from datetime import datetime, timezone
from typing import Generator
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from app.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def now_utc() -> datetime:
    """Current UTC time as a naive datetime (the format stored in every column)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def build_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # The capture loop writes from a scheduler thread
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    module = type(dbapi_connection).__module__
    if "sqlite" not in module:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """Create tables and seed the system tag groups."""
    # Register models on Base.metadata
    from app import models  # noqa: F401
    from app.models.tag import seed_system_groups

    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    session = Session(bind=bind)
    try:
        seed_system_groups(session)
    finally:
        session.close()
    logger.info("Database tables created")
