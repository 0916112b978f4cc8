"""Test configuration and fixtures."""

import os
import sys
import tempfile
from datetime import datetime, timedelta

# Configure the app before anything imports settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="blog_api_logs_"))
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "0")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from blog_api.core.db import Base, get_db_session
from blog_api.main import create_app
from blog_api.models.schema import Post
from blog_api.repositories.post_repository import PostRepository

BASE_TIME = datetime(2025, 6, 19, 10, 0, 0)


def at(seconds: float) -> datetime:
    """BASE_TIME shifted by ``seconds``."""
    return BASE_TIME + timedelta(seconds=seconds)


@pytest.fixture
def test_db():
    """Create a test database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(test_db):
    """Create a test database session."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repo(db_session) -> PostRepository:
    return PostRepository(db_session)


@pytest.fixture
def make_post(db_session):
    """Insert a post; timestamps default to BASE_TIME."""

    def _make_post(
        *,
        id: int | None = None,
        title: str = "A post",
        content: str = "Some content",
        author: str = "alice",
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> Post:
        created = created_at or BASE_TIME
        post = Post(
            id=id,
            title=title,
            content=content,
            author=author,
            created_at=created,
            updated_at=updated_at or created,
        )
        db_session.add(post)
        db_session.commit()
        db_session.refresh(post)
        return post

    return _make_post


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app, db_session):
    """Create a test client with database override."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
