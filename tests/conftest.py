"""
Shared pytest fixtures.

- In-memory SQLite database (foreign keys on) with every table created
- User factories and bearer headers
- A TestClient whose get_db dependency uses the test database
- An httpx MockTransport hook for the Spotify client
"""

import os

# Settings are read at import time; set them before importing the package.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SPOTIFY_CLIENT_ID", "test-client-id")
os.environ.setdefault("SPOTIFY_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("APP_BASE_URL", "http://testserver")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from music_library.api.deps import get_db
from music_library.clients import spotify
from music_library.db import models as m
from music_library.main import app
from music_library.services import events


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    m.Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def make_user(db):
    def _make(username: str, *, display_name: str | None = None, is_public: bool = True, spotify_id: str | None = None):
        user = m.User(
            spotify_id=spotify_id or f"sp_{username}",
            username=username,
            display_name=display_name or username.title(),
            is_public=is_public,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def make_shelf(db):
    def _make(owner, name: str = "Favorites", sort_order: int = 0):
        shelf = m.Shelf(user_id=owner.id, name=name, sort_order=sort_order)
        db.add(shelf)
        db.commit()
        db.refresh(shelf)
        return shelf
    return _make


@pytest.fixture
def make_item(db):
    def _make(shelf, title: str = "Song", position: int = 0, **fields):
        item = m.ShelfItem(
            shelf_id=shelf.id,
            spotify_type=fields.pop("spotify_type", "track"),
            spotify_id=fields.pop("spotify_id", f"sp-{title.lower().replace(' ', '-')}"),
            title=title,
            artist=fields.pop("artist", "Artist"),
            position=position,
            **fields,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item
    return _make


# ============================================================================
# App
# ============================================================================

@pytest.fixture
def client(session_factory):
    def _get_test_db():
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    # No context manager: the lifespan (engine binding) is not needed here.
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_event_bus():
    yield
    events.bus.clear()


# ============================================================================
# Spotify
# ============================================================================

@pytest.fixture
def mock_spotify(monkeypatch):
    """Install a request handler behind the Spotify client's httpx transport."""
    def install(handler):
        monkeypatch.setattr(spotify, "_transport", httpx.MockTransport(handler))
    return install
