from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from music_library.core.config import settings

# Bound by init_engine() at startup; tests bind their own engine.
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

_engine: Engine | None = None


def init_engine(url: str | None = None, **kwargs) -> Engine:
    global _engine
    url = url or settings.require_database()
    _engine = create_engine(url, pool_pre_ping=True, **kwargs)
    SessionLocal.configure(bind=_engine)
    return _engine


def get_engine() -> Engine | None:
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
