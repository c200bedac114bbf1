from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from toolhub.app.db.engine import get_engine


def get_session_factory() -> sessionmaker:
    """Get the SessionLocal, creating it if necessary."""
    if not hasattr(get_session_factory, "_cache"):
        get_session_factory._cache = {}

    url = get_engine().url  # Use engine URL as key
    if url not in get_session_factory._cache:
        get_session_factory._cache[url] = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=get_engine()
        )
    return get_session_factory._cache[url]


def reset_sessionmaker_for_tests():
    """Clear sessionmaker cache (for tests only)."""
    if hasattr(get_session_factory, "_cache"):
        get_session_factory._cache.clear()


# Dependency for FastAPI
def get_db() -> Generator[Session, None, None]:
    """Dependency to get a database session."""
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
