"""Engine and session wiring for the conversations store."""

from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from escalator.config.settings import get_settings
from escalator.database.models import Base


def build_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine for ``database_url``.

    SQLite connections may be used from any thread. Server databases ping
    connections on checkout. Extra keyword arguments (e.g. ``poolclass``)
    go straight to ``create_engine``.
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, echo=echo, **kwargs)


_settings = get_settings()
engine = build_engine(_settings.database_url, echo=_settings.debug)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(bind: Engine | None = None) -> None:
    """Create the conversations table and its index if missing."""
    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
