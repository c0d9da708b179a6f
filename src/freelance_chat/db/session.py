"""Engine, session factory and FastAPI session dependency."""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from freelance_chat.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for the users, jobs, applications and messages tables."""


# Models register themselves on Base.metadata at import time.
import freelance_chat.models  # noqa: E402,F401


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared between the threadpool that runs sync
    dependencies and the event loop that runs websocket handlers.
    """
    connect_args: dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, echo=echo, connect_args=connect_args)


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session; closed when the request or socket ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts: commit on success, roll back on error."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)
