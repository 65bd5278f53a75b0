"""Database engine, session factory, and base model.

Pool budget: request handlers share ``db_pool_size`` connections plus
``db_max_overflow`` on bursts. The approval and digest pollers run their
ticks on worker threads and each holds at most one session per tick, so
the pool is sized with ``POLLER_SESSIONS`` extra connections for them.
"""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ..config import settings

# Approval poller and digest poller
POLLER_SESSIONS = 2


def engine_options(url: str) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to the URL's dialect."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        # Sessions are used from poller worker threads as well as the event loop
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            # An in-memory database only exists inside its one connection
            options["poolclass"] = StaticPool
        return options

    return {
        "poolclass": QueuePool,
        "pool_size": settings.db_pool_size + POLLER_SESSIONS,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.effective_database_url, **engine_options(settings.effective_database_url))

SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
