"""
Module: billing_kernel.db.engine
Responsibility: Process-wide SQLAlchemy engine and session factory for the
    sweep script and other long-running callers.
Architecture position: Kernel > DB.  Imports db/base.py; create_tables()
    additionally imports billing_kernel.models.

Library code never reaches for the global engine: services receive a store,
and SqlDocumentStore receives a session.  Only entry points (scripts) call
init_engine_from_url().

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED; document writes rely on version
      checks and sequence counters on row locks, not on isolation level.
    - An in-memory SQLite URL shares one connection, so every session sees
      the same database.

Failure modes:
    - RuntimeError from get_engine()/get_session() before
      init_engine_from_url().
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from billing_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def init_engine_from_url(database_url: str, *, echo: bool = False, pool_size: int = 5) -> Engine:
    """Create the engine for ``database_url``, replacing any previous one."""
    global _engine, _sessions
    reset_engine()

    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if database_url in _IN_MEMORY_SQLITE:
            options["poolclass"] = StaticPool
    else:
        options = {
            "pool_size": pool_size,
            "pool_pre_ping": True,
            "isolation_level": "READ COMMITTED",
        }

    _engine = create_engine(database_url, echo=echo, **options)
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _sessions is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session that commits on success and rolls back on any exception."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create ``documents`` and ``sequence_counters`` if they do not exist."""
    import billing_kernel.models  # noqa: F401  registers the ORM tables
    from billing_kernel.db.base import Base

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any."""
    global _engine, _sessions
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None


atexit.register(reset_engine)
