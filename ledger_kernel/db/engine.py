"""
Module: ledger_kernel.db.engine
Responsibility: the process-wide SQLAlchemy engine and session factory, the
    ``session_scope()`` unit of work, and schema setup for the ledger tables.
Architecture position: Kernel > DB.  Imports models and the immutability
    listeners lazily, inside the functions that need them.

Invariants enforced:
    - PostgreSQL connections run at READ COMMITTED behind a pre-pinging
      QueuePool; the entry status compare-and-set does not need more.
    - SQLite (tests, local runs) uses one shared connection through
      StaticPool so an in-memory database lives as long as the engine.
    - Only ``session_scope()`` commits.  Kernel and ledger services flush.

Failure modes:
    - RuntimeError from get_engine()/get_session() before an engine exists.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _engine_options(database_url: str, pool_size: int, max_overflow: int) -> dict[str, Any]:
    if make_url(database_url).get_backend_name() == "sqlite":
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    Calling again replaces both; use reset_engine() to dispose the old
    engine first.  Pool sizes apply to PostgreSQL only.
    """
    global _engine, _SessionFactory

    _engine = create_engine(
        database_url,
        echo=echo,
        **_engine_options(database_url, pool_size, max_overflow),
    )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "pool_size": pool_size, "echo": echo},
    )
    return _engine


def init_ledger_database(database_url: str, echo: bool = False) -> Engine:
    """Engine, tables and append-only listeners in one call, for startup and tests."""
    from ledger_kernel.db.immutability import register_immutability_listeners

    engine = init_engine_from_url(database_url, echo=echo)
    create_tables()
    register_immutability_listeners()
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """A new session; the caller closes it."""
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit when the block succeeds, roll back when it raises.

        with session_scope() as session:
            PaymentLedgerService(session).approve_entry(entry_id, manager)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401
    import ledger_kernel.services.sequence_service  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every ledger table.  Tests only."""
    from ledger_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
