from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from quizcycle.config import get_settings
from quizcycle.db.models import Base

_SessionLocal: sessionmaker[Session] | None = None


def create_engine_for(url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite connections are shared across worker threads."""
    connect_args = {"check_same_thread": False, "timeout": 30} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, pool_pre_ping=True, connect_args=connect_args)


def create_session_factory(url: str, echo: bool = False) -> sessionmaker[Session]:
    """Build a session factory bound to a fresh engine for ``url``."""
    engine = create_engine_for(url, echo=echo)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the process-wide session factory from settings."""
    global _SessionLocal
    if _SessionLocal is None:
        settings = get_settings()
        _SessionLocal = create_session_factory(
            settings.database_url, echo=settings.log_level == "DEBUG"
        )
    return _SessionLocal


def init_db(session_factory: sessionmaker[Session] | None = None) -> None:
    """Initialize database tables."""
    factory = session_factory or get_session_factory()
    Base.metadata.create_all(bind=factory.kw["bind"])
    logger.info("Database tables initialized")


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def unit_of_work(
    db: Session | None,
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Join the caller's transaction when one is passed, otherwise open a new one.

    Lets tracker methods run standalone or as part of a larger unit of work
    (one answer submission commits every tracker update together).
    """
    if db is not None:
        yield db
        return
    with session_scope(session_factory) as session:
        yield session
