"""
Database Session Management

Engine construction, session factories and transactional session scopes.
PostgreSQL is the production backend; SQLite URLs are accepted for local
runs and tests.
"""
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, event, exc, pool, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.mls_search.utils.logger import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[], Session]


def build_engine(database_url: str, **overrides) -> Engine:
    """
    Create an engine for a database URL.

    PostgreSQL engines get the pool sizing from settings. SQLite engines are
    shareable across threads, and in-memory SQLite uses a single static
    connection so every session sees the same database.

    Args:
        database_url: SQLAlchemy database URL
        **overrides: Extra create_engine keyword arguments

    Returns:
        Engine
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        options = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = pool.StaticPool
    else:
        options = {
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_timeout": settings.database_pool_timeout,
            "pool_recycle": settings.database_pool_recycle,
            "pool_pre_ping": True,  # Verify connections before using
        }

    options["echo"] = settings.database_echo
    options.update(overrides)

    new_engine = create_engine(url, **options)
    event.listen(new_engine, "connect", _log_connect)
    logger.debug("database_engine_created", backend=url.get_backend_name())
    return new_engine


def build_session_factory(bind: Engine) -> sessionmaker:
    """Session factory with the project's session defaults."""
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False
    )


def _log_connect(dbapi_conn, connection_record):
    logger.debug("database_connection_established")


@event.listens_for(pool.Pool, "invalidate")
def receive_invalidate(dbapi_conn, connection_record, exception):
    """
    Event listener for connection invalidation.

    Logs when a connection is marked as invalid and removed from pool.
    """
    logger.warning(
        "database_connection_invalidated",
        exception=str(exception) if exception else None
    )


engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)


@contextmanager
def get_db_session(
    session_factory: Optional[SessionFactory] = None,
) -> Generator[Session, None, None]:
    """
    Transactional session scope: commit on success, roll back on error.

    Usage:
        with get_db_session() as session:
            detail = session.get(ListingDetail, listing_id)

    Args:
        session_factory: Factory to open the session with (defaults to SessionLocal)

    Yields:
        Database session

    Raises:
        Exception: Re-raises any exception after rollback
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    finally:
        session.close()


def health_check(session: Session) -> bool:
    """
    Check database connection health.

    Args:
        session: Database session

    Returns:
        True if database is accessible, False otherwise
    """
    try:
        session.execute(text("SELECT 1"))
        return True
    except exc.SQLAlchemyError as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        return False


def close_connections():
    """
    Dispose of the engine's pooled connections.

    Should be called on application shutdown.
    """
    logger.info("closing_database_connections")
    engine.dispose()
    logger.info("database_connections_closed")
