from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from blog_api.core.logging import get_logger
from blog_api.core.settings import get_settings

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


# Global engine instance
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def _engine_kwargs() -> dict:
    settings = get_settings()
    kwargs: dict = {"echo": settings.debug, "pool_pre_ping": True}
    if settings.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        return kwargs

    kwargs["pool_size"] = settings.database_pool_size
    kwargs["max_overflow"] = settings.database_max_overflow
    if settings.database_statement_timeout_ms:
        # Bound every statement server-side so abandoned page fetches cannot run on.
        kwargs["connect_args"] = {
            "options": f"-c statement_timeout={settings.database_statement_timeout_ms}"
        }
    return kwargs


def init_db() -> None:
    """Initialize database engine and session factory."""
    global _engine, _SessionLocal

    if _engine is not None:
        return

    settings = get_settings()
    _engine = create_engine(str(settings.database_url), **_engine_kwargs())
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    @event.listens_for(_engine, "checkout")
    def log_checkout(dbapi_conn, connection_record, connection_proxy):
        logger.debug(f"Connection checked out from pool: {id(dbapi_conn)}")

    @event.listens_for(_engine, "checkin")
    def log_checkin(dbapi_conn, connection_record):
        logger.debug(f"Connection returned to pool: {id(dbapi_conn)}")

    logger.info("Database initialized successfully")


def create_tables() -> None:
    """Create the posts table and its indexes if they do not exist."""
    # Registers the models on Base.metadata
    from blog_api.models import schema  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables ensured")


def dispose_db() -> None:
    """Close every pooled connection and forget the engine."""
    global _engine, _SessionLocal

    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    _SessionLocal = None
    logger.info("Database connections closed")


def get_engine() -> Engine:
    """Get the database engine, initializing if necessary."""
    if _engine is None:
        init_db()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get the session factory, initializing if necessary."""
    if _SessionLocal is None:
        init_db()
    return _SessionLocal


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db() as db:
            post = db.get(Post, 1)
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is closed after the response."""
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
