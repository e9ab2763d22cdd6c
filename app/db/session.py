import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import settings
from app.core.errors import StoreFailed

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    args: dict = {"connect_timeout": 30}
    if settings.DATABASE_SSL and url.startswith("postgres"):
        args["sslmode"] = "require"
    return args


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs) -> Engine:
    """Create the SQLAlchemy engine for ``url`` with the pool settings applied."""
    options = {
        "connect_args": _connect_args(url),
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW
    options.update(kwargs)

    new_engine = create_engine(url, **options)
    if new_engine.dialect.name == "sqlite":
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


# Create the SQLAlchemy engine, None when no database is configured
engine: Optional[Engine] = (
    build_engine(settings.DATABASE_URL) if settings.DATABASE_URL else None
)

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_engine() -> Optional[Engine]:
    return engine


# Dependency that can be used in routes to get the session
def get_db() -> Generator[Session, None, None]:
    if engine is None:
        raise StoreFailed("DATABASE_URL is not configured")
    db = SessionLocal()  # generate a new SessionLocal
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error("database error: %s", e)
        db.rollback()
        raise StoreFailed(str(e)) from e
    finally:
        db.close()


def get_optional_db() -> Generator[Optional[Session], None, None]:
    """Like get_db, but yields None instead of failing when no database is set."""
    if engine is None:
        yield None
        return
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ping_database(db_engine: Optional[Engine]) -> bool:
    """Run a trivial query; any failure is reported as False, never raised."""
    if db_engine is None:
        return False
    try:
        with db_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("database probe failed: %s", e)
        return False
