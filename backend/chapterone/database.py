from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from chapterone.core.config import settings
import logging
import os
import time
import warnings

logger = logging.getLogger(__name__)

logger.info("CHAPTERONE DATABASE_URL = %s", settings.get_masked_database_url())


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # SQLite connections are handed across FastAPI's threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}  # Verify connections before using them


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,  # Keep echo off - we'll log slow queries separately
    **_engine_kwargs(settings.DATABASE_URL),
)

# Add slow query logging (DEBUG mode only)
if settings.DEBUG:
    SLOW_QUERY_THRESHOLD_MS = 200.0

    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """Store query start time before execution."""
        context._query_start_time = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """Log slow queries after execution."""
        if hasattr(context, "_query_start_time"):
            elapsed_ms = (time.perf_counter() - context._query_start_time) * 1000
            if elapsed_ms >= SLOW_QUERY_THRESHOLD_MS:
                statement_first_line = statement.split("\n")[0].strip()[:100]
                logger.warning("SLOW_QUERY: %.2fms - %s", elapsed_ms, statement_first_line)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Dev convenience: ensure the books, threads and users tables exist.
    In production, prefer running Alembic migrations instead.

    WARNING: create_all() will NOT add missing columns to existing tables.
    It only creates tables that don't exist. Use Alembic migrations for schema changes.
    """
    alembic_versions_path = os.path.join(os.path.dirname(__file__), "..", "alembic", "versions")
    if not settings.DATABASE_URL.startswith("sqlite") and os.path.exists(alembic_versions_path) and os.listdir(alembic_versions_path):
        warnings.warn(
            "Alembic migrations detected. Skipping Base.metadata.create_all(). "
            "Use 'alembic upgrade head' for schema changes.",
            UserWarning
        )
        return

    # Import all models to ensure they're registered with Base.metadata
    from chapterone import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
