"""Database engine, session factory, and declarative base.

One request = one unit of work: ``get_db()`` yields a session, commits when
the endpoint returns, rolls back on any exception, and only then pushes the
notifications queued during the request to live clients.  A lifecycle
operation therefore either lands completely (reposition row, pieces,
history, notifications) or not at all.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options(url: str) -> dict:
    options: dict = {"echo": settings.debug and settings.environment != "test"}
    # SQLite (tests, local dev) uses a single-connection pool without sizing knobs
    if not url.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10)
    return options


engine = create_async_engine(
    settings.database_url,
    **_engine_options(settings.database_url),
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


# ── Session dependency ──────────────────────────────────────

async def get_db() -> AsyncSession:
    """Yield a session; commit on success, roll back (and drop new uploads) on error."""
    # deferred to avoid circular imports
    from app.services.documents import discard_written_files, forget_written_files
    from app.services.notifications import dispatch_pending

    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_written_files(session)
            raise
        forget_written_files(session)
        await dispatch_pending(session)
