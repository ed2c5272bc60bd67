"""Folio generation for repositions.

Format:  JN-REQ-{MM}-{YY}-{NNN}   e.g. JN-REQ-03-26-007

The sequence restarts every calendar month.  Each month owns one
FolioSequence row, bumped with a single atomic upsert so two concurrent
creations can never be handed the same number.  When the month's row does
not exist yet it is seeded from the folios already issued for that prefix,
which keeps numbering contiguous for data imported before the counter
table existed.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.folio_sequence import FolioSequence
from app.models.reposition import Reposition

FOLIO_PREFIX = "JN-REQ"
SEQ_WIDTH = 3

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def folio_prefix(now: datetime) -> str:
    return f"{FOLIO_PREFIX}-{now:%m}-{now:%y}"


def format_folio(prefix: str, seq_num: int) -> str:
    return f"{prefix}-{seq_num:0{SEQ_WIDTH}d}"


async def _count_existing(db: AsyncSession, prefix: str) -> int:
    """Count folios already issued under ``prefix``."""
    result = await db.execute(
        select(func.count())
        .select_from(Reposition)
        .where(Reposition.folio.like(f"{prefix}-%"))
    )
    return result.scalar() or 0


async def next_folio(db: AsyncSession, now: datetime | None = None) -> str:
    """Reserve and return the next folio for the month of ``now``.

    Args:
        db: Database session; the reservation commits with the request.
        now: Reference time (defaults to utcnow); only month and year are used.

    Returns:
        Folio string, e.g. "JN-REQ-03-26-001"
    """
    prefix = folio_prefix(now or datetime.utcnow())

    current = await db.execute(
        select(FolioSequence.last_value).where(FolioSequence.prefix == prefix)
    )
    seed = 0
    if current.scalar_one_or_none() is None:
        seed = await _count_existing(db, prefix)

    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Folio sequence not supported on dialect {dialect!r}")

    stmt = (
        insert(FolioSequence)
        .values(prefix=prefix, last_value=seed + 1)
        .on_conflict_do_update(
            index_elements=[FolioSequence.prefix],
            set_={"last_value": FolioSequence.last_value + 1},
        )
        .returning(FolioSequence.last_value)
    )
    result = await db.execute(stmt)
    return format_folio(prefix, result.scalar_one())
