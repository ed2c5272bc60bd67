"""Row locking for reposition writes.

Every mutation of an existing reposition goes through ``lock_reposition``
so concurrent approve / transfer / complete / delete calls on the same id
are serialized by the database (SELECT … FOR UPDATE).  SQLite ignores the
clause; its single-writer model serializes anyway.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import NotFoundError
from app.models.reposition import Reposition
from app.models.transfer import RepositionTransfer


async def lock_reposition(db: AsyncSession, reposition_id: str) -> Reposition:
    """Load a reposition with a row lock held until the transaction ends."""
    result = await db.execute(
        select(Reposition)
        .where(Reposition.id == reposition_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    reposition = result.scalar_one_or_none()
    if not reposition:
        raise NotFoundError("Reposition", reposition_id)
    return reposition


async def lock_transfer(db: AsyncSession, transfer_id: str) -> RepositionTransfer:
    result = await db.execute(
        select(RepositionTransfer)
        .where(RepositionTransfer.id == transfer_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    transfer = result.scalar_one_or_none()
    if not transfer:
        raise NotFoundError("Transfer", transfer_id)
    return transfer
