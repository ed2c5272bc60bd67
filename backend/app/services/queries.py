"""Read-side queries over repositions and their satellite tables.

Listing rules (GET /api/repositions):
  admin / envios, no area or "all"  → every reposition except eliminado
  diseño                            → approved repositions only
  anyone else (or an explicit area) → repositions currently in that area or
                                       created by the caller, excluding
                                       eliminado and completado
"""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.middleware.exceptions import NotFoundError
from app.models.enums import CLOSER_AREAS, Area, RepositionStatus, TransferStatus
from app.models.history import RepositionHistory
from app.models.material import RepositionMaterial
from app.models.reposition import Reposition, RepositionPiece
from app.models.transfer import RepositionTransfer
from app.models.user import User

_CLOSED = (RepositionStatus.ELIMINADO.value, RepositionStatus.COMPLETADO.value)


async def get_reposition_by_id(db: AsyncSession, reposition_id: str) -> Reposition:
    reposition = await db.get(Reposition, reposition_id)
    if not reposition:
        raise NotFoundError("Reposition", reposition_id)
    return reposition


async def list_repositions_by_area(
    db: AsyncSession,
    area: str,
    user_id: str | None = None,
) -> list[Reposition]:
    """Open repositions in ``area`` (plus, with ``user_id``, those the user created)."""
    condition = Reposition.current_area == area
    if user_id:
        condition = or_(condition, Reposition.created_by == user_id)

    result = await db.execute(
        select(Reposition)
        .where(condition, Reposition.status.not_in(_CLOSED))
        .order_by(Reposition.created_at.desc())
    )
    return list(result.scalars().all())


async def list_all_repositions(
    db: AsyncSession,
    include_deleted: bool = False,
) -> list[Reposition]:
    stmt = select(Reposition)
    if not include_deleted:
        stmt = stmt.where(Reposition.status != RepositionStatus.ELIMINADO.value)
    result = await db.execute(stmt.order_by(Reposition.created_at.desc()))
    return list(result.scalars().all())


async def list_approved_repositions(db: AsyncSession) -> list[Reposition]:
    result = await db.execute(
        select(Reposition)
        .where(Reposition.status == RepositionStatus.APROBADO.value)
        .order_by(Reposition.created_at.desc())
    )
    return list(result.scalars().all())


async def list_repositions_for_user(
    db: AsyncSession,
    user: User,
    area: str | None = None,
) -> list[Reposition]:
    """Apply the listing rules for ``user`` and an optional ``area`` filter."""
    wants_all = not area or area == "all"
    if user.area in {a.value for a in CLOSER_AREAS} and wants_all:
        return await list_all_repositions(db, include_deleted=False)
    if user.area == Area.DISENO.value:
        return await list_approved_repositions(db)
    return await list_repositions_by_area(db, user.area if wants_all else area, user.id)


async def list_pending_repositions(db: AsyncSession) -> list[Reposition]:
    result = await db.execute(
        select(Reposition)
        .where(Reposition.status == RepositionStatus.PENDIENTE.value)
        .order_by(Reposition.created_at.desc())
    )
    return list(result.scalars().all())


async def get_history(db: AsyncSession, reposition_id: str) -> list[RepositionHistory]:
    """Chronological history; each entry has ``user`` loaded."""
    await get_reposition_by_id(db, reposition_id)
    result = await db.execute(
        select(RepositionHistory)
        .where(RepositionHistory.reposition_id == reposition_id)
        .order_by(RepositionHistory.created_at, RepositionHistory.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_pieces(db: AsyncSession, reposition_id: str) -> list[RepositionPiece]:
    await get_reposition_by_id(db, reposition_id)
    result = await db.execute(
        select(RepositionPiece)
        .where(RepositionPiece.reposition_id == reposition_id)
        .order_by(RepositionPiece.size)
    )
    return list(result.scalars().all())


async def get_pending_transfers(
    db: AsyncSession, area: str
) -> list[tuple[RepositionTransfer, str]]:
    """Pending transfers addressed to ``area``, newest first, with the reposition folio."""
    result = await db.execute(
        select(RepositionTransfer, Reposition.folio)
        .join(Reposition, Reposition.id == RepositionTransfer.reposition_id)
        .where(
            RepositionTransfer.to_area == area,
            RepositionTransfer.status == TransferStatus.PENDING.value,
        )
        .order_by(RepositionTransfer.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def get_material_status(
    db: AsyncSession, reposition_id: str
) -> RepositionMaterial | None:
    result = await db.execute(
        select(RepositionMaterial).where(RepositionMaterial.reposition_id == reposition_id)
    )
    return result.scalar_one_or_none()


async def list_for_warehouse(db: AsyncSession) -> list[Reposition]:
    """Open repositions with their warehouse (pause/material) row loaded."""
    result = await db.execute(
        select(Reposition)
        .options(selectinload(Reposition.material))
        .where(Reposition.status.not_in(_CLOSED))
        .order_by(Reposition.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
