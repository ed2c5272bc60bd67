"""Warehouse (almacen) routes: pause/resume work and report material status.

Every route here is restricted to almacen users.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_area
from app.database import get_db
from app.models.enums import Area
from app.models.user import User
from app.schemas.reposition import (
    MaterialOut,
    MaterialUpdate,
    PauseRequest,
    WarehouseRepositionOut,
)
from app.services import lifecycle, queries
from app.utils.cache import invalidate_cache

router = APIRouter()

require_almacen = require_area(Area.ALMACEN)


@router.get("/repositions", response_model=list[WarehouseRepositionOut])
async def list_repositions(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_almacen),
):
    """Open repositions with their pause state."""
    rows = await queries.list_for_warehouse(db)
    return [WarehouseRepositionOut.model_validate(r) for r in rows]


@router.post("/repositions/{reposition_id}/pause", response_model=MaterialOut)
async def pause(
    reposition_id: str,
    body: PauseRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_almacen),
):
    material = await lifecycle.pause_reposition(db, reposition_id, body.reason, user)
    await invalidate_cache("repositions:*")
    return material


@router.post("/repositions/{reposition_id}/resume", response_model=MaterialOut)
async def resume(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_almacen),
):
    material = await lifecycle.resume_reposition(db, reposition_id, user)
    await invalidate_cache("repositions:*")
    return material


@router.put("/repositions/{reposition_id}/materials", response_model=MaterialOut)
async def update_materials(
    reposition_id: str,
    body: MaterialUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_almacen),
):
    return await lifecycle.update_material_status(db, reposition_id, body, user)
