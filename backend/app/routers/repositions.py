"""Reposition routes: create, list, approve, transfer, complete, delete, timers.

Route overview:
  POST   /                             create (multipart: reposition_data + documents)
  GET    /                             list for the caller's area (?area=)
  GET    /all                          every reposition (admin/envios, cached)
  GET    /pending-count                pending approvals (approvers; 0 for others)
  GET    /transfers/pending            transfers waiting for the caller's area
  POST   /transfers/{id}/process       accept / reject a transfer
  GET    /{id}                         detail
  GET    /{id}/history | tracking | pieces | timers | documents | material
  POST   /{id}/transfer                request a handoff to another area
  POST   /{id}/approval                approve / reject (approvers)
  POST   /{id}/complete                complete (admin/envios) or request completion
  DELETE /{id}                         soft delete with reason (admin/envios)
  POST   /{id}/timer/start | stop | manual
  GET    /{id}/timer                   the caller's (or ?area=) timer
  POST   /{id}/documents               attach more documents
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user, require_area
from app.database import get_db
from app.models.enums import APPROVER_AREAS, CLOSER_AREAS, Area
from app.models.user import User
from app.schemas.document import DocumentOut
from app.schemas.reposition import (
    ApprovalRequest,
    CompletionOut,
    CompletionRequest,
    DeleteRequest,
    HistoryOut,
    MaterialOut,
    PendingCountOut,
    PieceOut,
    RepositionCreate,
    RepositionOut,
)
from app.schemas.timer import (
    ElapsedOut,
    ManualTimeRequest,
    TimerAreaRequest,
    TimerListItem,
    TimerOut,
)
from app.schemas.tracking import TrackingOut
from app.schemas.transfer import (
    PendingTransferOut,
    TransferOut,
    TransferProcess,
    TransferRequest,
)
from app.services import documents as document_service
from app.services import lifecycle, queries, timers
from app.services.tracking import get_tracking
from app.utils.cache import cached, invalidate_cache

router = APIRouter()

require_closer = require_area(*CLOSER_AREAS)
require_approver = require_area(*APPROVER_AREAS)


def _timer_area(user: User, body: TimerAreaRequest | ManualTimeRequest | None) -> str:
    if body is not None and body.area is not None:
        return body.area.value
    return user.area


# ── Create ───────────────────────────────────────────────────

@router.post("/", response_model=RepositionOut, status_code=status.HTTP_201_CREATED)
async def create_reposition(
    reposition_data: str = Form(...),
    documents: list[UploadFile] | None = File(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Create a reposition in the caller's area, with optional attachments.

    ``reposition_data`` is the JSON-encoded RepositionCreate payload.
    """
    body = RepositionCreate.model_validate_json(reposition_data)
    reposition = await lifecycle.create_reposition(db, body, user)
    if documents:
        await document_service.save_documents(db, reposition.id, documents, user)

    await invalidate_cache("repositions:*")
    return reposition


# ── Listings ─────────────────────────────────────────────────

@router.get("/", response_model=list[RepositionOut])
async def list_repositions(
    area: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await queries.list_repositions_for_user(db, user, area)


@router.get("/all", response_model=list[RepositionOut])
@cached(prefix="repositions")
async def list_all_repositions(
    include_deleted: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_closer),
):
    """Full audit listing for admin/envios, including completed ones."""
    rows = await queries.list_all_repositions(db, include_deleted=include_deleted)
    return [RepositionOut.model_validate(r) for r in rows]


@router.get("/pending-count", response_model=PendingCountOut)
async def pending_count(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not lifecycle.is_approver(user):
        return PendingCountOut(count=0)

    pending = await queries.list_pending_repositions(db)
    return PendingCountOut(
        count=len(pending),
        repositions=[RepositionOut.model_validate(r) for r in pending],
    )


# ── Transfers ────────────────────────────────────────────────

@router.get("/transfers/pending", response_model=list[PendingTransferOut])
async def pending_transfers(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = await queries.get_pending_transfers(db, user.area)
    return [PendingTransferOut.from_row(transfer, folio) for transfer, folio in rows]


@router.post("/transfers/{transfer_id}/process", response_model=TransferOut)
async def process_transfer(
    transfer_id: str,
    body: TransferProcess,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    transfer = await lifecycle.process_transfer(db, transfer_id, body.action, user)
    await invalidate_cache("repositions:*")
    return transfer


# ── Single reposition (reads) ────────────────────────────────

@router.get("/{reposition_id}", response_model=RepositionOut)
async def get_reposition(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return await queries.get_reposition_by_id(db, reposition_id)


@router.get("/{reposition_id}/history", response_model=list[HistoryOut])
async def get_history(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    history = await queries.get_history(db, reposition_id)
    return [HistoryOut.model_validate(entry) for entry in history]


@router.get("/{reposition_id}/tracking", response_model=TrackingOut)
async def tracking(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return await get_tracking(db, reposition_id)


@router.get("/{reposition_id}/pieces", response_model=list[PieceOut])
async def get_pieces(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return await queries.get_pieces(db, reposition_id)


@router.get("/{reposition_id}/timers", response_model=list[TimerListItem])
async def list_timers(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    await queries.get_reposition_by_id(db, reposition_id)
    return await timers.list_timers(db, reposition_id)


@router.get("/{reposition_id}/material", response_model=MaterialOut | None)
async def get_material(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    await queries.get_reposition_by_id(db, reposition_id)
    return await queries.get_material_status(db, reposition_id)


# ── Lifecycle actions ────────────────────────────────────────

@router.post(
    "/{reposition_id}/transfer",
    response_model=TransferOut,
    status_code=status.HTTP_201_CREATED,
)
async def request_transfer(
    reposition_id: str,
    body: TransferRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Hand the reposition from the caller's area to ``to_area``."""
    transfer = await lifecycle.request_transfer(
        db, reposition_id,
        from_area=user.area,
        to_area=body.to_area.value,
        requester=user,
        notes=body.notes,
        fabric_consumption=body.fabric_consumption,
    )
    await invalidate_cache("repositions:*")
    return transfer


@router.post("/{reposition_id}/approval", response_model=RepositionOut)
async def approve(
    reposition_id: str,
    body: ApprovalRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_approver),
):
    reposition = await lifecycle.approve_reposition(
        db, reposition_id, body.action, user, body.notes
    )
    await invalidate_cache("repositions:*")
    return reposition


@router.post("/{reposition_id}/complete", response_model=CompletionOut)
async def complete(
    reposition_id: str,
    body: CompletionRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Admin/envios complete directly; other areas ask them to."""
    result = await lifecycle.complete_or_request_completion(
        db, reposition_id, user, body.notes if body else None
    )
    await invalidate_cache("repositions:*")
    return CompletionOut(
        kind=result.kind,
        reposition=RepositionOut.model_validate(result.reposition),
    )


@router.delete("/{reposition_id}")
async def delete_reposition(
    reposition_id: str,
    body: DeleteRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_closer),
):
    reposition = await lifecycle.delete_reposition(db, reposition_id, user, body.reason)
    await invalidate_cache("repositions:*")
    return {"message": f"Reposition {reposition.folio} deleted", "id": reposition.id}


# ── Timers ───────────────────────────────────────────────────

@router.post("/{reposition_id}/timer/start", response_model=TimerOut)
async def start_timer(
    reposition_id: str,
    body: TimerAreaRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await timers.start_timer(db, reposition_id, _timer_area(user, body), user)


@router.post("/{reposition_id}/timer/stop", response_model=ElapsedOut)
async def stop_timer(
    reposition_id: str,
    body: TimerAreaRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await timers.stop_timer(db, reposition_id, _timer_area(user, body), user)


@router.post("/{reposition_id}/timer/manual", response_model=TimerOut)
async def set_manual_time(
    reposition_id: str,
    body: ManualTimeRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await timers.set_manual_time(
        db, reposition_id, _timer_area(user, body), user,
        body.start_time, body.end_time, body.date,
    )


@router.get("/{reposition_id}/timer", response_model=TimerOut | None)
async def get_timer(
    reposition_id: str,
    area: Area | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await timers.get_timer(db, reposition_id, area.value if area else user.area)


# ── Documents ────────────────────────────────────────────────

@router.get("/{reposition_id}/documents", response_model=list[DocumentOut])
async def list_documents(
    reposition_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    await queries.get_reposition_by_id(db, reposition_id)
    return await document_service.list_documents(db, reposition_id)


@router.post(
    "/{reposition_id}/documents",
    response_model=list[DocumentOut],
    status_code=status.HTTP_201_CREATED,
)
async def upload_documents(
    reposition_id: str,
    documents: list[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await queries.get_reposition_by_id(db, reposition_id)
    saved = await document_service.save_documents(db, reposition_id, documents, user)
    saved_ids = {d.id for d in saved}
    return [
        d for d in await document_service.list_documents(db, reposition_id)
        if d.id in saved_ids
    ]
