"""Reposition lifecycle engine.

Every operation here runs inside the caller's session and never commits:
``get_db`` commits once the endpoint returns, so the reposition row, its
history entry and the notifications it triggers land together or not at
all.  Operations on an existing reposition take a row lock first
(``lock_reposition``) so concurrent writers on the same id are serialized.

Status flow:
    pendiente ──approve──▶ aprobado | rechazado   (re-deciding is allowed)
    aprobado  ──transfer/accept──▶ aprobado        (current_area moves)
    *         ──complete (closer)──▶ completado     (terminal)
    *         ──delete──▶ eliminado                 (terminal, row kept)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import StateError, ValidationError
from app.models.enums import (
    APPROVER_AREAS,
    CLOSER_AREAS,
    COMPLETION_WATCHERS,
    CREATION_WATCHERS,
    PAUSE_WATCHERS,
    Area,
    HistoryAction,
    RepositionStatus,
    RepositionType,
    TransferStatus,
)
from app.models.material import RepositionMaterial
from app.models.reposition import (
    Reposition,
    RepositionContrastFabric,
    RepositionPiece,
    RepositionProduct,
)
from app.models.transfer import RepositionTransfer
from app.models.user import User
from app.schemas.reposition import MaterialUpdate, RepositionCreate
from app.services.notifications import notify_users, users_in_areas
from app.utils.history import record_history
from app.utils.locks import lock_reposition, lock_transfer
from app.utils.numbering import next_folio

logger = logging.getLogger(__name__)

MIN_DELETE_REASON = 10

_REWORK_FIELDS = ("redo_description", "materials_involved")
_PRODUCT_FIELDS = ("garment_model", "fabric", "color", "piece_type")


@dataclass
class Completed:
    reposition: Reposition
    kind: str = "completed"


@dataclass
class ApprovalRequested:
    reposition: Reposition
    kind: str = "approval_requested"


CompletionResult = Union[Completed, ApprovalRequested]


def _with_notes(text: str, notes: str | None) -> str:
    return f"{text}: {notes}" if notes else text


def _ensure_not_terminal(reposition: Reposition, action: str) -> None:
    if RepositionStatus(reposition.status).is_terminal:
        raise StateError(
            f"Cannot {action} reposition {reposition.folio}: it is {reposition.status}"
        )


# ── Create ───────────────────────────────────────────────────

def validate_type_fields(data: RepositionCreate) -> None:
    """Raise ValidationError when the fields required by ``data.type`` are blank."""
    if data.type == RepositionType.REPROCESO:
        required = _REWORK_FIELDS
    else:
        required = _PRODUCT_FIELDS

    missing = [name for name in required if not (getattr(data, name) or "").strip()]
    if missing:
        raise ValidationError(
            f"Fields required for {data.type.value}: {', '.join(missing)}"
        )


async def create_reposition(
    db: AsyncSession,
    data: RepositionCreate,
    requester: User,
) -> Reposition:
    """Create a reposition in the requester's area with a fresh folio."""
    validate_type_fields(data)

    folio = await next_folio(db)
    fields = data.model_dump(exclude={"pieces", "products", "contrast_fabric"})
    fields["type"] = data.type.value
    fields["urgency"] = data.urgency.value

    reposition = Reposition(
        **fields,
        folio=folio,
        requester_area=requester.area,
        current_area=requester.area,
        status=RepositionStatus.PENDIENTE.value,
        created_by=requester.id,
    )
    reposition.pieces = [RepositionPiece(**piece.model_dump()) for piece in data.pieces]
    reposition.products = [
        RepositionProduct(**product.model_dump()) for product in data.products
    ]
    if data.contrast_fabric:
        reposition.contrast_fabric = RepositionContrastFabric(
            **data.contrast_fabric.model_dump()
        )
    db.add(reposition)
    await db.flush()  # populate reposition.id

    record_history(
        db, reposition.id, HistoryAction.CREATED,
        f"Reposition {reposition.type} created", requester.id,
    )

    watchers = await users_in_areas(db, CREATION_WATCHERS)
    await notify_users(
        db, watchers,
        type="new_reposition",
        title="Nueva Solicitud de Reposición",
        message=f"Se ha creado una nueva solicitud de {reposition.type}: {folio}",
        reposition_id=reposition.id,
    )

    logger.info("Reposition %s created by %s (%s)", folio, requester.username, requester.area)
    return reposition


# ── Approval ─────────────────────────────────────────────────

async def approve_reposition(
    db: AsyncSession,
    reposition_id: str,
    action: str,
    approver: User,
    notes: str | None = None,
) -> Reposition:
    """Record an approval decision.  ``current_area`` is left untouched."""
    if action not in (RepositionStatus.APROBADO.value, RepositionStatus.RECHAZADO.value):
        raise ValidationError(f"Invalid approval action: {action}")
    decision = RepositionStatus(action)

    reposition = await lock_reposition(db, reposition_id)
    _ensure_not_terminal(reposition, "decide on")

    approved = decision == RepositionStatus.APROBADO
    reposition.status = decision.value
    reposition.approved_by = approver.id
    reposition.approved_at = datetime.utcnow()

    verb = "aprobada" if approved else "rechazada"
    record_history(
        db, reposition.id,
        HistoryAction.APPROVED if approved else HistoryAction.REJECTED,
        _with_notes(f"Reposición {verb}", notes), approver.id,
    )
    await notify_users(
        db, [reposition.created_by],
        type="reposition_approved" if approved else "reposition_rejected",
        title="Reposición Aprobada" if approved else "Reposición Rechazada",
        message=_with_notes(f"Tu reposición {reposition.folio} ha sido {verb}", notes),
        reposition_id=reposition.id,
    )

    logger.info("Reposition %s %s by %s", reposition.folio, decision.value, approver.username)
    return reposition


# ── Transfers ────────────────────────────────────────────────

async def request_transfer(
    db: AsyncSession,
    reposition_id: str,
    from_area: str,
    to_area: str,
    requester: User,
    notes: str | None = None,
    fabric_consumption: float | None = None,
) -> RepositionTransfer:
    """Open a pending handoff from ``from_area`` to ``to_area``."""
    reposition = await lock_reposition(db, reposition_id)
    if reposition.status != RepositionStatus.APROBADO.value:
        raise StateError(
            f"Only approved repositions can be transferred "
            f"({reposition.folio} is {reposition.status})"
        )

    # Corte reports how much fabric the cut actually used when it hands off
    if from_area == Area.CORTE.value and fabric_consumption is not None:
        reposition.fabric_consumption = fabric_consumption

    transfer = RepositionTransfer(
        reposition_id=reposition.id,
        from_area=from_area,
        to_area=to_area,
        status=TransferStatus.PENDING.value,
        notes=notes,
        created_by=requester.id,
    )
    db.add(transfer)
    await db.flush()

    record_history(
        db, reposition.id, HistoryAction.TRANSFER_REQUESTED,
        f"Transfer requested from {from_area} to {to_area}", requester.id,
        from_area=from_area, to_area=to_area,
    )
    recipients = await users_in_areas(db, [to_area])
    await notify_users(
        db, recipients,
        type="reposition_transfer",
        title="Nueva Transferencia de Reposición",
        message=(
            f"Se ha solicitado transferir la reposición {reposition.folio} "
            f"de {from_area} a {to_area}"
        ),
        reposition_id=reposition.id,
    )

    logger.info("Reposition %s transfer %s → %s requested", reposition.folio, from_area, to_area)
    return transfer


async def process_transfer(
    db: AsyncSession,
    transfer_id: str,
    action: str,
    processor: User,
) -> RepositionTransfer:
    """Accept or reject a pending transfer.  Only acceptance moves the reposition."""
    if action not in (TransferStatus.ACCEPTED.value, TransferStatus.REJECTED.value):
        raise ValidationError("Transfer action must be accepted or rejected")
    decision = TransferStatus(action)

    transfer = await lock_transfer(db, transfer_id)
    if transfer.status != TransferStatus.PENDING.value:
        raise StateError(f"Transfer {transfer.id} was already {transfer.status}")

    reposition = await lock_reposition(db, transfer.reposition_id)
    accepted = decision == TransferStatus.ACCEPTED
    if accepted:
        _ensure_not_terminal(reposition, "accept a transfer for")
        reposition.current_area = transfer.to_area

    transfer.status = decision.value
    transfer.processed_by = processor.id
    transfer.processed_at = datetime.utcnow()

    record_history(
        db, reposition.id,
        HistoryAction.TRANSFER_ACCEPTED if accepted else HistoryAction.TRANSFER_REJECTED,
        f"Transfer {decision.value} from {transfer.from_area} to {transfer.to_area}",
        processor.id,
        from_area=transfer.from_area, to_area=transfer.to_area,
    )

    verb = "aceptada" if accepted else "rechazada"
    await notify_users(
        db, [transfer.created_by],
        type="transfer_processed",
        title=f"Transferencia {verb.capitalize()}",
        message=f"La transferencia de la reposición {reposition.folio} ha sido {verb}",
        reposition_id=reposition.id,
    )
    if accepted:
        destination = await users_in_areas(db, [transfer.to_area])
        await notify_users(
            db, [uid for uid in destination if uid != processor.id],
            type="reposition_received",
            title="Nueva Reposición Recibida",
            message=f"La reposición {reposition.folio} ha llegado a tu área",
            reposition_id=reposition.id,
        )

    logger.info(
        "Reposition %s transfer %s → %s %s by %s",
        reposition.folio, transfer.from_area, transfer.to_area,
        decision.value, processor.username,
    )
    return transfer


# ── Completion ───────────────────────────────────────────────

async def complete_or_request_completion(
    db: AsyncSession,
    reposition_id: str,
    requester: User,
    notes: str | None = None,
) -> CompletionResult:
    """Close the reposition (admin/envios) or ask them to close it (anyone else)."""
    reposition = await lock_reposition(db, reposition_id)
    _ensure_not_terminal(reposition, "complete")

    if requester.area in {a.value for a in CLOSER_AREAS}:
        now = datetime.utcnow()
        reposition.status = RepositionStatus.COMPLETADO.value
        reposition.completed_at = now
        reposition.approved_by = requester.id

        record_history(
            db, reposition.id, HistoryAction.COMPLETED,
            _with_notes("Reposición finalizada", notes), requester.id,
        )
        await notify_users(
            db, [reposition.created_by],
            type="reposition_completed",
            title="Reposición Completada",
            message=_with_notes(f"La reposición {reposition.folio} ha sido completada", notes),
            reposition_id=reposition.id,
        )
        logger.info("Reposition %s completed by %s", reposition.folio, requester.username)
        return Completed(reposition)

    record_history(
        db, reposition.id, HistoryAction.COMPLETION_REQUESTED,
        _with_notes("Solicitud de finalización enviada", notes), requester.id,
    )
    watchers = await users_in_areas(db, COMPLETION_WATCHERS)
    await notify_users(
        db, watchers,
        type="completion_approval_needed",
        title="Solicitud de Finalización",
        message=_with_notes(
            f"Se solicita aprobación para finalizar la reposición {reposition.folio}", notes
        ),
        reposition_id=reposition.id,
    )
    logger.info(
        "Reposition %s completion requested by %s (%s)",
        reposition.folio, requester.username, requester.area,
    )
    return ApprovalRequested(reposition)


# ── Soft delete ──────────────────────────────────────────────

async def delete_reposition(
    db: AsyncSession,
    reposition_id: str,
    deleter: User,
    reason: str,
) -> Reposition:
    """Mark the reposition ``eliminado``.  The row and its history are kept."""
    reason = (reason or "").strip()
    if len(reason) < MIN_DELETE_REASON:
        raise ValidationError(
            f"Deletion reason must be at least {MIN_DELETE_REASON} characters"
        )

    reposition = await lock_reposition(db, reposition_id)
    reposition.status = RepositionStatus.ELIMINADO.value
    reposition.completed_at = datetime.utcnow()

    record_history(
        db, reposition.id, HistoryAction.DELETED,
        f"Reposición eliminada. Motivo: {reason}", deleter.id,
    )
    if deleter.id != reposition.created_by:
        await notify_users(
            db, [reposition.created_by],
            type="reposition_deleted",
            title="Reposición Eliminada",
            message=f"La reposición {reposition.folio} ha sido eliminada. Motivo: {reason}",
            reposition_id=reposition.id,
        )

    logger.info("Reposition %s deleted by %s", reposition.folio, deleter.username)
    return reposition


# ── Warehouse (almacen) ──────────────────────────────────────

async def _material_row(db: AsyncSession, reposition_id: str) -> RepositionMaterial:
    result = await db.execute(
        select(RepositionMaterial).where(RepositionMaterial.reposition_id == reposition_id)
    )
    material = result.scalar_one_or_none()
    if material is None:
        material = RepositionMaterial(reposition_id=reposition_id, is_paused=False)
        db.add(material)
    return material


async def pause_reposition(
    db: AsyncSession,
    reposition_id: str,
    reason: str,
    user: User,
) -> RepositionMaterial:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A pause reason is required")

    reposition = await lock_reposition(db, reposition_id)
    material = await _material_row(db, reposition.id)
    material.is_paused = True
    material.pause_reason = reason
    material.paused_by = user.id
    material.paused_at = datetime.utcnow()

    record_history(
        db, reposition.id, HistoryAction.PAUSED,
        f"Reposición pausada por almacén. Motivo: {reason}", user.id,
    )
    watchers = await users_in_areas(db, PAUSE_WATCHERS)
    await notify_users(
        db, watchers,
        type="reposition_paused",
        title="Reposición Pausada",
        message=f"La reposición {reposition.folio} ha sido pausada por almacén. Motivo: {reason}",
        reposition_id=reposition.id,
    )

    logger.info("Reposition %s paused by %s", reposition.folio, user.username)
    await db.flush()
    return material


async def resume_reposition(
    db: AsyncSession,
    reposition_id: str,
    user: User,
) -> RepositionMaterial:
    reposition = await lock_reposition(db, reposition_id)
    material = await _material_row(db, reposition.id)
    material.is_paused = False
    material.resumed_by = user.id
    material.resumed_at = datetime.utcnow()

    record_history(
        db, reposition.id, HistoryAction.RESUMED,
        "Reposición reanudada por almacén", user.id,
    )
    watchers = await users_in_areas(db, PAUSE_WATCHERS)
    await notify_users(
        db, watchers,
        type="reposition_resumed",
        title="Reposición Reanudada",
        message=f"La reposición {reposition.folio} ha sido reanudada por almacén",
        reposition_id=reposition.id,
    )

    logger.info("Reposition %s resumed by %s", reposition.folio, user.username)
    await db.flush()
    return material


async def update_material_status(
    db: AsyncSession,
    reposition_id: str,
    body: MaterialUpdate,
    user: User,
) -> RepositionMaterial:
    reposition = await lock_reposition(db, reposition_id)
    material = await _material_row(db, reposition.id)
    material.material_status = body.material_status.value
    material.missing_materials = body.missing_materials
    material.notes = body.notes

    description = f"Estado de materiales actualizado: {body.material_status.value}"
    if body.missing_materials:
        description += f" - Faltantes: {body.missing_materials}"
    record_history(db, reposition.id, HistoryAction.MATERIAL_STATUS_UPDATED, description, user.id)

    await db.flush()
    return material


def is_approver(user: User) -> bool:
    return user.area in {a.value for a in APPROVER_AREAS}
