"""Service-level tests for the reposition lifecycle engine."""

import re

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import NotFoundError, StateError, ValidationError
from app.models.enums import HistoryAction
from app.models.history import RepositionHistory
from app.models.notification import Notification
from app.models.reposition import Reposition, RepositionPiece
from app.models.transfer import RepositionTransfer
from app.schemas.reposition import MaterialUpdate
from app.services import lifecycle


async def _history_actions(db: AsyncSession, reposition_id: str) -> list[str]:
    result = await db.execute(
        select(RepositionHistory.action)
        .where(RepositionHistory.reposition_id == reposition_id)
        .order_by(RepositionHistory.id)
    )
    return [row[0] for row in result.all()]


async def _notification_types(db: AsyncSession, user_id: str) -> list[str]:
    result = await db.execute(
        select(Notification.type).where(Notification.user_id == user_id)
    )
    return [row[0] for row in result.all()]


@pytest_asyncio.fixture
async def approved(db_session, make_create, patronaje_user, admin_user):
    """A reposition created by patronaje and approved by admin."""
    reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)
    await lifecycle.approve_reposition(db_session, reposition.id, "aprobado", admin_user)
    await db_session.flush()
    return reposition


@pytest.mark.service
@pytest.mark.asyncio
class TestCreateReposition:

    async def test_creates_pending_reposition_in_requester_area(
        self, db_session, make_create, patronaje_user
    ):
        reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)

        assert re.match(r"^JN-REQ-\d{2}-\d{2}-\d{3}$", reposition.folio)
        assert reposition.status == "pendiente"
        assert reposition.current_area == "patronaje"
        assert reposition.requester_area == "patronaje"
        assert reposition.created_by == patronaje_user.id
        assert reposition.urgency == "urgente"

    async def test_pieces_are_stored(self, db_session, make_create, patronaje_user):
        reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)

        result = await db_session.execute(
            select(RepositionPiece).where(RepositionPiece.reposition_id == reposition.id)
        )
        pieces = {(p.size, p.quantity) for p in result.scalars().all()}
        assert pieces == {("M", 2), ("L", 1)}

    async def test_records_created_history(self, db_session, make_create, patronaje_user):
        reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)
        assert await _history_actions(db_session, reposition.id) == [HistoryAction.CREATED.value]

    async def test_notifies_admin_and_operations(
        self, db_session, make_create, patronaje_user, admin_user, operaciones_user, corte_user
    ):
        await lifecycle.create_reposition(db_session, make_create(), patronaje_user)

        assert await _notification_types(db_session, admin_user.id) == ["new_reposition"]
        assert await _notification_types(db_session, operaciones_user.id) == ["new_reposition"]
        assert await _notification_types(db_session, corte_user.id) == []

    async def test_folios_are_unique_and_contiguous(
        self, db_session, make_create, patronaje_user
    ):
        folios = [
            (await lifecycle.create_reposition(db_session, make_create(), patronaje_user)).folio
            for _ in range(3)
        ]
        assert len(set(folios)) == 3
        assert [int(f.rsplit("-", 1)[1]) for f in folios] == [1, 2, 3]

    async def test_reposicion_requires_product_fields(
        self, db_session, make_create, patronaje_user
    ):
        with pytest.raises(ValidationError) as exc:
            await lifecycle.create_reposition(
                db_session, make_create(garment_model="", color=None), patronaje_user
            )
        assert "garment_model" in exc.value.message
        assert "color" in exc.value.message

    async def test_reproceso_requires_materials_involved(
        self, db_session, make_create, patronaje_user
    ):
        data = make_create(
            type="reproceso",
            redo_description="Rehacer costura lateral",
            materials_involved=None,
        )
        with pytest.raises(ValidationError):
            await lifecycle.create_reposition(db_session, data, patronaje_user)

        count = await db_session.scalar(select(func.count()).select_from(Reposition))
        assert count == 0

    async def test_reproceso_with_rework_fields_is_accepted(
        self, db_session, make_create, patronaje_user
    ):
        data = make_create(
            type="reproceso",
            garment_model=None,
            redo_description="Rehacer costura lateral",
            materials_involved="Hilo, entretela",
        )
        reposition = await lifecycle.create_reposition(db_session, data, patronaje_user)
        assert reposition.type == "reproceso"


@pytest.mark.service
@pytest.mark.asyncio
class TestApproval:

    async def test_approve_keeps_current_area(
        self, db_session, make_create, patronaje_user, admin_user
    ):
        reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)
        result = await lifecycle.approve_reposition(
            db_session, reposition.id, "aprobado", admin_user, "Procede"
        )

        assert result.status == "aprobado"
        assert result.current_area == "patronaje"
        assert result.approved_by == admin_user.id
        assert result.approved_at is not None
        assert await _notification_types(db_session, patronaje_user.id) == ["reposition_approved"]

    async def test_reject(self, db_session, make_create, patronaje_user, admin_user):
        reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)
        result = await lifecycle.approve_reposition(db_session, reposition.id, "rechazado", admin_user)

        assert result.status == "rechazado"
        assert result.current_area == "patronaje"
        assert HistoryAction.REJECTED.value in await _history_actions(db_session, reposition.id)

    async def test_invalid_action(self, db_session, make_create, patronaje_user, admin_user):
        reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)
        with pytest.raises(ValidationError):
            await lifecycle.approve_reposition(db_session, reposition.id, "maybe", admin_user)

    async def test_unknown_reposition(self, db_session, admin_user):
        with pytest.raises(NotFoundError):
            await lifecycle.approve_reposition(db_session, "missing-id", "aprobado", admin_user)

    async def test_cannot_decide_on_completed(self, db_session, approved, admin_user):
        await lifecycle.complete_or_request_completion(db_session, approved.id, admin_user)
        with pytest.raises(StateError):
            await lifecycle.approve_reposition(db_session, approved.id, "rechazado", admin_user)


@pytest.mark.service
@pytest.mark.asyncio
class TestTransfers:

    async def test_transfer_requires_approval(
        self, db_session, make_create, patronaje_user
    ):
        reposition = await lifecycle.create_reposition(db_session, make_create(), patronaje_user)
        with pytest.raises(StateError):
            await lifecycle.request_transfer(
                db_session, reposition.id, "patronaje", "corte", patronaje_user
            )

    async def test_request_creates_pending_transfer(
        self, db_session, approved, patronaje_user, corte_user
    ):
        transfer = await lifecycle.request_transfer(
            db_session, approved.id, "patronaje", "corte", patronaje_user, notes="Listo"
        )

        assert transfer.status == "pending"
        assert transfer.from_area == "patronaje"
        assert transfer.to_area == "corte"
        assert approved.current_area == "patronaje"
        assert await _notification_types(db_session, corte_user.id) == ["reposition_transfer"]

    async def test_accept_moves_reposition(
        self, db_session, approved, patronaje_user, corte_user
    ):
        transfer = await lifecycle.request_transfer(
            db_session, approved.id, "patronaje", "corte", patronaje_user
        )
        processed = await lifecycle.process_transfer(db_session, transfer.id, "accepted", corte_user)

        reposition = await db_session.get(Reposition, approved.id)
        assert processed.status == "accepted"
        assert processed.processed_by == corte_user.id
        assert reposition.current_area == "corte"
        assert "transfer_processed" in await _notification_types(db_session, patronaje_user.id)

    async def test_reject_leaves_reposition(
        self, db_session, approved, patronaje_user, corte_user
    ):
        transfer = await lifecycle.request_transfer(
            db_session, approved.id, "patronaje", "corte", patronaje_user
        )
        await lifecycle.process_transfer(db_session, transfer.id, "rejected", corte_user)

        reposition = await db_session.get(Reposition, approved.id)
        assert reposition.current_area == "patronaje"

    async def test_transfer_processed_only_once(
        self, db_session, approved, patronaje_user, corte_user
    ):
        transfer = await lifecycle.request_transfer(
            db_session, approved.id, "patronaje", "corte", patronaje_user
        )
        await lifecycle.process_transfer(db_session, transfer.id, "accepted", corte_user)
        with pytest.raises(StateError):
            await lifecycle.process_transfer(db_session, transfer.id, "rejected", corte_user)

    async def test_corte_reports_fabric_consumption(
        self, db_session, approved, patronaje_user, corte_user
    ):
        transfer = await lifecycle.request_transfer(
            db_session, approved.id, "patronaje", "corte", patronaje_user
        )
        await lifecycle.process_transfer(db_session, transfer.id, "accepted", corte_user)
        await lifecycle.request_transfer(
            db_session, approved.id, "corte", "bordado", corte_user, fabric_consumption=2.5
        )

        reposition = await db_session.get(Reposition, approved.id)
        assert reposition.fabric_consumption == 2.5

    async def test_history_records_both_areas(
        self, db_session, approved, patronaje_user, corte_user
    ):
        transfer = await lifecycle.request_transfer(
            db_session, approved.id, "patronaje", "corte", patronaje_user
        )
        await lifecycle.process_transfer(db_session, transfer.id, "accepted", corte_user)

        result = await db_session.execute(
            select(RepositionHistory).where(
                RepositionHistory.reposition_id == approved.id,
                RepositionHistory.action == HistoryAction.TRANSFER_ACCEPTED.value,
            )
        )
        entry = result.scalar_one()
        assert (entry.from_area, entry.to_area) == ("patronaje", "corte")

    async def test_unknown_transfer(self, db_session, corte_user):
        with pytest.raises(NotFoundError):
            await lifecycle.process_transfer(db_session, "missing-id", "accepted", corte_user)


@pytest.mark.service
@pytest.mark.asyncio
class TestCompletion:

    async def test_closer_completes(self, db_session, approved, admin_user, patronaje_user):
        result = await lifecycle.complete_or_request_completion(
            db_session, approved.id, admin_user, "Entregado"
        )

        assert isinstance(result, lifecycle.Completed)
        assert result.kind == "completed"
        assert result.reposition.status == "completado"
        assert result.reposition.completed_at is not None
        assert "reposition_completed" in await _notification_types(db_session, patronaje_user.id)

    async def test_other_area_requests_completion(
        self, db_session, approved, patronaje_user, admin_user
    ):
        result = await lifecycle.complete_or_request_completion(
            db_session, approved.id, patronaje_user
        )

        assert isinstance(result, lifecycle.ApprovalRequested)
        assert result.reposition.status == "aprobado"
        assert "completion_approval_needed" in await _notification_types(db_session, admin_user.id)
        assert HistoryAction.COMPLETION_REQUESTED.value in await _history_actions(
            db_session, approved.id
        )

    async def test_completed_is_terminal(self, db_session, approved, admin_user):
        await lifecycle.complete_or_request_completion(db_session, approved.id, admin_user)
        with pytest.raises(StateError):
            await lifecycle.complete_or_request_completion(db_session, approved.id, admin_user)


@pytest.mark.service
@pytest.mark.asyncio
class TestDelete:

    async def test_soft_delete_keeps_row(self, db_session, approved, admin_user, patronaje_user):
        await lifecycle.delete_reposition(
            db_session, approved.id, admin_user, "Solicitud duplicada por error"
        )

        reposition = await db_session.get(Reposition, approved.id)
        assert reposition is not None
        assert reposition.status == "eliminado"

        actions = await _history_actions(db_session, approved.id)
        assert actions.count(HistoryAction.DELETED.value) == 1
        assert "reposition_deleted" in await _notification_types(db_session, patronaje_user.id)

    async def test_reason_too_short(self, db_session, approved, admin_user):
        with pytest.raises(ValidationError):
            await lifecycle.delete_reposition(db_session, approved.id, admin_user, "dup")

        reposition = await db_session.get(Reposition, approved.id)
        assert reposition.status == "aprobado"

    async def test_deleted_cannot_be_transferred(
        self, db_session, approved, admin_user, patronaje_user
    ):
        await lifecycle.delete_reposition(
            db_session, approved.id, admin_user, "Solicitud duplicada por error"
        )
        with pytest.raises(StateError):
            await lifecycle.request_transfer(
                db_session, approved.id, "patronaje", "corte", patronaje_user
            )

        count = await db_session.scalar(
            select(func.count()).select_from(RepositionTransfer)
        )
        assert count == 0


@pytest.mark.service
@pytest.mark.asyncio
class TestWarehouse:

    async def test_pause_and_resume(self, db_session, approved, almacen_user, admin_user):
        material = await lifecycle.pause_reposition(
            db_session, approved.id, "Falta tela de contraste", almacen_user
        )
        assert material.is_paused is True
        assert material.pause_reason == "Falta tela de contraste"
        assert "reposition_paused" in await _notification_types(db_session, admin_user.id)

        material = await lifecycle.resume_reposition(db_session, approved.id, almacen_user)
        assert material.is_paused is False
        assert material.resumed_by == almacen_user.id
        assert "reposition_resumed" in await _notification_types(db_session, admin_user.id)

        actions = await _history_actions(db_session, approved.id)
        assert HistoryAction.PAUSED.value in actions
        assert HistoryAction.RESUMED.value in actions

    async def test_pause_requires_reason(self, db_session, approved, almacen_user):
        with pytest.raises(ValidationError):
            await lifecycle.pause_reposition(db_session, approved.id, "   ", almacen_user)

    async def test_update_material_status(self, db_session, approved, almacen_user):
        material = await lifecycle.update_material_status(
            db_session, approved.id,
            MaterialUpdate(material_status="faltante", missing_materials="Botones"),
            almacen_user,
        )
        assert material.material_status == "faltante"
        assert material.missing_materials == "Botones"
        assert HistoryAction.MATERIAL_STATUS_UPDATED.value in await _history_actions(
            db_session, approved.id
        )
