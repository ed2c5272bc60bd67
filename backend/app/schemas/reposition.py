"""Pydantic schemas for reposition requests and their lifecycle actions."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from app.models.enums import MaterialStatus, RepositionType, Urgency


# ── Create ───────────────────────────────────────────────────

class PieceIn(BaseModel):
    size: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(..., ge=1)
    original_folio: str | None = None


class ProductIn(BaseModel):
    garment_model: str = Field(..., min_length=1, max_length=100)
    fabric: str | None = None
    color: str | None = None
    piece_type: str | None = None
    fabric_consumption: float = Field(0.0, ge=0)


class ContrastFabricIn(BaseModel):
    fabric: str = Field(..., min_length=1, max_length=100)
    color: str | None = None
    consumption: float = Field(0.0, ge=0)


class RepositionCreate(BaseModel):
    """Payload for POST /api/repositions (the ``reposition_data`` form field).

    The requester's area is taken from the authenticated user, never from
    the payload.  Which product/rework fields are mandatory depends on
    ``type`` and is enforced by the lifecycle service.
    """
    type: RepositionType
    requester_name: str = Field(..., min_length=1, max_length=255)
    request_date: date | None = None
    request_number: str | None = None
    sheet_number: str | None = None
    cut_date: date | None = None

    damage_cause: str | None = None
    accident_type: str | None = None
    other_accident: str | None = None
    damage_description: str | None = None

    garment_model: str | None = None
    fabric: str | None = None
    color: str | None = None
    piece_type: str | None = None
    fabric_consumption: float = Field(0.0, ge=0)

    redo_description: str | None = None
    materials_involved: str | None = None

    urgency: Urgency = Urgency.INTERMEDIO
    observations: str | None = None

    pieces: list[PieceIn] = Field(default_factory=list)
    products: list[ProductIn] = Field(default_factory=list)
    contrast_fabric: ContrastFabricIn | None = None


# ── Response ─────────────────────────────────────────────────

class PieceOut(BaseModel):
    id: str
    size: str
    quantity: int
    original_folio: str | None

    model_config = {"from_attributes": True}


class RepositionOut(BaseModel):
    id: str
    folio: str
    type: str
    requester_name: str
    requester_area: str
    request_date: date | None
    request_number: str | None
    sheet_number: str | None
    cut_date: date | None
    damage_cause: str | None
    accident_type: str | None
    other_accident: str | None
    damage_description: str | None
    garment_model: str | None
    fabric: str | None
    color: str | None
    piece_type: str | None
    fabric_consumption: float
    redo_description: str | None
    materials_involved: str | None
    urgency: str
    observations: str | None
    current_area: str
    status: str
    created_by: str
    approved_by: str | None
    created_at: datetime
    approved_at: datetime | None
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class WarehouseRepositionOut(RepositionOut):
    """Reposition as seen by almacen, with its pause state joined in."""
    is_paused: bool = False
    pause_reason: str | None = None
    material_status: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _extract_material(cls, data):
        if isinstance(data, dict):
            return data
        values = {name: getattr(data, name) for name in RepositionOut.model_fields}
        material = getattr(data, "material", None)
        if material is not None:
            values.update(
                is_paused=material.is_paused,
                pause_reason=material.pause_reason,
                material_status=material.material_status,
            )
        return values


class PendingCountOut(BaseModel):
    count: int
    repositions: list[RepositionOut] = []


# ── Lifecycle actions ────────────────────────────────────────

class ApprovalRequest(BaseModel):
    action: Literal["aprobado", "rechazado"]
    notes: str | None = None


class CompletionRequest(BaseModel):
    notes: str | None = None


class CompletionOut(BaseModel):
    """``completed`` when a closer finished it, ``approval_requested`` otherwise."""
    kind: Literal["completed", "approval_requested"]
    reposition: RepositionOut


class DeleteRequest(BaseModel):
    reason: str


# ── History ──────────────────────────────────────────────────

class HistoryOut(BaseModel):
    id: int
    action: str
    description: str
    from_area: str | None
    to_area: str | None
    user_id: str
    user_name: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @model_validator(mode="before")
    @classmethod
    def _extract_user_name(cls, data):
        if isinstance(data, dict):
            return data
        values = {name: getattr(data, name) for name in cls.model_fields if name != "user_name"}
        user = getattr(data, "user", None)
        values["user_name"] = user.full_name if user else None
        return values


# ── Warehouse (almacen) ──────────────────────────────────────

class PauseRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class MaterialUpdate(BaseModel):
    material_status: MaterialStatus
    missing_materials: str | None = None
    notes: str | None = None


class MaterialOut(BaseModel):
    reposition_id: str
    is_paused: bool
    pause_reason: str | None
    paused_by: str | None
    paused_at: datetime | None
    resumed_by: str | None
    resumed_at: datetime | None
    material_status: str
    missing_materials: str | None
    notes: str | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}
