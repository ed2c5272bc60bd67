"""Pydantic schemas for area-to-area transfers."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.enums import Area


class TransferRequest(BaseModel):
    """Payload for POST /api/repositions/{id}/transfer.

    ``fabric_consumption`` is only applied when the transfer leaves corte.
    """
    to_area: Area
    notes: str | None = None
    fabric_consumption: float | None = Field(None, ge=0)


class TransferProcess(BaseModel):
    action: Literal["accepted", "rejected"]


class TransferOut(BaseModel):
    id: str
    reposition_id: str
    from_area: str
    to_area: str
    status: str
    notes: str | None
    created_by: str
    created_at: datetime
    processed_by: str | None
    processed_at: datetime | None

    model_config = {"from_attributes": True}


class PendingTransferOut(TransferOut):
    folio: str | None = None

    @classmethod
    def from_row(cls, transfer, folio: str | None) -> "PendingTransferOut":
        out = cls.model_validate(transfer)
        out.folio = folio
        return out
