"""RepositionMaterial: warehouse (almacen) state for a reposition.

Created lazily the first time almacen pauses, resumes or reports material
availability.  At most one row per reposition.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import MaterialStatus


class RepositionMaterial(Base):
    __tablename__ = "reposition_materials"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reposition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("repositions.id"), nullable=False, unique=True
    )

    # ── Pause ────────────────────────────────────────────────
    is_paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pause_reason: Mapped[str | None] = mapped_column(Text)
    paused_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    paused_at: Mapped[datetime | None] = mapped_column(DateTime)
    resumed_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    resumed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # ── Availability ─────────────────────────────────────────
    # disponible | parcial | faltante
    material_status: Mapped[str] = mapped_column(
        String(20), default=MaterialStatus.DISPONIBLE.value, nullable=False
    )
    missing_materials: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    reposition = relationship("Reposition", back_populates="material")
