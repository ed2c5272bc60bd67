"""Reposition: a request to replace or rework garment pieces.

A Reposition is raised by any operational area after damage is found.  It
is approved by operaciones/admin/envios, then handed from area to area via
RepositionTransfer until admin/envios close it.  Rows are never removed:
deletion is the ``eliminado`` status plus a history entry.

Lifecycle:  pendiente → aprobado | rechazado → … → completado | eliminado
"""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Date, DateTime, Float, ForeignKey, Integer, String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import RepositionStatus, Urgency


class Reposition(Base):
    __tablename__ = "repositions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # JN-REQ-MM-YY-NNN, human-readable, numbered per calendar month
    folio: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )
    # repocision | reproceso
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    # ── Requester ────────────────────────────────────────────
    requester_name: Mapped[str] = mapped_column(String(255), nullable=False)
    requester_area: Mapped[str] = mapped_column(String(30), nullable=False)
    request_date: Mapped[date | None] = mapped_column(Date)
    request_number: Mapped[str | None] = mapped_column(String(50))
    sheet_number: Mapped[str | None] = mapped_column(String(50))
    cut_date: Mapped[date | None] = mapped_column(Date)

    # ── Damage report ────────────────────────────────────────
    damage_cause: Mapped[str | None] = mapped_column(String(255))  # person responsible
    accident_type: Mapped[str | None] = mapped_column(String(100))
    other_accident: Mapped[str | None] = mapped_column(String(255))
    damage_description: Mapped[str | None] = mapped_column(Text)

    # ── Product ──────────────────────────────────────────────
    garment_model: Mapped[str | None] = mapped_column(String(100))
    fabric: Mapped[str | None] = mapped_column(String(100))
    color: Mapped[str | None] = mapped_column(String(100))
    piece_type: Mapped[str | None] = mapped_column(String(100))
    fabric_consumption: Mapped[float] = mapped_column(Float, default=0.0)

    # ── Rework (reproceso only) ──────────────────────────────
    redo_description: Mapped[str | None] = mapped_column(Text)
    materials_involved: Mapped[str | None] = mapped_column(Text)

    urgency: Mapped[str] = mapped_column(String(20), default=Urgency.INTERMEDIO.value)
    observations: Mapped[str | None] = mapped_column(Text)

    # ── Workflow state ───────────────────────────────────────
    current_area: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=RepositionStatus.PENDIENTE.value, nullable=False, index=True
    )

    # ── Metadata ─────────────────────────────────────────────
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    approved_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # ── Relationships ────────────────────────────────────────
    # lazy="select"; use selectinload() explicitly under the async session
    pieces = relationship(
        "RepositionPiece", back_populates="reposition",
        cascade="all, delete-orphan",
    )
    products = relationship(
        "RepositionProduct", back_populates="reposition",
        cascade="all, delete-orphan",
    )
    contrast_fabric = relationship(
        "RepositionContrastFabric", back_populates="reposition",
        uselist=False, cascade="all, delete-orphan",
    )
    history = relationship(
        "RepositionHistory", back_populates="reposition",
        order_by="RepositionHistory.created_at",
    )
    material = relationship(
        "RepositionMaterial", back_populates="reposition", uselist=False,
    )


class RepositionPiece(Base):
    """A (size, quantity) line; written once at creation."""
    __tablename__ = "reposition_pieces"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reposition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("repositions.id"), nullable=False, index=True
    )
    size: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    original_folio: Mapped[str | None] = mapped_column(String(50))

    reposition = relationship("Reposition", back_populates="pieces")


class RepositionProduct(Base):
    """Additional garment on the same request (multi-product repositions)."""
    __tablename__ = "reposition_products"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reposition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("repositions.id"), nullable=False, index=True
    )
    garment_model: Mapped[str] = mapped_column(String(100), nullable=False)
    fabric: Mapped[str | None] = mapped_column(String(100))
    color: Mapped[str | None] = mapped_column(String(100))
    piece_type: Mapped[str | None] = mapped_column(String(100))
    fabric_consumption: Mapped[float] = mapped_column(Float, default=0.0)

    reposition = relationship("Reposition", back_populates="products")


class RepositionContrastFabric(Base):
    __tablename__ = "reposition_contrast_fabrics"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reposition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("repositions.id"), nullable=False, unique=True
    )
    fabric: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(100))
    consumption: Mapped[float] = mapped_column(Float, default=0.0)

    reposition = relationship("Reposition", back_populates="contrast_fabric")
