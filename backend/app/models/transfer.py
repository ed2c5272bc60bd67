"""RepositionTransfer: a two-phase handoff of a reposition between areas.

The sending area records a ``pending`` transfer; the receiving area accepts
or rejects it.  Only an accepted transfer moves ``Reposition.current_area``.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import TransferStatus


class RepositionTransfer(Base):
    __tablename__ = "reposition_transfers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reposition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("repositions.id"), nullable=False, index=True
    )

    from_area: Mapped[str] = mapped_column(String(30), nullable=False)
    to_area: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    # pending | accepted | rejected
    status: Mapped[str] = mapped_column(
        String(20), default=TransferStatus.PENDING.value, nullable=False, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    processed_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    processed_at: Mapped[datetime | None] = mapped_column(DateTime)

    reposition = relationship("Reposition")
