"""RepositionHistory: append-only event log for a reposition.

Every lifecycle operation writes exactly one row here.  Rows are never
updated or deleted; the tracking view and the history endpoint read them
back in (created_at, id) order.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class RepositionHistory(Base):
    __tablename__ = "reposition_history"

    # Integer PK keeps insertion order as a tiebreaker for equal timestamps
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reposition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("repositions.id"), nullable=False, index=True
    )

    # created | approved | rejected | transfer_requested | transfer_accepted |
    # transfer_rejected | timer_stopped | paused | resumed | completed |
    # deleted | completion_requested | material_status_updated
    action: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    from_area: Mapped[str | None] = mapped_column(String(30))
    to_area: Mapped[str | None] = mapped_column(String(30))

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )

    # ── Relationships ────────────────────────────────────────
    reposition = relationship("Reposition", back_populates="history")
    user = relationship("User", lazy="selectin")
