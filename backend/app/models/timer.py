"""RepositionTimer: time spent by an area working on a reposition.

A row is either a live stopwatch (``start_time`` set, ``is_running``) or a
manual entry (``manual_start_time``/``manual_end_time`` as "HH:MM" strings
plus ``manual_date``).  The partial unique index guarantees at most one
running timer per (reposition, area) even under concurrent starts.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Index, Integer, String, text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class RepositionTimer(Base):
    __tablename__ = "reposition_timers"
    __table_args__ = (
        Index(
            "uq_reposition_timers_running",
            "reposition_id", "area",
            unique=True,
            postgresql_where=text("is_running"),
            sqlite_where=text("is_running"),
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reposition_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("repositions.id"), nullable=False, index=True
    )
    area: Mapped[str] = mapped_column(String(30), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )

    # ── Stopwatch ────────────────────────────────────────────
    start_time: Mapped[datetime | None] = mapped_column(DateTime)
    end_time: Mapped[datetime | None] = mapped_column(DateTime)
    is_running: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ── Manual entry ─────────────────────────────────────────
    manual_start_time: Mapped[str | None] = mapped_column(String(5))   # "HH:MM"
    manual_end_time: Mapped[str | None] = mapped_column(String(5))
    manual_date: Mapped[str | None] = mapped_column(String(10))        # "YYYY-MM-DD"

    elapsed_minutes: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
