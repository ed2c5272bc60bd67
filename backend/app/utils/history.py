"""Lightweight helper for appending reposition history entries.

Usage:
    record_history(
        db, reposition.id, HistoryAction.APPROVED,
        "Reposición aprobado", user.id,
    )

The row is added to the current session and committed with the
enclosing transaction; no extra flush is performed.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import HistoryAction
from app.models.history import RepositionHistory


def record_history(
    db: AsyncSession,
    reposition_id: str,
    action: HistoryAction,
    description: str,
    user_id: str,
    *,
    from_area: str | None = None,
    to_area: str | None = None,
) -> RepositionHistory:
    """Append a history entry to the current DB session."""
    entry = RepositionHistory(
        reposition_id=reposition_id,
        action=action.value,
        description=description,
        user_id=user_id,
        from_area=from_area,
        to_area=to_area,
    )
    db.add(entry)
    return entry
