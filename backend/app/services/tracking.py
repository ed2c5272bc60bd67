"""Tracking view: where a reposition is in the production pipeline.

Read-only projection over the reposition row, its history and its timers.
Nothing here writes to the database.

Step status for pipeline stage ``i`` (see ``TrackingStage``):
    completed  if i < index(current_area) or the reposition is completado
    current    if i == index(current_area) and it is not completado
    pending    otherwise
Office areas (admin, envios, almacen, ...) are not stages; while a
reposition sits in one, its index is -1 and every stage reads pending.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import NotFoundError
from app.models.enums import HistoryAction, RepositionStatus, TrackingStage
from app.models.history import RepositionHistory
from app.models.reposition import Reposition
from app.models.timer import RepositionTimer
from app.schemas.reposition import HistoryOut
from app.schemas.tracking import (
    TotalTime,
    TrackingHeader,
    TrackingOut,
    TrackingStep,
)
from app.services.timers import span_minutes


def format_duration(minutes: int) -> str:
    """90 → "1h 30m", 45 → "45m"."""
    hours, mins = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def _manual_minutes(timers: list[RepositionTimer]) -> int | None:
    for timer in timers:
        if timer.manual_start_time and timer.manual_end_time:
            return span_minutes(timer.manual_start_time, timer.manual_end_time)
    return None


def _latest_entry(history: list[RepositionHistory], stage: TrackingStage):
    latest = None
    for entry in history:
        if entry.to_area == stage.value:
            latest = entry
        elif stage == TrackingStage.PATRONAJE and entry.action == HistoryAction.CREATED.value:
            latest = entry
    return latest


def build_tracking(
    reposition: Reposition,
    history: list[RepositionHistory],
    timers: list[RepositionTimer],
) -> TrackingOut:
    """Project ``reposition`` + chronological ``history`` + ``timers`` into the view."""
    stages = TrackingStage.ordered()
    current_index = TrackingStage.index_of(reposition.current_area)
    finished = reposition.status == RepositionStatus.COMPLETADO.value

    timers_by_area: dict[str, list[RepositionTimer]] = {}
    for timer in timers:
        timers_by_area.setdefault(timer.area, []).append(timer)

    steps = []
    area_times: dict[str, int] = {}
    completed_count = 0
    for index, stage in enumerate(stages):
        if finished or index < current_index:
            status = "completed"
            completed_count += 1
        elif index == current_index:
            status = "current"
        else:
            status = "pending"

        minutes = _manual_minutes(timers_by_area.get(stage.value, []))
        area_times[stage.value] = minutes or 0

        entry = _latest_entry(history, stage)
        steps.append(TrackingStep(
            id=index + 1,
            area=stage.value,
            status=status,
            timestamp=entry.created_at if entry else None,
            user=entry.user.full_name if entry and entry.user else None,
            time_spent=format_duration(minutes) if minutes is not None else None,
            time_in_minutes=minutes or 0,
        ))

    total = sum(area_times.values())
    return TrackingOut(
        reposition=TrackingHeader(
            folio=reposition.folio,
            status=reposition.status,
            current_area=reposition.current_area,
            progress=round(100 * completed_count / len(stages)),
        ),
        steps=steps,
        history=[HistoryOut.model_validate(entry) for entry in history],
        total_time=TotalTime(formatted=format_duration(total), minutes=total),
        area_times=area_times,
    )


async def get_tracking(db: AsyncSession, reposition_id: str) -> TrackingOut:
    reposition = await db.get(Reposition, reposition_id)
    if not reposition:
        raise NotFoundError("Reposition", reposition_id)

    history = (
        await db.execute(
            select(RepositionHistory)
            .where(RepositionHistory.reposition_id == reposition_id)
            .order_by(RepositionHistory.created_at, RepositionHistory.id)
            .execution_options(populate_existing=True)
        )
    ).scalars().all()
    timers = (
        await db.execute(
            select(RepositionTimer)
            .where(RepositionTimer.reposition_id == reposition_id)
            .order_by(RepositionTimer.created_at, RepositionTimer.id)
        )
    ).scalars().all()

    return build_tracking(reposition, list(history), list(timers))
