"""Per-area time tracking for repositions.

Two ways to record work time:

  * stopwatch: ``start_timer`` then ``stop_timer`` (whole minutes elapsed)
  * manual:    ``set_manual_time`` with "HH:MM" start/end on a given date

At most one stopwatch may run per (reposition, area).  The pre-check gives
a friendly error; the partial unique index ``uq_reposition_timers_running``
is what actually holds under concurrent starts.
"""

import logging
import re
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import ConflictError, StateError, ValidationError
from app.models.enums import HistoryAction
from app.models.timer import RepositionTimer
from app.models.user import User
from app.schemas.timer import TimerListItem
from app.utils.history import record_history
from app.utils.locks import lock_reposition

logger = logging.getLogger(__name__)

TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MINUTES_PER_DAY = 24 * 60


# ── Formatting helpers ──────────────────────────────────────

def format_hms(minutes: int) -> str:
    """75 → "01:15:00"."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}:00"


def clock_minutes(value: str) -> int:
    hours, mins = value.split(":")
    return int(hours) * 60 + int(mins)


def span_minutes(start: str, end: str) -> int:
    """Minutes from ``start`` to ``end`` ("HH:MM"), wrapping past midnight."""
    elapsed = clock_minutes(end) - clock_minutes(start)
    if elapsed < 0:
        elapsed += MINUTES_PER_DAY
    return elapsed


# ── Queries ─────────────────────────────────────────────────

async def _running_timer(
    db: AsyncSession, reposition_id: str, area: str
) -> RepositionTimer | None:
    result = await db.execute(
        select(RepositionTimer)
        .where(
            RepositionTimer.reposition_id == reposition_id,
            RepositionTimer.area == area,
            RepositionTimer.is_running == True,  # noqa: E712
        )
        .order_by(RepositionTimer.start_time.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_timer(
    db: AsyncSession, reposition_id: str, area: str
) -> RepositionTimer | None:
    """The (first) timer row for ``(reposition_id, area)``, if any."""
    result = await db.execute(
        select(RepositionTimer)
        .where(
            RepositionTimer.reposition_id == reposition_id,
            RepositionTimer.area == area,
        )
        .order_by(RepositionTimer.created_at, RepositionTimer.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_timers(db: AsyncSession, reposition_id: str) -> list[TimerListItem]:
    """All timer rows of a reposition with elapsed time as "HH:MM:00"."""
    result = await db.execute(
        select(RepositionTimer)
        .where(RepositionTimer.reposition_id == reposition_id)
        .order_by(RepositionTimer.created_at, RepositionTimer.id)
    )
    items = []
    for timer in result.scalars().all():
        minutes = timer.elapsed_minutes or 0
        if timer.start_time and timer.end_time:
            minutes = int((timer.end_time - timer.start_time).total_seconds() // 60)
        item = TimerListItem.model_validate(timer)
        item.elapsed_time = format_hms(minutes)
        items.append(item)
    return items


# ── Stopwatch ───────────────────────────────────────────────

async def start_timer(
    db: AsyncSession,
    reposition_id: str,
    area: str,
    user: User,
) -> RepositionTimer:
    await lock_reposition(db, reposition_id)

    if await _running_timer(db, reposition_id, area):
        raise ConflictError(f"A timer is already running for area {area}")

    timer = RepositionTimer(
        reposition_id=reposition_id,
        area=area,
        user_id=user.id,
        start_time=datetime.utcnow(),
        is_running=True,
    )
    db.add(timer)
    try:
        await db.flush()
    except IntegrityError:
        # Lost the race against a concurrent start for the same area
        await db.rollback()
        raise ConflictError(f"A timer is already running for area {area}")

    logger.info("Timer started for reposition %s in %s by %s", reposition_id, area, user.username)
    return timer


async def stop_timer(
    db: AsyncSession,
    reposition_id: str,
    area: str,
    user: User,
    now: datetime | None = None,
) -> dict:
    """Stop the running timer of ``area`` and return ``{"elapsed_time": "HH:MM:00"}``."""
    await lock_reposition(db, reposition_id)

    timer = await _running_timer(db, reposition_id, area)
    if not timer:
        raise StateError(f"No running timer for area {area}")

    end_time = now or datetime.utcnow()
    elapsed = max(int((end_time - timer.start_time).total_seconds() // 60), 0)
    formatted = format_hms(elapsed)

    timer.end_time = end_time
    timer.elapsed_minutes = elapsed
    timer.is_running = False

    record_history(
        db, reposition_id, HistoryAction.TIMER_STOPPED,
        f"Cronómetro detenido por {user.full_name} en área {area}. "
        f"Tiempo transcurrido: {formatted}",
        user.id,
    )

    logger.info("Timer stopped for reposition %s in %s: %s", reposition_id, area, formatted)
    return {"elapsed_time": formatted}


# ── Manual entry ────────────────────────────────────────────

async def set_manual_time(
    db: AsyncSession,
    reposition_id: str,
    area: str,
    user: User,
    start_time: str,
    end_time: str,
    date: str,
) -> RepositionTimer:
    """Record worked time by hand.  Re-submitting overwrites the same row."""
    if not TIME_RE.match(start_time or "") or not TIME_RE.match(end_time or ""):
        raise ValidationError("Invalid time format, expected HH:MM")
    if not DATE_RE.match(date or ""):
        raise ValidationError("Invalid date format, expected YYYY-MM-DD")

    await lock_reposition(db, reposition_id)
    elapsed = span_minutes(start_time, end_time)

    timer = await get_timer(db, reposition_id, area)
    if timer is None:
        timer = RepositionTimer(reposition_id=reposition_id, area=area, user_id=user.id)
        db.add(timer)

    timer.manual_start_time = start_time
    timer.manual_end_time = end_time
    timer.manual_date = date
    timer.elapsed_minutes = elapsed
    timer.is_running = False

    await db.flush()
    return timer
