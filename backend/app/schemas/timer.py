"""Pydantic schemas for per-area timers."""

from datetime import datetime

from pydantic import BaseModel

from app.models.enums import Area


class TimerAreaRequest(BaseModel):
    """Optional body for start/stop; the caller's own area when omitted."""
    area: Area | None = None


class ManualTimeRequest(BaseModel):
    # Formats are checked by the timer service (HH:MM and YYYY-MM-DD)
    start_time: str
    end_time: str
    date: str
    area: Area | None = None


class TimerOut(BaseModel):
    id: str
    reposition_id: str
    area: str
    user_id: str
    start_time: datetime | None
    end_time: datetime | None
    manual_start_time: str | None
    manual_end_time: str | None
    manual_date: str | None
    elapsed_minutes: int | None
    is_running: bool

    model_config = {"from_attributes": True}


class ElapsedOut(BaseModel):
    elapsed_time: str  # "HH:MM:00"


class TimerListItem(TimerOut):
    elapsed_time: str | None = None
