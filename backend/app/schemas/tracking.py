"""Response schema for the tracking view (GET /api/repositions/{id}/tracking)."""

from datetime import datetime

from pydantic import BaseModel

from app.schemas.reposition import HistoryOut


class TrackingHeader(BaseModel):
    folio: str
    status: str
    current_area: str
    progress: int


class TrackingStep(BaseModel):
    id: int       # 1-based pipeline position
    area: str
    status: str   # completed | current | pending
    timestamp: datetime | None = None
    user: str | None = None
    time_spent: str | None = None
    time_in_minutes: int = 0


class TotalTime(BaseModel):
    formatted: str
    minutes: int


class TrackingOut(BaseModel):
    reposition: TrackingHeader
    steps: list[TrackingStep]
    history: list[HistoryOut]
    total_time: TotalTime
    area_times: dict[str, int]
