"""Notification inbox routes and the live WebSocket channel."""

import json

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_user
from app.database import get_db
from app.middleware.exceptions import NotFoundError
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import NotificationOut
from app.services.notifications import hub

router = APIRouter()
ws_router = APIRouter()


@router.get("/", response_model=list[NotificationOut])
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The caller's notifications, newest first."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc())
    )
    return result.scalars().all()


@router.get("/repositions", response_model=list[NotificationOut])
async def unread_reposition_notifications(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Unread notifications about repositions (badge counter)."""
    result = await db.execute(
        select(Notification)
        .where(
            Notification.user_id == user.id,
            Notification.read == False,  # noqa: E712
            or_(
                Notification.type.contains("reposition"),
                Notification.type.contains("completion"),
                Notification.type.contains("transfer"),
            ),
        )
        .order_by(Notification.created_at.desc())
    )
    return result.scalars().all()


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user.id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification", notification_id)
    notification.read = True
    return notification


# ── Live channel ─────────────────────────────────────────────

@ws_router.websocket("/ws")
async def live_notifications(websocket: WebSocket):
    """Push every notification to every client; relay client messages to all.

    A client message is re-broadcast wrapped as ``{"type": "notification",
    "data": <message>}``, the same envelope inbox notifications use.
    """
    await hub.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                continue
            await hub.publish({"type": "notification", "data": message})
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
