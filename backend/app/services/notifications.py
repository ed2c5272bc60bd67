"""Notification dispatch: inbox rows plus a live WebSocket fan-out.

Lifecycle services call ``notify_users`` inside the request transaction.
That writes Notification rows and queues them on the session; ``get_db``
calls ``dispatch_pending`` only after a successful commit, so clients are
never told about a change that was rolled back.

Every live client receives every notification (``{"type": "notification",
"data": {...}}``); clients filter by ``user_id`` themselves.  With
``NOTIFICATION_RELAY=redis`` each message goes through a Redis pub/sub
channel so every worker process fans it out to its own sockets.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime
from typing import Iterable

import redis.asyncio as redis
from fastapi import WebSocket, WebSocketDisconnect
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.enums import Area
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import NotificationOut
from app.utils.cache import get_redis

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_notifications"


# ── Live hub ────────────────────────────────────────────────

class NotificationHub:
    """Set of connected WebSocket clients for this process."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.add(websocket)
        logger.info("WebSocket client connected (%d total)", len(self._clients))
        await websocket.send_json({
            "type": "connection",
            "data": {"message": "Connected to notifications"},
        })

    def disconnect(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)
        logger.info("WebSocket client disconnected (%d total)", len(self._clients))

    async def broadcast(self, message: dict) -> None:
        """Send ``message`` to every client on this process."""
        dead = []
        for client in list(self._clients):
            try:
                await client.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.debug("Dropping WebSocket client: %s", e)
                dead.append(client)
        for client in dead:
            self._clients.discard(client)

    async def publish(self, message: dict) -> None:
        """Fan ``message`` out to every worker (Redis relay) or just this one."""
        if settings.notification_relay == "redis":
            try:
                client = await get_redis()
                await client.publish(settings.notification_channel, json.dumps(message))
                return
            except redis.RedisError as e:
                logger.warning(f"Redis relay unavailable, broadcasting locally: {e}")
        await self.broadcast(message)

    async def run_relay(self) -> None:
        """Forward messages from the Redis channel to local clients until cancelled."""
        client = await get_redis()
        pubsub = client.pubsub()
        await pubsub.subscribe(settings.notification_channel)
        logger.info("Notification relay subscribed to %s", settings.notification_channel)
        try:
            async for item in pubsub.listen():
                if item.get("type") != "message":
                    continue
                try:
                    message = json.loads(item["data"])
                except (TypeError, ValueError):
                    logger.warning("Ignoring malformed relay message")
                    continue
                await self.broadcast(message)
        finally:
            await pubsub.unsubscribe(settings.notification_channel)
            await pubsub.aclose()


hub = NotificationHub()


async def relay_forever() -> None:
    """Keep the Redis relay alive across connection drops."""
    while True:
        try:
            await hub.run_relay()
        except redis.RedisError as e:
            logger.warning(f"Notification relay lost Redis connection: {e}")
            await asyncio.sleep(5)


# ── Recipients ──────────────────────────────────────────────

async def users_in_areas(db: AsyncSession, areas: Iterable[Area]) -> list[str]:
    """IDs of active users belonging to any of ``areas``."""
    values = [a.value if isinstance(a, Area) else a for a in areas]
    result = await db.execute(
        select(User.id).where(
            User.area.in_(values),
            User.is_active == True,  # noqa: E712
        )
    )
    return [row[0] for row in result.all()]


# ── Write + queue ───────────────────────────────────────────

async def notify_users(
    db: AsyncSession,
    user_ids: Iterable[str],
    *,
    type: str,
    title: str,
    message: str,
    reposition_id: str | None = None,
) -> list[Notification]:
    """Insert one Notification per user and queue them for live delivery."""
    created = []
    for user_id in dict.fromkeys(user_ids):
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            reposition_id=reposition_id,
            read=False,
            created_at=datetime.utcnow(),
        )
        db.add(notification)
        created.append(notification)

    db.info.setdefault(PENDING_KEY, []).extend(created)
    return created


async def dispatch_pending(db: AsyncSession) -> None:
    """Push notifications queued on ``db`` to live clients (after commit)."""
    pending: list[Notification] = db.info.pop(PENDING_KEY, [])
    for notification in pending:
        await hub.publish({
            "type": "notification",
            "data": NotificationOut.model_validate(notification).model_dump(mode="json"),
        })
