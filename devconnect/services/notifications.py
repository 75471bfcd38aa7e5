"""
Notification lifecycle: unread → read → deleted.

Rows are created inside the caller's transaction (so a mutation and its
notification commit together) and pushed to the recipient only after the
caller has committed.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.errors import NotFound, ValidationError
from devconnect.models import NOTIFICATION_TYPES, Notification
from devconnect.realtime.broadcaster import (
    EVENT_NEW_NOTIFICATION,
    EVENT_NOTIFICATION,
    Broadcaster,
)
from devconnect.telemetry import NOTIFICATIONS_CREATED_TOTAL

logger = logging.getLogger(__name__)

# Moderation outcomes use the plain message event the admin flow always had
_STATUS_TYPES = {"post_approved", "post_rejected"}


def create_notification(db: AsyncSession, user_id: int, type_: str, message: str) -> Notification:
    """Stage an unread notification for `user_id` in the current transaction."""
    if type_ not in NOTIFICATION_TYPES:
        raise ValidationError(f"Unknown notification type '{type_}'")
    notification = Notification(user_id=user_id, type=type_, message=message, is_read=False)
    db.add(notification)
    NOTIFICATIONS_CREATED_TOTAL.labels(type=type_).inc()
    return notification


async def publish(broadcaster: Broadcaster, notification: Notification) -> None:
    """Post-commit push to the recipient's room."""
    if notification.type in _STATUS_TYPES:
        await broadcaster.notify_user(
            notification.user_id,
            EVENT_NEW_NOTIFICATION,
            {"message": notification.message},
        )
    else:
        await broadcaster.notify_user(
            notification.user_id,
            EVENT_NOTIFICATION,
            {
                "id": notification.id,
                "userId": notification.user_id,
                "type": notification.type,
                "message": notification.message,
            },
        )


async def list_notifications(db: AsyncSession, user_id: int) -> list[Notification]:
    rows = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    return list(rows.scalars().all())


async def _get_owned(db: AsyncSession, user_id: int, notification_id: int) -> Notification:
    notification = await db.get(Notification, notification_id)
    # Someone else's notification is reported exactly like a missing one
    if notification is None or notification.user_id != user_id:
        raise NotFound("Notification not found")
    return notification


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> Notification:
    notification = await _get_owned(db, user_id, notification_id)
    if not notification.is_read:
        notification.is_read = True
        await db.commit()
    return notification


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def delete_notification(db: AsyncSession, user_id: int, notification_id: int) -> None:
    notification = await _get_owned(db, user_id, notification_id)
    await db.delete(notification)
    await db.commit()
