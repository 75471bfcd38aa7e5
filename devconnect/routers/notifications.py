"""
Notification inbox endpoints (always scoped to the caller):
  GET    /api/notifications            newest first
  POST   /api/notifications/read       mark one read {id}
  POST   /api/notifications/read-all   mark every unread one read
  DELETE /api/notifications/{id}       remove one
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.auth import get_current_user
from devconnect.database import get_db
from devconnect.models import User
from devconnect.schemas import (
    MarkAllReadResponse,
    MarkReadRequest,
    MessageResponse,
    NotificationResponse,
)
from devconnect.services import notifications

router = APIRouter()


@router.get("", response_model=list[NotificationResponse])
async def get_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notifications.list_notifications(db, user.id)


@router.post("/read", response_model=MessageResponse)
async def mark_as_read(
    body: MarkReadRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await notifications.mark_as_read(db, user.id, body.id)
    return MessageResponse(message="Notification marked as read")


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_as_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await notifications.mark_all_as_read(db, user.id)
    return MarkAllReadResponse(message="All notifications marked as read", updated=updated)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await notifications.delete_notification(db, user.id, notification_id)
    return MessageResponse(message="Notification deleted successfully")
