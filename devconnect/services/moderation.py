"""
Admin review of pending posts.

Approving flips the status; rejecting removes the post. Either way the owner
gets a notification in the same transaction and a `newNotification` push
once it has committed.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.errors import Conflict
from devconnect.models import POST_APPROVED, POST_PENDING, Post
from devconnect.realtime.broadcaster import Broadcaster
from devconnect.services import notifications
from devconnect.services.posts import get_post

logger = logging.getLogger(__name__)

APPROVED_MESSAGE = "Your post has been approved!"
REJECTED_MESSAGE = "Your post has been rejected!"


async def approve_post(db: AsyncSession, broadcaster: Broadcaster, post_id: int) -> Post:
    post = await get_post(db, post_id)
    if post.status != POST_PENDING:
        raise Conflict(f"Post is already {post.status}")

    post.status = POST_APPROVED
    notification = notifications.create_notification(
        db, post.user_id, "post_approved", APPROVED_MESSAGE
    )
    await db.commit()
    logger.info("Post %s approved", post_id)

    await notifications.publish(broadcaster, notification)
    return post


async def reject_post(db: AsyncSession, broadcaster: Broadcaster, post_id: int) -> None:
    post = await get_post(db, post_id)
    owner_id = post.user_id

    await db.delete(post)
    notification = notifications.create_notification(
        db, owner_id, "post_rejected", REJECTED_MESSAGE
    )
    await db.commit()
    logger.info("Post %s rejected and removed", post_id)

    await notifications.publish(broadcaster, notification)
