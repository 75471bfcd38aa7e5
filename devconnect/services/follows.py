"""
Follow / unfollow.

Each mutation commits the edge and its notification in one transaction and
returns the server-confirmed state with the target's current counts. The
`followUpdate` broadcast that follows the commit is only a refresh hint for
open profile pages.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.errors import (
    AlreadyFollowing,
    CannotFollowSelf,
    NotFollowing,
    NotFound,
)
from devconnect.models import Follow, User
from devconnect.realtime.broadcaster import EVENT_FOLLOW_UPDATE, Broadcaster
from devconnect.services import notifications
from devconnect.telemetry import FOLLOW_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)


@dataclass
class FollowState:
    is_following: bool
    follower_count: int
    following_count: int


async def follow_counts(db: AsyncSession, user_id: int) -> tuple[int, int]:
    """(followers, following) for `user_id`."""
    followers = await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.followee_id == user_id)
    )
    following = await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    )
    return followers or 0, following or 0


async def is_following(db: AsyncSession, follower_id: int, followee_id: int) -> bool:
    return await db.get(Follow, (follower_id, followee_id)) is not None


async def _state(db: AsyncSession, follower_id: int, followee_id: int) -> FollowState:
    followers, following = await follow_counts(db, followee_id)
    return FollowState(
        is_following=await is_following(db, follower_id, followee_id),
        follower_count=followers,
        following_count=following,
    )


async def _broadcast_update(
    broadcaster: Broadcaster, follower_id: int, followee_id: int, following: bool
) -> None:
    await broadcaster.broadcast_all(
        EVENT_FOLLOW_UPDATE,
        {
            "followerId": follower_id,
            "targetUserId": followee_id,
            "isFollowing": following,
        },
    )


async def follow(
    db: AsyncSession,
    broadcaster: Broadcaster,
    follower: User,
    followee_id: int,
) -> FollowState:
    # Plain values: a rollback below expires ORM instances
    follower_id, follower_name = follower.id, follower.name

    if follower_id == followee_id:
        raise CannotFollowSelf()
    if await db.get(User, followee_id) is None:
        raise NotFound("User not found")
    if await is_following(db, follower_id, followee_id):
        raise AlreadyFollowing()

    db.add(Follow(follower_id=follower_id, followee_id=followee_id))
    notification = notifications.create_notification(
        db, followee_id, "follow", f"{follower_name} followed you."
    )
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request inserted the same edge first
        await db.rollback()
        raise AlreadyFollowing()

    FOLLOW_MUTATIONS_TOTAL.labels(action="follow").inc()
    logger.info("User %s followed %s", follower_id, followee_id)

    await notifications.publish(broadcaster, notification)
    await _broadcast_update(broadcaster, follower_id, followee_id, True)
    return await _state(db, follower_id, followee_id)


async def unfollow(
    db: AsyncSession,
    broadcaster: Broadcaster,
    follower: User,
    followee_id: int,
) -> FollowState:
    follower_id = follower.id
    result = await db.execute(
        delete(Follow).where(
            Follow.follower_id == follower_id,
            Follow.followee_id == followee_id,
        )
    )
    if not result.rowcount:
        await db.rollback()
        raise NotFollowing()
    await db.commit()

    FOLLOW_MUTATIONS_TOTAL.labels(action="unfollow").inc()
    logger.info("User %s unfollowed %s", follower_id, followee_id)

    await _broadcast_update(broadcaster, follower_id, followee_id, False)
    return await _state(db, follower_id, followee_id)


async def list_followers(db: AsyncSession, user_id: int) -> list[User]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.follower_id == User.id)
        .where(Follow.followee_id == user_id)
        .order_by(Follow.created_at.desc(), User.id)
    )
    return list(rows.scalars().all())


async def list_following(db: AsyncSession, user_id: int) -> list[User]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.followee_id == User.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc(), User.id)
    )
    return list(rows.scalars().all())
