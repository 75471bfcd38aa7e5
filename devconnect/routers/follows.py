"""
Social graph endpoints:
  POST   /api/follows                      follow {userId}
  DELETE /api/follows/{userId}             unfollow
  GET    /api/follows/followers/{userId}   who follows userId
  GET    /api/follows/following/{userId}   whom userId follows
  GET    /api/follows/status/{userId}      does the caller follow userId
"""
import logging

from fastapi import APIRouter, Depends
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.auth import get_current_user
from devconnect.database import get_db
from devconnect.models import User
from devconnect.realtime.broadcaster import Broadcaster, get_broadcaster
from devconnect.schemas import FollowRequest, FollowResult, FollowStatus, UserSummary
from devconnect.services import follows

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("", response_model=FollowResult)
async def follow_user(
    body: FollowRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    with tracer.start_as_current_span("follow_user") as span:
        span.set_attribute("follow.target", body.user_id)
        state = await follows.follow(db, broadcaster, user, body.user_id)
        return FollowResult(
            message="User followed successfully",
            is_following=state.is_following,
            follower_count=state.follower_count,
            following_count=state.following_count,
        )


@router.delete("/{user_id}", response_model=FollowResult)
async def unfollow_user(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    with tracer.start_as_current_span("unfollow_user") as span:
        span.set_attribute("follow.target", user_id)
        state = await follows.unfollow(db, broadcaster, user, user_id)
        return FollowResult(
            message="User unfollowed successfully",
            is_following=state.is_following,
            follower_count=state.follower_count,
            following_count=state.following_count,
        )


@router.get("/status/{user_id}", response_model=FollowStatus)
async def follow_status(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return FollowStatus(is_following=await follows.is_following(db, user.id, user_id))


@router.get("/followers/{user_id}", response_model=list[UserSummary])
async def list_followers(
    user_id: int,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await follows.list_followers(db, user_id)


@router.get("/following/{user_id}", response_model=list[UserSummary])
async def list_following(
    user_id: int,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await follows.list_following(db, user_id)
